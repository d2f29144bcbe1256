"""
ChangeFunnel - Debounced queue giua cac nguon thay doi va AnnotationEngine.

Nguon events:
- Watchdog (created/modified -> debounce; deleted -> invalidate ngay)
- Document saved (75ms)
- Editors vua hien thi (100ms)

Khi timer fire, engine invalidate cac keys roi resolve lai trong background.
Qua nhieu keys (> watcher_queue_cap) -> mot full refresh duy nhat.
"""

from typing import Iterable, Optional

from config.app_settings import LineSightConfig, MIN_DEBOUNCE_DELAY_MS
from core.logging_config import log_debug
from core.utils.batch_updater import ChangeBatch, CoalescingQueue
from services.annotation_engine import AnnotationEngine
from services.interfaces.file_watcher_service import FileChangeEvent, IEventSink

SAVE_DELAY_MS = 75
VISIBLE_EDITORS_DELAY_MS = 100


class ChangeFunnel(IEventSink):
    """
    Gom cac change signals va dua vao engine theo batch.

    Delay nho nhat la 50ms. Neu dang co timer, chi restart khi delay
    moi ngan hon (vd: save 75ms thang debounce 300ms).
    """

    def __init__(self, engine: AnnotationEngine):
        self._engine = engine
        config = engine.config
        self._queue = CoalescingQueue(
            on_flush=self._dispatch,
            cap=config.watcher_queue_cap,
            default_delay_ms=config.debounce_delay_ms,
            min_delay_ms=MIN_DEBOUNCE_DELAY_MS,
            registry=engine.state.timers,
            name="ChangeFunnel",
        )

    @property
    def queue(self) -> CoalescingQueue:
        return self._queue

    def add_event(self, event: FileChangeEvent) -> None:
        """Route mot watchdog event (da o tren event loop thread)."""
        if event.is_directory:
            if event.event_type == "deleted":
                # Khong biet cac keys ben trong: de resolve tu purge khi observe
                self._queue.request_full_refresh()
            return

        if event.event_type == "deleted":
            self._engine.invalidate([event.path])
            return

        self.add(event.path)

    def add(self, key: str, delay_ms: Optional[float] = None) -> None:
        """Queue mot key (bo qua neu khong eligible)."""
        if not self._engine.is_eligible(key):
            return
        self._queue.add(key, delay_ms)

    def add_many(self, keys: Iterable[str], delay_ms: Optional[float] = None) -> None:
        eligible = [key for key in keys if self._engine.is_eligible(key)]
        self._queue.add_many(eligible, delay_ms)

    def on_document_saved(self, key: str) -> None:
        self.add(key, SAVE_DELAY_MS)

    def on_editors_visible(self, keys: Iterable[str]) -> None:
        self.add_many(keys, VISIBLE_EDITORS_DELAY_MS)

    def flush(self) -> Optional[ChangeBatch]:
        return self._queue.flush()

    def apply_config(self, config: LineSightConfig) -> None:
        self._queue.set_cap(config.watcher_queue_cap)
        self._queue.set_default_delay(config.debounce_delay_ms)

    def cleanup(self) -> None:
        self._queue.cleanup()

    def _dispatch(self, batch: ChangeBatch) -> None:
        if batch.full_refresh:
            log_debug("[ChangeFunnel] Flushing full refresh")
            self._engine.request_full_refresh()
            return

        keys = sorted(batch.keys)
        log_debug(f"[ChangeFunnel] Flushing {len(keys)} changed files")
        self._engine.invalidate(keys)
        self._engine.resolve_in_background(keys)
