"""
NotificationBatcher - Gom cac key thay doi thanh notifications cho subscribers.

Moi write vao caches (resolve xong, update_from_memory, invalidate) deu
di qua day. Subscribers nhan ChangeBatch:
- ChangeBatch(keys=...) cho cac key cu the
- ChangeBatch(full_refresh=True) khi "moi thu da thay doi"

Trong luc initialization scan dang chay, delay toi thieu la 100ms de
khong spam subscribers voi hang tram batch nho.
"""

from typing import Callable, Iterable, List

from config.app_settings import LineSightConfig
from core.logging_config import log_error
from core.utils.batch_updater import ChangeBatch, CoalescingQueue
from services.engine_state import EngineState

# Delay toi thieu khi dang initialization
INITIALIZING_MIN_DELAY_MS = 100

Subscriber = Callable[[ChangeBatch], None]


class NotificationBatcher:
    """
    Debounced publisher cua ChangeBatch events.

    Usage:
        batcher = NotificationBatcher(state)
        unsubscribe = batcher.subscribe(lambda batch: print(batch.keys))
        batcher.add("/a.py")
        # ...debounce_delay_ms sau: subscriber nhan ChangeBatch({"/a.py"})
    """

    def __init__(self, state: EngineState):
        self._state = state
        self._subscribers: List[Subscriber] = []
        self._queue = CoalescingQueue(
            on_flush=self._publish,
            cap=state.config.pending_updates_cap,
            default_delay_ms=state.config.debounce_delay_ms,
            registry=state.timers,
            name="NotificationBatcher",
        )

    @property
    def queue(self) -> CoalescingQueue:
        return self._queue

    def current_delay_ms(self) -> int:
        """Delay hien tai: max(100, debounce) khi dang initialization."""
        delay = self._state.config.debounce_delay_ms
        if self._state.is_initializing:
            return max(INITIALIZING_MIN_DELAY_MS, delay)
        return delay

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Dang ky nhan ChangeBatch events.

        Returns:
            Function de huy dang ky (goi nhieu lan van an toan)
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def add(self, key: str) -> None:
        self._queue.add(key, self.current_delay_ms())

    def add_many(self, keys: Iterable[str]) -> None:
        self._queue.add_many(keys, self.current_delay_ms())

    def request_full_refresh(self) -> None:
        self._queue.request_full_refresh(self.current_delay_ms())

    def flush(self) -> None:
        self._queue.flush()

    def apply_config(self, config: LineSightConfig) -> None:
        self._queue.set_cap(config.pending_updates_cap)
        self._queue.set_default_delay(config.debounce_delay_ms)

    def cleanup(self) -> None:
        """Huy timer, bo state pending va subscribers."""
        self._queue.cleanup()
        self._subscribers.clear()

    def _publish(self, batch: ChangeBatch) -> None:
        for callback in list(self._subscribers):
            try:
                callback(batch)
            except Exception as e:
                log_error("[NotificationBatcher] Subscriber failed", e)
