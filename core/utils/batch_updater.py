"""
Batch Updater - Gom nhieu change signals thanh 1 notification

Giup tranh notification storm khi co nhieu thay doi lien tiep
(vd: IDE auto-save, bulk rename hang chuc nghin files).

Quy tac:
- add() start timer neu chua co; neu dang co timer, chi restart khi
  delay moi NGAN HON delay cua timer dang chay (delay hieu luc = min
  cua tat ca delays tu lan fire truoc), khong reset moi lan co event
- So keys pending vuot cap -> bo tracking tung key, chuyen sang
  "full refresh" (1 event "moi thu da thay doi")
- Moi lan fire phat dung 1 event: hoac tap keys, hoac full refresh

Usage:
    queue = CoalescingQueue(on_flush=handle_batch, cap=500, default_delay_ms=300)

    queue.add("/a.py")
    queue.add("/b.py")
    queue.add("/c.py", delay_ms=75)   # -> timer restart voi 75ms

    # ...75ms sau: handle_batch(ChangeBatch(keys={"/a.py", "/b.py", "/c.py"}))
"""

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Optional, Set

from core.logging_config import log_debug, log_error
from core.utils.safe_timer import SafeTimer, TimerRegistry


@dataclass(frozen=True)
class ChangeBatch:
    """
    Mot notification da coalesce.

    Attributes:
        keys: Tap keys da thay doi (rong khi full_refresh)
        full_refresh: True neu "moi thu da thay doi"
    """

    keys: FrozenSet[str] = field(default_factory=frozenset)
    full_refresh: bool = False


class CoalescingQueue:
    """
    Debounce + coalescing queue cho change keys.

    Invariant: neu full_refresh_pending thi pending keys rong.
    Tat ca methods chay tren event loop thread.
    """

    def __init__(
        self,
        on_flush: Callable[[ChangeBatch], None],
        cap: int = 500,
        default_delay_ms: float = 300,
        min_delay_ms: float = 0,
        registry: Optional[TimerRegistry] = None,
        name: str = "CoalescingQueue",
    ):
        """
        Args:
            on_flush: Sink nhan ChangeBatch moi lan timer fire
            cap: So keys pending toi da truoc khi chuyen sang full refresh
            default_delay_ms: Delay khi caller khong truyen delay_ms
            min_delay_ms: Delay nho nhat cho phep
            registry: TimerRegistry dung chung (de clear_all khi teardown)
            name: Ten dung trong log
        """
        self._on_flush = on_flush
        self._cap = max(1, int(cap))
        self._default_delay_ms = default_delay_ms
        self._min_delay_ms = min_delay_ms
        self._name = name

        self._pending: Set[str] = set()
        self._full_refresh_pending = False
        self._timer = SafeTimer(self.flush, registry=registry)

    # === Introspection ===

    @property
    def pending_keys(self) -> FrozenSet[str]:
        return frozenset(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def full_refresh_pending(self) -> bool:
        return self._full_refresh_pending

    @property
    def is_scheduled(self) -> bool:
        return self._timer.is_active

    @property
    def scheduled_delay_ms(self) -> Optional[float]:
        return self._timer.scheduled_delay_ms

    def set_default_delay(self, delay_ms: float) -> None:
        """Cap nhat default delay (khi config thay doi). Timer dang chay giu nguyen."""
        self._default_delay_ms = delay_ms

    def set_cap(self, cap: int) -> None:
        self._cap = max(1, int(cap))

    # === Producers ===

    def add(self, key: str, delay_ms: Optional[float] = None) -> None:
        """Them mot key va schedule flush."""
        self.add_many((key,), delay_ms)

    def add_many(self, keys: Iterable[str], delay_ms: Optional[float] = None) -> None:
        """
        Them nhieu keys va schedule flush (mot lan cho ca batch).

        Neu full refresh dang pending, keys moi da duoc bao ham nen bo qua.
        """
        keys = list(keys)
        if not keys:
            return

        if not self._full_refresh_pending:
            self._pending.update(keys)
            if len(self._pending) > self._cap:
                log_debug(
                    f"[{self._name}] {len(self._pending)} pending keys > cap "
                    f"{self._cap}, collapsing to full refresh"
                )
                self._pending.clear()
                self._full_refresh_pending = True

        self._schedule(delay_ms)

    def request_full_refresh(self, delay_ms: Optional[float] = None) -> None:
        """Flush tiep theo se la full refresh, bo qua tap keys nho hon."""
        self._pending.clear()
        self._full_refresh_pending = True
        self._schedule(delay_ms)

    # === Flush ===

    def flush(self) -> Optional[ChangeBatch]:
        """
        Phat ngay notification dang pending (neu co).

        Returns:
            ChangeBatch da phat, hoac None neu khong co gi pending
        """
        self._timer.cancel()

        if self._full_refresh_pending:
            self._full_refresh_pending = False
            self._pending.clear()
            batch = ChangeBatch(full_refresh=True)
        elif self._pending:
            batch = ChangeBatch(keys=frozenset(self._pending))
            self._pending.clear()
        else:
            return None

        try:
            self._on_flush(batch)
        except Exception as e:
            log_error(f"[{self._name}] Error in flush callback", e)
        return batch

    def cleanup(self) -> None:
        """Huy timer va xoa moi state pending (teardown)."""
        self._timer.cancel()
        self._pending.clear()
        self._full_refresh_pending = False

    def _schedule(self, delay_ms: Optional[float]) -> None:
        requested = self._default_delay_ms if delay_ms is None else delay_ms
        effective = max(self._min_delay_ms, requested, 0)

        if not self._timer.is_active:
            self._timer.start(effective)
            return

        current = self._timer.scheduled_delay_ms
        if current is None or effective < current:
            self._timer.start(effective)
