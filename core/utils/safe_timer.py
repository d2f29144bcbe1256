"""
SafeTimer - Timer tren event loop voi cancellation va tracking.

Giai quyet cac van de khi dung loop.call_later truc tiep:
- Callback co the chay sau khi service da cleanup
- Khong co cach huy tat ca timers dang cho khi deactivate
- Exception trong callback lan ra loop exception handler

Usage:
    registry = TimerRegistry()
    timer = SafeTimer(my_callback, registry=registry)
    timer.start(300)   # ms, tu dong cancel timer cu
    timer.cancel()     # cancel va khong chay callback
    registry.clear_all()  # cancel moi timer con dang cho

Tat ca methods phai duoc goi tu event loop thread.
"""

import asyncio
from typing import Callable, Optional, Set

from core.logging_config import log_error


class TimerRegistry:
    """
    Theo doi tat ca timers dang cho de co the huy hang loat.

    Moi engine co registry rieng (khong dung global state).
    """

    def __init__(self) -> None:
        self._handles: Set[asyncio.TimerHandle] = set()
        self._waiters: Set["asyncio.Future[None]"] = set()

    def schedule(self, callback: Callable[[], None], delay_ms: float) -> asyncio.TimerHandle:
        """
        Schedule callback sau delay_ms (delay am clamp ve 0).

        Returns:
            TimerHandle, truyen vao clear() de huy
        """
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            self._handles.discard(handle)
            callback()

        handle = loop.call_later(max(0.0, delay_ms) / 1000.0, _fire)
        self._handles.add(handle)
        return handle

    def clear(self, handle: Optional[asyncio.TimerHandle]) -> None:
        """Huy mot timer (an toan khi handle la None)."""
        if handle is None:
            return
        handle.cancel()
        self._handles.discard(handle)

    async def wait(self, delay_ms: float) -> None:
        """
        Sleep duoc track.

        clear_all() cancel luon cac waiter dang cho, coroutine dang
        await se nhan CancelledError thay vi treo mai mai.
        """
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        self._waiters.add(waiter)

        def _wake() -> None:
            if not waiter.done():
                waiter.set_result(None)

        handle = self.schedule(_wake, delay_ms)
        try:
            await waiter
        finally:
            self._waiters.discard(waiter)
            self.clear(handle)

    def clear_all(self) -> None:
        """Huy moi timer dang cho - goi khi deactivate."""
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.cancel()
        self._waiters.clear()

    @property
    def active_count(self) -> int:
        return len(self._handles)


class SafeTimer:
    """
    One-shot timer co the restart, chay callback tren event loop.

    Features:
    - start() tu dong cancel timer cu
    - Ghi nho delay da schedule (de caller so sanh min-delay)
    - Disposal-aware: khong chay callback sau dispose()
    - Exception trong callback duoc log, khong lan ra loop
    """

    def __init__(
        self,
        callback: Callable[[], None],
        registry: Optional[TimerRegistry] = None,
    ):
        """
        Args:
            callback: Function duoc goi khi timer fire (khong nhan arguments)
            registry: TimerRegistry de track handle (tao moi neu None)
        """
        self._callback = callback
        self._registry = registry or TimerRegistry()
        self._handle: Optional[asyncio.TimerHandle] = None
        self._scheduled_delay_ms: Optional[float] = None
        self._is_disposed = False

    def start(self, delay_ms: float) -> None:
        """Start (hoac restart) timer voi delay_ms."""
        self.cancel()
        if self._is_disposed:
            return
        self._scheduled_delay_ms = delay_ms
        self._handle = self._registry.schedule(self._execute, delay_ms)

    def cancel(self) -> None:
        """Cancel timer dang cho, callback se khong chay."""
        self._registry.clear(self._handle)
        self._handle = None
        self._scheduled_delay_ms = None

    def dispose(self) -> None:
        """Cancel va khong cho start lai."""
        self._is_disposed = True
        self.cancel()

    @property
    def is_active(self) -> bool:
        """True neu dang co timer cho fire."""
        return self._handle is not None and not self._handle.cancelled()

    @property
    def scheduled_delay_ms(self) -> Optional[float]:
        """Delay cua timer dang cho, None neu khong co."""
        return self._scheduled_delay_ms

    def is_disposed(self) -> bool:
        return self._is_disposed

    def _execute(self) -> None:
        self._handle = None
        self._scheduled_delay_ms = None
        if self._is_disposed:
            return
        try:
            self._callback()
        except Exception as e:
            log_error("[SafeTimer] Callback failed", e)
