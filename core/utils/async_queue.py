"""
Async Concurrency Limiter - Gioi han so unit of work chay dong thoi

Tuong tu p-limit trong JavaScript/Node.js.
Chay trong single event loop nen KHONG co race condition giua cac counters.

Features:
- Toi da max_concurrent units chay cung luc
- Hang doi FIFO gioi han max_queued, day thi fail ngay (QueueFullError)
- Unit raise dong bo (truoc khi tra ve awaitable) duoc xu ly nhu fail async:
  running count giam, unit tiep theo duoc start - khong bao gio deadlock
"""

import asyncio
import math
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Tuple, TypeVar

from core.linecount.errors import QueueFullError

T = TypeVar("T")

# Mac dinh giong cau hinh engine
DEFAULT_MAX_CONCURRENT = 20
DEFAULT_MAX_QUEUED = 500


@dataclass
class QueueStats:
    """Thong ke limiter"""

    pending: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0
    rejected: int = 0


def _at_least_one(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value):
        return fallback
    return max(1, math.floor(value))


class ConcurrencyLimiter:
    """
    Bounded-parallelism gate cho async work.

    Usage:
        limiter = ConcurrencyLimiter(max_concurrent=4, max_queued=100)

        result = await limiter.run(lambda: count_file(path))

        limiter.active_count   # so units dang chay
        limiter.pending_count  # so units dang cho
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        max_queued: int = DEFAULT_MAX_QUEUED,
    ):
        """
        Args:
            max_concurrent: So units toi da chay dong thoi (>= 1)
            max_queued: So units toi da trong hang doi (>= 1)
        """
        self._max_concurrent = _at_least_one(max_concurrent, DEFAULT_MAX_CONCURRENT)
        self._max_queued = _at_least_one(max_queued, DEFAULT_MAX_QUEUED)
        self._running = 0
        self._queue: Deque[
            Tuple[Callable[[], Awaitable[Any]], "asyncio.Future[Any]"]
        ] = deque()

        # Stats
        self._completed = 0
        self._failed = 0
        self._rejected = 0

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def max_queued(self) -> int:
        return self._max_queued

    @property
    def active_count(self) -> int:
        """So units dang chay"""
        return self._running

    @property
    def pending_count(self) -> int:
        """So units dang cho trong hang doi"""
        return len(self._queue)

    @property
    def stats(self) -> QueueStats:
        """Lay thong ke limiter"""
        return QueueStats(
            pending=len(self._queue),
            running=self._running,
            completed=self._completed,
            failed=self._failed,
            rejected=self._rejected,
        )

    def run(self, work: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Dua mot unit of work vao limiter.

        Phai goi tu ben trong event loop dang chay.

        Args:
            work: Callable khong tham so, tra ve awaitable

        Returns:
            Future resolve voi ket qua cua unit (hoac exception cua no).
            Neu hang doi da day, future da fail san voi QueueFullError.
        """
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[T]" = loop.create_future()

        if self._running < self._max_concurrent:
            if not self._start(work, future):
                self._dequeue()
        elif len(self._queue) < self._max_queued:
            self._queue.append((work, future))
        else:
            self._rejected += 1
            future.set_exception(
                QueueFullError(
                    f"ConcurrencyLimiter: queue full "
                    f"({self._running} running, {len(self._queue)} queued)"
                )
            )

        return future

    def cancel_pending(self) -> int:
        """
        Huy tat ca units dang cho (chua start).

        Units dang chay khong bi anh huong, chay den khi xong.

        Returns:
            So units da huy
        """
        cancelled = 0
        while self._queue:
            _, future = self._queue.popleft()
            if not future.done():
                future.cancel()
                cancelled += 1
        return cancelled

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Doi cho den khi khong con unit nao chay hoac cho."""
        while self._running > 0 or self._queue:
            await asyncio.sleep(poll_interval)

    def _start(self, work: Callable[[], Awaitable[Any]], future: "asyncio.Future[Any]") -> bool:
        """
        Start mot unit. Tra ve False neu unit raise dong bo.

        Sync failure: running count duoc hoan lai ngay, future fail
        voi exception do - caller chiu trach nhiem dequeue tiep.
        """
        self._running += 1
        try:
            task = asyncio.ensure_future(work())
        except Exception as e:
            self._running -= 1
            self._failed += 1
            if not future.done():
                future.set_exception(e)
            return False

        task.add_done_callback(lambda t: self._on_done(t, future))
        return True

    def _on_done(self, task: "asyncio.Future[Any]", future: "asyncio.Future[Any]") -> None:
        self._running -= 1

        if task.cancelled():
            self._failed += 1
            if not future.done():
                future.cancel()
        elif task.exception() is not None:
            self._failed += 1
            if not future.done():
                future.set_exception(task.exception())
        else:
            self._completed += 1
            if not future.done():
                future.set_result(task.result())

        self._dequeue()

    def _dequeue(self) -> None:
        """Start unit tiep theo trong hang doi (FIFO) neu con slot."""
        while self._queue and self._running < self._max_concurrent:
            work, future = self._queue.popleft()
            if future.done():
                # Caller da bo cuoc (cancel) truoc khi den luot
                continue
            self._start(work, future)
