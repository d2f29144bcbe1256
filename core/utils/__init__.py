"""
Core Utilities Package

Chua cac utility modules chay tren event loop:
- async_queue: ConcurrencyLimiter (bounded parallelism, FIFO queue)
- safe_timer: SafeTimer + TimerRegistry (tracked loop timers)
- batch_updater: CoalescingQueue (debounce + coalescing change keys)
"""

from core.utils.async_queue import ConcurrencyLimiter, QueueStats
from core.utils.safe_timer import SafeTimer, TimerRegistry
from core.utils.batch_updater import ChangeBatch, CoalescingQueue

__all__ = [
    "ConcurrencyLimiter",
    "QueueStats",
    "SafeTimer",
    "TimerRegistry",
    "ChangeBatch",
    "CoalescingQueue",
]
