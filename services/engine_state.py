"""
EngineState - Toan bo mutable state cua mot AnnotationEngine.

Gom vao mot cho de:
- Engine, scanner, funnel cung thao tac tren cung caches / registry / epoch
- Deactivate chi can clear_all() la sach
- Test co the tao state rieng cho moi test (khong co global singleton)

Tat ca fields chi duoc doc/ghi tren event loop thread.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from config.app_settings import LineSightConfig
from core.linecount.cache import BoundedCache
from core.linecount.counter import RenderedAnnotation
from core.utils.safe_timer import TimerRegistry
from services.cache_registry import CacheRegistry
from services.interfaces.annotation_service import Fingerprint


@dataclass
class PendingComputation:
    """Computation dang chay cho 1 key, gan voi fingerprint no bat dau tu."""

    fingerprint: Fingerprint
    task: "asyncio.Task[int]"


class EngineState:
    """
    State dung chung cua engine.

    Attributes:
        config: LineSightConfig hien tai (immutable, thay the ca object khi doi)
        metadata_cache: key -> Fingerprint da commit truoc khi tinh
        line_count_cache: key -> so dong da tinh
        rendered_cache: key -> RenderedAnnotation (rebuild lazy khi thieu)
        pending: key -> PendingComputation (toi da 1 handle moi key)
        scan_epoch: Tang moi lan scan bat dau hoac bi huy
        is_initializing: True khi scan hien tai chua xong
        scan_task: Task cua scan dang chay (neu co)
        timers: TimerRegistry cho moi debounce timer / sleep cua engine
    """

    def __init__(self, config: Optional[LineSightConfig] = None):
        self.config = config or LineSightConfig()
        self.cache_registry = CacheRegistry()
        self._build_caches(self.config.cache_capacity)

        self.pending: Dict[str, PendingComputation] = {}
        self.scan_epoch = 0
        self.is_initializing = False
        self.scan_task: Optional["asyncio.Task[None]"] = None
        self.timers = TimerRegistry()

    def _build_caches(self, capacity: int) -> None:
        self.metadata_cache: BoundedCache[str, Fingerprint] = BoundedCache(capacity)
        self.line_count_cache: BoundedCache[str, int] = BoundedCache(capacity)
        self.rendered_cache: BoundedCache[str, RenderedAnnotation] = BoundedCache(
            capacity
        )
        self.cache_registry.register("metadata", self.metadata_cache)
        self.cache_registry.register("line_count", self.line_count_cache)
        self.cache_registry.register("rendered", self.rendered_cache)

    def apply_config(self, config: LineSightConfig) -> None:
        """
        Thay config. Neu cache_capacity doi, caches duoc tao lai (rong).
        """
        capacity_changed = config.cache_capacity != self.config.cache_capacity
        self.config = config
        if capacity_changed:
            self._build_caches(config.cache_capacity)

    def purge(self, key: str) -> None:
        """Xoa key khoi ca 3 caches (khong dung registry pending)."""
        self.cache_registry.invalidate_for_path(key)

    def clear_all_caches(self) -> None:
        """Xoa moi cache va registry pending. Tasks dang chay van chay xong."""
        self.cache_registry.invalidate_for_workspace()
        self.pending.clear()

    def next_epoch(self) -> int:
        self.scan_epoch += 1
        return self.scan_epoch

    def cache_stats(self) -> Dict[str, int]:
        stats = self.cache_registry.get_stats()
        stats["pending"] = len(self.pending)
        return stats
