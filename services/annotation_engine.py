"""
Annotation Engine - Quan ly va cache line count annotations cho files

Resolve protocol cho moi key:
0. Key khong eligible -> None, khong lam gi
1. Observe fingerprint (size + mtime). Khong ton tai -> purge 3 caches, None
2. Metadata cache khop fingerprint va co line count -> tra ve tu cache
3. Commit fingerprint vao metadata cache TRUOC khi tinh
4. Size 0 -> 0 dong; size > size_limit -> uoc luong tu size (khong doc file)
5. Dedup: moi key toi da 1 computation, caller cung fingerprint dung chung
   qua shield; fingerprint khac -> tao computation moi thay the
6. Tinh xong: neu metadata cache khong con la fingerprint computation bat
   dau tu (invalidate / resolve moi hon) -> bo ket qua
7. Ghi line count + rendered annotation, tra ve
8. Loi (read timeout, queue full, OSError) -> purge 3 caches neu fingerprint
   van la cua computation nay, tra ve None, chi log

Tat ca methods chay tren event loop thread. Khong co lock: cac diem
suspend duy nhat la observe, computation va timers.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Optional, Set

from config.app_settings import LineSightConfig
from core.file_filter import FileFilter
from core.linecount.counter import (
    RenderedAnnotation,
    count_lines,
    estimate_line_count,
    render_line_annotation,
)
from core.logging_config import log_debug, log_warning
from core.utils.async_queue import ConcurrencyLimiter
from core.utils.batch_updater import ChangeBatch
from services.engine_state import EngineState, PendingComputation
from services.interfaces.annotation_service import (
    EligibilityPredicate,
    Fingerprint,
    IAnnotationSource,
)
from services.notification_batcher import NotificationBatcher

Renderer = Callable[[int, bool], RenderedAnnotation]
ResolveResults = Dict[str, Optional[RenderedAnnotation]]


class AnnotationEngine:
    """
    Engine tinh line count annotations voi cache + dedup + staleness check.

    Usage:
        engine = AnnotationEngine(LocalFileSource(), config)
        engine.subscribe(lambda batch: print(batch))

        annotation = await engine.resolve("/repo/main.py")
        if annotation:
            print(annotation.badge, annotation.tooltip)
    """

    def __init__(
        self,
        source: IAnnotationSource,
        config: Optional[LineSightConfig] = None,
        is_eligible: Optional[EligibilityPredicate] = None,
        renderer: Renderer = render_line_annotation,
        state: Optional[EngineState] = None,
    ):
        """
        Args:
            source: Data source (observe / open_stream / enumerate)
            config: LineSightConfig (mac dinh neu None)
            is_eligible: Predicate eligibility; mac dinh FileFilter(config)
            renderer: Build RenderedAnnotation tu (value, estimated)
            state: EngineState dung chung (tao moi neu None)
        """
        self._source = source
        self._state = state or EngineState(config)
        if state is not None and config is not None:
            self._state.apply_config(config)

        self._file_filter: Optional[FileFilter] = None
        if is_eligible is None:
            self._file_filter = FileFilter(self._state.config)
            is_eligible = self._file_filter
        self._is_eligible = is_eligible
        self._render = renderer

        self._limiter = self._create_limiter(self._state.config)
        self._batcher = NotificationBatcher(self._state)
        self._background: Set["asyncio.Task[ResolveResults]"] = set()
        self._is_disposed = False

    @staticmethod
    def _create_limiter(config: LineSightConfig) -> ConcurrencyLimiter:
        return ConcurrencyLimiter(
            max_concurrent=config.max_concurrent_reads,
            max_queued=config.limiter_queue_cap,
        )

    # === Properties ===

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def config(self) -> LineSightConfig:
        return self._state.config

    @property
    def source(self) -> IAnnotationSource:
        return self._source

    @property
    def limiter(self) -> ConcurrencyLimiter:
        return self._limiter

    @property
    def batcher(self) -> NotificationBatcher:
        return self._batcher

    @property
    def is_disposed(self) -> bool:
        return self._is_disposed

    def is_eligible(self, key: str) -> bool:
        return self._is_eligible(key)

    # === Resolve ===

    async def resolve(self, key: str) -> Optional[RenderedAnnotation]:
        """
        Lay annotation cho key, tinh lai neu cache khong con dung.

        Khong bao gio raise (tru CancelledError cua chinh caller).

        Returns:
            RenderedAnnotation, hoac None neu khong eligible / khong ton tai /
            loi / ket qua da stale
        """
        if self._is_disposed or not self._is_eligible(key):
            return None

        state = self._state
        try:
            fingerprint = await self._source.observe(key)
        except Exception as e:
            log_debug(f"[AnnotationEngine] Observe failed for {key}: {e}")
            fingerprint = None

        if fingerprint is None:
            state.purge(key)
            return None

        # Fast path: fingerprint khop va da co line count
        cached_meta = state.metadata_cache.get(key)
        if cached_meta == fingerprint:
            cached_value = state.line_count_cache.get(key)
            if cached_value is not None:
                return self._rendered_for(
                    key, cached_value, fingerprint.size > state.config.size_limit
                )

        state.metadata_cache.set(key, fingerprint)

        if fingerprint.size == 0:
            return self._commit(key, 0, estimated=False)

        if fingerprint.size > state.config.size_limit:
            value = estimate_line_count(
                fingerprint.size, state.config.estimation_factor
            )
            return self._commit(key, value, estimated=True)

        handle = state.pending.get(key)
        if handle is None or handle.fingerprint != fingerprint:
            # Computation cu bat dau tu noi dung khac, khong dung chung
            handle = self._spawn(key, fingerprint)
        task = handle.task

        try:
            value = await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # Computation bi huy (dispose) chu khong phai caller
            self._purge_if_current(key, handle.fingerprint)
            return None
        except Exception as e:
            log_warning(f"[AnnotationEngine] Failed to count lines for {key}: {e}")
            self._purge_if_current(key, handle.fingerprint)
            return None

        # Staleness check: fingerprint computation bat dau tu phai con nguyen
        if state.metadata_cache.peek(key) != handle.fingerprint:
            log_debug(f"[AnnotationEngine] Discarding stale result for {key}")
            return None

        return self._commit(key, value, estimated=False)

    async def resolve_many(self, keys: Iterable[str]) -> ResolveResults:
        """
        Resolve nhieu keys dong thoi (van bi gioi han boi limiter).

        Returns:
            Dict key -> annotation (None cho key khong resolve duoc)
        """
        unique_keys = list(dict.fromkeys(keys))
        if not unique_keys:
            return {}
        results = await asyncio.gather(*(self.resolve(key) for key in unique_keys))
        return dict(zip(unique_keys, results))

    def resolve_in_background(
        self, keys: Iterable[str]
    ) -> Optional["asyncio.Task[ResolveResults]"]:
        """
        Resolve keys trong background task (dung cho watcher events).

        Task duoc giu reference den khi xong va bi huy khi dispose().
        """
        unique_keys = list(dict.fromkeys(keys))
        if self._is_disposed or not unique_keys:
            return None
        task = asyncio.ensure_future(self.resolve_many(unique_keys))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _spawn(self, key: str, fingerprint: Fingerprint) -> PendingComputation:
        """Tao computation moi qua limiter va dang ky truoc khi await."""
        timeout_s = self._state.config.read_timeout_ms / 1000.0
        limiter = self._limiter

        async def _compute() -> int:
            return await limiter.run(
                lambda: count_lines(self._source.open_stream(key), timeout_s)
            )

        handle = PendingComputation(fingerprint, asyncio.ensure_future(_compute()))
        self._state.pending[key] = handle
        handle.task.add_done_callback(lambda t: self._settle(key, handle))
        return handle

    def _settle(self, key: str, handle: PendingComputation) -> None:
        # Chi xoa neu registry van tro den chinh handle nay
        if self._state.pending.get(key) is handle:
            del self._state.pending[key]
        if not handle.task.cancelled():
            handle.task.exception()

    def _purge_if_current(self, key: str, fingerprint: Fingerprint) -> None:
        """Purge khi loi, tru khi mot resolve moi hon da thay fingerprint."""
        if self._state.metadata_cache.peek(key) == fingerprint:
            self._state.purge(key)

    def _commit(self, key: str, value: int, estimated: bool) -> RenderedAnnotation:
        state = self._state
        state.line_count_cache.set(key, value)
        rendered = self._render(value, estimated)
        state.rendered_cache.set(key, rendered)
        return rendered

    def _rendered_for(self, key: str, value: int, estimated: bool) -> RenderedAnnotation:
        rendered = self._state.rendered_cache.get(key)
        if rendered is None:
            rendered = self._render(value, estimated)
            self._state.rendered_cache.set(key, rendered)
        return rendered

    # === Write paths ===

    def update_from_memory(self, key: str, value: int) -> None:
        """
        Ghi line count tu buffer trong memory (vd: editor chua save).

        Khong dung den metadata cache; fingerprint tren disk duoc doi chieu
        lai o lan resolve sau. Gia tri am bi bo qua; 0 hop le vi buffer rong
        co 0 dong (count_text_lines("") == 0), giong file size 0 tren disk.
        """
        if self._is_disposed:
            return
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return
        self._state.line_count_cache.set(key, value)
        self._state.rendered_cache.set(key, self._render(value, False))
        self._batcher.add(key)

    def invalidate(self, keys: Iterable[str]) -> None:
        """Purge 3 caches va registry cho keys, roi bao cho subscribers."""
        keys = list(keys)
        if not keys:
            return
        for key in keys:
            self._state.purge(key)
            self._state.pending.pop(key, None)
        self._batcher.add_many(keys)

    def invalidate_all(self) -> None:
        """Xoa toan bo caches va bao full refresh."""
        self._state.clear_all_caches()
        self._batcher.request_full_refresh()

    def request_full_refresh(self) -> None:
        """Chi bao full refresh, khong xoa cache (fingerprint tu kiem tra lai)."""
        self._batcher.request_full_refresh()

    def notify_changed(self, keys: Iterable[str]) -> None:
        """Chi bao subscribers ve keys, khong dung den cache."""
        self._batcher.add_many(keys)

    # === Queries ===

    def get_cached(self, key: str) -> Optional[RenderedAnnotation]:
        """
        Lay annotation da cache ma khong observe source, khong promote.
        """
        rendered = self._state.rendered_cache.peek(key)
        if rendered is not None:
            return rendered
        value = self._state.line_count_cache.peek(key)
        if value is None:
            return None
        meta = self._state.metadata_cache.peek(key)
        estimated = meta is not None and meta.size > self._state.config.size_limit
        return self._render(value, estimated)

    def subscribe(self, callback: Callable[[ChangeBatch], None]) -> Callable[[], None]:
        return self._batcher.subscribe(callback)

    def stats(self) -> Dict[str, int]:
        stats = self._state.cache_stats()
        limiter_stats = self._limiter.stats
        stats["running"] = limiter_stats.running
        stats["queued"] = limiter_stats.pending
        return stats

    # === Lifecycle ===

    def apply_config(self, config: LineSightConfig) -> None:
        """Ap dung config moi cho state, batcher, filter va limiter."""
        old = self._state.config
        self._state.apply_config(config)
        self._batcher.apply_config(config)
        if self._file_filter is not None:
            self._file_filter.update_config(config)
        if (
            config.max_concurrent_reads != old.max_concurrent_reads
            or config.limiter_queue_cap != old.limiter_queue_cap
        ):
            # Units dang chay tren limiter cu van chay xong
            self._limiter = self._create_limiter(config)

    def dispose(self) -> None:
        """Huy timers, registry, background tasks va units dang cho."""
        if self._is_disposed:
            return
        self._is_disposed = True
        self._batcher.cleanup()
        self._state.pending.clear()
        cancelled = self._limiter.cancel_pending()
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        log_debug(f"[AnnotationEngine] Disposed ({cancelled} queued units cancelled)")

    def pending_keys(self) -> List[str]:
        return list(self._state.pending.keys())
