"""
LineSightService - Lop wiring mong giua host (editor / CLI) va engine.

Tao EngineState dung chung, wire AnnotationEngine + ChangeFunnel +
InitializationScanner + FileWatcher va dang ky cac host events.
Moi logic that su nam o cac module duoc import.

Tat ca methods phai duoc goi tu ben trong event loop dang chay.
"""

import asyncio
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from config.app_settings import AppSettings
from core.file_filter import FileFilter
from core.linecount.counter import (
    RenderedAnnotation,
    count_text_lines,
    shutdown_read_executor,
)
from core.logging_config import log_info
from core.utils.batch_updater import ChangeBatch
from services.annotation_engine import AnnotationEngine
from services.data_source import LocalFileSource
from services.file_watcher_pkg.debouncer import ChangeFunnel
from services.file_watcher_pkg.ignore_strategies import ConfigIgnoreStrategy
from services.file_watcher_pkg.service import FileWatcher
from services.initialization_scanner import InitializationScanner
from services.interfaces.annotation_service import IAnnotationSource
from services.interfaces.file_watcher_service import IFileWatcherService
from services.settings_manager import load_app_settings


class LineSightService:
    """
    Host-facing service: activate / refresh / deactivate + editor events.

    Usage:
        service = LineSightService()
        service.subscribe(lambda batch: redraw(batch))
        await service.activate(["/repo"])
        ...
        service.deactivate()
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        source: Optional[IAnnotationSource] = None,
        watcher: Optional[IFileWatcherService] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            settings: AppSettings (mac dinh doc tu settings.json)
            source: Data source (mac dinh LocalFileSource)
            watcher: File watcher (mac dinh watchdog FileWatcher)
            on_status: Callback nhan status messages cua scanner
        """
        self._settings = settings if settings is not None else load_app_settings()
        config = self._settings.to_config()

        self._file_filter = FileFilter(config)
        self._engine = AnnotationEngine(
            source or LocalFileSource(),
            config,
            is_eligible=self._file_filter,
        )
        self._funnel = ChangeFunnel(self._engine)
        self._scanner = InitializationScanner(
            self._engine,
            exclude=self._file_filter.is_excluded,
            on_status=on_status,
        )
        self._watcher = watcher or FileWatcher(ConfigIgnoreStrategy(self._file_filter))
        self._roots: List[str] = []
        self._is_active = False

    # === Properties ===

    @property
    def engine(self) -> AnnotationEngine:
        return self._engine

    @property
    def funnel(self) -> ChangeFunnel:
        return self._funnel

    @property
    def scanner(self) -> InitializationScanner:
        return self._scanner

    @property
    def watcher(self) -> IFileWatcherService:
        return self._watcher

    @property
    def roots(self) -> List[str]:
        return list(self._roots)

    @property
    def is_active(self) -> bool:
        return self._is_active

    def subscribe(self, callback: Callable[[ChangeBatch], None]) -> Callable[[], None]:
        return self._engine.subscribe(callback)

    async def get_annotation(self, key: str) -> Optional[RenderedAnnotation]:
        return await self._engine.resolve(key)

    # === Lifecycle ===

    def activate(self, roots: Iterable[str]) -> Optional["asyncio.Task[None]"]:
        """Start watcher va initialization scan cho cac roots."""
        self._roots = [str(Path(root).resolve()) for root in roots]
        self._is_active = True
        log_info(f"[LineSight] Activating for {len(self._roots)} root(s)")
        self._start_watcher()
        return self._scanner.start_scan(self._roots)

    def refresh(self) -> Optional["asyncio.Task[None]"]:
        """Huy scan, xoa caches, full refresh va scan lai tu dau."""
        if not self._is_active:
            return None
        self._scanner.cancel_scan()
        self._engine.invalidate_all()
        return self._scanner.start_scan(self._roots, force=True)

    def on_roots_changed(self, roots: Iterable[str]) -> Optional["asyncio.Task[None]"]:
        """Workspace folders thay doi: watch lai va scan lai."""
        self._roots = [str(Path(root).resolve()) for root in roots]
        if not self._is_active:
            return None
        self._scanner.cancel_scan()
        self._engine.state.clear_all_caches()
        self._start_watcher()
        return self._scanner.start_scan(self._roots, force=True)

    def on_configuration_changed(
        self, settings: Optional[AppSettings] = None
    ) -> Optional["asyncio.Task[None]"]:
        """Ap dung settings moi (mac dinh doc lai tu disk) roi scan lai."""
        self._settings = settings if settings is not None else load_app_settings()
        config = self._settings.to_config()

        self._file_filter.update_config(config)
        self._engine.apply_config(config)
        self._funnel.apply_config(config)

        if not self._is_active:
            return None
        self._scanner.cancel_scan()
        self._engine.state.clear_all_caches()
        self._start_watcher()
        self._engine.request_full_refresh()
        return self._scanner.start_scan(self._roots, force=True)

    def deactivate(self) -> None:
        """Huy scan, xoa caches, dung watcher va huy moi timer dang cho."""
        self._is_active = False
        self._scanner.cancel_scan()
        self._engine.state.clear_all_caches()
        self._funnel.cleanup()
        self._engine.state.timers.clear_all()
        self._watcher.stop()
        self._engine.dispose()
        shutdown_read_executor()
        log_info("[LineSight] Deactivated")

    def _start_watcher(self) -> None:
        if self._roots:
            self._watcher.start([Path(root) for root in self._roots], self._funnel)
        else:
            self._watcher.stop()

    # === Editor events ===

    def on_document_changed(self, key: str, line_count: int) -> None:
        """Buffer chua save thay doi: dung line count trong memory."""
        if not self._file_filter(key):
            return
        self._engine.update_from_memory(key, line_count)

    def on_document_text_changed(self, key: str, text: str) -> None:
        self.on_document_changed(key, count_text_lines(text))

    def on_document_saved(self, key: str) -> None:
        self._funnel.on_document_saved(key)

    def on_editors_visible(self, keys: Iterable[str]) -> None:
        self._funnel.on_editors_visible(keys)
