"""
FileWatcher Service - Wiring va lifecycle management.

Class nay chi lam 1 viec: khoi tao WorkspaceEventHandler cho sink
va quan ly lifecycle cua watchdog Observer (mot observer, nhieu roots).

Logic cu the (ignore, debounce, routing vao engine) nam o
ignore_strategies.py, handler.py va debouncer.py.
"""

import asyncio
from pathlib import Path
from typing import Any, List, Optional, Sequence

from watchdog.observers import Observer

from core.logging_config import log_info, log_error, log_warning
from services.interfaces.file_watcher_service import (
    IEventSink,
    IFileWatcherService,
    IIgnoreStrategy,
)
from services.file_watcher_pkg.handler import WorkspaceEventHandler
from services.file_watcher_pkg.ignore_strategies import DefaultIgnoreStrategy


class FileWatcher(IFileWatcherService):
    """
    Service theo doi thay doi file trong cac workspace roots.

    Wiring:
    - IIgnoreStrategy -> DefaultIgnoreStrategy (co the thay doi qua constructor)
    - WorkspaceEventHandler cau noi giua watchdog thread va event loop
    - IEventSink (ChangeFunnel) nhan events tren event loop

    Usage (tu ben trong event loop):
        watcher = FileWatcher(ConfigIgnoreStrategy.from_config(config))
        watcher.start([Path("/path/to/workspace")], sink=funnel)
        # ... later
        watcher.stop()
    """

    def __init__(
        self,
        ignore_strategy: Optional[IIgnoreStrategy] = None,
    ):
        """
        Args:
            ignore_strategy: Strategy xac dinh path nao can bo qua.
                             Mac dinh su dung DefaultIgnoreStrategy.
        """
        # Su dung Any de tranh false positive voi Observer type
        self._observer: Optional[Any] = None
        self._handler: Optional[WorkspaceEventHandler] = None
        self._sink: Optional[IEventSink] = None
        self._watched_paths: List[Path] = []
        self._ignore_strategy: IIgnoreStrategy = (
            ignore_strategy or DefaultIgnoreStrategy()
        )

    def set_ignore_strategy(self, ignore_strategy: IIgnoreStrategy) -> None:
        """Doi strategy; co hieu luc tu lan start() tiep theo."""
        self._ignore_strategy = ignore_strategy

    def start(self, paths: Sequence[Path], sink: IEventSink) -> None:
        """
        Bat dau theo doi cac thu muc.

        Phai goi tu ben trong event loop dang chay. Watcher cu duoc stop truoc.

        Args:
            paths: Cac thu muc goc
            sink: Noi nhan FileChangeEvent tren event loop
        """
        self.stop()

        valid_paths = [path for path in paths if path.exists() and path.is_dir()]
        for path in paths:
            if path not in valid_paths:
                log_warning(f"[FileWatcher] Invalid path: {path}")
        if not valid_paths:
            return

        loop = asyncio.get_running_loop()

        try:
            self._handler = WorkspaceEventHandler(
                ignore_strategy=self._ignore_strategy,
                sink=sink,
                loop=loop,
            )

            self._observer = Observer()
            for path in valid_paths:
                self._observer.schedule(self._handler, str(path), recursive=True)
            self._observer.start()

            self._sink = sink
            self._watched_paths = valid_paths
            log_info(
                f"[FileWatcher] Started watching: {', '.join(map(str, valid_paths))}"
            )

        except Exception as e:
            log_error("[FileWatcher] Failed to start", e)
            self.stop()

    def stop(self) -> None:
        """Dung theo doi. Sink khong bi cleanup (thuoc ve caller)."""
        self._handler = None
        self._sink = None

        observer = self._observer
        if observer is not None:
            try:
                observer.stop()
                observer.join(timeout=2.0)
                log_info("[FileWatcher] Stopped watching")
            except Exception as e:
                log_error("[FileWatcher] Error stopping", e)
            finally:
                self._observer = None

        self._watched_paths = []

    def is_running(self) -> bool:
        """Kiem tra watcher co dang chay khong."""
        observer = self._observer
        return observer is not None and observer.is_alive()

    @property
    def watched_paths(self) -> Optional[Sequence[Path]]:
        """Cac duong dan dang duoc theo doi (None neu khong chay)."""
        return list(self._watched_paths) if self._watched_paths else None
