"""
Workspace Event Handler cho File Watcher.

Nhan events tu watchdog (tren observer thread), ap dung ignore strategy,
va chuyen events hop le sang sink tren event loop thread.

Class nay chi lam 1 viec: chuyen doi watchdog events
thanh FileChangeEvent va marshal sang event loop.
"""

import asyncio

from watchdog.events import (
    FileSystemEventHandler,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
)

from core.logging_config import log_debug
from services.interfaces.file_watcher_service import (
    FileChangeEvent,
    IEventSink,
    IIgnoreStrategy,
)


class WorkspaceEventHandler(FileSystemEventHandler):
    """
    Event handler nhan events tu watchdog va delegate cho sink.

    Trach nhiem duy nhat:
    - Nhan watchdog events (on_created, on_deleted, on_modified, on_moved)
    - Kiem tra ignore strategy
    - Chuyen doi sang FileChangeEvent va gui sang event loop

    Move/rename duoc tach thanh deleted(src) + created(dest).

    Attributes:
        _ignore_strategy: Strategy xac dinh path nao can bo qua
        _sink: Noi nhan events (vd: ChangeFunnel)
        _loop: Event loop cua sink
    """

    def __init__(
        self,
        ignore_strategy: IIgnoreStrategy,
        sink: IEventSink,
        loop: asyncio.AbstractEventLoop,
    ):
        """
        Args:
            ignore_strategy: Strategy xac dinh path nao can ignore
            sink: Sink nhan events tren event loop thread
            loop: Event loop ma sink thuoc ve
        """
        super().__init__()
        self._ignore_strategy = ignore_strategy
        self._sink = sink
        self._loop = loop

    def _dispatch_change(self, event_type: str, path: str, is_directory: bool) -> None:
        if not path or self._ignore_strategy.should_ignore(path):
            return

        change_event = FileChangeEvent(
            event_type=event_type,
            path=path,
            is_directory=is_directory,
        )

        log_debug(f"[FileWatcher] Event: {event_type} - {path}")
        try:
            self._loop.call_soon_threadsafe(self._sink.add_event, change_event)
        except RuntimeError:
            # Loop da dong (dang shutdown)
            log_debug(f"[FileWatcher] Loop closed, dropping event for {path}")

    def _handle_event(self, event: object, event_type: str) -> None:
        src_path = str(getattr(event, "src_path", ""))
        is_directory: bool = getattr(event, "is_directory", False)
        self._dispatch_change(event_type, src_path, is_directory)

    # Override watchdog event handlers
    def on_created(self, event: object) -> None:
        """Xu ly khi file/folder duoc tao."""
        if isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
            self._handle_event(event, "created")

    def on_deleted(self, event: object) -> None:
        """Xu ly khi file/folder bi xoa."""
        if isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
            self._handle_event(event, "deleted")

    def on_modified(self, event: object) -> None:
        """Xu ly khi file bi sua."""
        # Chi xu ly file, khong xu ly folder (folder modified qua nhieu noise)
        if isinstance(event, FileModifiedEvent):
            self._handle_event(event, "modified")

    def on_moved(self, event: object) -> None:
        """Xu ly khi file/folder bi di chuyen/doi ten."""
        if isinstance(event, (FileMovedEvent, DirMovedEvent)):
            is_directory: bool = getattr(event, "is_directory", False)
            self._dispatch_change(
                "deleted", str(getattr(event, "src_path", "")), is_directory
            )
            self._dispatch_change(
                "created", str(getattr(event, "dest_path", "")), is_directory
            )
