"""
Interfaces cho File Watcher Service.

Dinh nghia contracts cho:
- IFileWatcherService: Start/stop theo doi file system
- IIgnoreStrategy: Xac dinh path nao can bo qua
- IEventSink: Nhan events (tren event loop thread) va gom nhom truoc khi xu ly
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence


@dataclass
class FileChangeEvent:
    """
    Dai dien cho mot su kien thay doi file.

    Attributes:
        event_type: Loai su kien ('created', 'deleted', 'modified')
        path: Duong dan tuyet doi cua file/folder bi thay doi
        is_directory: True neu la thu muc
    """

    event_type: str
    path: str
    is_directory: bool


class IIgnoreStrategy(ABC):
    """
    Interface xac dinh logic bo qua path.

    Implementation co the dua tren hardcoded patterns,
    config exclude folders, hoac bat ky logic nao khac.
    """

    @abstractmethod
    def should_ignore(self, path: str) -> bool:
        """
        Kiem tra xem path co nen bi bo qua khong.

        Args:
            path: Duong dan tuyet doi can kiem tra

        Returns:
            True neu path can bi bo qua
        """
        ...


class IEventSink(ABC):
    """
    Interface nhan file change events tren event loop thread.

    Handler (chay tren observer thread) chuyen events sang day qua
    loop.call_soon_threadsafe, nen implementation khong can lock.
    """

    @abstractmethod
    def add_event(self, event: FileChangeEvent) -> None:
        """
        Nhan mot event va schedule xu ly (debounced).

        Args:
            event: Su kien file change can xu ly
        """
        ...

    @abstractmethod
    def cleanup(self) -> None:
        """Don dep timer va pending events khi shutdown."""
        ...


class IFileWatcherService(ABC):
    """
    Interface cho dich vu theo doi file trong workspace.

    Moi implementation phai dam bao:
    - Start lai tu dong stop observer cu
    - Background thread cho event listening
    - Events chi den sink tren event loop thread
    """

    @abstractmethod
    def start(self, paths: Sequence[Path], sink: IEventSink) -> None:
        """
        Bat dau theo doi cac thu muc.

        Args:
            paths: Cac thu muc goc can theo doi (recursive)
            sink: Noi nhan events tren event loop dang chay
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Dung theo doi."""
        ...

    @abstractmethod
    def is_running(self) -> bool:
        """Kiem tra watcher co dang chay khong."""
        ...

    @property
    @abstractmethod
    def watched_paths(self) -> Optional[Sequence[Path]]:
        """Cac duong dan dang duoc theo doi."""
        ...
