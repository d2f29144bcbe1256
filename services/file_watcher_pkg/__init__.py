"""
File Watcher Package - watchdog -> event loop -> ChangeFunnel -> engine.

Export cac symbols chinh:
- FileWatcher (quan ly watchdog Observer)
- ChangeFunnel (debounced queue vao AnnotationEngine)
- FileChangeEvent (data class)
"""

from services.file_watcher_pkg.debouncer import ChangeFunnel
from services.file_watcher_pkg.ignore_strategies import (
    ConfigIgnoreStrategy,
    DefaultIgnoreStrategy,
)
from services.file_watcher_pkg.service import FileWatcher
from services.interfaces.file_watcher_service import FileChangeEvent

__all__ = [
    "ChangeFunnel",
    "ConfigIgnoreStrategy",
    "DefaultIgnoreStrategy",
    "FileWatcher",
    "FileChangeEvent",
]
