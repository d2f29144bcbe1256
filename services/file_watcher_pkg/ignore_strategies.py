"""
Ignore Strategies cho File Watcher.

Chua cac implementation cua IIgnoreStrategy:
- DefaultIgnoreStrategy: Bo qua cac thu muc trong DEFAULT_EXCLUDED_FOLDERS
- ConfigIgnoreStrategy: Bo qua exclude_folders cua LineSightConfig (pathspec)
"""

from pathlib import Path
from typing import FrozenSet

from config.app_settings import LineSightConfig
from core.constants.file_patterns import DEFAULT_EXCLUDED_FOLDERS
from core.file_filter import FileFilter
from services.interfaces.file_watcher_service import IIgnoreStrategy


class DefaultIgnoreStrategy(IIgnoreStrategy):
    """
    Ignore strategy mac dinh - bo qua cac thu muc pho bien.

    So sanh tung phan cua path voi ten cac thu muc mac dinh
    (.git, node_modules, __pycache__, ...). Folder nhieu cap
    (vd: "public/assets") khong duoc ho tro o day, dung ConfigIgnoreStrategy.
    """

    IGNORED_PATTERNS: FrozenSet[str] = frozenset(
        folder for folder in DEFAULT_EXCLUDED_FOLDERS if "/" not in folder
    )

    def should_ignore(self, path: str) -> bool:
        """
        Args:
            path: Duong dan tuyet doi can kiem tra

        Returns:
            True neu bat ky phan nao cua path nam trong IGNORED_PATTERNS
        """
        path_parts = Path(path).parts
        return any(part in self.IGNORED_PATTERNS for part in path_parts)


class ConfigIgnoreStrategy(IIgnoreStrategy):
    """
    Ignore strategy theo config - dung chung FileFilter voi engine.

    Chi loai tru theo folder (khong theo extension) de deleted events
    cua moi file van di qua duoc.
    """

    def __init__(self, file_filter: FileFilter):
        self._file_filter = file_filter

    @classmethod
    def from_config(cls, config: LineSightConfig) -> "ConfigIgnoreStrategy":
        return cls(FileFilter(config))

    def should_ignore(self, path: str) -> bool:
        return self._file_filter.is_excluded(path)
