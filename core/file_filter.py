"""
File Filter - Quyet dinh file nao duoc dem dong (eligibility predicate).

Mot file bi bo qua khi:
- Nam trong mot excluded folder (match bang pathspec gitwildmatch)
- Co binary extension
- Khong co extension va ten khong nam trong include_file_names
- Co extension nhung khong nam trong include_extensions

Tat ca functions nhan LineSightConfig tuong minh nen pure va de test.
"""

import os
from functools import lru_cache
from typing import Optional, Tuple

import pathspec

from config.app_settings import LineSightConfig, normalize_folder_path
from core.constants.file_patterns import BINARY_EXTENSIONS


@lru_cache(maxsize=32)
def _build_exclude_spec(folders: Tuple[str, ...]) -> Optional[pathspec.PathSpec]:
    """
    Tao PathSpec tu danh sach excluded folders (co cache theo tuple folders).

    Moi folder sinh 2 patterns: chinh folder do va moi thu ben trong,
    o bat ky do sau nao trong path.
    """
    patterns: list[str] = []
    for folder in folders:
        normalized = normalize_folder_path(folder)
        if not normalized:
            continue
        patterns.append(f"**/{normalized}")
        patterns.append(f"**/{normalized}/**")

    if not patterns:
        return None
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def build_exclude_spec(config: LineSightConfig) -> Optional[pathspec.PathSpec]:
    """PathSpec loai tru cac excluded folders, None neu khong co folder nao."""
    return _build_exclude_spec(tuple(config.exclude_folders))


def _to_match_path(file_path: str) -> str:
    """Chuan hoa path ve dang posix khong co drive / slash dau de match."""
    _, tail = os.path.splitdrive(file_path)
    return tail.replace("\\", "/").lstrip("/")


def is_in_excluded_folder(file_path: str, config: LineSightConfig) -> bool:
    """Kiem tra path co nam trong (hoac chinh la) mot excluded folder khong."""
    spec = build_exclude_spec(config)
    if spec is None:
        return False
    return spec.match_file(_to_match_path(file_path))


def should_skip_path(file_path: str, config: LineSightConfig) -> bool:
    """
    Tra ve True neu file KHONG nen duoc dem dong.

    Args:
        file_path: Duong dan file (absolute hoac relative)
        config: LineSightConfig hien tai

    Returns:
        True neu file bi bo qua
    """
    if is_in_excluded_folder(file_path, config):
        return True

    file_name = os.path.basename(file_path.replace("\\", "/")).lower()
    _, ext = os.path.splitext(file_name)

    if ext and ext in BINARY_EXTENSIONS:
        return True

    if not ext:
        return file_name not in config.include_file_names

    return ext not in config.include_extensions


class FileFilter:
    """
    Eligibility predicate gan voi mot LineSightConfig.

    Callable nen co the truyen thang vao engine/scanner:
        is_eligible = FileFilter(config)
        if is_eligible(path): ...
    """

    def __init__(self, config: LineSightConfig):
        self._config = config

    @property
    def config(self) -> LineSightConfig:
        return self._config

    def update_config(self, config: LineSightConfig) -> None:
        self._config = config

    def __call__(self, file_path: str) -> bool:
        return not should_skip_path(file_path, self._config)

    def is_excluded(self, file_path: str) -> bool:
        """True neu path nam trong excluded folder (dung cho watcher/enumeration)."""
        return is_in_excluded_folder(file_path, self._config)
