"""
Config Package - Chua cac constants va cau hinh cua ung dung

Bao gom:
- app_settings: AppSettings (luu tru) va LineSightConfig (runtime)
- paths: Duong dan app data, log, settings
"""

from config.app_settings import (
    AppSettings,
    LineSightConfig,
    to_positive_int,
    normalize_extension,
    normalize_folder_path,
)

__all__ = [
    "AppSettings",
    "LineSightConfig",
    "to_positive_int",
    "normalize_extension",
    "normalize_folder_path",
]
