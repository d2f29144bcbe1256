"""
Settings Manager - Quan ly load/save settings cua LineSight.

File: ~/.linesight/settings.json

API:
    settings = load_app_settings()  # -> AppSettings
    save_app_settings(settings)
    update_app_setting(debounce_delay_ms=500)
    config = load_config()  # -> LineSightConfig da normalize
"""

import json
import threading
from typing import Any

from config.paths import SETTINGS_FILE
from config.app_settings import AppSettings, LineSightConfig
from core.logging_config import log_warning

# Thread-safe lock de tranh race condition khi save settings
_settings_lock = threading.Lock()


def _load_app_settings_unlocked() -> AppSettings:
    """
    Load settings tu file KHONG co lock.

    Chi duoc goi tu ben trong code da acquire _settings_lock,
    hoac tu load_app_settings() (read-only, khong can lock).

    Returns:
        AppSettings instance voi values tu file + defaults
    """
    try:
        if SETTINGS_FILE.exists():
            content = SETTINGS_FILE.read_text(encoding="utf-8")
            saved = json.loads(content)
            if isinstance(saved, dict):
                return AppSettings.from_dict(saved)
            log_warning(f"[Settings] Ignoring non-object settings in {SETTINGS_FILE}")
    except (OSError, json.JSONDecodeError) as e:
        log_warning(f"[Settings] Could not read {SETTINGS_FILE}: {e}")
    return AppSettings()


def _save_app_settings_unlocked(settings: AppSettings) -> bool:
    """
    Save AppSettings ra file KHONG co lock.

    Chi duoc goi tu ben trong code da acquire _settings_lock.
    Merge voi existing data de bao toan extra keys.

    Returns:
        True neu save thanh cong
    """
    try:
        existing_data: dict[str, Any] = {}
        try:
            if SETTINGS_FILE.exists():
                content = SETTINGS_FILE.read_text(encoding="utf-8")
                loaded = json.loads(content)
                if isinstance(loaded, dict):
                    existing_data = loaded
        except (OSError, json.JSONDecodeError):
            pass

        updated = {**existing_data, **settings.to_dict()}
        SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
        SETTINGS_FILE.write_text(json.dumps(updated, indent=2), encoding="utf-8")
        return True
    except OSError as e:
        log_warning(f"[Settings] Could not write {SETTINGS_FILE}: {e}")
        return False


def load_app_settings() -> AppSettings:
    """
    Load settings tu file va tra ve AppSettings typed instance.

    Read-only operation, khong can lock vi chi doc file.
    Neu file khong ton tai hoac loi, tra ve defaults.
    """
    return _load_app_settings_unlocked()


def load_config() -> LineSightConfig:
    """Load settings va normalize thanh LineSightConfig cho engine."""
    return load_app_settings().to_config()


def save_app_settings(settings: AppSettings) -> bool:
    """
    Save AppSettings ra file (thread-safe).

    Args:
        settings: AppSettings instance can luu

    Returns:
        True neu save thanh cong
    """
    with _settings_lock:
        return _save_app_settings_unlocked(settings)


def update_app_setting(**kwargs: Any) -> bool:
    """
    Update mot hoac nhieu settings fields cung luc (thread-safe, atomic).

    Toan bo read-modify-write duoc bao ve boi _settings_lock
    de tranh race condition khi 2 threads update dong thoi.

    Args:
        **kwargs: Field names va values can update (vd: batch_size=100)

    Returns:
        True neu save thanh cong

    Raises:
        TypeError: Neu key khong phai la AppSettings field
    """
    # Validate fields truoc khi acquire lock de fail-fast
    valid_fields = {f for f in AppSettings.__dataclass_fields__}
    for key in kwargs:
        if key not in valid_fields:
            raise TypeError(
                f"'{key}' is not a valid AppSettings field. "
                f"Valid fields: {sorted(valid_fields)}"
            )

    with _settings_lock:
        settings = _load_app_settings_unlocked()
        for key, value in kwargs.items():
            setattr(settings, key, value)
        return _save_app_settings_unlocked(settings)
