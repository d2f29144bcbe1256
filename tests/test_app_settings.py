"""
Tests cho AppSettings dataclass, LineSightConfig va typed settings API.

Coverage:
- to_positive_int() voi gia tri khong hop le, float, minimum
- AppSettings.from_dict() voi day du fields, partial fields, extra keys, sai type
- AppSettings.to_dict() roundtrip
- to_config(): clamp, exclude folders additive, include extensions thay the
- load_app_settings() / save_app_settings() / update_app_setting()
"""

import json
import math
import pytest
from unittest.mock import patch

from config.app_settings import (
    AppSettings,
    LineSightConfig,
    normalize_extension,
    normalize_folder_path,
    to_positive_int,
)
from core.constants.file_patterns import (
    DEFAULT_EXCLUDED_FOLDERS,
    DEFAULT_INCLUDED_EXTENSIONS,
)


# ============================================================
# Helpers
# ============================================================


class TestToPositiveInt:
    """Test ep kieu so nguyen duong."""

    def test_valid_int(self):
        assert to_positive_int(42, 7) == 42

    def test_float_is_floored(self):
        assert to_positive_int(3.9, 7) == 3

    def test_clamped_to_minimum(self):
        assert to_positive_int(0, 7) == 1
        assert to_positive_int(-5, 7) == 1
        assert to_positive_int(10, 7, minimum=50) == 50

    def test_invalid_values_fall_back(self):
        """Test non-numeric, bool, NaN, inf -> fallback."""
        assert to_positive_int("100", 7) == 7
        assert to_positive_int(None, 7) == 7
        assert to_positive_int(True, 7) == 7
        assert to_positive_int(math.nan, 7) == 7
        assert to_positive_int(math.inf, 7) == 7


class TestNormalize:
    """Test chuan hoa folder va extension."""

    def test_folder_path(self):
        assert normalize_folder_path("/src\\generated/") == "src/generated"
        assert normalize_folder_path("node_modules") == "node_modules"

    def test_folder_path_rejects_glob(self):
        assert normalize_folder_path("**/secret") == ""
        assert normalize_folder_path("a[b]") == ""
        assert normalize_folder_path("///") == ""

    def test_extension(self):
        assert normalize_extension("PY") == ".py"
        assert normalize_extension(" .Ts ") == ".ts"
        assert normalize_extension("") is None
        assert normalize_extension("a/b") is None
        assert normalize_extension("*.py") is None


# ============================================================
# AppSettings dataclass tests
# ============================================================


class TestAppSettings:
    """Test AppSettings dataclass creation va methods."""

    def test_default_values(self):
        """Test AppSettings co default values dung."""
        settings = AppSettings()
        assert settings.size_limit == 5_000_000
        assert settings.batch_size == 200
        assert settings.debounce_delay_ms == 300
        assert settings.initial_scan_delay_ms == 2000
        assert settings.estimation_factor == 50
        assert settings.exclude_folders == []
        assert settings.show_startup_notifications is False

    def test_from_dict_full(self):
        """Test from_dict voi nhieu fields."""
        data = {
            "size_limit": 1000,
            "batch_size": 50,
            "debounce_delay_ms": 120,
            "exclude_folders": ["generated", "tmp"],
            "include_extensions": ["py", ".rs"],
            "show_startup_notifications": True,
        }
        settings = AppSettings.from_dict(data)
        assert settings.size_limit == 1000
        assert settings.batch_size == 50
        assert settings.debounce_delay_ms == 120
        assert settings.exclude_folders == ["generated", "tmp"]
        assert settings.include_extensions == ["py", ".rs"]
        assert settings.show_startup_notifications is True

    def test_from_dict_partial(self):
        """Test from_dict voi chi mot so fields - con lai la defaults."""
        settings = AppSettings.from_dict({"batch_size": 10})
        assert settings.batch_size == 10
        assert settings.size_limit == 5_000_000

    def test_from_dict_extra_keys_ignored(self):
        """Test from_dict bo qua cac keys khong phai AppSettings field."""
        data = {"batch_size": 10, "unknown_key": "x", "another_extra": 42}
        settings = AppSettings.from_dict(data)
        assert settings.batch_size == 10
        assert not hasattr(settings, "unknown_key")

    def test_from_dict_wrong_types_use_defaults(self):
        """Test value sai type bi bo qua."""
        data = {
            "batch_size": "fast",
            "size_limit": True,
            "exclude_folders": "node_modules",
            "show_startup_notifications": "yes",
        }
        settings = AppSettings.from_dict(data)
        assert settings.batch_size == 200
        assert settings.size_limit == 5_000_000
        assert settings.exclude_folders == []
        assert settings.show_startup_notifications is False

    def test_from_dict_float_kept_for_int_fields(self):
        """Test int fields chap nhan float, to_config moi floor."""
        settings = AppSettings.from_dict({"batch_size": 12.7})
        assert settings.batch_size == 12.7
        assert settings.to_config().batch_size == 12

    def test_from_dict_filters_non_string_list_items(self):
        settings = AppSettings.from_dict({"exclude_folders": ["ok", 3, None]})
        assert settings.exclude_folders == ["ok"]

    def test_from_dict_empty(self):
        """Test from_dict voi dict rong -> tat ca defaults."""
        assert AppSettings.from_dict({}).to_dict() == AppSettings().to_dict()

    def test_to_dict_roundtrip(self):
        """Test from_dict(to_dict()) cho ket qua giong nhau."""
        original = AppSettings(batch_size=42, exclude_folders=["gen"])
        restored = AppSettings.from_dict(original.to_dict())
        assert original.to_dict() == restored.to_dict()


class TestToConfig:
    """Test build LineSightConfig tu AppSettings."""

    def test_defaults(self):
        config = AppSettings().to_config()
        assert config == LineSightConfig()

    def test_numeric_clamping(self):
        """Test debounce toi thieu 50, initial scan delay cho phep 0."""
        config = AppSettings(
            debounce_delay_ms=10,
            initial_scan_delay_ms=-5,
            batch_size=0,
            estimation_factor=math.nan,
        ).to_config()
        assert config.debounce_delay_ms == 50
        assert config.initial_scan_delay_ms == 0
        assert config.batch_size == 1
        assert config.estimation_factor == 50

    def test_exclude_folders_are_additive(self):
        config = AppSettings(
            exclude_folders=["generated/", "node_modules", "**/bad"]
        ).to_config()
        assert config.exclude_folders[: len(DEFAULT_EXCLUDED_FOLDERS)] == tuple(
            DEFAULT_EXCLUDED_FOLDERS
        )
        assert "generated" in config.exclude_folders
        assert config.exclude_folders.count("node_modules") == 1
        assert "**/bad" not in config.exclude_folders

    def test_include_extensions_replace_defaults(self):
        config = AppSettings(include_extensions=["PY", "rs"]).to_config()
        assert config.include_extensions == frozenset({".py", ".rs"})

    def test_invalid_include_extensions_keep_defaults(self):
        config = AppSettings(include_extensions=["*", "a/b"]).to_config()
        assert config.include_extensions == DEFAULT_INCLUDED_EXTENSIONS


# ============================================================
# Typed settings manager API tests
# ============================================================


class TestTypedSettingsManager:
    """Test load_app_settings, save_app_settings, update_app_setting."""

    def test_load_app_settings_no_file(self, tmp_path):
        """Test load khi file chua ton tai -> defaults."""
        from services.settings_manager import load_app_settings

        fake_file = tmp_path / "nonexistent.json"
        with patch("services.settings_manager.SETTINGS_FILE", fake_file):
            settings = load_app_settings()
            assert isinstance(settings, AppSettings)
            assert settings.batch_size == 200

    def test_load_app_settings_with_file(self, tmp_path):
        """Test load tu existing file."""
        from services.settings_manager import load_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text(
            json.dumps({"batch_size": 25, "exclude_folders": ["gen"]})
        )
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            settings = load_app_settings()
            assert settings.batch_size == 25
            assert settings.exclude_folders == ["gen"]
            assert settings.size_limit == 5_000_000

    def test_load_app_settings_invalid_json(self, tmp_path):
        """Test load khi file corrupt -> defaults."""
        from services.settings_manager import load_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text("not json {{{")
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert load_app_settings().to_dict() == AppSettings().to_dict()

    def test_load_app_settings_non_object(self, tmp_path):
        """Test file JSON khong phai object -> defaults."""
        from services.settings_manager import load_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text("[1, 2, 3]")
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert load_app_settings().batch_size == 200

    def test_load_config(self, tmp_path):
        """Test load_config tra ve LineSightConfig da normalize."""
        from services.settings_manager import load_config

        settings_file = tmp_path / "settings.json"
        settings_file.write_text(json.dumps({"debounce_delay_ms": 1}))
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert load_config().debounce_delay_ms == 50

    def test_save_app_settings(self, tmp_path):
        """Test save -> load roundtrip."""
        from services.settings_manager import load_app_settings, save_app_settings

        settings_file = tmp_path / "nested" / "settings.json"
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert save_app_settings(AppSettings(batch_size=33)) is True
            assert load_app_settings().batch_size == 33

    def test_save_preserves_extra_keys(self, tmp_path):
        """Test save bao toan extra keys trong file."""
        from services.settings_manager import save_app_settings

        settings_file = tmp_path / "settings.json"
        settings_file.write_text(json.dumps({"custom_key": "custom_value"}))
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert save_app_settings(AppSettings()) is True
            saved = json.loads(settings_file.read_text())
            assert saved["custom_key"] == "custom_value"
            assert saved["batch_size"] == 200

    def test_update_app_setting_multiple(self, tmp_path):
        """Test update nhieu fields cung luc."""
        from services.settings_manager import load_app_settings, update_app_setting

        settings_file = tmp_path / "settings.json"
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            assert update_app_setting(batch_size=7, debounce_delay_ms=80) is True
            settings = load_app_settings()
            assert settings.batch_size == 7
            assert settings.debounce_delay_ms == 80

    def test_update_app_setting_invalid_field(self, tmp_path):
        """Test update voi field khong ton tai -> TypeError."""
        from services.settings_manager import update_app_setting

        settings_file = tmp_path / "settings.json"
        with patch("services.settings_manager.SETTINGS_FILE", settings_file):
            with pytest.raises(TypeError, match="not a valid AppSettings field"):
                update_app_setting(invalid_field="value")
