"""
Application Paths - Centralized path definitions for LineSight

Module nay dinh nghia tat ca cac duong dan su dung trong ung dung.
Tap trung o mot noi de tranh hardcode rai rac va dam bao consistency.

App data duoc luu tai: ~/.linesight/
- logs/         : Log files
- settings.json : Cau hinh nguoi dung
"""

import os
from pathlib import Path


# =============================================================================
# Ten ung dung - Single source of truth cho naming
# =============================================================================
APP_NAME = "linesight"

# =============================================================================
# Thu muc goc cua ung dung
# =============================================================================
APP_DIR = Path.home() / f".{APP_NAME}"

# =============================================================================
# Cac thu muc con
# =============================================================================
LOG_DIR = APP_DIR / "logs"

# =============================================================================
# Cac file cau hinh
# =============================================================================
SETTINGS_FILE = APP_DIR / "settings.json"

# =============================================================================
# Environment Variables - Ten bien moi truong cho debug mode
# =============================================================================
DEBUG_ENV_VAR = "LINESIGHT_DEBUG"

# Kiem tra debug mode tu environment variable
DEBUG_MODE = os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes")


def ensure_app_directories() -> None:
    """
    Tao cac thu muc can thiet neu chua ton tai.
    Goi ham nay khi khoi dong ung dung.
    """
    APP_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
