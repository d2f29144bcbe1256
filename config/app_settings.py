"""
AppSettings - Typed settings dataclass cho LineSight.

Thay the Dict[str, Any] bang dataclass co type hints, validation va default values.
Tat ca settings duoc truy cap qua typed fields thay vi string keys.

Modules:
- AppSettings: Dataclass chua settings dang luu trong settings.json (raw, chua normalize)
- LineSightConfig: Cau hinh runtime da normalize, engine chi doc tu day
- to_positive_int(): Ep kieu so duong voi fallback va minimum
- normalize_folder_path() / normalize_extension(): Chuan hoa input cua user

Su dung:
    settings = load_app_settings()
    config = settings.to_config()
    if size > config.size_limit:
        ...
"""

import math
import re
import typing
from dataclasses import dataclass, field
from typing import Any, Optional

from core.constants.file_patterns import (
    DEFAULT_EXCLUDED_FOLDERS,
    DEFAULT_INCLUDED_EXTENSIONS,
    DEFAULT_INCLUDED_FILE_NAMES,
)


# === Default values cho numeric settings ===
DEFAULT_SIZE_LIMIT = 5_000_000  # bytes
DEFAULT_BATCH_SIZE = 200
DEFAULT_DEBOUNCE_DELAY_MS = 300
DEFAULT_INITIAL_SCAN_DELAY_MS = 2_000
DEFAULT_ESTIMATION_FACTOR = 50  # bytes trung binh moi dong
DEFAULT_CACHE_CAPACITY = 10_000
DEFAULT_MAX_CONCURRENT_READS = 20
DEFAULT_LIMITER_QUEUE_CAP = 500
DEFAULT_PENDING_UPDATES_CAP = 500
DEFAULT_WATCHER_QUEUE_CAP = 500
DEFAULT_READ_TIMEOUT_MS = 10_000
DEFAULT_DISCOVERY_LIMIT = 6_000

# Delay giua cac batch khi scan (khong expose cho user)
SCAN_BATCH_DELAY_MS = 60

# Debounce delay khong duoc nho hon gia tri nay
MIN_DEBOUNCE_DELAY_MS = 50

# Ky tu hop le trong folder path: alphanumeric, _, -, ., space, /
_SAFE_FOLDER_CHARS = re.compile(r"^[a-zA-Z0-9_\-. /]+$")
_EXTENSION_BODY = re.compile(r"^[a-z0-9_+-]+$", re.IGNORECASE)


def to_positive_int(value: Any, fallback: int, minimum: int = 1) -> int:
    """
    Ep mot gia tri bat ky thanh so nguyen duong.

    - Khong phai so (hoac la bool) -> fallback
    - NaN / inf -> fallback
    - Con lai: floor roi clamp ve minimum

    Args:
        value: Gia tri doc tu settings
        fallback: Gia tri mac dinh khi value khong hop le
        minimum: Gia tri nho nhat cho phep

    Returns:
        So nguyen >= minimum
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value):
        return fallback
    return max(minimum, math.floor(value))


def normalize_folder_path(folder: str) -> str:
    """
    Chuan hoa folder path: doi backslash thanh slash, bo slash dau/cuoi.

    Tra ve chuoi rong neu path chua ky tu glob hoac ky tu la
    (tranh user inject pattern vao exclude spec).
    """
    normalized = folder.replace("\\", "/").strip("/")
    if not normalized or not _SAFE_FOLDER_CHARS.match(normalized):
        return ""
    return normalized


def normalize_extension(ext: str) -> Optional[str]:
    """
    Chuan hoa extension ve dang lowercase co dau cham (vd: "PY" -> ".py").

    Returns:
        Extension da chuan hoa, hoac None neu khong hop le
    """
    trimmed = ext.strip().lower()
    if not trimmed or "/" in trimmed or "\\" in trimmed:
        return None
    if trimmed.startswith("."):
        return trimmed
    if _EXTENSION_BODY.match(trimmed):
        return f".{trimmed}"
    return None


@dataclass(frozen=True)
class LineSightConfig:
    """
    Cau hinh runtime da normalize.

    Duoc build mot lan tu AppSettings va build lai moi khi settings thay doi.
    Tat ca numeric fields deu la so nguyen duong hop le.
    """

    # Files lon hon nguong nay (bytes) dung estimation thay vi dem that
    size_limit: int = DEFAULT_SIZE_LIMIT
    # So files moi batch khi scan khoi tao
    batch_size: int = DEFAULT_BATCH_SIZE
    # Milliseconds cho truoc khi flush debounced events
    debounce_delay_ms: int = DEFAULT_DEBOUNCE_DELAY_MS
    # Milliseconds cho sau activate truoc khi bat dau scan
    initial_scan_delay_ms: int = DEFAULT_INITIAL_SCAN_DELAY_MS
    # So bytes trung binh moi dong, dung de uoc luong file lon
    estimation_factor: int = DEFAULT_ESTIMATION_FACTOR
    cache_capacity: int = DEFAULT_CACHE_CAPACITY
    max_concurrent_reads: int = DEFAULT_MAX_CONCURRENT_READS
    limiter_queue_cap: int = DEFAULT_LIMITER_QUEUE_CAP
    pending_updates_cap: int = DEFAULT_PENDING_UPDATES_CAP
    watcher_queue_cap: int = DEFAULT_WATCHER_QUEUE_CAP
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    discovery_limit: int = DEFAULT_DISCOVERY_LIMIT
    batch_delay_ms: int = SCAN_BATCH_DELAY_MS
    # Folder paths da normalize (khong co slash dau/cuoi)
    exclude_folders: tuple[str, ...] = DEFAULT_EXCLUDED_FOLDERS
    # Extensions duoc phep (lowercase, co dau cham)
    include_extensions: frozenset[str] = DEFAULT_INCLUDED_EXTENSIONS
    # Ten file khong co extension van duoc dem (lowercase)
    include_file_names: frozenset[str] = DEFAULT_INCLUDED_FILE_NAMES
    show_startup_notifications: bool = False


@dataclass
class AppSettings:
    """
    Typed settings cho LineSight.

    Moi field tuong ung voi mot key trong settings.json.
    Numeric fields giu nguyen gia tri user nhap (co the la float),
    to_config() moi la noi floor + clamp.
    """

    # --- Counting Settings ---
    size_limit: int = DEFAULT_SIZE_LIMIT
    estimation_factor: int = DEFAULT_ESTIMATION_FACTOR
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS

    # --- Scan Settings ---
    batch_size: int = DEFAULT_BATCH_SIZE
    initial_scan_delay_ms: int = DEFAULT_INITIAL_SCAN_DELAY_MS
    discovery_limit: int = DEFAULT_DISCOVERY_LIMIT

    # --- Debounce / Capacity Settings ---
    debounce_delay_ms: int = DEFAULT_DEBOUNCE_DELAY_MS
    cache_capacity: int = DEFAULT_CACHE_CAPACITY
    max_concurrent_reads: int = DEFAULT_MAX_CONCURRENT_READS
    limiter_queue_cap: int = DEFAULT_LIMITER_QUEUE_CAP
    pending_updates_cap: int = DEFAULT_PENDING_UPDATES_CAP
    watcher_queue_cap: int = DEFAULT_WATCHER_QUEUE_CAP

    # --- Filter Settings ---
    # Folders bo sung (cong them vao DEFAULT_EXCLUDED_FOLDERS)
    exclude_folders: list[str] = field(default_factory=list)
    # Neu khong rong, thay the hoan toan DEFAULT_INCLUDED_EXTENSIONS
    include_extensions: list[str] = field(default_factory=list)

    show_startup_notifications: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppSettings":
        """
        Tao AppSettings tu dict, chi lay cac keys trung voi field names.

        Bao gom type validation: neu value co type khong khop voi
        field declaration, se bo qua va dung default thay the.
        Int fields chap nhan ca float (to_config se floor sau).

        Args:
            data: Dict settings (thuong tu settings.json)

        Returns:
            AppSettings instance voi values tu dict, fallback ve defaults
        """
        field_types: dict[str, Any] = {
            f.name: f.type for f in cls.__dataclass_fields__.values()
        }

        filtered: dict[str, Any] = {}
        for key, value in data.items():
            if key not in field_types:
                continue

            expected_type = field_types[key]

            # Xu ly truong hop type annotation la string (forward ref)
            if isinstance(expected_type, str):
                type_map = {"str": str, "bool": bool, "int": int, "float": float}
                expected_type = type_map.get(expected_type, str)

            # Strict type check: reject bool when expecting int
            if expected_type is int:
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    continue
                filtered[key] = value
                continue

            origin = typing.get_origin(expected_type)
            check_type = origin if origin is not None else expected_type

            if isinstance(value, check_type):
                if check_type is list:
                    value = [item for item in value if isinstance(item, str)]
                filtered[key] = value

        return cls(**filtered)

    def to_dict(self) -> dict[str, Any]:
        """
        Chuyen doi AppSettings thanh dict de luu xuong file.

        Returns:
            Dict voi toan bo settings
        """
        return {
            "size_limit": self.size_limit,
            "estimation_factor": self.estimation_factor,
            "read_timeout_ms": self.read_timeout_ms,
            "batch_size": self.batch_size,
            "initial_scan_delay_ms": self.initial_scan_delay_ms,
            "discovery_limit": self.discovery_limit,
            "debounce_delay_ms": self.debounce_delay_ms,
            "cache_capacity": self.cache_capacity,
            "max_concurrent_reads": self.max_concurrent_reads,
            "limiter_queue_cap": self.limiter_queue_cap,
            "pending_updates_cap": self.pending_updates_cap,
            "watcher_queue_cap": self.watcher_queue_cap,
            "exclude_folders": list(self.exclude_folders),
            "include_extensions": list(self.include_extensions),
            "show_startup_notifications": self.show_startup_notifications,
        }

    def to_config(self) -> LineSightConfig:
        """
        Build LineSightConfig da normalize tu settings hien tai.

        - Excluded folders: defaults + user extras (additive, dedupe giu thu tu)
        - Included extensions: user list thay the defaults neu co it nhat
          mot extension hop le
        """
        excludes: list[str] = []
        for folder in (*DEFAULT_EXCLUDED_FOLDERS, *self.exclude_folders):
            normalized = normalize_folder_path(folder)
            if normalized and normalized not in excludes:
                excludes.append(normalized)

        extensions = {
            ext
            for ext in (normalize_extension(value) for value in self.include_extensions)
            if ext
        }

        return LineSightConfig(
            size_limit=to_positive_int(self.size_limit, DEFAULT_SIZE_LIMIT),
            batch_size=to_positive_int(self.batch_size, DEFAULT_BATCH_SIZE),
            debounce_delay_ms=to_positive_int(
                self.debounce_delay_ms,
                DEFAULT_DEBOUNCE_DELAY_MS,
                MIN_DEBOUNCE_DELAY_MS,
            ),
            initial_scan_delay_ms=to_positive_int(
                self.initial_scan_delay_ms, DEFAULT_INITIAL_SCAN_DELAY_MS, 0
            ),
            estimation_factor=to_positive_int(
                self.estimation_factor, DEFAULT_ESTIMATION_FACTOR
            ),
            cache_capacity=to_positive_int(self.cache_capacity, DEFAULT_CACHE_CAPACITY),
            max_concurrent_reads=to_positive_int(
                self.max_concurrent_reads, DEFAULT_MAX_CONCURRENT_READS
            ),
            limiter_queue_cap=to_positive_int(
                self.limiter_queue_cap, DEFAULT_LIMITER_QUEUE_CAP
            ),
            pending_updates_cap=to_positive_int(
                self.pending_updates_cap, DEFAULT_PENDING_UPDATES_CAP
            ),
            watcher_queue_cap=to_positive_int(
                self.watcher_queue_cap, DEFAULT_WATCHER_QUEUE_CAP
            ),
            read_timeout_ms=to_positive_int(
                self.read_timeout_ms, DEFAULT_READ_TIMEOUT_MS
            ),
            discovery_limit=to_positive_int(
                self.discovery_limit, DEFAULT_DISCOVERY_LIMIT
            ),
            exclude_folders=tuple(excludes),
            include_extensions=(
                frozenset(extensions) if extensions else DEFAULT_INCLUDED_EXTENSIONS
            ),
            show_startup_notifications=bool(self.show_startup_notifications),
        )
