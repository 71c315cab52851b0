"""Settings storage for tool configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "SUPER_GSI_SETTINGS_PATH",
        Path.home() / ".config" / "super-gsi" / "settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_MIN_GSI_SIZE_BYTES = 1024 * 1024 * 1024
DEFAULT_SUPER_MARGIN_DIVISOR = 5  # total // 5 == 20% headroom
DEFAULT_METADATA_SIZE = 65536
DEFAULT_METADATA_SLOTS = 2
DEFAULT_OPTIONAL_PARTITIONS = ["vendor", "product", "odm", "system_ext"]
DEFAULT_INSTALL_HINT = "pkg install android-tools"

DEFAULT_SETTINGS: dict[str, Any] = {
    "min_gsi_size_bytes": DEFAULT_MIN_GSI_SIZE_BYTES,
    "super_margin_divisor": DEFAULT_SUPER_MARGIN_DIVISOR,
    "metadata_size": DEFAULT_METADATA_SIZE,
    "metadata_slots": DEFAULT_METADATA_SLOTS,
    "super_name": "super",
    "group_name": "main",
    "optional_partitions": list(DEFAULT_OPTIONAL_PARTITIONS),
    "sparse_output": True,
    "install_hint": DEFAULT_INSTALL_HINT,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def save_settings() -> None:
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_PATH.write_text(
        json.dumps(settings_store.values, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def set_setting(key: str, value: Any) -> None:
    settings_store.values[key] = value
    save_settings()


def get_int(key: str, default: int = 0) -> int:
    """Read an integer setting, falling back to ``default`` on bad values."""
    value = get_setting(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def get_bool(key: str, default: bool = False) -> bool:
    return bool(get_setting(key, default))


load_settings()
