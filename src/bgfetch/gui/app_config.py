# src/bgfetch/gui/app_config.py
"""
App-wide config persistence for bgfetch (platformdirs + JSON).

Persisted items (schema v1):
- offset: int                       (first item index to fetch)
- count: int                        (number of items to fetch)
- page_size: int                    (items per fetch call)
- latency_s: float                  (simulated latency of each fetch call)
- poll_interval_s: float            (how often the UI drains the worker queue)

Behavior:
- If config file missing or unreadable -> defaults are used
- If schema_version mismatches:
  - default: reset to defaults
  - optional: keep loaded but update version
- Optional "create_if_missing" flag to write defaults on first run

Design:
- AppConfigData dataclass holds JSON-friendly data (dot access)
- AppConfig manager provides explicit API for load/save and common operations
- Field metadata (min/max) drives validation in set_attribute()
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

from bgfetch.core.fetch_range import FetchRange
from bgfetch.core.utils.logging import get_logger
from bgfetch.core.web_service import DEFAULT_LATENCY_S, FetchFn, make_fetcher

logger = get_logger(__name__)

# Increment when you make a breaking change to the on-disk JSON schema.
SCHEMA_VERSION: int = 1

DEFAULT_OFFSET: int = 100
DEFAULT_COUNT: int = 500
DEFAULT_PAGE_SIZE: int = 100
DEFAULT_POLL_INTERVAL_S: float = 0.05


@dataclass
class AppConfigData:
    """JSON-serializable config payload."""

    schema_version: int = SCHEMA_VERSION

    offset: int = field(
        default=DEFAULT_OFFSET,
        metadata={"label": "Offset", "min": 0},
    )

    count: int = field(
        default=DEFAULT_COUNT,
        metadata={"label": "Item Count", "min": 1},
    )

    page_size: int = field(
        default=DEFAULT_PAGE_SIZE,
        metadata={"label": "Page Size", "min": 1},
    )

    latency_s: float = field(
        default=DEFAULT_LATENCY_S,
        metadata={"label": "Fetch Latency (s)", "min": 0.0, "max": 60.0},
    )

    poll_interval_s: float = field(
        default=DEFAULT_POLL_INTERVAL_S,
        metadata={"label": "UI Poll Interval (s)", "min": 0.01, "max": 1.0},
    )

    def to_json_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_json_dict(cls, d: Dict[str, Any]) -> "AppConfigData":
        """
        Tolerant loader:
        - ignores unknown keys
        - tolerates missing or out-of-range values (falls back to defaults)
        """
        defaults = cls()
        kwargs: Dict[str, Any] = {"schema_version": int(d.get("schema_version", -1))}

        for f in fields(cls):
            if f.name == "schema_version":
                continue
            default_value = getattr(defaults, f.name)
            raw = d.get(f.name, default_value)
            try:
                value = type(default_value)(raw)
            except (TypeError, ValueError):
                logger.warning(f"Invalid {f.name} {raw!r}, using default {default_value!r}")
                value = default_value
            if not _in_bounds(value, f.metadata):
                logger.warning(f"Out of range {f.name} {value!r}, using default {default_value!r}")
                value = default_value
            kwargs[f.name] = value

        return cls(**kwargs)


def _in_bounds(value: Any, metadata: Any) -> bool:
    min_val = metadata.get("min")
    max_val = metadata.get("max")
    if min_val is not None and value < min_val:
        return False
    if max_val is not None and value > max_val:
        return False
    return True


class AppConfig:
    """
    Manager for loading/saving AppConfigData to disk.
    """

    def __init__(self, *, path: Path, data: Optional[AppConfigData] = None):
        self.path = path
        self.data = data if data is not None else AppConfigData()

    # -----------------------------
    # Construction / persistence
    # -----------------------------
    @staticmethod
    def default_config_path(
        app_name: str = "bgfetch",
        filename: str = "app_config.json",
        app_author: str | None = None,
    ) -> Path:
        """
        Determine OS-appropriate per-user config path.

        macOS:   ~/Library/Application Support/bgfetch/app_config.json
        Linux:   ~/.config/bgfetch/app_config.json
        Windows: %APPDATA%\\bgfetch\\app_config.json
        """
        d = Path(user_config_dir(app_name, app_author))
        d.mkdir(parents=True, exist_ok=True)
        return d / filename

    @classmethod
    def load(
        cls,
        *,
        config_path: Optional[Path] = None,
        app_name: str = "bgfetch",
        filename: str = "app_config.json",
        app_author: str | None = None,
        schema_version: int = SCHEMA_VERSION,
        reset_on_version_mismatch: bool = True,
        create_if_missing: bool = False,
    ) -> "AppConfig":
        """
        Load config from disk.

        If file doesn't exist or is unreadable -> defaults.
        If schema mismatch:
          - reset_on_version_mismatch=True -> defaults
          - else -> keep loaded but overwrite schema_version

        If create_if_missing=True and file is missing -> immediately write defaults.
        """
        path = config_path or cls.default_config_path(app_name=app_name, filename=filename, app_author=app_author)
        default_data = AppConfigData(schema_version=schema_version)

        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(parsed, dict):
                logger.warning(f"App config file at {path} does not contain a dict, using defaults")
                return cls(path=path, data=default_data)

            loaded = AppConfigData.from_json_dict(parsed)

            if int(loaded.schema_version) != int(schema_version):
                if reset_on_version_mismatch:
                    logger.warning(
                        f"App config schema version mismatch: loaded={loaded.schema_version}, "
                        f"expected={schema_version}, resetting to defaults"
                    )
                    return cls(path=path, data=default_data)
                loaded.schema_version = int(schema_version)

            return cls(path=path, data=loaded)

        except FileNotFoundError:
            logger.info(f"App config file not found at {path}, using defaults")
            cfg = cls(path=path, data=default_data)
            if create_if_missing:
                cfg.save()
            return cfg
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load app config from {path}: {e}", exc_info=True)
            logger.info("Using default app config")
            return cls(path=path, data=default_data)

    def save(self) -> None:
        """Write config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = self.data.to_json_dict()
        logger.info(f"saving app_config to {self.path}")
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def ensure_exists(self) -> None:
        """Create the config file on disk if it doesn't exist (writes current data)."""
        if not self.path.exists():
            self.save()

    # -----------------------------
    # Public API: attribute access
    # -----------------------------
    def get_attribute(self, key: str) -> Any:
        """
        Get attribute value by key.

        Raises:
            AttributeError: If key doesn't exist
        """
        if not hasattr(self.data, key):
            raise AttributeError(f"AppConfigData has no attribute '{key}'")
        return getattr(self.data, key)

    def set_attribute(self, key: str, value: Any) -> None:
        """
        Set attribute value by key with validation.

        Raises:
            AttributeError: If key doesn't exist
            ValueError: If value is invalid for the attribute
        """
        field_info = None
        for f in fields(self.data):
            if f.name == key:
                field_info = f
                break

        if field_info is None:
            raise AttributeError(f"AppConfigData has no attribute '{key}'")

        current_value = getattr(self.data, key)
        if not isinstance(value, type(current_value)) or isinstance(value, bool):
            try:
                value = type(current_value)(value)
            except (ValueError, TypeError) as e:
                raise ValueError(f"Invalid value type for '{key}': {e}")

        metadata = field_info.metadata
        min_val = metadata.get("min")
        max_val = metadata.get("max")
        if min_val is not None and value < min_val:
            raise ValueError(f"Value '{value}' is less than minimum '{min_val}'")
        if max_val is not None and value > max_val:
            raise ValueError(f"Value '{value}' is greater than maximum '{max_val}'")

        setattr(self.data, key, value)
        logger.debug(f"Set app_config.{key} = {value}")

    def get_field_metadata(self, key: str) -> Dict[str, Any]:
        """
        Get metadata for a field (label, min, max).

        Raises:
            AttributeError: If key doesn't exist
        """
        for f in fields(self.data):
            if f.name == key:
                return dict(f.metadata)
        raise AttributeError(f"AppConfigData has no attribute '{key}'")

    # -----------------------------
    # Public API: fetch settings
    # -----------------------------
    def fetch_range(self) -> FetchRange:
        """Build the FetchRange described by this config."""
        return FetchRange(
            offset=self.data.offset,
            count=self.data.count,
            page_size=self.data.page_size,
        )

    def fetcher(self) -> FetchFn:
        """Build a fetch function using the configured latency."""
        return make_fetcher(self.data.latency_s)
