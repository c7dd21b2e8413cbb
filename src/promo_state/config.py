"""Configuration persistence: load and save core tuning settings."""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from promo_state.models import (
    CONFIG_APP_NAME,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_PAGE_SIZE,
    POPULAR_LIMIT,
    SEARCH_DEBOUNCE_DELAY,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract: _dict_to_config() guarantees valid output for any input:
#
#   Field                    Rule                    Fallback
#   ───────────────────────  ──────────────────────  ──────────────────
#   cache_ttl_seconds        finite, > 0             default
#   cache_max_entries        1 ≤ x ≤ 10_000          clamped
#   search_debounce_seconds  0 ≤ x ≤ 5               clamped
#   popular_limit, page_size 1 ≤ x ≤ 100             clamped
#   request_timeout_seconds  finite, > 0             default
#   max_retries              1 ≤ x ≤ 10              clamped
#   scalar strings           type-checked            _safe_get()
#
CONFIG_FILENAME = "config.json"
MAX_CACHE_ENTRIES_LIMIT = 10_000
MAX_DEBOUNCE_SECONDS = 5.0
MAX_PAGE_LIMIT = 100
MAX_RETRIES_LIMIT = 10
DEFAULT_REQUEST_TIMEOUT = 20.0
DEFAULT_MAX_RETRIES = 3


@dataclass(slots=True)
class CoreConfig:
    """Tuning knobs for caches, search, and the remote store."""

    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    search_debounce_seconds: float = SEARCH_DEBOUNCE_DELAY
    popular_limit: int = POPULAR_LIMIT
    page_size: int = DEFAULT_PAGE_SIZE
    api_base_url: str = ""
    api_key: str = ""
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    version: int = 1


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Uses platformdirs for cross-platform config directory:
    - Linux: ~/.config/promo-state/config.json
    - macOS: ~/Library/Application Support/promo-state/config.json
    - Windows: %APPDATA%/promo-state/config.json
    """
    return Path(user_config_dir(CONFIG_APP_NAME)) / CONFIG_FILENAME


def _config_to_dict(config: CoreConfig) -> dict[str, Any]:
    """Serialize CoreConfig to a JSON-compatible dictionary."""
    return {
        "version": config.version,
        "cache_ttl_seconds": config.cache_ttl_seconds,
        "cache_max_entries": config.cache_max_entries,
        "search_debounce_seconds": config.search_debounce_seconds,
        "popular_limit": config.popular_limit,
        "page_size": config.page_size,
        "api_base_url": config.api_base_url,
        "api_key": config.api_key,
        "request_timeout_seconds": config.request_timeout_seconds,
        "max_retries": config.max_retries,
    }


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type) or isinstance(value, bool) != isinstance(
        default, bool
    ):
        return default
    return value


def _coerce_int(value: Any, default: int, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return max(low, min(value, high))


def _coerce_positive_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return float(value)


def _coerce_debounce(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
        return SEARCH_DEBOUNCE_DELAY
    return max(0.0, min(float(value), MAX_DEBOUNCE_SECONDS))


def _dict_to_config(data: dict[str, Any]) -> CoreConfig:
    """Deserialize a dictionary to CoreConfig with type validation."""
    return CoreConfig(
        cache_ttl_seconds=_coerce_positive_float(
            data.get("cache_ttl_seconds"), DEFAULT_CACHE_TTL_SECONDS
        ),
        cache_max_entries=_coerce_int(
            data.get("cache_max_entries"),
            DEFAULT_CACHE_MAX_ENTRIES,
            1,
            MAX_CACHE_ENTRIES_LIMIT,
        ),
        search_debounce_seconds=_coerce_debounce(data.get("search_debounce_seconds")),
        popular_limit=_coerce_int(data.get("popular_limit"), POPULAR_LIMIT, 1, MAX_PAGE_LIMIT),
        page_size=_coerce_int(data.get("page_size"), DEFAULT_PAGE_SIZE, 1, MAX_PAGE_LIMIT),
        api_base_url=_safe_get(data, "api_base_url", "", str),
        api_key=_safe_get(data, "api_key", "", str),
        request_timeout_seconds=_coerce_positive_float(
            data.get("request_timeout_seconds"), DEFAULT_REQUEST_TIMEOUT
        ),
        max_retries=_coerce_int(
            data.get("max_retries"), DEFAULT_MAX_RETRIES, 1, MAX_RETRIES_LIMIT
        ),
        version=_safe_get(data, "version", 1, int),
    )


def load_config(path: Path | None = None) -> CoreConfig:
    """Load configuration from disk.

    Returns default config if file doesn't exist or is corrupted.
    Logs specific errors to help diagnose config issues.
    """
    config_path = path if path is not None else get_config_path()

    if not config_path.exists():
        return CoreConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
        return CoreConfig()
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return CoreConfig()

    if not isinstance(data, dict):
        logger.warning("Config root is %s, not an object; using defaults", type(data).__name__)
        return CoreConfig()
    return _dict_to_config(data)


def save_config(config: CoreConfig, path: Path | None = None) -> bool:
    """Save configuration to disk atomically.

    Uses write-to-tempfile + os.replace() to prevent partial writes
    on crash/interrupt from corrupting the config file.

    Creates the config directory if it doesn't exist.
    Returns True on success, False on failure.
    """
    config_path = path if path is not None else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        json_str = json.dumps(_config_to_dict(config), indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp", prefix=".config-")
        closed = False
        try:
            os.write(fd, json_str.encode("utf-8"))
            os.close(fd)
            closed = True
            os.replace(tmp_path, config_path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


__all__ = [
    "CONFIG_FILENAME",
    "CoreConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
