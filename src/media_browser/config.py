"""Configuration persistence: client settings and controller state paths."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from media_browser.models import CONFIG_APP_NAME
from media_browser.store import JsonFileStore, write_json_atomic

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
STATE_FILENAME = "state.json"

DEFAULT_ENDPOINT = "http://localhost:8000/graphql"
DEFAULT_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 300
DEFAULT_USER_AGENT = "media-browser/1.0"


@dataclass(slots=True)
class ClientSettings:
    """How to reach the tracker's GraphQL API."""

    endpoint: str = DEFAULT_ENDPOINT
    auth_token: str = ""  # Forwarded as a bearer token when set
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        """Clamp timeout_seconds to a usable range."""
        self.timeout_seconds = _coerce_timeout(self.timeout_seconds)


def get_config_dir() -> Path:
    """Get the configuration directory.

    Uses platformdirs for a cross-platform location:
    - Linux: ~/.config/media-browser/
    - macOS: ~/Library/Application Support/media-browser/
    - Windows: %APPDATA%/media-browser/
    """
    return Path(user_config_dir(CONFIG_APP_NAME))


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILENAME


def get_state_path() -> Path:
    return get_config_dir() / STATE_FILENAME


def open_state_store() -> JsonFileStore:
    """Open the on-disk store holding the persisted controller state."""
    return JsonFileStore(get_state_path())


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _coerce_timeout(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return DEFAULT_TIMEOUT_SECONDS
    return max(1, min(value, MAX_TIMEOUT_SECONDS))


def _settings_to_dict(settings: ClientSettings) -> dict[str, Any]:
    return {
        "endpoint": settings.endpoint,
        "auth_token": settings.auth_token,
        "timeout_seconds": _coerce_timeout(settings.timeout_seconds),
        "user_agent": settings.user_agent,
    }


def _dict_to_settings(data: dict[str, Any]) -> ClientSettings:
    """Deserialize a dictionary to ClientSettings with type validation."""
    endpoint = _safe_get(data, "endpoint", DEFAULT_ENDPOINT, str).strip()
    return ClientSettings(
        endpoint=endpoint or DEFAULT_ENDPOINT,
        auth_token=_safe_get(data, "auth_token", "", str),
        timeout_seconds=_coerce_timeout(data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
        user_agent=_safe_get(data, "user_agent", DEFAULT_USER_AGENT, str) or DEFAULT_USER_AGENT,
    )


def load_settings() -> ClientSettings:
    """Load client settings from disk.

    Returns defaults if the file doesn't exist or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return ClientSettings()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
        return ClientSettings()
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return ClientSettings()

    if not isinstance(data, dict):
        logger.warning("Config file has invalid structure, using defaults")
        return ClientSettings()
    return _dict_to_settings(data)


def save_settings(settings: ClientSettings) -> bool:
    """Save client settings to disk atomically. Returns True on success."""
    try:
        write_json_atomic(get_config_path(), _settings_to_dict(settings), prefix=".config-")
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


__all__ = [
    "CONFIG_FILENAME",
    "STATE_FILENAME",
    "ClientSettings",
    "get_config_dir",
    "get_config_path",
    "get_state_path",
    "load_settings",
    "open_state_store",
    "save_settings",
]
