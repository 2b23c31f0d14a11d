"""Configuration management for moneymate."""

import json
import os
from pathlib import Path
from typing import Any

# Default config filename
CONFIG_FILENAME = "config.json"

# Environment variables that override the config file
ENV_BACKEND_URL = "MONEYMATE_URL"
ENV_API_KEY = "MONEYMATE_API_KEY"
ENV_USER_ID = "MONEYMATE_USER_ID"


def get_config_dir() -> Path:
    """Get the config directory path (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / "moneymate"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_config_dir() / CONFIG_FILENAME


def find_config_file() -> Path | None:
    """Find the config file in standard locations.

    Searches for config in the following order:
    1. config.json in current directory
    2. XDG config: ~/.config/moneymate/config.json
    """
    config_paths = [
        Path(CONFIG_FILENAME),
        get_config_path(),
    ]

    for path in config_paths:
        if path.exists():
            return path

    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(config_path) as f:
        return json.load(f)  # type: ignore[no-any-return]


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Save configuration to a JSON file.

    Args:
        config: Configuration dictionary to save
        config_path: Path to save to (defaults to XDG config location)

    Returns:
        Path where config was saved
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
        f.write("\n")

    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load configuration from config file.

    Args:
        config_path: Explicit path to config.json file

    Returns:
        Loaded config dict or None if not found
    """
    if config_path:
        return load_json_config(config_path)

    config_file = find_config_file()
    if config_file:
        return load_json_config(config_file)

    return None


def config_exists() -> bool:
    """Check if any config file exists."""
    return find_config_file() is not None


def _lookup(
    config: dict[str, Any] | None,
    section: str | None,
    key: str,
    env_var: str,
    override: str | None,
) -> str | None:
    """Resolve a setting: explicit override, then environment, then config file."""
    if override:
        return override

    if env_value := os.getenv(env_var):
        return env_value

    if config:
        scope = config.get(section, {}) if section else config
        if value := scope.get(key):
            return str(value)

    return None


def get_backend_url(
    config: dict[str, Any] | None = None,
    override: str | None = None,
) -> str | None:
    """Get the backend REST endpoint URL."""
    return _lookup(config, "backend", "url", ENV_BACKEND_URL, override)


def get_api_key(
    config: dict[str, Any] | None = None,
    override: str | None = None,
) -> str | None:
    """Get the backend API key."""
    return _lookup(config, "backend", "api_key", ENV_API_KEY, override)


def get_user_id(
    config: dict[str, Any] | None = None,
    override: str | None = None,
) -> str | None:
    """Get the id of the user whose data is read and written.

    Args:
        config: Loaded JSON config
        override: Optional user id to use instead of env/config

    Returns:
        User id or None if not configured
    """
    return _lookup(config, None, "user_id", ENV_USER_ID, override)


def create_default_config() -> dict[str, Any]:
    """Create a default empty configuration."""
    return {
        "user_id": None,
        "backend": {
            "url": None,
            "api_key": None,
        },
    }
