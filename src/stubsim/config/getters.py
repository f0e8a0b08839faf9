"""Configuration getter functions."""

import os
from pathlib import Path
from typing import Any

from .env_loader import load_global_config, load_project_config

TRUE_VALUES = ("1", "true", "yes", "on")


def get_config(key: str, project_dir: Path | None = None, default: Any = None) -> Any:
    """
    Get configuration value with priority:
    1. Environment variable
    2. Project .env file
    3. Global config file
    4. Default value

    Args:
        key: Configuration key
        project_dir: Optional project directory
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    # 1. Check environment variable
    env_value = os.environ.get(key)
    if env_value:
        return env_value

    # 2. Check project .env file
    project_config = load_project_config(project_dir)
    if key in project_config:
        return project_config[key]

    # 3. Check global config
    global_config = load_global_config()
    if key in global_config:
        return global_config[key]

    # 4. Return default
    return default


def get_bool(key: str, project_dir: Path | None = None, default: bool = False) -> bool:
    """Read a boolean flag (1/true/yes/on)."""
    value = get_config(key, project_dir)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def get_float(key: str, project_dir: Path | None = None, default: float = 0.0) -> float:
    """Read a float, raising ValueError with the key name when malformed."""
    value = get_config(key, project_dir)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a number, got {value!r}") from exc


def get_int(key: str, project_dir: Path | None = None, default: int = 0) -> int:
    """Read an integer, raising ValueError with the key name when malformed."""
    value = get_config(key, project_dir)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer, got {value!r}") from exc


def get_root_path(project_dir: Path | None = None) -> Path:
    """Get the simulation root directory (default: ./simulator)."""
    base = project_dir or Path.cwd()
    return Path(get_config("STUBSIM_ROOT_PATH", project_dir, default=str(base / "simulator")))


def get_proxy_url(project_dir: Path | None = None) -> str | None:
    """Get the base URL unmatched requests are forwarded to."""
    return get_config("STUBSIM_PROXY_URL", project_dir) or None


def get_uri_map() -> dict[str, str]:
    """Get forwarding rules (regex -> URL template) from the global config."""
    rules = load_global_config().get("uri_map") or {}
    if not isinstance(rules, dict):
        raise ValueError("uri_map must be a mapping of pattern to URL template")
    return {str(k): str(v) for k, v in rules.items()}
