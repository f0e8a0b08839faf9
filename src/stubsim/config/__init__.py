"""
Configuration management for stubsim.

Supports multiple configuration sources in order of priority:
1. Environment variables (highest priority)
2. Project .env file (.stubsim/.env)
3. Global config file (~/.stubsim/config.yml)
4. Default values (lowest priority)
"""

from .env_loader import (
    get_project_env_path,
    global_config_path,
    load_env_file,
    load_global_config,
    load_project_config,
)
from .getters import (
    get_bool,
    get_config,
    get_float,
    get_int,
    get_proxy_url,
    get_root_path,
    get_uri_map,
)
from .settings import ENV_KEYS, SimulatorSettings, load_settings

__all__ = [
    # env_loader
    "get_project_env_path",
    "global_config_path",
    "load_env_file",
    "load_global_config",
    "load_project_config",
    # getters
    "get_bool",
    "get_config",
    "get_float",
    "get_int",
    "get_proxy_url",
    "get_root_path",
    "get_uri_map",
    # settings
    "ENV_KEYS",
    "SimulatorSettings",
    "load_settings",
]
