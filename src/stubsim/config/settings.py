"""Resolved runtime settings for the simulator."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from stubsim.modules.simulator.customization import PYTHON_SUFFIX
from stubsim.modules.simulator.forwarder import BUFFER_SIZE, READ_TIMEOUT, HeaderPropagation

from .getters import get_bool, get_config, get_float, get_int, get_proxy_url, get_root_path, get_uri_map

ENV_KEYS = (
    "STUBSIM_ROOT_PATH",
    "STUBSIM_HOST",
    "STUBSIM_PORT",
    "STUBSIM_PROXY_URL",
    "STUBSIM_READ_TIMEOUT",
    "STUBSIM_BUFFER_SIZE",
    "STUBSIM_HEADER_PROPAGATION",
    "STUBSIM_SCRIPT_SUFFIX",
    "STUBSIM_POST_HOOKS_ON_SHORT_CIRCUIT",
    "STUBSIM_VERBOSE",
)


@dataclass
class SimulatorSettings:
    """Everything the server needs, after all configuration sources are merged."""

    root_path: Path
    host: str = "127.0.0.1"
    port: int = 9100
    proxy_url: str | None = None
    uri_map: dict[str, str] = field(default_factory=dict)
    read_timeout: float = READ_TIMEOUT
    buffer_size: int = BUFFER_SIZE
    header_propagation: HeaderPropagation = HeaderPropagation.CONTENT_TYPE
    script_suffix: str = PYTHON_SUFFIX
    post_hooks_on_short_circuit: bool = True
    verbose: bool = False

    @property
    def forwarding_enabled(self) -> bool:
        return bool(self.proxy_url or self.uri_map)


def load_settings(project_dir: Path | None = None, **overrides: Any) -> SimulatorSettings:
    """Build settings from env, project .env and global config; ``overrides`` win when not None."""
    suffix = str(get_config("STUBSIM_SCRIPT_SUFFIX", project_dir, default=PYTHON_SUFFIX))
    if not suffix.startswith("."):
        suffix = f".{suffix}"

    propagation = str(
        get_config("STUBSIM_HEADER_PROPAGATION", project_dir, default=HeaderPropagation.CONTENT_TYPE.value)
    ).lower()
    try:
        header_propagation = HeaderPropagation(propagation)
    except ValueError as exc:
        choices = ", ".join(p.value for p in HeaderPropagation)
        raise ValueError(f"STUBSIM_HEADER_PROPAGATION must be one of {choices}") from exc

    settings = SimulatorSettings(
        root_path=get_root_path(project_dir),
        host=str(get_config("STUBSIM_HOST", project_dir, default="127.0.0.1")),
        port=get_int("STUBSIM_PORT", project_dir, default=9100),
        proxy_url=get_proxy_url(project_dir),
        uri_map=get_uri_map(),
        read_timeout=get_float("STUBSIM_READ_TIMEOUT", project_dir, default=READ_TIMEOUT),
        buffer_size=get_int("STUBSIM_BUFFER_SIZE", project_dir, default=BUFFER_SIZE),
        header_propagation=header_propagation,
        script_suffix=suffix,
        post_hooks_on_short_circuit=get_bool(
            "STUBSIM_POST_HOOKS_ON_SHORT_CIRCUIT", project_dir, default=True
        ),
        verbose=get_bool("STUBSIM_VERBOSE", project_dir),
    )
    changes = {key: value for key, value in overrides.items() if value is not None}
    if "root_path" in changes:
        changes["root_path"] = Path(changes["root_path"])
    if "header_propagation" in changes:
        changes["header_propagation"] = HeaderPropagation(changes["header_propagation"])
    return replace(settings, **changes)
