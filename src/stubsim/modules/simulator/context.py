"""Per-request shared context passed by reference through one cycle."""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from pathlib import Path
from typing import Any

from .models import SimulatorResponse

ROOT_PATH = "root-path"
ROOT_RELATIVE_PATH = "root-relative-path"
REQUEST = "request"
CONTENT_TYPE = "content-type"
RESOLVED_RESPONSE = "resolved-response"

KNOWN_KEYS = (ROOT_PATH, ROOT_RELATIVE_PATH, REQUEST, CONTENT_TYPE, RESOLVED_RESPONSE)


class SimulatorContext(MutableMapping[str, Any]):
    """Ordered key/value bag with typed accessors for the well-known keys.

    Customizations see it as a plain mapping (``vars["request"]``); pipeline
    code uses the attributes. Both views share the same storage, so a write
    through either one is visible to every later step of the cycle. Keys are
    never removed.
    """

    def __init__(
        self,
        root_path: Path | str,
        root_relative_path: str,
        request: str,
        content_type: str,
    ):
        self._data: dict[str, Any] = {}
        self[ROOT_PATH] = root_path
        self[ROOT_RELATIVE_PATH] = root_relative_path
        self[REQUEST] = request
        self[CONTENT_TYPE] = content_type

    # Mapping protocol

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if key == ROOT_PATH and value is not None:
            value = Path(value)
        elif key == RESOLVED_RESPONSE:
            value = SimulatorResponse.coerce(value, self._data.get(CONTENT_TYPE, ""))
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        raise TypeError(f"Context keys cannot be removed during a cycle: {key!r}")

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"SimulatorContext({self._data!r})"

    # Typed accessors

    @property
    def root_path(self) -> Path:
        return self._data[ROOT_PATH]

    @root_path.setter
    def root_path(self, value: Path | str) -> None:
        self[ROOT_PATH] = value

    @property
    def root_relative_path(self) -> str:
        return self._data[ROOT_RELATIVE_PATH]

    @root_relative_path.setter
    def root_relative_path(self, value: str) -> None:
        self[ROOT_RELATIVE_PATH] = value

    @property
    def request(self) -> str:
        return self._data[REQUEST]

    @request.setter
    def request(self, value: str) -> None:
        self[REQUEST] = value

    @property
    def content_type(self) -> str:
        return self._data[CONTENT_TYPE]

    @content_type.setter
    def content_type(self, value: str) -> None:
        self[CONTENT_TYPE] = value

    @property
    def resolved_response(self) -> SimulatorResponse | None:
        return self._data.get(RESOLVED_RESPONSE)

    @resolved_response.setter
    def resolved_response(self, value: SimulatorResponse | None) -> None:
        self[RESOLVED_RESPONSE] = value

    @property
    def extras(self) -> dict[str, Any]:
        """User-defined keys in insertion order (a copy)."""
        return {k: v for k, v in self._data.items() if k not in KNOWN_KEYS}
