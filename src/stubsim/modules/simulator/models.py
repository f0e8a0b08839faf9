"""Data models shared by the simulator pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .forwarder import ForwardedResponse


class HookRole(str, Enum):
    """Pipeline points at which a customization unit may run."""

    GLOBAL_REQUEST = "global-request"
    LOCAL_RESPONSE = "local-response"
    GLOBAL_RESPONSE = "global-response"


@dataclass
class SimulatorResponse:
    """Resolution outcome: a response payload and the fixture it came from."""

    body: str | bytes = ""
    matching_request: Path | None = None
    content_type: str = ""
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)

    # Live upstream response when the outcome was produced by the forwarder.
    upstream: ForwardedResponse | None = field(default=None, repr=False, compare=False)

    @property
    def forwarded(self) -> bool:
        return self.upstream is not None

    def body_bytes(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    def to_dict(self) -> dict[str, Any]:
        """Serialise to JSON-safe primitives (upstream streams are not included)."""
        body = self.body
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        return {
            "body": body,
            "matching_request": str(self.matching_request) if self.matching_request else None,
            "content_type": self.content_type,
            "status_code": self.status_code,
            "headers": dict(self.headers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimulatorResponse:
        matching = data.get("matching_request")
        return cls(
            body=data.get("body", ""),
            matching_request=Path(matching) if matching else None,
            content_type=data.get("content_type", ""),
            status_code=int(data.get("status_code", 200)),
            headers=dict(data.get("headers") or {}),
        )

    @classmethod
    def coerce(cls, value: Any, content_type: str = "") -> SimulatorResponse | None:
        """Turn a value written by a customization into an outcome.

        ``None`` stays absent, strings and bytes become a response body, and
        dicts are read with :meth:`from_dict`.
        """
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, (str, bytes)):
            return cls(body=value, content_type=content_type)
        if isinstance(value, dict):
            response = cls.from_dict(value)
            if not response.content_type:
                response.content_type = content_type
            return response
        raise TypeError(f"Cannot use {type(value).__name__} as a resolved response")


@dataclass
class HookFailure:
    """Structured record of a customization unit that failed and was skipped."""

    role: HookRole
    location: str
    error_type: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "location": self.location,
            "error_type": self.error_type,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
