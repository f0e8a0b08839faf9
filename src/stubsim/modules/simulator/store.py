"""In-memory log of simulated exchanges."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .models import HookFailure


@dataclass
class ExchangeEntry:
    """One request cycle as seen by the server."""

    id: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Request
    method: str = "GET"
    path: str = ""
    content_type: str = ""
    request_body: str = ""

    # Outcome
    status_code: int = 0
    matched_fixture: str = ""
    forwarded: bool = False
    short_circuited: bool = False
    response_time: float = 0.0
    failures: list[HookFailure] = field(default_factory=list)
    error: str = ""


class ExchangeStore:
    """Bounded in-memory store of exchanges, oldest evicted first."""

    def __init__(self, max_entries: int = 5000):
        self._entries: list[ExchangeEntry] = []
        self._next_id: int = 1
        self.max_entries = max_entries

    @property
    def entries(self) -> list[ExchangeEntry]:
        """Return a shallow copy of all entries."""
        return list(self._entries)

    def add(self, entry: ExchangeEntry) -> ExchangeEntry:
        """Store an entry and assign it an auto-incremented id."""
        entry.id = self._next_id
        self._next_id += 1
        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries :]
        return entry

    def get(self, entry_id: int) -> ExchangeEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def search(
        self,
        path_pattern: str = "",
        method: str = "",
        status_code: int | None = None,
        with_failures: bool = False,
    ) -> list[ExchangeEntry]:
        """Filter entries by one or more criteria."""
        results = self._entries
        if path_pattern:
            results = [e for e in results if path_pattern in e.path]
        if method:
            results = [e for e in results if e.method.upper() == method.upper()]
        if status_code is not None:
            results = [e for e in results if e.status_code == status_code]
        if with_failures:
            results = [e for e in results if e.failures]
        return results

    def clear(self) -> int:
        """Remove all entries.  Returns the count removed."""
        count = len(self._entries)
        self._entries.clear()
        self._next_id = 1
        return count

    def export(self) -> list[dict[str, Any]]:
        """Serialise entries to plain dicts (request bodies truncated to 500 chars)."""
        return [
            {
                "id": e.id,
                "timestamp": e.timestamp.isoformat(),
                "method": e.method,
                "path": e.path,
                "content_type": e.content_type,
                "request_body": e.request_body[:500],
                "status_code": e.status_code,
                "matched_fixture": e.matched_fixture,
                "forwarded": e.forwarded,
                "short_circuited": e.short_circuited,
                "response_time": e.response_time,
                "failures": [f.to_dict() for f in e.failures],
                "error": e.error,
            }
            for e in self._entries
        ]

    def write_json(self, path: Path) -> Path:
        """Write :meth:`export` output to ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.export(), indent=2))
        return path

    def __len__(self) -> int:
        return len(self._entries)
