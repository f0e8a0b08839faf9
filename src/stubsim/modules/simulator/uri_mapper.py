"""Map inbound request paths to upstream URLs for forwarding."""

import re
from collections.abc import Iterable, Mapping


class URIMapper:
    """Ordered regex rules from path to URL template, with an optional base URL.

    Templates may reference capture groups as ``$1`` or ``\\1``. The first
    matching rule wins; without a match the base URL (if any) is joined with
    the path.
    """

    def __init__(
        self,
        rules: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        base_url: str | None = None,
    ):
        items = rules.items() if isinstance(rules, Mapping) else rules
        self._rules: list[tuple[re.Pattern[str], str]] = [
            (re.compile(pattern), re.sub(r"\$(\d+)", r"\\\1", template))
            for pattern, template in items
        ]
        self.base_url = base_url.rstrip("/") if base_url else None

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def enabled(self) -> bool:
        return bool(self._rules) or self.base_url is not None

    def map(self, path: str, query: str = "") -> str | None:
        """Return the upstream URL for ``path``, or None when it is not forwarded."""
        url: str | None = None
        for pattern, template in self._rules:
            match = pattern.match(path)
            if match:
                url = match.expand(template)
                break
        if url is None and self.base_url is not None:
            url = f"{self.base_url}/{path.lstrip('/')}"
        if url is not None and query:
            url = f"{url}{'&' if '?' in url else '?'}{query}"
        return url
