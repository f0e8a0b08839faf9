"""File-based fixture resolver.

A fixture is a pair of files ``<TestName>-Request.<ext>`` and
``<TestName>-Response.<ext>`` somewhere under ``<root>/<relative path>``.
The extension is chosen from the request content type. A request fixture
matches when its normalized text equals the normalized request, or when it
is a regular expression that fully matches the request; in the latter case
``${n}`` placeholders in the response are filled with the captured groups.
"""

import asyncio
import json
import logging
import re
from pathlib import Path

from .models import SimulatorResponse

logger = logging.getLogger(__name__)

REQUEST_SUFFIX = "-Request"
RESPONSE_SUFFIX = "-Response"

_XML_WHITESPACE = re.compile(r">\s+<")
_GROUP_PLACEHOLDER = re.compile(r"\$\{(\d+)\}")


class FixtureError(Exception):
    """The fixture tree is inconsistent (e.g. a request without a response)."""


def extension_for(content_type: str) -> str:
    """Map a content type to the fixture file extension."""
    media = (content_type or "").split(";", 1)[0].strip().lower()
    if media.endswith("json"):
        return "json"
    if media.endswith("xml"):
        return "xml"
    return "txt"


def normalize(text: str, extension: str) -> str:
    """Canonical form of a payload for literal comparison."""
    text = text.strip()
    if extension == "json":
        try:
            return json.dumps(json.loads(text), sort_keys=True, separators=(",", ":"))
        except ValueError:
            return re.sub(r"\s+", "", text)
    if extension == "xml":
        return _XML_WHITESPACE.sub("><", text)
    return text


def _substitute_groups(template: str, match: re.Match[str]) -> str:
    def replace(m: re.Match[str]) -> str:
        index = int(m.group(1))
        if index > (match.re.groups or 0):
            return m.group(0)
        return match.group(index) or ""

    return _GROUP_PLACEHOLDER.sub(replace, template)


class FixtureResolver:
    """Resolve requests against fixture files on disk."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def candidates(self, root_path: Path, root_relative_path: str, extension: str) -> list[Path]:
        """Return request fixture files in lookup order."""
        base = Path(root_path) / root_relative_path.strip("/")
        root, target = Path(root_path).resolve(), base.resolve()
        if target != root and root not in target.parents:
            logger.warning("Ignoring lookup outside the simulation root: %s", root_relative_path)
            return []
        if not base.is_dir():
            return []
        return sorted(base.rglob(f"*{REQUEST_SUFFIX}.{extension}"))

    def _read_text(self, path: Path) -> str:
        # Decoding bytes directly keeps CRLF line endings intact.
        return path.read_bytes().decode(self.encoding, errors="replace")

    def find(
        self,
        root_path: Path,
        root_relative_path: str,
        request: str,
        content_type: str,
    ) -> SimulatorResponse | None:
        """Return the response of the first matching fixture, or None."""
        extension = extension_for(content_type)
        wanted = normalize(request or "", extension)

        for candidate in self.candidates(root_path, root_relative_path, extension):
            pattern = normalize(self._read_text(candidate), extension)
            if pattern == wanted:
                return self._response_for(candidate, content_type, None)
            try:
                match = re.fullmatch(pattern, wanted, re.DOTALL)
            except re.error:
                continue
            if match:
                return self._response_for(candidate, content_type, match)

        logger.debug("No fixture under %s/%s matches request", root_path, root_relative_path)
        return None

    def _response_for(
        self,
        request_file: Path,
        content_type: str,
        match: re.Match[str] | None,
    ) -> SimulatorResponse:
        stem = request_file.name[: request_file.name.rfind(REQUEST_SUFFIX)]
        response_name = f"{stem}{RESPONSE_SUFFIX}{request_file.suffix}"
        response_file = request_file.with_name(response_name)
        if not response_file.is_file():
            raise FixtureError(f"No response fixture {response_file} for {request_file}")

        raw = response_file.read_bytes()
        body: str | bytes
        try:
            body = raw.decode(self.encoding)
        except UnicodeDecodeError:
            logger.debug("Serving %s as raw bytes", response_file)
            body = raw
        if match is not None and isinstance(body, str):
            body = _substitute_groups(body, match)
        logger.debug("Request matched fixture %s", request_file)
        return SimulatorResponse(
            body=body,
            matching_request=request_file,
            content_type=content_type,
        )

    async def __call__(
        self,
        root_path: Path,
        root_relative_path: str,
        request: str,
        content_type: str,
    ) -> SimulatorResponse | None:
        return await asyncio.to_thread(
            self.find, root_path, root_relative_path, request, content_type
        )
