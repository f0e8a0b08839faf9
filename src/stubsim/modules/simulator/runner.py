"""Locate and run the customization unit for one pipeline point."""

import logging
from collections.abc import Callable
from pathlib import Path

from .context import SimulatorContext
from .customization import PYTHON_SUFFIX, CustomizationLoader
from .models import HookFailure, HookRole

logger = logging.getLogger(__name__)

GLOBAL_REQUEST_NAME = "GlobalRequest"
GLOBAL_RESPONSE_NAME = "GlobalResponse"
REQUEST_MARKER = "-Request"

FailureHandler = Callable[[HookFailure], None]


def local_unit_name(fixture: Path, suffix: str = PYTHON_SUFFIX) -> str | None:
    """Return the per-test unit name for a fixture, e.g. ``Login-Request.txt`` -> ``Login.py``."""
    name = fixture.name
    index = name.rfind(REQUEST_MARKER)
    if index <= 0:
        return None
    return name[:index] + suffix


class CustomizationRunner:
    """Run customization units and contain their failures.

    A missing unit is a no-op. A unit that raises is logged, reported to
    ``on_failure`` and otherwise ignored, so the request cycle carries on as
    if the unit did not exist.
    """

    def __init__(
        self,
        loader: CustomizationLoader | None = None,
        suffix: str = PYTHON_SUFFIX,
        on_failure: FailureHandler | None = None,
    ):
        self.loader = loader if loader is not None else CustomizationLoader()
        self.suffix = suffix
        self.on_failure = on_failure

    def locate(self, role: HookRole, context: SimulatorContext) -> Path | None:
        """Return where the unit for ``role`` would live, or None if not derivable."""
        if role is HookRole.GLOBAL_REQUEST:
            return Path(context.root_path) / f"{GLOBAL_REQUEST_NAME}{self.suffix}"
        if role is HookRole.GLOBAL_RESPONSE:
            return Path(context.root_path) / f"{GLOBAL_RESPONSE_NAME}{self.suffix}"

        outcome = context.resolved_response
        if outcome is None or outcome.matching_request is None:
            return None
        fixture = Path(outcome.matching_request)
        if len(fixture.parts) < 2:
            return None
        name = local_unit_name(fixture, self.suffix)
        if name is None:
            return None
        return fixture.parent.absolute() / name

    def apply(self, role: HookRole, context: SimulatorContext) -> HookFailure | None:
        """Run the unit for ``role`` if one exists; return the failure if it raised."""
        location: Path | None = None
        try:
            location = self.locate(role, context)
            if location is None:
                logger.debug("No %s unit derivable for this cycle", role.value)
                return None
            if not location.is_file():
                logger.debug("No %s unit at %s", role.value, location)
                return None

            logger.debug("Applying %s unit %s with keys %s", role.value, location, list(context))
            self.loader.load(location).apply(context)
            logger.debug("Applied %s unit %s, keys now %s", role.value, location, list(context))
            return None
        except Exception as exc:
            logger.error("Customization error in %s unit %s", role.value, location, exc_info=True)
            failure = HookFailure(
                role=role,
                location=str(location) if location is not None else "",
                error_type=type(exc).__name__,
                message=str(exc),
            )
            if self.on_failure is not None:
                self.on_failure(failure)
            return failure
