"""Interception pipeline around a single request/response cycle."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .context import SimulatorContext
from .models import HookFailure, HookRole, SimulatorResponse
from .runner import CustomizationRunner

logger = logging.getLogger(__name__)

Resolve = Callable[[Path, str, str, str], Awaitable[SimulatorResponse | None]]


@dataclass
class CycleResult:
    """Outcome of one cycle plus what happened along the way."""

    outcome: SimulatorResponse | None
    short_circuited: bool = False
    failures: list[HookFailure] = field(default_factory=list)
    extras: dict[str, Any] = field(default_factory=dict)


class InterceptionPipeline:
    """Run global-request, resolve, local-response and global-response in order.

    The context is the argument list of the resolve call: after the
    global-request unit the four known keys are read back from it, so a unit
    can rewrite the path, body or content type before matching. If that unit
    sets ``resolved-response`` the resolver and the local-response unit are
    skipped. Units run in a worker thread but the cycle does not advance
    until each one returns.
    """

    def __init__(
        self,
        resolve: Resolve,
        runner: CustomizationRunner | None = None,
        post_hooks_on_short_circuit: bool = True,
    ):
        self.resolve = resolve
        self.runner = runner if runner is not None else CustomizationRunner()
        self.post_hooks_on_short_circuit = post_hooks_on_short_circuit

    async def service(
        self,
        root_path: Path | str,
        root_relative_path: str,
        request: str,
        content_type: str,
        resolve: Resolve | None = None,
    ) -> SimulatorResponse | None:
        """Run one cycle and return the final resolved response."""
        result = await self.run(root_path, root_relative_path, request, content_type, resolve)
        return result.outcome

    async def run(
        self,
        root_path: Path | str,
        root_relative_path: str,
        request: str,
        content_type: str,
        resolve: Resolve | None = None,
    ) -> CycleResult:
        """Run one cycle; ``resolve`` overrides the pipeline default for this call."""
        resolve = resolve or self.resolve
        context = SimulatorContext(root_path, root_relative_path, request, content_type)
        logger.debug("Cycle started with %s", context)
        failures: list[HookFailure] = []

        await self._apply(HookRole.GLOBAL_REQUEST, context, failures)
        outcome = context.resolved_response
        if outcome is not None:
            logger.debug("Short-circuited by global request unit: %s", outcome)
            if self.post_hooks_on_short_circuit:
                await self._apply(HookRole.GLOBAL_RESPONSE, context, failures)
            return self._result(context, failures, short_circuited=True)

        outcome = await resolve(
            context.root_path,
            context.root_relative_path,
            context.request,
            context.content_type,
        )
        context.resolved_response = outcome

        if outcome is not None:
            await self._apply(HookRole.LOCAL_RESPONSE, context, failures)
        await self._apply(HookRole.GLOBAL_RESPONSE, context, failures)

        logger.debug("Returning %s", context.resolved_response)
        return self._result(context, failures)

    async def _apply(
        self,
        role: HookRole,
        context: SimulatorContext,
        failures: list[HookFailure],
    ) -> None:
        failure = await asyncio.to_thread(self.runner.apply, role, context)
        if failure is not None:
            failures.append(failure)

    @staticmethod
    def _result(
        context: SimulatorContext,
        failures: list[HookFailure],
        short_circuited: bool = False,
    ) -> CycleResult:
        return CycleResult(
            outcome=context.resolved_response,
            short_circuited=short_circuited,
            failures=failures,
            extras=context.extras,
        )
