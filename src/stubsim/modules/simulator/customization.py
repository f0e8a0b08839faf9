"""Customization units: small user scripts that read and write the context."""

from __future__ import annotations

import json
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .context import SimulatorContext
from .models import SimulatorResponse

PYTHON_SUFFIX = ".py"


class CustomizationError(Exception):
    """A customization unit failed to load or execute."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class Customization(ABC):
    """Executable unit bound to one file on disk."""

    def __init__(self, path: Path):
        self.path = path

    @abstractmethod
    def apply(self, context: SimulatorContext) -> None:
        """Run the unit against the context, mutating it in place."""


class PythonScriptCustomization(Customization):
    """Run a Python file in-process with the context bound to ``vars``."""

    def apply(self, context: SimulatorContext) -> None:
        try:
            source = self.path.read_text(encoding="utf-8")
            code = compile(source, str(self.path), "exec")
        except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as exc:
            raise CustomizationError(self.path, f"cannot load script: {exc}") from exc

        namespace: dict[str, Any] = {
            "__name__": "__stubsim_customization__",
            "__file__": str(self.path),
            "vars": context,
            "SimulatorResponse": SimulatorResponse,
        }
        try:
            exec(code, namespace)
        except (Exception, SystemExit) as exc:
            raise CustomizationError(self.path, f"{type(exc).__name__}: {exc}") from exc


class SubprocessCustomization(Customization):
    """Run an executable with the context as JSON on stdin.

    The process answers with a JSON object on stdout; each key in it is
    written back into the context. Empty output means "no changes".
    """

    def __init__(self, path: Path, timeout: float | None = None):
        super().__init__(path)
        self.timeout = timeout

    def apply(self, context: SimulatorContext) -> None:
        payload = json.dumps(_context_to_json(context), default=str)
        try:
            completed = subprocess.run(
                [str(self.path)],
                input=payload,
                capture_output=True,
                text=True,
                cwd=str(self.path.parent),
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CustomizationError(self.path, f"timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise CustomizationError(self.path, f"cannot execute: {exc}") from exc

        if completed.returncode != 0:
            stderr = completed.stderr.strip()
            raise CustomizationError(
                self.path, f"exited with status {completed.returncode}: {stderr[:200]}"
            )

        output = completed.stdout.strip()
        if not output:
            return
        try:
            updates = json.loads(output)
        except json.JSONDecodeError as exc:
            raise CustomizationError(self.path, f"invalid JSON output: {exc}") from exc
        if not isinstance(updates, dict):
            raise CustomizationError(self.path, "output must be a JSON object")

        try:
            for key, value in updates.items():
                context[key] = value
        except TypeError as exc:
            raise CustomizationError(self.path, str(exc)) from exc


def _context_to_json(context: SimulatorContext) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in context.items():
        if isinstance(value, SimulatorResponse):
            data[key] = value.to_dict()
        elif isinstance(value, Path):
            data[key] = str(value)
        else:
            data[key] = value
    return data


CustomizationFactory = Callable[[Path], Customization]


class CustomizationLoader:
    """Choose a :class:`Customization` implementation by file suffix."""

    def __init__(self, subprocess_timeout: float | None = None):
        self._factories: dict[str, CustomizationFactory] = {
            PYTHON_SUFFIX: PythonScriptCustomization,
        }
        self.subprocess_timeout = subprocess_timeout

    def register(self, suffix: str, factory: CustomizationFactory) -> None:
        """Use ``factory`` for units whose file name ends in ``suffix``."""
        self._factories[suffix.lower()] = factory

    def load(self, path: Path) -> Customization:
        factory = self._factories.get(path.suffix.lower())
        if factory is not None:
            return factory(path)
        return SubprocessCustomization(path, timeout=self.subprocess_timeout)
