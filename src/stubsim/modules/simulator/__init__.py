"""Simulator module -- fixture resolution, customization hooks, and forwarding."""

from .context import SimulatorContext
from .customization import (
    Customization,
    CustomizationError,
    CustomizationLoader,
    PythonScriptCustomization,
    SubprocessCustomization,
)
from .forwarder import ForwardedResponse, Forwarder, HeaderPropagation
from .models import HookFailure, HookRole, SimulatorResponse
from .pipeline import CycleResult, InterceptionPipeline
from .resolver import FixtureError, FixtureResolver
from .runner import CustomizationRunner
from .server import SimulatorServer
from .store import ExchangeEntry, ExchangeStore
from .uri_mapper import URIMapper

__all__ = [
    "Customization",
    "CustomizationError",
    "CustomizationLoader",
    "CustomizationRunner",
    "CycleResult",
    "ExchangeEntry",
    "ExchangeStore",
    "FixtureError",
    "FixtureResolver",
    "ForwardedResponse",
    "Forwarder",
    "HeaderPropagation",
    "HookFailure",
    "HookRole",
    "InterceptionPipeline",
    "PythonScriptCustomization",
    "SimulatorContext",
    "SimulatorResponse",
    "SimulatorServer",
    "SubprocessCustomization",
    "URIMapper",
]
