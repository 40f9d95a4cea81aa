"""Capability interfaces for the components a health policy delegates to.

Each component variant declares which capabilities it implements through its
``capabilities`` class attribute. Calling a capability that was not provided
raises ``UnsupportedOperationError`` instead of returning an empty result, so
callers can tell "not provided" apart from "provided but found nothing".
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import ClassVar, NoReturn

from healthloop.core.models import Action, Diagnosis, Measurement, Symptom

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    SENSE = "sense"
    MEASUREMENT_TYPES = "measurement_types"
    DETECT = "detect"
    SYMPTOM_TYPES = "symptom_types"
    DIAGNOSE = "diagnose"
    DIAGNOSIS_TYPES = "diagnosis_types"
    RESOLVE = "resolve"
    ACTION_NAMES = "action_names"


class UnsupportedOperationError(NotImplementedError):
    """Raised when a component is asked for a capability it does not implement."""

    def __init__(self, component: str, capability: Capability) -> None:
        self.component = component
        self.capability = capability
        super().__init__(f"{component} does not support '{capability.value}'")


def require(component: Component, capability: Capability) -> None:
    """Raise UnsupportedOperationError unless ``component`` declares ``capability``."""
    if not component.supports(capability):
        raise UnsupportedOperationError(component.name, capability)


# ── Base component ───────────────────────────────────────────────────────────


class Component:
    """Common lifecycle for sensors, detectors, diagnosers and resolvers."""

    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    @property
    def name(self) -> str:
        return type(self).__name__

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def initialize(self) -> None:
        """Invoked once before the component is first used."""

    def close(self) -> None:
        """Release acquired resources before the component is discarded."""

    def _unsupported(self, capability: Capability) -> NoReturn:
        raise UnsupportedOperationError(self.name, capability)


# ── Stage interfaces ─────────────────────────────────────────────────────────


class Sensor(Component):
    """Collects measurements from the observed system."""

    def measurement_types(self) -> Sequence[str]:
        self._unsupported(Capability.MEASUREMENT_TYPES)

    def fetch(self) -> Sequence[Measurement]:
        self._unsupported(Capability.SENSE)


class Detector(Component):
    """Turns measurements into symptoms."""

    def symptom_types(self) -> Sequence[str]:
        self._unsupported(Capability.SYMPTOM_TYPES)

    def detect(self, measurements: Sequence[Measurement]) -> Sequence[Symptom]:
        self._unsupported(Capability.DETECT)


class Diagnoser(Component):
    """Explains symptoms with likely root causes."""

    def diagnosis_types(self) -> Sequence[str]:
        self._unsupported(Capability.DIAGNOSIS_TYPES)

    def diagnose(self, symptoms: Sequence[Symptom]) -> Sequence[Diagnosis]:
        self._unsupported(Capability.DIAGNOSE)


class Resolver(Component):
    """Executes actions that bring a diagnosed component back to health.

    Typically consumes the diagnoses produced by a ``Diagnoser`` and returns
    every action it executed.
    """

    def action_names(self) -> Sequence[str]:
        """Names of the actions this resolver can create."""
        self._unsupported(Capability.ACTION_NAMES)

    def resolve(self, diagnoses: Sequence[Diagnosis]) -> Sequence[Action]:
        """Execute actions expected to improve health; return what was done."""
        self._unsupported(Capability.RESOLVE)
