"""Health policy — one independently scheduled sense/detect/diagnose/resolve unit.

A policy owns its components and its own cadence. The scheduler only asks it
how long until it is due (``get_delay``) and drives the four stages in order;
all timestamp bookkeeping lives here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import timedelta
from typing import Protocol, runtime_checkable

from healthloop.capabilities import (
    Capability,
    Component,
    Detector,
    Diagnoser,
    Resolver,
    Sensor,
    require,
)
from healthloop.core.models import Action, Diagnosis, Measurement, Symptom

logger = logging.getLogger(__name__)


@runtime_checkable
class HealthPolicyLike(Protocol):
    """What the scheduler needs from a policy."""

    def get_delay(self) -> timedelta: ...

    def execute_sensors(self) -> Sequence[Measurement]: ...

    def execute_detectors(self, measurements: Sequence[Measurement]) -> Sequence[Symptom]: ...

    def execute_diagnosers(self, symptoms: Sequence[Symptom]) -> Sequence[Diagnosis]: ...

    def execute_resolvers(self, diagnoses: Sequence[Diagnosis]) -> Sequence[Action]: ...


def to_timedelta(value: timedelta | float) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=value)


class HealthPolicy:
    """Default policy: fans each stage out to its registered components.

    Each component must declare the capability of its stage; an undeclared one
    raises UnsupportedOperationError even if the method is overridden.

    Lifecycle:
        policy = HealthPolicy("api", interval=30, sensors=[...], ...)
        policy.initialize()
        ...  # scheduler drives execute_* while get_delay() hits zero
        policy.close()
    """

    def __init__(
        self,
        policy_id: str,
        interval: timedelta | float = 60,
        sensors: Sequence[Sensor] | None = None,
        detectors: Sequence[Detector] | None = None,
        diagnosers: Sequence[Diagnoser] | None = None,
        resolvers: Sequence[Resolver] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.id = policy_id
        self.interval = to_timedelta(interval)
        self.sensors = list(sensors or [])
        self.detectors = list(detectors or [])
        self.diagnosers = list(diagnosers or [])
        self.resolvers = list(resolvers or [])
        self._clock = clock
        self._last_run: float | None = None
        self._one_time_due: float | None = None
        self._initialized = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, interval={self.interval})"

    @property
    def components(self) -> list[Component]:
        return [*self.sensors, *self.detectors, *self.diagnosers, *self.resolvers]

    @property
    def last_run(self) -> float | None:
        return self._last_run

    # -- scheduling ------------------------------------------------------------

    def get_delay(self) -> timedelta:
        """Time remaining until this policy wants to run; zero when due."""
        now = self._clock()
        if self._one_time_due is not None:
            due = self._one_time_due
        elif self._last_run is None:
            return timedelta(0)
        else:
            due = self._last_run + self.interval.total_seconds()
        return timedelta(seconds=max(0.0, due - now))

    def set_interval(self, interval: timedelta | float) -> None:
        self.interval = to_timedelta(interval)

    def set_one_time_delay(self, delay: timedelta | float) -> None:
        """Push the next run to ``delay`` from now, once; the interval resumes after."""
        self._one_time_due = self._clock() + to_timedelta(delay).total_seconds()
        logger.debug("Policy %s: one-time delay %s", self.id, delay)

    # -- lifecycle -------------------------------------------------------------

    def initialize(self) -> None:
        if self._initialized:
            return
        for c in self.components:
            c.initialize()
        self._initialized = True

    def close(self) -> None:
        for c in self.components:
            try:
                c.close()
            except Exception:
                logger.exception("Policy %s: error closing %s", self.id, c.name)
        self._initialized = False

    # -- pipeline stages -------------------------------------------------------

    def execute_sensors(self) -> list[Measurement]:
        self._last_run = self._clock()
        self._one_time_due = None

        measurements: list[Measurement] = []
        for sensor in self.sensors:
            require(sensor, Capability.SENSE)
            measurements.extend(sensor.fetch())
        return measurements

    def execute_detectors(self, measurements: Sequence[Measurement]) -> list[Symptom]:
        symptoms: list[Symptom] = []
        for detector in self.detectors:
            require(detector, Capability.DETECT)
            symptoms.extend(detector.detect(measurements))
        return symptoms

    def execute_diagnosers(self, symptoms: Sequence[Symptom]) -> list[Diagnosis]:
        diagnoses: list[Diagnosis] = []
        for diagnoser in self.diagnosers:
            require(diagnoser, Capability.DIAGNOSE)
            diagnoses.extend(diagnoser.diagnose(symptoms))
        return diagnoses

    def execute_resolvers(self, diagnoses: Sequence[Diagnosis]) -> list[Action]:
        actions: list[Action] = []
        for resolver in self.resolvers:
            require(resolver, Capability.RESOLVE)
            actions.extend(resolver.resolve(diagnoses))
        return actions
