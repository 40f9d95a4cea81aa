"""Shared test fixtures."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest


class FakePolicy:
    """Scriptable policy that records every stage call.

    ``reschedule`` is the delay reported after a run, mimicking a real policy
    recomputing its own due time; ``None`` keeps the current delay.
    """

    def __init__(
        self,
        policy_id: str,
        delay: float = 0.0,
        reschedule: float | None = 60.0,
        log: list[tuple[str, str]] | None = None,
        fail_stage: str | None = None,
    ) -> None:
        self.id = policy_id
        self.delay = timedelta(seconds=delay)
        self.reschedule = reschedule
        self.log = log if log is not None else []
        self.fail_stage = fail_stage
        self.calls: list[tuple[str, Any]] = []
        self.measurements = [f"{policy_id}-measurement"]
        self.symptoms = [f"{policy_id}-symptom"]
        self.diagnoses = [f"{policy_id}-diagnosis"]
        self.actions = [f"{policy_id}-action"]

    def get_delay(self) -> timedelta:
        return self.delay

    def _record(self, stage: str, arg: Any = None) -> None:
        self.calls.append((stage, arg))
        self.log.append((self.id, stage))
        if stage == self.fail_stage:
            raise RuntimeError(f"{self.id} {stage} exploded")

    def execute_sensors(self) -> list[str]:
        if self.reschedule is not None:
            self.delay = timedelta(seconds=self.reschedule)
        self._record("sense")
        return self.measurements

    def execute_detectors(self, measurements: Any) -> list[str]:
        self._record("detect", measurements)
        return self.symptoms

    def execute_diagnosers(self, symptoms: Any) -> list[str]:
        self._record("diagnose", symptoms)
        return self.diagnoses

    def execute_resolvers(self, diagnoses: Any) -> list[str]:
        self._record("resolve", diagnoses)
        return self.actions


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_policy():
    """Factory for FakePolicy instances."""
    return FakePolicy


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
