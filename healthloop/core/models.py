"""Pipeline payloads — what flows between the four stages of a health policy.

sense → Measurement → detect → Symptom → diagnose → Diagnosis → resolve → Action

All payloads are transient: a policy produces them during one cycle and the
scheduler drops them once the resulting actions are logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass
class Measurement:
    """A single observed metric value for one component."""

    component: str
    metric: str
    value: float
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "metric": self.metric,
            "value": self.value,
            "timestamp": self.timestamp,
        }


@dataclass
class Symptom:
    """An anomaly signal raised by a detector."""

    symptom_type: str
    components: list[str] = field(default_factory=list)
    measurements: list[Measurement] = field(default_factory=list)
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "symptom_type": self.symptom_type,
            "components": list(self.components),
            "measurements": [m.to_dict() for m in self.measurements],
            "timestamp": self.timestamp,
        }


@dataclass
class Diagnosis:
    """A likely root cause explaining one or more symptoms."""

    diagnosis_type: str
    symptoms: list[Symptom] = field(default_factory=list)
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = _now()

    @property
    def components(self) -> list[str]:
        seen: list[str] = []
        for s in self.symptoms:
            for c in s.components:
                if c not in seen:
                    seen.append(c)
        return seen

    def to_dict(self) -> dict[str, Any]:
        return {
            "diagnosis_type": self.diagnosis_type,
            "components": self.components,
            "symptoms": [s.symptom_type for s in self.symptoms],
            "timestamp": self.timestamp,
        }


@dataclass
class Action:
    """A remediation step taken by a resolver."""

    action_type: str
    diagnoses: list[Diagnosis] = field(default_factory=list)
    details: dict[str, Any] | None = None
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_type": self.action_type,
            "diagnoses": [d.diagnosis_type for d in self.diagnoses],
            "details": self.details,
            "timestamp": self.timestamp,
        }
