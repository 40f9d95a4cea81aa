"""Adaptive scheduler for sense/detect/diagnose/resolve health policies."""

from healthloop.capabilities import Capability, UnsupportedOperationError
from healthloop.core.models import Action, Diagnosis, Measurement, Symptom
from healthloop.policy.base import HealthPolicy
from healthloop.policy.executor import CycleReport, PoliciesExecutor

__all__ = [
    "Action",
    "Capability",
    "CycleReport",
    "Diagnosis",
    "HealthPolicy",
    "Measurement",
    "PoliciesExecutor",
    "Symptom",
    "UnsupportedOperationError",
]
