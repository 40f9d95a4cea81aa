"""Health policies and the executor that schedules them."""

from .base import HealthPolicy, HealthPolicyLike
from .executor import CycleReport, PoliciesExecutor
from .registry import PolicyDef, PolicyRegistry, RegistryError

__all__ = [
    "CycleReport",
    "HealthPolicy",
    "HealthPolicyLike",
    "PoliciesExecutor",
    "PolicyDef",
    "PolicyRegistry",
    "RegistryError",
]
