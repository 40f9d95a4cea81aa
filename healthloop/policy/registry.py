"""Policy registry — loads policies.yaml and builds HealthPolicy objects.

Each policy entry names its components by dotted class path, so hosts can
plug in their own sensors, detectors, diagnosers and resolvers without code
changes to the scheduler.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from healthloop.capabilities import Component, Detector, Diagnoser, Resolver, Sensor
from healthloop.config import settings
from healthloop.policy.base import HealthPolicy

logger = logging.getLogger(__name__)

STAGES: dict[str, type[Component]] = {
    "sensors": Sensor,
    "detectors": Detector,
    "diagnosers": Diagnoser,
    "resolvers": Resolver,
}


class RegistryError(Exception):
    """Raised when a registry entry cannot be turned into a component."""


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass
class ComponentDef:
    """A component entry: dotted class path plus constructor kwargs."""

    cls: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class PolicyDef:
    """Definition of a single health policy from the registry."""

    id: str
    interval_seconds: float = 60
    enabled: bool = True
    sensors: list[ComponentDef] = field(default_factory=list)
    detectors: list[ComponentDef] = field(default_factory=list)
    diagnosers: list[ComponentDef] = field(default_factory=list)
    resolvers: list[ComponentDef] = field(default_factory=list)


# ── Registry ─────────────────────────────────────────────────────────────────


class PolicyRegistry:
    """Loads and caches policy definitions from policies.yaml."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path(settings.policies_file)
        self._defs: list[PolicyDef] = []
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> list[PolicyDef]:
        """Parse policies.yaml and return the PolicyDef list."""
        if self._loaded and not force:
            return self._defs

        self._defs = []
        if not self._path.exists():
            logger.warning("Policy registry file not found: %s", self._path)
            self._loaded = True
            return self._defs

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse %s: %s", self._path, e)
            self._loaded = True
            return self._defs

        seen: set[str] = set()
        for entry in raw.get("policies", []) or []:
            try:
                policy_def = _parse_policy(entry)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping malformed policy entry: %s", e)
                continue
            if policy_def.id in seen:
                logger.warning("Skipping duplicate policy id: %s", policy_def.id)
                continue
            seen.add(policy_def.id)
            self._defs.append(policy_def)

        self._loaded = True
        logger.info("Loaded %d policies from registry", len(self._defs))
        return self._defs

    @property
    def definitions(self) -> list[PolicyDef]:
        return self.load()

    def get(self, policy_id: str) -> PolicyDef | None:
        return next((d for d in self.definitions if d.id == policy_id), None)

    def reload(self) -> list[PolicyDef]:
        """Force reload from disk."""
        return self.load(force=True)

    def build_policies(self) -> list[HealthPolicy]:
        """Instantiate every enabled policy, in file order."""
        return [build_policy(d) for d in self.definitions if d.enabled]


# ── Builders ─────────────────────────────────────────────────────────────────


def import_class(dotted: str) -> type:
    module_name, _, attr = dotted.rpartition(".")
    if not module_name:
        raise RegistryError(f"Not a dotted class path: '{dotted}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise RegistryError(f"Cannot import module '{module_name}': {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise RegistryError(f"Module '{module_name}' has no attribute '{attr}'") from e


def build_component(component_def: ComponentDef, expected: type[Component]) -> Component:
    cls = import_class(component_def.cls)
    if not (isinstance(cls, type) and issubclass(cls, expected)):
        raise RegistryError(f"'{component_def.cls}' is not a {expected.__name__}")
    try:
        return cls(**component_def.args)
    except TypeError as e:
        raise RegistryError(f"Bad arguments for '{component_def.cls}': {e}") from e


def build_policy(policy_def: PolicyDef) -> HealthPolicy:
    stages = {
        stage: [build_component(c, expected) for c in getattr(policy_def, stage)]
        for stage, expected in STAGES.items()
    }
    return HealthPolicy(policy_def.id, interval=policy_def.interval_seconds, **stages)


# ── Parsers ──────────────────────────────────────────────────────────────────


def _parse_component(raw: Any) -> ComponentDef:
    if isinstance(raw, str):
        return ComponentDef(cls=raw)
    return ComponentDef(cls=raw["class"], args=dict(raw.get("args") or {}))


def _parse_policy(raw: dict[str, Any]) -> PolicyDef:
    interval = float(raw.get("interval_seconds", settings.default_interval_seconds))
    if interval < 0:
        raise ValueError(f"negative interval for policy '{raw['id']}'")

    return PolicyDef(
        id=str(raw["id"]),
        interval_seconds=interval,
        enabled=bool(raw.get("enabled", True)),
        **{
            stage: [_parse_component(c) for c in raw.get(stage) or []]
            for stage in STAGES
        },
    )
