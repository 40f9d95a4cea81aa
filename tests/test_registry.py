"""Tests for the YAML policy registry."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from healthloop.builtin.http_sensor import HttpSensor
from healthloop.builtin.resolvers import LoggingResolver
from healthloop.builtin.threshold import SymptomDiagnoser, ThresholdDetector
from healthloop.policy.base import HealthPolicy
from healthloop.policy.registry import (
    ComponentDef,
    PolicyDef,
    PolicyRegistry,
    RegistryError,
    build_component,
    build_policy,
    import_class,
)
from healthloop.capabilities import Detector, Sensor


@pytest.fixture
def sample_yaml(tmp_path: Path) -> Path:
    """Create a minimal policies.yaml for testing."""
    data = {
        "policies": [
            {
                "id": "api-health",
                "interval_seconds": 30,
                "sensors": [
                    {
                        "class": "healthloop.builtin.http_sensor.HttpSensor",
                        "args": {"url": "https://api.example.com/health", "component": "api"},
                    },
                ],
                "detectors": [
                    {"class": "healthloop.builtin.threshold.ThresholdDetector",
                     "args": {"metric": "up", "below": 1, "symptom_type": "down"}},
                ],
                "diagnosers": [
                    {"class": "healthloop.builtin.threshold.SymptomDiagnoser",
                     "args": {"mapping": {"down": "unreachable"}}},
                ],
                "resolvers": ["healthloop.builtin.resolvers.LoggingResolver"],
            },
            {"id": "nightly", "interval_seconds": 86400, "enabled": False},
            {"id": "defaults-only"},
        ],
    }
    path = tmp_path / "policies.yaml"
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


class TestPolicyRegistry:
    def test_load(self, sample_yaml: Path) -> None:
        defs = PolicyRegistry(sample_yaml).load()
        assert [d.id for d in defs] == ["api-health", "nightly", "defaults-only"]

        api = defs[0]
        assert api.interval_seconds == 30
        assert api.sensors[0].cls == "healthloop.builtin.http_sensor.HttpSensor"
        assert api.sensors[0].args["component"] == "api"
        assert api.resolvers == [ComponentDef(cls="healthloop.builtin.resolvers.LoggingResolver")]

    def test_defaults(self, sample_yaml: Path) -> None:
        d = PolicyRegistry(sample_yaml).get("defaults-only")
        assert d is not None
        assert d.interval_seconds == 60
        assert d.enabled is True
        assert d.sensors == []

    def test_get_missing(self, sample_yaml: Path) -> None:
        assert PolicyRegistry(sample_yaml).get("nope") is None

    def test_build_policies_skips_disabled(self, sample_yaml: Path) -> None:
        policies = PolicyRegistry(sample_yaml).build_policies()
        assert [p.id for p in policies] == ["api-health", "defaults-only"]

        api = policies[0]
        assert isinstance(api, HealthPolicy)
        assert api.interval.total_seconds() == 30
        assert isinstance(api.sensors[0], HttpSensor)
        assert api.sensors[0].component == "api"
        assert isinstance(api.detectors[0], ThresholdDetector)
        assert isinstance(api.diagnosers[0], SymptomDiagnoser)
        assert isinstance(api.resolvers[0], LoggingResolver)

    def test_missing_file(self, tmp_path: Path) -> None:
        assert PolicyRegistry(tmp_path / "missing.yaml").load() == []

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("policies: [unclosed", encoding="utf-8")
        assert PolicyRegistry(path).load() == []

    def test_malformed_and_duplicate_entries_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "policies.yaml"
        path.write_text(yaml.dump({"policies": [
            {"interval_seconds": 5},  # no id
            {"id": "neg", "interval_seconds": -1},
            {"id": "bad-component", "sensors": [{"args": {}}]},  # no class
            {"id": "ok"},
            {"id": "ok", "interval_seconds": 1},
        ]}), encoding="utf-8")

        defs = PolicyRegistry(path).load()
        assert [d.id for d in defs] == ["ok"]
        assert defs[0].interval_seconds == 60

    def test_cached_until_reload(self, sample_yaml: Path) -> None:
        registry = PolicyRegistry(sample_yaml)
        assert len(registry.load()) == 3
        sample_yaml.write_text(yaml.dump({"policies": [{"id": "only"}]}), encoding="utf-8")
        assert len(registry.load()) == 3
        assert [d.id for d in registry.reload()] == ["only"]


class TestBuilders:
    def test_import_class(self) -> None:
        assert import_class("healthloop.builtin.resolvers.LoggingResolver") is LoggingResolver

    def test_import_class_not_dotted(self) -> None:
        with pytest.raises(RegistryError):
            import_class("LoggingResolver")

    def test_import_class_unknown_module(self) -> None:
        with pytest.raises(RegistryError, match="Cannot import"):
            import_class("healthloop.nowhere.Thing")

    def test_import_class_unknown_attribute(self) -> None:
        with pytest.raises(RegistryError, match="no attribute"):
            import_class("healthloop.builtin.resolvers.Nothing")

    def test_wrong_stage_type(self) -> None:
        with pytest.raises(RegistryError, match="is not a Sensor"):
            build_component(ComponentDef(cls="healthloop.builtin.resolvers.LoggingResolver"), Sensor)

    def test_bad_arguments(self) -> None:
        bad = ComponentDef(cls="healthloop.builtin.threshold.ThresholdDetector", args={"nope": 1})
        with pytest.raises(RegistryError, match="Bad arguments"):
            build_component(bad, Detector)

    def test_build_policy(self) -> None:
        policy = build_policy(PolicyDef(id="p", interval_seconds=15))
        assert policy.id == "p"
        assert policy.interval.total_seconds() == 15
        assert policy.components == []


def test_policy_package_exports() -> None:
    import healthloop.policy as policy_pkg

    for name in policy_pkg.__all__:
        assert hasattr(policy_pkg, name)
    assert "PolicyRegistry" in policy_pkg.__all__
