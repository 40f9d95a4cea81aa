"""Threshold detection and a table-driven diagnoser."""

from __future__ import annotations

from collections.abc import Sequence

from healthloop.capabilities import Capability, Detector, Diagnoser
from healthloop.core.models import Diagnosis, Measurement, Symptom


class ThresholdDetector(Detector):
    """Raises one symptom per component whose ``metric`` crosses a bound."""

    capabilities = frozenset({Capability.DETECT, Capability.SYMPTOM_TYPES})

    def __init__(
        self,
        metric: str,
        above: float | None = None,
        below: float | None = None,
        symptom_type: str | None = None,
    ) -> None:
        if above is None and below is None:
            raise ValueError("ThresholdDetector needs 'above' or 'below'")
        self.metric = metric
        self.above = above
        self.below = below
        self.symptom_type = symptom_type or f"{metric}_out_of_range"

    def symptom_types(self) -> list[str]:
        return [self.symptom_type]

    def _breaches(self, value: float) -> bool:
        if self.above is not None and value > self.above:
            return True
        return self.below is not None and value < self.below

    def detect(self, measurements: Sequence[Measurement]) -> list[Symptom]:
        by_component: dict[str, list[Measurement]] = {}
        for m in measurements:
            if m.metric == self.metric and self._breaches(m.value):
                by_component.setdefault(m.component, []).append(m)

        return [
            Symptom(self.symptom_type, components=[component], measurements=ms)
            for component, ms in by_component.items()
        ]


class SymptomDiagnoser(Diagnoser):
    """Maps symptom types straight to diagnosis types.

    Symptoms with no entry in ``mapping`` fall through to ``default`` when one
    is set, otherwise they are ignored.
    """

    capabilities = frozenset({Capability.DIAGNOSE, Capability.DIAGNOSIS_TYPES})

    def __init__(self, mapping: dict[str, str], default: str | None = None) -> None:
        self.mapping = dict(mapping)
        self.default = default

    def diagnosis_types(self) -> list[str]:
        types = sorted(set(self.mapping.values()))
        if self.default and self.default not in types:
            types.append(self.default)
        return types

    def diagnose(self, symptoms: Sequence[Symptom]) -> list[Diagnosis]:
        grouped: dict[str, list[Symptom]] = {}
        for s in symptoms:
            diagnosis_type = self.mapping.get(s.symptom_type, self.default)
            if diagnosis_type:
                grouped.setdefault(diagnosis_type, []).append(s)

        return [Diagnosis(t, symptoms=ss) for t, ss in grouped.items()]
