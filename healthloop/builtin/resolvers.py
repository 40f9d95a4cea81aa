"""Resolvers that report rather than remediate."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from healthloop.capabilities import Capability, Resolver
from healthloop.core.models import Action, Diagnosis

logger = logging.getLogger(__name__)


class LoggingResolver(Resolver):
    """Emits one logged ``Action`` per diagnosis."""

    capabilities = frozenset({Capability.RESOLVE, Capability.ACTION_NAMES})

    def __init__(self, action_type: str = "log", level: str = "WARNING") -> None:
        self.action_type = action_type
        self.level = getattr(logging, level.upper(), logging.WARNING)

    def action_names(self) -> list[str]:
        return [self.action_type]

    def resolve(self, diagnoses: Sequence[Diagnosis]) -> list[Action]:
        actions = []
        for d in diagnoses:
            logger.log(self.level, "%s: %s on %s", self.action_type, d.diagnosis_type,
                       ", ".join(d.components) or "-")
            actions.append(Action(
                self.action_type,
                diagnoses=[d],
                details={"components": d.components},
            ))
        return actions
