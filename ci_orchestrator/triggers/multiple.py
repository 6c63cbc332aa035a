"""MultipleTrigger — combines child triggers behind the Trigger interface.

Operators
---------
Or   the highest condition returned by any child (default)
And  NO_BUILD as soon as one child says NO_BUILD, otherwise the highest

Every child is evaluated on each call so that lazily-initialised children
(schedule, interval) all fix their first due time at the same moment.
``integration_completed()`` is forwarded only to the children that fired on
the last evaluation, so an idle schedule child keeps its due time when a
sibling builds.  Before any evaluation it reaches every child.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from enum import Enum

from ci_orchestrator.exceptions import ConfigurationError
from ci_orchestrator.models import BuildCondition
from ci_orchestrator.triggers.base import Trigger


class TriggerOperator(str, Enum):
    OR = "Or"
    AND = "And"

    @classmethod
    def parse(cls, value: str | TriggerOperator) -> TriggerOperator:
        if isinstance(value, TriggerOperator):
            return value
        for op in cls:
            if op.value.lower() == str(value).strip().lower():
                return op
        raise ConfigurationError(
            f"Invalid trigger operator '{value}'", context={"value": value}
        )


class MultipleTrigger(Trigger):
    def __init__(
        self,
        triggers: Sequence[Trigger],
        operator: TriggerOperator | str = TriggerOperator.OR,
    ) -> None:
        self.triggers: list[Trigger] = list(triggers)
        self.operator = TriggerOperator.parse(operator)
        self._last_conditions: list[BuildCondition] | None = None

    @property
    def description(self) -> str:
        inner = f" {self.operator.value} ".join(t.description for t in self.triggers)
        return f"MultipleTrigger({inner})"

    @property
    def next_build(self) -> datetime | None:
        candidates = [t.next_build for t in self.triggers if t.next_build is not None]
        if not candidates:
            return None
        if self.operator == TriggerOperator.AND:
            return max(candidates)
        return min(candidates)

    def should_run_integration(self) -> BuildCondition:
        conditions = [t.should_run_integration() for t in self.triggers]
        self._last_conditions = conditions
        if not conditions:
            return BuildCondition.NO_BUILD
        if self.operator == TriggerOperator.AND and BuildCondition.NO_BUILD in conditions:
            return BuildCondition.NO_BUILD
        return max(conditions)

    def integration_completed(self) -> None:
        if self._last_conditions is None:
            fired = self.triggers
        else:
            fired = [
                trigger
                for trigger, condition in zip(self.triggers, self._last_conditions)
                if condition != BuildCondition.NO_BUILD
            ]
        self._last_conditions = None
        for trigger in fired:
            trigger.integration_completed()
