"""ci-orchestrator — Trigger subsystem.

Triggers decide whether a pending integration should occur and under which
BuildCondition.  They are polled by the project scheduler and never run on
their own.

Package structure
-----------------
triggers/
  base.py      — Trigger ABC + time-of-day parsing
  schedule.py  — ScheduleTrigger (daily, week-day filtered)
  interval.py  — IntervalTrigger (every N seconds)
  multiple.py  — MultipleTrigger (And / Or combinator)
  filter.py    — FilterTrigger (suppress an inner trigger in a window)
  config.py    — declarative schema, mapping + XML loaders
"""

from ci_orchestrator.triggers.base import Trigger, parse_time_of_day
from ci_orchestrator.triggers.config import build_trigger, load_trigger_xml
from ci_orchestrator.triggers.filter import FilterTrigger
from ci_orchestrator.triggers.interval import IntervalTrigger
from ci_orchestrator.triggers.multiple import MultipleTrigger, TriggerOperator
from ci_orchestrator.triggers.schedule import ScheduleTrigger

__all__ = [
    "Trigger",
    "parse_time_of_day",
    "build_trigger",
    "load_trigger_xml",
    "FilterTrigger",
    "IntervalTrigger",
    "MultipleTrigger",
    "TriggerOperator",
    "ScheduleTrigger",
]
