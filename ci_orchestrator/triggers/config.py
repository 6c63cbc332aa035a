"""Declarative trigger configuration.

Each trigger variant has an explicit pydantic schema (field → validator →
default).  Every value is validated when the configuration is loaded, so a
malformed time or week-day name fails setup instead of surfacing on the
first evaluation.

Mapping form (YAML / dict), keys in snake_case or camelCase::

    {"type": "schedule", "time": "23:30", "buildCondition": "ForceBuild",
     "weekDays": ["Monday", "Tuesday"]}
    {"type": "interval", "seconds": 300, "initialSeconds": 10}
    {"type": "multiple", "operator": "And", "triggers": [...]}
    {"type": "filter", "startTime": "23:00", "endTime": "07:00",
     "trigger": {...}}

XML reference encoding (parsed with lxml)::

    <scheduleTrigger time="12:00:00" buildCondition="ForceBuild">
      <weekDays>
        <weekDay>Monday</weekDay>
        <weekDay>Tuesday</weekDay>
      </weekDays>
    </scheduleTrigger>

    <multiTrigger operator="Or">
      <triggers>
        <intervalTrigger seconds="60" />
        <scheduleTrigger time="02:00" buildCondition="ForceBuild" />
      </triggers>
    </multiTrigger>

    <filterTrigger startTime="23:00" endTime="07:00">
      <trigger><intervalTrigger seconds="60" /></trigger>
    </filterTrigger>
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from lxml import etree
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from ci_orchestrator.clock import Clock
from ci_orchestrator.exceptions import ConfigurationError, UnknownTriggerError
from ci_orchestrator.models import ALL_WEEK_DAYS, BuildCondition, WeekDay
from ci_orchestrator.triggers.base import Trigger, parse_time_of_day
from ci_orchestrator.triggers.filter import FilterTrigger
from ci_orchestrator.triggers.interval import IntervalTrigger
from ci_orchestrator.triggers.multiple import MultipleTrigger, TriggerOperator
from ci_orchestrator.triggers.schedule import ScheduleTrigger


# ---------------------------------------------------------------------------
# Shared validators
# ---------------------------------------------------------------------------


def _check_time(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        raise ConfigurationError(
            f"Time of day must be text such as '23:30', got the number {value}; "
            "quote the value in YAML files",
            context={"value": value},
        )
    parse_time_of_day(str(value))
    return str(value).strip()


def _check_condition(value: Any) -> BuildCondition:
    return BuildCondition.parse(value)


def _check_week_days(value: Any) -> list[WeekDay]:
    if isinstance(value, str):
        value = [value]
    return [WeekDay.parse(day) for day in value]


TimeOfDay = Annotated[str, BeforeValidator(_check_time)]
Condition = Annotated[BuildCondition, BeforeValidator(_check_condition)]
WeekDayList = Annotated[list[WeekDay], BeforeValidator(_check_week_days)]


class _TriggerConfigBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# ---------------------------------------------------------------------------
# Variant schemas
# ---------------------------------------------------------------------------


class ScheduleTriggerConfig(_TriggerConfigBase):
    type: Literal["schedule"] = "schedule"
    time: TimeOfDay
    build_condition: Condition = Field(
        default=BuildCondition.IF_MODIFICATION_EXISTS, alias="buildCondition"
    )
    week_days: WeekDayList = Field(
        default_factory=lambda: list(ALL_WEEK_DAYS), alias="weekDays"
    )


class IntervalTriggerConfig(_TriggerConfigBase):
    type: Literal["interval"] = "interval"
    seconds: Annotated[float, Field(gt=0)] = 60.0
    initial_seconds: Annotated[float, Field(ge=0)] = Field(default=0.0, alias="initialSeconds")
    build_condition: Condition = Field(
        default=BuildCondition.IF_MODIFICATION_EXISTS, alias="buildCondition"
    )


class MultipleTriggerConfig(_TriggerConfigBase):
    type: Literal["multiple"] = "multiple"
    operator: TriggerOperator = TriggerOperator.OR
    triggers: list[TriggerConfig] = Field(default_factory=list)

    @field_validator("operator", mode="before")
    @classmethod
    def _check_operator(cls, value: Any) -> TriggerOperator:
        return TriggerOperator.parse(value)


class FilterTriggerConfig(_TriggerConfigBase):
    type: Literal["filter"] = "filter"
    trigger: TriggerConfig
    start_time: TimeOfDay = Field(alias="startTime")
    end_time: TimeOfDay = Field(alias="endTime")
    week_days: WeekDayList = Field(
        default_factory=lambda: list(ALL_WEEK_DAYS), alias="weekDays"
    )
    build_condition: Condition = Field(
        default=BuildCondition.NO_BUILD, alias="buildCondition"
    )


TriggerConfig = Annotated[
    Union[
        ScheduleTriggerConfig,
        IntervalTriggerConfig,
        MultipleTriggerConfig,
        FilterTriggerConfig,
    ],
    Field(discriminator="type"),
]

MultipleTriggerConfig.model_rebuild()
FilterTriggerConfig.model_rebuild()

_ADAPTER: TypeAdapter[Any] = TypeAdapter(TriggerConfig)
_TRIGGER_TYPES = ("schedule", "interval", "multiple", "filter")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def parse_trigger_config(data: Mapping[str, Any] | BaseModel) -> Any:
    """Validate a mapping into one of the trigger config models."""
    if isinstance(data, BaseModel):
        return data
    _check_types(data)
    try:
        return _ADAPTER.validate_python(dict(data))
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid trigger configuration: {exc.error_count()} error(s)",
            context={"errors": exc.errors(include_url=False)},
        ) from exc


def _check_types(data: Mapping[str, Any]) -> None:
    """Raise UnknownTriggerError for any nested unknown ``type``."""
    trigger_type = data.get("type")
    if trigger_type not in _TRIGGER_TYPES:
        raise UnknownTriggerError(str(trigger_type))
    for child in data.get("triggers", []) or []:
        if isinstance(child, Mapping):
            _check_types(child)
    inner = data.get("trigger")
    if isinstance(inner, Mapping):
        _check_types(inner)


def build_trigger(config: Mapping[str, Any] | BaseModel, clock: Clock) -> Trigger:
    """Create the Trigger described by *config* (mapping or validated model)."""
    model = parse_trigger_config(config)

    if isinstance(model, ScheduleTriggerConfig):
        return ScheduleTrigger(
            clock,
            time=model.time,
            build_condition=model.build_condition,
            week_days=model.week_days,
        )
    if isinstance(model, IntervalTriggerConfig):
        return IntervalTrigger(
            clock,
            seconds=model.seconds,
            build_condition=model.build_condition,
            initial_seconds=model.initial_seconds,
        )
    if isinstance(model, MultipleTriggerConfig):
        return MultipleTrigger(
            [build_trigger(child, clock) for child in model.triggers],
            operator=model.operator,
        )
    if isinstance(model, FilterTriggerConfig):
        return FilterTrigger(
            clock,
            trigger=build_trigger(model.trigger, clock),
            start_time=model.start_time,
            end_time=model.end_time,
            week_days=model.week_days,
            build_condition=model.build_condition,
        )
    raise UnknownTriggerError(type(model).__name__)


# ---------------------------------------------------------------------------
# XML reference encoding
# ---------------------------------------------------------------------------

_XML_TAGS = {
    "scheduleTrigger": "schedule",
    "intervalTrigger": "interval",
    "multiTrigger": "multiple",
    "filterTrigger": "filter",
}


def xml_to_mapping(element: etree._Element) -> dict[str, Any]:
    """Convert one trigger element into the mapping form."""
    tag = etree.QName(element).localname
    trigger_type = _XML_TAGS.get(tag)
    if trigger_type is None:
        raise UnknownTriggerError(tag)

    data: dict[str, Any] = {"type": trigger_type, **dict(element.attrib)}
    for child in _element_children(element):
        name = etree.QName(child).localname
        if name == "weekDays":
            data["weekDays"] = [(day.text or "").strip() for day in _element_children(child)]
        elif name == "triggers":
            data["triggers"] = [xml_to_mapping(t) for t in _element_children(child)]
        elif name == "trigger":
            inner = _element_children(child)
            if len(inner) != 1:
                raise ConfigurationError(
                    "<trigger> must contain exactly one trigger element",
                    context={"found": len(inner)},
                )
            data["trigger"] = xml_to_mapping(inner[0])
        else:
            data[name] = (child.text or "").strip()
    return data


def load_trigger_xml(text: str | bytes, clock: Clock) -> Trigger:
    """Parse the XML reference encoding and build the trigger."""
    if isinstance(text, str):
        text = text.encode("utf-8")
    try:
        root = etree.fromstring(text)
    except etree.XMLSyntaxError as exc:
        raise ConfigurationError(f"Malformed trigger XML: {exc}") from exc
    return build_trigger(xml_to_mapping(root), clock)


def _element_children(element: etree._Element) -> list[etree._Element]:
    """Child elements, skipping comments and processing instructions."""
    return [c for c in element if isinstance(c.tag, str)]
