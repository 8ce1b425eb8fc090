"""Typed parameter models, one per action kind.

Raw `params` maps from the model stay untyped only until `parse_params`; everything
downstream of that boundary works with these models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from lifeos.actions.kinds import ActionKind
from lifeos.errors import ParamsValidationError

MISSING_INFO = "MISSING_INFO"


class TaskStatus(str, Enum):
    NEXT = "Next"
    BLOCKED = "Blocked"
    DOING = "Doing"
    VERIFY = "Verify"
    DONE = "Done"


class TaskPriority(str, Enum):
    P0 = "P0 - Critical"
    P1 = "P1 - High"
    P2 = "P2 - Medium"
    P3 = "P3 - Low"


@dataclass(frozen=True)
class Action:
    """A canonical action kind plus the untouched params map from the model."""

    kind: ActionKind
    params: Mapping[str, Any] = field(default_factory=dict)


def _coerce_yes_no(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"yes", "true"}:
            return True
        if lowered in {"no", "false"}:
            return False
    raise ValueError("expected true/false or Yes/No")


def _as_list(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return value


def _check_iso(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        date_parser.isoparse(value)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"not an ISO 8601 date/time: {value!r}") from exc
    return value


class ActionParams(BaseModel):
    """Base for every params model: camelCase input, blank strings read as unset."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _blank_strings_to_none(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str) and not value.strip():
                value = None
            cleaned[key] = value
        return cleaned


class ProjectFields(ActionParams):
    life_domain_id: Optional[str] = Field(default=None, alias="lifeDomainId")
    flagship: Optional[bool] = None
    status: Optional[str] = None
    due: Optional[str] = None
    dod: Optional[str] = None
    kpi: Optional[str] = None
    notes: Optional[str] = None

    check_flagship = field_validator("flagship", mode="before")(_coerce_yes_no)
    check_due = field_validator("due")(_check_iso)


class ProjectCreateParams(ProjectFields):
    name: str


class ProjectUpdateParams(ProjectFields):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: Optional[str] = Field(default=None, alias="projectName")
    name: Optional[str] = None


class TaskFields(ActionParams):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: Optional[str] = Field(default=None, alias="projectName")
    shippable: Optional[bool] = None
    notes: Optional[str] = None

    check_shippable = field_validator("shippable", mode="before")(_coerce_yes_no)


class TaskCreateParams(TaskFields):
    name: str
    status: TaskStatus
    priority: TaskPriority
    due: str

    check_due = field_validator("due")(_check_iso)


class TaskUpdateParams(TaskFields):
    task_id: Optional[str] = Field(default=None, alias="taskId")
    task_name: Optional[str] = Field(default=None, alias="taskName")
    name: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due: Optional[str] = None
    journal_id: Optional[str] = Field(default=None, alias="journalId")

    check_due = field_validator("due")(_check_iso)


class JournalFields(ActionParams):
    content: Optional[str] = None
    date: Optional[str] = None
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: Optional[str] = Field(default=None, alias="projectName")
    life_domain_id: Optional[str] = Field(default=None, alias="lifeDomainId")
    action_item_ids: Optional[list[str]] = Field(default=None, alias="actionItemIds")
    task_names: Optional[list[str]] = Field(default=None, alias="taskNames")

    check_lists = field_validator("action_item_ids", "task_names", mode="before")(_as_list)
    check_date = field_validator("date")(_check_iso)


class JournalCreateParams(JournalFields):
    title: str
    type: str


class JournalUpdateParams(JournalFields):
    journal_id: str = Field(alias="journalId")
    title: Optional[str] = None
    type: Optional[str] = None


class ContentFields(ActionParams):
    type: Optional[str] = None
    tags: Optional[list[str]] = None
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: Optional[str] = Field(default=None, alias="projectName")
    life_domain_id: Optional[str] = Field(default=None, alias="lifeDomainId")
    date: Optional[str] = None
    body: Optional[str] = None

    check_tags = field_validator("tags", mode="before")(_as_list)
    check_date = field_validator("date")(_check_iso)


class ContentCreateParams(ContentFields):
    title: str


class ContentUpdateParams(ContentFields):
    content_id: str = Field(alias="contentId")
    title: Optional[str] = None


class CalendarEventFields(ActionParams):
    description: Optional[str] = None
    time_zone: Optional[str] = Field(default=None, alias="timeZone")
    location: Optional[str] = None
    attendees: Optional[list[str]] = None
    reminder_minutes: Optional[int] = Field(default=None, alias="reminderMinutes")

    check_attendees = field_validator("attendees", mode="before")(_as_list)


class CalendarEventCreateParams(CalendarEventFields):
    title: str
    start_date_time: str = Field(alias="startDateTime")
    end_date_time: str = Field(alias="endDateTime")

    check_times = field_validator("start_date_time", "end_date_time")(_check_iso)


class CalendarEventUpdateParams(CalendarEventFields):
    event_id: Optional[str] = Field(default=None, alias="eventId")
    event_name: Optional[str] = Field(default=None, alias="eventName")
    title: Optional[str] = None
    start_date_time: Optional[str] = Field(default=None, alias="startDateTime")
    end_date_time: Optional[str] = Field(default=None, alias="endDateTime")

    check_times = field_validator("start_date_time", "end_date_time")(_check_iso)


class CalendarEventDeleteParams(ActionParams):
    event_id: Optional[str] = Field(default=None, alias="eventId")
    event_name: Optional[str] = Field(default=None, alias="eventName")


class CalendarEventListParams(ActionParams):
    time_min: Optional[str] = Field(default=None, alias="timeMin")
    time_max: Optional[str] = Field(default=None, alias="timeMax")
    max_results: int = Field(default=10, alias="maxResults", ge=1, le=250)
    query: Optional[str] = None

    check_times = field_validator("time_min", "time_max")(_check_iso)


AnyParams = Union[
    ProjectCreateParams,
    ProjectUpdateParams,
    TaskCreateParams,
    TaskUpdateParams,
    JournalCreateParams,
    JournalUpdateParams,
    ContentCreateParams,
    ContentUpdateParams,
    CalendarEventCreateParams,
    CalendarEventUpdateParams,
    CalendarEventDeleteParams,
    CalendarEventListParams,
]

PARAMS_MODELS: dict[ActionKind, type[ActionParams]] = {
    ActionKind.CREATE_PROJECT: ProjectCreateParams,
    ActionKind.UPDATE_PROJECT: ProjectUpdateParams,
    ActionKind.CREATE_TASK: TaskCreateParams,
    ActionKind.UPDATE_TASK: TaskUpdateParams,
    ActionKind.LOG_NOTE: JournalCreateParams,
    ActionKind.UPDATE_JOURNAL: JournalUpdateParams,
    ActionKind.CREATE_CONTENT: ContentCreateParams,
    ActionKind.UPDATE_CONTENT: ContentUpdateParams,
    ActionKind.CREATE_CALENDAR_EVENT: CalendarEventCreateParams,
    ActionKind.UPDATE_CALENDAR_EVENT: CalendarEventUpdateParams,
    ActionKind.DELETE_CALENDAR_EVENT: CalendarEventDeleteParams,
    ActionKind.LIST_CALENDAR_EVENTS: CalendarEventListParams,
}

# A tuple entry is a "one of" group, reported under its first member.
REQUIRED_FIELDS: dict[ActionKind, tuple[str | tuple[str, ...], ...]] = {
    ActionKind.CREATE_PROJECT: ("name",),
    ActionKind.CREATE_TASK: (
        "name",
        ("projectId", "projectName"),
        "status",
        "priority",
        "due",
    ),
    ActionKind.LOG_NOTE: ("title", "type"),
    ActionKind.CREATE_CONTENT: ("title",),
    ActionKind.UPDATE_PROJECT: (("projectId", "projectName"),),
    ActionKind.UPDATE_TASK: (("taskId", "taskName"),),
    ActionKind.UPDATE_CONTENT: ("contentId",),
    ActionKind.UPDATE_JOURNAL: ("journalId",),
    ActionKind.CREATE_CALENDAR_EVENT: ("title", "startDateTime", "endDateTime"),
    ActionKind.UPDATE_CALENDAR_EVENT: (("eventId", "eventName"),),
    ActionKind.DELETE_CALENDAR_EVENT: (("eventId", "eventName"),),
    ActionKind.LIST_CALENDAR_EVENTS: (),
}


def required_fields(kind: ActionKind) -> tuple[str | tuple[str, ...], ...]:
    return REQUIRED_FIELDS[kind]


def _holds_sentinel(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() == MISSING_INFO
    if isinstance(value, (list, tuple)):
        return any(_holds_sentinel(item) for item in value)
    return False


def _is_absent(value: Any) -> bool:
    if value is None or _holds_sentinel(value):
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def missing_fields(kind: ActionKind, params: Mapping[str, Any]) -> list[str]:
    """Return sentinel-valued keys followed by absent required fields.

    `MISSING_INFO` counts as absent, so a required field holding it is reported once.
    """
    sentinel = [key for key, value in params.items() if _holds_sentinel(value)]
    missing = list(sentinel)
    for requirement in REQUIRED_FIELDS[kind]:
        group = requirement if isinstance(requirement, tuple) else (requirement,)
        if any(name in sentinel for name in group):
            continue
        if all(_is_absent(params.get(name)) for name in group) and group[0] not in missing:
            missing.append(group[0])
    return missing


def parse_params(kind: ActionKind, params: Mapping[str, Any]) -> AnyParams:
    """Validate a raw params map into the typed model for `kind`.

    Raises:
        ParamsValidationError: listing the offending param keys.
    """
    model = PARAMS_MODELS[kind]
    try:
        return model.model_validate(dict(params))
    except ValidationError as exc:
        fields: list[str] = []
        messages: list[str] = []
        for error in exc.errors():
            loc = error.get("loc") or ()
            name = str(loc[0]) if loc else "params"
            if name not in fields:
                fields.append(name)
            messages.append(f"{name}: {error.get('msg')}")
        raise ParamsValidationError("; ".join(messages), fields) from exc


__all__ = [
    "Action",
    "ActionParams",
    "AnyParams",
    "CalendarEventCreateParams",
    "CalendarEventDeleteParams",
    "CalendarEventListParams",
    "CalendarEventUpdateParams",
    "ContentCreateParams",
    "ContentUpdateParams",
    "JournalCreateParams",
    "JournalUpdateParams",
    "MISSING_INFO",
    "PARAMS_MODELS",
    "ProjectCreateParams",
    "ProjectUpdateParams",
    "REQUIRED_FIELDS",
    "TaskCreateParams",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdateParams",
    "missing_fields",
    "parse_params",
    "required_fields",
]
