"""Canonical action vocabulary."""

from __future__ import annotations

from enum import Enum


class RecordKind(str, Enum):
    """Notion record families handled by the pipeline."""

    PROJECT = "project"
    TASK = "task"
    JOURNAL = "journal"
    CONTENT = "content"


class ActionKind(str, Enum):
    CREATE_PROJECT = "createProject"
    CREATE_TASK = "createTask"
    LOG_NOTE = "logNote"
    CREATE_CONTENT = "createContent"
    UPDATE_TASK = "updateTask"
    UPDATE_PROJECT = "updateProject"
    UPDATE_CONTENT = "updateContent"
    UPDATE_JOURNAL = "updateJournal"
    CREATE_CALENDAR_EVENT = "createCalendarEvent"
    UPDATE_CALENDAR_EVENT = "updateCalendarEvent"
    DELETE_CALENDAR_EVENT = "deleteCalendarEvent"
    LIST_CALENDAR_EVENTS = "listCalendarEvents"

    @property
    def record_kind(self) -> RecordKind | None:
        """Notion record family, or None for calendar actions."""
        return _RECORD_KINDS.get(self)

    @property
    def is_calendar(self) -> bool:
        return self in _CALENDAR_KINDS

    @property
    def is_create(self) -> bool:
        return self in _NOTION_CREATES

    @property
    def verb(self) -> str:
        return _PHRASES[self][0]

    @property
    def noun(self) -> str:
        return _PHRASES[self][1]


_RECORD_KINDS: dict[ActionKind, RecordKind] = {
    ActionKind.CREATE_PROJECT: RecordKind.PROJECT,
    ActionKind.UPDATE_PROJECT: RecordKind.PROJECT,
    ActionKind.CREATE_TASK: RecordKind.TASK,
    ActionKind.UPDATE_TASK: RecordKind.TASK,
    ActionKind.LOG_NOTE: RecordKind.JOURNAL,
    ActionKind.UPDATE_JOURNAL: RecordKind.JOURNAL,
    ActionKind.CREATE_CONTENT: RecordKind.CONTENT,
    ActionKind.UPDATE_CONTENT: RecordKind.CONTENT,
}

_NOTION_CREATES = frozenset(
    {
        ActionKind.CREATE_PROJECT,
        ActionKind.CREATE_TASK,
        ActionKind.LOG_NOTE,
        ActionKind.CREATE_CONTENT,
    }
)

_CALENDAR_KINDS = frozenset(
    {
        ActionKind.CREATE_CALENDAR_EVENT,
        ActionKind.UPDATE_CALENDAR_EVENT,
        ActionKind.DELETE_CALENDAR_EVENT,
        ActionKind.LIST_CALENDAR_EVENTS,
    }
)

_PHRASES: dict[ActionKind, tuple[str, str]] = {
    ActionKind.CREATE_PROJECT: ("create", "project"),
    ActionKind.CREATE_TASK: ("create", "task"),
    ActionKind.LOG_NOTE: ("log", "note"),
    ActionKind.CREATE_CONTENT: ("create", "content item"),
    ActionKind.UPDATE_TASK: ("update", "task"),
    ActionKind.UPDATE_PROJECT: ("update", "project"),
    ActionKind.UPDATE_CONTENT: ("update", "content item"),
    ActionKind.UPDATE_JOURNAL: ("update", "journal entry"),
    ActionKind.CREATE_CALENDAR_EVENT: ("schedule", "event"),
    ActionKind.UPDATE_CALENDAR_EVENT: ("update", "event"),
    ActionKind.DELETE_CALENDAR_EVENT: ("delete", "event"),
    ActionKind.LIST_CALENDAR_EVENTS: ("list", "calendar"),
}


# Every accepted spelling of an action name, including remote tool names that the
# model sometimes echoes back instead of the action vocabulary.
ACTION_NAME_MAP: dict[str, ActionKind] = {
    **{kind.value: kind for kind in ActionKind},
    "create_project": ActionKind.CREATE_PROJECT,
    "create_task": ActionKind.CREATE_TASK,
    "log_note": ActionKind.LOG_NOTE,
    "create_content": ActionKind.CREATE_CONTENT,
    "update_task": ActionKind.UPDATE_TASK,
    "update_project": ActionKind.UPDATE_PROJECT,
    "update_content": ActionKind.UPDATE_CONTENT,
    "update_journal": ActionKind.UPDATE_JOURNAL,
    "create_calendar_event": ActionKind.CREATE_CALENDAR_EVENT,
    "schedule_event": ActionKind.CREATE_CALENDAR_EVENT,
    "update_calendar_event": ActionKind.UPDATE_CALENDAR_EVENT,
    "delete_calendar_event": ActionKind.DELETE_CALENDAR_EVENT,
    "list_calendar_events": ActionKind.LIST_CALENDAR_EVENTS,
    "NOTION_CREATE_NOTION_PAGE": ActionKind.CREATE_PROJECT,
    "NOTION_UPDATE_PAGE": ActionKind.UPDATE_TASK,
    "GOOGLECALENDAR_CREATE_EVENT": ActionKind.CREATE_CALENDAR_EVENT,
    "GOOGLECALENDAR_UPDATE_EVENT": ActionKind.UPDATE_CALENDAR_EVENT,
    "GOOGLECALENDAR_DELETE_EVENT": ActionKind.DELETE_CALENDAR_EVENT,
    "GOOGLECALENDAR_EVENTS_LIST": ActionKind.LIST_CALENDAR_EVENTS,
}


__all__ = ["ACTION_NAME_MAP", "ActionKind", "RecordKind"]
