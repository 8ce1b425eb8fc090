"""Notion property encoding for the four record kinds.

Create builders return the full property patch for a new page; `build_update_properties`
returns only what the caller set, since an absent key leaves the remote value untouched.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from lifeos.actions.kinds import RecordKind
from lifeos.actions.models import (
    ActionParams,
    ContentCreateParams,
    ContentUpdateParams,
    JournalCreateParams,
    JournalUpdateParams,
    ProjectCreateParams,
    ProjectUpdateParams,
    TaskCreateParams,
    TaskUpdateParams,
)

PropertyPatch = dict[str, dict[str, Any]]


# ---------------------------------------------------------------------------
# Tagged value encoders
# ---------------------------------------------------------------------------


def title(text: str) -> dict[str, Any]:
    return {"title": [{"text": {"content": text}}]}


def rich_text(text: str) -> dict[str, Any]:
    return {"rich_text": [{"text": {"content": text}}]}


def select(name: str) -> dict[str, Any]:
    return {"select": {"name": name}}


def status(name: str) -> dict[str, Any]:
    return {"status": {"name": name}}


def multi_select(names: Iterable[str]) -> dict[str, Any]:
    return {"multi_select": [{"name": name} for name in names]}


def relation(ids: Iterable[str]) -> dict[str, Any]:
    return {"relation": [{"id": record_id} for record_id in ids]}


def checkbox(value: bool) -> dict[str, Any]:
    return {"checkbox": bool(value)}


def date(start: str) -> dict[str, Any]:
    return {"date": {"start": start}}


# ---------------------------------------------------------------------------
# Property names per database
# ---------------------------------------------------------------------------


class ProjectProps:
    NAME = "Name"
    LIFE_DOMAIN = "Life Domains"
    FLAGSHIP = "Flagship"
    STATUS = "Status"
    DUE = "Due"
    DOD = "DoD"
    KPI = "KPI"
    NOTES = "Notes"


class TaskProps:
    NAME = "Name"
    PROJECT = "Project"
    STATUS = "Status"
    PRIORITY = "Priority"
    DUE = "Due"
    SHIPPABLE = "Shippable"
    NOTES = "Notes"
    JOURNAL = "Journal"


class JournalProps:
    TITLE = "Title"
    TYPE = "Type"
    CONTENT = "Content"
    DATE = "Date"
    PROJECT = "Project"
    LIFE_DOMAIN = "Life Domains"
    ACTION_ITEMS = "Action Items (Tasks)"


class ContentProps:
    TITLE = "Title"
    TYPE = "Type"
    TAGS = "Tags"
    PROJECT = "Project"
    LIFE_DOMAIN = "Life Domains"
    DATE = "Date"
    BODY = "Content"


TITLE_PROPERTY: dict[RecordKind, str] = {
    RecordKind.PROJECT: ProjectProps.NAME,
    RecordKind.TASK: TaskProps.NAME,
    RecordKind.JOURNAL: JournalProps.TITLE,
    RecordKind.CONTENT: ContentProps.TITLE,
}


def _put(patch: PropertyPatch, key: str, value: Any, encoder) -> None:
    if value is None:
        return
    if isinstance(value, (list, tuple)) and not value:
        return
    patch[key] = encoder(value)


def _single_relation(record_id: str) -> dict[str, Any]:
    return relation([record_id])


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


# ---------------------------------------------------------------------------
# Per-kind builders
# ---------------------------------------------------------------------------


def _project_patch(params: ProjectCreateParams | ProjectUpdateParams) -> PropertyPatch:
    patch: PropertyPatch = {}
    _put(patch, ProjectProps.NAME, params.name, title)
    _put(patch, ProjectProps.LIFE_DOMAIN, params.life_domain_id, _single_relation)
    _put(patch, ProjectProps.FLAGSHIP, params.flagship, checkbox)
    _put(patch, ProjectProps.STATUS, params.status, select)
    _put(patch, ProjectProps.DUE, params.due, date)
    _put(patch, ProjectProps.DOD, params.dod, rich_text)
    _put(patch, ProjectProps.KPI, params.kpi, rich_text)
    _put(patch, ProjectProps.NOTES, params.notes, rich_text)
    return patch


def _task_patch(params: TaskCreateParams | TaskUpdateParams) -> PropertyPatch:
    patch: PropertyPatch = {}
    _put(patch, TaskProps.NAME, params.name, title)
    _put(patch, TaskProps.PROJECT, params.project_id, _single_relation)
    # Status is a status-typed column in the Tasks database, not a select.
    _put(patch, TaskProps.STATUS, _enum_value(params.status), status)
    _put(patch, TaskProps.PRIORITY, _enum_value(params.priority), select)
    _put(patch, TaskProps.DUE, params.due, date)
    _put(patch, TaskProps.SHIPPABLE, params.shippable, checkbox)
    _put(patch, TaskProps.NOTES, params.notes, rich_text)
    if isinstance(params, TaskUpdateParams):
        _put(patch, TaskProps.JOURNAL, params.journal_id, _single_relation)
    return patch


def _journal_patch(params: JournalCreateParams | JournalUpdateParams) -> PropertyPatch:
    patch: PropertyPatch = {}
    _put(patch, JournalProps.TITLE, params.title, title)
    _put(patch, JournalProps.TYPE, params.type, select)
    _put(patch, JournalProps.CONTENT, params.content, rich_text)
    _put(patch, JournalProps.DATE, params.date, date)
    _put(patch, JournalProps.PROJECT, params.project_id, _single_relation)
    _put(patch, JournalProps.LIFE_DOMAIN, params.life_domain_id, _single_relation)
    _put(patch, JournalProps.ACTION_ITEMS, params.action_item_ids, relation)
    return patch


def _content_patch(params: ContentCreateParams | ContentUpdateParams) -> PropertyPatch:
    patch: PropertyPatch = {}
    _put(patch, ContentProps.TITLE, params.title, title)
    _put(patch, ContentProps.TYPE, params.type, select)
    _put(patch, ContentProps.TAGS, params.tags, multi_select)
    _put(patch, ContentProps.PROJECT, params.project_id, _single_relation)
    _put(patch, ContentProps.LIFE_DOMAIN, params.life_domain_id, _single_relation)
    _put(patch, ContentProps.DATE, params.date, date)
    _put(patch, ContentProps.BODY, params.body, rich_text)
    return patch


def build_project_properties(params: ProjectCreateParams) -> PropertyPatch:
    return _project_patch(params)


def build_task_properties(params: TaskCreateParams) -> PropertyPatch:
    """Full task patch; the Project relation must already be resolved to an id."""
    if not params.project_id:
        raise ValueError("task properties need a resolved projectId")
    return _task_patch(params)


def build_journal_properties(params: JournalCreateParams) -> PropertyPatch:
    return _journal_patch(params)


def build_content_properties(params: ContentCreateParams) -> PropertyPatch:
    return _content_patch(params)


_UPDATE_BUILDERS = {
    RecordKind.PROJECT: _project_patch,
    RecordKind.TASK: _task_patch,
    RecordKind.JOURNAL: _journal_patch,
    RecordKind.CONTENT: _content_patch,
}


def build_update_properties(record_kind: RecordKind, params: ActionParams) -> PropertyPatch:
    """Patch containing only the properties present in `params`.

    Lookup keys (`taskId`, `projectName`, ...) never reach the patch; unset fields are
    omitted rather than sent as null.
    """
    return _UPDATE_BUILDERS[record_kind](params)


__all__ = [
    "ContentProps",
    "JournalProps",
    "ProjectProps",
    "PropertyPatch",
    "TITLE_PROPERTY",
    "TaskProps",
    "build_content_properties",
    "build_journal_properties",
    "build_project_properties",
    "build_task_properties",
    "build_update_properties",
    "checkbox",
    "date",
    "multi_select",
    "relation",
    "rich_text",
    "select",
    "status",
    "title",
]
