from __future__ import annotations

import base64
import copy
import re
from datetime import datetime
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil import tz
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from lifeos.actions.models import CalendarEventCreateParams, CalendarEventUpdateParams


class GCalEventDateTime(BaseModel):
    """Google Calendar event start/end payload (timed or all-day)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date_time: Optional[str] = Field(default=None, alias="dateTime")  # RFC3339
    date: Optional[str] = None  # YYYY-MM-DD (all-day)
    time_zone: Optional[str] = Field(default=None, alias="timeZone")


class GCalAttendee(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    response_status: Optional[str] = Field(default=None, alias="responseStatus")


class GCalEvent(BaseModel):
    """Google Calendar event resource (subset + extra passthrough)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: Optional[GCalEventDateTime] = None
    end: Optional[GCalEventDateTime] = None
    attendees: Optional[list[GCalAttendee | str]] = None
    status: Optional[str] = None
    html_link: Optional[str] = Field(default=None, alias="htmlLink")

    def attendee_emails(self) -> list[str]:
        emails: list[str] = []
        for attendee in self.attendees or []:
            email = attendee if isinstance(attendee, str) else attendee.email
            if email:
                emails.append(email)
        return emails


_EVENT_PATHS: tuple[tuple[str, ...], ...] = (
    ("items",),
    ("events",),
    ("data", "items"),
    ("data", "events"),
    ("data", "response_data", "items"),
)

_EVENT_ADAPTER = TypeAdapter(GCalEvent)


def _dig(payload: Any, *path: str) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def extract_events(payload: Any) -> list[GCalEvent]:
    """Events from a list-events payload; entries without an id are skipped."""
    raw: Any = payload if isinstance(payload, list) else None
    if raw is None:
        for path in _EVENT_PATHS:
            found = _dig(payload, *path)
            if isinstance(found, list):
                raw = found
                break
    events: list[GCalEvent] = []
    for item in raw or []:
        try:
            events.append(_EVENT_ADAPTER.validate_python(item))
        except ValidationError:
            continue
    return events


def _as_datetime(value: str, default_tz: str) -> datetime:
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz.gettz(default_tz) or tz.UTC)
    return parsed


def to_rfc3339(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def derive_duration(start: str, end: str, *, default_tz: str = "UTC") -> tuple[int, int]:
    """Return `(hours, minutes)` between two ISO timestamps, floored to whole minutes.

    Naive timestamps are read in `default_tz`.

    Raises:
        ValueError: if `end` is not after `start`.
    """
    delta = _as_datetime(end, default_tz) - _as_datetime(start, default_tz)
    total_minutes = int(delta.total_seconds() // 60)
    if total_minutes <= 0:
        raise ValueError("endDateTime must be after startDateTime")
    return divmod(total_minutes, 60)


def build_create_args(
    params: CalendarEventCreateParams, *, calendar_id: str, default_tz: str
) -> dict[str, Any]:
    hours, minutes = derive_duration(
        params.start_date_time, params.end_date_time, default_tz=default_tz
    )
    args: dict[str, Any] = {
        "calendar_id": calendar_id,
        "summary": params.title,
        "start_datetime": params.start_date_time,
        "event_duration_hour": hours,
        "event_duration_minutes": minutes,
        "timezone": params.time_zone or default_tz,
        "attendees": list(params.attendees or []),
    }
    if params.description is not None:
        args["description"] = params.description
    if params.location:
        args["location"] = params.location
    return args


def build_update_args(
    params: CalendarEventUpdateParams,
    *,
    event_id: str,
    calendar_id: str,
    default_tz: str,
    existing: GCalEvent | None = None,
) -> dict[str, Any]:
    """Update arguments merged over `existing`: fields the caller left unset keep their current value."""
    args: dict[str, Any] = {
        "calendar_id": calendar_id,
        "event_id": event_id,
        "timezone": params.time_zone or default_tz,
        "send_updates": True,
    }
    if existing is not None:
        if existing.summary:
            args["summary"] = existing.summary
        if existing.description:
            args["description"] = existing.description
        emails = existing.attendee_emails()
        if emails:
            args["attendees"] = emails
        if existing.location:
            args["location"] = existing.location

    if params.start_date_time:
        args["start_datetime"] = params.start_date_time
        if params.end_date_time:
            hours, minutes = derive_duration(
                params.start_date_time, params.end_date_time, default_tz=default_tz
            )
            args["event_duration_hour"] = hours
            args["event_duration_minutes"] = minutes

    if params.title:
        args["summary"] = params.title
    if params.description is not None:
        args["description"] = params.description
    if params.attendees:
        args["attendees"] = list(params.attendees)
    if params.location:
        args["location"] = params.location
    return args


def build_delete_args(*, event_id: str, calendar_id: str) -> dict[str, Any]:
    return {"calendar_id": calendar_id, "event_id": event_id}


def build_list_args(
    *,
    calendar_id: str,
    time_min: str | None = None,
    time_max: str | None = None,
    max_results: int = 10,
    query: str | None = None,
) -> dict[str, Any]:
    args: dict[str, Any] = {"calendarId": calendar_id, "maxResults": max_results}
    if time_min:
        args["timeMin"] = time_min
    if time_max:
        args["timeMax"] = time_max
    if query:
        args["q"] = query
    return args


_EID = re.compile(r"eid=([^&]+)")
_EVENTEDIT_URL = "https://calendar.google.com/calendar/u/0/r/eventedit/{eid}"


def fix_calendar_link(html_link: str, event_id: str | None, calendar_id: str) -> str:
    """Rewrite an API `htmlLink` into the event-edit URL the web UI opens."""
    match = _EID.search(html_link or "")
    if match:
        return _EVENTEDIT_URL.format(eid=match.group(1))
    if event_id:
        raw = f"{event_id} {calendar_id}".encode("utf-8")
        eid = base64.b64encode(raw).decode("ascii").replace("=", "")
        return _EVENTEDIT_URL.format(eid=eid)
    return html_link


def with_fixed_link(payload: Any, calendar_id: str) -> Any:
    """Copy of an event payload with `htmlLink` repaired and mirrored into `fixedLink`.

    Handles the bare event and the `data.response_data` / `response_data` wrappers;
    anything else is returned unchanged.
    """
    if not isinstance(payload, dict):
        return payload
    repaired = copy.deepcopy(payload)
    for event in (
        _dig(repaired, "data", "response_data"),
        _dig(repaired, "response_data"),
        repaired,
    ):
        if isinstance(event, dict) and isinstance(event.get("htmlLink"), str):
            event["htmlLink"] = fix_calendar_link(
                event["htmlLink"], event.get("id"), calendar_id
            )
            event["fixedLink"] = event["htmlLink"]
            return repaired
    return payload


__all__ = [
    "GCalAttendee",
    "GCalEvent",
    "GCalEventDateTime",
    "build_create_args",
    "build_delete_args",
    "build_list_args",
    "build_update_args",
    "derive_duration",
    "extract_events",
    "fix_calendar_link",
    "to_rfc3339",
    "with_fixed_link",
]
