from __future__ import annotations

import pytest

from helpers import (
    CALENDAR_ID,
    JOURNAL_DB,
    PROJECTS_DB,
    TASKS_DB,
    calendar_event,
    created_payload,
    notion_page,
    query_payload,
)
from lifeos.actions.kinds import ActionKind
from lifeos.actions.models import Action
from lifeos.errors import ToolError, TransportError
from lifeos.pipeline.executor import ActionExecutor
from lifeos.pipeline.results import ExecutionStage, Failure, MissingFields, Success
from lifeos.resolution.resolver import EntityResolver


@pytest.fixture
def executor(invoker, pipeline_config, fixed_clock) -> ActionExecutor:
    resolver = EntityResolver(invoker, pipeline_config, clock=fixed_clock)
    return ActionExecutor(invoker, resolver, pipeline_config, clock=fixed_clock)


def _task_action(**overrides) -> Action:
    params = {
        "name": "Write tests",
        "projectName": "Aura",
        "status": "Next",
        "priority": "P1 - High",
        "due": "2025-01-20",
    }
    params.update(overrides)
    return Action(ActionKind.CREATE_TASK, params)


def _projects(invoker) -> None:
    invoker.script(
        "NOTION_QUERY_DATABASE",
        query_payload(notion_page("p-aura", "Aura Life OS", database_id=PROJECTS_DB)),
    )


# ---------------------------------------------------------------------------
# Validation and resolution
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_missing_fields_short_circuit_before_any_call(invoker, executor) -> None:
    result = await executor.execute(_task_action(priority="MISSING_INFO", due=None))

    assert isinstance(result, MissingFields)
    assert result.fields == ("priority", "due")
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_invalid_params_fail_validation(invoker, executor) -> None:
    result = await executor.execute(_task_action(status="Someday"))

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.VALIDATE
    assert result.fields == ("status",)
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_unresolved_project_stops_before_create(invoker, executor) -> None:
    invoker.script(
        "NOTION_QUERY_DATABASE",
        query_payload(notion_page("p-garden", "Garden", database_id=PROJECTS_DB)),
    )

    result = await executor.execute(_task_action(projectName="Nonexistent"))

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.RESOLVE
    assert result.fields == ("projectId",)
    assert "Nonexistent" in result.error
    assert invoker.names() == ["NOTION_QUERY_DATABASE"]


@pytest.mark.asyncio
async def test_explicit_project_id_skips_resolution(invoker, executor) -> None:
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("t-new"))
    invoker.script("NOTION_UPDATE_PAGE", {"successful": True})

    result = await executor.execute(_task_action(projectName=None, projectId="p-given"))

    assert isinstance(result, Success)
    assert invoker.names() == ["NOTION_CREATE_NOTION_PAGE", "NOTION_UPDATE_PAGE"]
    patch = invoker.calls[1].arguments["properties"]
    assert patch["Project"] == {"relation": [{"id": "p-given"}]}


# ---------------------------------------------------------------------------
# Two-phase create
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_task_resolves_project_then_creates_and_patches(invoker, executor) -> None:
    _projects(invoker)
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("t-new"))
    invoker.script("NOTION_UPDATE_PAGE", {"successful": True, "data": {"id": "t-new"}})

    result = await executor.execute(_task_action(), request_id="req-1")

    assert isinstance(result, Success)
    assert result.record_id == "t-new"
    assert invoker.names() == [
        "NOTION_QUERY_DATABASE",
        "NOTION_CREATE_NOTION_PAGE",
        "NOTION_UPDATE_PAGE",
    ]

    create = invoker.calls[1]
    assert create.arguments == {"parent_id": TASKS_DB, "title": "Write tests"}

    patch = invoker.calls[2]
    assert patch.arguments["page_id"] == "t-new"
    assert "Name" not in patch.arguments["properties"]
    assert patch.arguments["properties"]["Project"] == {"relation": [{"id": "p-aura"}]}
    assert patch.arguments["properties"]["Status"] == {"status": {"name": "Next"}}

    assert result.data["database_id"] == TASKS_DB
    assert result.data["page_id"] == "t-new"
    assert [phase.stage for phase in result.phases] == [
        ExecutionStage.CREATE,
        ExecutionStage.PATCH,
    ]


@pytest.mark.asyncio
async def test_mutating_calls_carry_per_stage_idempotency_keys(invoker, executor) -> None:
    _projects(invoker)
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("t-new"))
    invoker.script("NOTION_UPDATE_PAGE", {"successful": True})

    await executor.execute(_task_action(), request_id="req-1")

    assert [call.idempotency_key for call in invoker.calls] == [
        None,
        "req-1:create",
        "req-1:patch",
    ]


@pytest.mark.asyncio
async def test_project_with_only_a_name_skips_patch(invoker, executor) -> None:
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("p-new"))

    result = await executor.execute(Action(ActionKind.CREATE_PROJECT, {"name": "Aura"}))

    assert isinstance(result, Success)
    assert invoker.names() == ["NOTION_CREATE_NOTION_PAGE"]
    assert invoker.calls[0].arguments == {"parent_id": PROJECTS_DB, "title": "Aura"}
    assert invoker.calls[0].idempotency_key is None
    assert "update" not in result.data


@pytest.mark.asyncio
async def test_create_failure_reports_create_stage(invoker, executor) -> None:
    invoker.script("NOTION_CREATE_NOTION_PAGE", ToolError("NOTION_CREATE_NOTION_PAGE", "denied"))

    result = await executor.execute(Action(ActionKind.CREATE_PROJECT, {"name": "Aura"}))

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.CREATE
    assert result.record_id is None
    assert "denied" in result.error


@pytest.mark.asyncio
async def test_create_without_page_id_fails(invoker, executor) -> None:
    invoker.script("NOTION_CREATE_NOTION_PAGE", {"successful": True, "data": {}})

    result = await executor.execute(Action(ActionKind.CREATE_PROJECT, {"name": "Aura"}))

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.CREATE


@pytest.mark.asyncio
async def test_patch_failure_keeps_created_record_id(invoker, executor) -> None:
    _projects(invoker)
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("t-new"))
    invoker.script("NOTION_UPDATE_PAGE", TransportError("NOTION_UPDATE_PAGE", "HTTP 500: oops"))

    result = await executor.execute(_task_action())

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.PATCH
    assert result.record_id == "t-new"
    assert [phase.ok for phase in result.phases] == [True, False]


@pytest.mark.asyncio
async def test_log_note_appends_body_and_links_action_items(invoker, executor) -> None:
    invoker.script(
        "NOTION_SEARCH_NOTION_PAGE",
        query_payload(notion_page("t-1", "Ship release notes", database_id=TASKS_DB)),
        query_payload(notion_page("t-2", "Book venue", database_id=TASKS_DB)),
    )
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("j-new"))
    invoker.script("NOTION_UPDATE_PAGE", {"successful": True})
    invoker.script("NOTION_ADD_MULTIPLE_PAGE_CONTENT", {"successful": True})

    result = await executor.execute(
        Action(
            ActionKind.LOG_NOTE,
            {
                "title": "Retro",
                "type": "Meeting",
                "content": "Went well.",
                "actionItemIds": ["t-0"],
                "taskNames": ["release notes", "venue"],
            },
        )
    )

    assert isinstance(result, Success)
    assert invoker.calls_to("NOTION_CREATE_NOTION_PAGE")[0].arguments == {
        "parent_id": JOURNAL_DB,
        "title": "Retro",
    }
    properties = invoker.calls_to("NOTION_UPDATE_PAGE")[0].arguments["properties"]
    assert properties["Action Items (Tasks)"] == {
        "relation": [{"id": "t-0"}, {"id": "t-1"}, {"id": "t-2"}]
    }
    append = invoker.calls_to("NOTION_ADD_MULTIPLE_PAGE_CONTENT")[0].arguments
    assert append == {
        "parent_block_id": "j-new",
        "content_blocks": [{"content_block": {"type": "text", "content": "Went well."}}],
    }
    assert result.failed_phases == ()


@pytest.mark.asyncio
async def test_unresolved_task_name_fails_log_note(invoker, executor) -> None:
    invoker.script("NOTION_SEARCH_NOTION_PAGE", query_payload())

    result = await executor.execute(
        Action(ActionKind.LOG_NOTE, {"title": "Retro", "type": "Meeting", "taskNames": ["ghost"]})
    )

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.RESOLVE
    assert result.fields == ("actionItemIds",)


@pytest.mark.asyncio
async def test_append_failure_is_best_effort(invoker, executor) -> None:
    invoker.script("NOTION_CREATE_NOTION_PAGE", created_payload("j-new"))
    invoker.script("NOTION_UPDATE_PAGE", {"successful": True})
    invoker.script(
        "NOTION_ADD_MULTIPLE_PAGE_CONTENT",
        ToolError("NOTION_ADD_MULTIPLE_PAGE_CONTENT", "block limit"),
    )

    result = await executor.execute(
        Action(ActionKind.LOG_NOTE, {"title": "Retro", "type": "Meeting", "content": "Body"})
    )

    assert isinstance(result, Success)
    assert result.record_id == "j-new"
    assert [phase.stage for phase in result.failed_phases] == [ExecutionStage.APPEND]
    assert "content" not in result.data


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_task_by_name_sends_only_changed_properties(invoker, executor) -> None:
    invoker.script(
        "NOTION_SEARCH_NOTION_PAGE",
        query_payload(notion_page("t-1", "Write tests", database_id=TASKS_DB)),
    )
    invoker.script("NOTION_UPDATE_PAGE", {"successful": True})

    result = await executor.execute(
        Action(ActionKind.UPDATE_TASK, {"taskName": "write tests", "status": "Done"}),
        request_id="req-9",
    )

    assert isinstance(result, Success)
    assert result.record_id == "t-1"
    update = invoker.calls_to("NOTION_UPDATE_PAGE")[0]
    assert update.arguments == {
        "page_id": "t-1",
        "properties": {"Status": {"status": {"name": "Done"}}},
    }
    assert update.idempotency_key == "req-9:update"


@pytest.mark.asyncio
async def test_update_with_nothing_to_change_fails_validation(invoker, executor) -> None:
    result = await executor.execute(Action(ActionKind.UPDATE_CONTENT, {"contentId": "c-1"}))

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.VALIDATE
    assert invoker.calls == []


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_event_derives_duration_and_fixes_link(invoker, executor) -> None:
    invoker.script(
        "GOOGLECALENDAR_CREATE_EVENT",
        {
            "successful": True,
            "data": {
                "response_data": {
                    "id": "evt-new",
                    "htmlLink": "https://www.google.com/calendar/event?eid=e1d",
                }
            },
        },
    )

    result = await executor.execute(
        Action(
            ActionKind.CREATE_CALENDAR_EVENT,
            {
                "title": "Design review",
                "startDateTime": "2025-01-12T09:00:00Z",
                "endDateTime": "2025-01-12T10:30:00Z",
            },
        )
    )

    assert isinstance(result, Success)
    assert result.record_id == "evt-new"
    args = invoker.calls[0].arguments
    assert args["calendar_id"] == CALENDAR_ID
    assert (args["event_duration_hour"], args["event_duration_minutes"]) == (1, 30)
    assert result.data["data"]["response_data"]["fixedLink"] == (
        "https://calendar.google.com/calendar/u/0/r/eventedit/e1d"
    )


@pytest.mark.asyncio
async def test_create_event_with_reversed_times_fails_validation(invoker, executor) -> None:
    result = await executor.execute(
        Action(
            ActionKind.CREATE_CALENDAR_EVENT,
            {
                "title": "Design review",
                "startDateTime": "2025-01-12T10:00:00Z",
                "endDateTime": "2025-01-12T09:00:00Z",
            },
        )
    )

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.VALIDATE
    assert result.fields == ("endDateTime",)
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_update_event_by_name_merges_existing_state(invoker, executor) -> None:
    events = {
        "data": {
            "items": [
                calendar_event(
                    "evt-1",
                    "Dentist appointment",
                    description="Bring card",
                    attendees=[{"email": "me@example.com"}],
                )
            ]
        }
    }
    invoker.script("GOOGLECALENDAR_EVENTS_LIST", events)
    invoker.script("GOOGLECALENDAR_UPDATE_EVENT", {"successful": True, "data": {"id": "evt-1"}})

    result = await executor.execute(
        Action(
            ActionKind.UPDATE_CALENDAR_EVENT,
            {"eventName": "dentist", "location": "Main street 1"},
        )
    )

    assert isinstance(result, Success)
    assert result.record_id == "evt-1"
    assert invoker.names() == [
        "GOOGLECALENDAR_EVENTS_LIST",
        "GOOGLECALENDAR_EVENTS_LIST",
        "GOOGLECALENDAR_UPDATE_EVENT",
    ]
    lookup, prefetch = invoker.calls_to("GOOGLECALENDAR_EVENTS_LIST")
    assert lookup.arguments["timeMin"] == "2025-01-03T12:00:00Z"
    assert prefetch.arguments["maxResults"] == 100
    update = invoker.calls_to("GOOGLECALENDAR_UPDATE_EVENT")[0].arguments
    assert update["event_id"] == "evt-1"
    assert update["summary"] == "Dentist appointment"
    assert update["description"] == "Bring card"
    assert update["attendees"] == ["me@example.com"]
    assert update["location"] == "Main street 1"
    assert "start_datetime" not in update


@pytest.mark.asyncio
async def test_update_event_survives_failed_prefetch(invoker, executor) -> None:
    invoker.script(
        "GOOGLECALENDAR_EVENTS_LIST", TransportError("GOOGLECALENDAR_EVENTS_LIST", "timeout")
    )
    invoker.script("GOOGLECALENDAR_UPDATE_EVENT", {"successful": True})

    result = await executor.execute(
        Action(ActionKind.UPDATE_CALENDAR_EVENT, {"eventId": "evt-1", "title": "Renamed"})
    )

    assert isinstance(result, Success)
    assert [phase.stage for phase in result.failed_phases] == [ExecutionStage.LIST]
    update = invoker.calls_to("GOOGLECALENDAR_UPDATE_EVENT")[0].arguments
    assert update["summary"] == "Renamed"


@pytest.mark.asyncio
async def test_delete_event(invoker, executor) -> None:
    invoker.script("GOOGLECALENDAR_DELETE_EVENT", {"successful": True})

    result = await executor.execute(
        Action(ActionKind.DELETE_CALENDAR_EVENT, {"eventId": "evt-1"}), request_id="req-3"
    )

    assert isinstance(result, Success)
    assert result.record_id == "evt-1"
    call = invoker.calls[0]
    assert call.arguments == {"calendar_id": CALENDAR_ID, "event_id": "evt-1"}
    assert call.idempotency_key == "req-3:delete"


@pytest.mark.asyncio
async def test_delete_event_by_name_searches_from_now(invoker, executor) -> None:
    invoker.script(
        "GOOGLECALENDAR_EVENTS_LIST", {"items": [calendar_event("evt-7", "Standup")]}
    )
    invoker.script("GOOGLECALENDAR_DELETE_EVENT", {"successful": True})

    result = await executor.execute(
        Action(ActionKind.DELETE_CALENDAR_EVENT, {"eventName": "Standup"})
    )

    assert isinstance(result, Success)
    assert result.record_id == "evt-7"
    lookup = invoker.calls_to("GOOGLECALENDAR_EVENTS_LIST")[0].arguments
    assert lookup["timeMin"] == "2025-01-10T12:00:00Z"
    assert lookup["timeMax"] == "2025-02-09T12:00:00Z"
    delete = invoker.calls_to("GOOGLECALENDAR_DELETE_EVENT")[0].arguments
    assert delete["event_id"] == "evt-7"


@pytest.mark.asyncio
async def test_delete_unknown_event_name_fails_resolution(invoker, executor) -> None:
    invoker.script("GOOGLECALENDAR_EVENTS_LIST", {"items": []})

    result = await executor.execute(
        Action(ActionKind.DELETE_CALENDAR_EVENT, {"eventName": "ghost meeting"})
    )

    assert isinstance(result, Failure)
    assert result.stage is ExecutionStage.RESOLVE
    assert result.fields == ("eventId",)
    assert invoker.names() == ["GOOGLECALENDAR_EVENTS_LIST"]


@pytest.mark.asyncio
async def test_list_events_returns_plain_dicts(invoker, executor) -> None:
    invoker.script(
        "GOOGLECALENDAR_EVENTS_LIST",
        {"data": {"items": [calendar_event("evt-1", "Standup")]}},
    )

    result = await executor.execute(
        Action(ActionKind.LIST_CALENDAR_EVENTS, {"query": "standup"}), request_id="req-4"
    )

    assert isinstance(result, Success)
    assert result.data == [
        {
            "id": "evt-1",
            "summary": "Standup",
            "start": {"dateTime": "2025-01-12T09:00:00Z"},
            "end": {"dateTime": "2025-01-12T10:00:00Z"},
        }
    ]
    call = invoker.calls[0]
    assert call.arguments == {"calendarId": CALENDAR_ID, "maxResults": 10, "q": "standup"}
    assert call.idempotency_key is None
