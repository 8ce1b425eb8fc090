"""Action execution: validate, resolve names, then run the remote tool calls."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from lifeos.actions.kinds import ActionKind, RecordKind
from lifeos.actions.models import (
    Action,
    AnyParams,
    CalendarEventCreateParams,
    CalendarEventDeleteParams,
    CalendarEventListParams,
    CalendarEventUpdateParams,
    JournalCreateParams,
    missing_fields,
    parse_params,
)
from lifeos.adapters.calendar.models import (
    GCalEvent,
    build_create_args,
    build_delete_args,
    build_list_args,
    build_update_args,
    derive_duration,
    extract_events,
    to_rfc3339,
    with_fixed_link,
)
from lifeos.adapters.notion.payloads import extract_record_id
from lifeos.adapters.notion.properties import (
    TITLE_PROPERTY,
    PropertyPatch,
    build_content_properties,
    build_journal_properties,
    build_project_properties,
    build_task_properties,
    build_update_properties,
)
from lifeos.core.config import PipelineConfig
from lifeos.core.logging_config import observe_stage_duration, record_error
from lifeos.errors import ParamsValidationError, ToolError, TransportError
from lifeos.pipeline.results import (
    ExecutionResult,
    ExecutionStage,
    Failure,
    MissingFields,
    PhaseOutcome,
    Success,
)
from lifeos.resolution.resolver import EntityClass, EntityResolver, ToolInvoker

logger = logging.getLogger(__name__)

CREATE_PAGE_TOOL = "NOTION_CREATE_NOTION_PAGE"
UPDATE_PAGE_TOOL = "NOTION_UPDATE_PAGE"
APPEND_CONTENT_TOOL = "NOTION_ADD_MULTIPLE_PAGE_CONTENT"
CREATE_EVENT_TOOL = "GOOGLECALENDAR_CREATE_EVENT"
UPDATE_EVENT_TOOL = "GOOGLECALENDAR_UPDATE_EVENT"
DELETE_EVENT_TOOL = "GOOGLECALENDAR_DELETE_EVENT"
LIST_EVENTS_TOOL = "GOOGLECALENDAR_EVENTS_LIST"

PREFETCH_LOOKBACK = timedelta(days=7)
PREFETCH_LOOKAHEAD = timedelta(days=30)
PREFETCH_LIMIT = 100

_CREATE_BUILDERS: dict[ActionKind, Callable[[Any], PropertyPatch]] = {
    ActionKind.CREATE_PROJECT: build_project_properties,
    ActionKind.CREATE_TASK: build_task_properties,
    ActionKind.LOG_NOTE: build_journal_properties,
    ActionKind.CREATE_CONTENT: build_content_properties,
}

# Update target id attribute per record family.
_UPDATE_TARGETS: dict[RecordKind, str] = {
    RecordKind.PROJECT: "project_id",
    RecordKind.TASK: "task_id",
    RecordKind.JOURNAL: "journal_id",
    RecordKind.CONTENT: "content_id",
}

_RemoteErrors = (ToolError, TransportError)


class _PhaseFailed(Exception):
    def __init__(self, stage: ExecutionStage, error: Exception) -> None:
        self.stage = stage
        self.error = error
        super().__init__(str(error))


class _Run:
    """Per-request phase log; never shared between requests."""

    def __init__(self, kind: ActionKind, request_id: Optional[str]) -> None:
        self.kind = kind
        self.request_id = request_id
        self.phases: list[PhaseOutcome] = []

    def key(self, stage: ExecutionStage) -> Optional[str]:
        return f"{self.request_id}:{stage.value}" if self.request_id else None

    def log_extra(self, stage: ExecutionStage, **extra: Any) -> dict[str, Any]:
        return {
            "action": self.kind.value,
            "stage": stage.value,
            "request_id": self.request_id,
            **extra,
        }


class ActionExecutor:
    """Runs one `Action` to completion or to its first unrecoverable failure.

    Calls are strictly sequential. Remote and validation errors come back as
    `Failure` values; programming errors propagate.
    """

    def __init__(
        self,
        invoker: ToolInvoker,
        resolver: EntityResolver,
        config: PipelineConfig,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._invoker = invoker
        self._resolver = resolver
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def execute(
        self, action: Action, *, request_id: Optional[str] = None
    ) -> ExecutionResult:
        kind = action.kind
        missing = missing_fields(kind, action.params)
        if missing:
            logger.info(
                "Action %s is missing %s",
                kind.value,
                ", ".join(missing),
                extra={"action": kind.value, "stage": ExecutionStage.VALIDATE.value},
            )
            return MissingFields(kind=kind, fields=tuple(missing))

        try:
            params = parse_params(kind, action.params)
        except ParamsValidationError as exc:
            record_error(component="executor", error_type="validation")
            return Failure(
                kind=kind,
                stage=ExecutionStage.VALIDATE,
                error=str(exc),
                fields=tuple(exc.fields),
            )

        run = _Run(kind, request_id)
        started = time.perf_counter()
        resolved = await self._resolve(kind, params)
        observe_stage_duration(
            stage=ExecutionStage.RESOLVE.value, duration_s=time.perf_counter() - started
        )
        if isinstance(resolved, Failure):
            return resolved

        if kind.is_calendar:
            return await self._dispatch_calendar(run, resolved)
        if kind.is_create:
            return await self._create_record(run, resolved)
        return await self._update_record(run, resolved)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _resolve(
        self, kind: ActionKind, params: AnyParams
    ) -> AnyParams | Failure:
        updates: dict[str, Any] = {}

        project_name = getattr(params, "project_name", None)
        if project_name and not getattr(params, "project_id", None):
            ref = await self._resolver.resolve(EntityClass.PROJECT, project_name)
            if ref is None:
                return self._not_found(kind, "project", project_name, "projectId")
            updates["project_id"] = ref.id

        task_name = getattr(params, "task_name", None)
        if task_name and not getattr(params, "task_id", None):
            ref = await self._resolver.resolve(EntityClass.TASK, task_name)
            if ref is None:
                return self._not_found(kind, "task", task_name, "taskId")
            updates["task_id"] = ref.id

        task_names = getattr(params, "task_names", None)
        if task_names:
            item_ids = list(getattr(params, "action_item_ids", None) or [])
            for name in task_names:
                ref = await self._resolver.resolve(EntityClass.TASK, name)
                if ref is None:
                    return self._not_found(kind, "task", name, "actionItemIds")
                if ref.id not in item_ids:
                    item_ids.append(ref.id)
            updates["action_item_ids"] = item_ids

        event_name = getattr(params, "event_name", None)
        if event_name and not getattr(params, "event_id", None):
            # Updates also reach events from the past week; deletes look ahead only.
            ref = await self._resolver.resolve(
                EntityClass.CALENDAR_EVENT,
                event_name,
                for_update=kind is ActionKind.UPDATE_CALENDAR_EVENT,
            )
            if ref is None:
                return self._not_found(kind, "calendar event", event_name, "eventId")
            updates["event_id"] = ref.id

        return params.model_copy(update=updates) if updates else params

    @staticmethod
    def _not_found(kind: ActionKind, noun: str, name: str, field: str) -> Failure:
        record_error(component="executor", error_type="resolution_not_found")
        return Failure(
            kind=kind,
            stage=ExecutionStage.RESOLVE,
            error=(
                f'Could not find a {noun} matching "{name}". '
                f"Please check the name or provide a specific {field}."
            ),
            fields=(field,),
        )

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def _call(
        self,
        run: _Run,
        stage: ExecutionStage,
        tool: str,
        arguments: dict[str, Any],
        *,
        mutating: bool = True,
    ) -> Any:
        started = time.perf_counter()
        try:
            result = await self._invoker.call_tool(
                tool,
                arguments=arguments,
                idempotency_key=run.key(stage) if mutating else None,
            )
        except _RemoteErrors as exc:
            run.phases.append(PhaseOutcome(stage=stage, tool=tool, ok=False, error=str(exc)))
            record_error(component="executor", error_type=type(exc).__name__)
            logger.warning(
                "%s failed during %s: %s",
                tool,
                stage.value,
                exc,
                extra=run.log_extra(stage, tool_name=tool),
            )
            raise _PhaseFailed(stage, exc) from exc
        finally:
            observe_stage_duration(stage=stage.value, duration_s=time.perf_counter() - started)
        run.phases.append(PhaseOutcome(stage=stage, tool=tool, ok=True, output=result.payload))
        return result.payload

    def _failed(
        self, run: _Run, failure: _PhaseFailed, *, record_id: Optional[str] = None
    ) -> Failure:
        return Failure(
            kind=run.kind,
            stage=failure.stage,
            error=str(failure.error),
            record_id=record_id,
            phases=tuple(run.phases),
        )

    # ------------------------------------------------------------------
    # Document database
    # ------------------------------------------------------------------

    def _database_for(self, record_kind: RecordKind) -> str:
        databases = self._config.databases
        return {
            RecordKind.PROJECT: databases.projects,
            RecordKind.TASK: databases.tasks,
            RecordKind.JOURNAL: databases.journal,
            RecordKind.CONTENT: databases.content,
        }[record_kind]

    async def _create_record(self, run: _Run, params: AnyParams) -> ExecutionResult:
        record_kind = run.kind.record_kind
        properties = _CREATE_BUILDERS[run.kind](params)
        title_prop = TITLE_PROPERTY[record_kind]
        database_id = self._database_for(record_kind)
        title_text = properties[title_prop]["title"][0]["text"]["content"]

        try:
            created = await self._call(
                run,
                ExecutionStage.CREATE,
                CREATE_PAGE_TOOL,
                {"parent_id": database_id, "title": title_text},
            )
        except _PhaseFailed as failure:
            return self._failed(run, failure)

        record_id = extract_record_id(created)
        if not record_id:
            record_error(component="executor", error_type="missing_record_id")
            return Failure(
                kind=run.kind,
                stage=ExecutionStage.CREATE,
                error="create response carried no page id",
                phases=tuple(run.phases),
            )
        logger.info(
            "Created %s page %s",
            record_kind.value,
            record_id,
            extra=run.log_extra(ExecutionStage.CREATE, record_id=record_id),
        )

        patch = {key: value for key, value in properties.items() if key != title_prop}
        data: dict[str, Any] = {"database_id": database_id, "page_id": record_id, "create": created}
        if patch:
            try:
                data["update"] = await self._call(
                    run,
                    ExecutionStage.PATCH,
                    UPDATE_PAGE_TOOL,
                    {"page_id": record_id, "properties": patch},
                )
            except _PhaseFailed as failure:
                return self._failed(run, failure, record_id=record_id)

        if isinstance(params, JournalCreateParams) and params.content:
            try:
                data["content"] = await self._call(
                    run,
                    ExecutionStage.APPEND,
                    APPEND_CONTENT_TOOL,
                    {
                        "parent_block_id": record_id,
                        "content_blocks": [
                            {"content_block": {"type": "text", "content": params.content}}
                        ],
                    },
                )
            except _PhaseFailed:
                logger.warning(
                    "Journal page %s created without its body content",
                    record_id,
                    extra=run.log_extra(ExecutionStage.APPEND, record_id=record_id),
                )

        return Success(kind=run.kind, record_id=record_id, data=data, phases=tuple(run.phases))

    async def _update_record(self, run: _Run, params: AnyParams) -> ExecutionResult:
        record_kind = run.kind.record_kind
        target_id = getattr(params, _UPDATE_TARGETS[record_kind])
        patch = build_update_properties(record_kind, params)
        if not patch:
            return Failure(
                kind=run.kind,
                stage=ExecutionStage.VALIDATE,
                error="Nothing to update: no properties were provided.",
            )
        try:
            updated = await self._call(
                run,
                ExecutionStage.UPDATE,
                UPDATE_PAGE_TOOL,
                {"page_id": target_id, "properties": patch},
            )
        except _PhaseFailed as failure:
            return self._failed(run, failure)
        return Success(
            kind=run.kind,
            record_id=target_id,
            data={"page_id": target_id, "result": updated},
            phases=tuple(run.phases),
        )

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------

    async def _dispatch_calendar(self, run: _Run, params: AnyParams) -> ExecutionResult:
        calendar_id = self._config.calendar_id
        default_tz = self._config.default_timezone

        if isinstance(params, CalendarEventListParams):
            arguments = build_list_args(
                calendar_id=calendar_id,
                time_min=params.time_min,
                time_max=params.time_max,
                max_results=params.max_results,
                query=params.query,
            )
            try:
                listed = await self._call(
                    run, ExecutionStage.LIST, LIST_EVENTS_TOOL, arguments, mutating=False
                )
            except _PhaseFailed as failure:
                return self._failed(run, failure)
            events = [
                event.model_dump(by_alias=True, exclude_none=True)
                for event in extract_events(listed)
            ]
            return Success(kind=run.kind, data=events, phases=tuple(run.phases))

        if isinstance(params, CalendarEventDeleteParams):
            try:
                deleted = await self._call(
                    run,
                    ExecutionStage.DELETE,
                    DELETE_EVENT_TOOL,
                    build_delete_args(event_id=params.event_id, calendar_id=calendar_id),
                )
            except _PhaseFailed as failure:
                return self._failed(run, failure)
            return Success(
                kind=run.kind, record_id=params.event_id, data=deleted, phases=tuple(run.phases)
            )

        if isinstance(params, CalendarEventCreateParams):
            try:
                arguments = build_create_args(
                    params, calendar_id=calendar_id, default_tz=default_tz
                )
            except ValueError as exc:
                return self._bad_interval(run, exc)
            try:
                created = await self._call(run, ExecutionStage.CREATE, CREATE_EVENT_TOOL, arguments)
            except _PhaseFailed as failure:
                return self._failed(run, failure)
            data = with_fixed_link(created, calendar_id)
            return Success(
                kind=run.kind,
                record_id=extract_record_id(data),
                data=data,
                phases=tuple(run.phases),
            )

        return await self._update_event(run, params)

    async def _update_event(
        self, run: _Run, params: CalendarEventUpdateParams
    ) -> ExecutionResult:
        calendar_id = self._config.calendar_id
        default_tz = self._config.default_timezone
        if params.start_date_time and params.end_date_time:
            try:
                derive_duration(
                    params.start_date_time, params.end_date_time, default_tz=default_tz
                )
            except ValueError as exc:
                return self._bad_interval(run, exc)

        existing = await self._prefetch_event(run, params.event_id)
        arguments = build_update_args(
            params,
            event_id=params.event_id,
            calendar_id=calendar_id,
            default_tz=default_tz,
            existing=existing,
        )
        try:
            updated = await self._call(run, ExecutionStage.UPDATE, UPDATE_EVENT_TOOL, arguments)
        except _PhaseFailed as failure:
            return self._failed(run, failure)
        return Success(
            kind=run.kind,
            record_id=params.event_id,
            data=with_fixed_link(updated, calendar_id),
            phases=tuple(run.phases),
        )

    async def _prefetch_event(self, run: _Run, event_id: str) -> GCalEvent | None:
        """Current state of the event, found by listing the recent window."""
        now = self._clock()
        arguments = build_list_args(
            calendar_id=self._config.calendar_id,
            time_min=to_rfc3339(now - PREFETCH_LOOKBACK),
            time_max=to_rfc3339(now + PREFETCH_LOOKAHEAD),
            max_results=PREFETCH_LIMIT,
        )
        try:
            listed = await self._call(
                run, ExecutionStage.LIST, LIST_EVENTS_TOOL, arguments, mutating=False
            )
        except _PhaseFailed:
            logger.warning(
                "Could not prefetch event %s; updating without merge",
                event_id,
                extra=run.log_extra(ExecutionStage.LIST, record_id=event_id),
            )
            return None
        for event in extract_events(listed):
            if event.id == event_id:
                return event
        return None

    @staticmethod
    def _bad_interval(run: _Run, exc: ValueError) -> Failure:
        return Failure(
            kind=run.kind,
            stage=ExecutionStage.VALIDATE,
            error=str(exc),
            fields=("endDateTime",),
        )


__all__ = ["ActionExecutor"]
