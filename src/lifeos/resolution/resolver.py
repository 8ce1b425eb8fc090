"""Name-to-id resolution against the remote document database and calendar."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from lifeos.adapters.calendar.models import build_list_args, extract_events, to_rfc3339
from lifeos.adapters.notion.payloads import ProjectSummary, parse_pages
from lifeos.adapters.notion.properties import ProjectProps, TaskProps
from lifeos.core.config import PipelineConfig
from lifeos.core.logging_config import record_error
from lifeos.errors import ToolError, TransportError
from lifeos.resolution.matching import best_match

logger = logging.getLogger(__name__)

QUERY_DATABASE_TOOL = "NOTION_QUERY_DATABASE"
SEARCH_PAGE_TOOL = "NOTION_SEARCH_NOTION_PAGE"
LIST_EVENTS_TOOL = "GOOGLECALENDAR_EVENTS_LIST"

LOOKAHEAD = timedelta(days=30)
UPDATE_LOOKBACK = timedelta(days=7)
CANDIDATE_LIMIT = 50


class ToolInvoker(Protocol):
    async def call_tool(
        self,
        name: str,
        *,
        arguments: Optional[dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any: ...


class EntityClass(str, Enum):
    PROJECT = "project"
    TASK = "task"
    CALENDAR_EVENT = "calendar_event"


@dataclass(frozen=True)
class ResolvedReference:
    id: str
    match_score: float
    title: str


class EntityResolver:
    """Resolve human-readable names into record ids by scored fuzzy matching.

    Candidate listings are fetched per call and never cached. A failed listing
    is logged and treated as "not found".
    """

    def __init__(
        self,
        invoker: ToolInvoker,
        config: PipelineConfig,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._invoker = invoker
        self._config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def resolve(
        self, entity_class: EntityClass, name: str, *, for_update: bool = False
    ) -> ResolvedReference | None:
        query = (name or "").strip()
        if not query:
            return None
        try:
            candidates = await self._candidates(entity_class, query, for_update)
        except (ToolError, TransportError) as exc:
            record_error(component="resolver", error_type=type(exc).__name__)
            logger.warning(
                "Listing %s candidates for %r failed: %s",
                entity_class.value,
                query,
                exc,
            )
            return None

        best = best_match(query, candidates, self._config.match_policy)
        if best is None:
            logger.info(
                "No %s matched %r among %d candidates",
                entity_class.value,
                query,
                len(candidates),
            )
            return None
        record_id, title = best.item
        logger.debug(
            "Resolved %s %r -> %s (%s, score %.1f)",
            entity_class.value,
            query,
            record_id,
            title,
            best.score,
        )
        return ResolvedReference(id=record_id, match_score=best.score, title=title)

    async def list_projects(self) -> list[ProjectSummary]:
        """Every page of the projects database, by title."""
        result = await self._invoker.call_tool(
            QUERY_DATABASE_TOOL,
            arguments={"database_id": self._config.databases.projects},
        )
        return [
            ProjectSummary(id=page.id, name=page.title_text(ProjectProps.NAME) or "", url=page.url)
            for page in parse_pages(result.payload)
            if page.in_database(self._config.databases.projects)
        ]

    async def _candidates(
        self, entity_class: EntityClass, query: str, for_update: bool
    ) -> list[tuple[tuple[str, str], str]]:
        if entity_class is EntityClass.PROJECT:
            return await self._page_candidates(
                QUERY_DATABASE_TOOL,
                {"database_id": self._config.databases.projects},
                database_id=self._config.databases.projects,
                title_prop=ProjectProps.NAME,
            )
        if entity_class is EntityClass.TASK:
            return await self._page_candidates(
                SEARCH_PAGE_TOOL,
                {"query": query, "filter": "page"},
                database_id=self._config.databases.tasks,
                title_prop=TaskProps.NAME,
            )
        return await self._event_candidates(for_update)

    async def _page_candidates(
        self,
        tool: str,
        arguments: dict[str, Any],
        *,
        database_id: str,
        title_prop: str,
    ) -> list[tuple[tuple[str, str], str]]:
        result = await self._invoker.call_tool(tool, arguments=arguments)
        out: list[tuple[tuple[str, str], str]] = []
        for page in parse_pages(result.payload):
            if not page.in_database(database_id):
                continue
            page_title = page.title_text(title_prop)
            if page_title:
                out.append(((page.id, page_title), page_title))
        return out

    async def _event_candidates(self, for_update: bool) -> list[tuple[tuple[str, str], str]]:
        now = self._clock()
        start = now - UPDATE_LOOKBACK if for_update else now
        arguments = build_list_args(
            calendar_id=self._config.calendar_id,
            time_min=to_rfc3339(start),
            time_max=to_rfc3339(now + LOOKAHEAD),
            max_results=CANDIDATE_LIMIT,
        )
        result = await self._invoker.call_tool(LIST_EVENTS_TOOL, arguments=arguments)
        return [
            ((event.id, event.summary), event.summary)
            for event in extract_events(result.payload)
            if event.summary
        ]


__all__ = [
    "EntityClass",
    "EntityResolver",
    "ResolvedReference",
    "ToolInvoker",
]
