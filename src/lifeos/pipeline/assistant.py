"""Calling layer: model proposal, one repair attempt, execution and composition."""

from __future__ import annotations

import logging
import time
import uuid
from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from lifeos.actions.models import Action
from lifeos.actions.parser import parse_action
from lifeos.adapters.notion.payloads import ProjectSummary
from lifeos.core.logging_config import record_error
from lifeos.errors import ActionParseError, ToolError, TransportError
from lifeos.pipeline.composer import AssistantResponse, compose_response
from lifeos.pipeline.executor import ActionExecutor
from lifeos.resolution.resolver import EntityResolver

logger = logging.getLogger(__name__)


class ActionProposer(Protocol):
    """Turns an instruction into raw model text expected to hold one action object.

    In repair mode `previous` carries the output that failed to parse.
    """

    async def propose(self, instruction: str, *, previous: Optional[str] = None) -> str: ...


class ToolLister(Protocol):
    async def list_tools(self) -> list[dict]: ...


class ProposalAttempt(str, Enum):
    INITIAL = "initial"
    REPAIR = "repair"


class HealthReport(BaseModel):
    ok: bool
    status: str
    tools: list[str] = Field(default_factory=list)
    error: Optional[str] = None


class ProjectsReport(BaseModel):
    ok: bool
    projects: list[ProjectSummary] = Field(default_factory=list)
    error: Optional[str] = None


class AssistantService:
    def __init__(
        self,
        proposer: ActionProposer,
        executor: ActionExecutor,
        invoker: ToolLister,
        resolver: EntityResolver,
    ) -> None:
        self._proposer = proposer
        self._executor = executor
        self._invoker = invoker
        self._resolver = resolver

    async def handle(
        self, instruction: str, *, request_id: Optional[str] = None
    ) -> AssistantResponse:
        """Handle one instruction end to end.

        The proposer is asked at most twice: once normally, and once in repair mode
        if the first output does not parse. The parser itself never retries.
        """
        request_id = request_id or uuid.uuid4().hex
        started = time.perf_counter()

        outputs: dict[ProposalAttempt, str] = {}
        action: Action | None = None
        error: ActionParseError | None = None
        for attempt in (ProposalAttempt.INITIAL, ProposalAttempt.REPAIR):
            previous = outputs.get(ProposalAttempt.INITIAL)
            raw = await self._proposer.propose(instruction, previous=previous)
            outputs[attempt] = raw
            try:
                action = parse_action(raw)
                break
            except ActionParseError as exc:
                error = exc
                logger.info(
                    "Model output failed to parse on %s attempt (%s)",
                    attempt.value,
                    exc.reason,
                    extra={"stage": "parse", "request_id": request_id},
                )

        if action is None:
            record_error(component="assistant", error_type="parse")
            return AssistantResponse(
                success=False,
                error="Failed to parse model response after repair attempt",
                stage="parse",
                data={
                    "details": str(error),
                    "reason": error.reason if error else None,
                    "original_response": outputs.get(ProposalAttempt.INITIAL),
                    "repair_response": outputs.get(ProposalAttempt.REPAIR),
                },
            )

        result = await self._executor.execute(action, request_id=request_id)
        response = compose_response(action.kind, result)
        logger.info(
            "Handled %s in %.0f ms (success=%s)",
            action.kind.value,
            (time.perf_counter() - started) * 1000,
            response.success,
            extra={"action": action.kind.value, "request_id": request_id},
        )
        return response

    async def health(self) -> HealthReport:
        """Check the tool server by listing its tools."""
        try:
            tools = await self._invoker.list_tools()
        except (ToolError, TransportError) as exc:
            logger.warning("Tool server health check failed: %s", exc)
            return HealthReport(ok=False, status="connection_failed", error=str(exc))
        names = [str(tool.get("name")) for tool in tools if tool.get("name")]
        return HealthReport(ok=True, status="connected", tools=names)

    async def projects(self) -> ProjectsReport:
        """List the projects database; remote failures come back on the report."""
        try:
            projects = await self._resolver.list_projects()
        except (ToolError, TransportError) as exc:
            logger.warning("Project listing failed: %s", exc, extra={"tool_name": exc.tool})
            record_error(component="assistant", error_type="projects")
            return ProjectsReport(ok=False, error=str(exc))
        return ProjectsReport(ok=True, projects=projects)


__all__ = [
    "ActionProposer",
    "AssistantService",
    "HealthReport",
    "ProjectsReport",
    "ProposalAttempt",
]
