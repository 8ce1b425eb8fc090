"""Fakes and payload builders shared by the unit tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from lifeos.tools.mcp_http_client import ToolResult

PROJECTS_DB = "1b1b1b1b-0000-4000-8000-000000000002"
TASKS_DB = "2c2c2c2c-0000-4000-8000-000000000003"
JOURNAL_DB = "3d3d3d3d-0000-4000-8000-000000000004"
CONTENT_DB = "4e4e4e4e-0000-4000-8000-000000000005"
CALENDAR_ID = "primary@example.com"

FIXED_NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


@dataclass(frozen=True)
class RecordedCall:
    name: str
    arguments: dict[str, Any]
    idempotency_key: Optional[str]


class FakeInvoker:
    """Scripted stand-in for the MCP tool invoker.

    Each tool gets a queue of outcomes; the last one repeats. Exceptions in the
    queue are raised instead of returned. Unscripted tools fail the test.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self.tools: Any = []
        self._scripted: dict[str, list[Any]] = {}

    def script(self, name: str, *outcomes: Any) -> "FakeInvoker":
        self._scripted.setdefault(name, []).extend(outcomes)
        return self

    async def call_tool(
        self,
        name: str,
        *,
        arguments: Optional[dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> ToolResult:
        self.calls.append(RecordedCall(name, dict(arguments or {}), idempotency_key))
        queue = self._scripted.get(name)
        if not queue:
            raise AssertionError(f"unexpected tool call: {name}")
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        return ToolResult(tool=name, payload=outcome, raw=outcome, strategy="fake")

    async def list_tools(self) -> list[dict[str, Any]]:
        if isinstance(self.tools, Exception):
            raise self.tools
        return self.tools

    def names(self) -> list[str]:
        return [call.name for call in self.calls]

    def calls_to(self, name: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.name == name]


def notion_page(
    page_id: str, title: str, *, database_id: str, prop: str = "Name"
) -> dict[str, Any]:
    return {
        "object": "page",
        "id": page_id,
        "url": f"https://www.notion.so/{page_id.replace('-', '')}",
        "parent": {"type": "database_id", "database_id": database_id},
        "properties": {
            prop: {
                "id": "title",
                "type": "title",
                "title": [{"plain_text": title, "text": {"content": title}}],
            }
        },
    }


def query_payload(*pages: dict[str, Any]) -> dict[str, Any]:
    return {"successful": True, "data": {"response_data": {"results": list(pages)}}}


def created_payload(page_id: str) -> dict[str, Any]:
    return {"successful": True, "data": {"data": {"id": page_id, "object": "page"}}}


def calendar_event(event_id: str, summary: str, **extra: Any) -> dict[str, Any]:
    event = {
        "id": event_id,
        "summary": summary,
        "start": {"dateTime": "2025-01-12T09:00:00Z"},
        "end": {"dateTime": "2025-01-12T10:00:00Z"},
    }
    event.update(extra)
    return event
