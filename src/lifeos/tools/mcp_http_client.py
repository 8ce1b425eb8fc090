"""JSON-RPC client for the remote MCP tool server.

Every external mutation (Notion page create/update, calendar create/update/delete/list)
is a single `tools/call` round trip. The server wraps results in several ways, so
decoding runs through ordered chains of named strategies; the first one that matches
wins and is recorded on the `ToolResult`.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import httpx

from lifeos.core.config import PipelineConfig
from lifeos.core.logging_config import record_error, record_tool_call
from lifeos.errors import ToolError, TransportError
from lifeos.tools.mcp_url_validation import validate_mcp_url

logger = logging.getLogger(__name__)

_NO_MATCH = object()

# Helper actions are hidden from `tools/list` unless asked for.
LIST_TOOLS_QUERY = {"include_composio_helper_actions": "true"}


@dataclass(frozen=True)
class ToolResult:
    """Decoded outcome of one tool call."""

    tool: str
    payload: Any
    raw: Any
    strategy: str


@dataclass(frozen=True)
class UnwrapStrategy:
    """One named decoding step; `apply` returns `_NO_MATCH` when the shape does not fit."""

    name: str
    apply: Callable[[Any], Any]


def _json_body(text: Any) -> Any:
    if not isinstance(text, str):
        return _NO_MATCH
    try:
        decoded = json.loads(text)
    except ValueError:
        return _NO_MATCH
    return decoded if isinstance(decoded, dict) else _NO_MATCH


def _sse_event(text: Any) -> Any:
    if not isinstance(text, str):
        return _NO_MATCH
    for line in text.splitlines():
        if not line.startswith("data:"):
            continue
        try:
            decoded = json.loads(line[len("data:"):].strip())
        except ValueError:
            return _NO_MATCH
        return decoded if isinstance(decoded, dict) else _NO_MATCH
    return _NO_MATCH


def _text_content(result: Any) -> Any:
    if not isinstance(result, dict):
        return _NO_MATCH
    content = result.get("content")
    if not isinstance(content, list):
        return _NO_MATCH
    for item in content:
        if not isinstance(item, dict) or item.get("type") != "text":
            continue
        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            continue
        try:
            return json.loads(text)
        except ValueError:
            continue
    return _NO_MATCH


def _structured_content(result: Any) -> Any:
    if not isinstance(result, dict):
        return _NO_MATCH
    structured = result.get("structuredContent")
    return _NO_MATCH if structured is None else structured


def _direct_result(result: Any) -> Any:
    return result


BODY_STRATEGIES: tuple[UnwrapStrategy, ...] = (
    UnwrapStrategy("json_body", _json_body),
    UnwrapStrategy("sse_event", _sse_event),
)

RESULT_STRATEGIES: tuple[UnwrapStrategy, ...] = (
    UnwrapStrategy("text_content", _text_content),
    UnwrapStrategy("structured_content", _structured_content),
    UnwrapStrategy("direct_result", _direct_result),
)


def _content_text(result: dict[str, Any]) -> str:
    parts: list[str] = []
    content = result.get("content")
    if isinstance(content, list):
        for item in content:
            if isinstance(item, dict) and isinstance(item.get("text"), str):
                text = item["text"].strip()
                if text:
                    parts.append(text)
    return " | ".join(parts) or "empty error payload"


class McpToolInvoker:
    """Calls named tools on the MCP server through JSON-RPC 2.0 over HTTP."""

    def __init__(
        self,
        config: PipelineConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = validate_mcp_url(config.mcp_url, label="PipelineConfig.mcp_url")
        self._token = config.bearer_token
        self._timeout = config.mcp_timeout_s
        self._client = client
        self._ids = itertools.count(1)

    def _headers(self, idempotency_key: str | None) -> dict[str, str]:
        headers = {"Accept": "application/json, text/event-stream"}
        if self._token:
            token = self._token
            headers["Authorization"] = (
                token if token.startswith("Bearer ") else f"Bearer {token}"
            )
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def call_tool(
        self,
        name: str,
        *,
        arguments: Mapping[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> ToolResult:
        """Invoke one remote tool and return its unwrapped payload.

        Raises:
            ToolError: the server reported a protocol-level or tool-level error.
            TransportError: the endpoint was unreachable or answered an undecodable body.
        """
        logger.debug("Calling tool %s", name, extra={"tool_name": name})
        envelope = await self._post(
            name,
            method="tools/call",
            params={"name": name, "arguments": dict(arguments or {})},
            idempotency_key=idempotency_key,
        )
        result = envelope["result"] if "result" in envelope else envelope
        if isinstance(result, dict) and result.get("isError"):
            self._fail(name, "tool_error")
            raise ToolError(name, _content_text(result))

        for strategy in RESULT_STRATEGIES:
            payload = strategy.apply(result)
            if payload is _NO_MATCH:
                continue
            if isinstance(payload, dict) and payload.get("successful") is False:
                self._fail(name, "tool_error")
                raise ToolError(
                    name, str(payload.get("error") or "remote tool reported failure")
                )
            record_tool_call(tool=name, status="ok")
            logger.debug(
                "Tool %s decoded via %s",
                name,
                strategy.name,
                extra={"tool_name": name, "strategy": strategy.name},
            )
            return ToolResult(
                tool=name, payload=payload, raw=result, strategy=strategy.name
            )
        self._fail(name, "transport_error")
        raise TransportError(name, "tool result has no decodable payload")

    async def list_tools(self) -> list[dict[str, Any]]:
        """Return the tool descriptors advertised by the server."""
        envelope = await self._post(
            "tools/list", method="tools/list", params={}, query=LIST_TOOLS_QUERY
        )
        result = envelope.get("result")
        if isinstance(result, dict) and isinstance(result.get("tools"), list):
            tools = result["tools"]
        elif isinstance(result, list):
            tools = result
        elif isinstance(envelope.get("tools"), list):
            tools = envelope["tools"]
        else:
            tools = []
        record_tool_call(tool="tools/list", status="ok")
        return [tool for tool in tools if isinstance(tool, dict)]

    async def _post(
        self,
        label: str,
        *,
        method: str,
        params: dict[str, Any],
        idempotency_key: str | None = None,
        query: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        headers = self._headers(idempotency_key)
        try:
            if self._client is not None:
                response = await self._client.post(
                    self._url, params=query, json=body, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self._url, params=query, json=body, headers=headers
                    )
        except httpx.HTTPError as exc:
            self._fail(label, "transport_error")
            raise TransportError(
                label, f"request failed ({type(exc).__name__}: {exc})"
            ) from exc

        if not response.is_success:
            self._fail(label, "transport_error")
            raise TransportError(
                label,
                f"HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        text = response.text
        for strategy in BODY_STRATEGIES:
            envelope = strategy.apply(text)
            if envelope is _NO_MATCH:
                continue
            error = envelope.get("error")
            if isinstance(error, dict):
                self._fail(label, "tool_error")
                code = error.get("code")
                raise ToolError(
                    label,
                    str(error.get("message") or "JSON-RPC error"),
                    code=code if isinstance(code, int) else None,
                )
            return envelope
        self._fail(label, "transport_error")
        raise TransportError(
            label,
            f"response is neither JSON nor a single event stream: {text[:200]}",
            status_code=response.status_code,
        )

    @staticmethod
    def _fail(tool: str, status: str) -> None:
        record_tool_call(tool=tool, status=status)
        record_error(component="tool_invoker", error_type=status)


__all__ = [
    "BODY_STRATEGIES",
    "McpToolInvoker",
    "RESULT_STRATEGIES",
    "ToolResult",
    "UnwrapStrategy",
]
