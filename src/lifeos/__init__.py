"""
LifeOS - turns natural-language instructions into Notion and Google Calendar changes.

The action pipeline parses a model's proposed action, resolves names to ids,
and executes it through the MCP tool server.
"""

__version__ = "0.1.0"

from .actions.kinds import ActionKind
from .actions.models import Action
from .actions.parser import parse_action
from .core.config import PipelineConfig, Settings
from .core.runtime import build_assistant
from .pipeline.assistant import AssistantService
from .pipeline.composer import AssistantResponse, compose_response
from .pipeline.executor import ActionExecutor
from .resolution.resolver import EntityResolver
from .tools.mcp_http_client import McpToolInvoker

__all__ = [
    "Action",
    "ActionExecutor",
    "ActionKind",
    "AssistantResponse",
    "AssistantService",
    "EntityResolver",
    "McpToolInvoker",
    "PipelineConfig",
    "Settings",
    "build_assistant",
    "compose_response",
    "parse_action",
]
