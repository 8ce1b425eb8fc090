"""Start-up wiring: settings to a ready `AssistantService`."""

from __future__ import annotations

import logging

import httpx

from lifeos.core.config import Settings
from lifeos.core.logging_config import configure_logging
from lifeos.pipeline.assistant import ActionProposer, AssistantService
from lifeos.pipeline.executor import ActionExecutor
from lifeos.resolution.resolver import EntityResolver
from lifeos.tools.mcp_http_client import McpToolInvoker

logger = logging.getLogger(__name__)


def build_assistant(
    proposer: ActionProposer,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> AssistantService:
    """Validate configuration once and assemble the pipeline around `proposer`.

    Raises:
        ConfigurationError: when required settings are missing.
    """
    settings = settings or Settings()
    config = settings.pipeline_config()
    configure_logging(default_level=settings.log_level)

    invoker = McpToolInvoker(config, client=client)
    resolver = EntityResolver(invoker, config)
    executor = ActionExecutor(invoker, resolver, config)
    logger.info("Action pipeline ready (tool server %s)", config.mcp_url)
    return AssistantService(proposer, executor, invoker, resolver)


__all__ = ["build_assistant"]
