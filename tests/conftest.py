from __future__ import annotations

import pytest

from helpers import (
    CALENDAR_ID,
    CONTENT_DB,
    FIXED_NOW,
    JOURNAL_DB,
    PROJECTS_DB,
    TASKS_DB,
    FakeInvoker,
)
from lifeos.core.config import NotionDatabases, PipelineConfig


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        mcp_url="http://mcp.test/mcp",
        bearer_token="secret-token",
        databases=NotionDatabases(
            projects=PROJECTS_DB,
            tasks=TASKS_DB,
            journal=JOURNAL_DB,
            content=CONTENT_DB,
        ),
        calendar_id=CALENDAR_ID,
    )


@pytest.fixture
def invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
