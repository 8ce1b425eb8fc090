from __future__ import annotations

import pytest

from lifeos.core.config import Settings
from lifeos.errors import ConfigurationError

_REQUIRED_ENV = {
    "MCP_COMPOSE_URL": "http://mcp-compose:3000",
    "GOOGLE_CALENDAR_ID": "primary@example.com",
    "NOTION_DB_AREAS": "areas-db",
    "NOTION_DB_PROJECTS": "projects-db",
    "NOTION_DB_TASKS": "tasks-db",
    "NOTION_DB_JOURNAL": "journal-db",
    "NOTION_DB_CONTENT": "content-db",
}


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in (*_REQUIRED_ENV, "MCP_BEARER", "MATCH_THRESHOLD", "DEFAULT_TIMEZONE"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_pipeline_config_from_environment(env: pytest.MonkeyPatch) -> None:
    for key, value in _REQUIRED_ENV.items():
        env.setenv(key, value)
    env.setenv("MCP_BEARER", "Bearer abc")
    env.setenv("MATCH_THRESHOLD", "65")

    config = Settings(_env_file=None).pipeline_config()

    assert config.mcp_url == "http://mcp-compose:3000/mcp"
    assert config.bearer_token == "Bearer abc"
    assert config.databases.projects == "projects-db"
    assert config.calendar_id == "primary@example.com"
    assert config.default_timezone == "UTC"
    assert config.match_policy.threshold == 65.0
    assert config.match_policy.exact == 100.0


def test_missing_variables_are_all_named(env: pytest.MonkeyPatch) -> None:
    env.setenv("MCP_COMPOSE_URL", "http://mcp-compose:3000/mcp")
    env.setenv("NOTION_DB_PROJECTS", "projects-db")

    with pytest.raises(ConfigurationError) as excinfo:
        Settings(_env_file=None).pipeline_config()

    assert excinfo.value.missing == [
        "GOOGLE_CALENDAR_ID",
        "NOTION_DB_AREAS",
        "NOTION_DB_TASKS",
        "NOTION_DB_JOURNAL",
        "NOTION_DB_CONTENT",
    ]


def test_malformed_url_is_a_configuration_error(env: pytest.MonkeyPatch) -> None:
    for key, value in _REQUIRED_ENV.items():
        env.setenv(key, value)
    env.setenv("MCP_COMPOSE_URL", "mcp-compose:3000")

    with pytest.raises(ConfigurationError, match="MCP_COMPOSE_URL"):
        Settings(_env_file=None).pipeline_config()
