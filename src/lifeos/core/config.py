from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lifeos.errors import ConfigurationError
from lifeos.tools.mcp_url_validation import canonical_mcp_url


@dataclass(frozen=True)
class MatchPolicy:
    """Scoring constants for fuzzy name resolution."""

    exact: float = 100.0
    candidate_contains_query: float = 80.0
    query_contains_candidate: float = 70.0
    word_overlap_scale: float = 60.0
    threshold: float = 50.0


@dataclass(frozen=True)
class NotionDatabases:
    projects: str
    tasks: str
    journal: str
    content: str


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable identifiers and tuning shared by the resolver, builder and invoker.

    Built once at start-up (see `Settings.pipeline_config`) and passed by reference.
    """

    mcp_url: str
    databases: NotionDatabases
    calendar_id: str
    bearer_token: str | None = None
    default_timezone: str = "UTC"
    mcp_timeout_s: float = 30.0
    match_policy: MatchPolicy = field(default_factory=MatchPolicy)


class Settings(BaseSettings):
    """Application configuration using environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Remote tool server
    mcp_compose_url: str = Field(default="")
    mcp_bearer: str = Field(default="")
    mcp_timeout_s: float = Field(default=30.0)

    # Calendar
    google_calendar_id: str = Field(default="")
    default_timezone: str = Field(default="UTC")

    # Notion databases
    notion_db_areas: str = Field(default="")
    notion_db_projects: str = Field(default="")
    notion_db_tasks: str = Field(default="")
    notion_db_journal: str = Field(default="")
    notion_db_content: str = Field(default="")

    # Fuzzy resolution
    match_threshold: float = Field(default=50.0)
    match_exact_score: float = Field(default=100.0)
    match_contains_score: float = Field(default=80.0)
    match_contained_score: float = Field(default=70.0)
    match_overlap_scale: float = Field(default=60.0)

    log_level: str = Field(default="INFO")

    def pipeline_config(self) -> PipelineConfig:
        """Validate the settings and freeze them into a `PipelineConfig`.

        Raises:
            ConfigurationError: naming every missing variable.
        """
        required = {
            "MCP_COMPOSE_URL": self.mcp_compose_url,
            "GOOGLE_CALENDAR_ID": self.google_calendar_id,
            # Life Domains relations are written by id; the database must still be set.
            "NOTION_DB_AREAS": self.notion_db_areas,
            "NOTION_DB_PROJECTS": self.notion_db_projects,
            "NOTION_DB_TASKS": self.notion_db_tasks,
            "NOTION_DB_JOURNAL": self.notion_db_journal,
            "NOTION_DB_CONTENT": self.notion_db_content,
        }
        missing = [name for name, value in required.items() if not value.strip()]
        if missing:
            raise ConfigurationError(missing)
        try:
            mcp_url = canonical_mcp_url(self.mcp_compose_url.strip().rstrip("/"))
        except ValueError as exc:
            raise ConfigurationError([f"MCP_COMPOSE_URL ({exc})"]) from exc
        return PipelineConfig(
            mcp_url=mcp_url,
            bearer_token=self.mcp_bearer.strip() or None,
            databases=NotionDatabases(
                projects=self.notion_db_projects.strip(),
                tasks=self.notion_db_tasks.strip(),
                journal=self.notion_db_journal.strip(),
                content=self.notion_db_content.strip(),
            ),
            calendar_id=self.google_calendar_id.strip(),
            default_timezone=self.default_timezone.strip() or "UTC",
            mcp_timeout_s=self.mcp_timeout_s,
            match_policy=MatchPolicy(
                exact=self.match_exact_score,
                candidate_contains_query=self.match_contains_score,
                query_contains_candidate=self.match_contained_score,
                word_overlap_scale=self.match_overlap_scale,
                threshold=self.match_threshold,
            ),
        )


__all__ = [
    "MatchPolicy",
    "NotionDatabases",
    "PipelineConfig",
    "Settings",
]
