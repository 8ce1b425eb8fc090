"""Response-shape helpers for the Notion tools exposed by the MCP server."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class NotionParent(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: Optional[str] = None
    database_id: Optional[str] = None
    page_id: Optional[str] = None


class NotionPage(BaseModel):
    """Notion page object (subset + extra passthrough)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    object: Optional[str] = None
    parent: Optional[NotionParent] = None
    properties: dict[str, Any] = Field(default_factory=dict)
    url: Optional[str] = None

    @property
    def parent_database_id(self) -> Optional[str]:
        return self.parent.database_id if self.parent else None

    def in_database(self, database_id: str) -> bool:
        parent = self.parent_database_id
        return bool(parent) and same_notion_id(parent, database_id)

    def title_text(self, prop: str) -> Optional[str]:
        """Concatenated text of a title property, or None when it is empty."""
        value = self.properties.get(prop)
        if not isinstance(value, dict):
            return None
        chunks = value.get("title")
        if not isinstance(chunks, list):
            return None
        parts: list[str] = []
        for chunk in chunks:
            if not isinstance(chunk, dict):
                continue
            text = chunk.get("plain_text")
            if not isinstance(text, str):
                text = (chunk.get("text") or {}).get("content")
            if isinstance(text, str):
                parts.append(text)
        joined = "".join(parts).strip()
        return joined or None


class ProjectSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: Optional[str] = None


def same_notion_id(left: str, right: str) -> bool:
    """Notion ids compare equal with or without dashes."""
    return left.replace("-", "").lower() == right.replace("-", "").lower()


def _dig(payload: Any, *path: str) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


_RESULT_PATHS: tuple[tuple[str, ...], ...] = (
    ("results",),
    ("data", "response_data", "results"),
    ("data", "results"),
    ("response_data", "results"),
)

_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("data", "data", "id"),
    ("data", "id"),
    ("data", "response_data", "id"),
    ("response_data", "id"),
    ("id",),
)


def extract_results(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    for path in _RESULT_PATHS:
        found = _dig(payload, *path)
        if isinstance(found, list):
            return [item for item in found if isinstance(item, dict)]
    return []


def extract_record_id(payload: Any) -> Optional[str]:
    for path in _ID_PATHS:
        found = _dig(payload, *path)
        if isinstance(found, str) and found.strip():
            return found.strip()
    return None


def parse_pages(payload: Any) -> list[NotionPage]:
    """Lenient page parse: entries that are not pages are skipped."""
    pages: list[NotionPage] = []
    for item in extract_results(payload):
        if item.get("object", "page") != "page":
            continue
        try:
            pages.append(NotionPage.model_validate(item))
        except ValidationError:
            continue
    return pages


__all__ = [
    "NotionPage",
    "NotionParent",
    "ProjectSummary",
    "extract_record_id",
    "extract_results",
    "parse_pages",
    "same_notion_id",
]
