"""MCP endpoint URL validation helpers."""

from __future__ import annotations

from urllib.parse import ParseResult, urlparse, urlunparse


def _normalize_default_path(default_path: str) -> str:
    value = (default_path or "").strip() or "/mcp"
    return value if value.startswith("/") else f"/{value}"


def _validate_url(
    value: str,
    *,
    label: str,
    require_explicit_path: bool = True,
) -> tuple[str, ParseResult]:
    raw = (value or "").strip()
    if not raw:
        raise ValueError(f"{label} is empty")
    if "://" not in raw:
        raise ValueError(f"{label} must include scheme (e.g. https://host/mcp)")

    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError(f"{label} must use http or https scheme")
    if not parsed.netloc or not parsed.hostname:
        raise ValueError(f"{label} must include a host")
    if require_explicit_path and (not parsed.path or parsed.path == "/"):
        raise ValueError(f"{label} must include explicit path (e.g. /mcp)")
    return raw, parsed


def validate_mcp_url(value: str, *, label: str = "MCP URL") -> str:
    """Validate an MCP endpoint URL and return it unchanged.

    Raises ValueError if the URL is missing required components.
    """
    raw, _parsed = _validate_url(value, label=label)
    return raw


def canonical_mcp_url(raw_url: str, *, default_path: str = "/mcp") -> str:
    """Return URL with explicit path; a bare base URL gets `default_path` appended."""
    raw, parsed = _validate_url(raw_url, label="MCP URL", require_explicit_path=False)
    if parsed.path and parsed.path != "/":
        if parsed.path.rstrip("/").endswith(_normalize_default_path(default_path)):
            return raw
        path = parsed.path.rstrip("/") + _normalize_default_path(default_path)
    else:
        path = _normalize_default_path(default_path)
    return urlunparse(
        (
            parsed.scheme,
            parsed.netloc,
            path,
            parsed.params,
            parsed.query,
            parsed.fragment,
        )
    )


__all__ = ["canonical_mcp_url", "validate_mcp_url"]
