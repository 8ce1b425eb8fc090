"""Turn raw model output into a canonical `Action`."""

from __future__ import annotations

import json
from typing import Any

from lifeos.actions.kinds import ACTION_NAME_MAP
from lifeos.actions.models import Action
from lifeos.errors import ActionParseError


def _strip_fences(text: str) -> str:
    if not text.startswith("```"):
        return text
    lines = text.splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _first_object(text: str) -> dict[str, Any] | None:
    decoder = json.JSONDecoder()
    idx = text.find("{")
    while idx != -1:
        try:
            payload, _end = decoder.raw_decode(text, idx)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            return payload
        idx = text.find("{", idx + 1)
    return None


def _load_object(raw: str) -> dict[str, Any]:
    text = (raw or "").strip()
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = None
    if isinstance(decoded, dict):
        return decoded

    embedded = _first_object(_strip_fences(text))
    if embedded is None:
        raise ActionParseError(ActionParseError.INVALID_JSON, "no valid JSON object in model output")
    return embedded


def parse_action(raw: str) -> Action:
    """Parse `{"action": ..., "params": {...}}` out of raw model text.

    Accepts a bare JSON object, a fenced block, or an object embedded in prose.
    The action name is normalised through `ACTION_NAME_MAP`; params pass through
    as a shallow copy.

    Raises:
        ActionParseError: with `reason` set to one of the `ActionParseError` constants.
    """
    payload = _load_object(raw)

    name = payload.get("action")
    if not isinstance(name, str) or not name.strip():
        raise ActionParseError(ActionParseError.MISSING_ACTION, "missing string field 'action'")

    params = payload.get("params")
    if not isinstance(params, dict):
        raise ActionParseError(ActionParseError.MISSING_PARAMS, "missing object field 'params'")

    kind = ACTION_NAME_MAP.get(name.strip())
    if kind is None:
        raise ActionParseError(ActionParseError.UNKNOWN_ACTION, f"unknown action: {name}")
    return Action(kind=kind, params=dict(params))


__all__ = ["parse_action"]
