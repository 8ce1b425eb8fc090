"""Exception types shared across the action pipeline."""

from __future__ import annotations

from typing import Sequence


class LifeOSError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(LifeOSError):
    """Required configuration is missing or malformed."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__("Missing configuration: " + ", ".join(self.missing))


class ActionParseError(LifeOSError, ValueError):
    """Raw model output could not be turned into an `Action`."""

    INVALID_JSON = "invalid_json"
    MISSING_ACTION = "missing_action"
    MISSING_PARAMS = "missing_params"
    UNKNOWN_ACTION = "unknown_action"

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class ParamsValidationError(LifeOSError, ValueError):
    """Action params failed typed validation."""

    def __init__(self, message: str, fields: Sequence[str] = ()) -> None:
        self.fields = list(fields)
        super().__init__(message)


class ToolError(LifeOSError):
    """The remote tool server reported a protocol-level error."""

    def __init__(self, tool: str, message: str, *, code: int | None = None) -> None:
        self.tool = tool
        self.code = code
        self.detail = message
        prefix = f"{tool} failed"
        if code is not None:
            prefix = f"{prefix} ({code})"
        super().__init__(f"{prefix}: {message}")


class TransportError(LifeOSError):
    """The remote tool endpoint could not be reached or answered garbage."""

    def __init__(
        self, tool: str, message: str, *, status_code: int | None = None
    ) -> None:
        self.tool = tool
        self.status_code = status_code
        super().__init__(f"{tool}: {message}")


__all__ = [
    "ActionParseError",
    "ConfigurationError",
    "LifeOSError",
    "ParamsValidationError",
    "ToolError",
    "TransportError",
]
