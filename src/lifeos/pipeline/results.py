"""Execution outcome types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from lifeos.actions.kinds import ActionKind


class ExecutionStage(str, Enum):
    PARSE = "parse"
    VALIDATE = "validate"
    RESOLVE = "resolve"
    CREATE = "create"
    PATCH = "patch"
    APPEND = "append"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"


@dataclass(frozen=True)
class PhaseOutcome:
    """One remote call that ran while executing an action."""

    stage: ExecutionStage
    tool: str
    ok: bool
    output: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class Success:
    kind: ActionKind
    record_id: Optional[str] = None
    data: Any = None
    phases: tuple[PhaseOutcome, ...] = ()

    @property
    def failed_phases(self) -> tuple[PhaseOutcome, ...]:
        """Best-effort phases that failed without failing the action."""
        return tuple(phase for phase in self.phases if not phase.ok)


@dataclass(frozen=True)
class MissingFields:
    kind: ActionKind
    fields: tuple[str, ...]


@dataclass(frozen=True)
class Failure:
    """Terminal failure at `stage`.

    `fields` names params the caller can supply to retry (resolution and
    validation failures). `record_id` is set when a record was created before a
    later phase failed.
    """

    kind: ActionKind
    stage: ExecutionStage
    error: str
    fields: tuple[str, ...] = ()
    record_id: Optional[str] = None
    phases: tuple[PhaseOutcome, ...] = field(default_factory=tuple)


ExecutionResult = Union[Success, MissingFields, Failure]


__all__ = [
    "ExecutionResult",
    "ExecutionStage",
    "Failure",
    "MissingFields",
    "PhaseOutcome",
    "Success",
]
