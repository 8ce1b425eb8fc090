"""Render execution outcomes as uniform user-facing responses."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from lifeos.actions.kinds import ActionKind
from lifeos.pipeline.results import ExecutionResult, Failure, MissingFields

FIELD_PROMPTS: dict[str, str] = {
    "projectId": "Which project should this be added to? Please provide the project ID.",
    "projectName": "Which project should this be added to? Please provide the project name.",
    "taskId": "Which task should be updated? Please provide the task ID.",
    "taskName": "Which task should be updated? Please provide the task name.",
    "taskNames": "Which tasks are the action items? Please provide their names.",
    "actionItemIds": "Which tasks are the action items? Please provide their exact names or IDs.",
    "eventId": "Which calendar event is this about? Please provide the event ID.",
    "eventName": "Which calendar event is this about? Please provide the event name.",
    "lifeDomainId": "Which life domain does this belong to? (e.g., Health, Work, Personal, etc.)",
    "name": "What should this item be called?",
    "title": "What's the title for this item?",
    "startDateTime": "When should this event start? Please provide a date and time.",
    "endDateTime": "When should this event end? Please provide a date and time.",
    "due": "When is this due? Please provide a date.",
    "content": "What content would you like to add?",
    "type": "What type is this? (e.g., Note, Meeting, Decision, Daily, Weekly)",
    "status": "What's the task status? Please choose from: Next, Blocked, Doing, Verify, Done",
    "priority": (
        "What's the priority? Options: P0 - Critical (urgent), P1 - High, "
        "P2 - Medium (normal), P3 - Low"
    ),
}


class AssistantResponse(BaseModel):
    """Envelope returned to the conversational layer for every request."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    action: Optional[str] = None
    data: Any = None
    record_id: Optional[str] = Field(default=None, alias="recordId")
    missing_fields: list[str] = Field(default_factory=list, alias="missingFields")
    user_prompt: Optional[str] = Field(default=None, alias="userPrompt")
    error: Optional[str] = None
    stage: Optional[str] = None


def field_prompt(field: str) -> str:
    return FIELD_PROMPTS.get(field, f"Please provide the {field}.")


def build_user_prompt(kind: ActionKind, fields: Sequence[str]) -> str:
    lines = "\n".join(f"{i}. {field_prompt(field)}" for i, field in enumerate(fields, 1))
    return (
        f"To {kind.verb} this {kind.noun}, I need:\n\n{lines}\n\n"
        f"Please provide this information and I'll {kind.verb} it for you."
    )


def compose_response(kind: ActionKind, result: ExecutionResult) -> AssistantResponse:
    if isinstance(result, MissingFields):
        return AssistantResponse(
            success=False,
            action=kind.value,
            error="I need more information to complete this request.",
            missing_fields=list(result.fields),
            user_prompt=build_user_prompt(kind, result.fields),
            stage="validate",
        )

    if isinstance(result, Failure):
        error = result.error
        if result.record_id:
            error = (
                f"The {kind.noun} was created ({result.record_id}) but the "
                f"{result.stage.value} step failed: {result.error}"
            )
        return AssistantResponse(
            success=False,
            action=kind.value,
            error=error,
            record_id=result.record_id,
            missing_fields=list(result.fields),
            user_prompt=build_user_prompt(kind, result.fields) if result.fields else None,
            stage=result.stage.value,
        )

    message = f"Successfully executed {kind.value}"
    failed = result.failed_phases
    if failed:
        steps = ", ".join(f"{phase.stage.value} ({phase.error})" for phase in failed)
        message = f"{message}, but some follow-up steps failed: {steps}"
    return AssistantResponse(
        success=True,
        message=message,
        action=kind.value,
        data=result.data,
        record_id=result.record_id,
    )


__all__ = [
    "AssistantResponse",
    "FIELD_PROMPTS",
    "build_user_prompt",
    "compose_response",
    "field_prompt",
]
