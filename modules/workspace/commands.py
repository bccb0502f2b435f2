"""Typed commands for the workspace engines.

Form input arrives as an untyped key/value bag. ``parse_command`` validates
it into one of the command models below, or a ``Rejected`` value carrying
the reason. Both snake_case and the web form's camelCase keys are accepted.
"""
import enum
from typing import Annotated, Any, Mapping, Optional, TypeVar, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

from common.models import MilestoneStatus


class ReviewDecision(str, enum.Enum):
    APPROVE = "approve"
    REVISION = "revision"


# Ids and free text are trimmed; enum values must match exactly.
Text = Annotated[str, StringConstraints(strip_whitespace=True)]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _Command(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
    )

    project_id: RequiredText = Field(
        validation_alias=AliasChoices("project_id", "projectId"),
    )


class MilestoneStatusCommand(_Command):
    milestone_id: RequiredText = Field(
        validation_alias=AliasChoices("milestone_id", "milestoneId"),
    )
    status: MilestoneStatus


class DeliveryReviewCommand(_Command):
    delivery_id: RequiredText = Field(
        validation_alias=AliasChoices("delivery_id", "deliveryId"),
    )
    decision: ReviewDecision


class DeliverySubmissionCommand(_Command):
    summary: RequiredText
    link: Optional[Text] = None
    milestone_id: Optional[Text] = Field(
        default=None,
        validation_alias=AliasChoices("milestone_id", "milestoneId"),
    )
    file_id: Optional[Text] = Field(
        default=None,
        validation_alias=AliasChoices("file_id", "fileId"),
    )

    @field_validator("link", "milestone_id", "file_id", mode="before")
    @classmethod
    def _optional_fields(cls, value):
        return _blank_to_none(value)


class MessageCommand(_Command):
    body: RequiredText = Field(
        validation_alias=AliasChoices("body", "message"),
    )


class ApplicationCommand(_Command):
    proposal: RequiredText
    budget: Optional[Text] = None
    timeline: Optional[Text] = None
    links: Optional[Text] = Field(
        default=None,
        validation_alias=AliasChoices("links", "relevantLinks"),
    )

    @field_validator("budget", "timeline", "links", mode="before")
    @classmethod
    def _optional_fields(cls, value):
        return _blank_to_none(value)


class AcceptApplicantCommand(_Command):
    applicant_id: RequiredText = Field(
        validation_alias=AliasChoices("applicant_id", "applicantId"),
    )


class Rejected(BaseModel):
    """Input that failed validation. Nothing was written."""
    reason: str


class TransitionResult(BaseModel):
    """Outcome of a workspace operation."""
    applied: bool
    reason: Optional[str] = None
    entity_id: Optional[str] = None
    message_id: Optional[str] = None

    @classmethod
    def rejected(cls, reason: str) -> "TransitionResult":
        return cls(applied=False, reason=reason)


C = TypeVar("C", bound=_Command)


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "input"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_command(model: type[C], form: Mapping[str, Any]) -> Union[C, Rejected]:
    """Validate a form bag into ``model``; never raises on bad input."""
    data = {k: v for k, v in dict(form).items() if v is not None}
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        return Rejected(reason=_format_errors(exc))
