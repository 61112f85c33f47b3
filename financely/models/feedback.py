"""
User Feedback Models

Everything the user is told about an operation travels as one of these.
Flows never raise for expected failures (bad input, backend errors);
they return a Notification the UI shows as a transient toast.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationLevel(str, Enum):
    """How a notification is rendered."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A transient, user-facing message."""
    model_config = ConfigDict(frozen=True)

    level: NotificationLevel
    message: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_error(self) -> bool:
        return self.level == NotificationLevel.ERROR

    @classmethod
    def success(cls, message: str) -> "Notification":
        return cls(level=NotificationLevel.SUCCESS, message=message)

    @classmethod
    def info(cls, message: str) -> "Notification":
        return cls(level=NotificationLevel.INFO, message=message)

    @classmethod
    def warning(cls, message: str) -> "Notification":
        return cls(level=NotificationLevel.WARNING, message=message)

    @classmethod
    def error(cls, message: str) -> "Notification":
        return cls(level=NotificationLevel.ERROR, message=message)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'too_short', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a form before any network call.

    Validation NEVER silently fixes input. It reports issues for the user.
    """

    form: str = Field(
        ...,
        description="Which form was validated (e.g. 'sign_up', 'transaction')"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        for issue in self.issues:
            if issue.severity == "error":
                return issue
        return None

    def to_notification(self) -> Optional[Notification]:
        """The message shown to the user, or None if the form is valid."""
        issue = self.first_error
        if issue is None:
            return None
        return Notification.error(issue.message)
