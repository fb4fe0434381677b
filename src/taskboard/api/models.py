"""Wire models shared by the remote service client and the dashboard API."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taskboard.errors import TaskboardError, ValidationFailure

TaskStatus = Literal["pending", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]
SortField = Literal["createdAt", "updatedAt", "priority", "status"]
SortOrder = Literal["asc", "desc"]

# TaskPatch fields the server accepts as null
_CLEARABLE_FIELDS = ("description", "dueDate")


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        """Serialize for a request body, leaving out unset and empty fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)


class UserProfile(WireModel):
    """Authenticated user as returned by the remote service."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Task(WireModel):
    """Server copy of a task. The cache only ever holds these verbatim."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: str
    description: str | None = None
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    created_at: datetime
    due_date: datetime | None = None
    updated_at: datetime

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Whether the due date has already passed. Naive times are taken as UTC."""
        if self.due_date is None:
            return False
        if now is None:
            now = datetime.now(timezone.utc)
        return _as_utc(self.due_date) < _as_utc(now)


class TaskDraft(WireModel):
    """Fields for creating a task."""

    title: str
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None


class TaskPatch(WireModel):
    """Partial task update; only explicitly set fields are sent."""

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None

    def to_wire(self) -> dict[str, object]:
        """Serialize set fields; an explicit None clears description or due date."""
        data = self.model_dump(mode="json", by_alias=True, exclude_unset=True)
        return {
            key: value
            for key, value in data.items()
            if value is not None or key in _CLEARABLE_FIELDS
        }


class ProfileUpdate(WireModel):
    """Partial profile update."""

    name: str | None = None
    email: str | None = None


class StatsSnapshot(WireModel):
    """Aggregate counts over the user's whole task set."""

    model_config = ConfigDict(frozen=True, extra="allow")

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)

    def count_for(self, status: str) -> int:
        """Count for a status, 0 when the server did not report it."""
        return self.by_status.get(status, 0)


@dataclass
class AuthResult:
    """Token and profile returned by login/register."""

    token: str
    user: UserProfile


@dataclass
class OperationResult:
    """Outcome of a session operation or task mutation.

    Failures carry exactly one human-readable message plus the underlying
    error, so callers can route AuthFailure to re-authentication and show
    field errors next to form inputs.
    """

    success: bool
    message: str | None = None
    error: TaskboardError | None = None
    task: Task | None = None

    @classmethod
    def ok(cls, message: str | None = None, task: Task | None = None) -> "OperationResult":
        return cls(success=True, message=message, task=task)

    @classmethod
    def failed(cls, error: TaskboardError, fallback: str | None = None) -> "OperationResult":
        """Failure reported with the error's own reason, else `fallback`."""
        return cls(success=False, message=error.reason or fallback or error.message, error=error)

    @property
    def field_errors(self) -> dict[str, str]:
        if isinstance(self.error, ValidationFailure):
            return self.error.field_errors
        return {}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
