from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

NO_DUE_DATE = "No due date"

DEFAULT_RATING = 5
DEFAULT_EXPERIENCE = 150  # quick-add reward


def _coerce_deadline(value: Any) -> Any:
    # Date pickers hand over bare "YYYY-MM-DD" values; keep them as midnight wall-clock.
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and len(value) == 10:
        try:
            return datetime.combine(date.fromisoformat(value), time.min)
        except ValueError:
            return value
    if value == "":
        return None
    return value


class TaskDraft(BaseModel):
    """User-supplied fields for a new task. Bounds are checked by the TaskStore."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    description: Optional[str] = Field(default=None, validation_alias=AliasChoices("description", "desc"))
    difficulty: int = DEFAULT_RATING
    importance: int = DEFAULT_RATING
    deadline: Optional[datetime] = None
    collaborative: bool = False
    experience: int = DEFAULT_EXPERIENCE

    @field_validator("deadline", mode="before")
    @classmethod
    def _deadline(cls, value: Any) -> Any:
        return _coerce_deadline(value)


class Task(BaseModel):
    """
    One unit of work. Immutable; completion produces a copy with completed_at set.

    Serialized with camelCase timestamps so cached and remote payloads stay
    readable by older clients.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = Field(default=None, validation_alias=AliasChoices("description", "desc"))
    difficulty: int = DEFAULT_RATING
    importance: int = DEFAULT_RATING
    deadline: Optional[datetime] = None
    collaborative: bool = False
    experience: int = Field(default=0, ge=0)
    created_at: datetime = Field(alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("deadline", mode="before")
    @classmethod
    def _deadline(cls, value: Any) -> Any:
        return _coerce_deadline(value)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def deadline_sort_key(deadline: datetime) -> datetime:
    """Comparable form of a deadline regardless of whether it carries a tzinfo."""
    if deadline.tzinfo is None:
        return deadline
    return deadline.astimezone(timezone.utc).replace(tzinfo=None)


def deadline_day(deadline: datetime) -> date:
    """
    Calendar day a deadline belongs to.

    Deadlines are picked as dates and stored as midnight UTC; shifting the
    instant by the local offset lands it back on the picked day, which is the
    UTC calendar date of the instant.
    """
    return deadline_sort_key(deadline).date()


def day_label(day: date) -> str:
    return f"{day:%a}, {day:%b} {day.day}, {day.year}"


@dataclass(frozen=True)
class TaskChange:
    """Result of a completion or removal: the task touched and the XP to apply."""

    task: Task
    xp_delta: int


@dataclass
class TaskGroup:
    label: str
    day: Optional[date]
    tasks: List[Task] = field(default_factory=list)


@dataclass(frozen=True)
class TaskSnapshot:
    active: tuple[Task, ...]
    completed: tuple[Task, ...]

    @property
    def tasks_completed(self) -> int:
        return len(self.completed)
