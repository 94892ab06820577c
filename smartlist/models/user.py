"""Remote store wire models, shared by the HTTP routes and the sync client."""

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictFloat, StrictInt

Number = Union[StrictInt, StrictFloat]

USER_NOT_FOUND = "USER_NOT_FOUND"
STALE_WRITE = "STALE_WRITE"


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateUserRequest(_Wire):
    session_identifier: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sessionIdentifier", "sessionId", "googleId"),
        serialization_alias="sessionIdentifier",
    )
    name: Optional[str] = None
    email: Optional[str] = None
    picture: Optional[str] = None
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    tasks_completed: int = Field(default=0, ge=0, alias="tasksCompleted")


class CreateUserResponse(_Wire):
    user_id: str = Field(alias="userId")
    exists: bool
    xp: int
    level: int
    tasks_completed: int = Field(alias="tasksCompleted")


class UpdateUserRequest(_Wire):
    """Full-replace snapshot. ``revision`` orders concurrent writers."""

    xp: Number
    tasks_completed: Number = Field(alias="tasksCompleted")
    level: Optional[int] = Field(default=None, ge=1)
    tasks: Optional[List[dict[str, Any]]] = None
    completed_tasks: Optional[List[dict[str, Any]]] = Field(default=None, alias="completedTasks")
    revision: Optional[int] = Field(default=None, ge=0)


class UpdateUserResponse(_Wire):
    message: str
    revision: Optional[int] = None


class UserRecord(_Wire):
    user_id: str = Field(alias="userId")
    name: Optional[str] = None
    email: Optional[str] = None
    picture: Optional[str] = None
    xp: int = 0
    level: int = 1
    tasks_completed: int = Field(default=0, alias="tasksCompleted")
    tasks: Optional[List[dict[str, Any]]] = None
    completed_tasks: Optional[List[dict[str, Any]]] = Field(default=None, alias="completedTasks")
    revision: Optional[int] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def has_tasks(self) -> bool:
        return self.tasks is not None or self.completed_tasks is not None


class LeaderboardEntry(_Wire):
    rank: int
    user_id: str = Field(alias="userId")
    name: Optional[str] = None
    picture: Optional[str] = None
    xp: int
    level: int
    tasks_completed: int = Field(alias="tasksCompleted")
