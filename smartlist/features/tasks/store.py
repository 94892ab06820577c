"""
TaskStore: owns the active and completed task collections.

Knows nothing about XP totals or networking; completion and removal report
the XP delta the caller should apply.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from smartlist.core.errors import NotFoundError, ValidationError
from smartlist.features.tasks.grouping import sort_by_deadline
from smartlist.models.task import Task, TaskChange, TaskDraft, TaskSnapshot

logger = logging.getLogger("smartlist")

RATING_MIN = 1
RATING_MAX = 10

DraftInput = Union[TaskDraft, Mapping[str, object]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def _pydantic_message(exc: PydanticValidationError) -> str:
    fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
    return f"Invalid task fields: {', '.join(fields)}"


class TaskStore:
    """In-memory task collections. Every mutation either fully applies or raises."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._clock = clock
        self._id_factory = id_factory
        self._active: List[Task] = []
        self._completed: List[Task] = []

    # Mutations -------------------------------------------------------
    def add_task(self, draft: DraftInput) -> Task:
        draft = self._coerce_draft(draft)
        name = (draft.name or "").strip()
        if not name:
            raise ValidationError("Task name is required")
        if draft.experience < 0:
            raise ValidationError("Task experience must be non-negative")
        for field_name in ("difficulty", "importance"):
            value = getattr(draft, field_name)
            if not RATING_MIN <= value <= RATING_MAX:
                raise ValidationError(f"Task {field_name} must be between {RATING_MIN} and {RATING_MAX}")

        task = Task(
            id=self._id_factory(),
            name=name,
            description=draft.description,
            difficulty=draft.difficulty,
            importance=draft.importance,
            deadline=draft.deadline,
            collaborative=draft.collaborative,
            experience=draft.experience,
            created_at=self._clock(),
        )
        self._active.append(task)
        logger.debug("task.added id=%s experience=%s", task.id, task.experience)
        return task

    def complete_task(self, task_id: str) -> TaskChange:
        index = self._index_of(self._active, task_id)
        if index is None:
            raise NotFoundError(f"Task {task_id} is not active")

        task = self._active.pop(index)
        completed = task.model_copy(update={"completed_at": self._clock()})
        self._completed.append(completed)
        logger.debug("task.completed id=%s xp=%s", task_id, completed.experience)
        return TaskChange(task=completed, xp_delta=completed.experience)

    def remove_task(self, task_id: str, from_completed: bool = False) -> TaskChange:
        collection = self._completed if from_completed else self._active
        index = self._index_of(collection, task_id)
        if index is None:
            where = "completed" if from_completed else "active"
            raise NotFoundError(f"Task {task_id} is not in the {where} tasks")

        task = collection.pop(index)
        xp_delta = -task.experience if from_completed else 0
        logger.debug("task.removed id=%s from_completed=%s", task_id, from_completed)
        return TaskChange(task=task, xp_delta=xp_delta)

    def clear_all(self) -> None:
        self._active = []
        self._completed = []

    def load(self, active: Iterable[object], completed: Iterable[object]) -> None:
        """Replace both collections wholesale (cache rehydration, remote merge)."""
        try:
            new_active = [self._coerce_task(item) for item in active]
            new_completed = [self._coerce_task(item) for item in completed]
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc

        if any(task.is_completed for task in new_active):
            raise ValidationError("Active tasks must not carry completedAt")
        if any(not task.is_completed for task in new_completed):
            raise ValidationError("Completed tasks must carry completedAt")

        ids = [task.id for task in new_active + new_completed]
        if len(ids) != len(set(ids)):
            raise ValidationError("Task ids must be unique across both collections")

        self._active = new_active
        self._completed = new_completed

    # Reads -----------------------------------------------------------
    def get(self, task_id: str) -> Optional[Task]:
        for task in self._active + self._completed:
            if task.id == task_id:
                return task
        return None

    def snapshot(self) -> TaskSnapshot:
        return TaskSnapshot(
            active=tuple(sort_by_deadline(self._active)),
            completed=tuple(self._completed),
        )

    @property
    def active(self) -> tuple[Task, ...]:
        return tuple(self._active)

    @property
    def completed(self) -> tuple[Task, ...]:
        return tuple(self._completed)

    # Internal helpers -------------------------------------------------
    @staticmethod
    def _index_of(collection: List[Task], task_id: str) -> Optional[int]:
        for index, task in enumerate(collection):
            if task.id == task_id:
                return index
        return None

    @staticmethod
    def _coerce_draft(draft: DraftInput) -> TaskDraft:
        if isinstance(draft, TaskDraft):
            return draft
        try:
            return TaskDraft.model_validate(dict(draft))
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc

    @staticmethod
    def _coerce_task(item: object) -> Task:
        if isinstance(item, Task):
            return item
        return Task.model_validate(item)
