"""
Task engine: the one place intents are applied.

Every committed mutation runs the same pipeline:

    TaskStore mutation -> XP delta -> cache write -> listeners

Derived values (level, streaks, date groups) are recomputed from the task
collections on each snapshot, never patched incrementally.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Callable, Iterable, List, Literal, Optional, Tuple

from smartlist.core.errors import ValidationError
from smartlist.core.logging import log_event
from smartlist.features.cache.local import (
    COMPLETED_TASKS_KEY,
    EXPERIENCE_KEY,
    LEVEL_KEY,
    PROGRESS_KEYS,
    TASKS_KEY,
    LocalCache,
)
from smartlist.features.experience.engine import ExperienceEngine
from smartlist.features.streaks.tracker import compute_streaks
from smartlist.features.tasks.grouping import group_by_deadline
from smartlist.features.tasks.store import DraftInput, TaskStore
from smartlist.models.progress import ExperienceResult, ProgressState, StreakState
from smartlist.models.task import Task, TaskGroup

logger = logging.getLogger("smartlist")

Intent = Literal["hydrate", "add", "complete", "remove", "clear", "replace", "reset_progress"]
UpdateOrigin = Literal["local", "remote"]


@dataclass
class EngineState:
    """Everything the engine owns. Replaced wholesale on clear and sign-out."""

    store: TaskStore = field(default_factory=TaskStore)
    experience: ExperienceEngine = field(default_factory=ExperienceEngine)


@dataclass(frozen=True)
class EngineSnapshot:
    active: Tuple[Task, ...]
    completed: Tuple[Task, ...]
    groups: Tuple[TaskGroup, ...]
    progress: ProgressState
    streak: StreakState

    @property
    def total_experience(self) -> int:
        return self.progress.total_experience

    @property
    def level(self) -> int:
        return self.progress.level

    @property
    def tasks_completed(self) -> int:
        return len(self.completed)


@dataclass(frozen=True)
class EngineUpdate:
    intent: Intent
    snapshot: EngineSnapshot
    experience: ExperienceResult
    task: Optional[Task] = None
    origin: UpdateOrigin = "local"


Listener = Callable[[EngineUpdate], None]


class TaskEngine:
    def __init__(
        self,
        cache: LocalCache,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        today: Optional[Callable[[], date]] = None,
        tz: Optional[tzinfo] = None,
    ):
        self._cache = cache
        self._clock = clock
        self._state = EngineState(store=self._new_store())
        self._today = today
        self._tz = tz
        self._listeners: List[Listener] = []
        self._hydrate()

    # Observation -----------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def state(self) -> EngineState:
        return self._state

    def snapshot(self) -> EngineSnapshot:
        tasks = self._state.store.snapshot()
        today = self._today() if self._today else None
        return EngineSnapshot(
            active=tasks.active,
            completed=tasks.completed,
            groups=tuple(group_by_deadline(tasks.active)),
            progress=self._state.experience.progress(),
            streak=compute_streaks(tasks.completed, today=today, tz=self._tz),
        )

    # Intents ---------------------------------------------------------
    def add_task(self, draft: DraftInput) -> EngineUpdate:
        task = self._state.store.add_task(draft)
        return self._commit("add", self._unchanged_experience(), task=task)

    def complete_task(self, task_id: str) -> EngineUpdate:
        change = self._state.store.complete_task(task_id)
        result = self._state.experience.apply_delta(change.xp_delta)
        if result.leveled_up:
            log_event("info", "level.up", event_type="level.up", task_id=task_id, extra={"level": result.new_level})
        return self._commit("complete", result, task=change.task)

    def remove_task(self, task_id: str, from_completed: bool = False) -> EngineUpdate:
        change = self._state.store.remove_task(task_id, from_completed)
        result = self._state.experience.apply_delta(change.xp_delta)
        return self._commit("remove", result, task=change.task)

    def clear_all(self) -> EngineUpdate:
        self._state = EngineState(store=self._new_store())
        self._cache.clear(PROGRESS_KEYS)
        return self._commit("clear", self._state.experience.reset(), persist=False)

    def replace_state(
        self,
        active: Iterable[object],
        completed: Iterable[object],
        total_experience: int,
        *,
        origin: UpdateOrigin = "remote",
    ) -> EngineUpdate:
        """Overwrite tasks and XP wholesale (remote merge). Validates before touching state."""
        staging = self._new_store()
        staging.load(active, completed)
        if total_experience < 0:
            raise ValidationError("Total experience must be non-negative")
        self._state = EngineState(store=staging, experience=ExperienceEngine(total_experience))
        return self._commit("replace", self._unchanged_experience(), origin=origin)

    def reset_progress(self) -> EngineUpdate:
        """Zero XP and level, keep tasks. Used on sign-out."""
        result = self._state.experience.reset()
        self._cache.clear((EXPERIENCE_KEY, LEVEL_KEY))
        return self._commit("reset_progress", result, persist=False)

    # Internal helpers -------------------------------------------------
    def _new_store(self) -> TaskStore:
        if self._clock is None:
            return TaskStore()
        return TaskStore(clock=self._clock)

    def _unchanged_experience(self) -> ExperienceResult:
        xp = self._state.experience
        return ExperienceResult(total_experience=xp.total_experience, level=xp.level)

    def _commit(
        self,
        intent: Intent,
        result: ExperienceResult,
        *,
        task: Optional[Task] = None,
        persist: bool = True,
        origin: UpdateOrigin = "local",
    ) -> EngineUpdate:
        if persist:
            self._persist()
        update = EngineUpdate(
            intent=intent,
            snapshot=self.snapshot(),
            experience=result,
            task=task,
            origin=origin,
        )
        log_event(
            "info",
            f"engine.{intent}",
            event_type=f"engine.{intent}",
            task_id=task.id if task else None,
            extra={"xp": result.total_experience, "level": result.level, "origin": origin},
        )
        for listener in list(self._listeners):
            listener(update)
        return update

    def _persist(self) -> None:
        store = self._state.store
        xp = self._state.experience
        self._cache.set_many(
            {
                TASKS_KEY: [task.to_wire() for task in store.active],
                COMPLETED_TASKS_KEY: [task.to_wire() for task in store.completed],
                EXPERIENCE_KEY: xp.total_experience,
                LEVEL_KEY: xp.level,
            }
        )

    def _hydrate(self) -> None:
        active = self._cache.get(TASKS_KEY, [])
        completed = self._cache.get(COMPLETED_TASKS_KEY, [])
        try:
            if not isinstance(active, list) or not isinstance(completed, list):
                raise ValidationError("Cached task collections must be lists")
            self._state.store.load(active, completed)
        except ValidationError as exc:
            logger.warning("Cached tasks are unreadable, starting empty: %s", exc.message)

        cached_xp = self._cache.get(EXPERIENCE_KEY)
        total = cached_xp if isinstance(cached_xp, int) and not isinstance(cached_xp, bool) else 0
        self._state.experience = ExperienceEngine(total)
        logger.info(
            "TaskEngine ready active=%s completed=%s xp=%s",
            len(self._state.store.active),
            len(self._state.store.completed),
            total,
        )
