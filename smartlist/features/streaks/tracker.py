"""
Streak tracking: pure functions over completed tasks, no state.

Days are local calendar days. The current streak may end yesterday, so a user
who has not completed anything yet today keeps their streak until midnight.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional

from smartlist.models.progress import StreakState
from smartlist.models.task import Task


def _local_day(moment: datetime, tz: Optional[tzinfo]) -> date:
    if moment.tzinfo is None:
        # Naive timestamps are already local wall-clock time
        return moment.date()
    return moment.astimezone(tz).date()


def completion_days(completed_tasks: Iterable[Task], tz: Optional[tzinfo] = None) -> List[date]:
    """Sorted distinct days with at least one completion."""
    days = {
        _local_day(task.completed_at, tz)
        for task in completed_tasks
        if task.completed_at is not None
    }
    return sorted(days)


def _runs(days: List[date]) -> List[int]:
    runs: List[int] = []
    previous: Optional[date] = None
    for day in days:
        if previous is not None and day - previous == timedelta(days=1):
            runs[-1] += 1
        else:
            runs.append(1)
        previous = day
    return runs


def compute_streaks(
    completed_tasks: Iterable[Task],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> StreakState:
    days = completion_days(completed_tasks, tz)
    if not days:
        return StreakState(current=0, longest=0)

    if today is None:
        today = datetime.now(tz).date() if tz is not None else date.today()

    runs = _runs(days)
    longest = max(runs)

    last = days[-1]
    current = runs[-1] if (today - last).days in (0, 1) else 0
    return StreakState(current=current, longest=longest)
