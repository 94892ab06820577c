"""Deadline ordering and day buckets for active tasks."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List

from smartlist.models.task import NO_DUE_DATE, Task, TaskGroup, day_label, deadline_day, deadline_sort_key


def sort_by_deadline(tasks: Iterable[Task]) -> List[Task]:
    """Ascending by deadline, undated tasks last. Stable."""
    tasks = list(tasks)
    dated = [task for task in tasks if task.deadline is not None]
    undated = [task for task in tasks if task.deadline is None]
    return sorted(dated, key=lambda task: deadline_sort_key(task.deadline)) + undated


def group_by_deadline(tasks: Iterable[Task]) -> List[TaskGroup]:
    """
    Bucket tasks by deadline day.

    Dated groups come out in chronological order and the "No due date" group
    is always last. Tasks keep their relative order inside a group.
    """
    ordered = sort_by_deadline(tasks)
    dated: Dict[date, TaskGroup] = {}
    undated = TaskGroup(label=NO_DUE_DATE, day=None)

    for task in ordered:
        if task.deadline is None:
            undated.tasks.append(task)
            continue
        day = deadline_day(task.deadline)
        group = dated.get(day)
        if group is None:
            group = dated[day] = TaskGroup(label=day_label(day), day=day)
        group.tasks.append(task)

    groups = [dated[day] for day in sorted(dated)]
    if undated.tasks:
        groups.append(undated)
    return groups
