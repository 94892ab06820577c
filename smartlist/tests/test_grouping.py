from datetime import date, datetime, timezone

from smartlist.features.tasks.grouping import group_by_deadline, sort_by_deadline
from smartlist.models.task import NO_DUE_DATE, Task, day_label


def _task(task_id, deadline=None):
    return Task(id=task_id, name=task_id, deadline=deadline, created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))


def test_same_day_deadlines_share_a_group():
    morning = _task("a", "2024-01-01")
    evening = _task("b", datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc))
    next_day = _task("c", "2024-01-02")

    groups = group_by_deadline([next_day, evening, morning])

    assert [g.label for g in groups] == ["Mon, Jan 1, 2024", "Tue, Jan 2, 2024"]
    assert [t.id for t in groups[0].tasks] == ["a", "b"]
    assert groups[0].day == date(2024, 1, 1)


def test_no_due_date_group_is_last():
    undated_first = _task("u1")
    dated = _task("d", "2030-12-31")
    undated_second = _task("u2")

    groups = group_by_deadline([undated_first, dated, undated_second])

    assert groups[-1].label == NO_DUE_DATE
    assert groups[-1].day is None
    assert [t.id for t in groups[-1].tasks] == ["u1", "u2"]


def test_no_groups_for_empty_list():
    assert group_by_deadline([]) == []


def test_only_undated_tasks_yield_single_group():
    groups = group_by_deadline([_task("x"), _task("y")])
    assert len(groups) == 1
    assert groups[0].label == NO_DUE_DATE


def test_sort_is_stable_for_equal_deadlines():
    tasks = [_task(name, "2024-03-03") for name in ("first", "second", "third")]
    assert [t.id for t in sort_by_deadline(tasks)] == ["first", "second", "third"]


def test_day_label_format():
    assert day_label(date(2024, 2, 9)) == "Fri, Feb 9, 2024"
