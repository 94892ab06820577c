from datetime import date, datetime, timedelta, timezone
from itertools import permutations

from smartlist.features.streaks.tracker import completion_days, compute_streaks
from smartlist.models.task import Task

DAY = date(2024, 1, 10)


def _done(task_id, completed_at):
    return Task(
        id=task_id,
        name=task_id,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        completed_at=completed_at,
    )


def _on(offset, hour=12, task_id=None):
    moment = datetime.combine(DAY + timedelta(days=offset), datetime.min.time()).replace(hour=hour)
    return _done(task_id or f"t{offset}-{hour}", moment)


def test_no_completions_means_no_streak():
    state = compute_streaks([], today=DAY)
    assert (state.current, state.longest) == (0, 0)


def test_gap_breaks_current_run():
    tasks = [_on(0), _on(1), _on(3)]
    state = compute_streaks(tasks, today=DAY + timedelta(days=3))
    assert state.current == 1
    assert state.longest == 2


def test_multiple_completions_same_day_count_once():
    tasks = [_on(0, hour=8), _on(0, hour=20)]
    state = compute_streaks(tasks, today=DAY)
    assert (state.current, state.longest) == (1, 1)


def test_streak_survives_until_end_of_next_day():
    tasks = [_on(0), _on(1)]
    assert compute_streaks(tasks, today=DAY + timedelta(days=2)).current == 2
    assert compute_streaks(tasks, today=DAY + timedelta(days=3)).current == 0
    assert compute_streaks(tasks, today=DAY + timedelta(days=3)).longest == 2


def test_result_does_not_depend_on_input_order():
    tasks = [_on(0), _on(1), _on(2), _on(5), _on(6)]
    expected = compute_streaks(tasks, today=DAY + timedelta(days=6))
    for ordering in permutations(tasks):
        assert compute_streaks(list(ordering), today=DAY + timedelta(days=6)) == expected
    assert (expected.current, expected.longest) == (2, 3)


def test_aware_timestamps_use_local_day_of_given_zone():
    late_evening_utc = _done("x", datetime(2024, 1, 10, 23, 30, tzinfo=timezone.utc))
    plus_two = timezone(timedelta(hours=2))

    assert completion_days([late_evening_utc], tz=timezone.utc) == [date(2024, 1, 10)]
    assert completion_days([late_evening_utc], tz=plus_two) == [date(2024, 1, 11)]
