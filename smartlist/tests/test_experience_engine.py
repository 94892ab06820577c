from smartlist.features.experience.engine import ExperienceEngine, level_for, progress_for, threshold_for


def test_threshold_curve():
    assert [threshold_for(level) for level in range(1, 6)] == [0, 500, 1500, 3000, 5000]


def test_level_boundaries():
    assert level_for(0) == 1
    assert level_for(499) == 1
    assert level_for(500) == 2
    assert level_for(1499) == 2
    assert level_for(1500) == 3
    assert level_for(3000) == 4


def test_level_is_monotonic_and_at_least_one():
    previous = 1
    for total in range(0, 60000, 37):
        level = level_for(total)
        assert level >= previous
        assert threshold_for(level) <= total < threshold_for(level + 1)
        previous = level


def test_progress_within_level():
    progress = progress_for(750)
    assert progress.level == 2
    assert progress.experience_into_level == 250
    assert progress.experience_for_next_level == 1000


def test_apply_delta_reports_level_up():
    engine = ExperienceEngine()

    first = engine.apply_delta(150)
    assert first.total_experience == 150
    assert first.leveled_up is False
    assert first.new_level is None

    second = engine.apply_delta(350)
    assert second.leveled_up is True
    assert second.new_level == 2
    assert engine.level == 2


def test_level_drops_without_level_up_flag():
    engine = ExperienceEngine(600)

    result = engine.apply_delta(-200)

    assert result.level == 1
    assert result.leveled_up is False


def test_total_is_clamped_at_zero():
    engine = ExperienceEngine(100)

    result = engine.apply_delta(-300)

    assert result.total_experience == 0
    assert result.level == 1


def test_reset_returns_to_level_one():
    engine = ExperienceEngine(5000)
    result = engine.reset()
    assert (result.total_experience, result.level) == (0, 1)
    assert engine.total_experience == 0
