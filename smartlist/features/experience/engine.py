"""
Experience Engine

Pure arithmetic from a running XP total to a level.

Threshold curve: reaching level L takes 250 * L * (L - 1) cumulative XP,
so each level costs 500 XP more than the previous one:

    level 1 ->     0 XP
    level 2 ->   500 XP
    level 3 ->  1500 XP
    level 4 ->  3000 XP

Thresholds are strictly increasing, so every total maps to exactly one level
and level_for() is monotonic non-decreasing.

The running total is clamped at zero. A negative delta that would go below
zero (e.g. removing a completed task after progress was reset) stops at zero,
so XP reversal is only exact while no reset intervened.
"""

from __future__ import annotations

from math import isqrt

from smartlist.models.progress import ExperienceResult, ProgressState

MIN_LEVEL = 1
LEVEL_STEP_XP = 500


def threshold_for(level: int) -> int:
    """Cumulative XP needed to reach ``level``."""
    if level <= MIN_LEVEL:
        return 0
    return LEVEL_STEP_XP * level * (level - 1) // 2


def level_for(total_experience: int) -> int:
    if total_experience <= 0:
        return MIN_LEVEL
    # Largest L with 250 * L * (L - 1) <= total; isqrt gives a guess within one step.
    guess = (1 + isqrt(1 + 8 * total_experience // LEVEL_STEP_XP)) // 2
    level = max(MIN_LEVEL, guess)
    while threshold_for(level + 1) <= total_experience:
        level += 1
    while level > MIN_LEVEL and threshold_for(level) > total_experience:
        level -= 1
    return level


def progress_for(total_experience: int) -> ProgressState:
    total = max(0, total_experience)
    level = level_for(total)
    floor = threshold_for(level)
    return ProgressState(
        total_experience=total,
        level=level,
        experience_into_level=total - floor,
        experience_for_next_level=threshold_for(level + 1) - floor,
    )


class ExperienceEngine:
    """Holds the running XP total and reports level transitions."""

    def __init__(self, total_experience: int = 0):
        self._total = max(0, int(total_experience))
        self._level = level_for(self._total)

    @property
    def total_experience(self) -> int:
        return self._total

    @property
    def level(self) -> int:
        return self._level

    def progress(self) -> ProgressState:
        return progress_for(self._total)

    def apply_delta(self, delta: int) -> ExperienceResult:
        previous_level = self._level
        self._total = max(0, self._total + delta)
        self._level = level_for(self._total)
        leveled_up = self._level > previous_level
        return ExperienceResult(
            total_experience=self._total,
            level=self._level,
            leveled_up=leveled_up,
            new_level=self._level if leveled_up else None,
        )

    def reset(self) -> ExperienceResult:
        self._total = 0
        self._level = MIN_LEVEL
        return ExperienceResult(total_experience=0, level=MIN_LEVEL)
