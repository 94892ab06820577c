from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgressState:
    """
    Level view of a running XP total. Derived, never the source of truth.
    """

    total_experience: int
    level: int
    experience_into_level: int  # XP earned since the current level's threshold
    experience_for_next_level: int  # XP span between current and next threshold


@dataclass(frozen=True)
class ExperienceResult:
    total_experience: int
    level: int
    leveled_up: bool = False
    new_level: Optional[int] = None  # set only when leveled_up


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0
