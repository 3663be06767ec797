"""Per-skill performance state and the leveling state machine.

Every transition is a pure function: update_stats() returns a new Stats
mapping and leaves its input untouched, so a session driver can replay a
sequence of results and compare states directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from mathdrill.engine.levels import MAX_LEVEL, SKILLS, Skill, clamp

logger = logging.getLogger(__name__)

MAX_HISTORY = 12
LEVEL_UP_STREAK = 3
LEVEL_DOWN_STREAK = 2


@dataclass(frozen=True)
class Result:
    correct: bool
    ms: float


@dataclass(frozen=True)
class SkillStats:
    level: int = 1
    streak: int = 0
    mistake_streak: int = 0
    history: tuple[Result, ...] = field(default_factory=tuple)


Stats = dict[Skill, SkillStats]


@dataclass(frozen=True)
class LevelChange:
    skill: Skill
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    @property
    def leveled_down(self) -> bool:
        return self.new_level < self.old_level


@dataclass(frozen=True)
class StatsSummary:
    attempts: int
    accuracy: float
    average_ms: float
    weakest: Optional[Skill]

    @property
    def has_attempts(self) -> bool:
        return self.attempts > 0


def create_default_stats() -> Stats:
    return {skill: SkillStats() for skill in SKILLS}


def get_target_ms(level: int) -> float:
    """Response-time budget for a level: 6s at the bottom, 2.4s floor."""
    return clamp(6000 - level * 300, 2400, 6000)


def _accuracy(history: tuple[Result, ...]) -> float:
    if not history:
        return 0.0
    return sum(1 for item in history if item.correct) / len(history)


def get_accuracy(skill_stats: SkillStats) -> float:
    return _accuracy(skill_stats.history)


def get_average_ms(skill_stats: SkillStats) -> float:
    if not skill_stats.history:
        return 0.0
    return sum(item.ms for item in skill_stats.history) / len(skill_stats.history)


def update_stats(stats: Stats, skill: Skill, correct: bool, ms: float) -> Stats:
    """Record one result for a skill and apply the leveling rules.

    Three correct answers in a row, the last within the level's target
    time, promote one level. Two misses in a row demote one level. A level
    change resets the streak that caused it.
    """
    skill = Skill(skill)
    current = stats[skill]
    history = (current.history + (Result(correct=correct, ms=ms),))[-MAX_HISTORY:]
    next_streak = current.streak + 1 if correct else 0
    next_mistake_streak = 0 if correct else current.mistake_streak + 1

    level = current.level
    leveled_up = False
    leveled_down = False

    if correct and next_streak >= LEVEL_UP_STREAK and ms <= get_target_ms(current.level):
        level = clamp(current.level + 1, 1, MAX_LEVEL)
        leveled_up = level != current.level

    if not correct and next_mistake_streak >= LEVEL_DOWN_STREAK:
        level = clamp(current.level - 1, 1, MAX_LEVEL)
        leveled_down = level != current.level

    if leveled_up or leveled_down:
        logger.debug("%s level %d -> %d", skill.value, current.level, level)

    updated = dict(stats)
    updated[skill] = replace(
        current,
        level=level,
        streak=next_streak if correct and not leveled_up else 0,
        mistake_streak=next_mistake_streak if not correct and not leveled_down else 0,
        history=history,
    )
    return updated


def describe_update(before: Stats, after: Stats, skill: Skill) -> LevelChange:
    skill = Skill(skill)
    return LevelChange(
        skill=skill,
        old_level=before[skill].level,
        new_level=after[skill].level,
    )


def summarize(stats: Stats) -> StatsSummary:
    """Aggregate accuracy and speed across every skill's recent history."""
    from mathdrill.engine.selector import get_weakest_skill

    history = tuple(item for skill in SKILLS for item in stats[skill].history)
    attempts = len(history)
    return StatsSummary(
        attempts=attempts,
        accuracy=_accuracy(history),
        average_ms=sum(item.ms for item in history) / attempts if attempts else 0.0,
        weakest=get_weakest_skill(stats) if attempts else None,
    )
