"""Skill selection for mix mode, weighted toward weaker skills."""

from __future__ import annotations

import random
from typing import Optional

from mathdrill.engine.levels import SKILLS, Mode, Skill
from mathdrill.engine.stats import SkillStats, Stats, get_accuracy

# Untried skills count as mediocre rather than mastered.
NO_DATA_SCORE = 0.55
MIN_WEIGHT = 0.15


def skill_score(skill_stats: SkillStats) -> float:
    if not skill_stats.history:
        return NO_DATA_SCORE
    return get_accuracy(skill_stats)


def get_weakest_skill(stats: Stats) -> Skill:
    """Lowest-scoring skill; ties keep the earliest skill in fixed order."""
    weakest = SKILLS[0]
    weakest_score = 1.0
    for skill in SKILLS:
        score = skill_score(stats[skill])
        if score < weakest_score:
            weakest_score = score
            weakest = skill
    return weakest


def skill_weights(stats: Stats) -> list[tuple[Skill, float]]:
    return [(skill, max(MIN_WEIGHT, 1 - skill_score(stats[skill]))) for skill in SKILLS]


def pick_skill(stats: Stats, rng: Optional[random.Random] = None) -> Skill:
    """Weighted random draw; every skill keeps at least MIN_WEIGHT."""
    rng = rng or random.Random()
    weighted = skill_weights(stats)
    total = sum(weight for _, weight in weighted)
    roll = rng.random() * total
    for skill, weight in weighted:
        roll -= weight
        if roll <= 0:
            return skill
    return Skill.ADD


def choose_skill(mode: Mode, stats: Stats, rng: Optional[random.Random] = None) -> Skill:
    mode = Mode(mode)
    if mode is Mode.MIX:
        return pick_skill(stats, rng)
    return mode.skill
