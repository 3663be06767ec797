"""Skill keys and the static per-skill difficulty table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Skill(str, Enum):
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"


class Mode(str, Enum):
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MIX = "mix"

    @property
    def skill(self) -> Skill | None:
        """The fixed skill this mode drills, or None for mix."""
        if self is Mode.MIX:
            return None
        return Skill(self.value)


# Fixed order: selection scans and tie-breaks depend on it.
SKILLS: tuple[Skill, ...] = (Skill.ADD, Skill.SUB, Skill.MUL, Skill.DIV)

SKILL_LABELS: dict[Skill, str] = {
    Skill.ADD: "Addition",
    Skill.SUB: "Subtraction",
    Skill.MUL: "Multiplication",
    Skill.DIV: "Division",
}

SKILL_SYMBOLS: dict[Skill, str] = {
    Skill.ADD: "+",
    Skill.SUB: "-",
    Skill.MUL: "x",
    Skill.DIV: "/",
}


@dataclass(frozen=True)
class LevelSpec:
    """Operand ranges for one (skill, level). Bounds are inclusive."""
    max_a: int
    max_b: int
    min_a: int = 0
    min_b: int = 0
    allow_negative: bool = False


def _square(*maxima: int) -> tuple[LevelSpec, ...]:
    return tuple(LevelSpec(max_a=m, max_b=m) for m in maxima)


LEVELS: dict[Skill, tuple[LevelSpec, ...]] = {
    Skill.ADD: _square(10, 20, 30, 50, 75, 100, 150, 250, 500, 1000, 1500, 2000),
    Skill.SUB: _square(10, 20, 30, 50, 75, 100, 150, 250, 500, 1000, 1500, 2000),
    Skill.MUL: _square(5, 9, 12, 15, 20, 25, 30, 40, 50, 60, 75, 90),
    # Division: A is the divisor, B the quotient.
    Skill.DIV: (
        LevelSpec(min_a=1, max_a=5, max_b=5),
        LevelSpec(min_a=1, max_a=9, max_b=9),
        LevelSpec(min_a=1, max_a=12, max_b=12),
        LevelSpec(min_a=2, max_a=15, max_b=12),
        LevelSpec(min_a=2, max_a=20, max_b=15),
        LevelSpec(min_a=2, max_a=25, max_b=20),
        LevelSpec(min_a=3, max_a=30, max_b=25),
        LevelSpec(min_a=3, max_a=40, max_b=30),
        LevelSpec(min_a=4, max_a=50, max_b=40),
        LevelSpec(min_a=5, max_a=60, max_b=50),
        LevelSpec(min_a=6, max_a=75, max_b=60),
        LevelSpec(min_a=8, max_a=90, max_b=70),
    ),
}

MAX_LEVEL = len(LEVELS[Skill.ADD])


def _check_table() -> None:
    for skill in SKILLS:
        specs = LEVELS[skill]
        if len(specs) != MAX_LEVEL:
            raise RuntimeError(
                f"Level table for {skill.value} has {len(specs)} levels, expected {MAX_LEVEL}"
            )
        for number, spec in enumerate(specs, start=1):
            if spec.min_a > spec.max_a or spec.min_b > spec.max_b:
                raise RuntimeError(f"Inverted operand bounds at {skill.value} level {number}")


_check_table()


def clamp(value, low, high):
    return min(max(value, low), high)


def get_level_spec(skill: Skill, level: int) -> LevelSpec:
    """Return the spec for a level, clamping out-of-range levels silently."""
    specs = LEVELS[Skill(skill)]
    return specs[clamp(level - 1, 0, len(specs) - 1)]
