"""Question generation: concrete, always-solvable problems per skill and level."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from mathdrill.engine.levels import Skill, get_level_spec


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    answer: int
    skill: Skill
    level: int


def new_question_id(skill: Skill) -> str:
    return f"{skill.value}-{uuid4().hex}"


def negatives_allowed(skill: Skill, level: int, negative_level: int) -> bool:
    """Whether a drill at this level may produce a negative subtraction answer.

    A negative_level of 0 keeps negatives off entirely.
    """
    return skill is Skill.SUB and negative_level > 0 and level >= negative_level


def generate_question(
    skill: Skill,
    level: int,
    allow_negative: Optional[bool] = None,
    rng: Optional[random.Random] = None,
) -> Question:
    """Draw operands for the level and build the problem text and answer.

    Operands are drawn uniformly and independently from the level's
    inclusive ranges. Subtraction reorders the operands so the answer is
    non-negative unless negatives are allowed, either explicitly through
    allow_negative or by the level table. Division treats the first
    operand as the divisor and the second as the quotient so every
    problem divides exactly.
    """
    skill = Skill(skill)
    rng = rng or random.Random()
    spec = get_level_spec(skill, level)
    a = rng.randint(spec.min_a, spec.max_a)
    b = rng.randint(spec.min_b, spec.max_b)

    if skill is Skill.ADD:
        text, answer = f"{a} + {b}", a + b
    elif skill is Skill.SUB:
        negative = spec.allow_negative if allow_negative is None else allow_negative
        high, low = (a, b) if negative else (max(a, b), min(a, b))
        text, answer = f"{high} - {low}", high - low
    elif skill is Skill.MUL:
        text, answer = f"{a} x {b}", a * b
    else:
        divisor = max(1, a)
        quotient = b
        text, answer = f"{divisor * quotient} / {divisor}", quotient

    return Question(
        id=new_question_id(skill),
        text=text,
        answer=answer,
        skill=skill,
        level=level,
    )
