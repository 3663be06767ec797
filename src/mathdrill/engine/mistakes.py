"""Mistake ledger: previously missed problems kept for targeted practice."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from mathdrill.engine.levels import Skill
from mathdrill.engine.questions import Question, new_question_id

MAX_MISTAKES = 50


@dataclass(frozen=True)
class MistakeItem:
    id: str
    text: str
    answer: int
    skill: Skill
    level: int
    misses: int
    last_missed_at: datetime


def mistake_key(skill: Skill, text: str) -> str:
    """Identity of a problem, independent of the random question id."""
    return f"{Skill(skill).value}:{text}"


def add_mistake_entry(
    items: list[MistakeItem],
    question: Question,
    now: Optional[datetime] = None,
) -> list[MistakeItem]:
    """Record a miss, merging repeats of the same problem at the head."""
    now = now or datetime.now()
    key = mistake_key(question.skill, question.text)
    existing = next((item for item in items if item.id == key), None)
    if existing is not None:
        entry = replace(
            existing,
            answer=question.answer,
            level=question.level,
            misses=existing.misses + 1,
            last_missed_at=now,
        )
    else:
        entry = MistakeItem(
            id=key,
            text=question.text,
            answer=question.answer,
            skill=question.skill,
            level=question.level,
            misses=1,
            last_missed_at=now,
        )
    rest = [item for item in items if item.id != key]
    return [entry, *rest][:MAX_MISTAKES]


def remove_mistake_entry(items: list[MistakeItem], question: Question) -> list[MistakeItem]:
    key = mistake_key(question.skill, question.text)
    return [item for item in items if item.id != key]


def order_for_practice(items: list[MistakeItem]) -> list[MistakeItem]:
    """Most-missed first, most recently missed breaking ties."""
    return sorted(items, key=lambda item: (item.misses, item.last_missed_at), reverse=True)


def question_from_mistake(item: MistakeItem) -> Question:
    return Question(
        id=new_question_id(item.skill),
        text=item.text,
        answer=item.answer,
        skill=item.skill,
        level=item.level,
    )


def build_practice_queue(items: list[MistakeItem], count: int) -> list[Question]:
    return [question_from_mistake(item) for item in order_for_practice(items)[:count]]
