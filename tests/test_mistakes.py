"""Tests for the mistake ledger."""

from datetime import datetime, timedelta

from mathdrill.engine.levels import Skill
from mathdrill.engine.mistakes import (
    MAX_MISTAKES,
    add_mistake_entry,
    build_practice_queue,
    mistake_key,
    order_for_practice,
    remove_mistake_entry,
)
from mathdrill.engine.questions import Question

T0 = datetime(2026, 1, 1, 9, 0, 0)


def _q(text, answer, skill=Skill.ADD, level=1, qid="q"):
    return Question(id=qid, text=text, answer=answer, skill=skill, level=level)


def test_key_ignores_question_id():
    assert mistake_key(Skill.ADD, "2 + 3") == "add:2 + 3"


def test_first_miss_creates_entry():
    items = add_mistake_entry([], _q("2 + 3", 5), now=T0)
    assert len(items) == 1
    assert items[0].id == "add:2 + 3"
    assert items[0].misses == 1
    assert items[0].last_missed_at == T0


def test_repeat_miss_merges_and_moves_to_head():
    items = add_mistake_entry([], _q("2 + 3", 5, qid="a"), now=T0)
    items = add_mistake_entry(items, _q("4 + 4", 8), now=T0 + timedelta(seconds=1))
    items = add_mistake_entry(items, _q("2 + 3", 5, level=2, qid="b"), now=T0 + timedelta(seconds=2))
    assert [item.text for item in items] == ["2 + 3", "4 + 4"]
    assert items[0].misses == 2
    assert items[0].level == 2
    assert items[0].last_missed_at == T0 + timedelta(seconds=2)


def test_same_text_different_skill_stays_separate():
    items = add_mistake_entry([], _q("6 / 3", 2, skill=Skill.DIV), now=T0)
    items = add_mistake_entry(items, _q("6 / 3", 2, skill=Skill.MUL), now=T0)
    assert len(items) == 2


def test_ledger_capped():
    items = []
    for i in range(MAX_MISTAKES + 10):
        items = add_mistake_entry(items, _q(f"{i} + 1", i + 1), now=T0 + timedelta(seconds=i))
    assert len(items) == MAX_MISTAKES
    assert items[0].text == f"{MAX_MISTAKES + 9} + 1"
    assert items[-1].text == "10 + 1"


def test_add_does_not_mutate_input():
    items = add_mistake_entry([], _q("2 + 3", 5), now=T0)
    add_mistake_entry(items, _q("2 + 3", 5), now=T0)
    assert items[0].misses == 1


class TestRemove:
    def test_removes_matching_entry_only(self):
        items = add_mistake_entry([], _q("1 + 1", 2), now=T0)
        items = add_mistake_entry(items, _q("2 + 2", 4), now=T0)
        items = add_mistake_entry(items, _q("3 + 3", 6), now=T0)
        remaining = remove_mistake_entry(items, _q("2 + 2", 4, qid="different"))
        assert len(remaining) == 2
        assert [item.text for item in remaining] == ["3 + 3", "1 + 1"]

    def test_absent_entry_is_noop(self):
        items = add_mistake_entry([], _q("1 + 1", 2), now=T0)
        assert remove_mistake_entry(items, _q("9 + 9", 18)) == items


class TestPractice:
    def _ledger(self):
        items = []
        items = add_mistake_entry(items, _q("1 + 1", 2), now=T0)
        items = add_mistake_entry(items, _q("2 + 2", 4), now=T0 + timedelta(minutes=1))
        items = add_mistake_entry(items, _q("2 + 2", 4), now=T0 + timedelta(minutes=2))
        items = add_mistake_entry(items, _q("3 + 3", 6), now=T0 + timedelta(minutes=3))
        return items

    def test_order_by_misses_then_recency(self):
        ordered = order_for_practice(self._ledger())
        assert [item.text for item in ordered] == ["2 + 2", "3 + 3", "1 + 1"]

    def test_queue_reuses_stored_problems(self):
        queue = build_practice_queue(self._ledger(), 2)
        assert [q.text for q in queue] == ["2 + 2", "3 + 3"]
        assert [q.answer for q in queue] == [4, 6]
        assert all(q.skill is Skill.ADD for q in queue)
        assert len({q.id for q in queue}) == 2

    def test_queue_shorter_than_requested(self):
        assert len(build_practice_queue(self._ledger(), 10)) == 3
