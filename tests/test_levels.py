"""Tests for the level table and level lookup."""

import pytest

from mathdrill.engine.levels import LEVELS, MAX_LEVEL, SKILLS, Mode, Skill, get_level_spec


def test_every_skill_has_max_level_levels():
    assert MAX_LEVEL == 12
    for skill in SKILLS:
        assert len(LEVELS[skill]) == MAX_LEVEL


def test_bounds_are_ordered():
    for skill in SKILLS:
        for spec in LEVELS[skill]:
            assert spec.min_a <= spec.max_a
            assert spec.min_b <= spec.max_b


def test_division_divisor_never_zero():
    assert all(spec.min_a >= 1 for spec in LEVELS[Skill.DIV])


@pytest.mark.parametrize("skill", list(Skill))
def test_out_of_range_levels_clamp(skill):
    assert get_level_spec(skill, 0) == get_level_spec(skill, 1)
    assert get_level_spec(skill, -5) == get_level_spec(skill, 1)
    assert get_level_spec(skill, 999) == get_level_spec(skill, MAX_LEVEL)


def test_level_one_addition_range():
    spec = get_level_spec(Skill.ADD, 1)
    assert (spec.min_a, spec.max_a, spec.min_b, spec.max_b) == (0, 10, 0, 10)
    assert spec.allow_negative is False


def test_lookup_accepts_plain_strings():
    assert get_level_spec("mul", 2).max_a == 9


def test_mode_skill():
    assert Mode.MIX.skill is None
    assert Mode.SUB.skill is Skill.SUB
