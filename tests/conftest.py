"""Shared fixtures for mathdrill tests."""

from __future__ import annotations

import random

import pytest

from mathdrill.config.settings import Settings
from mathdrill.state.progress import ProgressStore


class SequenceRandom:
    """Stand-in generator that replays fixed draws in order."""

    def __init__(self, ints=(), floats=()):
        self._ints = list(ints)
        self._floats = list(floats)

    def randint(self, low, high):
        value = self._ints.pop(0)
        assert low <= value <= high, f"{value} outside [{low}, {high}]"
        return value

    def random(self):
        return self._floats.pop(0)


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep config and progress files out of the real home directory."""
    data_dir = tmp_path / "home"
    monkeypatch.setenv("MATHDRILL_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", question_count=5)


@pytest.fixture
def store(tmp_path):
    return ProgressStore(db_path=tmp_path / "data" / "progress.db")


@pytest.fixture
def fixed_random():
    """Factory for SequenceRandom instances."""
    return SequenceRandom
