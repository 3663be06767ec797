"""Tests for the ServerHandler dispatch layer."""

from __future__ import annotations

import json
import random

import pytest

from mathdrill.config.settings import Settings
from mathdrill.server.__main__ import serve
from mathdrill.server.handler import ServerHandler
from mathdrill.server.protocol import Notification
from mathdrill.state.progress import ProgressStore


@pytest.fixture
def handler(tmp_path):
    """Create a ServerHandler backed by a temporary data directory."""
    settings = Settings(data_dir=tmp_path / "data", question_count=5)
    notifications: list[Notification] = []

    h = ServerHandler(
        settings=settings,
        store=ProgressStore(db_path=tmp_path / "data" / "test_progress.db"),
        write_notification=lambda n: notifications.append(n),
    )
    h.session.rng = random.Random(42)
    h._notifications = notifications
    return h


async def _call(handler, method, **params):
    return await handler.dispatch({"method": method, "params": params})


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_method(self, handler):
        with pytest.raises(ValueError, match="Unknown method"):
            await _call(handler, "nonExistent")

    @pytest.mark.asyncio
    async def test_initial_state(self, handler):
        result = await _call(handler, "getState")
        assert result["mode"] == "mix"
        assert result["state"] == "idle"
        assert result["weakest"] is None
        assert result["mistakeCount"] == 0
        assert result["settings"]["questionCount"] == 5


class TestSettings:
    @pytest.mark.asyncio
    async def test_get_settings(self, handler):
        result = await _call(handler, "getSettings")
        assert result["limits"]["timeLimitSeconds"] == {"min": 5, "max": 60}

    @pytest.mark.asyncio
    async def test_update_clamps_and_saves(self, handler, tmp_path):
        result = await _call(handler, "updateSettings", questionCount=99, negativeLevel=3)
        assert result["settings"] == {"questionCount": 50, "timeLimitSeconds": 10, "negativeLevel": 3}
        assert handler.session.settings.question_count == 50
        saved = Settings.load(tmp_path / "data" / "config.yaml")
        assert saved.negative_level == 3

    @pytest.mark.asyncio
    async def test_update_unknown_setting(self, handler):
        with pytest.raises(ValueError, match="Unknown settings"):
            await _call(handler, "updateSettings", theme="dark")


class TestSession:
    @pytest.mark.asyncio
    async def test_start_session(self, handler):
        result = await _call(handler, "startSession", mode="add")
        assert result["question"]["skill"] == "add"
        assert result["index"] == 1
        assert result["total"] == 5
        assert result["question"]["allowNegativeAnswer"] is False

    @pytest.mark.asyncio
    async def test_unknown_mode(self, handler):
        with pytest.raises(ValueError, match="Unknown mode"):
            await _call(handler, "startSession", mode="pow")

    @pytest.mark.asyncio
    async def test_submit_wrong_then_list_mistakes(self, handler):
        await _call(handler, "startSession", mode="mul")
        answer = handler.session.current.answer
        result = await _call(handler, "submit", answer=str(answer + 1), ms=2000)
        assert result["feedback"]["correct"] is False
        assert result["feedback"]["message"] == f"Not yet. Answer: {answer}."
        assert result["tally"] == {"correct": 0, "wrong": 1}

        mistakes = await _call(handler, "listMistakes")
        assert len(mistakes["mistakes"]) == 1
        assert mistakes["mistakes"][0]["skill"] == "mul"

    @pytest.mark.asyncio
    async def test_timeout(self, handler):
        await _call(handler, "startSession", mode="div")
        result = await _call(handler, "timeout", ms=10000)
        assert result["feedback"]["timedOut"] is True

    @pytest.mark.asyncio
    async def test_full_session_and_level_notification(self, handler):
        await _call(handler, "startSession", mode="add")
        result = {"finished": False}
        while not result["finished"]:
            answer = handler.session.current.answer
            await _call(handler, "submit", answer=answer, ms=1000)
            result = await _call(handler, "next")
        assert result == {"finished": True, "correct": 5, "wrong": 0, "accuracy": 100}

        levels = [n for n in handler._notifications if n.method == "levelChanged"]
        assert levels[0].params == {"skill": "add", "level": 2, "direction": "up"}

        stats = await _call(handler, "getStats")
        add = stats["skills"][0]
        assert add["skill"] == "add"
        assert add["level"] == 2
        assert add["accuracy"] == 1.0
        assert add["targetMs"] == 5400
        assert stats["overall"]["attempts"] == 5

    @pytest.mark.asyncio
    async def test_start_mistakes_empty(self, handler):
        with pytest.raises(RuntimeError, match="No mistakes"):
            await _call(handler, "startMistakes")

    @pytest.mark.asyncio
    async def test_reset_stats(self, handler):
        await _call(handler, "startSession", mode="add")
        await _call(handler, "submit", answer="-1", ms=500)
        assert (await _call(handler, "resetStats")) == {"ok": True}
        stats = await _call(handler, "getStats")
        assert stats["overall"]["attempts"] == 0


class TestServe:
    @pytest.mark.asyncio
    async def test_serve_lines(self, handler):
        async def lines():
            yield '{"id": 1, "method": "getState"}\n'
            yield "\n"
            yield "{broken\n"
            yield '{"id": 2, "method": "submit", "params": {"answer": "1", "ms": 5}}\n'

        out: list[str] = []
        await serve(handler, lines(), out.append)
        replies = [json.loads(line) for line in out]
        assert len(replies) == 3
        assert replies[0]["id"] == 1 and replies[0]["result"]["state"] == "idle"
        assert replies[1]["id"] == 0 and "Invalid JSON" in replies[1]["error"]
        assert replies[2] == {"id": 2, "error": "No question is waiting for an answer"}
