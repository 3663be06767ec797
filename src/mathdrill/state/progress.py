"""SQLite-backed persistence for learner progress.

Stats, the current mode, and the mistake ledger are stored as JSON blobs.
Everything read back is validated here before it reaches the engine:
unknown skill keys, non-object entries and non-finite numbers are dropped,
and missing fields fall back to their defaults one by one.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from mathdrill.engine.levels import MAX_LEVEL, SKILLS, Mode, Skill, clamp
from mathdrill.engine.mistakes import MAX_MISTAKES, MistakeItem, mistake_key
from mathdrill.engine.stats import (
    MAX_HISTORY,
    Result,
    SkillStats,
    Stats,
    create_default_stats,
)

logger = logging.getLogger(__name__)

STATS_KEY = "stats"
MODE_KEY = "mode"
MISTAKES_KEY = "mistakes"


def _finite(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _count(value: Any, default: int = 0) -> int:
    if not _finite(value) or value < 0:
        return default
    return int(value)


def _parse_result(raw: Any) -> Optional[Result]:
    if not isinstance(raw, dict):
        return None
    ms = raw.get("ms")
    if not isinstance(raw.get("correct"), bool) or not _finite(ms) or ms < 0:
        return None
    return Result(correct=raw["correct"], ms=float(ms))


def _parse_skill_stats(raw: Any) -> SkillStats:
    if not isinstance(raw, dict):
        return SkillStats()
    level = raw.get("level")
    history_raw = raw.get("history")
    history: list[Result] = []
    if isinstance(history_raw, list):
        history = [r for r in map(_parse_result, history_raw) if r is not None]
    streak = _count(raw.get("streak"))
    return SkillStats(
        level=clamp(int(level), 1, MAX_LEVEL) if _finite(level) else 1,
        streak=streak,
        # at most one streak counter can be running
        mistake_streak=0 if streak else _count(raw.get("mistakeStreak")),
        history=tuple(history[-MAX_HISTORY:]),
    )


def parse_stats(data: Any) -> Stats:
    stats = create_default_stats()
    if not isinstance(data, dict):
        return stats
    for key, raw in data.items():
        try:
            skill = Skill(key)
        except ValueError:
            logger.warning("Ignoring stats for unknown skill %r", key)
            continue
        stats[skill] = _parse_skill_stats(raw)
    return stats


def _skill_stats_to_dict(entry: SkillStats) -> dict:
    return {
        "level": entry.level,
        "streak": entry.streak,
        "mistakeStreak": entry.mistake_streak,
        "history": [{"correct": r.correct, "ms": r.ms} for r in entry.history],
    }


def stats_to_dict(stats: Stats) -> dict:
    return {skill.value: _skill_stats_to_dict(stats[skill]) for skill in SKILLS}


def parse_mode(data: Any, default: Mode = Mode.MIX) -> Mode:
    try:
        return Mode(data)
    except ValueError:
        return default


def _parse_mistake(raw: Any) -> Optional[MistakeItem]:
    if not isinstance(raw, dict):
        return None
    try:
        skill = Skill(raw.get("skill"))
    except ValueError:
        return None
    text = raw.get("text")
    answer = raw.get("answer")
    if not isinstance(text, str) or not text or not _finite(answer) or answer != int(answer):
        return None
    level = raw.get("level")
    try:
        last_missed_at = datetime.fromisoformat(raw.get("lastMissedAt"))
    except (TypeError, ValueError):
        last_missed_at = datetime.fromtimestamp(0)
    if last_missed_at.tzinfo is not None:
        # ledger timestamps are naive local time
        last_missed_at = last_missed_at.astimezone().replace(tzinfo=None)
    return MistakeItem(
        id=mistake_key(skill, text),
        text=text,
        answer=int(answer),
        skill=skill,
        level=clamp(int(level), 1, MAX_LEVEL) if _finite(level) else 1,
        misses=max(1, _count(raw.get("misses"), 1)),
        last_missed_at=last_missed_at,
    )


def parse_mistakes(data: Any) -> list[MistakeItem]:
    if not isinstance(data, list):
        return []
    items: list[MistakeItem] = []
    seen: set[str] = set()
    for raw in data:
        item = _parse_mistake(raw)
        if item is None or item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
    return items[:MAX_MISTAKES]


def mistake_to_dict(item: MistakeItem) -> dict:
    return {
        "id": item.id,
        "text": item.text,
        "answer": item.answer,
        "skill": item.skill.value,
        "level": item.level,
        "misses": item.misses,
        "lastMissedAt": item.last_missed_at.isoformat(),
    }


class ProgressStore:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or (Path.home() / ".mathdrill" / "progress.db")
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _get(self, key: str) -> Any:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if not row:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning("Discarding malformed %s blob: %s", key, e)
            return None

    def _put(self, key: str, value: Any) -> None:
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
                (key, json.dumps(value), now),
            )

    def load_stats(self) -> Stats:
        return parse_stats(self._get(STATS_KEY))

    def save_stats(self, stats: Stats) -> None:
        self._put(STATS_KEY, stats_to_dict(stats))

    def load_mode(self, default: Mode = Mode.MIX) -> Mode:
        return parse_mode(self._get(MODE_KEY), default)

    def save_mode(self, mode: Mode) -> None:
        self._put(MODE_KEY, Mode(mode).value)

    def load_mistakes(self) -> list[MistakeItem]:
        return parse_mistakes(self._get(MISTAKES_KEY))

    def save_mistakes(self, items: list[MistakeItem]) -> None:
        self._put(MISTAKES_KEY, [mistake_to_dict(item) for item in items[:MAX_MISTAKES]])

    def reset(self) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM kv")
