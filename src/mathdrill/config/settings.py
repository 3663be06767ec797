"""Configuration model for mathdrill."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from mathdrill.engine.levels import MAX_LEVEL, Mode

# (low, high, default) per numeric setting
LIMITS: dict[str, tuple[int, int, int]] = {
    "question_count": (5, 50, 10),
    "time_limit_seconds": (5, 60, 10),
    "negative_level": (0, MAX_LEVEL, 0),
}


def default_data_dir() -> Path:
    env = os.environ.get("MATHDRILL_DATA_DIR")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".mathdrill"


def _clamp_setting(name: str, value: Any) -> int:
    low, high, default = LIMITS[name]
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return default
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return default
    return min(max(int(value), low), high)


class Settings(BaseModel):
    question_count: int = LIMITS["question_count"][2]
    time_limit_seconds: int = LIMITS["time_limit_seconds"][2]
    negative_level: int = LIMITS["negative_level"][2]
    default_mode: Mode = Mode.MIX
    data_dir: Path = Field(default_factory=default_data_dir)

    @field_validator("question_count", "time_limit_seconds", "negative_level", mode="before")
    @classmethod
    def _clamp(cls, value: Any, info: ValidationInfo) -> int:
        return _clamp_setting(info.field_name, value)

    @field_validator("default_mode", mode="before")
    @classmethod
    def _known_mode(cls, value: Any) -> Mode:
        try:
            return Mode(value)
        except ValueError:
            return Mode.MIX

    @property
    def time_limit_ms(self) -> int:
        return self.time_limit_seconds * 1000

    def adjust(self, name: str, delta: int) -> "Settings":
        """Return a copy with one numeric setting nudged and clamped."""
        if name not in LIMITS:
            raise ValueError(f"Unknown setting: {name}")
        return self.model_copy(update={name: _clamp_setting(name, getattr(self, name) + delta)})

    @classmethod
    def config_path(cls) -> Path:
        return default_data_dir() / "config.yaml"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        config_path = path or cls.config_path()
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                data = {}
            return cls(**data)
        return cls()

    def save(self, path: Optional[Path] = None) -> None:
        config_path = path or self.data_dir / "config.yaml"
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
