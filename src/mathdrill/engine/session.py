"""Drill session state machine: start → ask → answer/time out → advance.

The session owns the learner's current Stats, mistake ledger and mode,
feeds every result through the pure engine transitions, and persists the
returned values after each mutation when a store is attached.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from mathdrill.config.settings import Settings
from mathdrill.engine.levels import Mode, Skill
from mathdrill.engine.mistakes import (
    MistakeItem,
    add_mistake_entry,
    build_practice_queue,
    remove_mistake_entry,
)
from mathdrill.engine.questions import Question, generate_question, negatives_allowed
from mathdrill.engine.selector import choose_skill
from mathdrill.engine.stats import Stats, create_default_stats, describe_update, update_stats

if TYPE_CHECKING:
    from mathdrill.state.progress import ProgressStore

logger = logging.getLogger(__name__)


class AnswerError(ValueError):
    """Raised for input that is not a number; the caller should prompt again."""


class SessionError(RuntimeError):
    """Raised when the session is driven out of order."""


class DrillState(str, Enum):
    IDLE = "idle"
    AWAITING_ANSWER = "awaiting_answer"
    FEEDBACK = "feedback"
    FINISHED = "finished"


class SessionKind(str, Enum):
    DRILL = "drill"
    MISTAKES = "mistakes"


def format_ms(ms: float) -> str:
    return f"{ms / 1000:.1f}s"


def parse_answer(text: str) -> Union[int, float]:
    """Parse a typed answer, rejecting anything that is not a finite number."""
    cleaned = text.strip()
    if not cleaned:
        raise AnswerError("Type an answer.")
    if cleaned == "-":
        raise AnswerError("Type a number.")
    try:
        value = float(cleaned)
    except ValueError:
        raise AnswerError("Numbers only for now.") from None
    if not math.isfinite(value):
        raise AnswerError("Numbers only for now.")
    return int(value) if value.is_integer() else value


@dataclass(frozen=True)
class Feedback:
    correct: bool
    expected: int
    ms: float
    skill: Skill
    level: int
    timed_out: bool = False
    leveled_up: bool = False
    leveled_down: bool = False

    @property
    def message(self) -> str:
        if self.correct:
            return f"Correct. {format_ms(self.ms)}."
        if self.timed_out:
            return f"Time's up. Answer: {self.expected}."
        return f"Not yet. Answer: {self.expected}."


@dataclass
class Tally:
    correct: int = 0
    wrong: int = 0

    @property
    def answered(self) -> int:
        return self.correct + self.wrong

    @property
    def accuracy_percent(self) -> int:
        if self.answered == 0:
            return 0
        # halves round up
        return math.floor(self.correct / self.answered * 100 + 0.5)


def create_question(
    mode: Mode,
    stats: Stats,
    negative_level: int,
    rng: Optional[random.Random] = None,
) -> Question:
    """Pick the skill for the mode and draw a question at its current level."""
    skill = choose_skill(mode, stats, rng)
    level = stats[skill].level
    return generate_question(
        skill,
        level,
        allow_negative=negatives_allowed(skill, level, negative_level),
        rng=rng,
    )


@dataclass
class _Run:
    kind: SessionKind
    total: int
    index: int = 1
    queue: list[Question] = field(default_factory=list)
    tally: Tally = field(default_factory=Tally)


class DrillSession:
    """Holds learner state between questions and drives one session at a time."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        stats: Optional[Stats] = None,
        mistakes: Optional[list[MistakeItem]] = None,
        mode: Optional[Mode] = None,
        store: Optional["ProgressStore"] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or Settings()
        self.store = store
        self.rng = rng or random.Random()
        if stats is None:
            stats = store.load_stats() if store else create_default_stats()
        if mistakes is None:
            mistakes = store.load_mistakes() if store else []
        if mode is None:
            mode = store.load_mode(self.settings.default_mode) if store else self.settings.default_mode
        self.stats: Stats = stats
        self.mistakes: list[MistakeItem] = mistakes
        self.mode: Mode = Mode(mode)
        self.state = DrillState.IDLE
        self.current: Optional[Question] = None
        self.last_feedback: Optional[Feedback] = None
        self._run: Optional[_Run] = None

    # --- session lifecycle ---

    def start(self, mode: Optional[Mode] = None) -> Question:
        """Begin a regular drill of settings.question_count questions."""
        if mode is not None:
            self.mode = Mode(mode)
        if self.store:
            self.store.save_mode(self.mode)
        self._run = _Run(kind=SessionKind.DRILL, total=self.settings.question_count)
        return self._begin(self._draw())

    def start_mistakes(self) -> Question:
        """Begin a practice session over the most-missed ledger entries."""
        queue = build_practice_queue(self.mistakes, self.settings.question_count)
        if not queue:
            raise SessionError("No mistakes to practice")
        self._run = _Run(kind=SessionKind.MISTAKES, total=len(queue), queue=queue)
        return self._begin(queue[0])

    def submit(self, raw_answer: str, elapsed_ms: float) -> Feedback:
        """Check a typed answer; AnswerError leaves the question open for retry."""
        self._require_open()
        value = parse_answer(raw_answer)
        return self._record(value == self.current.answer, elapsed_ms)

    def time_out(self, elapsed_ms: float) -> Feedback:
        self._require_open()
        return self._record(False, elapsed_ms, timed_out=True)

    def advance(self) -> Optional[Question]:
        """Move to the next question, or finish and return None."""
        if self._run is None or self.state is not DrillState.FEEDBACK:
            raise SessionError("Answer the current question before advancing")
        run = self._run
        if run.index >= run.total:
            self.state = DrillState.FINISHED
            self.current = None
            return None
        run.index += 1
        if run.kind is SessionKind.MISTAKES:
            question = run.queue[run.index - 1]
        else:
            question = self._draw()
        return self._begin(question)

    def reset_stats(self) -> None:
        self.stats = create_default_stats()
        if self.store:
            self.store.save_stats(self.stats)

    # --- read-only views ---

    @property
    def kind(self) -> Optional[SessionKind]:
        return self._run.kind if self._run else None

    @property
    def index(self) -> int:
        return self._run.index if self._run else 0

    @property
    def total(self) -> int:
        return self._run.total if self._run else 0

    @property
    def tally(self) -> Tally:
        return self._run.tally if self._run else Tally()

    @property
    def finished(self) -> bool:
        return self.state is DrillState.FINISHED

    # --- internals ---

    def _draw(self) -> Question:
        return create_question(self.mode, self.stats, self.settings.negative_level, self.rng)

    def _begin(self, question: Question) -> Question:
        self.current = question
        self.last_feedback = None
        self.state = DrillState.AWAITING_ANSWER
        return question

    def _require_open(self) -> None:
        if self.current is None or self.state is not DrillState.AWAITING_ANSWER:
            raise SessionError("No question is waiting for an answer")

    def _record(self, correct: bool, elapsed_ms: float, timed_out: bool = False) -> Feedback:
        question = self.current
        before = self.stats
        self.stats = update_stats(before, question.skill, correct, elapsed_ms)
        change = describe_update(before, self.stats, question.skill)
        if change.leveled_up or change.leveled_down:
            logger.info(
                "%s moved from level %d to %d",
                question.skill.value, change.old_level, change.new_level,
            )

        if not correct:
            self.mistakes = add_mistake_entry(self.mistakes, question)
        elif self._run.kind is SessionKind.MISTAKES:
            self.mistakes = remove_mistake_entry(self.mistakes, question)

        if correct:
            self._run.tally.correct += 1
        else:
            self._run.tally.wrong += 1

        self._save()
        self.state = DrillState.FEEDBACK
        self.last_feedback = Feedback(
            correct=correct,
            expected=question.answer,
            ms=elapsed_ms,
            skill=question.skill,
            level=question.level,
            timed_out=timed_out,
            leveled_up=change.leveled_up,
            leveled_down=change.leveled_down,
        )
        return self.last_feedback

    def _save(self) -> None:
        if self.store is None:
            return
        self.store.save_stats(self.stats)
        self.store.save_mistakes(self.mistakes)
