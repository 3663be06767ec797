"""Server handler: dispatches JSON-lines requests to a drill session."""

from __future__ import annotations

from typing import Callable, Optional

from mathdrill.config.settings import LIMITS, Settings
from mathdrill.engine.levels import MAX_LEVEL, SKILL_LABELS, SKILLS, Mode
from mathdrill.engine.mistakes import order_for_practice
from mathdrill.engine.questions import Question, negatives_allowed
from mathdrill.engine.session import DrillSession, Feedback
from mathdrill.engine.stats import get_accuracy, get_average_ms, get_target_ms, summarize
from mathdrill.state.progress import ProgressStore, mistake_to_dict

from .protocol import Notification

# camelCase wire names for Settings fields
SETTINGS_FIELDS = {
    "questionCount": "question_count",
    "timeLimitSeconds": "time_limit_seconds",
    "negativeLevel": "negative_level",
}


def _question_to_dict(question: Optional[Question], negative_level: int) -> dict:
    if question is None:
        return {}
    return {
        "id": question.id,
        "text": question.text,
        "skill": question.skill.value,
        "level": question.level,
        "allowNegativeAnswer": negatives_allowed(question.skill, question.level, negative_level),
    }


def _feedback_to_dict(feedback: Feedback) -> dict:
    return {
        "correct": feedback.correct,
        "expected": feedback.expected,
        "ms": feedback.ms,
        "skill": feedback.skill.value,
        "level": feedback.level,
        "timedOut": feedback.timed_out,
        "leveledUp": feedback.leveled_up,
        "leveledDown": feedback.leveled_down,
        "message": feedback.message,
    }


def _settings_to_dict(settings: Settings) -> dict:
    return {wire: getattr(settings, name) for wire, name in SETTINGS_FIELDS.items()}


class ServerHandler:
    """Routes incoming requests to session methods and returns result dicts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[ProgressStore] = None,
        write_notification: Optional[Callable[[Notification], None]] = None,
    ):
        self.settings = settings or Settings.load()
        self._write_notification = write_notification or (lambda n: None)
        self.store = store or ProgressStore(db_path=self.settings.data_dir / "progress.db")
        self.session = DrillSession(settings=self.settings, store=self.store)

    async def dispatch(self, msg: dict) -> dict:
        """Route a request message to the appropriate handler method."""
        method = msg.get("method", "")
        params = msg.get("params", {})

        handler_map = {
            "getState": self._get_state,
            "getSettings": self._get_settings,
            "updateSettings": self._update_settings,
            "startSession": self._start_session,
            "startMistakes": self._start_mistakes,
            "getQuestion": self._get_question,
            "submit": self._submit,
            "timeout": self._timeout,
            "next": self._next,
            "getStats": self._get_stats,
            "listMistakes": self._list_mistakes,
            "resetStats": self._reset_stats,
        }

        handler = handler_map.get(method)
        if handler is None:
            raise ValueError(f"Unknown method: {method}")

        return await handler(params)

    def _question_payload(self) -> dict:
        return {
            "question": _question_to_dict(self.session.current, self.settings.negative_level),
            "index": self.session.index,
            "total": self.session.total,
            "timeLimitSeconds": self.settings.time_limit_seconds,
        }

    async def _get_state(self, params: dict) -> dict:
        summary = summarize(self.session.stats)
        return {
            "mode": self.session.mode.value,
            "state": self.session.state.value,
            "settings": _settings_to_dict(self.settings),
            "weakest": SKILL_LABELS[summary.weakest] if summary.weakest else None,
            "mistakeCount": len(self.session.mistakes),
        }

    async def _get_settings(self, params: dict) -> dict:
        return {
            "settings": _settings_to_dict(self.settings),
            "limits": {
                wire: {"min": LIMITS[name][0], "max": LIMITS[name][1]}
                for wire, name in SETTINGS_FIELDS.items()
            },
        }

    async def _update_settings(self, params: dict) -> dict:
        updates = {
            name: params[wire] for wire, name in SETTINGS_FIELDS.items() if wire in params
        }
        unknown = set(params) - set(SETTINGS_FIELDS)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        # Re-validate through the model so values are clamped.
        self.settings = Settings(**{**self.settings.model_dump(), **updates})
        self.settings.save()
        self.session.settings = self.settings
        return {"settings": _settings_to_dict(self.settings)}

    async def _start_session(self, params: dict) -> dict:
        mode = params.get("mode", self.session.mode.value)
        try:
            mode = Mode(mode)
        except ValueError:
            raise ValueError(f"Unknown mode: {mode}") from None
        self.session.start(mode)
        return self._question_payload()

    async def _start_mistakes(self, params: dict) -> dict:
        self.session.start_mistakes()
        return self._question_payload()

    async def _get_question(self, params: dict) -> dict:
        return self._question_payload()

    async def _submit(self, params: dict) -> dict:
        feedback = self.session.submit(str(params["answer"]), float(params["ms"]))
        return self._feedback_payload(feedback)

    async def _timeout(self, params: dict) -> dict:
        feedback = self.session.time_out(float(params["ms"]))
        return self._feedback_payload(feedback)

    def _feedback_payload(self, feedback: Feedback) -> dict:
        if feedback.leveled_up or feedback.leveled_down:
            self._write_notification(Notification("levelChanged", {
                "skill": feedback.skill.value,
                "level": self.session.stats[feedback.skill].level,
                "direction": "up" if feedback.leveled_up else "down",
            }))
        return {
            "feedback": _feedback_to_dict(feedback),
            "tally": {
                "correct": self.session.tally.correct,
                "wrong": self.session.tally.wrong,
            },
        }

    async def _next(self, params: dict) -> dict:
        question = self.session.advance()
        if question is None:
            tally = self.session.tally
            return {
                "finished": True,
                "correct": tally.correct,
                "wrong": tally.wrong,
                "accuracy": tally.accuracy_percent,
            }
        return {"finished": False, **self._question_payload()}

    async def _get_stats(self, params: dict) -> dict:
        stats = self.session.stats
        summary = summarize(stats)
        return {
            "maxLevel": MAX_LEVEL,
            "skills": [
                {
                    "skill": skill.value,
                    "label": SKILL_LABELS[skill],
                    "level": stats[skill].level,
                    "streak": stats[skill].streak,
                    "accuracy": get_accuracy(stats[skill]),
                    "averageMs": get_average_ms(stats[skill]),
                    "targetMs": get_target_ms(stats[skill].level),
                    "attempts": len(stats[skill].history),
                }
                for skill in SKILLS
            ],
            "overall": {
                "attempts": summary.attempts,
                "accuracy": summary.accuracy,
                "averageMs": summary.average_ms,
                "weakest": summary.weakest.value if summary.weakest else None,
            },
        }

    async def _list_mistakes(self, params: dict) -> dict:
        return {"mistakes": [mistake_to_dict(m) for m in order_for_practice(self.session.mistakes)]}

    async def _reset_stats(self, params: dict) -> dict:
        self.session.reset_stats()
        return {"ok": True}
