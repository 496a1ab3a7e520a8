"""Interactive quiz session: navigation, per-type answer capture and timer.

The session is a small state machine. It starts in ``Active(0)`` and ends in
``Finalized`` after the last question is submitted or the countdown runs
out. Simple question types write straight into the answer map; matching and
sequencing questions keep transient working state that is encoded into the
answer map when the question is left forwards (or when the session is
forced to finish). Going back re-initializes that transient state.

The countdown is driven by an injected scheduler, e.g. Textual's
``App.set_interval``; every tick calls the bound :meth:`QuizSession.tick`,
so it always reads the live session state.
"""

from __future__ import annotations

import logging
from typing import (
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Protocol,
    Sequence,
)

from ..errors import SessionClosedError, ValidationError
from .encoding import encode_matching, encode_sequence, encode_simple
from .models import Question, QuestionType, UserAnswer
from .normalizer import RandomSource, fisher_yates

__all__ = [
    "FinishReason",
    "QuizSession",
    "Scheduler",
    "SessionStatus",
    "TimerHandle",
    "TRUE_FALSE_CHOICES",
    "format_clock",
]

logger = logging.getLogger(__name__)

SessionStatus = Literal["active", "finalized"]
FinishReason = Literal["submitted", "timeout"]

TRUE_FALSE_CHOICES = ("True", "False")
TICK_SECONDS = 1.0


class TimerHandle(Protocol):
    def stop(self) -> None:
        ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]
FinalizeCallback = Callable[[tuple[UserAnswer, ...]], None]


def format_clock(seconds: int) -> str:
    """Render seconds as ``m:ss``."""

    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


class QuizSession:
    """Owns the mutable answer set while a quiz is being taken."""

    def __init__(
        self,
        questions: Sequence[Question],
        *,
        time_limit_minutes: int = 0,
        rng: Optional[RandomSource] = None,
        scheduler: Optional[Scheduler] = None,
        on_finalized: Optional[FinalizeCallback] = None,
    ) -> None:
        if not questions:
            raise ValidationError("A quiz session needs at least one question.")
        ids = [question.id for question in questions]
        if len(set(ids)) != len(ids):
            raise ValidationError("Question identities must be unique.")
        if time_limit_minutes < 0:
            raise ValidationError("Time limit cannot be negative.")

        self._questions = tuple(questions)
        self._rng = rng
        self._scheduler = scheduler
        self._on_finalized = on_finalized
        self._time_limit_seconds = time_limit_minutes * 60
        self._remaining: Optional[int] = None
        self._timer: Optional[TimerHandle] = None
        self._started = False

        self._status: SessionStatus = "active"
        self._finish_reason: Optional[FinishReason] = None
        self._index = 0
        self._answers: Dict[int, str] = {}
        self._sequence: List[str] = []
        self._matches: Dict[str, str] = {}
        self._final: Optional[tuple[UserAnswer, ...]] = None
        self._activate(0)

    # -- read-only state -------------------------------------------------

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_finalized(self) -> bool:
        return self._status == "finalized"

    @property
    def finish_reason(self) -> Optional[FinishReason]:
        return self._finish_reason

    @property
    def index(self) -> int:
        return self._index

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def current(self) -> Question:
        return self._questions[self._index]

    @property
    def is_last(self) -> bool:
        return self._index == len(self._questions) - 1

    @property
    def has_timer(self) -> bool:
        return self._time_limit_seconds > 0

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    @property
    def remaining_seconds(self) -> Optional[int]:
        if not self.has_timer:
            return None
        if self._remaining is None:
            return self._time_limit_seconds
        return self._remaining

    @property
    def answers(self) -> Optional[tuple[UserAnswer, ...]]:
        """Finalized answer set, ``None`` while the session is active."""

        return self._final

    def answer_for(self, question_id: int) -> str:
        return self._answers.get(question_id, "")

    def answered_count(self) -> int:
        return sum(1 for value in self._answers.values() if value)

    @property
    def sequence_items(self) -> tuple[str, ...]:
        return tuple(self._sequence)

    @property
    def match_selections(self) -> Dict[str, str]:
        return dict(self._matches)

    @property
    def right_choices(self) -> List[str]:
        """Every distinct right-hand item of the current matching question."""

        question = self.current
        if question.type is not QuestionType.MATCHING:
            return []
        return sorted({pair.right for pair in question.matching_pairs})

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Arm the countdown when a time limit and scheduler are set."""

        self._ensure_active()
        if self._started:
            return
        self._started = True
        if not self.has_timer or self._scheduler is None:
            return
        self._remaining = self._time_limit_seconds
        self._timer = self._scheduler(TICK_SECONDS, self.tick)
        logger.info(
            "Countdown armed",
            extra={"event": "timer_armed", "seconds": self._remaining},
        )

    def tick(self) -> None:
        """One countdown second; forces finalization when time runs out."""

        if self.is_finalized or self._remaining is None:
            return
        self._remaining = max(0, self._remaining - 1)
        if self._remaining % 60 == 0 or self._remaining <= 5:
            logger.debug(
                "Countdown tick",
                extra={"event": "timer_tick", "remaining": self._remaining},
            )
        if self._remaining == 0:
            self.timeout()

    def timeout(self) -> None:
        """Finish immediately, keeping whatever has been answered."""

        if self.is_finalized:
            return
        logger.info(
            "Time limit reached",
            extra={
                "event": "session_timeout",
                "index": self._index,
                "answered": self.answered_count(),
            },
        )
        self._commit_current()
        self._finalize("timeout")

    # -- navigation ----------------------------------------------------------

    def advance(self) -> SessionStatus:
        """Commit the current question and move on, submitting on the last."""

        self._ensure_active()
        self._commit_current()
        if self.is_last:
            self._finalize("submitted")
        else:
            self._activate(self._index + 1)
            logger.debug(
                "Advanced", extra={"event": "advance", "index": self._index}
            )
        return self._status

    def retreat(self) -> bool:
        """Go back one question without committing transient state."""

        self._ensure_active()
        if self._index == 0:
            return False
        self._activate(self._index - 1)
        logger.debug(
            "Retreated", extra={"event": "retreat", "index": self._index}
        )
        return True

    # -- answer capture ------------------------------------------------------

    def record_answer(self, text: str) -> bool:
        """Store a simple-type answer for the current question."""

        self._ensure_active()
        question = self.current
        if not question.type.is_simple:
            return False
        value = encode_simple("" if text is None else str(text))
        if question.type is QuestionType.MULTIPLE_CHOICE:
            if value and value not in question.options:
                return False
        elif question.type is QuestionType.TRUE_FALSE:
            if value and value not in TRUE_FALSE_CHOICES:
                return False
        self._answers[question.id] = value
        return True

    def move_up(self, position: int) -> bool:
        """Swap the item at ``position`` with its predecessor."""

        return self._swap(position, position - 1)

    def move_down(self, position: int) -> bool:
        """Swap the item at ``position`` with its successor."""

        return self._swap(position, position + 1)

    def select_match(self, left: str, right: str) -> bool:
        self._ensure_active()
        question = self.current
        if question.type is not QuestionType.MATCHING:
            return False
        lefts = {pair.left for pair in question.matching_pairs}
        if left not in lefts or right not in self.right_choices:
            return False
        self._matches[left] = right
        return True

    def clear_match(self, left: str) -> bool:
        """Forget the selection for ``left``; it is submitted unmatched."""

        self._ensure_active()
        if self.current.type is not QuestionType.MATCHING:
            return False
        return self._matches.pop(left, None) is not None

    # -- internals -----------------------------------------------------------

    def _swap(self, source: int, target: int) -> bool:
        self._ensure_active()
        if self.current.type is not QuestionType.SEQUENCING:
            return False
        size = len(self._sequence)
        if not (0 <= source < size and 0 <= target < size):
            return False
        items = self._sequence
        items[source], items[target] = items[target], items[source]
        return True

    def _activate(self, index: int) -> None:
        self._index = index
        question = self._questions[index]
        self._sequence = []
        self._matches = {}
        if question.type is QuestionType.SEQUENCING:
            self._sequence = fisher_yates(question.sequencing_items, self._rng)

    def _commit_current(self) -> None:
        question = self.current
        if question.type is QuestionType.SEQUENCING:
            self._answers[question.id] = encode_sequence(self._sequence)
        elif question.type is QuestionType.MATCHING:
            self._answers[question.id] = encode_matching(self._matches)

    def _ensure_active(self) -> None:
        if self.is_finalized:
            raise SessionClosedError("The quiz session is already finalized.")

    def _finalize(self, reason: FinishReason) -> None:
        if self.is_finalized:
            return
        self._status = "finalized"
        self._finish_reason = reason
        self._stop_timer()
        self._final = tuple(
            UserAnswer(question.id, self._answers.get(question.id, ""))
            for question in self._questions
        )
        self._answers = {}
        self._sequence = []
        self._matches = {}
        logger.info(
            "Session finalized",
            extra={
                "event": "session_finalized",
                "reason": reason,
                "questions": len(self._final),
            },
        )
        if self._on_finalized is not None:
            self._on_finalized(self._final)

    def _stop_timer(self) -> None:
        if self._timer is None:
            return
        timer, self._timer = self._timer, None
        timer.stop()
        logger.debug("Countdown stopped", extra={"event": "timer_stopped"})
