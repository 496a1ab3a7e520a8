"""Follow-up questions about a graded quiz item."""

from __future__ import annotations

import logging
import threading

from ..errors import RemoteServiceError, TutorBusyError, ValidationError
from .models import GradedQuestion
from .services import TutorService

__all__ = [
    "CONNECTION_FALLBACK",
    "EMPTY_FALLBACK",
    "TutorDesk",
    "ask_tutor",
    "build_tutor_prompt",
]

logger = logging.getLogger(__name__)

CONNECTION_FALLBACK = "Sorry, I couldn't connect to the AI tutor right now."
EMPTY_FALLBACK = "I couldn't generate an explanation at this time."


def build_tutor_prompt(
    *, question_text: str, user_answer: str, ideal_answer: str, query: str
) -> str:
    return (
        "Context:\n"
        f'Question: "{question_text}"\n'
        f'Student Answer: "{user_answer}"\n'
        f'Correct Answer: "{ideal_answer}"\n\n'
        f'The student asks: "{query}"\n\n'
        "Provide a clear, helpful explanation. Be concise but thorough."
    )


def ask_tutor(
    service: TutorService,
    *,
    question_text: str,
    user_answer: str,
    ideal_answer: str,
    query: str,
) -> str:
    """Ask one follow-up question; transport failures become a fallback text."""

    query = (query or "").strip()
    if not query:
        raise ValidationError("Please type a question for the tutor.")
    prompt = build_tutor_prompt(
        question_text=question_text,
        user_answer=user_answer,
        ideal_answer=ideal_answer,
        query=query,
    )
    try:
        reply = service.explain(prompt)
    except RemoteServiceError as exc:
        logger.warning(
            "Tutor unavailable",
            extra={"event": "tutor_fallback", "reason": str(exc)},
        )
        return CONNECTION_FALLBACK
    except Exception as exc:
        logger.exception(
            "Tutor call failed",
            extra={"event": "tutor_fallback", "reason": repr(exc)},
        )
        return CONNECTION_FALLBACK
    reply = (reply or "").strip()
    if not reply:
        logger.info("Tutor returned no text", extra={"event": "tutor_empty"})
        return EMPTY_FALLBACK
    return reply


class TutorDesk:
    """Allows a single outstanding tutor query at a time."""

    def __init__(self, service: TutorService) -> None:
        self._service = service
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def ask(self, graded: GradedQuestion, query: str) -> str:
        if not self._lock.acquire(blocking=False):
            raise TutorBusyError("A tutor question is already being answered.")
        try:
            return ask_tutor(
                self._service,
                question_text=graded.question.text,
                user_answer=graded.user_answer,
                ideal_answer=graded.ideal_answer,
                query=query,
            )
        finally:
            self._lock.release()
