"""Post-processing of raw generated question sets."""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Any, List, Mapping, Optional, Protocol, Sequence, TypeVar

from ..errors import MalformedQuestionSetError
from .models import Question, QuestionType

__all__ = [
    "RandomSource",
    "coerce_id",
    "fisher_yates",
    "normalize_question_set",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_RNG = random.Random()


class RandomSource(Protocol):
    """Anything exposing ``randrange``; ``random.Random`` qualifies."""

    def randrange(self, stop: int) -> int:
        ...


def fisher_yates(
    items: Sequence[T], rng: Optional[RandomSource] = None
) -> List[T]:
    """Return an unbiased random permutation of ``items`` as a new list."""

    source = rng if rng is not None else _DEFAULT_RNG
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = source.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def normalize_question_set(
    payload: Any, *, rng: Optional[RandomSource] = None
) -> List[Question]:
    """Validate a generation response and return session-ready questions.

    - ``payload`` must be an object carrying a ``questions`` array.
    - Items that are not objects, or that have an unknown type, no text or
      missing type-required fields, are dropped with a warning.
    - Identities stay as generated when they are unique integers; anything
      else gets the next unused positive integer.
    - Multiple-choice options are shuffled; ``correct_answer`` is untouched.
    """
    if not isinstance(payload, Mapping) or "questions" not in payload:
        raise MalformedQuestionSetError(
            "Invalid response structure: missing 'questions'."
        )
    raw_items = payload["questions"]
    if not isinstance(raw_items, list):
        raise MalformedQuestionSetError(
            "Invalid response structure: 'questions' must be a list."
        )

    positions: List[int] = []
    items: List[Mapping[str, Any]] = []
    for position, item in enumerate(raw_items):
        if not isinstance(item, Mapping):
            _log_dropped(position, f"not an object: {type(item).__name__}")
            continue
        positions.append(position)
        items.append(item)
    ids = _assign_ids(items)
    questions: List[Question] = []
    for position, item, qid in zip(positions, items, ids):
        try:
            question = Question.from_payload({**item, "id": qid})
        except ValueError as exc:
            _log_dropped(position, str(exc))
            continue
        missing = question.missing_fields()
        if missing:
            _log_dropped(position, "missing " + ", ".join(missing))
            continue
        if question.type is QuestionType.MULTIPLE_CHOICE:
            question = replace(
                question, options=tuple(fisher_yates(question.options, rng))
            )
        questions.append(question)

    if not questions:
        raise MalformedQuestionSetError(
            "The generation service returned no usable questions."
        )
    logger.info(
        "Question set normalized",
        extra={
            "event": "questions_normalized",
            "received": len(raw_items),
            "kept": len(questions),
        },
    )
    return questions


def coerce_id(raw: Any) -> Optional[int]:
    """Read an integer identity from JSON-ish input, ``None`` if not one."""

    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return None


def _assign_ids(items: Sequence[Mapping[str, Any]]) -> List[int]:
    candidates = [coerce_id(item.get("id")) for item in items]
    taken: set[int] = set()
    keep: List[Optional[int]] = []
    for candidate in candidates:
        if candidate is None or candidate in taken:
            keep.append(None)
            continue
        taken.add(candidate)
        keep.append(candidate)

    next_id = 1
    assigned: List[int] = []
    for position, candidate in enumerate(keep):
        if candidate is not None:
            assigned.append(candidate)
            continue
        while next_id in taken:
            next_id += 1
        taken.add(next_id)
        assigned.append(next_id)
        logger.debug(
            "Assigned question id",
            extra={
                "event": "question_id_assigned",
                "position": position,
                "question_id": next_id,
                "raw_id": repr(items[position].get("id")),
            },
        )
    return assigned


def _log_dropped(position: int, reason: str) -> None:
    logger.warning(
        "Dropped malformed question",
        extra={
            "event": "question_dropped",
            "position": position,
            "reason": reason,
        },
    )
