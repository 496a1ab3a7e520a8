"""Grading request contract and reconciliation of grading responses."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from ..errors import IdentityMismatchError, MalformedGradingError, ValidationError
from .models import (
    GradedQuestion,
    Question,
    QuizResult,
    UserAnswer,
    answers_by_id,
)
from .normalizer import coerce_id

__all__ = [
    "ALLOWED_SCORES",
    "DEFAULT_FEEDBACK",
    "GRADING_SCHEMA",
    "GradingRequest",
    "aggregate_results",
    "build_grading_request",
    "snap_score",
]

logger = logging.getLogger(__name__)

ALLOWED_SCORES = (0.0, 0.5, 1.0)
DEFAULT_FEEDBACK = "Quiz completed."

GRADING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "gradedQuestions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "isCorrect": {"type": "boolean"},
                    "score": {
                        "type": "number",
                        "description": "1 for correct, 0.5 for partial, 0 for wrong.",
                    },
                    "explanation": {
                        "type": "string",
                        "description": (
                            "Why the answer is right or wrong. Required for "
                            "every question."
                        ),
                    },
                    "aiCorrection": {
                        "type": "string",
                        "description": "The ideal answer.",
                    },
                },
                "required": [
                    "id",
                    "isCorrect",
                    "score",
                    "explanation",
                    "aiCorrection",
                ],
            },
        },
        "overallFeedback": {"type": "string"},
    },
    "required": ["gradedQuestions", "overallFeedback"],
}

_GRADING_INSTRUCTIONS = """You are a strict but helpful teacher. Grade this student's quiz submission.
Compare 'userAnswers' against the 'questions'.

Grading logic:
- matching: compare the student's pairs against 'matchingPairs' pair by pair. Answers look like "left -> right, left -> right".
- sequencing: compare the student's order against 'sequencingItems'. Answers look like "first || second || third".
- short_answer and fill_in_blank: judge by meaning, not exact wording.
- multiple_choice and true_false: compare against 'correctAnswer'.
- An empty answer is wrong.

Score each question 1 (correct), 0.5 (partially correct) or 0 (wrong).
Provide an explanation for EVERY question, without exception, and give the ideal answer as 'aiCorrection'.
Finish with short overall feedback for the student."""


@dataclass(frozen=True)
class GradingRequest:
    questions: tuple[Dict[str, Any], ...]
    answers: tuple[Dict[str, Any], ...]
    instructions: str
    schema: Mapping[str, Any]

    def context(self) -> Dict[str, Any]:
        return {
            "questions": list(self.questions),
            "userAnswers": list(self.answers),
        }

    def prompt(self) -> str:
        """Instructions followed by the serialized grading context."""

        data = json.dumps(self.context(), ensure_ascii=False)
        return f"{self.instructions}\n\nData: {data}"


def _grading_view(question: Question) -> Dict[str, Any]:
    view: Dict[str, Any] = {"id": question.id, "text": question.text}
    if question.correct_answer is not None:
        view["correctAnswer"] = question.correct_answer
    if question.matching_pairs:
        view["matchingPairs"] = [
            pair.to_payload() for pair in question.matching_pairs
        ]
    if question.sequencing_items:
        view["sequencingItems"] = list(question.sequencing_items)
    view["type"] = question.type.value
    return view


def build_grading_request(
    questions: Sequence[Question], answers: Sequence[UserAnswer]
) -> GradingRequest:
    """Pair every question with exactly one answer and build the request.

    Raises :class:`ValidationError` if the answer set does not cover the
    question identities one-to-one.
    """
    question_ids = [question.id for question in questions]
    answer_ids = [answer.question_id for answer in answers]
    if len(set(answer_ids)) != len(answer_ids):
        raise ValidationError("Each question may only be answered once.")
    if set(answer_ids) != set(question_ids):
        raise ValidationError("The answer set must cover every question.")
    return GradingRequest(
        questions=tuple(_grading_view(question) for question in questions),
        answers=tuple(answer.to_payload() for answer in answers),
        instructions=_GRADING_INSTRUCTIONS,
        schema=GRADING_SCHEMA,
    )


def snap_score(value: float) -> float:
    """Return the allowed score closest to ``value`` (ties go lower)."""

    return min(ALLOWED_SCORES, key=lambda allowed: (abs(allowed - value), allowed))


def _read_score(record: Mapping[str, Any], question_id: int) -> float:
    raw = record.get("score", 0)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        try:
            raw = float(str(raw).strip())
        except ValueError as exc:
            raise MalformedGradingError(
                f"Score for question {question_id} is not a number: {raw!r}"
            ) from exc
    score = float(raw)
    if score in ALLOWED_SCORES:
        return score
    snapped = snap_score(score)
    logger.warning(
        "Snapped out-of-range score",
        extra={
            "event": "score_snapped",
            "question_id": question_id,
            "raw_score": score,
            "score": snapped,
        },
    )
    return snapped


def _read_flag(record: Mapping[str, Any], question_id: int) -> bool:
    raw = record.get("isCorrect", False)
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    raise MalformedGradingError(
        f"isCorrect for question {question_id} is not a boolean: {raw!r}"
    )


def aggregate_results(
    payload: Any,
    questions: Sequence[Question],
    answers: Sequence[UserAnswer],
) -> QuizResult:
    """Merge a grading response with the quiz it grades.

    Every graded record must name a question of the quiz exactly once;
    otherwise :class:`IdentityMismatchError` is raised and no result is
    produced. Graded questions come back in the original question order.
    """
    if not isinstance(payload, Mapping):
        raise MalformedGradingError("Grading response must be a JSON object.")
    records = payload.get("gradedQuestions")
    if not isinstance(records, list):
        raise MalformedGradingError(
            "Invalid grading structure: missing 'gradedQuestions'."
        )

    by_id = {question.id: question for question in questions}
    seen: Dict[int, Mapping[str, Any]] = {}
    for record in records:
        if not isinstance(record, Mapping):
            raise MalformedGradingError("Graded question must be an object.")
        raw_id = record.get("id")
        question_id = coerce_id(raw_id)
        if question_id is None or question_id not in by_id:
            _log_mismatch(raw_id, "unknown")
            raise IdentityMismatchError(raw_id)
        if question_id in seen:
            _log_mismatch(raw_id, "duplicate")
            raise IdentityMismatchError(
                question_id,
                f"Question ID {question_id} graded more than once",
            )
        seen[question_id] = record

    user_answers = answers_by_id(answers)
    graded: List[GradedQuestion] = []
    for question in questions:
        record = seen.get(question.id)
        if record is None:
            logger.warning(
                "Question left ungraded",
                extra={"event": "question_ungraded", "question_id": question.id},
            )
            continue
        graded.append(
            GradedQuestion(
                question=question,
                user_answer=user_answers.get(question.id, ""),
                is_correct=_read_flag(record, question.id),
                score=_read_score(record, question.id),
                explanation=str(record.get("explanation") or ""),
                ideal_answer=str(record.get("aiCorrection") or ""),
            )
        )

    total = sum(item.score for item in graded)
    feedback = payload.get("overallFeedback")
    result = QuizResult(
        total_score=total,
        max_score=len(questions),
        graded_questions=tuple(graded),
        overall_feedback=str(feedback) if feedback else DEFAULT_FEEDBACK,
    )
    logger.info(
        "Quiz graded",
        extra={
            "event": "quiz_graded",
            "total_score": result.total_score,
            "max_score": result.max_score,
            "percentage": result.percentage,
        },
    )
    return result


def _log_mismatch(raw_id: Any, kind: str) -> None:
    logger.error(
        "Grading identity mismatch",
        extra={
            "event": "identity_mismatch",
            "question_id": repr(raw_id),
            "kind": kind,
        },
    )
