"""Question, answer and result types shared by every quiz component.

Wire payloads use the camelCase field names of the generation and grading
schemas (``correctAnswer``, ``matchingPairs``, ``sequencingItems``,
``questionId``, ``aiCorrection``); the dataclasses use snake_case and are
immutable once built.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from ..errors import ValidationError

__all__ = [
    "MAX_QUESTIONS",
    "QuestionType",
    "Difficulty",
    "UploadedFile",
    "QuizConfig",
    "MatchingPair",
    "Question",
    "UserAnswer",
    "GradedQuestion",
    "QuizResult",
    "answers_by_id",
]

MAX_QUESTIONS = 100


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_IN_BLANK = "fill_in_blank"
    SHORT_ANSWER = "short_answer"
    MATCHING = "matching"
    SEQUENCING = "sequencing"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @property
    def is_complex(self) -> bool:
        """Complex types keep transient state until the question is left."""

        return self in (QuestionType.MATCHING, QuestionType.SEQUENCING)

    @property
    def is_simple(self) -> bool:
        return not self.is_complex

    @classmethod
    def parse(cls, raw: str) -> "QuestionType":
        candidate = str(raw).strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if candidate in (member.value, member.name.lower()):
                return member
        known = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown question type '{raw}'. Known: {known}")


_TYPE_LABELS = {
    QuestionType.MULTIPLE_CHOICE: "Multiple Choice",
    QuestionType.TRUE_FALSE: "True / False",
    QuestionType.FILL_IN_BLANK: "Fill in Blank",
    QuestionType.SHORT_ANSWER: "Short Answer",
    QuestionType.MATCHING: "Matching",
    QuestionType.SEQUENCING: "Sequencing",
}


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, raw: str) -> "Difficulty":
        candidate = str(raw).strip().lower()
        for member in cls:
            if member.value.lower() == candidate:
                return member
        raise ValueError(
            f"Unknown difficulty '{raw}'. Use Easy, Medium or Hard."
        )


@dataclass(frozen=True)
class UploadedFile:
    """A lesson document accepted by intake, held as base64 text."""

    id: str
    name: str
    media_type: str
    data: str
    size: int = 0

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


@dataclass(frozen=True)
class QuizConfig:
    """Validated quiz request settings, fixed at submission time."""

    documents: tuple[UploadedFile, ...]
    question_count: int
    question_types: tuple[QuestionType, ...]
    auto_detect: bool
    difficulty: Difficulty
    instructions: str = ""
    time_limit_minutes: int = 0

    @classmethod
    def create(
        cls,
        documents: Iterable[UploadedFile],
        *,
        question_count: int = 5,
        question_types: Iterable[QuestionType | str] = (),
        auto_detect: bool = True,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        instructions: str = "",
        time_limit_minutes: int = 0,
    ) -> "QuizConfig":
        """Build a config, enforcing ranges and auto-detect exclusivity.

        Choosing any explicit question type turns auto-detect off. An empty
        document set is allowed here; the request builder rejects it.
        """
        if not 1 <= int(question_count) <= MAX_QUESTIONS:
            raise ValidationError(
                f"Question count must be between 1 and {MAX_QUESTIONS}."
            )
        if int(time_limit_minutes) < 0:
            raise ValidationError("Time limit cannot be negative.")
        try:
            types = _dedupe_types(question_types)
            level = (
                difficulty
                if isinstance(difficulty, Difficulty)
                else Difficulty.parse(difficulty)
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return cls(
            documents=tuple(documents),
            question_count=int(question_count),
            question_types=types,
            auto_detect=bool(auto_detect) and not types,
            difficulty=level,
            instructions=(instructions or "").strip(),
            time_limit_minutes=int(time_limit_minutes),
        )

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60


def _dedupe_types(
    values: Iterable[QuestionType | str],
) -> tuple[QuestionType, ...]:
    seen: list[QuestionType] = []
    for value in values:
        member = (
            value
            if isinstance(value, QuestionType)
            else QuestionType.parse(value)
        )
        if member not in seen:
            seen.append(member)
    return tuple(seen)


@dataclass(frozen=True)
class MatchingPair:
    left: str
    right: str

    def to_payload(self) -> dict[str, str]:
        return {"left": self.left, "right": self.right}


@dataclass(frozen=True)
class Question:
    """A generated question; only the fields its type needs are kept."""

    id: int
    type: QuestionType
    text: str
    options: tuple[str, ...] = ()
    correct_answer: str | None = None
    matching_pairs: tuple[MatchingPair, ...] = ()
    sequencing_items: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Question":
        """Build from a wire object; raises ``ValueError`` on bad shape."""

        qtype = QuestionType.parse(str(data.get("type", "")))
        text = str(data.get("text") or "").strip()
        if not text:
            raise ValueError("question text is required")
        raw_id = data.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise ValueError(f"question id must be an integer, got {raw_id!r}")
        correct = data.get("correctAnswer")
        options: tuple[str, ...] = ()
        pairs: tuple[MatchingPair, ...] = ()
        items: tuple[str, ...] = ()
        if qtype is QuestionType.MULTIPLE_CHOICE:
            options = _clean_strings(data.get("options"))
        elif qtype is QuestionType.MATCHING:
            pairs = _clean_pairs(data.get("matchingPairs"))
            correct = None
        elif qtype is QuestionType.SEQUENCING:
            items = _clean_strings(data.get("sequencingItems"))
            correct = None
        return cls(
            id=raw_id,
            type=qtype,
            text=text,
            options=options,
            correct_answer=(
                str(correct).strip() if correct is not None else None
            ),
            matching_pairs=pairs,
            sequencing_items=items,
        )

    def missing_fields(self) -> list[str]:
        """Return wire names of type-required fields that are absent."""

        missing: list[str] = []
        if self.type is QuestionType.MATCHING:
            if not self.matching_pairs:
                missing.append("matchingPairs")
            return missing
        if self.type is QuestionType.SEQUENCING:
            if len(self.sequencing_items) < 2:
                missing.append("sequencingItems")
            return missing
        if self.type is QuestionType.MULTIPLE_CHOICE and len(self.options) < 2:
            missing.append("options")
        if not self.correct_answer:
            missing.append("correctAnswer")
        return missing

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "text": self.text,
        }
        if self.type is QuestionType.MULTIPLE_CHOICE:
            payload["options"] = list(self.options)
        if self.correct_answer is not None:
            payload["correctAnswer"] = self.correct_answer
        if self.matching_pairs:
            payload["matchingPairs"] = [
                pair.to_payload() for pair in self.matching_pairs
            ]
        if self.sequencing_items:
            payload["sequencingItems"] = list(self.sequencing_items)
        return payload

    @property
    def reference_answer(self) -> str:
        """Human readable ground truth used in reports."""

        if self.type is QuestionType.MATCHING:
            return ", ".join(
                f"{pair.left} -> {pair.right}" for pair in self.matching_pairs
            )
        if self.type is QuestionType.SEQUENCING:
            return " || ".join(self.sequencing_items)
        return self.correct_answer or ""


def _clean_strings(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(str(item).strip() for item in raw if str(item).strip())


def _clean_pairs(raw: Any) -> tuple[MatchingPair, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    pairs: list[MatchingPair] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        left = str(item.get("left") or "").strip()
        right = str(item.get("right") or "").strip()
        if left and right:
            pairs.append(MatchingPair(left, right))
    return tuple(pairs)


@dataclass(frozen=True)
class UserAnswer:
    question_id: int
    answer: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"questionId": self.question_id, "answer": self.answer}


@dataclass(frozen=True)
class GradedQuestion:
    """A question merged with the user's answer and its grading outcome."""

    question: Question
    user_answer: str
    is_correct: bool
    score: float
    explanation: str
    ideal_answer: str

    @property
    def id(self) -> int:
        return self.question.id

    @property
    def is_partial(self) -> bool:
        return self.score == 0.5


@dataclass(frozen=True)
class QuizResult:
    total_score: float
    max_score: int
    graded_questions: tuple[GradedQuestion, ...] = field(default_factory=tuple)
    overall_feedback: str = ""

    @property
    def percentage(self) -> int:
        """Score as a whole percentage, rounding halves up."""

        if self.max_score <= 0:
            return 0
        return int(math.floor(self.total_score / self.max_score * 100 + 0.5))

    def find(self, question_id: int) -> GradedQuestion | None:
        for graded in self.graded_questions:
            if graded.id == question_id:
                return graded
        return None


def answers_by_id(answers: Sequence[UserAnswer]) -> dict[int, str]:
    return {answer.question_id: answer.answer for answer in answers}
