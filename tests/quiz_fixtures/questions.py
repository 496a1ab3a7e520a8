"""Builders for questions and raw generation payloads used across tests."""

from __future__ import annotations

from typing import Any, Dict, List

from quizgenius.quiz.models import MatchingPair, Question, QuestionType


def make_mcq(
    qid: int = 1,
    *,
    text: str = "Which planet is known as the red planet?",
    options: tuple[str, ...] = ("Mars", "Venus", "Jupiter", "Mercury"),
    correct: str = "Mars",
) -> Question:
    return Question(
        id=qid,
        type=QuestionType.MULTIPLE_CHOICE,
        text=text,
        options=options,
        correct_answer=correct,
    )


def make_true_false(
    qid: int = 2, *, text: str = "Water boils at 100C at sea level.",
    correct: str = "True",
) -> Question:
    return Question(
        id=qid, type=QuestionType.TRUE_FALSE, text=text, correct_answer=correct
    )


def make_fill(qid: int = 3) -> Question:
    return Question(
        id=qid,
        type=QuestionType.FILL_IN_BLANK,
        text="The powerhouse of the cell is the ____.",
        correct_answer="mitochondria",
    )


def make_short(qid: int = 4) -> Question:
    return Question(
        id=qid,
        type=QuestionType.SHORT_ANSWER,
        text="Explain photosynthesis in one sentence.",
        correct_answer="Plants turn light, water and CO2 into sugar and O2.",
    )


def make_matching(
    qid: int = 5,
    pairs: tuple[tuple[str, str], ...] = (
        ("Dog", "Mammal"),
        ("Eagle", "Bird"),
        ("Shark", "Fish"),
    ),
) -> Question:
    return Question(
        id=qid,
        type=QuestionType.MATCHING,
        text="Match each animal to its class.",
        matching_pairs=tuple(MatchingPair(left, right) for left, right in pairs),
    )


def make_sequencing(
    qid: int = 6, items: tuple[str, ...] = ("A", "B", "C")
) -> Question:
    return Question(
        id=qid,
        type=QuestionType.SEQUENCING,
        text="Put the steps in order.",
        sequencing_items=items,
    )


def mixed_questions() -> List[Question]:
    return [
        make_mcq(1),
        make_true_false(2),
        make_fill(3),
        make_short(4),
        make_matching(5),
        make_sequencing(6),
    ]


def question_payload(*questions: Question) -> Dict[str, Any]:
    """Wrap questions in the wire shape the generation service returns."""

    return {"questions": [question.to_payload() for question in questions]}
