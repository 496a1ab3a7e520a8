"""Generation request contract: instruction text and question-set schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from ..errors import ValidationError
from .models import Difficulty, QuestionType, QuizConfig, UploadedFile

__all__ = [
    "QUESTION_SET_SCHEMA",
    "GenerationRequest",
    "build_generation_request",
    "build_instructions",
]

QUESTION_SET_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "type": {
                        "type": "string",
                        "enum": [member.value for member in QuestionType],
                    },
                    "text": {
                        "type": "string",
                        "description": "The question stem or instruction.",
                    },
                    "options": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Only for multiple_choice.",
                    },
                    "correctAnswer": {
                        "type": "string",
                        "description": (
                            "The distinct correct answer for simple types."
                        ),
                    },
                    "matchingPairs": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "left": {"type": "string"},
                                "right": {"type": "string"},
                            },
                            "required": ["left", "right"],
                        },
                        "description": (
                            "For matching only. Pairs of items that go "
                            "together."
                        ),
                    },
                    "sequencingItems": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": (
                            "For sequencing only. Items in the CORRECT order."
                        ),
                    },
                },
                "required": ["id", "type", "text"],
            },
        },
    },
    "required": ["questions"],
}

_DIFFICULTY_GUIDANCE = {
    Difficulty.EASY: "Focus on basic recall, definitions, and simple concepts.",
    Difficulty.MEDIUM: (
        "Focus on understanding, application, and connecting concepts."
    ),
    Difficulty.HARD: (
        "Focus on deep analysis, complex problem solving, and nuances."
    ),
}

_TYPE_GUIDANCE = """Instructions for specific types:
- multiple_choice: provide 'options' and a 'correctAnswer' that repeats one option verbatim.
- true_false: 'correctAnswer' must be exactly "True" or "False".
- fill_in_blank: mark the blank with "____" and give the missing text as 'correctAnswer'.
- short_answer: give a model answer as 'correctAnswer'. Can include 'Correct the underline' or 'Rewrite' tasks.
- matching: provide 'matchingPairs' with left and right items (e.g. term and definition).
- sequencing: provide 'sequencingItems' in the CORRECT chronological or logical order.
Give every question a unique integer 'id' starting at 1.
Output JSON."""


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the generation service needs for one call."""

    documents: tuple[UploadedFile, ...]
    instructions: str
    schema: Mapping[str, Any]
    question_count: int

    def content_parts(self) -> List[Dict[str, Any]]:
        """Render documents and instructions as chat content parts."""

        parts: List[Dict[str, Any]] = []
        for doc in self.documents:
            if doc.is_image:
                parts.append(
                    {"type": "image_url", "image_url": {"url": doc.data_url}}
                )
            else:
                parts.append(
                    {
                        "type": "file",
                        "file": {
                            "filename": doc.name,
                            "file_data": doc.data_url,
                        },
                    }
                )
        parts.append({"type": "text", "text": self.instructions})
        return parts


def build_instructions(config: QuizConfig) -> str:
    """Assemble the natural-language instruction block for ``config``."""

    lines = [
        f"Create a quiz with exactly {config.question_count} questions "
        "based on the attached lesson materials.",
        f"Target Difficulty Level: {config.difficulty.value}. "
        f"{_DIFFICULTY_GUIDANCE[config.difficulty]}",
    ]
    if config.instructions:
        lines.append(
            "\nCRITICAL INSTRUCTIONS: The user has provided specific "
            "requirements for the question style, format, or content focus: "
            f'"{config.instructions}".\n'
            "You MUST shape the questions exactly according to these "
            "instructions. If they ask for words or terms to be used in "
            "context, do NOT ask for definitions; test usage in context "
            "instead. If they name a specific topic, ignore unrelated "
            "content."
        )
    if config.auto_detect:
        labels = ", ".join(member.label for member in QuestionType)
        lines.append(
            f"\nChoose a mix of question types ({labels}) that best suits "
            "the content."
        )
    else:
        allowed = ", ".join(member.value for member in config.question_types)
        lines.append(
            f"\nSTRICTLY use only these question types: {allowed}. "
            "Do not produce any question whose 'type' is not in this list."
        )
    lines.append("\n" + _TYPE_GUIDANCE)
    return "\n".join(lines)


def build_generation_request(config: QuizConfig) -> GenerationRequest:
    """Validate ``config`` and turn it into a single generation request.

    Raises :class:`ValidationError` before any remote call when there are
    no documents or no question type can be used.
    """
    if not config.documents:
        raise ValidationError("Please upload at least one lesson file.")
    if not config.auto_detect and not config.question_types:
        raise ValidationError(
            "Please select at least one question type or enable auto-detect."
        )
    return GenerationRequest(
        documents=config.documents,
        instructions=build_instructions(config),
        schema=QUESTION_SET_SCHEMA,
        question_count=config.question_count,
    )
