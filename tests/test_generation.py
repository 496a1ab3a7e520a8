from __future__ import annotations

import pytest

from quizgenius.errors import ValidationError
from quizgenius.quiz.generation import (
    QUESTION_SET_SCHEMA,
    build_generation_request,
    build_instructions,
)
from quizgenius.quiz.models import UploadedFile


def test_empty_documents_rejected_before_any_request(make_config, service):
    config = make_config(documents=())

    with pytest.raises(ValidationError) as exc:
        build_generation_request(config)

    assert "at least one lesson file" in str(exc.value)
    assert service.calls == []


def test_no_types_with_auto_detect_off_is_rejected(make_config):
    config = make_config(auto_detect=False)

    with pytest.raises(ValidationError):
        build_generation_request(config)


def test_instructions_state_count_and_difficulty(make_config):
    text = build_instructions(make_config(question_count=12, difficulty="Hard"))

    assert "exactly 12 questions" in text
    assert "Target Difficulty Level: Hard." in text
    assert "deep analysis" in text
    assert "CRITICAL INSTRUCTIONS" not in text
    assert "Choose a mix of question types" in text


def test_custom_instructions_block(make_config):
    text = build_instructions(
        make_config(instructions="Use vocabulary words in sentences")
    )

    assert "CRITICAL INSTRUCTIONS" in text
    assert '"Use vocabulary words in sentences"' in text
    assert "do NOT ask for definitions" in text


def test_explicit_types_are_enforced(make_config):
    text = build_instructions(
        make_config(question_types=["matching", "true_false"])
    )

    assert (
        "STRICTLY use only these question types: matching, true_false."
        in text
    )
    assert "Choose a mix" not in text


def test_request_carries_documents_schema_and_parts(make_config, lesson_pdf):
    image = UploadedFile("img", "figure.webp", "image/webp", "QUJD", 3)
    config = make_config(documents=(lesson_pdf, image), question_count=3)

    request = build_generation_request(config)

    assert request.schema is QUESTION_SET_SCHEMA
    assert request.question_count == 3
    parts = request.content_parts()
    assert parts[0]["type"] == "file"
    assert parts[0]["file"]["filename"] == "lesson.pdf"
    assert parts[0]["file"]["file_data"].startswith(
        "data:application/pdf;base64,"
    )
    assert parts[1] == {
        "type": "image_url",
        "image_url": {"url": "data:image/webp;base64,QUJD"},
    }
    assert parts[-1] == {"type": "text", "text": request.instructions}


def test_schema_requires_identity_type_and_text():
    item = QUESTION_SET_SCHEMA["properties"]["questions"]["items"]
    assert item["required"] == ["id", "type", "text"]
    assert item["properties"]["id"]["type"] == "integer"
    assert set(item["properties"]["type"]["enum"]) == {
        "multiple_choice",
        "true_false",
        "fill_in_blank",
        "short_answer",
        "matching",
        "sequencing",
    }
    assert QUESTION_SET_SCHEMA["required"] == ["questions"]
