from __future__ import annotations

import logging

import pytest

from quiz_fixtures import make_mcq

from quizgenius.errors import RemoteServiceError, TutorBusyError, ValidationError
from quizgenius.quiz.models import GradedQuestion
from quizgenius.quiz.tutor import (
    CONNECTION_FALLBACK,
    EMPTY_FALLBACK,
    TutorDesk,
    ask_tutor,
)


@pytest.fixture
def graded() -> GradedQuestion:
    return GradedQuestion(
        question=make_mcq(),
        user_answer="Venus",
        is_correct=False,
        score=0,
        explanation="Mars is red because of iron oxide.",
        ideal_answer="Mars",
    )


def _ask(service, query="Why not Venus?"):
    return ask_tutor(
        service,
        question_text="Which planet is red?",
        user_answer="Venus",
        ideal_answer="Mars",
        query=query,
    )


def test_prompt_carries_context_and_query(service):
    service.queue_tutor("Because of rust.")

    assert _ask(service) == "Because of rust."
    (prompt,) = service.stage_calls("explain")
    assert 'Question: "Which planet is red?"' in prompt
    assert 'Student Answer: "Venus"' in prompt
    assert 'Correct Answer: "Mars"' in prompt
    assert 'The student asks: "Why not Venus?"' in prompt


def test_blank_query_is_rejected_without_a_call(service):
    with pytest.raises(ValidationError):
        _ask(service, query="   ")
    assert service.calls == []


def test_transport_failure_returns_fallback(service):
    service.queue_tutor(RemoteServiceError("offline"))

    assert _ask(service) == CONNECTION_FALLBACK


def test_empty_reply_returns_fallback(service):
    service.queue_tutor("  ")

    assert _ask(service) == EMPTY_FALLBACK


def test_desk_uses_graded_question_and_does_not_cache(service, graded):
    service.queue_tutor("First answer.", "Second answer.")
    desk = TutorDesk(service)

    assert desk.ask(graded, "Why?") == "First answer."
    assert desk.ask(graded, "Why?") == "Second answer."
    assert len(service.stage_calls("explain")) == 2
    assert 'Correct Answer: "Mars"' in service.stage_calls("explain")[0]
    assert not desk.busy


def test_desk_rejects_concurrent_queries(service, graded):
    desk = TutorDesk(service)
    seen = []

    def reenter(stage):
        seen.append(desk.busy)
        with pytest.raises(TutorBusyError):
            desk.ask(graded, "Another one?")

    service.before_call = reenter
    service.queue_tutor("Done.")

    assert desk.ask(graded, "First?") == "Done."
    assert seen == [True]
    assert not desk.busy


def test_unexpected_service_failure_returns_fallback(service, caplog):
    service.queue_tutor(ConnectionError("socket closed"))

    with caplog.at_level(logging.ERROR, logger="quizgenius.quiz.tutor"):
        assert _ask(service) == CONNECTION_FALLBACK

    (record,) = caplog.records
    assert record.event == "tutor_fallback"
    assert record.exc_info is not None
