from .questions import (
    make_fill,
    make_matching,
    make_mcq,
    make_sequencing,
    make_short,
    make_true_false,
    mixed_questions,
    question_payload,
)
from .services import FakeOpenAIClient, ScriptedService
from .timing import FakeScheduler, FixedRandom, TimerStub

__all__ = [
    "make_fill",
    "make_matching",
    "make_mcq",
    "make_sequencing",
    "make_short",
    "make_true_false",
    "mixed_questions",
    "question_payload",
    "FakeOpenAIClient",
    "ScriptedService",
    "FakeScheduler",
    "FixedRandom",
    "TimerStub",
]
