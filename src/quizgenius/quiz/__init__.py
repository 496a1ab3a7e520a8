from .encoding import encode_matching, encode_sequence, split_sequence
from .generation import (
    QUESTION_SET_SCHEMA,
    GenerationRequest,
    build_generation_request,
    build_instructions,
)
from .grading import (
    GRADING_SCHEMA,
    GradingRequest,
    aggregate_results,
    build_grading_request,
)
from .intake import PendingUploads, read_upload
from .lifecycle import QuizLifecycle
from .models import (
    Difficulty,
    GradedQuestion,
    MatchingPair,
    Question,
    QuestionType,
    QuizConfig,
    QuizResult,
    UploadedFile,
    UserAnswer,
)
from .normalizer import fisher_yates, normalize_question_set
from .services import OpenAIQuizService
from .session import QuizSession, format_clock
from .tutor import TutorDesk, ask_tutor

__all__ = [
    "encode_matching",
    "encode_sequence",
    "split_sequence",
    "QUESTION_SET_SCHEMA",
    "GenerationRequest",
    "build_generation_request",
    "build_instructions",
    "GRADING_SCHEMA",
    "GradingRequest",
    "aggregate_results",
    "build_grading_request",
    "PendingUploads",
    "read_upload",
    "QuizLifecycle",
    "Difficulty",
    "GradedQuestion",
    "MatchingPair",
    "Question",
    "QuestionType",
    "QuizConfig",
    "QuizResult",
    "UploadedFile",
    "UserAnswer",
    "fisher_yates",
    "normalize_question_set",
    "OpenAIQuizService",
    "QuizSession",
    "format_clock",
    "TutorDesk",
    "ask_tutor",
]
