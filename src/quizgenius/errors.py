"""Exception hierarchy shared by every quizgenius component."""

from __future__ import annotations

__all__ = [
    "QuizGeniusError",
    "ConfigurationError",
    "ValidationError",
    "CredentialMissing",
    "SettingsError",
    "FileRejected",
    "MalformedQuestionSetError",
    "MalformedGradingError",
    "IdentityMismatchError",
    "RemoteServiceError",
    "SessionClosedError",
    "LifecycleError",
    "TutorBusyError",
]


class QuizGeniusError(RuntimeError):
    """Base class for all quizgenius failures."""


class ConfigurationError(QuizGeniusError):
    """Raised when the quiz cannot be attempted with the given setup."""


class ValidationError(ConfigurationError):
    """Raised when user supplied quiz configuration is invalid."""


class CredentialMissing(ConfigurationError):
    """Raised when no API credential is available in the environment."""


class SettingsError(ConfigurationError):
    """Raised when ``quizgenius.toml`` parsing or validation fails."""


class FileRejected(QuizGeniusError):
    """Raised for a single upload that violates the intake rules."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Skipped {name}: {reason}")
        self.name = name
        self.reason = reason


class MalformedQuestionSetError(QuizGeniusError):
    """Raised when the generation service returns an unusable payload."""


class MalformedGradingError(QuizGeniusError):
    """Raised when the grading service returns an unusable payload."""


class IdentityMismatchError(QuizGeniusError):
    """Raised when a grading record cannot be matched to a question."""

    def __init__(self, question_id: object, message: str | None = None):
        super().__init__(
            message or f"Graded question id {question_id!r} does not match "
            "any original question."
        )
        self.question_id = question_id


class RemoteServiceError(QuizGeniusError):
    """Raised when an AI service call fails at the transport level."""


class SessionClosedError(QuizGeniusError):
    """Raised when a finalized quiz session is mutated."""


class LifecycleError(QuizGeniusError):
    """Raised when a lifecycle stage is invoked out of order."""


class TutorBusyError(QuizGeniusError):
    """Raised when a tutor query is submitted while another is pending."""
