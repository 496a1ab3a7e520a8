"""AI service boundary: generation, grading and tutor adapters."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Protocol, Sequence

from openai import OpenAIError

from ..core.ai import load_client
from ..errors import (
    MalformedGradingError,
    MalformedQuestionSetError,
    QuizGeniusError,
    RemoteServiceError,
)
from .generation import GenerationRequest
from .grading import GradingRequest

if TYPE_CHECKING:  # pragma: no cover
    from ..settings import AISettings

__all__ = [
    "GenerationService",
    "GradingService",
    "OpenAIQuizService",
    "QuizService",
    "TutorService",
    "parse_json_object",
]

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)

_TUTOR_SYSTEM_PROMPT = (
    "You are a patient tutor helping a student understand a quiz question "
    "they just answered."
)


class GenerationService(Protocol):
    def generate_questions(self, request: GenerationRequest) -> Mapping[str, Any]:
        """Return the raw ``{questions: [...]}`` payload."""


class GradingService(Protocol):
    def grade_answers(self, request: GradingRequest) -> Mapping[str, Any]:
        """Return the raw ``{gradedQuestions: [...], overallFeedback}`` payload."""


class TutorService(Protocol):
    def explain(self, prompt: str) -> str:
        """Return free text; may be empty."""


class QuizService(GenerationService, GradingService, TutorService, Protocol):
    """A single collaborator covering every remote stage."""


def parse_json_object(
    content: str, error_cls: type[QuizGeniusError]
) -> Dict[str, Any]:
    """Decode a model reply that should hold one JSON object."""

    text = (content or "").strip()
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    if not text:
        raise error_cls("The AI service returned an empty response.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise error_cls(f"The AI service returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise error_cls("The AI service response is not a JSON object.")
    return data


class OpenAIQuizService:
    """Adapter for OpenAI chat completions covering all three stages."""

    def __init__(self, settings: AISettings, client: Any | None = None) -> None:
        self._settings = settings
        if client is not None:
            self._client = client
        else:
            self._client = load_client(
                api_base=settings.api_base,
                timeout=settings.request_timeout_seconds,
            )

    def generate_questions(self, request: GenerationRequest) -> Mapping[str, Any]:
        logger.info(
            "Generation request sent",
            extra={
                "event": "generation_request",
                "model": self._settings.generation_model,
                "documents": len(request.documents),
                "question_count": request.question_count,
            },
        )
        content = self._complete(
            model=self._settings.generation_model,
            temperature=self._settings.generation_temperature,
            messages=[{"role": "user", "content": request.content_parts()}],
            schema_name="question_set",
            schema=request.schema,
        )
        data = parse_json_object(content, MalformedQuestionSetError)
        logger.info(
            "Generation response received",
            extra={
                "event": "generation_response",
                "items": len(data.get("questions") or []),
            },
        )
        return data

    def grade_answers(self, request: GradingRequest) -> Mapping[str, Any]:
        logger.info(
            "Grading request sent",
            extra={
                "event": "grading_request",
                "model": self._settings.grading_model,
                "questions": len(request.questions),
            },
        )
        content = self._complete(
            model=self._settings.grading_model,
            temperature=self._settings.grading_temperature,
            messages=[{"role": "user", "content": request.prompt()}],
            schema_name="grading_result",
            schema=request.schema,
        )
        data = parse_json_object(content, MalformedGradingError)
        logger.info(
            "Grading response received",
            extra={
                "event": "grading_response",
                "items": len(data.get("gradedQuestions") or []),
            },
        )
        return data

    def explain(self, prompt: str) -> str:
        return self._complete(
            model=self._settings.tutor_model,
            temperature=self._settings.tutor_temperature,
            messages=[
                {"role": "system", "content": _TUTOR_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )

    def _complete(
        self,
        *,
        model: str,
        temperature: float,
        messages: Sequence[Mapping[str, Any]],
        schema_name: str | None = None,
        schema: Mapping[str, Any] | None = None,
    ) -> str:
        params: Dict[str, Any] = {
            "model": model,
            "messages": [dict(msg) for msg in messages],
            "temperature": temperature,
        }
        if schema is not None:
            params["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": dict(schema)},
            }
        try:
            response = self._client.chat.completions.create(**params)
        except OpenAIError as exc:
            logger.error(
                "AI service call failed",
                extra={"event": "remote_error", "model": model,
                       "error": type(exc).__name__},
            )
            raise RemoteServiceError(f"AI service call failed: {exc}") from exc
        choices: List[Any] = list(getattr(response, "choices", None) or [])
        if not choices:
            return ""
        return (choices[0].message.content or "").strip()
