"""One quiz from configuration to graded result.

``generate`` and ``grade`` are point-to-point stages: each may succeed at
most once, and only one call per stage may be in flight. A failed call
leaves the stage open so the user can retry it.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

from ..errors import LifecycleError
from .generation import build_generation_request
from .grading import aggregate_results, build_grading_request
from .models import Question, QuizConfig, QuizResult, UserAnswer
from .normalizer import RandomSource, normalize_question_set
from .services import QuizService
from .session import FinalizeCallback, QuizSession, Scheduler
from .tutor import TutorDesk

__all__ = ["QuizLifecycle"]

logger = logging.getLogger(__name__)


class _Stage:
    def __init__(self, name: str) -> None:
        self.name = name
        self.done = False
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def enter(self) -> None:
        if self.done:
            raise LifecycleError(f"The {self.name} stage already completed.")
        if not self._lock.acquire(blocking=False):
            raise LifecycleError(f"A {self.name} call is already in progress.")

    def leave(self, *, succeeded: bool) -> None:
        self.done = self.done or succeeded
        self._lock.release()


class QuizLifecycle:
    def __init__(
        self, service: QuizService, *, rng: Optional[RandomSource] = None
    ) -> None:
        self._service = service
        self._rng = rng
        self._generation = _Stage("generation")
        self._grading = _Stage("grading")
        self._config: Optional[QuizConfig] = None
        self._questions: List[Question] = []
        self._result: Optional[QuizResult] = None
        self.tutor = TutorDesk(service)

    @property
    def config(self) -> Optional[QuizConfig]:
        return self._config

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    @property
    def result(self) -> Optional[QuizResult]:
        return self._result

    @property
    def busy(self) -> bool:
        return self._generation.in_flight or self._grading.in_flight

    def generate(self, config: QuizConfig) -> List[Question]:
        """Build the request, call the service and normalize the reply."""

        self._generation.enter()
        succeeded = False
        try:
            request = build_generation_request(config)
            payload = self._service.generate_questions(request)
            questions = normalize_question_set(payload, rng=self._rng)
            self._config = config
            self._questions = questions
            succeeded = True
        finally:
            self._generation.leave(succeeded=succeeded)
        logger.info(
            "Quiz generated",
            extra={
                "event": "quiz_generated",
                "requested": config.question_count,
                "received": len(questions),
            },
        )
        return list(questions)

    def new_session(
        self,
        scheduler: Optional[Scheduler] = None,
        on_finalized: Optional[FinalizeCallback] = None,
    ) -> QuizSession:
        if not self._generation.done or self._config is None:
            raise LifecycleError("Generate a quiz before starting a session.")
        return QuizSession(
            self._questions,
            time_limit_minutes=self._config.time_limit_minutes,
            rng=self._rng,
            scheduler=scheduler,
            on_finalized=on_finalized,
        )

    def grade(self, answers: Sequence[UserAnswer]) -> QuizResult:
        """Grade a finalized answer set and merge it into a result."""

        if not self._generation.done:
            raise LifecycleError("There is no generated quiz to grade.")
        self._grading.enter()
        succeeded = False
        try:
            request = build_grading_request(self._questions, answers)
            payload = self._service.grade_answers(request)
            result = aggregate_results(payload, self._questions, answers)
            self._result = result
            succeeded = True
        finally:
            self._grading.leave(succeeded=succeeded)
        return result
