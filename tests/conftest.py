from __future__ import annotations

import base64
import sys
from pathlib import Path
from typing import Callable

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from quiz_fixtures import (  # noqa: E402
    FakeScheduler,
    FixedRandom,
    ScriptedService,
)

from quizgenius.quiz.models import QuizConfig, UploadedFile  # noqa: E402


@pytest.fixture
def service() -> ScriptedService:
    """A scripted stand-in for every AI stage."""

    return ScriptedService()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def identity_rng() -> FixedRandom:
    return FixedRandom("identity")


@pytest.fixture
def rotate_rng() -> FixedRandom:
    return FixedRandom("rotate")


@pytest.fixture
def lesson_pdf() -> UploadedFile:
    return UploadedFile(
        id="doc000001",
        name="lesson.pdf",
        media_type="application/pdf",
        data=base64.b64encode(b"%PDF-1.4 lesson").decode("ascii"),
        size=15,
    )


@pytest.fixture
def make_config(lesson_pdf: UploadedFile) -> Callable[..., QuizConfig]:
    def _make(**overrides) -> QuizConfig:
        documents = overrides.pop("documents", (lesson_pdf,))
        return QuizConfig.create(documents, **overrides)

    return _make


@pytest.fixture
def lesson_dir(tmp_path: Path) -> Path:
    """Directory with a valid PDF, a valid PNG and an unsupported file."""

    root = tmp_path / "lessons"
    root.mkdir()
    (root / "chapter1.pdf").write_bytes(b"%PDF-1.4 chapter one")
    (root / "diagram.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    (root / "notes.txt").write_text("plain notes", encoding="utf-8")
    return root
