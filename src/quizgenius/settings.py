"""Application settings backed by ``quizgenius.toml``.

The file is optional. Values are layered as built-in defaults, then the TOML
document, then CLI flags (applied by the caller). Every table is validated
into a frozen dataclass so the rest of the code never sees raw TOML.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .core.config import TomlConfigError, overlay, read_toml, write_template_file
from .errors import SettingsError
from .quiz.models import Difficulty, QuestionType

__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_PATH_ENV",
    "HOME_ENV",
    "AISettings",
    "LoggingSettings",
    "QuizDefaults",
    "Settings",
    "config_template",
    "default_tree",
    "load_settings",
    "resolve_settings_path",
    "write_template",
]

CONFIG_FILENAME = "quizgenius.toml"
CONFIG_PATH_ENV = "QUIZGENIUS_CONFIG"
HOME_ENV = "QUIZGENIUS_HOME"


@dataclass(frozen=True)
class QuizDefaults:
    question_count: int
    difficulty: Difficulty
    time_limit_minutes: int
    auto_detect: bool
    question_types: tuple[QuestionType, ...]
    instructions: str


@dataclass(frozen=True)
class AISettings:
    generation_model: str
    grading_model: str
    tutor_model: str
    generation_temperature: float
    grading_temperature: float
    tutor_temperature: float
    request_timeout_seconds: int
    api_base: Optional[str]


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    verbose: bool
    directory: Path


@dataclass(frozen=True)
class Settings:
    quiz: QuizDefaults
    ai: AISettings
    logging: LoggingSettings
    source: Optional[Path] = None


def resolve_settings_path(
    explicit: Optional[Path] = None,
    *,
    env: Mapping[str, str] | None = None,
    cwd: Optional[Path] = None,
) -> Optional[Path]:
    """Return the settings file to read, or ``None`` to use defaults.

    An explicit path or the ``QUIZGENIUS_CONFIG`` override must exist; the
    working-directory candidate is only used when present.
    """

    env_map = os.environ if env is None else env
    if explicit is not None:
        path = explicit.expanduser().resolve()
        if not path.is_file():
            raise SettingsError(f"Config file not found: {path}")
        return path
    override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if override:
        path = Path(override).expanduser().resolve()
        if not path.is_file():
            raise SettingsError(
                f"{CONFIG_PATH_ENV} points to a missing file: {path}"
            )
        return path
    candidate = (cwd or Path.cwd()) / CONFIG_FILENAME
    if candidate.is_file():
        return candidate.resolve()
    return None


def load_settings(
    explicit: Optional[Path] = None,
    *,
    env: Mapping[str, str] | None = None,
    cwd: Optional[Path] = None,
) -> Settings:
    """Load, merge and validate settings."""

    env_map = os.environ if env is None else env
    path = resolve_settings_path(explicit, env=env_map, cwd=cwd)
    tree = default_tree()
    if path is not None:
        try:
            tree = overlay(tree, read_toml(path))
        except TomlConfigError as exc:
            raise SettingsError(str(exc)) from exc
    return _build_settings(tree, env=env_map, source=path)


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default settings tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return write_template_file(
            path, config_template(), overwrite=overwrite
        )
    except TomlConfigError as exc:
        raise SettingsError(str(exc)) from exc


def default_log_dir(env: Mapping[str, str] | None = None) -> Path:
    env_map = os.environ if env is None else env
    home = (env_map.get(HOME_ENV) or "").strip()
    base = Path(home).expanduser() if home else Path.home() / ".quizgenius"
    return base / "logs"


def _require_int_range(
    value: Any, *, field: str, min_value: int, max_value: int | None = None
) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SettingsError(f"'{field}' must be an integer.")
    if value < min_value or (max_value is not None and value > max_value):
        upper = f" and {max_value}" if max_value is not None else ""
        lower = f"between {min_value}" if upper else f">= {min_value}"
        raise SettingsError(f"'{field}' must be {lower}{upper}.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise SettingsError(f"'{field}' must be a boolean.")
    return value


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_temperature(value: Any, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"'{field}' must be a number.")
    number = float(value)
    if not 0.0 <= number <= 2.0:
        raise SettingsError(f"'{field}' must be between 0.0 and 2.0.")
    return number


def _optional_string(value: Any, *, field: str) -> Optional[str]:
    if value is None or value == "":
        return None
    return _require_string(value, field=field)


def _build_quiz(section: Mapping[str, Any]) -> QuizDefaults:
    try:
        difficulty = Difficulty.parse(str(section["difficulty"]))
    except ValueError as exc:
        raise SettingsError(f"'quiz.difficulty': {exc}") from exc
    raw_types = section["question_types"]
    if not isinstance(raw_types, list):
        raise SettingsError("'quiz.question_types' must be a list.")
    try:
        types = tuple(QuestionType.parse(str(item)) for item in raw_types)
    except ValueError as exc:
        raise SettingsError(f"'quiz.question_types': {exc}") from exc
    instructions = section["instructions"]
    if not isinstance(instructions, str):
        raise SettingsError("'quiz.instructions' must be a string.")
    return QuizDefaults(
        question_count=_require_int_range(
            section["question_count"],
            field="quiz.question_count",
            min_value=1,
            max_value=100,
        ),
        difficulty=difficulty,
        time_limit_minutes=_require_int_range(
            section["time_limit_minutes"],
            field="quiz.time_limit_minutes",
            min_value=0,
        ),
        auto_detect=_require_bool(
            section["auto_detect"], field="quiz.auto_detect"
        ),
        question_types=types,
        instructions=instructions.strip(),
    )


def _build_ai(section: Mapping[str, Any]) -> AISettings:
    return AISettings(
        generation_model=_require_string(
            section["generation_model"], field="ai.generation_model"
        ),
        grading_model=_require_string(
            section["grading_model"], field="ai.grading_model"
        ),
        tutor_model=_require_string(
            section["tutor_model"], field="ai.tutor_model"
        ),
        generation_temperature=_require_temperature(
            section["generation_temperature"],
            field="ai.generation_temperature",
        ),
        grading_temperature=_require_temperature(
            section["grading_temperature"], field="ai.grading_temperature"
        ),
        tutor_temperature=_require_temperature(
            section["tutor_temperature"], field="ai.tutor_temperature"
        ),
        request_timeout_seconds=_require_int_range(
            section["request_timeout_seconds"],
            field="ai.request_timeout_seconds",
            min_value=1,
        ),
        api_base=_optional_string(section["api_base"], field="ai.api_base"),
    )


def _build_logging(
    section: Mapping[str, Any], *, env: Mapping[str, str]
) -> LoggingSettings:
    level = _require_string(section["level"], field="logging.level").upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise SettingsError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    raw_dir = _optional_string(
        section["directory"], field="logging.directory"
    )
    directory = (
        Path(raw_dir).expanduser() if raw_dir else default_log_dir(env)
    )
    return LoggingSettings(
        level=level,
        verbose=_require_bool(section["verbose"], field="logging.verbose"),
        directory=directory,
    )


def _build_settings(
    tree: Mapping[str, Any],
    *,
    env: Mapping[str, str],
    source: Optional[Path],
) -> Settings:
    return Settings(
        quiz=_build_quiz(tree["quiz"]),
        ai=_build_ai(tree["ai"]),
        logging=_build_logging(tree["logging"], env=env),
        source=source,
    )


_DEFAULTS: Dict[str, Any] = {
    "quiz": {
        "question_count": 5,
        "difficulty": "Medium",
        "time_limit_minutes": 0,
        "auto_detect": True,
        "question_types": [],
        "instructions": "",
    },
    "ai": {
        "generation_model": "gpt-4o-mini",
        "grading_model": "gpt-4o-mini",
        "tutor_model": "gpt-4o-mini",
        "generation_temperature": 0.4,
        "grading_temperature": 0.2,
        "tutor_temperature": 0.3,
        "request_timeout_seconds": 120,
        "api_base": None,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
        "directory": None,
    },
}


_CONFIG_TEMPLATE = """
# QuizGenius configuration

[quiz]
# Number of questions to request (1-100)
question_count = 5
# Easy, Medium or Hard
difficulty = "Medium"
# Minutes before the quiz is submitted automatically (0 = unlimited)
time_limit_minutes = 0
# Let the model choose question types; ignored when question_types is set
auto_detect = true
# Any of: multiple_choice, true_false, fill_in_blank, short_answer,
# matching, sequencing
question_types = []
# Free-text style instructions, e.g. "use vocabulary in context sentences"
instructions = ""

[ai]
generation_model = "gpt-4o-mini"
grading_model = "gpt-4o-mini"
tutor_model = "gpt-4o-mini"
# Sampling temperatures (0.0-2.0)
generation_temperature = 0.4
grading_temperature = 0.2
tutor_temperature = 0.3
request_timeout_seconds = 120
# Optional API base override
# api_base = "https://api.openai.com/v1"

[logging]
level = "INFO"
verbose = false
# Defaults to $QUIZGENIUS_HOME/logs or ~/.quizgenius/logs
# directory = "~/.quizgenius/logs"
"""
