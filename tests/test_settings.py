from __future__ import annotations

from pathlib import Path

import pytest

from quizgenius.errors import SettingsError
from quizgenius.quiz.models import Difficulty, QuestionType
from quizgenius.settings import (
    CONFIG_FILENAME,
    CONFIG_PATH_ENV,
    HOME_ENV,
    config_template,
    load_settings,
    resolve_settings_path,
    write_template,
)


def _write(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_any_file(tmp_path):
    settings = load_settings(env={HOME_ENV: str(tmp_path)}, cwd=tmp_path)

    assert settings.source is None
    assert settings.quiz.question_count == 5
    assert settings.quiz.difficulty is Difficulty.MEDIUM
    assert settings.quiz.time_limit_minutes == 0
    assert settings.quiz.auto_detect is True
    assert settings.quiz.question_types == ()
    assert settings.ai.api_base is None
    assert settings.logging.level == "INFO"
    assert settings.logging.directory == tmp_path / "logs"


def test_explicit_path_wins_over_env_and_cwd(tmp_path):
    explicit = _write(tmp_path / "explicit.toml", "[quiz]\nquestion_count = 9\n")
    from_env = _write(tmp_path / "env.toml", "[quiz]\nquestion_count = 7\n")
    _write(tmp_path / CONFIG_FILENAME, "[quiz]\nquestion_count = 3\n")
    env = {CONFIG_PATH_ENV: str(from_env)}

    assert load_settings(explicit, env=env, cwd=tmp_path).quiz.question_count == 9
    assert load_settings(env=env, cwd=tmp_path).quiz.question_count == 7
    assert load_settings(env={}, cwd=tmp_path).quiz.question_count == 3


def test_missing_explicit_or_env_path_is_an_error(tmp_path):
    with pytest.raises(SettingsError):
        resolve_settings_path(tmp_path / "nope.toml", env={}, cwd=tmp_path)
    with pytest.raises(SettingsError) as exc:
        resolve_settings_path(
            env={CONFIG_PATH_ENV: str(tmp_path / "gone.toml")}, cwd=tmp_path
        )
    assert CONFIG_PATH_ENV in str(exc.value)


def test_file_values_are_parsed(tmp_path):
    path = _write(
        tmp_path / "custom.toml",
        "\n".join(
            [
                "[quiz]",
                'difficulty = "hard"',
                'question_types = ["matching", "true-false"]',
                'instructions = "  vocabulary in context  "',
                "time_limit_minutes = 10",
                "[ai]",
                'api_base = "https://example.test/v1"',
                "grading_temperature = 0",
                "[logging]",
                'level = "debug"',
                'directory = "/var/tmp/qg"',
            ]
        ),
    )

    settings = load_settings(path, env={}, cwd=tmp_path)

    assert settings.source == path.resolve()
    assert settings.quiz.difficulty is Difficulty.HARD
    assert settings.quiz.question_types == (
        QuestionType.MATCHING,
        QuestionType.TRUE_FALSE,
    )
    assert settings.quiz.instructions == "vocabulary in context"
    assert settings.quiz.time_limit_minutes == 10
    assert settings.ai.api_base == "https://example.test/v1"
    assert settings.ai.grading_temperature == 0.0
    assert settings.logging.level == "DEBUG"
    assert settings.logging.directory == Path("/var/tmp/qg")


@pytest.mark.parametrize(
    "body, fragment",
    [
        ("[quiz]\ncolour = 1\n", "quiz.colour"),
        ("[quiz]\nquestion_count = 0\n", "quiz.question_count"),
        ("[quiz]\nquestion_count = true\n", "quiz.question_count"),
        ("[quiz]\ndifficulty = \"Impossible\"\n", "quiz.difficulty"),
        ("[quiz]\nquestion_types = [\"essay\"]\n", "quiz.question_types"),
        ("[quiz]\ntime_limit_minutes = -1\n", "quiz.time_limit_minutes"),
        ("[ai]\ntutor_temperature = 3.5\n", "ai.tutor_temperature"),
        ("[ai]\ngeneration_model = \"  \"\n", "ai.generation_model"),
        ("[logging]\nlevel = \"LOUD\"\n", "logging.level"),
        ("quiz = 3\n", "quiz"),
        ("[quiz\n", "parse"),
    ],
)
def test_invalid_values_name_the_offending_key(tmp_path, body, fragment):
    path = _write(tmp_path / "bad.toml", body)

    with pytest.raises(SettingsError) as exc:
        load_settings(path, env={}, cwd=tmp_path)

    assert fragment in str(exc.value)


def test_template_round_trips_to_defaults(tmp_path):
    target = write_template(tmp_path / "nested" / CONFIG_FILENAME)

    assert target.read_text(encoding="utf-8") == config_template()
    from_template = load_settings(target, env={HOME_ENV: str(tmp_path)})
    defaults = load_settings(env={HOME_ENV: str(tmp_path)}, cwd=tmp_path)
    assert from_template.quiz == defaults.quiz
    assert from_template.ai == defaults.ai


def test_template_refuses_to_overwrite(tmp_path):
    target = _write(tmp_path / CONFIG_FILENAME, "# mine\n")

    with pytest.raises(SettingsError):
        write_template(target)
    write_template(target, overwrite=True)

    assert target.read_text(encoding="utf-8").startswith("# QuizGenius")
