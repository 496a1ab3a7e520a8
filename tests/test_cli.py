from __future__ import annotations

import argparse
import logging

import pytest

from quiz_fixtures import ScriptedService, make_mcq, question_payload

from quizgenius import cli
from quizgenius.errors import CredentialMissing
from quizgenius.quiz.models import Difficulty, QuestionType
from quizgenius.settings import CONFIG_PATH_ENV, HOME_ENV, load_settings


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.setenv(HOME_ENV, str(tmp_path / "home"))
    monkeypatch.setattr(
        cli,
        "configure_logger",
        lambda name, **kwargs: (
            logging.getLogger(name),
            tmp_path / "quizgenius.log",
        ),
    )


def test_no_arguments_prints_usage(capsys):
    assert cli.main([]) == 2

    out = capsys.readouterr().out
    assert "Usage: quizgenius <command> [args...]" in out
    assert "run" in out and "(TUI)" in out


def test_help_for_known_and_unknown_commands(capsys):
    assert cli.main(["help", "config"]) == 0
    assert "config:" in capsys.readouterr().out

    assert cli.main(["help", "nope"]) == 2
    assert "Unknown command 'nope'." in capsys.readouterr().err


def test_unknown_command_exits_2(capsys):
    assert cli.main(["bogus"]) == 2
    assert "Unknown command 'bogus'." in capsys.readouterr().err


def test_version_falls_back_when_not_installed(monkeypatch, capsys):
    def missing(name):
        raise cli.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(cli.metadata, "version", missing)

    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "unknown"


def test_config_init_and_show(tmp_path, capsys):
    assert cli.main(["config", "init"]) == 0
    assert "Wrote config template to" in capsys.readouterr().out
    assert (tmp_path / "quizgenius.toml").is_file()

    assert cli.main(["config", "init"]) == 2
    assert "Config already exists" in capsys.readouterr().err
    assert cli.main(["config", "init", "--force"]) == 0
    capsys.readouterr()

    assert cli.main(["config", "show"]) == 0
    out = capsys.readouterr().out
    assert out.startswith(f"source: {(tmp_path / 'quizgenius.toml').resolve()}")
    assert "[quiz]" in out
    assert "question_count: 5" in out
    assert "api_base: (default)" in out


def test_config_show_defaults_without_file(capsys):
    assert cli.main(["config", "show"]) == 0
    assert "source: (built-in defaults)" in capsys.readouterr().out


def test_build_quiz_config_layers_flags(tmp_path, lesson_pdf):
    defaults = load_settings(env={}, cwd=tmp_path).quiz
    parser = cli._build_run_parser()

    args = parser.parse_args(["x.pdf"])
    config = cli.build_quiz_config(args, defaults, [lesson_pdf])
    assert config.question_count == 5
    assert config.auto_detect is True
    assert config.difficulty is Difficulty.MEDIUM

    args = parser.parse_args(
        [
            "x.pdf",
            "--count", "8",
            "--type", "matching",
            "--type", "sequencing",
            "--difficulty", "hard",
            "--time-limit", "3",
        ]
    )
    config = cli.build_quiz_config(args, defaults, [lesson_pdf])
    assert config.question_count == 8
    assert config.question_types == (
        QuestionType.MATCHING,
        QuestionType.SEQUENCING,
    )
    assert config.auto_detect is False
    assert config.difficulty is Difficulty.HARD
    assert config.time_limit_minutes == 3


def test_run_rejects_empty_upload_set(tmp_path, monkeypatch, capsys):
    (tmp_path / "notes.txt").write_text("not a lesson", encoding="utf-8")
    monkeypatch.setattr(
        cli, "_create_service", lambda settings: pytest.fail("no service")
    )

    assert cli.main(["run", str(tmp_path / "notes.txt")]) == 2

    err = capsys.readouterr().err
    assert "notes.txt" in err
    assert "Error: Please upload at least one lesson file." in err


def test_run_reports_missing_credentials(lesson_dir, monkeypatch, capsys):
    def no_key(settings):
        raise CredentialMissing("OPENAI_API_KEY is not set.")

    monkeypatch.setattr(cli, "_create_service", no_key)

    assert cli.main(["run", str(lesson_dir)]) == 2
    assert "Error: OPENAI_API_KEY is not set." in capsys.readouterr().err


def test_run_renders_report_after_grading(lesson_dir, monkeypatch, capsys):
    service = ScriptedService()
    service.queue_questions(question_payload(make_mcq(1)))
    service.queue_grading(
        {
            "gradedQuestions": [
                {
                    "id": 1,
                    "isCorrect": True,
                    "score": 1,
                    "explanation": "Iron oxide.",
                    "aiCorrection": "Mars",
                }
            ],
            "overallFeedback": "Well done.",
        }
    )
    launched = {}

    def take_quiz(lifecycle, config):
        launched["config"] = config
        lifecycle.generate(config)
        session = lifecycle.new_session()
        session.record_answer("Mars")
        session.advance()
        return lifecycle.grade(session.answers)

    monkeypatch.setattr(cli, "_create_service", lambda settings: service)
    monkeypatch.setattr(cli, "_launch_app", take_quiz)

    assert cli.main(["run", str(lesson_dir), "--count", "1"]) == 0

    captured = capsys.readouterr()
    assert "Skipped notes.txt" in captured.err
    assert [doc.name for doc in launched["config"].documents] == [
        "chapter1.pdf",
        "diagram.png",
    ]
    assert "Quiz Report" in captured.out
    assert "100%" in captured.out
    assert "Well done." in captured.out


def test_run_closed_before_grading(lesson_dir, monkeypatch, capsys):
    monkeypatch.setattr(
        cli, "_create_service", lambda settings: ScriptedService()
    )
    monkeypatch.setattr(cli, "_launch_app", lambda lifecycle, config: None)

    assert cli.main(["run", str(lesson_dir)]) == 0
    assert "nothing to report" in capsys.readouterr().out


def test_run_parser_errors_exit_2(capsys):
    assert cli.main(["run"]) == 2
    assert "usage:" in capsys.readouterr().err


def test_run_help_exits_0(capsys):
    assert cli.main(["run", "--help"]) == 0
    assert isinstance(cli._build_run_parser(), argparse.ArgumentParser)
    assert "--time-limit" in capsys.readouterr().out


def test_run_rejects_unusable_type_selection_before_launch(
    tmp_path, lesson_dir, monkeypatch, capsys
):
    (tmp_path / "quizgenius.toml").write_text(
        "[quiz]\nauto_detect = false\nquestion_types = []\n", encoding="utf-8"
    )
    monkeypatch.setattr(
        cli, "_create_service", lambda settings: pytest.fail("no service")
    )
    monkeypatch.setattr(
        cli, "_launch_app", lambda lifecycle, config: pytest.fail("no launch")
    )

    assert cli.main(["run", str(lesson_dir)]) == 2
    assert (
        "Error: Please select at least one question type or enable auto-detect."
        in capsys.readouterr().err
    )
