"""Unified CLI entry point for QuizGenius."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, Sequence

from rich.console import Console

from .core.logging import configure_logger
from .errors import ConfigurationError, QuizGeniusError
from .quiz.generation import build_generation_request
from .quiz.intake import PendingUploads
from .quiz.lifecycle import QuizLifecycle
from .quiz.models import QuestionType, QuizConfig, QuizResult, UploadedFile
from .quiz.services import OpenAIQuizService, QuizService
from .settings import (
    AISettings,
    QuizDefaults,
    Settings,
    load_settings,
    resolve_settings_path,
    write_template,
)

CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    """Represents a quizgenius subcommand."""

    name: str
    summary: str
    handler: CommandHandler
    is_tui: bool = False


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="run",
        summary="Generate a quiz from lesson files and take it.",
        is_tui=True,
        handler=lambda argv: _handle_run(argv),
    ),
    CommandSpec(
        name="config",
        summary="Write the settings template or show effective settings.",
        handler=lambda argv: _handle_config(argv),
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def _sorted_specs() -> Iterable[CommandSpec]:
    return _COMMAND_SPECS


def _command_name_width() -> int:
    return max(len(spec.name) for spec in _sorted_specs()) if COMMANDS else 0


def format_command_table() -> str:
    """Return a formatted command table for help output."""

    width = _command_name_width()
    lines = ["Available commands:"]
    for spec in _sorted_specs():
        name = spec.name.ljust(width)
        suffix = " (TUI)" if spec.is_tui else ""
        lines.append(f"  {name}  {spec.summary}{suffix}")
    return "\n".join(lines)


def format_usage() -> str:
    parts = [
        "Usage: quizgenius <command> [args...]",
        "Run `quizgenius help <name>` for details on a command.",
        "",
        format_command_table(),
    ]
    return "\n".join(parts)


def _print(
    text: str, *, stream: Optional[Callable[[str], None]] = None
) -> None:
    target = stream if stream is not None else sys.stdout.write
    if text:
        target(text + "\n")


def _print_error(message: str) -> None:
    _print(message, stream=sys.stderr.write)


def _handle_version() -> int:
    try:
        version = metadata.version("quizgenius")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _print(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _print(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if not spec:
        _print_error(f"Unknown command '{argv[0]}'.")
        _print_error(format_command_table())
        return 2
    _print(f"{spec.name}: {spec.summary}")
    _print(f"Run `quizgenius {spec.name} --help` for options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])

    if not args:
        _print(format_usage())
        return 2

    head, *tail = args

    if head in ("-h", "--help"):
        _print(format_usage())
        return 0

    if head in ("-V", "--version", "version"):
        return _handle_version()

    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec is None:
        _print_error(f"Unknown command '{head}'.")
        _print_error(format_command_table())
        return 2
    try:
        return spec.handler(tail)
    except ConfigurationError as exc:
        _print_error(f"Error: {exc}")
        return 2
    except QuizGeniusError as exc:
        _print_error(f"Error: {exc}")
        return 1


# -- run -------------------------------------------------------------------


def _build_run_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizgenius run",
        description=(
            "Turn lesson PDFs and images into an AI-generated quiz, take it "
            "in the terminal and get it graded."
        ),
    )
    parser.add_argument(
        "paths",
        nargs="+",
        help="Lesson files (PDF, JPEG, PNG, WebP) or directories of them.",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Number of questions (1-100).",
    )
    parser.add_argument(
        "--difficulty",
        default=None,
        help="Easy, Medium or Hard.",
    )
    parser.add_argument(
        "--type",
        dest="types",
        action="append",
        choices=[member.value for member in QuestionType],
        default=None,
        help="Question type to include; repeat for several. Disables "
        "auto-detect.",
    )
    parser.add_argument(
        "--auto-detect",
        action="store_true",
        help="Let the model pick a suitable mix of question types.",
    )
    parser.add_argument(
        "--instructions",
        default=None,
        help="Extra style or focus instructions for the questions.",
    )
    parser.add_argument(
        "--time-limit",
        type=int,
        default=None,
        help="Minutes before the quiz is submitted automatically (0 = none).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to quizgenius.toml.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log output to stderr.",
    )
    return parser


def build_quiz_config(
    args: argparse.Namespace,
    defaults: QuizDefaults,
    documents: Sequence[UploadedFile],
) -> QuizConfig:
    """Layer CLI flags over configured defaults."""

    if args.types:
        types: Sequence[str | QuestionType] = args.types
        auto_detect = False
    elif args.auto_detect:
        types = ()
        auto_detect = True
    else:
        types = defaults.question_types
        auto_detect = defaults.auto_detect
    return QuizConfig.create(
        documents,
        question_count=(
            args.count if args.count is not None else defaults.question_count
        ),
        question_types=types,
        auto_detect=auto_detect,
        difficulty=(
            args.difficulty
            if args.difficulty is not None
            else defaults.difficulty
        ),
        instructions=(
            args.instructions
            if args.instructions is not None
            else defaults.instructions
        ),
        time_limit_minutes=(
            args.time_limit
            if args.time_limit is not None
            else defaults.time_limit_minutes
        ),
    )


def _create_service(settings: AISettings) -> QuizService:
    return OpenAIQuizService(settings)


def _launch_app(
    lifecycle: QuizLifecycle, config: QuizConfig
) -> Optional[QuizResult]:
    from .view.app import QuizGeniusApp

    return QuizGeniusApp(lifecycle, config).run()


def _handle_run(argv: Sequence[str]) -> int:
    parser = _build_run_parser()
    try:
        args = parser.parse_args(list(argv))
    except SystemExit as exc:
        return int(exc.code or 0)

    settings = load_settings(_to_path(args.config))
    logger, log_path = configure_logger(
        "quizgenius",
        log_dir=settings.logging.directory,
        level=settings.logging.level,
        verbose=args.verbose or settings.logging.verbose,
    )

    uploads = PendingUploads()
    for warning in uploads.add_paths([Path(raw) for raw in args.paths]):
        _print_error(warning)
    config = build_quiz_config(args, settings.quiz, uploads.files)
    build_generation_request(config)

    service = _create_service(settings.ai)
    lifecycle = QuizLifecycle(service)
    logger.info(
        "Launching quiz",
        extra={
            "event": "run_start",
            "documents": len(config.documents),
            "question_count": config.question_count,
            "log_path": str(log_path),
        },
    )
    result = _launch_app(lifecycle, config)
    if result is None:
        _print("Quiz closed before grading; nothing to report.")
        return 0

    from .view.report import render_report

    render_report(Console(), result)
    return 0


# -- config ----------------------------------------------------------------


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizgenius config",
        description="Manage the quizgenius.toml settings file.",
    )
    subparsers = parser.add_subparsers(dest="config_command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default configuration template.",
    )
    init_parser.add_argument(
        "--path",
        type=str,
        default="quizgenius.toml",
        help="Destination for the config TOML (defaults to ./quizgenius.toml).",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file if present.",
    )

    show_parser = subparsers.add_parser(
        "show",
        help="Print the effective settings.",
    )
    show_parser.add_argument(
        "--config",
        type=str,
        help="Path to the config TOML to read.",
    )
    return parser


def _handle_config(argv: Sequence[str]) -> int:
    parser = _build_config_parser()
    try:
        args = parser.parse_args(list(argv))
    except SystemExit as exc:
        return int(exc.code or 0)
    if args.config_command == "init":
        target = write_template(_to_path(args.path), overwrite=args.force)
        _print(f"Wrote config template to {target}")
        return 0
    explicit = _to_path(args.config)
    source = resolve_settings_path(explicit)
    settings = load_settings(explicit)
    _print(format_settings(settings, source))
    return 0


def format_settings(settings: Settings, source: Optional[Path]) -> str:
    quiz = settings.quiz
    ai = settings.ai
    types = ", ".join(member.value for member in quiz.question_types)
    lines = [
        f"source: {source if source is not None else '(built-in defaults)'}",
        "[quiz]",
        f"  question_count: {quiz.question_count}",
        f"  difficulty: {quiz.difficulty.value}",
        f"  time_limit_minutes: {quiz.time_limit_minutes}",
        f"  auto_detect: {quiz.auto_detect}",
        f"  question_types: {types or '(none)'}",
        f"  instructions: {quiz.instructions or '(none)'}",
        "[ai]",
        f"  generation_model: {ai.generation_model}",
        f"  grading_model: {ai.grading_model}",
        f"  tutor_model: {ai.tutor_model}",
        f"  request_timeout_seconds: {ai.request_timeout_seconds}",
        f"  api_base: {ai.api_base or '(default)'}",
        "[logging]",
        f"  level: {settings.logging.level}",
        f"  verbose: {settings.logging.verbose}",
        f"  directory: {settings.logging.directory}",
    ]
    return "\n".join(lines)


def _to_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser()


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
