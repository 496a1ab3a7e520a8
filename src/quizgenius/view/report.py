from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..quiz.models import GradedQuestion, QuizResult

__all__ = ["outcome_label", "render_report", "score_style"]


def outcome_label(graded: GradedQuestion) -> str:
    if graded.is_partial:
        return "partial"
    return "correct" if graded.is_correct else "wrong"


def score_style(percentage: int) -> str:
    if percentage >= 80:
        return "bold green"
    if percentage >= 50:
        return "bold yellow"
    return "bold red"


_OUTCOME_STYLES = {"correct": "green", "partial": "yellow", "wrong": "red"}


def render_report(
    console: Console,
    result: QuizResult,
    *,
    show_explanations: bool = True,
) -> None:
    """Print the graded quiz: overview, per-question table, explanations."""

    console.print()
    console.rule(Text("Quiz Report", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Questions", str(result.max_score))
    overview.add_row("Score", f"{result.total_score:g} / {result.max_score}")
    overview.add_row(
        "Percentage",
        Text(f"{result.percentage}%", style=score_style(result.percentage)),
    )
    console.print(overview)
    console.print(Panel(Text(result.overall_feedback), title="Feedback"))

    table = Table(title="Responses", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Question", overflow="fold")
    table.add_column("Your answer", overflow="fold")
    table.add_column("Ideal answer", overflow="fold")
    table.add_column("Result", justify="center")

    for idx, graded in enumerate(result.graded_questions, start=1):
        outcome = outcome_label(graded)
        table.add_row(
            str(idx),
            Text(graded.question.text),
            Text(graded.user_answer)
            if graded.user_answer
            else Text("(no answer)", style="dim"),
            Text(
                graded.ideal_answer or graded.question.reference_answer or "-"
            ),
            Text(outcome, style=_OUTCOME_STYLES[outcome]),
        )
    console.print(table)

    if not show_explanations:
        return
    for idx, graded in enumerate(result.graded_questions, start=1):
        if not graded.explanation:
            continue
        console.print(
            Panel(
                Text(graded.explanation),
                title=f"Explanation: question {idx}",
                border_style=_OUTCOME_STYLES[outcome_label(graded)],
            )
        )
