"""Textual front-end driving one quiz from generation to tutor follow-ups.

Remote calls run in thread workers and report back with
``call_from_thread``; everything else happens on the app's event loop. The
widget-free helpers (``choose_option``, ``move_item``, ``pick_match``,
``action_next`` ...) only touch the DOM when the app is running, so they can
be exercised directly.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Literal, Optional

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widget import Widget
from textual.widgets import (
    Button,
    ContentSwitcher,
    DataTable,
    Footer,
    Header,
    Input,
    LoadingIndicator,
    Select,
    Static,
)

from ..errors import QuizGeniusError, TutorBusyError, ValidationError
from ..quiz.lifecycle import QuizLifecycle
from ..quiz.models import (
    GradedQuestion,
    QuestionType,
    QuizConfig,
    QuizResult,
    UserAnswer,
)
from ..quiz.session import (
    TRUE_FALSE_CHOICES,
    QuizSession,
    Scheduler,
    TimerHandle,
    format_clock,
)
from .report import outcome_label

__all__ = ["Phase", "QuizGeniusApp", "question_widgets"]

logger = logging.getLogger(__name__)

Phase = Literal["generating", "quiz", "grading", "result", "error"]


def question_widgets(session: QuizSession) -> List[Widget]:
    """Widgets for the active question, reflecting the session's live state."""

    question = session.current
    widgets: List[Widget] = [
        Static(question.type.label, classes="qtype"),
        Static(question.text, classes="stem", markup=False),
    ]
    current = session.answer_for(question.id)
    if question.type is QuestionType.MULTIPLE_CHOICE:
        for idx, option in enumerate(question.options):
            widgets.append(
                Button(
                    Text(option),
                    name=f"option:{idx}",
                    variant="primary" if option == current else "default",
                    classes="choice",
                )
            )
    elif question.type is QuestionType.TRUE_FALSE:
        row = [
            Button(
                label,
                name=f"tf:{label}",
                variant="primary" if label == current else "default",
                classes="choice",
            )
            for label in TRUE_FALSE_CHOICES
        ]
        widgets.append(Horizontal(*row, classes="tf-row"))
    elif question.type in (
        QuestionType.FILL_IN_BLANK,
        QuestionType.SHORT_ANSWER,
    ):
        widgets.append(
            Input(
                value=current,
                placeholder="Type your answer",
                name="answer",
            )
        )
    elif question.type is QuestionType.SEQUENCING:
        items = session.sequence_items
        for position, item in enumerate(items):
            widgets.append(
                Horizontal(
                    Static(
                        f"{position + 1}. {item}",
                        classes="seq-item",
                        markup=False,
                    ),
                    Button(
                        "Up", name=f"up:{position}", disabled=position == 0
                    ),
                    Button(
                        "Down",
                        name=f"down:{position}",
                        disabled=position == len(items) - 1,
                    ),
                    classes="seq-row",
                )
            )
    elif question.type is QuestionType.MATCHING:
        selections = session.match_selections
        options = [(choice, choice) for choice in session.right_choices]
        for pair in question.matching_pairs:
            kwargs = {}
            if pair.left in selections:
                kwargs["value"] = selections[pair.left]
            widgets.append(
                Horizontal(
                    Static(pair.left, classes="match-left", markup=False),
                    Select(
                        options,
                        prompt="Choose a match",
                        name=pair.left,
                        **kwargs,
                    ),
                    classes="match-row",
                )
            )
    return widgets


class QuizGeniusApp(App):
    TITLE = "QuizGenius"
    CSS = """
#quiz-top { height: auto; }
#progress { width: 1fr; }
#clock { width: auto; color: $warning; }
#nav { height: auto; }
.stem { margin: 1 0; text-style: bold; }
.qtype { color: $text-muted; }
.seq-row, .match-row, .tf-row { height: auto; }
.seq-item, .match-left { width: 1fr; padding: 1 0; }
.status { margin: 1 0; }
#graded { height: 12; }
"""
    BINDINGS = [
        ("n", "next", "Next"),
        ("p", "prev", "Prev"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        lifecycle: QuizLifecycle,
        config: QuizConfig,
        *,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        super().__init__()
        self.lifecycle = lifecycle
        self.quiz_config = config
        self.session: Optional[QuizSession] = None
        self.phase: Phase = "generating"
        self.error_message = ""
        self.tutor_text = ""
        self.selected_graded: Optional[GradedQuestion] = None
        self._scheduler = scheduler
        self._answers: tuple[UserAnswer, ...] = ()
        self._retry_stage: Optional[Phase] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with ContentSwitcher(initial="generating", id="phases"):
            with Vertical(id="generating"):
                yield Static("Generating your quiz...", classes="status")
                yield LoadingIndicator()
            with Vertical(id="quiz"):
                with Horizontal(id="quiz-top"):
                    yield Static("", id="progress")
                    yield Static("", id="clock")
                yield VerticalScroll(id="stage")
                with Horizontal(id="nav"):
                    yield Button("Prev", id="prev")
                    yield Button("Next", id="next", variant="primary")
            with Vertical(id="grading"):
                yield Static("Grading your answers...", classes="status")
                yield LoadingIndicator()
            with Vertical(id="result"):
                yield Static("", id="score")
                yield Static("", id="feedback")
                yield DataTable(id="graded", cursor_type="row")
                yield Static("", id="explanation")
                yield Input(
                    placeholder="Ask the tutor about the highlighted question",
                    id="tutor-input",
                )
                yield Static("", id="tutor-reply")
            with Vertical(id="error"):
                yield Static("", id="error-message")
                yield Button("Retry", id="retry", variant="warning")
        yield Footer()

    def on_mount(self) -> None:
        self.generate_quiz()

    # -- remote stages -------------------------------------------------------

    @work(thread=True, exclusive=True, group="generation")
    def generate_quiz(self) -> None:
        try:
            self.lifecycle.generate(self.quiz_config)
        except QuizGeniusError as exc:
            logger.error(
                "Quiz generation failed",
                extra={"event": "generation_failed", "error": str(exc)},
            )
            self.call_from_thread(self.show_error, str(exc), "generating")
            return
        self.call_from_thread(self.begin_session)

    @work(thread=True, exclusive=True, group="grading")
    def grade_quiz(self, answers: tuple[UserAnswer, ...]) -> None:
        try:
            result = self.lifecycle.grade(answers)
        except QuizGeniusError as exc:
            logger.error(
                "Quiz grading failed",
                extra={"event": "grading_failed", "error": str(exc)},
            )
            self.call_from_thread(self.show_error, str(exc), "grading")
            return
        self.call_from_thread(self.show_result, result)

    @work(thread=True, group="tutor")
    def ask_tutor_in_background(
        self, graded: GradedQuestion, query: str
    ) -> None:
        try:
            reply = self.lifecycle.tutor.ask(graded, query)
        except (TutorBusyError, ValidationError) as exc:
            reply = str(exc)
        self.call_from_thread(self.set_tutor_text, reply)

    # -- phase transitions ---------------------------------------------------

    def begin_session(self) -> QuizSession:
        self.session = self.lifecycle.new_session(
            scheduler=self._scheduler or self._schedule_tick,
            on_finalized=self._on_finalized,
        )
        self._show_phase("quiz")
        self.session.start()
        self._render_stage()
        self._update_clock()
        return self.session

    def show_error(self, message: str, stage: Phase) -> None:
        self.error_message = message
        self._retry_stage = stage
        self._show_phase("error")
        if self.is_running:
            self.query_one("#error-message", Static).update(
                Text.assemble(("Something went wrong: ", "bold"), message)
            )

    def retry(self) -> None:
        if self._retry_stage == "generating":
            self._show_phase("generating")
            self.generate_quiz()
        elif self._retry_stage == "grading":
            self._show_phase("grading")
            self.grade_quiz(self._answers)

    def show_result(self, result: QuizResult) -> None:
        self._show_phase("result")
        self.selected_graded = (
            result.graded_questions[0] if result.graded_questions else None
        )
        if not self.is_running:
            return
        self.query_one("#score", Static).update(
            f"[b]Score:[/b] {result.total_score:g} / {result.max_score} "
            f"({result.percentage}%)"
        )
        self.query_one("#feedback", Static).update(
            Text(result.overall_feedback)
        )
        table = self.query_one("#graded", DataTable)
        table.clear(columns=True)
        table.add_columns("#", "Question", "Your answer", "Result")
        for idx, graded in enumerate(result.graded_questions, start=1):
            table.add_row(
                str(idx),
                Text(graded.question.text),
                Text(graded.user_answer or "(no answer)"),
                outcome_label(graded),
                key=str(graded.id),
            )
        self._render_explanation()

    def _on_finalized(self, answers: tuple[UserAnswer, ...]) -> None:
        self._answers = answers
        self._show_phase("grading")
        if self.is_running:
            self.grade_quiz(answers)

    def _show_phase(self, phase: Phase) -> None:
        self.phase = phase
        if self.is_running:
            self.query_one("#phases", ContentSwitcher).current = phase

    def _schedule_tick(
        self, interval: float, callback: Callable[[], None]
    ) -> TimerHandle:
        def _tick() -> None:
            callback()
            self._update_clock()

        return self.set_interval(interval, _tick)

    # -- quiz interaction ----------------------------------------------------

    def action_next(self) -> None:
        if not self._session_active():
            return
        self.session.advance()
        if not self.session.is_finalized:
            self._render_stage()

    def action_prev(self) -> None:
        if not self._session_active():
            return
        if self.session.retreat():
            self._render_stage()

    def action_quit(self) -> None:
        self.exit(self.lifecycle.result)

    def choose_option(self, value: str) -> bool:
        if not self._session_active():
            return False
        accepted = self.session.record_answer(value)
        if accepted:
            self._render_stage()
        return accepted

    def move_item(self, position: int, direction: int) -> bool:
        if not self._session_active():
            return False
        if direction < 0:
            moved = self.session.move_up(position)
        else:
            moved = self.session.move_down(position)
        if moved:
            self._render_stage()
        return moved

    def pick_match(self, left: str, right: str) -> bool:
        if not self._session_active():
            return False
        return self.session.select_match(left, right)

    def clear_match(self, left: str) -> bool:
        if not self._session_active():
            return False
        return self.session.clear_match(left)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button
        if button.id == "next":
            self.action_next()
            return
        if button.id == "prev":
            self.action_prev()
            return
        if button.id == "retry":
            self.retry()
            return
        kind, _, value = (button.name or "").partition(":")
        if kind == "option" and self.session is not None:
            self.choose_option(self.session.current.options[int(value)])
        elif kind == "tf":
            self.choose_option(value)
        elif kind == "up":
            self.move_item(int(value), -1)
        elif kind == "down":
            self.move_item(int(value), 1)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.name == "answer" and self._session_active():
            self.session.record_answer(event.value)

    def on_select_changed(self, event: Select.Changed) -> None:
        left = event.select.name
        if not left:
            return
        if isinstance(event.value, str):
            self.pick_match(left, event.value)
        else:
            self.clear_match(left)

    def _session_active(self) -> bool:
        return (
            self.phase == "quiz"
            and self.session is not None
            and not self.session.is_finalized
        )

    def _render_stage(self) -> None:
        if not self.is_running or not self._session_active():
            return
        session = self.session
        stage = self.query_one("#stage", VerticalScroll)
        stage.remove_children()
        stage.mount_all(question_widgets(session))
        self.query_one("#progress", Static).update(
            f"Question {session.index + 1} of {session.total}"
        )
        self.query_one("#prev", Button).disabled = session.index == 0
        self.query_one("#next", Button).label = (
            "Submit" if session.is_last else "Next"
        )

    def clock_text(self) -> str:
        if self.session is None or self.session.remaining_seconds is None:
            return "No time limit"
        return f"Time left {format_clock(self.session.remaining_seconds)}"

    def _update_clock(self) -> None:
        if self.is_running and self.phase == "quiz":
            self.query_one("#clock", Static).update(self.clock_text())

    # -- tutor ---------------------------------------------------------------

    def on_data_table_row_highlighted(
        self, event: DataTable.RowHighlighted
    ) -> None:
        result = self.lifecycle.result
        if result is None or event.row_key.value is None:
            return
        self.selected_graded = result.find(int(event.row_key.value))
        self._render_explanation()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "tutor-input":
            return
        if self.submit_tutor(event.value):
            event.input.value = ""

    def submit_tutor(self, query: str) -> bool:
        """Send a follow-up question about the highlighted graded question."""

        graded = self.selected_graded
        if graded is None:
            self.set_tutor_text("Highlight a question first.")
            return False
        if not (query or "").strip():
            self.set_tutor_text("Please type a question for the tutor.")
            return False
        if self.lifecycle.tutor.busy:
            self.set_tutor_text("The tutor is still answering.")
            return False
        self.set_tutor_text("Thinking...")
        if self.is_running:
            self.ask_tutor_in_background(graded, query)
        return True

    def set_tutor_text(self, text: str) -> None:
        self.tutor_text = text
        if self.is_running:
            self.query_one("#tutor-reply", Static).update(Text(text))

    def _render_explanation(self) -> None:
        graded = self.selected_graded
        if graded is None or not self.is_running:
            return
        self.query_one("#explanation", Static).update(
            Text.assemble(
                ("Explanation: ", "bold"),
                graded.explanation,
                "\n",
                ("Ideal answer: ", "bold"),
                graded.ideal_answer,
            )
        )
