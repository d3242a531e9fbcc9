"""
CLI Interface
=============
Command-line interface for MathLab.

Usage:
    python -m mathlab ingest <pdf_path> -o questions.json [options]
    python -m mathlab show <json_path> [--tag algebra]
    python -m mathlab validate <json_path>
    python -m mathlab take <json_path>
    python -m mathlab info <pdf_path>
"""

from __future__ import annotations

import json
import os
import sys
from contextlib import closing
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from . import __version__
from .controller import LabController
from .engine import IngestionConfig, IngestionEngine
from .errors import EmptyExtraction, ImportFormatError, IngestionFailure
from .evaluation import EvaluationSession
from .markup import PartKind, split_math
from .models import Category, ChoiceLabel, QuestionOutcome, QuestionRecord
from .rasterizer import PageRasterizer
from .storage import DEFAULT_FILENAME
from .timer import format_elapsed
from .validator import CollectionValidator

console = Console()

CATEGORY_CHOICES = [c.value for c in Category]

OUTCOME_STYLES = {
    QuestionOutcome.PENDING: "dim",
    QuestionOutcome.CORRECT: "green",
    QuestionOutcome.PARTIAL: "yellow",
    QuestionOutcome.WRONG: "red",
}


@click.group()
@click.version_option(version=__version__, prog_name="mathlab")
def cli():
    """MathLab — exam ingestion and two-attempt self-testing."""
    pass


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@click.option(
    "--output", "-o",
    default=DEFAULT_FILENAME,
    help="Collection file to write",
)
@click.option(
    "--scale",
    default=2.0,
    type=float,
    help="Rasterization zoom factor for OCR",
)
@click.option(
    "--lang",
    default="eng",
    help="Tesseract language code(s)",
)
@click.option(
    "--tesseract-config",
    default="",
    help="Extra Tesseract flags, e.g. '--oem 3 --psm 6'",
)
@click.option(
    "--page-start",
    default=None,
    type=int,
    help="Start page (1-indexed)",
)
@click.option(
    "--page-end",
    default=None,
    type=int,
    help="End page (1-indexed, inclusive)",
)
@click.option(
    "--raw-text-dir",
    default=None,
    help="Directory for a snapshot of the raw OCR text",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only the ingestion result JSON to stdout",
)
def ingest(
    pdf_path: str,
    output: str,
    scale: float,
    lang: str,
    tesseract_config: str,
    page_start: Optional[int],
    page_end: Optional[int],
    raw_text_dir: Optional[str],
    log_level: str,
    log_file: Optional[str],
    json_output: bool,
):
    """OCR a question paper PDF into a question collection."""

    if json_output:
        log_level = "ERROR"

    page_range = None
    if page_start is not None or page_end is not None:
        page_range = (page_start or 1, page_end or 99999)

    config = IngestionConfig(
        render_scale=scale,
        ocr_language=lang,
        tesseract_config=tesseract_config,
        page_range=page_range,
        raw_text_dir=raw_text_dir,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]MathLab Ingestion v{__version__}[/]\n"
                f"[dim]Reading: {os.path.basename(pdf_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    controller = LabController(engine=IngestionEngine(config))

    try:
        if json_output:
            result = controller.ingest_document(pdf_path)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Recognizing pages...", total=None)

                def on_page(done: int, total: int):
                    progress.update(task, completed=done, total=total)

                result = controller.ingest_document(pdf_path, progress_callback=on_page)

        saved = controller.export_file(output)

        if json_output:
            print(json.dumps(
                result.model_dump(mode="json", by_alias=True),
                indent=2,
                ensure_ascii=False,
            ))
        else:
            _display_ingestion(result, saved)

    except EmptyExtraction as e:
        console.print(f"[yellow]Warning:[/] {e}. Nothing was written.")
    except IngestionFailure as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)


@cli.command()
@click.argument("json_path", type=click.Path(exists=True))
@click.option(
    "--tag",
    default=None,
    type=click.Choice(CATEGORY_CHOICES),
    help="Only show questions in this category",
)
def show(json_path: str, tag: Optional[str]):
    """List the questions in a collection file."""
    controller = _load_or_exit(json_path)
    questions = controller.questions_tagged(Category(tag) if tag else None)

    table = Table(title=f"Questions ({len(questions)})", border_style="cyan")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Type")
    table.add_column("Question")
    table.add_column("Answer")
    table.add_column("Difficulty")
    table.add_column("Tags")

    for q in questions:
        body = render_markup(q.body)
        if q.is_multiple_choice:
            for label, text in q.choices.items():
                body.append(f"\n{label.value}: ", style="bold")
                body.append_text(render_markup(text))
        table.add_row(
            str(q.id),
            q.kind.value.upper(),
            body,
            Text(q.reference_answer) if q.reference_answer else Text("(none)", style="dim"),
            q.difficulty.value if q.difficulty else "",
            ", ".join(sorted(c.value for c in q.active_tags)),
        )

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.argument("json_path", type=click.Path(exists=True))
def validate(json_path: str):
    """Report gaps, duplicates and missing answers in a collection."""
    controller = _load_or_exit(json_path)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Collection Report[/]\n"
            f"[dim]File: {json_path}[/]",
            border_style="cyan",
        )
    )

    report = CollectionValidator().validate(controller.questions)
    _display_report_table(report.model_dump())


@cli.command()
@click.argument("json_path", type=click.Path(exists=True))
@click.option(
    "--tag",
    default=None,
    type=click.Choice(CATEGORY_CHOICES),
    help="Only test questions in this category",
)
def take(json_path: str, tag: Optional[str]):
    """Take a test: first attempt, then a second try on wrong answers."""
    controller = _load_or_exit(json_path)
    session = controller.enter_test_mode(Category(tag) if tag else None)

    if not session.questions:
        console.print("[yellow]No questions to test.[/]")
        controller.enter_editor_mode()
        return

    try:
        while True:
            console.print()
            console.print(Panel.fit("[bold cyan]First Attempt[/]", border_style="cyan"))
            for q in session.questions:
                _prompt_attempt(session, q, second=False)
            controller.advance()
            _display_session(session)

            if not session.is_terminal:
                console.print(Panel.fit("[bold yellow]Second Attempt[/]", border_style="yellow"))
                for q in session.questions:
                    if session.can_edit(q.identity, second=True):
                        _prompt_attempt(session, q, second=True)
                controller.advance()
                _display_session(session)

            reset = controller.advance(
                confirm=lambda: click.confirm("Reset test?", default=False)
            )
            if not reset:
                break
    finally:
        controller.enter_editor_mode()


@cli.command()
@click.argument("pdf_path", type=click.Path(exists=True))
@click.option(
    "--scale",
    default=2.0,
    type=float,
    help="Render zoom used to estimate the OCR image size",
)
def info(pdf_path: str, scale: float):
    """Show what an ingestion of PDF_PATH would work on."""

    rasterizer = PageRasterizer()
    try:
        page_count = rasterizer.page_count(pdf_path)
        with closing(rasterizer.iter_pages(pdf_path, page_range=(1, 1))) as pages:
            first = next(pages, None)
            first_size = (first[2].rect.width, first[2].rect.height) if first else None
    except Exception as e:
        console.print(f"[red]Error:[/] Could not open {pdf_path}: {e}")
        sys.exit(1)

    table = Table(title="Question Paper", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", Text(os.path.basename(pdf_path)))
    table.add_row("Pages", str(page_count))
    table.add_row("Size", f"{os.path.getsize(pdf_path) / 1024:.1f} KB")
    if first_size:
        width, height = first_size
        table.add_row(
            "OCR image",
            f"{round(width * scale)} x {round(height * scale)} px at {scale}x",
        )

    console.print()
    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def render_markup(text: str) -> Text:
    """Rich text with inline math highlighted."""
    rendered = Text()
    for part in split_math(text):
        if part.kind == PartKind.MATH:
            rendered.append(part.content, style="bold magenta")
        else:
            rendered.append(part.content)
    return rendered


def _load_or_exit(json_path: str) -> LabController:
    controller = LabController()
    try:
        controller.import_file(json_path)
    except ImportFormatError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    return controller


def _prompt_attempt(session: EvaluationSession, q: QuestionRecord, second: bool):
    console.print()
    console.print(Text(f"Q{q.id}  ", style="bold cyan").append_text(render_markup(q.body)))

    if q.is_multiple_choice:
        for label, text in q.choices.items():
            console.print(Text(f"  {label.value}: ", style="bold").append_text(render_markup(text)))
        raw = click.prompt(
            "Try again (letters)" if second else "Your choice (letters, e.g. AC)",
            default="",
            show_default=False,
        )
        for letter in dict.fromkeys(raw.upper()):
            if letter in ChoiceLabel.__members__:
                session.toggle_choice(q.identity, ChoiceLabel(letter), second=second)
    else:
        raw = click.prompt(
            "Try again" if second else "Your answer",
            default="",
            show_default=False,
        )
        session.update_attempt(q.identity, raw, second=second)


def _display_session(session: EvaluationSession):
    console.print()
    table = Table(border_style="cyan")
    table.add_column("Q", justify="right", style="bold")
    table.add_column("1st")
    table.add_column("2nd")
    table.add_column("Result", justify="center")
    table.add_column("Correct")

    for q in session.questions:
        outcome = session.outcome(q.identity)
        table.add_row(
            str(q.id),
            Text(session.first_attempts.get(q.identity, "")),
            Text(session.second_attempts.get(q.identity, "")),
            Text(outcome.value, style=OUTCOME_STYLES[outcome]),
            Text(session.revealed_answer(q.identity) or "", style="red"),
        )
    console.print(table)

    stats = session.score_stats()
    line = f"[green]✓ Correct: {stats.correct}[/]"
    if session.is_terminal:
        line += f"   [yellow]⚠ Partial: {stats.partial}[/]   [red]✗ Wrong: {stats.wrong}[/]"
    line += f"   [dim]Total Questions: {stats.total}[/]"
    console.print(line)

    footer = f"[bold]⏱ {format_elapsed(session.elapsed_seconds)}[/]"
    if session.is_perfect:
        footer += "   [bold green]🌟 Perfect Score![/]"
    console.print(footer)
    console.print()


def _display_ingestion(result, saved_path):
    console.print()

    source = result.source
    table = Table(title="Source Document", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Source PDF", source.source_pdf)
    table.add_row("Pages Processed", f"{source.pages_processed}/{source.total_pages}")
    table.add_row("File Hash", source.file_hash[:16] + "...")
    table.add_row("OCR Characters", str(result.raw_text_length))
    table.add_row("Saved To", str(saved_path))
    console.print(table)
    console.print()

    _display_report_table(result.report.model_dump())

    console.print(
        f"[dim]MathLab v{result.engine_version} | "
        f"Questions: {len(result.questions)} | "
        f"Timestamp: {result.ingested_at}[/]"
    )
    console.print()


def _display_report_table(report: dict):
    """Display a collection report as a rich table."""
    table = Table(title="Collection Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    total = report.get("total_questions", 0)
    complete = report.get("complete_questions", 0)
    rate = report.get("completion_rate", 0)

    table.add_row(
        "Total Questions",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Complete (body + answer)",
        f"{complete} ({rate}%)",
        "[green]✓[/]" if rate >= 90 else "[yellow]⚠[/]",
    )

    for label, key in [
        ("Missing IDs", "missing_ids"),
        ("Duplicate IDs", "duplicate_ids"),
        ("Questions Missing Body", "questions_missing_body"),
        ("Questions Missing Answer", "questions_missing_answer"),
        ("MCQs Missing Options", "mcq_missing_choices"),
        ("Invalid MCQ Answers", "invalid_mcq_answers"),
    ]:
        values = report.get(key, [])
        table.add_row(label, str(len(values)), status_icon(len(values)))

    console.print(table)
    console.print()


# ─── Entry point (for python -m mathlab.cli) ─────────────────────────────────


if __name__ == "__main__":
    cli()
