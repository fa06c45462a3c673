"""Rich progress bars for ingest and analysis runs started from the CLI.

Pipeline code reports progress through the module-level helpers; they are
no-ops unless a CLI command has installed a display with `progress_context`.
"""

from __future__ import annotations

from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

console = Console()

_current_progress: Progress | None = None
_tasks: dict[str, TaskID] = {}


def create_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


@contextmanager
def progress_context():
    """Install a shared progress display for the duration of a run."""
    global _current_progress
    progress = create_progress()
    _current_progress = progress
    try:
        with progress:
            yield progress
    finally:
        _current_progress = None
        _tasks.clear()


def _start(name: str, description: str, total: int) -> None:
    if _current_progress:
        _tasks[name] = _current_progress.add_task(description, total=total)


def _advance(name: str) -> None:
    if _current_progress and name in _tasks:
        _current_progress.advance(_tasks[name])


def _complete(name: str, description: str) -> None:
    task_id = _tasks.pop(name, None)
    if _current_progress and task_id is not None:
        _current_progress.update(task_id, description=description)


def start_fetch_task(total: int) -> None:
    _start("fetch", "Scraping sources...", total)


def advance_fetch() -> None:
    _advance("fetch")


def complete_fetch() -> None:
    _complete("fetch", "[green]✓ Sources scraped")


def start_analyze_task(total: int) -> None:
    _start("analyze", "Analyzing posts...", total)


def advance_analyze() -> None:
    _advance("analyze")


def complete_analyze() -> None:
    _complete("analyze", "[green]✓ Analysis complete")
