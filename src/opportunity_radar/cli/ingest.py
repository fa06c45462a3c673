"""Ingest command - scrape due sources into the raw post backlog."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.table import Table

from ..config import get_settings
from ..ingest import run_ingest
from ..logging_config import configure_logging
from ..progress import progress_context
from . import DbOption, app, console, open_store


@app.command()
def ingest(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Logging level: DEBUG, INFO, WARNING, ERROR"),
    ] = "WARNING",
    log_json: Annotated[bool, typer.Option("--log-json", help="Output logs as JSON.")] = False,
    no_progress: Annotated[
        bool,
        typer.Option("--no-progress", help="Disable progress bars (useful for logging)."),
    ] = False,
    db_path: DbOption = None,
):
    """Scrape every active source that is due."""
    configure_logging(log_level, log_json)
    settings = get_settings()
    path = db_path or settings.db_path

    async def _run():
        async with open_store(path) as store:
            return await run_ingest(store, settings)

    if no_progress:
        results = asyncio.run(_run())
    else:
        with progress_context():
            results = asyncio.run(_run())

    if not results:
        console.print("[yellow]No active sources. Seed some with:[/yellow] opportunity-radar sources-seed")
        return

    table = Table(title="Ingest Results", show_header=True)
    table.add_column("Source", width=24)
    table.add_column("Status", width=8)
    table.add_column("Found", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Signals", justify="right")
    table.add_column("Note", width=40)

    styles = {"scraped": "green", "skipped": "dim", "error": "red"}
    for r in results:
        table.add_row(
            r.source,
            f"[{styles[r.status]}]{r.status}[/{styles[r.status]}]",
            str(r.posts_found),
            str(r.posts_new),
            str(r.signals),
            r.error or r.reason or "",
        )
    console.print(table)
