"""Analyze command - run pending posts through the LLM providers."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.table import Table

from ..config import get_settings
from ..logging_config import configure_logging
from ..models import AIProvider
from ..progress import progress_context
from ..providers import build_clients
from ..scheduler import run_analysis
from . import DbOption, app, console, open_store


@app.command()
def analyze(
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", help="Maximum posts to analyze."),
    ] = None,
    provider: Annotated[
        str | None,
        typer.Option("--provider", "-p", help="Designated provider: claude or openai."),
    ] = None,
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
    """Analyze the most promising pending posts.

    Posts matching a niche are analyzed first. Providers alternate post by post.
    """
    configure_logging(log_level, log_json)
    settings = get_settings()
    path = db_path or settings.db_path

    try:
        designated = AIProvider(provider or settings.default_provider)
    except ValueError as e:
        console.print(f"[red]Unknown provider:[/red] {provider}")
        raise typer.Exit(1) from e

    clients = build_clients(settings)
    if designated not in clients:
        console.print(f"[red]Configuration error:[/red] no API key for {designated.value}")
        console.print("\nMake sure you have a .env file with:")
        console.print("  ANTHROPIC_API_KEY=... and/or OPENAI_API_KEY=...")
        raise typer.Exit(1)

    async def _run():
        async with open_store(path) as store:
            return await run_analysis(
                store,
                clients,
                limit=limit or settings.analysis_batch_size,
                provider=designated,
                delay=settings.analysis_delay_seconds,
                overfetch=settings.analysis_overfetch,
            )

    if no_progress:
        summary = asyncio.run(_run())
    else:
        with progress_context():
            summary = asyncio.run(_run())

    console.print(
        f"\n[bold]Processed:[/bold] {summary.processed}  "
        f"[bold green]Opportunities:[/bold green] {summary.opportunities_found}  "
        f"[bold]Niche matches:[/bold] {summary.niche_matches}  "
        f"[bold red]Errors:[/bold red] {summary.errors}"
    )

    if summary.details:
        table = Table(show_header=True)
        table.add_column("Post", justify="right")
        table.add_column("Provider")
        table.add_column("Status")
        table.add_column("Boost", justify="right")
        table.add_column("Niches")
        for d in summary.details:
            table.add_row(
                str(d.post_id),
                d.provider,
                d.status if d.status != "error" else f"[red]{d.error or 'error'}[/red]",
                f"{d.boost:.1f}",
                ", ".join(d.niches),
            )
        console.print(table)
