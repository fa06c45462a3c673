"""Database commands - init-db, stats."""

from __future__ import annotations

import asyncio

from rich.table import Table

from ..config import get_settings
from . import DbOption, app, console, open_store


@app.command("init-db")
def init_db(db_path: DbOption = None):
    """Create the SQLite database and its tables if missing."""
    path = db_path or get_settings().db_path

    async def _init():
        async with open_store(path):
            pass

    asyncio.run(_init())
    console.print(f"[green]✓ Database initialized:[/green] {path}")


def _scrape_log_table(logs: list[dict]) -> Table:
    table = Table(title="Recent Scrapes", show_header=True)
    table.add_column("Source")
    table.add_column("Started")
    table.add_column("Found", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Error")
    for log in logs:
        table.add_row(
            log.get("source_name") or str(log["source_id"]),
            (log["started_at"] or "")[:19],
            str(log["posts_found"]),
            str(log["posts_new"]),
            (log["error_message"] or "")[:40],
        )
    return table


@app.command()
def stats(db_path: DbOption = None):
    """Show opportunity counts, the analysis backlog and recent scrapes."""
    path = db_path or get_settings().db_path

    async def _stats():
        async with open_store(path) as store:
            return await store.get_stats()

    result = asyncio.run(_stats())
    opportunities = result["opportunities"]

    table = Table(title="Opportunity Radar", show_header=False)
    table.add_column(style="bold")
    table.add_column(justify="right")
    table.add_row("Opportunities", str(opportunities["total"]))
    table.add_row("New", str(opportunities["new"]))
    table.add_row("Starred", str(opportunities["starred"]))
    table.add_row("Average score", f"{opportunities['average_score']:.2f}")
    table.add_row("Posts", str(result["posts"]["total"]))
    table.add_row("Awaiting analysis", str(result["posts"]["unprocessed"]))
    for status, count in sorted(result["breakdowns"]["status"].items()):
        table.add_row(f"  {status}", str(count))
    console.print(table)

    if result["recent_scrape_logs"]:
        console.print(_scrape_log_table(result["recent_scrape_logs"]))
