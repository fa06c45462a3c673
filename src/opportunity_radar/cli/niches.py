"""Niche commands - list and seed focus niches."""

from __future__ import annotations

import asyncio

from rich.table import Table

from ..config import get_settings
from ..niches import DEFAULT_NICHES
from . import DbOption, app, console, open_store


@app.command()
def niches(db_path: DbOption = None):
    """List the niches that pull matching posts forward in analysis."""
    path = db_path or get_settings().db_path

    async def _list():
        async with open_store(path) as store:
            return await store.list_niches()

    rows = asyncio.run(_list())
    if not rows:
        console.print("[yellow]No niches stored; the built-in defaults apply.[/yellow]")
        console.print("Seed them with: opportunity-radar niches-seed")
        rows = [n.model_dump(mode="json") for n in DEFAULT_NICHES]

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", width=4)
    table.add_column("Name", width=20)
    table.add_column("Priority", width=8)
    table.add_column("Keywords", width=50)
    table.add_column("Active")
    for n in rows:
        table.add_row(
            str(n["id"] or "-"),
            n["name"],
            n["priority"],
            ", ".join(n["keywords"]),
            "✓" if n["is_active"] else "[dim]✗[/dim]",
        )
    console.print(table)


@app.command("niches-seed")
def niches_seed(db_path: DbOption = None):
    """Store the default niches. Names already present are skipped."""
    path = db_path or get_settings().db_path

    async def _seed():
        async with open_store(path) as store:
            return await store.seed_niches(DEFAULT_NICHES)

    inserted = asyncio.run(_seed())
    console.print(f"[green]✓ Seeded {inserted} niche(s)[/green]")
