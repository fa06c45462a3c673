"""Source commands - list, register and seed content sources."""

from __future__ import annotations

import asyncio
from typing import Annotated

import aiosqlite
import typer
from rich.table import Table

from ..config import get_settings
from ..models import SourcePlatform
from ..presets import PRESETS, default_sources, get_preset
from . import DbOption, app, console, open_store


def _preset_table() -> Table:
    table = Table(title="Available Presets", show_header=True, header_style="bold")
    table.add_column("Key", width=15)
    table.add_column("Name", width=25)
    table.add_column("Sources", width=45)
    for key, preset in PRESETS.items():
        names = ", ".join(s["display_name"] for s in preset["sources"][:4])
        extra = len(preset["sources"]) - 4
        if extra > 0:
            names += f" (+{extra} more)"
        table.add_row(key, preset["name"], names)
    return table


@app.command()
def sources(
    active_only: Annotated[bool, typer.Option("--active", "-a", help="Only show active sources.")] = False,
    db_path: DbOption = None,
):
    """List registered sources and the presets available for seeding."""
    path = db_path or get_settings().db_path

    async def _list():
        async with open_store(path) as store:
            return await store.list_sources(active_only=active_only)

    rows = asyncio.run(_list())

    if rows:
        table = Table(title="Sources", show_header=True, header_style="bold")
        table.add_column("ID", width=4)
        table.add_column("Platform", width=12)
        table.add_column("Name", width=24)
        table.add_column("Every", justify="right")
        table.add_column("Last scraped", width=20)
        table.add_column("Active")
        for s in rows:
            table.add_row(
                str(s["id"]),
                s["platform"],
                s["display_name"],
                f"{s['scrape_frequency_hours']}h",
                (s["last_scraped_at"] or "never")[:19],
                "✓" if s["is_active"] else "[dim]✗[/dim]",
            )
        console.print(table)
    else:
        console.print("[yellow]No sources yet. Seed the defaults with:[/yellow] opportunity-radar sources-seed")

    console.print(_preset_table())


@app.command("sources-add")
def sources_add(
    platform: Annotated[SourcePlatform, typer.Argument(help="Platform: reddit, hackernews, ...")],
    identifier: Annotated[str, typer.Argument(help="Subreddit name or Hacker News story list (ask, show, ...).")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="Display name.")] = None,
    every: Annotated[int, typer.Option("--every", min=1, help="Scrape frequency in hours.")] = 6,
    db_path: DbOption = None,
):
    """Register a single source."""
    path = db_path or get_settings().db_path
    display_name = name or (f"r/{identifier}" if platform is SourcePlatform.REDDIT else identifier)

    async def _add():
        async with open_store(path) as store:
            return await store.create_source(platform, identifier, display_name, scrape_frequency_hours=every)

    try:
        source = asyncio.run(_add())
    except aiosqlite.IntegrityError as e:
        console.print(f"[yellow]Source already registered:[/yellow] {platform.value}/{identifier}")
        raise typer.Exit(1) from e

    console.print(f"[green]✓ Added source:[/green] {source['display_name']} (ID: {source['id']})")


@app.command("sources-seed")
def sources_seed(
    preset_keys: Annotated[
        list[str] | None,
        typer.Argument(help="Preset keys to seed (defaults to indie_saas and hackernews)."),
    ] = None,
    db_path: DbOption = None,
):
    """Seed sources from curated presets. Registered sources are left as they are."""
    path = db_path or get_settings().db_path

    if preset_keys:
        seeds = []
        for key in preset_keys:
            preset = get_preset(key)
            if not preset:
                console.print(f"[red]Unknown preset:[/red] {key}")
                console.print(f"Available: {', '.join(PRESETS)}")
                raise typer.Exit(1)
            seeds.extend(preset["sources"])
    else:
        seeds = default_sources()

    async def _seed():
        async with open_store(path) as store:
            return await store.seed_sources(seeds)

    inserted = asyncio.run(_seed())
    console.print(f"[green]✓ Seeded {inserted} new source(s)[/green] ({len(seeds) - inserted} already present)")
