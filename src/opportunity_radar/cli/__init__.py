"""Typer CLI for Opportunity Radar.

Each submodule registers its commands on the shared `app`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import typer
from rich.console import Console

from ..store import AsyncStore

app = typer.Typer(
    name="opportunity-radar",
    help="Mine community posts for micro SaaS opportunities.",
    no_args_is_help=True,
)

console = Console()

DbOption = Annotated[str | None, typer.Option("--db", help="Path to database file (overrides settings).")]


@asynccontextmanager
async def open_store(path: str) -> AsyncIterator[AsyncStore]:
    """Connected store with the schema in place, closed on exit."""
    store = AsyncStore(path)
    await store.connect()
    try:
        await store.init_db()
        yield store
    finally:
        await store.close()


def _show_version(value: bool):
    if value:
        from .. import __version__

        console.print(f"opportunity-radar {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """Ingest community posts, analyze them with Claude or OpenAI, and track opportunities."""


from . import analyze, db, ingest, niches, sources, web  # noqa: E402, F401
