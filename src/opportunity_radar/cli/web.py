"""web command - serve the JSON API and the dashboard."""

from __future__ import annotations

from typing import Annotated

import typer
import uvicorn

from ..config import get_settings
from ..logging_config import configure_logging
from . import app, console


@app.command()
def web(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8000,
    reload: Annotated[bool, typer.Option(help="Restart on code changes (development).")] = False,
):
    """Serve /api and the dashboard with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    if not settings.cron_secret and not settings.is_development:
        console.print("[yellow]CRON_SECRET is not set; /api/ingest and /api/analyze accept only the scheduler header.[/yellow]")
    uvicorn.run("opportunity_radar.web_app:app", host=host, port=port, reload=reload)
