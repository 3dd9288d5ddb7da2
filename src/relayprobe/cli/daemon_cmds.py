"""Daemon command: run the detection API under uvicorn."""

import os
from typing import Optional

import typer
import uvicorn

from . import app, console, resolve_settings


@app.command("serve")
def serve(
    endpoint: Optional[str] = typer.Option(None, help="OpenAI-compatible chat completions URL (or OPENAI_ENDPOINT)"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key (or OPENAI_API_KEY)"),
    model: Optional[str] = typer.Option(None, help="Model name sent with every probe"),
    interval: Optional[int] = typer.Option(None, min=0, help="Minutes between automatic detections, 0 disables"),
    max_history: Optional[int] = typer.Option(None, "--max-history", help="Number of results kept in history"),
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: Optional[int] = typer.Option(None, help="HTTP port"),
    reload: bool = typer.Option(False, help="Reload on code changes (development)"),
):
    """Start the relayprobe HTTP API."""
    settings = resolve_settings(
        endpoint=endpoint,
        api_key=api_key,
        model=model,
        interval=interval,
        max_history=max_history,
        port=port,
    )

    # The app builds its service from the environment at startup.
    os.environ.update(settings.to_env())

    console.print(f"[green]Starting relayprobe on http://{host}:{settings.port}[/green]")
    console.print(f"Endpoint: {settings.endpoint}  Model: {settings.model}")
    if settings.interval > 0:
        console.print(f"Automatic detection every {settings.interval} minutes")

    uvicorn.run(
        "relayprobe.daemon.app:app",
        host=host,
        port=settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )
