"""relayprobe CLI: modular command package."""

import typer
from rich.console import Console

from .. import __version__
from ..utils.settings import Settings

# ── Shared state ────────────────────────────────────────────────────────────

app = typer.Typer(help="relayprobe - check whether an OpenAI-compatible endpoint is genuine or a relay")
console = Console()


# ── Shared helpers ──────────────────────────────────────────────────────────

def resolve_settings(
    *,
    endpoint: str | None,
    api_key: str | None,
    model: str | None,
    interval: int | None = None,
    max_history: int | None = None,
    port: int | None = None,
) -> Settings:
    """Command-line values win over the environment (and .env)."""
    settings = Settings.from_env()
    if endpoint:
        settings.endpoint = endpoint.strip()
    if api_key:
        settings.api_key = api_key.strip()
    if model:
        settings.model = model.strip()
    if interval is not None:
        settings.interval = interval
    if max_history is not None:
        settings.max_history = max_history
    if port is not None:
        settings.port = port

    if not settings.endpoint:
        console.print("[red]An API endpoint is required: pass --endpoint or set OPENAI_ENDPOINT.[/red]")
        raise typer.Exit(1)
    if not settings.api_key:
        console.print("[red]An API key is required: pass --api-key or set OPENAI_API_KEY.[/red]")
        raise typer.Exit(1)
    return settings


@app.command("version")
def version():
    """Print the relayprobe version."""
    console.print(__version__)


# Command modules register themselves on `app`.
from . import daemon_cmds, detect_cmds  # noqa: E402,F401

__all__ = ["app", "console", "resolve_settings"]
