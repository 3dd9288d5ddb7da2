"""One-shot detection command."""

import json
import sys
from typing import Optional

import typer
from rich.table import Table

from ..detector import Detector, Result
from ..detector.probes import PROBE_LABELS
from ..utils.logging_config import setup_logging
from . import app, console, resolve_settings

EXIT_RELAY = 2


def _mark(ok: bool) -> str:
    return "[green]PASS[/green]" if ok else "[red]FAIL[/red]"


def render_result(result: Result) -> Table:
    table = Table(title=f"Detection for {result.endpoint}")
    table.add_column("Check")
    table.add_column("Result")
    table.add_column("Detail")

    for outcome in result.outcomes:
        table.add_row(
            PROBE_LABELS.get(outcome.name, outcome.name),
            _mark(outcome.passed),
            outcome.error or "",
        )

    table.add_row(
        "Tokens",
        "",
        f"local={result.local_token_count} completion={result.api_token_count} total={result.api_total_tokens}",
    )
    verdict = "[green]genuine API[/green]" if result.is_real_api else "[red]relay suspected[/red]"
    table.add_row("[bold]Verdict[/bold]", verdict, result.timestamp.isoformat())
    return table


@app.command("detect")
def detect(
    endpoint: Optional[str] = typer.Option(None, help="OpenAI-compatible chat completions URL (or OPENAI_ENDPOINT)"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key (or OPENAI_API_KEY)"),
    model: Optional[str] = typer.Option(None, help="Model name sent with every probe"),
    raw: bool = typer.Option(False, "--raw", help="Keep the last raw response body in the result"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """Run one detection cycle and print the verdict."""
    settings = resolve_settings(endpoint=endpoint, api_key=api_key, model=model)
    # stdout carries the table or JSON document.
    setup_logging(settings.log_level, stream=sys.stderr)
    config = settings.detector_config().model_copy(update={"save_raw_response": raw})

    detector = Detector(config)
    try:
        with console.status("Probing endpoint..."):
            result = detector.detect_once()
    finally:
        detector.close()

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        console.print(render_result(result))

    if not result.is_real_api:
        raise typer.Exit(EXIT_RELAY)
