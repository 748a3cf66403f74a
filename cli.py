"""RCA Pilot command-line runner.

Runs the pipeline against an Alertmanager alert file and renders live
per-source fetch panels in the terminal using Rich, then prints the
analysis or postmortem.

Usage:
    python cli.py analyze fixtures/alert_firing.json
    python cli.py analyze fixtures/alert_resolved.json
    python cli.py analyze --triage fixtures/alert_firing.json

The file may hold a full webhook envelope or a single alert.
"""

import asyncio
import json
import logging
import pathlib

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from analysis.analyzer import AnalysisError
from core.config import ConfigError, load_settings
from core.orchestrator import FETCH_SOURCES
from core.runtime import IncidentRuntime, build_runtime
from display.live import LiveDisplay
from postmortem.generator import PostmortemGenerationError
from schemas.alert import AlertItem, AlertManagerPayload
from schemas.result import AnalysisResult, Postmortem

console = Console()


def load_alerts(path: pathlib.Path) -> list[AlertItem]:
    """Read a webhook envelope or a bare alert from a JSON file."""
    data = json.loads(path.read_text())
    if "alerts" in data:
        return AlertManagerPayload.model_validate(data).alerts
    return [AlertItem.model_validate(data)]


# ── Rendering ─────────────────────────────────────────────────────────────────

def _fmt(value: float | None, unit: str = "", scale: float = 1.0) -> str:
    return "[dim]n/a[/dim]" if value is None else f"{value * scale:.2f}{unit}"


def _print_analysis(result: AnalysisResult) -> None:
    console.print()
    console.print(Panel(
        Text(result.root_cause),
        title=f"[bold]{result.alert_name}[/bold] on [cyan]{result.service_name}[/cyan]",
        subtitle=f"[dim]{result.severity} · confidence {result.confidence}[/dim]",
        border_style="bright_black",
    ))

    if result.metrics is not None:
        m = result.metrics
        table = Table(title="Golden Signals", border_style="bright_black")
        table.add_column("Signal", style="bold")
        table.add_column("Incident", justify="right")
        table.add_column("Baseline", justify="right")
        table.add_row("p99 latency", _fmt(m.latency_p99, "ms"), _fmt(m.baseline_latency, "ms"))
        table.add_row("avg latency", _fmt(m.latency_avg, "ms"), "")
        table.add_row("error rate", _fmt(m.error_rate, "%", 100), _fmt(m.baseline_error_rate, "%", 100))
        table.add_row("rps", _fmt(m.rps), _fmt(m.baseline_rps))
        console.print(table)

    console.print(f"[dim]{len(result.commits)} commit(s) considered · analysis {result.id}[/dim]\n")


def _print_postmortem(postmortem: Postmortem) -> None:
    console.print()
    console.print(Markdown(postmortem.markdown))
    console.print(f"[dim]postmortem {postmortem.id}[/dim]\n")


# ── Pipeline ──────────────────────────────────────────────────────────────────

async def _run_alert(
    runtime: IncidentRuntime, alert: AlertItem, live_panels: bool
) -> AnalysisResult | Postmortem | None:
    if not live_panels:
        return await runtime.handle_alert(alert)

    display = LiveDisplay(FETCH_SOURCES)
    event_queue: asyncio.Queue = asyncio.Queue()

    with display.make_live() as live:
        pipeline = asyncio.create_task(runtime.handle_alert(alert, event_queue))
        consumer = asyncio.create_task(display.consume(event_queue, live))
        try:
            result = await pipeline
        finally:
            await event_queue.put(None)  # sentinel: tell consumer to stop
            await consumer
    return result


async def _run(path: pathlib.Path, triage: bool, live_panels: bool) -> None:
    alerts = load_alerts(path)
    runtime = build_runtime(load_settings())

    for alert in alerts:
        console.rule(f"[bold]{alert.label('alertname') or 'alert'}[/bold]")
        console.print(f"  service  [cyan]{alert.service_name() or '-'}[/cyan]")
        console.print(f"  status   [cyan]{alert.status}[/cyan]")
        console.print()

        if triage:
            result = await runtime.analyzer.analyze(alert)
        else:
            result = await _run_alert(runtime, alert, live_panels)

        if result is None:
            console.print("[yellow]Skipped: no service label or unknown status.[/yellow]")
        elif isinstance(result, Postmortem):
            _print_postmortem(result)
        else:
            _print_analysis(result)


# ── Commands ──────────────────────────────────────────────────────────────────

@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    envvar="LOG_LEVEL",
    show_default=True,
    help="Logging level for the console handler.",
)
def cli(log_level: str) -> None:
    """Incident root-cause analysis from Alertmanager alerts."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@cli.command()
@click.argument("alert_json", type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path))
@click.option("--triage", is_flag=True, help="Analyze from the alert alone, without fetching context.")
@click.option("--no-live", is_flag=True, help="Disable the live fetch panels.")
def analyze(alert_json: pathlib.Path, triage: bool, no_live: bool) -> None:
    """Run the pipeline for every alert in ALERT_JSON."""
    try:
        asyncio.run(_run(alert_json, triage, live_panels=not no_live))
    except (ConfigError, AnalysisError, PostmortemGenerationError) as exc:
        raise click.ClickException(str(exc)) from exc
    except ValueError as exc:
        raise click.ClickException(f"Invalid alert file: {exc}") from exc


if __name__ == "__main__":
    cli()
