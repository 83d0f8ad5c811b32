"""Command-line entry points for the pulse agent."""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich import print as rprint
from rich.markup import escape

from .client import DEFAULT_BASE_URL, request_generation
from .errors import GenerationFailure, TransportFailure
from .models import PipelineRun, PipelineStep
from .workflow import format_markdown, run_pipeline

app = typer.Typer(
    help="Turn a content brief into a newsletter, blog article, and follow-up ideas."
)


def _build_payload(
    topic: Optional[str],
    tone: Optional[str],
    audience: Optional[str],
    cadence: Optional[str],
    style: Optional[str],
    region: Optional[str],
    notes: Optional[str],
    newsletter: bool,
    blog: bool,
) -> Dict[str, Any]:
    """Only pass fields the user set; the normalizer fills the rest."""
    payload: Dict[str, Any] = {
        "topic": topic,
        "tone": tone,
        "audience": audience,
        "cadence": cadence,
        "writingStyle": style,
        "focusRegion": region,
        "extraNotes": notes,
    }
    payload = {key: value for key, value in payload.items() if value is not None}
    payload["includeNewsletter"] = newsletter
    payload["includeBlog"] = blog
    return payload


def _print_step(step: PipelineStep) -> None:
    colour = "green" if step.status == "complete" else "cyan"
    rprint(f"[{colour}]{step.label}: {step.status}[/{colour}]")


def _write_output(out_path: Path, run: PipelineRun) -> None:
    if out_path.suffix.lower() == ".json":
        out_path.write_text(
            json.dumps(run.to_payload(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
    else:
        out_path.write_text(format_markdown(run.result), encoding="utf-8")


def _emit(run: PipelineRun, out: Optional[Path]) -> None:
    if out:
        _write_output(out, run)
        rprint(f"[cyan]Wrote output to {out}[/cyan]")
    else:
        rprint(escape(format_markdown(run.result)))


@app.callback(invoke_without_command=True)
def run(
    ctx: typer.Context,
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Focus topic."),
    tone: Optional[str] = typer.Option(None, "--tone", help="Tone, e.g. Analytical."),
    audience: Optional[str] = typer.Option(None, "--audience", "-a", help="Target readers."),
    cadence: Optional[str] = typer.Option(None, "--cadence", help="e.g. 'Weekly Pulse'."),
    style: Optional[str] = typer.Option(None, "--style", help="Writing style."),
    region: Optional[str] = typer.Option(None, "--region", help="Focus region."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form editor notes."),
    newsletter: bool = typer.Option(
        True, "--newsletter/--no-newsletter", help="Draft the newsletter edition."
    ),
    blog: bool = typer.Option(True, "--blog/--no-blog", help="Draft the long-form article."),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Optional path to write output (.md or .json). Defaults to stdout (Markdown).",
    ),
):
    """
    Default command: run one brief locally through brief -> intel -> compose.

    When a subcommand (e.g., remote) is invoked, this callback exits early.
    """
    if ctx.invoked_subcommand:
        return

    payload = _build_payload(topic, tone, audience, cadence, style, region, notes, newsletter, blog)
    try:
        result = asyncio.run(run_pipeline(payload, observer=_print_step))
    except GenerationFailure as exc:
        rprint(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1)
    _emit(result, out)


@app.command("remote")
def remote_command(
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Focus topic."),
    tone: Optional[str] = typer.Option(None, "--tone", help="Tone, e.g. Analytical."),
    audience: Optional[str] = typer.Option(None, "--audience", "-a", help="Target readers."),
    cadence: Optional[str] = typer.Option(None, "--cadence", help="e.g. 'Weekly Pulse'."),
    style: Optional[str] = typer.Option(None, "--style", help="Writing style."),
    region: Optional[str] = typer.Option(None, "--region", help="Focus region."),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form editor notes."),
    newsletter: bool = typer.Option(True, "--newsletter/--no-newsletter"),
    blog: bool = typer.Option(True, "--blog/--no-blog"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, "--url", help="Pulse agent service URL."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write output (.md or .json)."),
):
    """Send the brief to a running service instead of generating locally."""
    payload = _build_payload(topic, tone, audience, cadence, style, region, notes, newsletter, blog)
    try:
        result = asyncio.run(request_generation(payload, base_url=base_url))
    except TransportFailure as exc:
        rprint(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=2)
    except GenerationFailure as exc:
        rprint(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1)
    _emit(result, out)


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("PULSE_HOST", "0.0.0.0"), help="Bind address."),
    port: int = typer.Option(int(os.getenv("PULSE_PORT", "8000")), help="Bind port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
):
    """Start the HTTP service."""
    import uvicorn

    uvicorn.run("pulse_agent.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
