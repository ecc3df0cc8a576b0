from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from .bootstrap import build_app
from .core.errors import InvalidRequestError
from .core.outcomes import Failure
from .services.cost_estimator import ADDITIONAL_FACTORS, estimate_cost

app = typer.Typer(add_completion=False)
console = Console()

DEFAULT_CONFIG = Path("config/default.yaml")


def _print_failure(failure: Failure) -> None:
    console.print(f"[bold red]{failure.message}[/bold red] [dim]({failure.kind.value})[/dim]")
    for tip in failure.suggestions:
        console.print(f"  • {tip}")


def _chat_loop(ctx: Dict[str, Any], api_key: Optional[str]) -> None:
    assistant = ctx["assistant"]

    console.print("LegalEase chat. Informational only, not legal advice. Type /help for commands.")
    while True:
        try:
            user_input = input("LegalEase> ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print("\nBye.")
            return

        if not user_input:
            continue

        if user_input in ("/exit", "/quit"):
            console.print("Bye.")
            return

        if user_input == "/help":
            console.print("Commands: /help, /models, /exit, /quit")
            continue

        if user_input == "/models":
            console.print(", ".join(ctx["orchestrator"].policy.models))
            continue

        result = assistant.ask(user_input, api_key=api_key)
        if isinstance(result, Failure):
            _print_failure(result)
            continue
        console.print(Markdown(result.response))
        console.print(f"[dim]{result.model} · attempt {result.attempt}[/dim]")


@app.command()
def chat(
    config: Path = typer.Option(DEFAULT_CONFIG, help="Path to the YAML config."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Gemini API key (defaults to configured secrets)."),
    provider: Optional[str] = typer.Option(None, help="Override provider.name (gemini or echo)."),
):
    """Ask legal questions interactively."""
    ctx = build_app(config, provider=provider)
    try:
        _chat_loop(ctx, api_key)
    finally:
        ctx["transport"].close()


def _analyze(ctx: Dict[str, Any], content: str, api_key: Optional[str]) -> None:
    try:
        result = ctx["assistant"].analyze_document(content, api_key=api_key)
    except InvalidRequestError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=2)

    if isinstance(result, Failure):
        _print_failure(result)
        raise typer.Exit(code=1)

    if result.truncated:
        console.print(f"[yellow]Only the first {ctx['assistant'].max_document_chars} characters were analyzed.[/yellow]")
    console.print(Markdown(result.summary))
    for title, items in (("Risks", result.risks), ("Recommendations", result.recommendations)):
        console.print(f"[bold]{title}[/bold]")
        for item in items:
            console.print(f"  • {item}")
    console.print(f"[dim]{result.model} · attempt {result.attempt}[/dim]")


@app.command()
def analyze(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Text document to analyze."),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Path to the YAML config."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Gemini API key (defaults to configured secrets)."),
    provider: Optional[str] = typer.Option(None, help="Override provider.name (gemini or echo)."),
):
    """Analyze a legal document and print a brief summary."""
    ctx = build_app(config, provider=provider)
    content = file.read_text(encoding="utf-8", errors="replace")
    try:
        _analyze(ctx, content, api_key)
    finally:
        ctx["transport"].close()


@app.command()
def estimate(
    case_type: str = typer.Argument(..., help="e.g. employment, divorce, small-claims."),
    location: str = typer.Option("suburban", help="urban, suburban or rural."),
    complexity: str = typer.Option("moderate", help="simple, moderate or complex."),
    urgency: str = typer.Option("standard", help="standard, urgent or emergency."),
    experience: str = typer.Option("mid", help="junior, mid, senior or partner."),
    factor: List[str] = typer.Option([], "--factor", help=f"Repeatable: {', '.join(ADDITIONAL_FACTORS)}."),
):
    """Estimate legal fees for a case. No model call is made."""
    try:
        est = estimate_cost(case_type, location, complexity, urgency=urgency, experience=experience, factors=factor)
    except InvalidRequestError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=2)

    table = Table(title=f"{est.complexity} case · {est.timeframe}")
    table.add_column("Item")
    table.add_column("Amount", justify="right")
    lo, hi = est.lawyer_fees
    table.add_row("Lawyer fees", f"${lo:,} - ${hi:,}")
    table.add_row("Court fees", f"${est.court_fees:,}")
    for name, amount in est.additional_costs:
        table.add_row(name, f"${amount:,}")
    lo, hi = est.total
    table.add_row("[bold]Total[/bold]", f"[bold]${lo:,} - ${hi:,}[/bold]")
    console.print(table)
    for line in est.breakdown:
        console.print(f"  • {line}")
    console.print("[dim]Estimate only. Actual fees vary by lawyer and case.[/dim]")


@app.command()
def serve(
    config: Path = typer.Option(DEFAULT_CONFIG, help="Path to the YAML config."),
    host: str = "127.0.0.1",
    port: int = 8000,
    provider: Optional[str] = typer.Option(None, help="Override provider.name (gemini or echo)."),
):
    """Run the web API."""
    from .web.app import run

    run(config=config, host=host, port=port, provider=provider)
