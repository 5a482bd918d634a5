"""CLI for transcript-lens."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from transcript_lens import __version__

app = typer.Typer(
    name="transcript-lens",
    help="Parse AI coding-assistant session logs into a unified message model.",
    no_args_is_help=True,
)
console = Console()

# Longest message preview shown with --messages
PREVIEW_CHARS = 80


def version_callback(value: bool) -> None:
    if value:
        console.print(f"transcript-lens {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log skipped lines and parser decisions")
    ] = False,
) -> None:
    """Parse AI coding-assistant session logs."""
    from transcript_lens.config import configure_logging

    configure_logging("DEBUG" if verbose else None)


def _read_session_file(path: Path) -> str:
    if not path.is_file():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8", errors="replace")


def _preview(text: str) -> str:
    flat = " ".join(text.split())
    if len(flat) <= PREVIEW_CHARS:
        return flat
    return flat[: PREVIEW_CHARS - 3] + "..."


@app.command()
def parse(
    path: Annotated[Path, typer.Argument(help="Session JSONL file")],
    provider: Annotated[
        str | None, typer.Option("--provider", "-p", help="Provider name (auto-detect if omitted)")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output the parsed session as JSON")] = False,
    show_messages: Annotated[
        bool, typer.Option("--messages", "-m", help="List every parsed message")
    ] = False,
) -> None:
    """Parse a session file and show a summary."""
    from transcript_lens.analysis import summarize_session
    from transcript_lens.exceptions import SessionParseError, UnsupportedProviderError
    from transcript_lens.parsers import parse_session

    content = _read_session_file(path)

    try:
        session = parse_session(content, provider=provider)
    except (SessionParseError, UnsupportedProviderError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1) from exc

    if json_output:
        console.print_json(data=session.to_dict(include_messages=show_messages))
        return

    summary = summarize_session(session)
    table = Table(title=f"{summary['provider']} session {summary['sessionId']}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Start", summary["startTime"])
    table.add_row("End", summary["endTime"])
    table.add_row("Duration", f"{summary['durationMs'] / 1000:.1f}s")
    table.add_row("Lines", f"{summary['lineCount']} ({summary['skippedLineCount']} skipped)")
    table.add_row("Messages", str(summary["messageCount"]))
    for message_type, count in summary["messageTypes"].items():
        table.add_row(f"  {message_type}", str(count))
    table.add_row("Tool calls", f"{summary['toolCalls']} ({summary['unansweredToolCalls']} unanswered)")
    table.add_row("Interruptions", str(summary["interruptions"]))
    console.print(table)

    if show_messages:
        for message in session.messages:
            label = message.type
            if message.tool_uses:
                label = f"{label}:{message.tool_uses[0].get('name', '?')}"
            console.print(
                f"[dim]{message.timestamp.isoformat()}[/dim] [cyan]{label}[/cyan] {_preview(message.text)}",
                highlight=False,
            )


@app.command()
def detect(
    path: Annotated[Path, typer.Argument(help="Session JSONL file")],
) -> None:
    """Print the provider detected for a session file."""
    from transcript_lens.parsers import parser_registry

    content = _read_session_file(path)
    parser = parser_registry.detect_parser(content)
    if parser is None:
        console.print("[yellow]No matching parser found[/yellow]")
        raise typer.Exit(1)
    console.print(parser.provider_name)


@app.command()
def providers(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List registered providers."""
    from transcript_lens.parsers import parser_registry

    names = parser_registry.registered_providers()
    if json_output:
        console.print_json(data={"providers": names})
    else:
        for name in names:
            console.print(f"[cyan]{name}[/cyan]")


if __name__ == "__main__":
    app()
