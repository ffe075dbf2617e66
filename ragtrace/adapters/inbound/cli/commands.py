"""CLI interface for RagTrace."""

import asyncio
import json
from contextlib import aclosing

import requests
import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from ....client.http_client import RagTraceClient
from ....client.reducer import TraceReducer, TraceState
from ....config.logging import setup_logging
from ....config.settings import settings
from ....core.domain import HistoryItem
from ....core.services.pipeline import AskRequest
from ...common.exception_handler import format_exception_json
from .progress import render_trace

app = typer.Typer(
    name="ragtrace",
    help="RagTrace - traced retrieval-augmented question answering",
    add_completion=False,
)

console = Console(legacy_windows=False)


def handle_cli_error(exc: Exception) -> None:
    """Handle and display errors in CLI with structured format.

    In debug mode, shows full JSON error details.
    In normal mode, shows a user-friendly message with error code.
    """
    error_data = format_exception_json(exc, include_trace=settings.debug)

    if settings.debug:
        console.print(
            Panel(
                json.dumps(error_data, indent=2, ensure_ascii=False),
                title="[bold red]Error Details[/]",
                border_style="red",
            )
        )
        return

    error_code = error_data["error"].get("code", "UNKNOWN")
    console.print(f"\n[red]Error [{error_code}]:[/] {error_data['error']['message']}")
    console.print(f"[dim]Type: {error_data['error']['type']}[/]")
    if error_data["error"].get("retryable"):
        console.print("[yellow]This failure is transient; try again shortly.[/]")
    console.print("[dim]Set DEBUG=true for full details[/]")


def _parse_history(history: list[str]) -> list[HistoryItem]:
    """Turn ``role:content`` options into history items."""
    items = []
    for entry in history:
        role, sep, content = entry.partition(":")
        if not sep or role not in ("user", "assistant"):
            raise typer.BadParameter(f"Expected 'user:...' or 'assistant:...', got {entry!r}")
        items.append(HistoryItem(role=role, content=content.strip()))
    return items


async def _ask_in_process(request: AskRequest, live: Live) -> TraceState:
    """Run the pipeline locally and feed its wire output to a reducer."""
    from ....composition.container import get_pipeline

    pipeline = get_pipeline()
    state = pipeline.start(request)
    reducer = TraceReducer()
    async with aclosing(pipeline.stream(state)) as lines:
        async for line in lines:
            live.update(render_trace(reducer.feed(line)))
    return reducer.close()


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer from the indexed documents"),
    topk: int | None = typer.Option(None, "--topk", "-k", help="Fragments to retrieve (1-20)"),
    threshold: float | None = typer.Option(None, "--threshold", "-t", help="Minimum similarity"),
    history: list[str] = typer.Option(
        [], "--history", "-H", help="Prior turn as role:content (repeatable)"
    ),
    server: str | None = typer.Option(
        None, "--server", "-s", help="Base URL of a running API; runs in-process when omitted"
    ),
) -> None:
    """Ask a question and watch each pipeline step live."""
    setup_logging(level="WARNING", json_format=settings.log_json)
    items = _parse_history(history)

    try:
        with Live(render_trace(TraceState()), console=console, refresh_per_second=12) as live:
            if server:
                client = RagTraceClient(base_url=server, timeout=settings.generation_timeout_seconds)
                final = client.ask(
                    question,
                    history=[item.to_message() for item in items],
                    topk=topk,
                    threshold=threshold,
                    on_update=lambda state: live.update(render_trace(state)),
                )
            else:
                request = AskRequest(
                    question=question, history=items, topk=topk, threshold=threshold
                )
                final = asyncio.run(_ask_in_process(request, live))
            live.update(render_trace(final))
    except requests.HTTPError as exc:
        console.print(f"[red]Server rejected the request:[/] {exc.response.text}")
        raise typer.Exit(1)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    if final.errors:
        raise typer.Exit(1)


@app.command()
def runs(
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number"),
    page_size: int = typer.Option(20, "--page-size", min=1, max=100, help="Runs per page"),
    server: str | None = typer.Option(None, "--server", "-s", help="Base URL of a running API"),
) -> None:
    """List recorded runs, newest first."""
    try:
        if server:
            result = RagTraceClient(base_url=server).list_runs(page, page_size)
        else:
            from ....composition.container import get_run_store

            result = get_run_store().list_runs(page, page_size)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    table = Table(
        title=f"Runs (page {result.page}, {result.total} total)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("ID", justify="right")
    table.add_column("Created")
    table.add_column("Question")
    table.add_column("Matched", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Answered", justify="center")

    for record in result.items:
        table.add_row(
            str(record.id),
            record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            record.question if len(record.question) <= 60 else record.question[:57] + "...",
            str(record.matched_count),
            f"{record.duration_ms} ms",
            "[green]yes[/]" if record.answer else "[dim]no[/]",
        )

    console.print(table)
    if not result.items:
        console.print("[dim]No runs recorded yet. Try 'ragtrace ask \"...\"'.[/]")


@app.command()
def show(
    run_id: int = typer.Argument(..., help="ID of the run to replay"),
    server: str | None = typer.Option(None, "--server", "-s", help="Base URL of a running API"),
) -> None:
    """Replay a recorded run's trace, answer and sources."""
    try:
        if server:
            record = RagTraceClient(base_url=server).get_run(run_id)
        else:
            from ....composition.container import get_run_store

            record = get_run_store().get_run(run_id)
    except Exception as exc:
        handle_cli_error(exc)
        raise typer.Exit(1)

    console.print(f"[bold]Question:[/] {record.question}")
    console.print(
        f"[dim]topk={record.topk} threshold={record.threshold} "
        f"matched={record.matched_count} duration={record.duration_ms} ms[/]"
    )
    console.print(render_trace(TraceState.from_run(record), title=f"Run {record.id}"))


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Start the HTTP API with uvicorn."""
    import uvicorn

    console.print(f"[green]Starting RagTrace API on http://{host}:{port}[/] [dim](docs at /docs)[/]")
    uvicorn.run(
        "ragtrace.adapters.inbound.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
