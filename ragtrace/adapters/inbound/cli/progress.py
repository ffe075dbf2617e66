"""Rich rendering of a run trace for the CLI.

The same renderable serves live streaming (refreshed by ``rich.live.Live``
after every reducer update) and replay of a persisted run.
"""

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ....client.reducer import TraceState
from ....core.domain import StepStatus

# Status icons and colors
STATUS_STYLE = {
    StepStatus.PENDING: ("○", "dim"),
    StepStatus.RUNNING: ("◐", "yellow"),
    StepStatus.DONE: ("●", "green"),
    StepStatus.ERROR: ("✖", "red"),
}

MAX_SOURCE_PREVIEW = 120


def render_steps(state: TraceState) -> Table:
    """Steps in first-seen order with their status and detail."""
    table = Table.grid(padding=(0, 1))
    table.add_column(width=2)
    table.add_column(style="bold")
    table.add_column(style="dim")
    for step in state.steps:
        icon, color = STATUS_STYLE.get(step.status, ("?", "white"))
        table.add_row(Text(icon, style=color), step.title or step.key, step.detail or "")
    return table


def render_sources(state: TraceState) -> Table | None:
    sources = state.answer.sources
    if not sources:
        return None

    table = Table(title="Sources", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("#", justify="right", width=3)
    table.add_column("Document", width=10)
    table.add_column("Similarity", justify="right", width=10)
    table.add_column("Content")
    for index, source in enumerate(sources, start=1):
        content = " ".join(source.content.split())
        if len(content) > MAX_SOURCE_PREVIEW:
            content = content[: MAX_SOURCE_PREVIEW - 3] + "..."
        similarity = f"{source.similarity:.3f}" if source.similarity is not None else "-"
        table.add_row(str(index), str(source.document_id or "-"), similarity, content)
    return table


def render_trace(state: TraceState, title: str = "RagTrace") -> RenderableType:
    """Full view: steps, answer so far, sources and errors."""
    parts: list[RenderableType] = [render_steps(state)]

    if state.answer.content:
        parts.append(
            Panel(Markdown(state.answer.content), title="[bold]Answer[/]", border_style="blue")
        )

    sources = render_sources(state)
    if sources is not None:
        parts.append(sources)

    for message in state.errors:
        parts.append(Text(f"Error: {message}", style="bold red"))

    return Panel(Group(*parts), title=f"[bold]{title}[/]", border_style="cyan")
