"""Rich live display: one panel per fetch source, updated as events arrive.

The orchestrator never knows whether a display is attached. It puts
FetchEvents into a queue; this module reads them and redraws.

Usage:
    event_queue = asyncio.Queue()
    display = LiveDisplay(FETCH_SOURCES)

    with display.make_live() as live:
        pipeline = asyncio.create_task(runtime.handle_alert(alert, event_queue))
        consumer = asyncio.create_task(display.consume(event_queue, live))
        result = await pipeline
        await event_queue.put(None)  # sentinel
        await consumer
"""

import asyncio
from dataclasses import dataclass, field

from rich.columns import Columns
from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from schemas.events import EventType, FetchEvent

MAX_PANEL_LINES = 3

_ICONS = {
    "waiting": "[dim]○[/dim]",
    "running": "[bold yellow]●[/bold yellow]",
    "complete": "[bold green]✓[/bold green]",
    "error": "[bold red]✗[/bold red]",
}
_BORDERS = {
    "waiting": "dim",
    "running": "yellow",
    "complete": "green",
    "error": "red",
}


@dataclass
class SourceState:
    """What one source's panel currently shows."""

    name: str
    status: str = "waiting"  # waiting | running | complete | error
    elapsed_ms: float = 0.0
    messages: list[str] = field(default_factory=list)


class LiveDisplay:
    """Renders fetch progress and consumes the event queue.

    Events for sources it was not created with are ignored.
    """

    def __init__(self, sources: tuple[str, ...] | list[str]) -> None:
        self.states = {name: SourceState(name=name) for name in sources}
        self._order = list(sources)

    def make_live(self) -> Live:
        return Live(self._render(), refresh_per_second=12, transient=False)

    async def consume(self, queue: asyncio.Queue, live: Live) -> None:
        """Apply events from the queue until the None sentinel arrives."""
        while True:
            event = await queue.get()
            if event is None:
                break
            self.apply(event)
            live.update(self._render())

    def apply(self, event: FetchEvent) -> None:
        state = self.states.get(event.source)
        if state is None:
            return

        state.elapsed_ms = event.timestamp_ms
        if event.event_type == EventType.STARTED:
            state.status = "running"
            state.messages.append(event.message)
        elif event.event_type == EventType.COMPLETE:
            state.status = "complete"
            state.messages.append(f"✓ {event.message}")
        elif event.event_type == EventType.ERROR:
            state.status = "error"
            state.messages.append(f"✗ {event.message}")

        state.messages = state.messages[-MAX_PANEL_LINES:]

    def _render_panel(self, state: SourceState) -> Panel:
        elapsed = f"[dim][{state.elapsed_ms / 1000:.2f}s][/dim]"
        lines = [Text.from_markup(f"{elapsed}  {_ICONS.get(state.status, '○')}")]
        for msg in state.messages:
            # Error messages can contain brackets; keep them literal.
            lines.append(Text(f"  {msg}", style="dim"))

        return Panel(
            Group(*lines),
            title=f"[bold]{state.name}[/bold]",
            border_style=_BORDERS.get(state.status, "dim"),
            width=36,
        )

    def _render(self) -> Columns:
        return Columns([self._render_panel(self.states[name]) for name in self._order])
