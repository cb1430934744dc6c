# rich-based TUI dashboard
# src/monitoring/dashboard_tui.py
"""
Terminal status dashboard.

A lightweight terminal UI (using `rich`) that subscribes to the monitoring
EventBus and renders:

- Macro status: name, state, uptime, last error, counters
- Running features with their latest state
- The last few feature errors

Status comes from a callable (usually MacroController.status) so the
dashboard never touches the managers directly.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .bus import EventBus
from .events import EventType, MonitoringEvent

StatusFn = Callable[[], Dict[str, Any]]


def _format_uptime(ms: float) -> str:
    seconds = int(ms // 1000)
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class StatusDashboard:
    """
    Live terminal dashboard bound to a monitoring.EventBus.

    Feature state changes and errors arrive as MonitoringEvents; the macro
    block is pulled from `status_fn` on every render.
    """

    def __init__(self, bus: EventBus, status_fn: Optional[StatusFn] = None, max_errors: int = 5) -> None:
        self._bus = bus
        self._status_fn = status_fn
        self._console = Console()
        self.feature_states: Dict[str, str] = {}
        self.errors: Deque[str] = deque(maxlen=max_errors)
        self._bus.subscribe(self._on_event)

    def close(self) -> None:
        self._bus.unsubscribe(self._on_event)

    # --------------------------------------------------------
    # Event handler
    # --------------------------------------------------------

    def _on_event(self, event: MonitoringEvent) -> None:
        et = event.event_type
        if et == EventType.FEATURE_STATE_CHANGE:
            self.feature_states[event.module] = event.payload.get("to", "?")
        elif et == EventType.FEATURE_STARTED:
            self.feature_states[event.module] = "STARTED"
        elif et == EventType.FEATURE_STOPPED:
            self.feature_states.pop(event.module, None)
        elif et == EventType.FEATURE_ERROR:
            self.errors.append(f"{event.module}: {event.message}")
        elif et == EventType.MACRO_DISABLED:
            self.errors.append(f"{event.module}: {event.message}")

    # --------------------------------------------------------
    # Rendering helpers
    # --------------------------------------------------------

    def _status(self) -> Dict[str, Any]:
        if self._status_fn is None:
            return {}
        return self._status_fn()

    def render_macro_panel(self) -> Panel:
        status = self._status()
        txt = Text()
        txt.append("Macro: ", style="bold")
        txt.append(f"{status.get('macro') or '<none>'}")
        if status.get("paused"):
            txt.append(" (paused)", style="yellow")
        txt.append("\nState: ", style="bold")
        txt.append(f"{status.get('state') or '-'}\n")
        txt.append("Uptime: ", style="bold")
        txt.append(f"{_format_uptime(status.get('uptime_ms', 0.0))}\n")
        txt.append("Last error: ", style="bold")
        txt.append(f"{status.get('last_error') or '-'}")

        counters = status.get("counters") or {}
        if counters:
            txt.append("\n")
            txt.append("  ".join(f"{k}={v}" for k, v in counters.items()), style="dim")
        border = "green" if status.get("running") else "cyan"
        return Panel(txt, title="Macro", border_style=border)

    def render_feature_table(self) -> Table:
        table = Table(show_header=True, header_style="bold magenta", expand=True)
        table.add_column("Feature", style="bold")
        table.add_column("State")
        if self.feature_states:
            for name, state in sorted(self.feature_states.items()):
                table.add_row(name, state)
        else:
            table.add_row("<none>", "-")
        return table

    def render_error_panel(self) -> Panel:
        table = Table.grid()
        table.add_column(justify="left")
        if self.errors:
            for line in self.errors:
                table.add_row(f"[red]{line}[/red]")
        else:
            table.add_row("[bold green]No errors recorded.[/bold green]")
        return Panel(table, title="Errors", border_style="red")

    def build_layout(self) -> Layout:
        layout = Layout()
        layout.split(
            Layout(name="top", size=7),
            Layout(name="middle", ratio=1),
        )
        layout["top"].update(self.render_macro_panel())
        layout["middle"].split_row(
            Layout(name="features"),
            Layout(name="errors"),
        )
        layout["features"].update(Panel(self.render_feature_table(), title="Features", border_style="yellow"))
        layout["errors"].update(self.render_error_panel())
        return layout

    # --------------------------------------------------------
    # Main loop
    # --------------------------------------------------------

    def run(self, refresh_per_second: float = 4.0, should_stop: Callable[[], bool] = lambda: False) -> None:
        """
        Run the TUI until `should_stop()` returns True.

        This blocks the current thread; the tick loop runs elsewhere.
        """
        refresh_delay = 1.0 / max(refresh_per_second, 0.1)
        with Live(self.build_layout(), console=self._console, refresh_per_second=refresh_per_second) as live:
            while not should_stop():
                live.update(self.build_layout())
                time.sleep(refresh_delay)


__all__ = ["StatusDashboard"]
