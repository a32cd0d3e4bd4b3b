"""
Rich-based terminal dashboard for probe results.

All formatting helpers live in ``probe.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import List, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from probe.stats import format_rate, format_size, format_with_thousands

console = Console()


# ---------------------------------------------------------------------------
# Histogram helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def create_histogram(values: List[float], height: int = 5) -> str:
    """Return a single-line Unicode bar-chart."""
    if not values:
        return "No data"

    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    norm = [(v - lo) / span * height for v in values]
    return "".join(_BARS[min(int(n * (len(_BARS) - 1) / height), len(_BARS) - 1)] for n in norm)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Speed Probe[/bold cyan]\n"
            "[dim]Single-stream download throughput with early plateau stop[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_probe_result(url: str, result, color: str = "green") -> None:  # noqa: ANN001 (SpeedtestResult)
    """Print one probe result panel."""
    table = Table(title=url, box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Peak Speed", f"[bold {color}]{format_rate(result.max_rate_mbs)}[/bold {color}]")
    table.add_row("Data Transferred", format_size(result.downloaded_bytes))
    table.add_row("Duration", f"{format_with_thousands(result.elapsed_ms)} ms")
    table.add_row("Stopped By", result.stop_reason)
    console.print(table)

    if result.samples:
        console.print(
            Panel(
                f"[{color}]{create_histogram(result.samples)}[/{color}]\n"
                f"[dim]Min: {min(result.samples):.1f} MB/s  "
                f"Max: {max(result.samples):.1f} MB/s[/dim]",
                title="Speed Per Second",
            )
        )


def print_summary(rows: List[Tuple[str, object]]) -> None:
    """Print a table of ``(url, result_or_error)`` pairs."""
    table = Table(title="Summary", box=box.ROUNDED)
    table.add_column("URL", style="bold", overflow="fold")
    table.add_column("Speed", justify="right")
    table.add_column("Data", justify="right")
    table.add_column("Time", justify="right")

    for url, outcome in rows:
        if isinstance(outcome, Exception):
            table.add_row(url, "[red]failed[/red]", "-", "-")
            continue
        table.add_row(
            url,
            format_rate(outcome.max_rate_mbs),
            format_size(outcome.downloaded_bytes),
            f"{outcome.elapsed_ms / 1000:.1f} s",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages a ``rich`` progress bar while a probe runs."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = None

    def start(self, description: str) -> None:
        self.progress.start()
        self._task_id = self.progress.add_task(description, total=100, speed="")

    def update(self, progress: float, rate_mbs: float = 0) -> None:
        if self._task_id is None:
            return
        speed_str = format_rate(rate_mbs) if rate_mbs > 0 else "..."
        self.progress.update(self._task_id, completed=progress * 100, speed=speed_str)

    def stop(self) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=100)
            self._task_id = None
        self.progress.stop()
