"""Rich-based progress reporting and log setup."""
from __future__ import annotations

import logging
import sys
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from ..core.models import FileState, ProgressEvent, RecordStatus, RunStats


LOG_FORMAT = "%(message)s"


def setup_logging(verbose: bool = False, quiet: bool = False, console: Optional[Console] = None) -> None:
    """Route the standard logging tree through a RichHandler on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="[%X]", handlers=[handler], force=True)


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def describe_stats(stats: RunStats) -> str:
    """One-line counter summary used as the live progress description."""
    return (
        f"scanned {stats.scanned} • imported {stats.imported} • "
        f"skipped {stats.skipped} • failed {stats.failed}"
    )


class FilesPerSecondColumn(ProgressColumn):
    """Files per second, from Rich's speed estimate or the overall average."""

    def render(self, task: Task) -> Text:
        speed = task.speed
        if speed is None and task.elapsed and task.completed:
            speed = task.completed / task.elapsed
        if not speed:
            return Text("-- f/s", style="magenta")
        return Text(f"{speed:.1f} f/s", style="magenta")


class RichProgressReporter:
    """Progress reporter using Rich for terminal output.

    Consumes the engine's progress events on the main thread, showing a live
    spinner with running counters and one line per file. Quiet mode keeps
    only errors and the final summary.
    """

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        """Initialize the reporter.

        Args:
            verbose: Also print skipped files.
            quiet: Suppress per-file and informational output.
            console: Console to write to, stderr by default.
        """
        self._console = console or Console(stderr=True)
        self._verbose = verbose
        self._quiet = quiet
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    @property
    def console(self) -> Console:
        return self._console

    # --- Event consumption ---

    def consume(self, events: Iterable[ProgressEvent]) -> Optional[RunStats]:
        """Render events until the channel closes.

        Returns:
            The stats snapshot carried by the last event, None if there was none.
        """
        last: Optional[RunStats] = None
        self._start_progress()
        try:
            for event in events:
                last = event.stats
                self._advance(event)
                self.print_event(event)
        finally:
            self._stop_progress()
        return last

    def print_event(self, event: ProgressEvent) -> None:
        """Print the per-file line for an event."""
        if self._quiet:
            return
        if event.state is FileState.FAILED:
            self._console.print(f"[red]✗[/red] {event.path}: {event.error}")
        elif event.status is RecordStatus.SKIPPED:
            if self._verbose:
                self._console.print(f"[dim]- skipped {event.path}[/dim]")
        else:
            self._console.print(f"[green]✓[/green] {event.status.value} {event.path} → {event.dest_path}")

    def _start_progress(self) -> None:
        if self._quiet:
            return
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            TextColumn("[cyan]•"),
            FilesPerSecondColumn(),
            TextColumn("[cyan]•"),
            TimeElapsedColumn(),
            console=self._console,
            transient=True,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(describe_stats(RunStats()), total=None)

    def _advance(self, event: ProgressEvent) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.update(
                self._task_id,
                advance=1,
                description=describe_stats(event.stats),
            )

    def _stop_progress(self) -> None:
        if self._progress:
            self._progress.stop()
            self._progress = None
            self._task_id = None

    # --- Messages ---

    def info(self, message: str) -> None:
        if not self._quiet:
            self._console.print(f"[blue]ℹ[/blue] {message}")

    def error(self, message: str) -> None:
        """Print an error. Shown even when quiet."""
        self._console.print(f"[bold red]✗ {message}[/bold red]")

    # --- Tables ---

    def print_header(self, title: str) -> None:
        if not self._quiet:
            self._console.print(Panel.fit(title, style="bold cyan"))

    def print_config(self, config_items: dict) -> None:
        """Print the run settings, one row per option."""
        if self._quiet:
            return
        table = Table(title="Configuration", show_header=False)
        table.add_column("Option", style="cyan")
        table.add_column("Value")
        for option, value in config_items.items():
            table.add_row(option, str(value))
        self._console.print(table)

    def print_stats(self, stats: RunStats, elapsed_seconds: float = 0.0) -> None:
        """Print the run summary, quiet or not."""
        table = Table(title="Run Complete", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="green", justify="right")

        table.add_row("Files Scanned", str(stats.scanned))
        table.add_row("Imported", str(stats.imported))
        table.add_row("Skipped", str(stats.skipped))
        table.add_row("Failed", str(stats.failed), style="red" if stats.failed else None)
        table.add_row("Data Placed", format_bytes(stats.bytes_moved))

        if elapsed_seconds > 0:
            table.add_row("", "")
            table.add_row("Took", f"{elapsed_seconds:.1f}s")
            table.add_row("Processing Rate", f"{stats.scanned / elapsed_seconds:.1f} files/sec")

        self._console.print(table)

    def print_summary(self, title: str, counts: dict[str, int]) -> None:
        """Print a maintenance summary table, quiet or not."""
        table = Table(title=title, show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="green", justify="right")
        for key, value in counts.items():
            table.add_row(key.replace("_", " ").capitalize(), str(value))
        self._console.print(table)


class QuietProgressReporter:
    """Plain-text reporter for -q and non-interactive use: errors and summaries only."""

    def consume(self, events: Iterable[ProgressEvent]) -> Optional[RunStats]:
        last: Optional[RunStats] = None
        for event in events:
            last = event.stats
        return last

    def info(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        print(f"ERROR: {message}", file=sys.stderr)

    def print_header(self, title: str) -> None:
        pass

    def print_config(self, config_items: dict) -> None:
        pass

    def print_stats(self, stats: RunStats, elapsed_seconds: float = 0.0) -> None:
        counts = " ".join(f"{key}={value}" for key, value in stats.summary().items())
        print(f"{counts} took={elapsed_seconds:.1f}s")

    def print_summary(self, title: str, counts: dict[str, int]) -> None:
        print(f"{title}: " + " ".join(f"{key}={value}" for key, value in counts.items()))
