"""Console rendering and progress helpers for the photodrop CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .models import FileRejection
from .orchestrator.models import SubmissionOutcome, UploadProgress

console = Console()


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]photodrop[/bold green]",
        subtitle="[dim]guest photo upload[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_rejections(rejections: Iterable[FileRejection]) -> None:
    for rejection in rejections:
        console.print(f"[yellow]Skipped:[/yellow] {rejection.message}")


def render_selection(count: int, total_bytes: int) -> None:
    console.print(f"[cyan]Selected:[/cyan] {count} photo(s), {_human_size(total_bytes)}")


class SubmissionProgressDisplay:
    """Event-based console display for one submission."""

    def __init__(self):
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=42),
            TextColumn("{task.completed}/{task.total} photos"),
            TimeElapsedColumn(),
            expand=False,
            console=console,
        )
        self._live: Optional[Live] = None
        self._task_id: Optional[TaskID] = None
        self._started_at = 0.0

    def _start_live(self, total: int) -> None:
        if self._live is not None:
            return
        self._live = Live(
            self._progress,
            console=console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        self._task_id = self._progress.add_task("upload", label="Uploading", total=max(total, 1))
        self._started_at = time.monotonic()

    def _stop_live(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def on_progress(self, progress: Optional[UploadProgress]) -> None:
        if progress is None:
            self._stop_live()
            return
        self._start_live(progress.total_items)
        self._progress.update(
            self._task_id,
            completed=progress.completed_items,
            total=max(progress.total_items, 1),
        )

    def on_batch_complete(self, index: int, total_batches: int, payload: Dict[str, Any]) -> None:
        stamp = time.strftime("%H:%M:%S")
        folder = payload.get("folderUrl") if isinstance(payload, dict) else None
        suffix = f" [dim]{folder}[/dim]" if folder else ""
        console.print(f"[dim]{stamp}[/dim] [green]DONE[/green] batch {index}/{total_batches}{suffix}")

    def on_finish(self, outcome: SubmissionOutcome) -> None:
        self._stop_live()
        elapsed = time.monotonic() - self._started_at if self._started_at else 0.0
        if outcome.success:
            console.print(
                f"[bold green]Thank you![/bold green] uploaded={outcome.uploaded_items} "
                f"batches={outcome.batches_sent} in {elapsed:.1f}s"
            )
            return
        console.print(
            f"[red]Failed:[/red] {outcome.error} "
            f"(uploaded={outcome.uploaded_items}/{outcome.total_items})"
        )
