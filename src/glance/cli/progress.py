"""
Progress indicators and the end-of-run debrief.
"""
from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from glance.generator import DirectoryResult, RunSummary


class ProgressBar:
    """Spins while the tree is scanned, then advances once per directory."""

    def __init__(
        self,
        description: str = "Creating glance files",
        scan_description: str = "Scanning directories and loading .gitignore files...",
        console: Optional[Console] = None,
    ):
        self.description = description
        self.scan_description = scan_description
        self.console = console or Console(stderr=True)
        self.progress: Optional[Progress] = None
        self.task_id = None

    def __enter__(self):
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            console=self.console,
            transient=True,
        )
        self.progress.__enter__()
        self.task_id = self.progress.add_task(self.scan_description, total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.progress:
            self.progress.__exit__(exc_type, exc_val, exc_tb)
        return False

    def start(self, total: int) -> None:
        """Switch from scanning to counting once the number of directories is known."""
        if self.progress and self.task_id is not None:
            self.progress.update(self.task_id, description=self.description, total=total, completed=0)

    def advance(self, result: DirectoryResult) -> None:
        if self.progress and self.task_id is not None:
            self.progress.update(self.task_id, advance=1)


def print_debrief(summary: RunSummary, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    console.print("[bold]=== FINAL SUMMARY ===[/bold]")
    console.print(
        f"Processed {summary.total} directories: "
        f"[green]{summary.succeeded} succeeded[/green] "
        f"({summary.regenerated} regenerated), "
        f"[red]{summary.failed} failed[/red]"
    )
    if summary.ok:
        return
    console.print("[yellow]Some directories couldn't be processed:[/yellow]")
    for r in summary.failures:
        console.print(
            f"  [red]x[/red] {escape(str(r.directory))}: "
            f"attempts={r.attempts} error={escape(str(r.error))}"
        )
