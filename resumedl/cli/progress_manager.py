"""
Manages a Rich progress display for a single resumable transfer.
"""

import asyncio
import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

log = logging.getLogger("resumedl")


class ProgressManager:
    """
    Shows one progress bar per transfer and marks it when the transfer is
    retrying, so an interruption is visible without scrolling through logs.
    """

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._descriptions: dict[TaskID, str] = {}

    def add_transfer_task(
        self, description: str, total_size: int | None, completed: int = 0
    ) -> TaskID | None:
        if self.quiet:
            return None
        if len(description) > 50:
            description = "…" + description[-49:]
        task_id = self.progress.add_task(
            description, total=total_size, completed=completed, start=True
        )
        self._descriptions[task_id] = description
        return task_id

    def advance(self, task_id: TaskID | None, count: int):
        if task_id is not None and not self.quiet:
            self.progress.advance(task_id, count)

    def mark_retrying(self, task_id: TaskID | None, attempt: int):
        if task_id is not None and not self.quiet:
            base = self._descriptions.get(task_id, "")
            self.progress.update(
                task_id, description=f"{base} [yellow](retry {attempt})[/yellow]"
            )

    def mark_resumed(self, task_id: TaskID | None):
        if task_id is not None and not self.quiet:
            self.progress.update(task_id, description=self._descriptions.get(task_id, ""))

    def finish(self, task_id: TaskID | None, success: bool = True):
        if task_id is None or self.quiet:
            return
        base = self._descriptions.pop(task_id, "")
        marker = "[green]✓[/green]" if success else "[red]✗[/red]"
        self.progress.update(task_id, description=f"{marker} {base}")
        self.progress.stop_task(task_id)

    async def __aenter__(self):
        if not self.quiet:
            self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if not self.quiet:
            await asyncio.sleep(0.1)
            self.progress.stop()
