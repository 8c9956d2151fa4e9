"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from resumedl.models.stats import TransferStats
from resumedl.utils.formatting import format_duration, format_size, format_speed


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "DownloadAbortedError": [
            "• The server answered with a status that cannot be downloaded,",
            "  or the resource changed while it was being resumed.",
            "• Run the command again to start over from the beginning.",
        ],
        "MalformedRangeError": [
            "• Use a byte range such as 'bytes=0-1023' or 'bytes=1024-'.",
            "• Suffix ranges ('bytes=-500') cannot be resumed.",
        ],
        "MalformedContentRangeError": [
            "• The server sent a Content-Range header in a unit other than bytes.",
            "• Try the download without a --range option.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `resumedl init --force` to write a fresh default file.",
        ],
        "ClientConnectorError": [
            "• The server could not be reached.",
            "• Check the URL and your internet connection.",
        ],
        "InvalidURL": [
            "• The URL could not be parsed. Include the scheme, e.g. https://.",
        ],
        "TimeoutError": [
            "• The server did not answer in time.",
            "• Increase `read_timeout` in the configuration file.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if value is None or value == "":
            value = "[dim]not set[/dim]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_summary_panel(stats: TransferStats, destination: Path):
    """Displays the final summary of a download."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("File:", f"[white]{destination}[/white]")
    stats_table.add_row("Size:", f"[cyan]{format_size(stats.bytes_received)}[/cyan]")
    if stats.retries > 0:
        stats_table.add_row("Resumed:", f"[yellow]{stats.retries}×[/yellow]")

    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_speed(stats.average_speed_bps)}[/magenta]"
    )
    if stats.peak_speed_bps > 0:
        stats_table.add_row(
            "Peak Speed:", f"[magenta]{format_speed(stats.peak_speed_bps)}[/magenta]"
        )
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(stats.duration_s)}[/blue]"
    )

    if stats.completed:
        title = "[bold]Download Complete![/bold]"
        border_color = "green"
    else:
        stats_table.add_row("", "")
        stats_table.add_row("✗ Error:", f"[bold red]{stats.error}[/bold red]")
        title = "[bold]Download Failed[/bold]"
        border_color = "red"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
