"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles
import aiofiles.os
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import TaskID

from resumedl import __version__
from resumedl.core.session import download
from resumedl.exceptions import DownloadAbortedError
from resumedl.http.issuer import close_connection_pool, get_connection_pool
from resumedl.models.options import RequestOptions
from resumedl.models.stats import TransferStats
from resumedl.storage.config_manager import ConfigManager
from resumedl.utils.path import create_dir, resolve_output_path
from resumedl.utils.structured_logger import (
    StructuredLogger,
    TransferLogger,
    create_structured_logger,
)

from .formatters import print_config, print_summary_panel
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("resumedl")

app = typer.Typer(
    name="resumedl",
    help=(
        "Download large files over HTTP, resuming automatically when the"
        " connection drops. Use 'resumedl <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "resumedl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


class ProgressTransferLogger(TransferLogger):
    """Mirrors retry events of a transfer onto its progress bar."""

    def __init__(self, logger: StructuredLogger, progress: ProgressManager):
        super().__init__(logger)
        self.progress = progress
        self.task_id: TaskID | None = None

    def retry_scheduled(self, url: str, attempt: int, delay_s: float, range_: str):
        super().retry_scheduled(url, attempt, delay_s, range_)
        self.progress.mark_retrying(self.task_id, attempt)

    def transfer_resumed(self, url: str, attempt: int, offset: int):
        super().transfer_resumed(url, attempt, offset)
        self.progress.mark_resumed(self.task_id)


def parse_header_options(values: list[str] | None) -> dict[str, str]:
    """Turns repeated `-H 'Name: value'` options into a header dictionary."""
    headers: dict[str, str] = {}
    for value in values or []:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(
                f"Header must look like 'Name: value', got {value!r}.",
                param_hint="--header",
            )
        headers[name.strip()] = content.strip()
    return headers


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Resumable HTTP downloader"""
    if version:
        console.print(f"[bold]resumedl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("resumedl").setLevel(log_level)

    if show_config:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command(name="get")
def get_command(
    url: str = typer.Argument(..., help="The URL to download."),
    output: Path | None = typer.Option(  # noqa: B008
        None,
        "-o",
        "--output",
        help="Destination file or directory (default: name from the server).",
    ),
    byte_range: str | None = typer.Option(
        None,
        "-r",
        "--range",
        help="Only download a byte range, e.g. 'bytes=0-1048575'.",
    ),
    header: list[str] | None = typer.Option(  # noqa: B008
        None, "-H", "--header", help="Extra request header 'Name: value'. Repeatable."
    ),
    retry_delay: float | None = typer.Option(
        None, "--retry-delay", help="Seconds to wait before resuming (default 5)."
    ),
    max_retries: int | None = typer.Option(
        None, "--max-retries", help="Give up after this many resume attempts."
    ),
    log_json: Path | None = typer.Option(  # noqa: B008
        None, "--log-json", help="Also write transfer events as JSON lines here."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide the progress bar."),
):
    """Download a file, resuming it when the connection drops."""
    headers = parse_header_options(header)
    if byte_range:
        headers["Range"] = byte_range

    cli_options = {
        key: value
        for key, value in {
            "retry_delay": retry_delay,
            "max_retries": max_retries,
        }.items()
        if value is not None
    }

    async def _get_async() -> TransferStats:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        signal = asyncio.Event()
        options = RequestOptions(headers=headers, signal=signal)
        base_logger, _ = create_structured_logger(
            log_dir=log_json, enable_json=log_json is not None
        )
        base_logger.set_session_context(version=__version__, url=url)
        stats = TransferStats()
        destination: Path | None = None
        created = False
        result = None

        try:
            session = await get_connection_pool(
                limit_per_host=config.max_connections_per_host,
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
                user_agent=config.user_agent or None,
            )
            async with ProgressManager(console=console, quiet=quiet) as progress:
                event_log = ProgressTransferLogger(base_logger, progress)
                result = await download(
                    url,
                    options,
                    config.retry_delay,
                    session=session,
                    max_retries=config.max_retries,
                    chunk_size=config.chunk_size,
                    high_water_mark=config.max_buffered_bytes,
                    event_log=event_log,
                )
                destination = resolve_output_path(
                    output, Path(config.output_dir), result.headers, url
                )

                try:
                    # Nothing is written to disk unless the server sends data.
                    first = await result.channel.read()
                    state = result.state
                    event_log.task_id = progress.add_transfer_task(
                        destination.name, state.bytes_left if state else None
                    )
                    create_dir(destination.parent)
                    async with aiofiles.open(destination, "wb") as f:
                        created = True
                        chunk = first
                        while chunk:
                            await f.write(chunk)
                            stats.add_bytes(len(chunk))
                            progress.advance(event_log.task_id, len(chunk))
                            chunk = await result.channel.read()
                except DownloadAbortedError as e:
                    progress.finish(event_log.task_id, success=False)
                    stats.finish(error=e.reason)
                    if created and await aiofiles.os.path.exists(destination):
                        await aiofiles.os.remove(destination)
                else:
                    progress.finish(event_log.task_id)
                    stats.finish()

                await result.wait()
                if result.state is not None:
                    stats.retries = result.state.retries
        except asyncio.CancelledError:
            signal.set()
            if result is not None:
                result.channel.cancel()
            raise
        finally:
            await close_connection_pool()
            base_logger.close()

        print_summary_panel(stats, destination)
        return stats

    stats = asyncio.run(_get_async())

    if not stats.completed:
        raise typer.Exit(code=1)
