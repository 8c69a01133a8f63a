"""
Defines the command-line interface for the application using Typer.

The video stream is written to stdout (or a file); logs, progress and
summaries all go to stderr.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

import typer
from rich.logging import RichHandler

from hls_loader import __version__
from hls_loader.core.fetcher import RetryingFetcher
from hls_loader.core.loader import ChunkLoader
from hls_loader.core.stream_resolver import StreamResolver
from hls_loader.exceptions import HlsLoaderError
from hls_loader.media.downloader import HttpChunkSource, close_connection_pool
from hls_loader.media.sink import FileSink, StreamSink
from hls_loader.storage.config_manager import ConfigManager

from .formatters import (
    err_console,
    format_error_with_suggestions,
    print_config,
    print_summary_panel,
    print_variants_table,
)
from .progress_manager import ProgressManager

console = err_console

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
log = logging.getLogger("hls_loader")

app = typer.Typer(
    name="hls-loader",
    help=(
        "Download an HLS video by fetching its chunks in parallel and streaming "
        "them, in order, to stdout or a file."
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
    return base_dir.expanduser() / "hls-loader"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


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
    """HLS chunk loader CLI"""
    if version:
        console.print(f"[bold]hls-loader[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("hls_loader").setLevel(log_level)

    if show_config:
        try:
            config = ConfigManager(CONFIG_FILE).load_config()
        except HlsLoaderError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config()
    except HlsLoaderError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command(name="load")
def load_command(
    url: str = typer.Argument(
        ..., help="Video page URL (or playlist URL with --playlist)."
    ),
    resolution: str = typer.Argument(
        ..., help="Stream resolution to download, e.g. 1280x720.", metavar="RES"
    ),
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Number of chunks fetched in parallel (ROUTINES, default 1).",
    ),
    attempts: int | None = typer.Option(
        None,
        "-a",
        "--attempts",
        help="Attempts per chunk before the run is aborted (ATTEMPTS, default 3).",
    ),
    output: str = typer.Option(
        "-", "-o", "--output", help="Output file, or '-' for standard output."
    ),
    base_delay: float | None = typer.Option(
        None, "--base-delay", help="Seconds to wait before the first retry."
    ),
    max_delay: float | None = typer.Option(
        None, "--max-delay", help="Upper bound in seconds for a single retry wait."
    ),
    is_playlist: bool = typer.Option(
        False, "--playlist", help="Treat URL as the master playlist itself."
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Do not draw the progress bar."
    ),
):
    """Download a video and write it as one contiguous stream."""
    to_stdout = output == "-"
    if to_stdout and sys.stdout.isatty():
        console.print(
            "[yellow]⚠️  Refusing to write binary video data to a terminal.[/yellow]"
        )
        console.print(
            "[dim]Examples:[/dim]\n"
            "  [cyan]hls-loader load <URL> 1280x720 > video.ts[/cyan]\n"
            "  [cyan]hls-loader load <URL> 1280x720 -o video.ts[/cyan]"
        )
        raise typer.Exit(code=1)

    cli_options = {
        key: value
        for key, value in {
            "concurrency_limit": workers,
            "max_attempts": attempts,
            "base_delay": base_delay,
            "max_delay": max_delay,
        }.items()
        if value is not None
    }
    if no_progress:
        cli_options["show_progress"] = False

    async def _load_async():
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        source = HttpChunkSource(
            max_workers=config.concurrency_limit,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )
        try:
            addresses = await StreamResolver(source).chunk_addresses(
                url, resolution, is_playlist
            )
            fetcher = RetryingFetcher(
                source.fetch,
                max_attempts=config.max_attempts,
                base_delay=config.base_delay,
                jitter_ceiling=config.jitter_ceiling,
                max_delay=config.max_delay,
            )
            sink = StreamSink() if to_stdout else FileSink(output)
            async with (
                sink,
                ProgressManager(console, enabled=config.show_progress) as progress,
            ):
                loader = ChunkLoader(
                    fetcher, sink, config.concurrency_limit, progress=progress
                )
                stats = await loader.run(addresses)
            return config, stats, progress.get_statistics()
        finally:
            await close_connection_pool()

    try:
        config, stats, progress_stats = asyncio.run(_load_async())
    except HlsLoaderError as e:
        console.print(format_error_with_suggestions(e, {"url": url}))
        raise typer.Exit(code=1) from e

    if config.show_progress:
        print_summary_panel(stats, progress_stats)


@app.command()
def variants(
    url: str = typer.Argument(
        ..., help="Video page URL (or playlist URL with --playlist)."
    ),
    is_playlist: bool = typer.Option(
        False, "--playlist", help="Treat URL as the master playlist itself."
    ),
):
    """List the resolutions offered by a video."""

    async def _variants_async():
        try:
            return await StreamResolver(HttpChunkSource()).variants(url, is_playlist)
        finally:
            await close_connection_pool()

    try:
        playlist_url, found = asyncio.run(_variants_async())
    except HlsLoaderError as e:
        console.print(format_error_with_suggestions(e, {"url": url}))
        raise typer.Exit(code=1) from e

    if not found:
        console.print("[yellow]⚠️  The playlist does not list any streams.[/yellow]")
        raise typer.Exit(code=1)
    print_variants_table(playlist_url, found)
