"""
Functions for formatting and displaying data in the console using Rich.

All output goes to stderr; stdout is reserved for the video stream.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hls_loader.exceptions import ChunkFetchError, InvalidChunkAddressError
from hls_loader.models.config import LoaderConfig
from hls_loader.models.stats import LoadStats
from hls_loader.utils.formatting import format_duration, format_size
from hls_loader.utils.playlist import Variant

err_console = Console(stderr=True)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ChunkFetchError": [
            "• The output stream is incomplete and should be discarded.",
            "• Raise the number of attempts with `-a`.",
            "• Lower `-w` if the server is throttling parallel requests.",
        ],
        "InvalidChunkAddressError": [
            "• The chunk list references an address that cannot be fetched.",
            "• Check that the page URL points at the expected video.",
        ],
        "PlaylistNotFoundError": [
            "• The page does not embed an HLS <source> tag.",
            "• Pass the master playlist directly with `--playlist`.",
        ],
        "VariantNotFoundError": [
            "• Run `hls-loader variants <URL>` to list available resolutions.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `hls-loader init --force` to recreate it with defaults.",
        ],
        "ClientResponseError": [
            "• The server rejected a playlist request.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network throttling.",
            "• Try reducing the number of `--workers`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)

    if isinstance(error, (ChunkFetchError, InvalidChunkAddressError)):
        content.add_row(Text(f"Address: {error.address}", style="cyan"))

    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config: LoaderConfig):
    """Displays the effective configuration."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    for key in sorted(LoaderConfig.get_ini_keys()):
        value = getattr(config, key)
        table.add_row(f"{key}:", "[dim]none[/dim]" if value is None else str(value))

    err_console.print(
        Panel(
            table,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_variants_table(playlist_url: str, variants: list[Variant]):
    """Lists the streams offered by a master playlist."""
    table = Table(title=f"Streams in [dim]{playlist_url}[/dim]", box=box.SIMPLE)
    table.add_column("Resolution", style="cyan")
    table.add_column("Bandwidth", justify="right", style="green")
    table.add_column("Codecs", style="dim")
    for variant in sorted(variants, key=lambda v: v.bandwidth, reverse=True):
        table.add_row(
            variant.resolution or "?",
            f"{variant.bandwidth / 1000:.0f} kbps" if variant.bandwidth else "?",
            variant.attributes.get("CODECS", ""),
        )
    err_console.print(table)


def print_summary_panel(stats: LoadStats, progress_stats: dict[str, Any] | None = None):
    """Displays the final summary of a completed run."""
    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Chunks:",
        f"[bold green]{stats.chunks_emitted}[/bold green] / {stats.chunks_total}",
    )
    if stats.retries > 0:
        stats_table.add_row("↻ Retries:", f"[yellow]{stats.retries}[/yellow]")

    stats_table.add_row("", "")  # Spacer
    stats_table.add_row("Total Size:", f"[cyan]{format_size(stats.bytes_emitted)}[/cyan]")
    stats_table.add_row(
        "Avg. Speed:", f"[magenta]{format_size(int(stats.avg_speed_bps))}/s[/magenta]"
    )
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(stats.duration_s)}[/blue]"
    )

    stats_table.add_row("", "")  # Spacer
    stats_table.add_row("Peak Concurrent:", f"[green]{stats.peak_in_flight}[/green]")
    stats_table.add_row("Peak Buffered:", f"[green]{stats.peak_buffered}[/green]")

    if progress_stats and progress_stats.get("start_time"):
        stats_table.add_row(
            "Started:", f"[dim]{progress_stats['start_time']:%Y-%m-%d %H:%M:%S}[/dim]"
        )

    err_console.print()
    err_console.print(
        Panel(
            stats_table,
            title="🎬 [bold]Download Complete![/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
