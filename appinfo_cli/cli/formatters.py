"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from appinfo_cli.models.config import MetadataConfig
from appinfo_cli.models.metadata import AppDetails, FetchResult, SearchResults
from appinfo_cli.models.stats import FetchStats
from appinfo_cli.utils.formatting import format_duration, strip_html


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "NotFoundOrUnsuccessfulError": [
            "• Check that the app id is correct.",
            "• The item may be region-locked or delisted.",
        ],
        "TransportError": [
            "• A network connection issue occurred.",
            "• Check your internet connection.",
        ],
        "HTTPStatusError": [
            "• The store may be rate-limiting requests.",
            "• Lower `max_concurrent_requests` in the config and retry later.",
        ],
        "FetchTimeoutError": [
            "• The store API is responding slowly.",
            "• Increase `call_timeout_s` in the config.",
        ],
        "ParseError": [
            "• The store returned an unexpected response.",
            "• Please try again in a few minutes.",
        ],
        "ConfigurationError": [
            "• Run `appinfo --show-config` to inspect the settings.",
            "• Run `appinfo init --force` to restore the defaults.",
        ],
        "CatalogError": [
            "• The application list could not be downloaded.",
            "• Please try again in a few minutes.",
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


def print_config(config_path: Path, config: MetadataConfig):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config.model_dump().items():
        if isinstance(value, dict):
            value = ", ".join(f"{p.value}={v}" for p, v in value.items())
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            escape(content.strip()),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_details_panel(key: str, record: AppDetails):
    """Displays the details of one application."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()

    table.add_row("App ID:", key)
    if record.type:
        table.add_row("Type:", record.type)
    if record.developers:
        table.add_row("Developers:", escape(", ".join(record.developers)))
    if record.publishers:
        table.add_row("Publishers:", escape(", ".join(record.publishers)))
    if record.release_date and record.release_date.date:
        table.add_row("Released:", record.release_date.date)
    if record.genres:
        table.add_row("Genres:", ", ".join(g.description for g in record.genres))
    table.add_row("Free:", "✓" if record.is_free else "✗")
    if header := record.header_image_url():
        table.add_row("Header:", f"[dim]{header}[/dim]")
    if record.short_description:
        table.add_row("", "")
        table.add_row("About:", escape(strip_html(record.short_description)))
    if record.pc_requirements:
        if minimum := strip_html(record.pc_requirements.minimum):
            table.add_row("", "")
            table.add_row("Minimum:", escape(minimum))
        if recommended := strip_html(record.pc_requirements.recommended):
            table.add_row("", "")
            table.add_row("Recommended:", escape(recommended))

    console.print(
        Panel(
            table,
            title=f"[bold]{escape(record.name)}[/bold]",
            border_style="green",
            expand=False,
        )
    )


def print_batch_table(results: list[FetchResult]):
    """Displays one row per requested key with its outcome."""
    console = Console()
    table = Table(title="Store Details", box=box.SIMPLE_HEAVY)
    table.add_column("#", style="dim", justify="right")
    table.add_column("App ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")

    for i, result in enumerate(results, 1):
        if result.ok:
            table.add_row(
                str(i), result.key, escape(result.record.name), "[green]✓ OK[/green]"
            )
        else:
            table.add_row(
                str(i),
                result.key,
                "[dim]-[/dim]",
                f"[red]✗ {type(result.error).__name__}[/red]",
            )
    console.print(table)


def print_search_results(results: SearchResults):
    """Displays one page of catalog search results."""
    console = Console()
    if not results.games:
        console.print(f"[yellow]No results for '{escape(results.query)}'.[/yellow]")
        return

    table = Table(
        title=(
            f"Results for '{escape(results.query)}' "
            f"(page {results.page}/{results.total_pages}, {results.total} total)"
        ),
        box=box.SIMPLE_HEAVY,
    )
    table.add_column("App ID", style="cyan", justify="right")
    table.add_column("Name")
    for game in results.games:
        table.add_row(game.app_id, escape(game.game_name))
    console.print(table)


def print_summary_panel(stats: FetchStats, extra: dict[str, Any] | None = None):
    """Displays the final summary of a metadata session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("✓ Fetched:", f"[bold green]{stats.fetched}[/bold green]")
    stats_table.add_row(
        "Cache Hits:",
        f"[green]{stats.cache_hits}[/green] "
        f"[dim]({stats.hit_rate:.0%} of {stats.cache_hits + stats.cache_misses})[/dim]",
    )

    if stats.failed > 0:
        breakdown = ", ".join(
            f"{name}: {count}" for name, count in sorted(stats.failures_by_type.items())
        )
        stats_table.add_row(
            "✗ Failed:", f"[bold red]{stats.failed}[/bold red] [dim]({breakdown})[/dim]"
        )

    if stats.cache_write_failures > 0:
        stats_table.add_row(
            "⚠ Not Cached:", f"[yellow]{stats.cache_write_failures}[/yellow]"
        )

    stats_table.add_row("", "")  # Spacer

    if stats.fetched > 0:
        stats_table.add_row(
            "Avg. Response:", f"[magenta]{stats.average_response_ms:.0f} ms[/magenta]"
        )
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(stats.elapsed_s)}[/blue]"
    )

    if extra:
        stats_table.add_row("", "")
        for label, value in extra.items():
            stats_table.add_row(f"{label}:", f"[green]{value}[/green]")

    border_color = "green" if stats.failed == 0 else "yellow"
    console.print()
    console.print(
        Panel(
            stats_table,
            title="[bold]Session Summary[/bold]",
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
