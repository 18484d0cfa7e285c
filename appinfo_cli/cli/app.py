"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import json
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from appinfo_cli import __version__
from appinfo_cli.api.transport import AiohttpTransport
from appinfo_cli.core.catalog import AppCatalog
from appinfo_cli.core.service import DETAILS_CACHE_SUBDIR, MetadataService
from appinfo_cli.exceptions import AppInfoCliError, ConfigurationError, FetchError
from appinfo_cli.models.config import MetadataConfig, Priority
from appinfo_cli.storage.cache import DiskCacheStore
from appinfo_cli.storage.config_manager import ConfigManager
from appinfo_cli.utils.formatting import format_ttl

from .formatters import (
    format_error_with_suggestions,
    print_batch_table,
    print_config,
    print_details_panel,
    print_search_results,
    print_summary_panel,
)

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
log = logging.getLogger("appinfo_cli")

app = typer.Typer(
    name="appinfo",
    help=(
        "Fetch, cache and search store metadata for applications. Use 'appinfo"
        " <command> --help' for more info."
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
    return base_dir.expanduser() / "appinfo-cli"


EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_FETCH = 3
EXIT_INTERRUPTED = 130

CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def exit_code_for(error: BaseException) -> int:
    """Process exit status for an error that ends a command."""
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIG
    if isinstance(error, FetchError):
        return EXIT_FETCH
    return EXIT_FAILURE


def _load_config() -> MetadataConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config()
    except AppInfoCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=exit_code_for(e)) from e


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
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Clear the metadata cache and exit."
    ),
):
    """Store metadata CLI"""
    if version:
        console.print(f"[bold]appinfo-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("appinfo_cli").setLevel(log_level)

    if clear_cache:
        config = _load_config()
        cache = DiskCacheStore(Path(config.cache_dir) / DETAILS_CACHE_SUBDIR)
        console.print("[cyan]Clearing metadata cache...[/cyan]")

        files_count = cache.entry_count()
        if cache.clear():
            console.print(
                f"[green]✓ Cache cleared successfully ({files_count} entries removed"
                ").[/green]"
            )
        else:
            console.print("[red]✗ Failed to clear cache.[/red]")
        raise typer.Exit()

    if show_config:
        print_config(CONFIG_FILE, _load_config())
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
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def details(
    keys: list[str] = typer.Argument(  # noqa: B008
        ..., help="One or more app ids.", metavar="APP_ID..."
    ),
    priority: Priority | None = typer.Option(
        None,
        "--priority",
        "-p",
        help="Pacing tier (default: high for one id, normal for several).",
        case_sensitive=False,
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the records as JSON instead of tables."
    ),
    complete: bool = typer.Option(
        False,
        "--complete",
        help="Re-fetch cached records that lack PC requirements.",
    ),
):
    """Show store details for one or more applications."""
    config = _load_config()

    async def _details_async():
        async with MetadataService.create(config, refresh_incomplete=complete) as service:
            await service.cache.start_background_cleanup()
            if len(keys) == 1:
                record = await service.get_one(keys[0], priority or Priority.HIGH)
                if as_json:
                    console.print_json(record.model_dump_json())
                else:
                    print_details_panel(keys[0], record)
                return service.stats

            results = await service.get_many(keys, priority or Priority.NORMAL)
            if as_json:
                console.print_json(
                    json.dumps(
                        {
                            r.key: r.record.model_dump(mode="json") if r.ok else None
                            for r in results
                        }
                    )
                )
            else:
                print_batch_table(results)
            return service.stats

    try:
        stats = asyncio.run(_details_async())
    except AppInfoCliError as e:
        console.print(format_error_with_suggestions(e, {"keys": keys}))
        raise typer.Exit(code=exit_code_for(e)) from e

    if not as_json and len(keys) > 1:
        print_summary_panel(stats)


@app.command()
def refresh(
    keys: list[str] = typer.Argument(  # noqa: B008
        ..., help="App ids whose cache entries should be refreshed if expired."
    ),
):
    """Re-fetch expired cache entries at background priority."""
    config = _load_config()

    async def _refresh_async():
        async with MetadataService.create(config) as service:
            results = await service.refresh_expired(keys)
            return service, results

    service, results = asyncio.run(_refresh_async())
    if not results:
        console.print("[green]✓ All cache entries are fresh.[/green]")
        return
    print_batch_table(list(results.values()))
    print_summary_panel(
        service.stats, {"Fresh (skipped)": len(set(keys)) - len(results)}
    )


@app.command()
def invalidate(
    keys: list[str] = typer.Argument(  # noqa: B008
        ..., help="App ids to remove from the cache."
    ),
):
    """Remove cached details for the given applications."""
    config = _load_config()
    cache = DiskCacheStore(
        Path(config.cache_dir) / DETAILS_CACHE_SUBDIR,
        ttl_hours=config.cache_ttl_hours,
        ttl_spread_hours=config.cache_ttl_spread_hours,
    )
    for key in keys:
        try:
            removed = cache.invalidate(key)
        except AppInfoCliError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=exit_code_for(e)) from e
        if removed:
            console.print(f"[green]✓ Cache cleared for {key}[/green]")
        else:
            console.print(f"[dim]No cache found for {key}[/dim]")


@app.command()
def ttl(
    keys: list[str] = typer.Argument(  # noqa: B008
        ..., help="App ids to show the cache lifetime for."
    ),
):
    """Show the staggered cache lifetime assigned to each application."""
    config = _load_config()
    cache = DiskCacheStore(
        Path(config.cache_dir) / DETAILS_CACHE_SUBDIR,
        ttl_hours=config.cache_ttl_hours,
        ttl_spread_hours=config.cache_ttl_spread_hours,
    )
    for key in keys:
        state = "[green]fresh[/green]" if cache.is_fresh(key) else "[dim]missing/expired[/dim]"
        console.print(f"{key}: {format_ttl(cache.ttl_seconds(key))} ({state})")


@app.command()
def search(
    query: str = typer.Argument(..., help="Name terms, comma separated, or an app id."),
    page: int = typer.Option(1, "--page", min=1, help="Result page to show."),
    per_page: int = typer.Option(
        20, "--per-page", min=1, max=200, help="Results per page."
    ),
):
    """Search the store's application list."""
    config = _load_config()

    async def _search_async():
        async with AiohttpTransport(request_timeout_s=config.request_timeout_s) as transport:
            catalog = AppCatalog(transport, config)
            await catalog.load_or_refresh()
            return catalog.search(query, page, per_page)

    try:
        results = asyncio.run(_search_async())
    except AppInfoCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=exit_code_for(e)) from e
    print_search_results(results)
