"""
Console entry point. Runs the Typer app and turns errors that escape a
command into a Rich error panel and a distinct exit status.
"""

import asyncio
import logging
import os
import sys

from rich.console import Console

from appinfo_cli.cli.app import EXIT_FAILURE, EXIT_INTERRUPTED, app, exit_code_for
from appinfo_cli.cli.formatters import format_error_with_suggestions
from appinfo_cli.exceptions import AppInfoCliError

log = logging.getLogger("appinfo_cli")


def _use_utf8_streams() -> None:
    # Legacy Windows code pages cannot print the status glyphs
    if os.name != "nt":
        return
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")


def main() -> None:
    _use_utf8_streams()
    err_console = Console(stderr=True)

    try:
        app()
    except (KeyboardInterrupt, asyncio.CancelledError):
        err_console.print("\n[yellow]Interrupted, nothing more was fetched.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except AppInfoCliError as e:
        err_console.print(format_error_with_suggestions(e))
        sys.exit(exit_code_for(e))
    except Exception as e:
        err_console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
