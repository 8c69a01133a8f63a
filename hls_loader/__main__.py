"""
Main entry point for the hls-loader application.
This module handles top-level setup, exception handling, and CLI invocation.
"""

import asyncio
import logging
import sys

import typer

from hls_loader.cli.app import app
from hls_loader.cli.formatters import err_console, format_error_with_suggestions
from hls_loader.exceptions import HlsLoaderError


def main() -> None:
    """Main entry point function."""
    log = logging.getLogger("hls_loader")

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        err_console.print("\n[yellow]⚠️  Operation cancelled by user.[/yellow]")
        sys.exit(130)
    except HlsLoaderError as e:
        err_console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        err_console.print(
            format_error_with_suggestions(e, {"type": "Unexpected"})
        )
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
