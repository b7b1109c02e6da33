#!/usr/bin/env python3
"""imageferry - Main entry point"""

import functools
import os
import sys
from typing import List, Optional

import rich_click as click
from click import Option
from click.exceptions import (
    Abort,
    BadOptionUsage,
    BadParameter,
    ClickException,
    NoSuchOption,
    UsageError,
)
from rich.console import Console

from imageferry.commands import transfer
from imageferry.constants import (
    EXIT_INTERRUPTED,
    EXIT_OK,
)
from imageferry.exceptions import (
    ArgumentError,
    FlagError,
    ImageFerryError,
    UsageFailure,
)

# Configure rich-click help output
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"

error_console = Console(stderr=True)


def as_usage_failure(error: UsageError) -> UsageFailure:
    """Classify a click usage error: flag misuse (125) or bad arguments (1)."""
    message = error.format_message()
    if isinstance(error, (NoSuchOption, BadOptionUsage)):
        return FlagError(message)
    if isinstance(error, BadParameter) and isinstance(error.param, Option):
        return FlagError(message)
    return ArgumentError(message)


def print_usage(error: UsageError) -> None:
    """Print usage text for a misused command to stderr."""
    if error.ctx is not None:
        pieces = error.ctx.command.collect_usage_pieces(error.ctx)
        usage = f"Usage: {error.ctx.command_path} {' '.join(pieces)}"
        error_console.print(usage, markup=False, highlight=False)
        error_console.print(
            "[dim]Run[/dim] [cyan]imageferry --help[/cyan] [dim]for usage information[/dim]\n"
        )


def handle_cli_errors(func):
    """Decorator mapping CLI errors to exit codes."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            error_console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            print_usage(e)
            sys.exit(as_usage_failure(e).exit_code)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except ImageFerryError as e:
            # Raised before a command took ownership of error reporting
            error_console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            sys.exit(e.exit_code)
        except (Abort, KeyboardInterrupt):
            error_console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(EXIT_INTERRUPTED)
        except Exception as e:
            error_console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")

            if os.environ.get("DEBUG") or os.environ.get("VERBOSE"):
                import traceback

                error_console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(1)

    return wrapper


@handle_cli_errors
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with error handling."""
    rv = transfer.transfer.main(args=argv, prog_name="imageferry", standalone_mode=False)
    # --help / --version return their exit code; a finished transfer returns None
    return rv if isinstance(rv, int) else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
