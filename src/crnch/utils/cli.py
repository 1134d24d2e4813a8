"""Shared CLI error handling."""

import functools
from collections.abc import Callable

import click
import typer
from rich.console import Console
from typer.core import TyperCommand

from crnch.errors import CrnchError

EXIT_FAILURE = 1
EXIT_INTERRUPT = 130

stderr_console = Console(stderr=True)


class CrnchCommand(TyperCommand):
    """Typer command whose usage errors (bad option values, unknown flags) exit 1."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = EXIT_FAILURE
            raise


def cli_error_handler(func: Callable) -> Callable:
    """Wrap a CLI command so every failure prints one line and exits with code 1.

    Ctrl-C exits with 130.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, SystemExit):
            raise
        except KeyboardInterrupt:
            stderr_console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
            raise typer.Exit(code=EXIT_INTERRUPT)
        except CrnchError as e:
            stderr_console.print(f"[bold red]Failed:[/bold red] {e}")
            raise typer.Exit(code=EXIT_FAILURE)
        except (FileNotFoundError, ValueError, RuntimeError) as e:
            stderr_console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_FAILURE)
        except Exception as e:
            stderr_console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=EXIT_FAILURE)

    return wrapper
