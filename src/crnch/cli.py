"""Console script for crnch."""

import logging
from typing import Optional

import typer
from rich.logging import RichHandler
from rich.prompt import Prompt

from crnch.compress_file.main import main
from crnch.models.request import CompressionLevel
from crnch.utils.cli import CrnchCommand, cli_error_handler, stderr_console

__version__ = "1.0.0"

AUTO_MODE = "auto"

app = typer.Typer(add_completion=False, help="Squeeze your files. Fast.")


def setup_logging(verbose: bool = False):
    """Configure logging with Rich handler. Normal runs only surface warnings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=stderr_console, rich_tracebacks=True, show_time=True)],
    )


def version_callback(value: bool):
    if value:
        typer.echo(f"crnch v{__version__}")
        raise typer.Exit()


def choose_level() -> Optional[CompressionLevel]:
    """Ask for a compression mode when neither --size nor --level was given."""
    stderr_console.print("[yellow]No options provided. Select compression mode:[/yellow]")
    stderr_console.print("   auto   - Lossless first, then the lightest reduction that helps")
    stderr_console.print("   low    - Low Compression (Better Quality)")
    stderr_console.print("   medium - Medium Compression (Balanced)")
    stderr_console.print("   high   - High Compression (Smallest Size)")
    choice = Prompt.ask(
        "   Mode",
        choices=[AUTO_MODE, *(lvl.value for lvl in CompressionLevel)],
        default=AUTO_MODE,
        console=stderr_console,
    )
    return None if choice == AUTO_MODE else CompressionLevel(choice)


@app.command(cls=CrnchCommand)
@cli_error_handler
def crnch(
    file: str = typer.Argument(..., help="The file to compress (JPEG, PNG or PDF)"),
    size: Optional[str] = typer.Option(None, "--size", "-s", help="Target size (e.g. '200k', '1.5m')"),
    level: Optional[CompressionLevel] = typer.Option(None, "--level", "-l", case_sensitive=False, help="Compression level, used when no --size is given"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Custom output path (default: crnched_<name>)"),
    nerd: bool = typer.Option(False, "--nerd", "--verbose", "-v", help="Enable nerd mode (detailed technical output)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to every prompt"),
    version: Optional[bool] = typer.Option(None, "--version", callback=version_callback, is_eager=True, help="Show the version and exit"),
) -> None:
    """
    Compress a JPEG, PNG or PDF toward a target size.

    Without --size the file is compressed losslessly or with a light preset.
    With --size the tool searches for the best quality that fits and asks
    before any destructive fallback (grayscale, resizing).
    """
    setup_logging(nerd)

    if size is None and level is None and not yes:
        level = choose_level()

    main(
        input_file=file,
        output=output,
        size=size,
        level=level,
        nerd=nerd,
        assume_yes=yes,
        console=stderr_console,
    )


if __name__ == "__main__":
    app()
