"""Core logic for the crnch command: validate, pick an engine by extension, report."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from rich.console import Console

from crnch.compress_jpeg.main import compress_jpeg
from crnch.compress_pdf.main import compress_pdf
from crnch.compress_png.main import compress_png
from crnch.context import RunContext
from crnch.errors import UnsupportedFormatError
from crnch.models.request import CompressionLevel, CompressionRequest, CompressionResult
from crnch.utils.dependencies import check_dependencies, tools_for
from crnch.utils.prompt import ConsoleGate
from crnch.utils.report import Reporter
from crnch.utils.size import parse_size, size_kb

logger = logging.getLogger(__name__)

ENGINES: dict[str, Callable[[RunContext], CompressionResult]] = {
    "jpg": compress_jpeg,
    "jpeg": compress_jpeg,
    "png": compress_png,
    "pdf": compress_pdf,
}

# Output more than this fraction above the target earns a warning.
TARGET_TOLERANCE = 0.10


def compress_file(ctx: RunContext) -> CompressionResult:
    """Run the engine for the input's extension."""
    extension = ctx.request.extension
    engine = ENGINES.get(extension)
    if engine is None:
        raise UnsupportedFormatError(f"Unsupported file type: .{extension}")
    logger.debug(f"Using {engine.__name__} for {ctx.request.input_path}")
    return engine(ctx)


def validate_input_file(path: str) -> Path:
    """Validate that the input file exists and has a supported extension."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File '{path}' not found.")
    if not p.is_file():
        raise ValueError(f"Input path is not a file: {path}")
    extension = p.suffix.lower().lstrip(".")
    if extension not in ENGINES:
        raise UnsupportedFormatError(f"Unsupported file type: .{extension}")
    return p


def check_output_format(input_path: Path, output_path: Path) -> None:
    """Refuse an output whose extension names a different format than the input.

    The engines never convert between formats, so ``.jpg`` and ``.jpeg`` are
    interchangeable but ``.png`` for a JPEG input is not.
    """
    input_ext = input_path.suffix.lower().lstrip(".")
    output_ext = output_path.suffix.lower().lstrip(".")
    if ENGINES.get(output_ext) is not ENGINES[input_ext]:
        raise ValueError(f"Output must keep the input format (.{input_ext}): {output_path}")


def default_output_path(input_path: Path) -> Path:
    """``crnched_<stem><ext>`` in the working directory, extension lower-cased."""
    return Path(f"crnched_{input_path.stem}{input_path.suffix.lower()}")


def main(
    input_file: str,
    output: Optional[str],
    size: Optional[str],
    level: Optional[CompressionLevel],
    nerd: bool,
    assume_yes: bool,
    console: Optional[Console] = None,
) -> CompressionResult:
    """Entry point called from cli.py."""
    console = console or Console(stderr=True)

    input_path = validate_input_file(input_file)
    target_kb = parse_size(size) if size is not None else None
    output_path = Path(output) if output else default_output_path(input_path)
    if output_path.exists() and output_path.resolve() == input_path.resolve():
        raise ValueError("Output path must differ from the input file.")
    check_output_format(input_path, output_path)

    versions = check_dependencies(tools_for(input_path.suffix.lstrip(".")))
    output_path.parent.mkdir(parents=True, exist_ok=True)

    request = CompressionRequest(
        input_path=input_path,
        output_path=output_path,
        target_kb=target_kb,
        level=level,
        assume_yes=assume_yes,
    )
    reporter = Reporter(console, nerd=nerd)
    ctx = RunContext(request=request, gate=ConsoleGate(console, assume_yes=request.assume_yes), reporter=reporter)

    original_kb = size_kb(input_path)
    if nerd:
        reporter.banner(versions)
        reporter.file_info(input_path, original_kb, target_kb)
    else:
        reporter.info(f"\n[cyan]>>[/cyan] Crnching '{input_path.name}'...")
        if target_kb is not None:
            reporter.info(f"   Target: [cyan]{size}[/cyan]")
        elif level is not None:
            reporter.info(f"   Level: {level.value.capitalize()}")

    result = compress_file(ctx)

    if nerd:
        reporter.result(output_path, original_kb, result)
    else:
        reporter.info("[green]>> Done![/green]")
        reporter.summary(input_path, output_path, original_kb, result.size_kb)

    if target_kb is not None and result.size_kb > target_kb * (1 + TARGET_TOLERANCE):
        reporter.warn("Could not reach target size without destroying quality.")
        reporter.info("   Try resizing the image dimensions first.")

    return result
