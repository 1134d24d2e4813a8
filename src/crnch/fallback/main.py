"""Decision points shared by every engine.

The keep-original gate runs before any codec. The waterfall (grayscale, then
resize, then best effort) runs once an engine's own stages miss the target.
Each consent point is a call to the run's InteractionGate.
"""

import logging
import shutil
import time
from collections.abc import Callable
from pathlib import Path
from typing import Optional, Protocol

from crnch.context import RunContext
from crnch.errors import CompressionCancelled
from crnch.models.request import CompressionResult, FallbackStage
from crnch.models.search import BestCandidate
from crnch.search.main import SCALE_RANGE, binary_search
from crnch.utils.size import size_kb
from crnch.utils.workspace import Workspace, promote

logger = logging.getLogger(__name__)


class ImageTransforms(Protocol):
    def to_grayscale(self, input_path: Path, output_path: Path) -> bool: ...

    def resize(self, input_path: Path, output_path: Path, scale: int) -> bool: ...


def finish(
    ctx: RunContext,
    algorithm: str,
    started: float,
    stage: FallbackStage = FallbackStage.NONE,
    knob: Optional[int] = None,
) -> CompressionResult:
    """Build the result for whatever now sits at the output path."""
    return CompressionResult(
        algorithm=algorithm,
        stage=stage,
        knob=knob,
        size_kb=size_kb(ctx.request.output_path),
        time_ms=int((time.perf_counter() - started) * 1000),
    )


def keep_original_if_larger(ctx: RunContext, original_kb: int, started: float) -> Optional[CompressionResult]:
    """Short-circuit when the target is not below the original size.

    Returns None when compression should go ahead. Otherwise copies the
    input to the output (with consent) without running any codec.

    Raises:
        CompressionCancelled: If the user declines to keep the original.
    """
    target = ctx.target_kb
    if target is None or target < original_kb:
        return None

    ctx.reporter.info(
        f"Requested size ({target} KB) is larger than or equal to original file size "
        f"({original_kb} KB). No compression performed."
    )
    if not ctx.gate.confirm("Keep original file?", True):
        raise CompressionCancelled("Compression cancelled by user.")

    shutil.copyfile(ctx.request.input_path, ctx.request.output_path)
    return finish(ctx, "No compression (requested size >= original)", started)


def keep_best_effort(ctx: RunContext, artifact: Path, algorithm: str, started: float, message: str) -> CompressionResult:
    promote(artifact, ctx.request.output_path)
    ctx.reporter.info(f"   {message} ({size_kb(ctx.request.output_path)} KB).")
    return finish(ctx, algorithm, started, FallbackStage.BEST_EFFORT)


def run_waterfall(
    ctx: RunContext,
    codec: ImageTransforms,
    ws: Workspace,
    *,
    color_base: Path,
    best_effort: Path,
    label: str,
    started: float,
    polish: Optional[Callable[[Path], bool]] = None,
) -> CompressionResult:
    """Grayscale, then resize, then best effort.

    Args:
        color_base: The color image the grayscale and resize stages start from.
        best_effort: What to keep when the user declines every resize.
        label: Prefix for the algorithm tag, e.g. ``"pngquant"``.
        polish: Optional in-place lossless pass applied to a resize winner.
    """
    target = ctx.target_kb
    reporter = ctx.reporter
    output_path = ctx.request.output_path

    reporter.warn("Limit Reached!")
    reporter.tradeoff("Smallest size without resizing", size_kb(best_effort), target)

    # Grayscale
    reporter.stage(3, "Grayscale Conversion")
    reporter.detail("Tool", "magick")
    reporter.detail("Strategy", "Convert to 8-bit grayscale")
    gray_path = ws.path("gray")
    gray_kb: Optional[int] = None
    if codec.to_grayscale(color_base, gray_path):
        gray_kb = size_kb(gray_path)
        reporter.detail("Grayscale size", f"{gray_kb} KB", last=True)
    else:
        reporter.detail("Grayscale conversion failed", last=True)

    if gray_kb is not None and gray_kb <= target:
        if ctx.gate.confirm(f"Target reached by converting to Grayscale ({gray_kb} KB). Proceed?", True):
            promote(gray_path, output_path)
            return finish(ctx, f"{label} + Grayscale", started, FallbackStage.GRAYSCALE)

    # Pick what to resize
    color_kb = size_kb(color_base)
    if gray_kb is not None and gray_kb < color_kb:
        if ctx.gate.confirm("Target unreachable in Color. Proceed with Grayscale Resizing?", True):
            resize_base = gray_path
        elif ctx.gate.confirm("Resize the Color image instead?", False):
            resize_base = color_base
        else:
            return keep_best_effort(ctx, best_effort, f"{label} (Best Effort Color)", started, "Keeping best color version")
    elif ctx.gate.confirm("Target unreachable. Resize image dimensions?", False):
        resize_base = color_base
    else:
        return keep_best_effort(ctx, best_effort, f"{label} (Best Effort)", started, "Keeping best version")

    return resize_to_target(ctx, codec, ws, resize_base, best_effort, label, started, polish)


def resize_to_target(
    ctx: RunContext,
    codec: ImageTransforms,
    ws: Workspace,
    resize_base: Path,
    best_effort: Path,
    label: str,
    started: float,
    polish: Optional[Callable[[Path], bool]] = None,
) -> CompressionResult:
    """Binary search the largest scale percent that fits the target."""
    target = ctx.target_kb
    reporter = ctx.reporter
    output_path = ctx.request.output_path

    reporter.stage(4, "Image Resizing")
    reporter.detail("Tool", "magick")
    reporter.detail("Strategy", f"Binary search over scale {SCALE_RANGE.lo}-{SCALE_RANGE.hi}%")
    reporter.detail("Complexity", "O(log n)")

    probe_path = ws.path("resize")
    best_path = ws.path("resize-best")
    smallest_path = ws.path("resize-smallest")
    smallest_kb: Optional[int] = None

    def probe(scale: int) -> tuple[int, bool]:
        nonlocal smallest_kb
        if not codec.resize(resize_base, probe_path, scale):
            return 0, False
        kb = size_kb(probe_path)
        if smallest_kb is None or kb < smallest_kb:
            ws.keep(probe_path, "resize-smallest")
            smallest_kb = kb
        return kb, True

    def on_best(candidate: BestCandidate) -> None:
        ws.keep(probe_path, "resize-best")

    with reporter.progress(SCALE_RANGE.max_probes, "Scaling...") as advance:
        search = binary_search(
            SCALE_RANGE, target, probe, on_best,
            reporter.probe_callback("Scale {knob:>3}%", SCALE_RANGE.max_probes, target, advance),
        )

    if search.best is not None:
        scale = search.best.knob
        promote(best_path, output_path)
        if polish is not None and not polish(output_path):
            logger.debug("Polish pass failed; keeping the unpolished resize")
        reporter.info(f"   Resized to {scale}% scale.")
        return finish(ctx, f"{label} + Resize {scale}%", started, FallbackStage.RESIZE, knob=scale)

    if smallest_kb is not None:
        fallback_path, fallback_kb = smallest_path, smallest_kb
    else:
        fallback_path, fallback_kb = best_effort, size_kb(best_effort)

    reporter.warn("Target unreachable even at the smallest scale tried.")
    reporter.tradeoff("Smallest possible", fallback_kb, target)
    if not ctx.gate.confirm("Target unreachable. Save smallest possible?", True):
        raise CompressionCancelled("Compression cancelled by user.")
    return keep_best_effort(ctx, fallback_path, f"{label} (Best Effort)", started, "Keeping smallest version")
