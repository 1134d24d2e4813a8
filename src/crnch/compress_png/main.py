"""Core logic for compress-png: lossless strip, quantization search, then the shared waterfall."""

import logging
import time
from typing import Optional

from crnch.codecs.png import PngCodec
from crnch.context import RunContext
from crnch.errors import ToolError
from crnch.fallback.main import finish, keep_original_if_larger, run_waterfall
from crnch.models.request import CompressionResult, FallbackStage
from crnch.models.search import BestCandidate
from crnch.search.main import PNG_QUALITY_RANGE, binary_search
from crnch.utils.size import size_kb
from crnch.utils.workspace import promote, workspace

logger = logging.getLogger(__name__)

LOSSLESS_TAG = "oxipng (Lossless)"
QUANTIZED_TAG = "Hybrid (Oxipng + Binary Search)"


def compress_png(ctx: RunContext, codec: Optional[PngCodec] = None) -> CompressionResult:
    """Compress a PNG losslessly, or down to the target through the waterfall.

    Stages run in a fixed order and each one only runs when the previous one
    missed the target: oxipng strip, pngquant quality search, grayscale,
    resize search, best effort.

    Raises:
        ToolError: If the oxipng strip fails.
        CompressionCancelled: If the user refuses at a terminal prompt.
    """
    codec = codec or PngCodec()
    request = ctx.request
    reporter = ctx.reporter
    started = time.perf_counter()
    original_kb = size_kb(request.input_path)

    kept = keep_original_if_larger(ctx, original_kb, started)
    if kept is not None:
        return kept
    if request.level is not None:
        logger.debug(f"Compression level '{request.level.value}' has no effect on PNG files")

    with workspace(request.output_path, request.input_path.suffix) as ws:
        reporter.stage(1, "Stripping off Metadata")
        reporter.detail("Tool", "oxipng")
        reporter.detail("Strategy", "Removing metadata from the image (lossless)")
        reporter.detail("Original Size", f"{original_kb} KB")

        stripped = ws.path("oxipng")
        if not codec.strip_metadata(request.input_path, stripped):
            raise ToolError("oxipng failed.")
        stripped_kb = size_kb(stripped)

        reduction = (original_kb - stripped_kb) / original_kb * 100 if original_kb > stripped_kb else 0.0
        reporter.detail("Metadata Removed", f"{max(original_kb - stripped_kb, 0)} KB")
        reporter.detail("Output Size after oxipng", f"{stripped_kb} KB")
        reporter.detail("Reduction", f"{reduction:.2f}%", last=True)

        target = ctx.target_kb
        if target is None or stripped_kb <= target:
            if target is not None:
                reporter.detail("Result", "Target hit losslessly!", last=True)
            promote(stripped, request.output_path)
            return finish(ctx, LOSSLESS_TAG, started)

        reporter.stage(2, "Color Quantization")
        reporter.detail("Tool", "pngquant")
        reporter.detail(
            "Strategy",
            f"Binary search over quality index {PNG_QUALITY_RANGE.lo}-{PNG_QUALITY_RANGE.hi} (lossy)",
        )
        reporter.detail("Complexity", "O(log n)")

        probe_path = ws.path("pngquant")
        best_path = ws.path("pngquant-best")
        # Smallest color artifact so far; kept if the user declines every resize.
        color_candidate = stripped
        color_candidate_kb = stripped_kb

        def probe(quality: int) -> tuple[int, bool]:
            nonlocal color_candidate, color_candidate_kb
            if not codec.quantize(stripped, probe_path, (quality, PNG_QUALITY_RANGE.hi)):
                return 0, False
            kb = size_kb(probe_path)
            if kb < color_candidate_kb:
                color_candidate = ws.keep(probe_path, "pngquant-smallest")
                color_candidate_kb = kb
            if quality == PNG_QUALITY_RANGE.lo and kb > target:
                reporter.detail("Quality floor reached in pngquant, cannot compress further")
            return kb, True

        def on_best(candidate: BestCandidate) -> None:
            ws.keep(probe_path, "pngquant-best")

        with reporter.progress(PNG_QUALITY_RANGE.max_probes, "Eating those bytes...") as advance:
            search = binary_search(
                PNG_QUALITY_RANGE, target, probe, on_best,
                reporter.probe_callback("Quality {knob:>3}%", PNG_QUALITY_RANGE.max_probes, target, advance),
            )

        if search.best is not None:
            quality = search.best.knob
            promote(best_path, request.output_path)
            if not codec.polish(request.output_path):
                logger.debug("Polish pass failed; keeping the unpolished quantized image")
            reporter.detail("Optimal Quality", str(quality), last=True)
            return finish(ctx, QUANTIZED_TAG, started, FallbackStage.QUANTIZE, knob=quality)

        return run_waterfall(
            ctx, codec, ws,
            color_base=stripped,
            best_effort=color_candidate,
            label="pngquant",
            started=started,
            polish=codec.polish,
        )
