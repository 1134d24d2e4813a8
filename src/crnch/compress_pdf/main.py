"""Core logic for compress-pdf: floor detection, then a DPI binary search via Ghostscript."""

import logging
import time
from typing import Optional

from crnch.codecs.ghostscript import Ghostscript, PdfPreset
from crnch.context import RunContext
from crnch.errors import CompressionCancelled, ToolError
from crnch.fallback.main import finish, keep_original_if_larger
from crnch.models.request import CompressionResult, FallbackStage
from crnch.models.search import BestCandidate, SearchRange
from crnch.search.main import PDF_MAX_PROBES, binary_search
from crnch.utils.size import size_kb
from crnch.utils.workspace import promote, workspace

logger = logging.getLogger(__name__)

# Above this size the no-target run uses /ebook instead of /printer.
LARGE_PDF_KB = 10_000

# (minimum original/target ratio, lowest DPI, highest DPI), checked in order.
DPI_RANGES = [
    (10.0, 50, 150),
    (3.0, 72, 250),
    (2.0, 100, 400),
]
DEFAULT_DPI_RANGE = (150, 600)


def preset_for(original_kb: int) -> PdfPreset:
    """Preset for a run without a target, by original size."""
    return PdfPreset.EBOOK if original_kb > LARGE_PDF_KB else PdfPreset.PRINTER


def dpi_range_for(original_kb: int, target_kb: int) -> SearchRange:
    """Starting DPI range for the compression ratio that is needed.

    Larger ratios start lower. This only saves probes; any range would work.
    """
    ratio = original_kb / target_kb
    lo, hi = DEFAULT_DPI_RANGE
    for min_ratio, range_lo, range_hi in DPI_RANGES:
        if ratio > min_ratio:
            lo, hi = range_lo, range_hi
            break
    return SearchRange(lo=lo, hi=hi, max_probes=PDF_MAX_PROBES)


def compress_pdf(ctx: RunContext, gs: Optional[Ghostscript] = None) -> CompressionResult:
    """Compress a PDF with a preset, or search the highest DPI that fits the target.

    With a target, the /screen preset is rendered first. When even that is
    larger than the target no DPI search runs; the user decides whether to
    keep the /screen version.

    Raises:
        ToolError: If a Ghostscript pass with no fallback fails.
        CompressionCancelled: If the user refuses the floor version.
    """
    gs = gs or Ghostscript()
    request = ctx.request
    reporter = ctx.reporter
    started = time.perf_counter()
    original_kb = size_kb(request.input_path)

    kept = keep_original_if_larger(ctx, original_kb, started)
    if kept is not None:
        return kept
    if request.level is not None:
        logger.debug(f"Compression level '{request.level.value}' has no effect on PDF files")

    target = ctx.target_kb
    with workspace(request.output_path, request.input_path.suffix) as ws:
        if target is None:
            preset = preset_for(original_kb)
            reporter.stage(1, "Smart Compression")
            reporter.detail("Tool", "Ghostscript")
            reporter.detail("Strategy", f"Preset-based compression ({preset.value})")
            reporter.detail("Reason", f"Selected {preset.value} for {original_kb} KB file", last=True)

            preset_path = ws.path("preset")
            with reporter.progress(1, "Eating those bytes...") as advance:
                ok = gs.render(request.input_path, preset_path, preset=preset)
                advance(1)
            if not ok:
                raise ToolError("Ghostscript failed.")
            promote(preset_path, request.output_path)
            return finish(ctx, f"Smart Compression ({preset.value})", started)

        reporter.stage(1, "Floor Detection")
        reporter.detail("Tool", "Ghostscript")
        reporter.detail("Strategy", "PDF minimum size calculation using /screen preset")

        floor_path = ws.path("screen")
        floor_kb: Optional[int] = None
        if gs.render(request.input_path, floor_path, preset=PdfPreset.SCREEN):
            floor_kb = size_kb(floor_path)
            if floor_kb > target:
                reporter.detail("Status", "Floor > Target (cannot be compressed to the desired target)", last=True)
            else:
                reporter.detail("Status", "Floor <= Target (size reduction possible)", last=True)
        else:
            reporter.detail("Status", "Floor detection failed, searching anyway", last=True)

        if floor_kb is not None and floor_kb > target:
            reporter.warn("Target Below Minimum!")
            reporter.tradeoff("Smallest possible", floor_kb, target)
            if not ctx.gate.confirm("Save the smallest possible version?", True):
                raise CompressionCancelled("Compression cancelled.")
            promote(floor_path, request.output_path)
            reporter.info("Tip: Could not reach target size without destroying quality.\n   Try a higher size.")
            return finish(ctx, "Floor (Min Quality)", started, FallbackStage.BEST_EFFORT)

        search_range = dpi_range_for(original_kb, target)
        reporter.stage(2, "Size Reduction")
        reporter.detail("Tool", "Ghostscript")
        reporter.detail("Strategy", "Binary search with adaptive DPI range")
        reporter.detail("Complexity", "O(log n) search iterations, O(n) compression per attempt")
        reporter.detail(
            "Smart DPI Range",
            f"{search_range.lo}-{search_range.hi} DPI (ratio: {original_kb / target:.1f}:1)",
        )
        reporter.detail("Note", "Each iteration re-renders the entire PDF")

        probe_path = ws.path("dpi")
        best_path = ws.path("dpi-best")

        def probe(dpi: int) -> tuple[int, bool]:
            if not gs.render(request.input_path, probe_path, dpi=dpi):
                return 0, False
            return size_kb(probe_path), True

        def on_best(candidate: BestCandidate) -> None:
            ws.keep(probe_path, "dpi-best")

        with reporter.progress(search_range.max_probes, "Eating those bytes...") as advance:
            search = binary_search(
                search_range, target, probe, on_best,
                reporter.probe_callback("{knob:>4} DPI", search_range.max_probes, target, advance),
            )

        if search.best is not None:
            dpi = search.best.knob
            reporter.detail(f"Target achieved at {dpi} DPI ({search.best.size_kb} KB)", last=True)
            promote(best_path, request.output_path)
            return finish(ctx, f"Binary Search ({dpi} DPI)", started, knob=dpi)

        logger.debug("No DPI in range met the target; using the /screen preset")
        if floor_kb is None and not gs.render(request.input_path, floor_path, preset=PdfPreset.SCREEN):
            raise ToolError("Ghostscript failed.")
        promote(floor_path, request.output_path)
        return finish(ctx, "Fallback /screen", started)
