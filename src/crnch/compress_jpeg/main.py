"""Core logic for compress-jpeg: jpegoptim, then an extent ladder or a single lossy pass."""

import logging
import shutil
import time
from pathlib import Path
from typing import Optional

from crnch.codecs.jpeg import JpegCodec
from crnch.context import RunContext
from crnch.errors import ToolError
from crnch.fallback.main import finish, keep_original_if_larger, run_waterfall
from crnch.models.request import JPEG_LEVEL_QUALITY, CompressionResult
from crnch.utils.size import size_kb
from crnch.utils.workspace import Workspace, promote, workspace

logger = logging.getLogger(__name__)

# Percent of the original size tried in order when there is no target.
LADDER_PERCENTAGES = (60, 65, 70, 75, 80, 85, 90, 95)


def compress_jpeg(ctx: RunContext, codec: Optional[JpegCodec] = None) -> CompressionResult:
    """Compress a JPEG.

    Without a target or level, walks the extent ladder. With a level, runs one
    lossy pass at that level's quality. With a target, runs one lossy pass at
    that byte extent and falls into the grayscale/resize waterfall if it
    still misses.

    Raises:
        ToolError: If the single lossy pass fails.
        CompressionCancelled: If the user refuses at a terminal prompt.
    """
    codec = codec or JpegCodec()
    request = ctx.request
    reporter = ctx.reporter
    started = time.perf_counter()
    original_kb = size_kb(request.input_path)

    kept = keep_original_if_larger(ctx, original_kb, started)
    if kept is not None:
        return kept

    target = ctx.target_kb
    with workspace(request.output_path, request.input_path.suffix) as ws:
        reporter.stage(1, "JPEG Lossless Optimization")
        reporter.detail("Tool", "jpegoptim")
        reporter.detail("Complexity", "O(n) I/O bound")
        reporter.detail("Strategy", "Stripping metadata and optimizing")

        lossless = ws.path("jpegoptim")
        if not codec.lossless_optimize(request.input_path, lossless):
            reporter.detail("Status", "jpegoptim failed, continuing with the original")
            shutil.copyfile(request.input_path, lossless)
        lossless_kb = size_kb(lossless)
        reporter.detail("Output Size after jpegoptim", f"{lossless_kb} KB", last=True)

        if target is None and request.level is None:
            return run_ladder(ctx, codec, ws, lossless, original_kb, started)

        if target is not None and lossless_kb <= target:
            promote(lossless, request.output_path)
            return finish(ctx, "jpegoptim (Lossless)", started)

        reporter.stage(2, "JPEG Lossy Compression")
        reporter.detail("Tool", "ImageMagick")
        reporter.detail("Complexity", "O(n) I/O bound")

        lossy_path = ws.path("lossy")
        if target is not None:
            reporter.detail("Strategy", f"Smart extent targeting ({target} KB)")
            ok = codec.lossy(lossless, lossy_path, extent_kb=target)
        else:
            quality = JPEG_LEVEL_QUALITY[request.level]
            reporter.detail("Strategy", f"Fixed quality {quality} ({request.level.value})")
            ok = codec.lossy(lossless, lossy_path, quality=quality)
        if not ok:
            raise ToolError("ImageMagick failed.")

        lossy_kb = size_kb(lossy_path)
        if target is None:
            reporter.detail("Result", f"{lossy_kb} KB", last=True)
            promote(lossy_path, request.output_path)
            return finish(ctx, f"jpegoptim + ImageMagick (Quality {quality})", started, knob=quality)

        hit = "Hit!" if lossy_kb <= target else "Miss"
        reporter.detail("Target", f"{target} KB")
        reporter.detail("Result", f"{lossy_kb} KB ({hit})", last=True)
        if lossy_kb <= target:
            promote(lossy_path, request.output_path)
            return finish(ctx, "jpegoptim + ImageMagick", started)

        return run_waterfall(
            ctx, codec, ws,
            color_base=lossy_path,
            best_effort=lossy_path,
            label="JPG",
            started=started,
        )


def run_ladder(
    ctx: RunContext,
    codec: JpegCodec,
    ws: Workspace,
    source: Path,
    original_kb: int,
    started: float,
) -> CompressionResult:
    """Try each ladder rung in order and keep the first one that lands under its target.

    Rungs get less aggressive as they go, so the first hit is the lightest
    compression that still shrinks the file. No hit keeps the original.
    """
    reporter = ctx.reporter
    request = ctx.request

    reporter.stage(2, "JPEG Lossy Compression")
    reporter.detail("Tool", "ImageMagick")
    reporter.detail("Strategy", "Targeted lossy compression, 60-95% of original")

    hit: Optional[tuple[int, int, Path]] = None
    with reporter.progress(len(LADDER_PERCENTAGES), "Eating those bytes...") as advance:
        for rung, percent in enumerate(LADDER_PERCENTAGES, start=1):
            rung_kb = original_kb * percent // 100
            advance(rung)
            if rung_kb == 0:
                continue
            rung_path = ws.path(f"ladder-{percent}")
            if not codec.lossy(source, rung_path, extent_kb=rung_kb):
                reporter.detail(f"{percent}%", "magick failed")
                continue
            out_kb = size_kb(rung_path)
            verdict = "Hit!" if out_kb <= rung_kb else "Miss"
            reporter.detail(f"{percent}% target {rung_kb} KB", f"{out_kb} KB ({verdict})")
            if out_kb <= rung_kb:
                hit = (percent, rung_kb, rung_path)
                break

    if hit is not None:
        percent, rung_kb, rung_path = hit
        promote(rung_path, request.output_path)
        return finish(ctx, f"jpegoptim + magick (Standard Preset, target {rung_kb} KB)", started, knob=percent)

    reporter.info("This image cannot be compressed to the desired size (60-95% of original). Keeping original.")
    shutil.copyfile(request.input_path, request.output_path)
    return finish(ctx, "jpegoptim + magick (No reduction, original kept)", started)
