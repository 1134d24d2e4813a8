"""Tests for the PDF engine with a scripted Ghostscript."""

from collections.abc import Callable
from pathlib import Path
from typing import Optional

import pytest

from crnch.codecs.ghostscript import Ghostscript, PdfPreset
from crnch.compress_pdf.main import compress_pdf, dpi_range_for, preset_for
from crnch.errors import CompressionCancelled, ToolError
from crnch.models.request import CompressionLevel, FallbackStage
from crnch.testing import write_kb


class FakeGhostscript:
    """Renders files of scripted sizes.

    ``screen_kb`` is a list consumed one entry per /screen render (None means
    the render failed); the last entry repeats.
    """

    def __init__(
        self,
        screen_kb: list[Optional[int]],
        dpi_kb: Callable[[int], Optional[int]] = lambda dpi: None,
        preset_kb: Optional[int] = 100,
    ):
        self.screen_kb = list(screen_kb)
        self.dpi_kb = dpi_kb
        self.preset_kb = preset_kb
        self.calls: list[tuple] = []

    def render(self, input_path: Path, output_path: Path, preset: Optional[PdfPreset] = None, dpi: Optional[int] = None) -> bool:
        if dpi is not None:
            self.calls.append(("dpi", dpi))
            kb = self.dpi_kb(dpi)
        elif preset == PdfPreset.SCREEN:
            self.calls.append(("preset", preset))
            kb = self.screen_kb.pop(0) if len(self.screen_kb) > 1 else self.screen_kb[0]
        else:
            self.calls.append(("preset", preset))
            kb = self.preset_kb
        return kb is not None and write_kb(output_path, kb).exists()

    def dpis(self) -> list[int]:
        return [value for kind, value in self.calls if kind == "dpi"]


@pytest.mark.parametrize("original_kb, preset", [
    (500, PdfPreset.PRINTER),
    (10_000, PdfPreset.PRINTER),
    (12_000, PdfPreset.EBOOK),
])
def test_preset_for(original_kb: int, preset: PdfPreset):
    assert preset_for(original_kb) == preset


@pytest.mark.parametrize("original_kb, target_kb, expected", [
    (1100, 100, (50, 150)),
    (1000, 100, (72, 250)),
    (500, 100, (72, 250)),
    (300, 100, (100, 400)),
    (250, 100, (100, 400)),
    (200, 100, (150, 600)),
    (150, 100, (150, 600)),
])
def test_dpi_range_for(original_kb: int, target_kb: int, expected: tuple[int, int]):
    search_range = dpi_range_for(original_kb, target_kb)
    assert (search_range.lo, search_range.hi) == expected
    assert search_range.max_probes == 14


@pytest.mark.parametrize("original_kb, preset", [
    (500, PdfPreset.PRINTER),
    (12_000, PdfPreset.EBOOK),
])
def test_no_target_uses_size_based_preset(make_context, leftover_workspaces, original_kb: int, preset: PdfPreset):
    ctx = make_context(original_kb, ".pdf")
    gs = FakeGhostscript(screen_kb=[None], preset_kb=80)

    result = compress_pdf(ctx, gs)

    assert gs.calls == [("preset", preset)]
    assert result.algorithm == f"Smart Compression ({preset.value})"
    assert result.size_kb == 80
    assert not leftover_workspaces()


def test_level_does_not_change_pdf_preset(make_context):
    ctx = make_context(500, ".pdf", level=CompressionLevel.HIGH)
    gs = FakeGhostscript(screen_kb=[None])

    compress_pdf(ctx, gs)

    assert gs.calls == [("preset", PdfPreset.PRINTER)]


def test_preset_failure_is_fatal(make_context):
    ctx = make_context(500, ".pdf")

    with pytest.raises(ToolError):
        compress_pdf(ctx, FakeGhostscript(screen_kb=[None], preset_kb=None))

    assert not ctx.request.output_path.exists()


def test_floor_above_target_keeps_floor_without_searching(make_context, output_of):
    ctx = make_context(10_000, ".pdf", target_kb=1000, assume_yes=True)
    gs = FakeGhostscript(screen_kb=[1200], dpi_kb=lambda dpi: 10)

    result = compress_pdf(ctx, gs)

    assert gs.dpis() == []
    assert result.algorithm == "Floor (Min Quality)"
    assert result.stage == FallbackStage.BEST_EFFORT
    assert result.size_kb == 1200
    assert "Smallest possible: 1200 KB (Target: 1000 KB)" in output_of(ctx)


def test_floor_declined_is_cancelled(make_context, leftover_workspaces):
    ctx = make_context(10_000, ".pdf", target_kb=1000, answers=[False])

    with pytest.raises(CompressionCancelled):
        compress_pdf(ctx, FakeGhostscript(screen_kb=[1200]))

    assert ctx.gate.prompts == ["Save the smallest possible version?"]
    assert not ctx.request.output_path.exists()
    assert not leftover_workspaces()


def test_search_finds_highest_dpi_under_target(make_context, leftover_workspaces):
    ctx = make_context(1000, ".pdf", target_kb=400)
    gs = FakeGhostscript(screen_kb=[150], dpi_kb=lambda dpi: dpi * 3 // 2)

    result = compress_pdf(ctx, gs)

    assert result.algorithm == "Binary Search (267 DPI)"
    assert result.knob == 267
    assert result.size_kb == 400
    dpis = gs.dpis()
    assert 0 < len(dpis) <= 14
    assert all(100 <= dpi <= 400 for dpi in dpis)
    assert not leftover_workspaces()


def test_output_is_the_best_probe_not_the_last(make_context):
    ctx = make_context(1000, ".pdf", target_kb=400)
    # 250 DPI fits; every later probe overshoots.
    gs = FakeGhostscript(screen_kb=[150], dpi_kb=lambda dpi: 390 if dpi <= 250 else 500)

    result = compress_pdf(ctx, gs)

    assert gs.dpis()[-1] != 250
    assert result.knob == 250
    assert result.size_kb == 390


def test_no_dpi_fits_falls_back_to_screen(make_context):
    ctx = make_context(1000, ".pdf", target_kb=400)
    gs = FakeGhostscript(screen_kb=[150], dpi_kb=lambda dpi: 500)

    result = compress_pdf(ctx, gs)

    assert result.algorithm == "Fallback /screen"
    assert result.size_kb == 150
    screen_renders = [call for call in gs.calls if call == ("preset", PdfPreset.SCREEN)]
    assert len(screen_renders) == 1


def test_failed_floor_render_still_searches(make_context):
    ctx = make_context(1000, ".pdf", target_kb=400)
    gs = FakeGhostscript(screen_kb=[None], dpi_kb=lambda dpi: dpi * 3 // 2)

    result = compress_pdf(ctx, gs)

    assert result.knob == 267


def test_failed_floor_render_is_retried_for_fallback(make_context):
    ctx = make_context(1000, ".pdf", target_kb=400)
    gs = FakeGhostscript(screen_kb=[None, 180], dpi_kb=lambda dpi: None)

    result = compress_pdf(ctx, gs)

    assert result.algorithm == "Fallback /screen"
    assert result.size_kb == 180


def test_failed_fallback_render_is_fatal(make_context, leftover_workspaces):
    ctx = make_context(1000, ".pdf", target_kb=400)

    with pytest.raises(ToolError):
        compress_pdf(ctx, FakeGhostscript(screen_kb=[None], dpi_kb=lambda dpi: None))

    assert not leftover_workspaces()


def test_target_not_below_original_keeps_original(make_context):
    ctx = make_context(300, ".pdf", target_kb=500, assume_yes=True)
    gs = FakeGhostscript(screen_kb=[100])

    result = compress_pdf(ctx, gs)

    assert gs.calls == []
    assert result.size_kb == 300


def test_dpi_command_replaces_preset():
    cmd = Ghostscript().command(Path("in.pdf"), Path("out.pdf"), dpi=144)

    assert "-dColorImageResolution=144" in cmd
    assert "-dDownsampleColorImages=true" in cmd
    assert not any(arg.startswith("-dPDFSETTINGS") for arg in cmd)
    assert cmd[-2:] == ["-sOutputFile=out.pdf", "in.pdf"]


def test_preset_command():
    cmd = Ghostscript().command(Path("in.pdf"), Path("out.pdf"), preset=PdfPreset.SCREEN)

    assert "-dPDFSETTINGS=/screen" in cmd
    assert cmd[0] == "gs"
