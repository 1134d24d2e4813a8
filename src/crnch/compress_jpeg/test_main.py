"""Tests for the JPEG engine with a fake jpegoptim/ImageMagick codec."""

from collections.abc import Callable
from pathlib import Path
from typing import Optional
from unittest.mock import patch

import pytest

from crnch.codecs.jpeg import JpegCodec
from crnch.compress_jpeg.main import compress_jpeg
from crnch.errors import ToolError
from crnch.models.request import CompressionLevel, FallbackStage
from crnch.testing import write_kb
from crnch.utils.size import size_kb


class FakeJpegCodec:
    def __init__(
        self,
        lossless_kb: Optional[int],
        extent_kb: Callable[[int], Optional[int]] = lambda extent: extent,
        quality_kb: Callable[[int], Optional[int]] = lambda quality: quality * 5,
        gray_kb: Optional[int] = None,
    ):
        self.lossless_kb = lossless_kb
        self.extent_kb = extent_kb
        self.quality_kb = quality_kb
        self.gray_kb = gray_kb
        self.calls: list[tuple] = []

    def lossless_optimize(self, input_path: Path, output_path: Path) -> bool:
        self.calls.append(("jpegoptim",))
        return self.lossless_kb is not None and write_kb(output_path, self.lossless_kb).exists()

    def lossy(self, input_path: Path, output_path: Path, extent_kb: Optional[int] = None, quality: Optional[int] = None) -> bool:
        self.calls.append(("lossy", input_path.name, size_kb(input_path), extent_kb, quality))
        kb = self.extent_kb(extent_kb) if extent_kb is not None else self.quality_kb(quality)
        return kb is not None and write_kb(output_path, kb).exists()

    def to_grayscale(self, input_path: Path, output_path: Path) -> bool:
        self.calls.append(("grayscale",))
        return self.gray_kb is not None and write_kb(output_path, self.gray_kb).exists()

    def resize(self, input_path: Path, output_path: Path, scale: int) -> bool:
        self.calls.append(("resize", scale))
        return write_kb(output_path, size_kb(input_path) * scale // 100).exists()

    def extents(self) -> list[int]:
        return [call[3] for call in self.calls if call[0] == "lossy"]


def test_ladder_keeps_first_rung_that_fits(make_context, leftover_workspaces):
    ctx = make_context(1000, ".jpg")
    codec = FakeJpegCodec(lossless_kb=980, extent_kb=lambda extent: 580)

    result = compress_jpeg(ctx, codec)

    assert codec.extents() == [600]
    assert result.algorithm == "jpegoptim + magick (Standard Preset, target 600 KB)"
    assert result.knob == 60
    assert result.size_kb == 580
    assert not leftover_workspaces()


def test_ladder_relaxes_until_a_rung_fits(make_context):
    ctx = make_context(1000, ".jpg")
    codec = FakeJpegCodec(
        lossless_kb=980,
        extent_kb=lambda extent: extent + 10 if extent < 750 else extent - 10,
    )

    result = compress_jpeg(ctx, codec)

    assert codec.extents() == [600, 650, 700, 750]
    assert result.knob == 75
    assert result.algorithm == "jpegoptim + magick (Standard Preset, target 750 KB)"
    assert result.size_kb == 740


def test_ladder_without_a_hit_keeps_original(make_context, output_of):
    ctx = make_context(1000, ".jpg")
    codec = FakeJpegCodec(lossless_kb=980, extent_kb=lambda extent: extent + 1)

    result = compress_jpeg(ctx, codec)

    assert len(codec.extents()) == 8
    assert result.algorithm == "jpegoptim + magick (No reduction, original kept)"
    assert ctx.request.output_path.read_bytes() == ctx.request.input_path.read_bytes()
    assert "Keeping original" in output_of(ctx)


def test_ladder_skips_rungs_that_round_to_zero(make_context):
    ctx = make_context(1, ".jpg")
    codec = FakeJpegCodec(lossless_kb=1)

    result = compress_jpeg(ctx, codec)

    assert codec.extents() == []
    assert result.size_kb == 1


def test_jpegoptim_failure_continues_from_a_copy_of_the_original(make_context):
    ctx = make_context(1000, ".jpg")
    codec = FakeJpegCodec(lossless_kb=None, extent_kb=lambda extent: 590)

    result = compress_jpeg(ctx, codec)

    lossy_call = next(call for call in codec.calls if call[0] == "lossy")
    assert lossy_call[1] == "jpegoptim.jpg"
    assert lossy_call[2] == 1000
    assert result.size_kb == 590


def test_lossless_pass_meeting_target_stops_early(make_context):
    ctx = make_context(1000, ".jpg", target_kb=900)
    codec = FakeJpegCodec(lossless_kb=850)

    result = compress_jpeg(ctx, codec)

    assert codec.extents() == []
    assert result.algorithm == "jpegoptim (Lossless)"
    assert result.size_kb == 850


def test_single_lossy_pass_uses_target_as_extent(make_context):
    ctx = make_context(1000, ".jpg", target_kb=500)
    codec = FakeJpegCodec(lossless_kb=900, extent_kb=lambda extent: 480)

    result = compress_jpeg(ctx, codec)

    assert codec.extents() == [500]
    assert result.algorithm == "jpegoptim + ImageMagick"
    assert result.stage == FallbackStage.NONE
    assert result.size_kb == 480


def test_missed_extent_enters_grayscale_waterfall(make_context):
    ctx = make_context(1000, ".jpg", target_kb=500, answers=[True])
    codec = FakeJpegCodec(lossless_kb=900, extent_kb=lambda extent: 600, gray_kb=450)

    result = compress_jpeg(ctx, codec)

    assert result.algorithm == "JPG + Grayscale"
    assert result.stage == FallbackStage.GRAYSCALE
    assert result.size_kb == 450


def test_missed_extent_resizes_on_auto_yes(make_context):
    ctx = make_context(1000, ".jpg", target_kb=500, assume_yes=True)
    codec = FakeJpegCodec(lossless_kb=900, extent_kb=lambda extent: 600)

    result = compress_jpeg(ctx, codec)

    assert result.stage == FallbackStage.RESIZE
    assert result.algorithm.startswith("JPG + Resize ")
    assert result.size_kb <= 500


@pytest.mark.parametrize("level, quality", [
    (CompressionLevel.LOW, 85),
    (CompressionLevel.MEDIUM, 75),
    (CompressionLevel.HIGH, 50),
])
def test_level_maps_to_fixed_quality(make_context, level: CompressionLevel, quality: int):
    ctx = make_context(1000, ".jpg", level=level)
    codec = FakeJpegCodec(lossless_kb=950)

    result = compress_jpeg(ctx, codec)

    lossy_calls = [call for call in codec.calls if call[0] == "lossy"]
    assert [call[4] for call in lossy_calls] == [quality]
    assert result.algorithm == f"jpegoptim + ImageMagick (Quality {quality})"
    assert result.knob == quality


def test_lossy_failure_is_fatal(make_context, leftover_workspaces):
    ctx = make_context(1000, ".jpg", target_kb=500)

    with pytest.raises(ToolError):
        compress_jpeg(ctx, FakeJpegCodec(lossless_kb=900, extent_kb=lambda extent: None))

    assert not leftover_workspaces()


def test_target_not_below_original_keeps_original(make_context):
    ctx = make_context(400, ".jpeg", target_kb=2000, assume_yes=True)
    codec = FakeJpegCodec(lossless_kb=300)

    result = compress_jpeg(ctx, codec)

    assert codec.calls == []
    assert result.size_kb == 400


def test_lossy_command_uses_extent_or_quality():
    codec = JpegCodec()
    with patch("crnch.codecs.jpeg.run_tool", return_value=True) as run_tool:
        codec.lossy(Path("in.jpg"), Path("out.jpg"), extent_kb=300)
        codec.lossy(Path("in.jpg"), Path("out.jpg"), quality=50)

    extent_cmd, quality_cmd = (call.args[0] for call in run_tool.call_args_list)
    assert "jpeg:extent=300KB" in extent_cmd
    assert quality_cmd[quality_cmd.index("-quality") + 1] == "50"
    assert extent_cmd[-1] == quality_cmd[-1] == "out.jpg"


def test_artifacts_carry_the_jpeg_extension_whatever_the_output_is_named(make_context):
    ctx = make_context(1000, ".jpg", target_kb=500, output_name="small.jpeg")
    codec = FakeJpegCodec(lossless_kb=900, extent_kb=lambda extent: 480)

    compress_jpeg(ctx, codec)

    lossy_inputs = [call[1] for call in codec.calls if call[0] == "lossy"]
    assert lossy_inputs == ["jpegoptim.jpg"]
