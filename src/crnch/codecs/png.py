"""oxipng and pngquant wrappers for the PNG engine."""

from pathlib import Path

from crnch.codecs.imagemagick import MagickTransforms
from crnch.codecs.runner import run_tool

OXIPNG_ARGS = ["-o", "2", "--strip", "safe", "--quiet"]


class PngCodec(MagickTransforms):
    """Every PNG operation the waterfall needs."""

    def strip_metadata(self, input_path: Path, output_path: Path) -> bool:
        return run_tool(["oxipng", *OXIPNG_ARGS, "--out", str(output_path), str(input_path)])

    def quantize(self, input_path: Path, output_path: Path, quality: tuple[int, int]) -> bool:
        # pngquant exits 99 when it cannot reach the minimum quality.
        low, high = quality
        return run_tool([
            "pngquant", "--quality", f"{low}-{high}", "--force",
            "--output", str(output_path), str(input_path),
        ])

    def polish(self, path: Path) -> bool:
        """Lossless repack in place."""
        return run_tool(["oxipng", *OXIPNG_ARGS, str(path)])
