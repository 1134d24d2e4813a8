"""ImageMagick transforms shared by the PNG and JPEG codecs."""

from pathlib import Path

from crnch.codecs.runner import run_tool


class MagickTransforms:
    """Grayscale and resize via the ``magick`` entry point (ImageMagick 7)."""

    magick = "magick"

    def to_grayscale(self, input_path: Path, output_path: Path) -> bool:
        return run_tool([self.magick, str(input_path), "-colorspace", "Gray", "-depth", "8", str(output_path)])

    def resize(self, input_path: Path, output_path: Path, scale: int) -> bool:
        return run_tool([self.magick, str(input_path), "-resize", f"{scale}%", str(output_path)])
