"""jpegoptim and ImageMagick wrappers for the JPEG engine."""

from pathlib import Path
from typing import Optional

from crnch.codecs.imagemagick import MagickTransforms
from crnch.codecs.runner import run_tool


class JpegCodec(MagickTransforms):
    """Every JPEG operation the engine needs."""

    def lossless_optimize(self, input_path: Path, output_path: Path) -> bool:
        return run_tool(["jpegoptim", "--strip-all", "--stdout", str(input_path)], stdout_path=output_path)

    def lossy(self, input_path: Path, output_path: Path, extent_kb: Optional[int] = None, quality: Optional[int] = None) -> bool:
        """Re-encode with a byte ceiling (``jpeg:extent``) or a fixed quality."""
        cmd = [self.magick, str(input_path), "-strip", "-sampling-factor", "4:4:4", "-interlace", "Plane"]
        if extent_kb is not None:
            cmd += ["-define", f"jpeg:extent={extent_kb}KB"]
        else:
            cmd += ["-quality", str(quality if quality is not None else 80)]
        cmd.append(str(output_path))
        return run_tool(cmd)
