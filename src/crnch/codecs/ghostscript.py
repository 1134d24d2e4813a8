"""Ghostscript wrapper for PDF rewriting."""

from enum import Enum
from pathlib import Path
from typing import Optional

from crnch.codecs.runner import run_tool


class PdfPreset(str, Enum):
    """Ghostscript -dPDFSETTINGS presets, most aggressive first."""
    SCREEN = "/screen"
    EBOOK = "/ebook"
    PRINTER = "/printer"


class Ghostscript:
    """Render a PDF through Ghostscript's pdfwrite device."""

    binary = "gs"

    def command(self, input_path: Path, output_path: Path, preset: Optional[PdfPreset] = None, dpi: Optional[int] = None) -> list[str]:
        cmd = [
            self.binary,
            "-sDEVICE=pdfwrite",
            "-dCompatibilityLevel=1.4",
            "-dCompressFonts=true",
            "-dSubsetFonts=true",
        ]
        if dpi is not None:
            # An explicit DPI replaces the preset's image resolutions.
            cmd += [
                "-dDownsampleColorImages=true",
                "-dDownsampleGrayImages=true",
                "-dDownsampleMonoImages=true",
                f"-dColorImageResolution={dpi}",
                f"-dGrayImageResolution={dpi}",
                f"-dMonoImageResolution={dpi}",
            ]
        else:
            cmd.append(f"-dPDFSETTINGS={(preset or PdfPreset.PRINTER).value}")
        cmd += ["-dNOPAUSE", "-dQUIET", "-dBATCH", f"-sOutputFile={output_path}", str(input_path)]
        return cmd

    def render(self, input_path: Path, output_path: Path, preset: Optional[PdfPreset] = None, dpi: Optional[int] = None) -> bool:
        return run_tool(self.command(input_path, output_path, preset, dpi))
