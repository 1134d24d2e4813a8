"""Per-run scratch directory for intermediate artifacts."""

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class Workspace:
    """Names stage artifacts inside a temporary directory.

    Every stage gets its own file, named by a stage suffix, so a stage never
    clobbers another stage's output.
    """

    def __init__(self, root: Path, extension: str):
        self.root = root
        self.extension = extension

    def path(self, stage: str) -> Path:
        return self.root / f"{stage}{self.extension}"

    def keep(self, source: Path, stage: str) -> Path:
        """Copy ``source`` aside under a new stage name and return the copy."""
        destination = self.path(stage)
        shutil.copyfile(source, destination)
        return destination


@contextmanager
def workspace(output_path: Path, extension: str) -> Iterator[Workspace]:
    """Yield a Workspace next to ``output_path``; the directory is removed on exit.

    ``extension`` is the input format's suffix. ImageMagick picks its encoder
    from the artifact name, so every stage file carries it.
    """
    with tempfile.TemporaryDirectory(prefix=".crnch-", dir=output_path.parent) as tmpdir:
        yield Workspace(Path(tmpdir), extension.lower())


def promote(artifact: Path, output_path: Path) -> None:
    """Copy the chosen artifact to the final output path."""
    shutil.copyfile(artifact, output_path)
