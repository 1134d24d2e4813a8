"""Pydantic models describing a compression run and its outcome."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CompressionLevel(str, Enum):
    """Named compression levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ImageMagick -quality for a named level when no byte target is given.
JPEG_LEVEL_QUALITY = {
    CompressionLevel.LOW: 85,
    CompressionLevel.MEDIUM: 75,
    CompressionLevel.HIGH: 50,
}


class FallbackStage(str, Enum):
    """How far down the fallback waterfall a run descended, in waterfall order."""
    NONE = "none"
    QUANTIZE = "quantize"
    GRAYSCALE = "grayscale"
    RESIZE = "resize"
    BEST_EFFORT = "best_effort"


class CompressionRequest(BaseModel):
    """Everything the engines need to know about one invocation."""

    model_config = ConfigDict(frozen=True)

    input_path: Path
    output_path: Path
    target_kb: Optional[int] = Field(None, gt=0, description="Target size in KB")
    level: Optional[CompressionLevel] = None
    assume_yes: bool = Field(False, description="Answer yes to every prompt")

    @property
    def extension(self) -> str:
        return self.input_path.suffix.lower().lstrip(".")


class CompressionResult(BaseModel):
    """Outcome of an engine run."""
    algorithm: str
    stage: FallbackStage = FallbackStage.NONE
    knob: Optional[int] = None
    size_kb: int = Field(..., ge=0)
    time_ms: int = Field(0, ge=0)
