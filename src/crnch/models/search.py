"""Pydantic models for the bounded binary search."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SearchRange(BaseModel):
    """Integer bounds over a knob plus the probe budget for one search."""
    lo: int
    hi: int
    max_probes: int = Field(..., gt=0)

    @model_validator(mode="after")
    def check_bounds(self) -> "SearchRange":
        if self.lo > self.hi:
            raise ValueError(f"empty search range [{self.lo}, {self.hi}]")
        return self


class ProbeResult(BaseModel):
    """A single codec invocation at one knob value."""
    knob: int
    size_kb: int = Field(..., ge=0)
    ok: bool


class BestCandidate(BaseModel):
    """The most extreme knob value observed to meet the target."""
    knob: int
    size_kb: int = Field(..., ge=0)


class SearchResult(BaseModel):
    """What a search returns. ``lo``/``hi`` are the final bounds, for reporting only."""
    best: Optional[BestCandidate] = None
    attempts: int = 0
    lo: int
    hi: int

    @property
    def found(self) -> bool:
        return self.best is not None
