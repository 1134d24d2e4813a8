"""Per-run context threaded through every engine call."""

from dataclasses import dataclass

from crnch.models.request import CompressionRequest
from crnch.utils.prompt import InteractionGate
from crnch.utils.report import Reporter


@dataclass
class RunContext:
    """The request plus the collaborators that talk to the user."""
    request: CompressionRequest
    gate: InteractionGate
    reporter: Reporter

    @property
    def target_kb(self) -> int | None:
        return self.request.target_kb
