"""Shared fixtures: files of a chosen size, scripted prompts and a quiet run context."""

import io
from pathlib import Path
from typing import Optional

import pytest
from rich.console import Console

from crnch.context import RunContext
from crnch.models.request import CompressionLevel, CompressionRequest
from crnch.testing import ScriptedGate, write_kb
from crnch.utils.prompt import ConsoleGate
from crnch.utils.report import Reporter


@pytest.fixture
def make_context(tmp_path: Path):
    """Build a RunContext for an input of ``input_kb`` KB inside tmp_path.

    Pass ``answers`` for a scripted gate, or ``assume_yes=True`` for the
    auto-yes gate. ``output_name`` overrides the default ``output<suffix>``.
    """
    def _make(
        input_kb: int,
        suffix: str,
        *,
        target_kb: Optional[int] = None,
        level: Optional[CompressionLevel] = None,
        answers: Optional[list[bool]] = None,
        assume_yes: bool = False,
        nerd: bool = False,
        output_name: Optional[str] = None,
    ) -> RunContext:
        input_path = tmp_path / f"input{suffix}"
        write_kb(input_path, input_kb)
        request = CompressionRequest(
            input_path=input_path,
            output_path=tmp_path / (output_name or f"output{suffix}"),
            target_kb=target_kb,
            level=level,
            assume_yes=assume_yes,
        )
        console = Console(file=io.StringIO(), width=120)
        gate = ConsoleGate(console, assume_yes=True) if assume_yes else ScriptedGate(answers or [])
        return RunContext(request=request, gate=gate, reporter=Reporter(console, nerd=nerd))

    return _make


def console_text(ctx: RunContext) -> str:
    return ctx.reporter.console.file.getvalue()


@pytest.fixture
def output_of():
    return console_text


@pytest.fixture
def leftover_workspaces(tmp_path: Path):
    """Return a callable listing temp workspaces still present in tmp_path."""
    return lambda: list(tmp_path.glob(".crnch-*"))
