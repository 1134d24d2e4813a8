"""Console output: progress bars in normal mode, detailed tables in nerd mode."""

import platform
from collections.abc import Callable
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from PIL import Image
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from crnch.models.request import CompressionResult
from crnch.models.search import ProbeResult
from crnch.utils.size import format_size

ProbeCallback = Callable[[int, ProbeResult, str, float], None]


class Reporter:
    """Carries the console and the nerd flag through a run.

    Nerd mode replaces progress bars with stage headers, tool commands and
    one line per search probe.
    """

    def __init__(self, console: Console, nerd: bool = False):
        self.console = console
        self.nerd = nerd

    # Always shown

    def info(self, message: str) -> None:
        self.console.print(message)

    def warn(self, message: str) -> None:
        self.console.print(f"\n[bold yellow]WARNING:[/bold yellow] {message}")

    def tradeoff(self, label: str, achieved_kb: int, target_kb: int) -> None:
        """Show what was reached against what was asked for, before a consent prompt."""
        self.console.print(f"   {label}: [cyan]{achieved_kb} KB[/cyan] (Target: [red]{target_kb} KB[/red])")

    @contextmanager
    def progress(self, total: int, description: str) -> Iterator[Callable[[int], None]]:
        """Yield ``update(completed)``; a no-op in nerd mode."""
        if self.nerd:
            yield lambda completed: None
            return

        with Progress(
            TextColumn("   [progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        ) as progress:
            task = progress.add_task(description, total=total)
            yield lambda completed: progress.update(task, completed=min(completed, total))
            progress.update(task, completed=total)

    def summary(self, input_path: Path, output_path: Path, old_kb: int, new_kb: int) -> None:
        if new_kb <= old_kb:
            saved = (old_kb - new_kb) / old_kb * 100 if old_kb else 0.0
            change = f"{saved:.1f}% reduction"
        else:
            change = "[yellow]file grew[/yellow]"
        self.console.print(
            f"[bold green]Compressed:[/bold green] {input_path.name} → {output_path.name} "
            f"({format_size(old_kb)} → {format_size(new_kb)}, {change})"
        )

    # Nerd mode only

    def stage(self, number: int, name: str) -> None:
        if not self.nerd:
            return
        self.console.rule(f"[bold yellow]\\[STAGE {number}][/bold yellow] [bold]{name}[/bold]", align="left")

    def detail(self, label: str, value: str = "", last: bool = False) -> None:
        if not self.nerd:
            return
        prefix = "  └─" if last else "  ├─"
        if value:
            self.console.print(f"[dim]{prefix} {label}:[/dim] {value}")
        else:
            self.console.print(f"[dim]{prefix}[/dim] [yellow]{label}[/yellow]")

    def probe_callback(
        self,
        knob_format: str,
        max_probes: int,
        target_kb: int,
        advance: Optional[Callable[[int], None]] = None,
    ) -> ProbeCallback:
        """Build an ``on_probe`` hook for a search.

        ``knob_format`` is a format string with a ``{knob}`` field, e.g.
        ``"{knob:>4} DPI"``.
        """
        def on_probe(attempt: int, probe: ProbeResult, action: str, elapsed_ms: float) -> None:
            if advance is not None:
                advance(attempt)
            if not self.nerd:
                return
            prefix = "  └─" if attempt == max_probes else "  ├─"
            knob = knob_format.format(knob=probe.knob)
            if not probe.ok:
                self.console.print(f"{prefix} [{attempt:>2}/{max_probes}] {knob} -> [red]tool failed[/red] | next: [dim]{action}[/dim]")
                return
            if probe.size_kb <= target_kb:
                status, delta = "[green]OK[/green]", f"[green]-{target_kb - probe.size_kb} KB[/green]"
            else:
                status, delta = "[red]XX[/red]", f"[red]+{probe.size_kb - target_kb} KB[/red]"
            self.console.print(
                f"{prefix} [{attempt:>2}/{max_probes}] {knob} -> {probe.size_kb:>4} KB [{status}] ({delta}) "
                f"| {elapsed_ms:.0f}ms | next: [dim]{action}[/dim]",
                highlight=False,
            )

        return on_probe

    def banner(self, tool_versions: dict[str, str]) -> None:
        if not self.nerd:
            return
        table = Table.grid(padding=(0, 2))
        table.add_column(style="dim")
        table.add_column()
        table.add_row("OS:", platform.platform())
        table.add_row("Arch:", platform.machine() or "unknown")
        table.add_row("Python:", platform.python_version())
        for tool, version in tool_versions.items():
            table.add_row(f"[green]{tool}:[/green]", version)
        self.console.print(Panel(table, title="SYSTEM INFORMATION", border_style="cyan"))

    def file_info(self, path: Path, original_kb: int, target_kb: Optional[int]) -> None:
        if not self.nerd:
            return
        table = Table.grid(padding=(0, 2))
        table.add_column(style="dim")
        table.add_column()
        table.add_row("Filename:", f"[green]{path.name}[/green]")
        table.add_row("Type:", f"[yellow]{path.suffix.lstrip('.').upper()}[/yellow]")
        table.add_row("Path:", str(path.resolve()))
        table.add_row("Size:", f"{path.stat().st_size:,} bytes ({format_size(original_kb)})")

        dimensions = image_dimensions(path)
        if dimensions is not None:
            width, height = dimensions
            table.add_row("Dimensions:", f"{width}x{height} pixels ({width * height / 1_000_000:.2f} MP)")

        if target_kb is not None:
            reduction = (original_kb - target_kb) / original_kb * 100 if original_kb > target_kb else 0.0
            ratio = original_kb / target_kb
            table.add_row("Target:", f"[cyan]{target_kb} KB[/cyan]")
            table.add_row("Reduction:", f"[yellow]{reduction:.0f}%[/yellow]")
            table.add_row("Ratio:", f"{ratio:.2f}:1")
        else:
            table.add_row("Target:", "Auto (preset-based)")
        self.console.print(Panel(table, title="INPUT FILE", border_style="cyan"))

    def result(self, output_path: Path, old_kb: int, result: CompressionResult) -> None:
        if not self.nerd:
            return
        new_kb = result.size_kb
        reduction = (old_kb - new_kb) / old_kb * 100 if old_kb and new_kb <= old_kb else 0.0
        ratio = old_kb / new_kb if new_kb else 1.0
        table = Table.grid(padding=(0, 2))
        table.add_column(style="dim")
        table.add_column()
        table.add_row("Output File:", f"[green]{output_path.name}[/green]")
        table.add_row("Method:", f"[cyan]{result.algorithm}[/cyan]")
        table.add_row("Stage:", result.stage.value)
        table.add_row("Size:", f"{format_size(old_kb)} → [green]{format_size(new_kb)}[/green]")
        table.add_row("Reduction:", f"{reduction:.1f}% ({max(old_kb - new_kb, 0)} KB saved)")
        table.add_row("Ratio:", f"{ratio:.2f}:1")
        table.add_row("Time:", f"{result.time_ms / 1000:.2f}s")
        self.console.print(Panel(table, title="COMPRESSION RESULT", border_style="green"))


def image_dimensions(path: Path) -> Optional[tuple[int, int]]:
    """Pixel dimensions of a JPEG or PNG, or None for anything else."""
    if path.suffix.lower() not in (".jpg", ".jpeg", ".png"):
        return None
    try:
        with Image.open(path) as img:
            return img.size
    except OSError:
        return None
