"""Yes/no decisions at fallback boundaries."""

import logging
from typing import Protocol

from rich.console import Console
from rich.prompt import Confirm

logger = logging.getLogger(__name__)


class InteractionGate(Protocol):
    def confirm(self, prompt: str, default: bool) -> bool: ...


class ConsoleGate:
    """Ask on the console, or answer yes to everything when ``assume_yes`` is set."""

    def __init__(self, console: Console, assume_yes: bool = False):
        self.console = console
        self.assume_yes = assume_yes

    def confirm(self, prompt: str, default: bool) -> bool:
        if self.assume_yes:
            logger.debug(f"Auto-yes: {prompt}")
            return True
        return Confirm.ask(f"   {prompt}", default=default, console=self.console)
