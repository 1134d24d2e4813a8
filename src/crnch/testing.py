"""Helpers shared by the test modules: sized files and scripted prompts."""

from pathlib import Path


def write_kb(path: Path, kb: int) -> Path:
    """Create a (sparse) file of exactly ``kb`` kilobytes and return its path."""
    with open(path, "wb") as f:
        f.truncate(kb * 1024)
    return path


class ScriptedGate:
    """Answers prompts from a fixed list and records what was asked."""

    def __init__(self, answers: list[bool]):
        self.answers = list(answers)
        self.prompts: list[str] = []

    def confirm(self, prompt: str, default: bool) -> bool:
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {prompt}")
        return self.answers.pop(0)
