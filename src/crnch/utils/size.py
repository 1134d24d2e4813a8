"""File size measurement and size-string parsing."""

import re
from pathlib import Path

SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(k|m|kb|mb)?$", re.IGNORECASE)


def size_kb(path: Path) -> int:
    """Size of a file in whole kilobytes (floor). A missing file counts as 0."""
    try:
        return Path(path).stat().st_size // 1024
    except FileNotFoundError:
        return 0


def parse_size(value: str) -> int:
    """Parse a size string like '200', '200k', '1.5m' or '2mb' into KB.

    Raises:
        ValueError: If the string is not a size or rounds down to 0 KB.
    """
    match = SIZE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid size: {value!r}. Use forms like '200k', '1.5m' or '500kb'.")

    amount = float(match.group(1))
    unit = (match.group(2) or "k").lower()
    kb = int(amount * 1024) if unit in ("m", "mb") else int(amount)
    if kb <= 0:
        raise ValueError(f"Target size must be at least 1 KB, got {value!r}.")
    return kb


def format_size(kb: int) -> str:
    """Human-readable size for console output."""
    if kb >= 1024:
        return f"{kb / 1024:.1f} MB"
    if kb == 0:
        return "< 1 KB"
    return f"{kb} KB"
