"""Core logic for the bounded binary search over an integer knob.

Higher knob values (DPI, quality, scale) are assumed to give larger or equal
output. Real codecs only roughly follow that, so the answer is always the best
success actually observed, never the point where the bounds collapse.
"""

import logging
import time
from collections.abc import Callable
from typing import Optional

from crnch.models.search import BestCandidate, ProbeResult, SearchRange, SearchResult

logger = logging.getLogger(__name__)

ProbeFn = Callable[[int], tuple[int, bool]]
BestCallback = Callable[[BestCandidate], None]
ProbeCallback = Callable[[int, ProbeResult, str, float], None]

# Knob ranges used by the engines.
PNG_QUALITY_RANGE = SearchRange(lo=30, hi=100, max_probes=8)
SCALE_RANGE = SearchRange(lo=1, hi=100, max_probes=8)
PDF_MAX_PROBES = 14


def binary_search(
    search_range: SearchRange,
    target_kb: int,
    probe: ProbeFn,
    on_best: Optional[BestCallback] = None,
    on_probe: Optional[ProbeCallback] = None,
) -> SearchResult:
    """Find the highest knob in range whose output is at most ``target_kb``.

    Args:
        search_range: Inclusive bounds and the probe budget.
        target_kb: Size ceiling a probe must meet.
        probe: Runs the codec at a knob value and returns ``(size_kb, ok)``.
            ``ok`` is False when the tool failed; that knob and everything
            above it are dropped from the range.
        on_best: Called with each new best candidate, right after the probe
            that produced it, so the caller can keep that artifact.
        on_probe: Called after every probe with
            ``(attempt, probe_result, action, elapsed_ms)``.

    Returns:
        The best candidate (None if no probe met the target) and the number
        of probes used.
    """
    lo, hi = search_range.lo, search_range.hi
    best: Optional[BestCandidate] = None
    attempts = 0

    while lo <= hi and attempts < search_range.max_probes:
        attempts += 1
        mid = (lo + hi) // 2
        started = time.perf_counter()
        size_kb, ok = probe(mid)
        elapsed_ms = (time.perf_counter() - started) * 1000
        result = ProbeResult(knob=mid, size_kb=size_kb, ok=ok)

        if not ok:
            hi = mid - 1
            action = "max=mid-1 (tool failed)"
        elif size_kb <= target_kb:
            if best is None or mid > best.knob:
                best = BestCandidate(knob=mid, size_kb=size_kb)
                if on_best is not None:
                    on_best(best)
            lo = mid + 1
            action = "min=mid+1"
        else:
            hi = mid - 1
            action = "max=mid-1"

        logger.debug(f"Probe {attempts}/{search_range.max_probes}: knob={mid} size={size_kb} KB ok={ok} -> {action}")
        if on_probe is not None:
            on_probe(attempts, result, action, elapsed_ms)

    return SearchResult(best=best, attempts=attempts, lo=lo, hi=hi)
