"""Active range derivation for the comparison chart."""

import time
from typing import Iterable, List, Optional, Sequence, Tuple

from granularity import YEAR_MS
from schemas import ActiveRange, DataPoint


def now_ms() -> int:
    return int(time.time() * 1000)


def observed_range(series: Sequence[DataPoint]) -> Optional[Tuple[int, int]]:
    """First and last timestamps of a fetched series, or None if empty."""
    if not series:
        return None
    return series[0].timestamp, series[-1].timestamp


def fallback_range(now: Optional[int] = None) -> ActiveRange:
    """The most recent 365 days."""
    if now is None:
        now = now_ms()
    return ActiveRange(start=now - YEAR_MS, end=now)


def default_range(all_series: Iterable[Sequence[DataPoint]], now: Optional[int] = None) -> ActiveRange:
    """
    Intersection of every series' observed range.

    Args:
        all_series: Raw series of each tracked entity
        now: Current time in epoch ms, defaults to the wall clock

    Returns:
        ActiveRange: The intersection, or the last 365 days when the ranges
        are disjoint or no series has data
    """
    max_start = None
    min_end = None
    for series in all_series:
        observed = observed_range(series)
        if observed is None:
            continue
        start, end = observed
        max_start = start if max_start is None else max(max_start, start)
        min_end = end if min_end is None else min(min_end, end)

    if max_start is not None and max_start <= min_end:
        return ActiveRange(start=max_start, end=min_end)
    return fallback_range(now)


def normalize(start: int, end: int) -> ActiveRange:
    """Build a range, swapping the bounds if they arrive reversed."""
    if start > end:
        start, end = end, start
    return ActiveRange(start=start, end=end)


def shift(active_range: ActiveRange, amount_ms: int) -> ActiveRange:
    return ActiveRange(start=active_range.start + amount_ms, end=active_range.end + amount_ms)


def filter_to_range(points: Iterable[DataPoint], active_range: ActiveRange) -> List[DataPoint]:
    """Points with start <= timestamp <= end."""
    return [p for p in points if active_range.start <= p.timestamp <= active_range.end]
