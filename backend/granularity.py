from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS
# Months are a flat 30 days so bucket boundaries stay reproducible
MONTH_MS = 30 * DAY_MS
YEAR_MS = 365 * DAY_MS


@dataclass
class Granularity:
    symbol: str        # e.g. "1h", "1d", "1w", "1mon"
    name: str          # e.g. "1 hour", "1 day"
    ms_size: int       # bucket width in milliseconds
    max_range_ms: Optional[int]  # widest visible range served by this tier, None = unbounded
    label_format: str  # strftime token for axis labels
    down: Optional['Granularity'] = None
    up: Optional['Granularity'] = None

    def __repr__(self):
        return f"<Granularity {self.symbol} ({self.name})>"


# Create granularity instances
hour = Granularity('1h', '1 hour', HOUR_MS, 7 * DAY_MS, '%b %d, %H:%M')

day = Granularity('1d', '1 day', DAY_MS, 3 * MONTH_MS, '%b %d', down=hour)
hour.up = day

week = Granularity('1w', '1 week', WEEK_MS, 12 * MONTH_MS, '%b %d, %Y', down=day)
day.up = week

month = Granularity('1mon', '1 month', MONTH_MS, None, '%b %Y', down=week)
week.up = month

# Create a lookup dictionary for easy access by symbol
GRANULARITIES: Dict[str, Granularity] = {
    g.symbol: g for g in [hour, day, week, month]
}

# Used before any range is known
DEFAULT_GRANULARITY = month


def pick_granularity(visible_range_ms: int) -> Granularity:
    """
    Determine the appropriate granularity based on the visible time range.

    Each tier covers ranges up to and including its max_range_ms.

    Args:
        visible_range_ms: The visible time range in milliseconds

    Returns:
        Granularity: The finest tier whose range limit covers the visible range
    """
    gran = hour
    while gran.max_range_ms is not None and visible_range_ms > gran.max_range_ms:
        gran = gran.up
    return gran


def choose_interval(start: int, end: int) -> int:
    """Bucket width in milliseconds for the range [start, end]."""
    return pick_granularity(end - start).ms_size


def choose_label_format(start: int, end: int) -> str:
    """strftime token used to label timestamps inside [start, end]."""
    return pick_granularity(end - start).label_format


def format_label(timestamp_ms: int, label_format: str) -> Optional[str]:
    """Render an epoch-millisecond timestamp as a UTC label, None if out of datetime's range."""
    try:
        dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return dt.strftime(label_format)
