import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from granularity import pick_granularity
from ranges import filter_to_range
from schemas import ActiveRange, AggregatedPoint, ChartData, DataPoint, Entity

# Spikes must clear max(stddev * 1.5, mean * 0.5) above the bucket mean
STDDEV_FACTOR = 1.5
MEAN_FACTOR = 0.5


def round_half_away(x: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def bucket_key(timestamp: int, interval_ms: int) -> int:
    """Canonical start of the bucket holding timestamp."""
    return (timestamp // interval_ms) * interval_ms


def _summarize_bucket(key: int, points: List[DataPoint]) -> List[AggregatedPoint]:
    """
    Collapse one bucket into a representative point plus any upward spikes.

    Args:
        key: Bucket boundary timestamp
        points: Raw points falling in the bucket (at least one)

    Returns:
        list: The representative point at key, followed by outliers at
        their original timestamps
    """
    if len(points) == 1:
        # Re-timestamp to the boundary so entities line up when merged
        return [AggregatedPoint(timestamp=key, value=points[0].value)]

    values = [p.value for p in points]
    n = len(values)
    mean = sum(values) / n
    median = sorted(values)[n // 2]
    std_dev = math.sqrt(sum((v - mean) ** 2 for v in values) / n)

    threshold = max(std_dev * STDDEV_FACTOR, mean * MEAN_FACTOR)

    # Only spikes above the mean are kept; dips are averaged away
    outliers = []
    normal = []
    for p in points:
        if p.value > mean and (p.value - mean) > threshold:
            outliers.append(p)
        else:
            normal.append(p)

    if normal:
        value = round_half_away(sum(p.value for p in normal) / len(normal))
    else:
        value = round_half_away(median)

    return [AggregatedPoint(timestamp=key, value=value)] + outliers


def aggregate(points: Iterable[DataPoint], interval_ms: int) -> List[AggregatedPoint]:
    """
    Bucket raw points into fixed-width windows, preserving upward spikes.

    Input need not be sorted or deduplicated. The result is always sorted
    ascending by timestamp.

    Args:
        points: Raw points for a single entity
        interval_ms: Bucket width in milliseconds

    Returns:
        list: Aggregated points
    """
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be positive, got {interval_ms}")

    buckets: Dict[int, List[DataPoint]] = {}
    for point in points:
        buckets.setdefault(bucket_key(point.timestamp, interval_ms), []).append(point)

    result: List[AggregatedPoint] = []
    for key, bucket_points in buckets.items():
        result.extend(_summarize_bucket(key, bucket_points))

    result.sort(key=lambda p: p.timestamp)
    return result


def merge(series: Iterable[Tuple[str, Sequence[AggregatedPoint]]]) -> List[Dict[str, int]]:
    """
    Align several entities' aggregated series into one sparse table.

    Args:
        series: (display_name, aggregated points) pairs

    Returns:
        list: Rows of {"timestamp": ts, display_name: value, ...} sorted by
        timestamp. Entities without a point at ts are absent from that row.
    """
    rows: Dict[int, Dict[str, int]] = {}
    for display_name, points in series:
        for point in points:
            row = rows.get(point.timestamp)
            if row is None:
                row = rows[point.timestamp] = {"timestamp": point.timestamp}
            row[display_name] = point.value

    return [rows[ts] for ts in sorted(rows)]


def build_chart(entities: Sequence[Entity], active_range: Optional[ActiveRange]) -> ChartData:
    """
    Run the full pipeline: filter to range, bucket per entity, merge.

    Args:
        entities: Entities with their raw series
        active_range: Visible window, or None when nothing is tracked

    Returns:
        ChartData: Merged rows plus the interval and label format used
    """
    if not entities or active_range is None:
        return ChartData(rows=[])

    gran = pick_granularity(active_range.end - active_range.start)

    aggregated = [
        (entity.display_name, aggregate(filter_to_range(entity.series, active_range), gran.ms_size))
        for entity in entities
    ]

    return ChartData(
        rows=merge(aggregated),
        start=active_range.start,
        end=active_range.end,
        interval_ms=gran.ms_size,
        granularity=gran.symbol,
        label_format=gran.label_format,
    )
