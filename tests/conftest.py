import pytest

from schemas import DataPoint

# 2024-01-01T00:00:00Z, aligned to hour and day boundaries
BASE_TS = 1_704_067_200_000
HOUR = 60 * 60 * 1000
DAY = 24 * HOUR


def make_series(pairs):
    return [DataPoint(timestamp=ts, value=value) for ts, value in pairs]


@pytest.fixture
def daily_series():
    """Ten daily samples starting at BASE_TS."""
    return make_series((BASE_TS + i * DAY, 100 + i) for i in range(10))
