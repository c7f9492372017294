from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


class DataPoint(BaseModel):
    """Schema for a single timestamped sample (epoch milliseconds)."""
    model_config = ConfigDict(frozen=True)

    timestamp: int
    value: int


# Raw samples and bucketed output share a shape
RawPoint = DataPoint
AggregatedPoint = DataPoint


class SeriesStats(BaseModel):
    """Basic statistics about one series."""
    count: int
    min_timestamp: Optional[int] = None
    max_timestamp: Optional[int] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None


class DataPointResponse(BaseModel):
    """Schema for a raw history response."""
    data: List[DataPoint]
    stats: Optional[SeriesStats] = None


class SearchResult(BaseModel):
    """Schema for one game returned by the search provider."""
    id: int
    display_name: str
    thumbnail_url: Optional[str] = None


class SearchResponse(BaseModel):
    items: List[SearchResult]


class CurrentPlayers(BaseModel):
    player_count: int = 0
    result: int = 0


class Entity(BaseModel):
    """Schema for a tracked game and its raw series."""
    id: int
    display_name: str
    series: List[DataPoint] = Field(default_factory=list)


class ActiveRange(BaseModel):
    """Schema for the visible time window."""
    model_config = ConfigDict(frozen=True)

    start: int
    end: int


class ChartRequest(BaseModel):
    """Schema for chart request."""
    entities: List[Entity]
    start: Optional[int] = None
    end: Optional[int] = None


class ChartData(BaseModel):
    """Schema for the merged, bucketed table handed to the chart renderer."""
    rows: List[Dict[str, int]]
    start: Optional[int] = None
    end: Optional[int] = None
    interval_ms: Optional[int] = None
    granularity: Optional[str] = None
    label_format: Optional[str] = None

