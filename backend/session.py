"""Per-connection comparison state: tracked games, colors and the visible range."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from aggregation import build_chart
from log_config import get_logger
from ranges import default_range, normalize, shift
from schemas import ActiveRange, ChartData, DataPoint, Entity, SearchResult

logger = get_logger(__name__)

COLORS = ['#3b82f6', '#ef4444', '#22c55e', '#f59e0b', '#8b5cf6', '#ec4899']


@dataclass
class TrackedGame:
    entity: Entity
    color: str
    thumbnail_url: Optional[str] = None


def parse_date_input(value: Union[int, float, str, None]) -> Optional[int]:
    """
    Convert a date field value to epoch milliseconds.

    Accepts epoch ms or an ISO date/datetime string (naive values are UTC).
    Returns None for anything unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # json accepts NaN and Infinity
        try:
            return int(value)
        except (OverflowError, ValueError):
            return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


@dataclass
class ComparisonSession:
    games: Dict[int, TrackedGame] = field(default_factory=dict)
    pending: Dict[int, SearchResult] = field(default_factory=dict)
    override: Optional[ActiveRange] = None

    def next_color(self) -> str:
        used = {g.color for g in self.games.values()}
        for color in COLORS:
            if color not in used:
                return color
        # Every color taken, cycle through them
        return COLORS[len(self.games) % len(COLORS)]

    def begin_add(self, game: SearchResult) -> bool:
        """
        Mark a game as being fetched.

        False if it is already tracked or in flight, or if another game uses
        the same display name (merged rows are keyed by name, next to
        "timestamp").
        """
        if game.id in self.games or game.id in self.pending:
            return False
        names = {g.entity.display_name for g in self.games.values()}
        names.update(g.display_name for g in self.pending.values())
        names.add("timestamp")
        if game.display_name in names:
            return False
        self.pending[game.id] = game
        return True

    def complete_add(self, game: SearchResult, series: Sequence[DataPoint]) -> Optional[TrackedGame]:
        """
        Apply a fetched series.

        Returns the tracked game, or None when the game was removed while
        its fetch was outstanding and the response is discarded.
        """
        if self.pending.pop(game.id, None) is None:
            logger.info("Discarding stale history for %s (%s)", game.display_name, game.id)
            return None

        tracked = TrackedGame(
            entity=Entity(id=game.id, display_name=game.display_name, series=list(series)),
            color=self.next_color(),
            thumbnail_url=game.thumbnail_url,
        )
        self.games[game.id] = tracked
        self.override = None
        return tracked

    def fail_add(self, game_id: int) -> None:
        self.pending.pop(game_id, None)

    def remove(self, game_id: int) -> bool:
        if self.pending.pop(game_id, None) is not None:
            return True
        if self.games.pop(game_id, None) is None:
            return False
        self.override = None
        return True

    @property
    def entities(self) -> List[Entity]:
        return [g.entity for g in self.games.values()]

    @property
    def default_range(self) -> Optional[ActiveRange]:
        if not self.games:
            return None
        return default_range(e.series for e in self.entities)

    @property
    def active_range(self) -> Optional[ActiveRange]:
        if not self.games:
            return None
        return self.override or self.default_range

    def zoom(self, left: int, right: int) -> bool:
        """Zoom to a drag selection; a zero-width selection is ignored."""
        if not self.games or left == right:
            return False
        self.override = normalize(left, right)
        return True

    def set_start(self, value) -> bool:
        current = self.active_range
        start = parse_date_input(value)
        if current is None or start is None:
            return False
        self.override = normalize(start, current.end)
        return True

    def set_end(self, value) -> bool:
        current = self.active_range
        end = parse_date_input(value)
        if current is None or end is None:
            return False
        self.override = normalize(current.start, end)
        return True

    def pan(self, amount_ms: int) -> bool:
        current = self.active_range
        if current is None:
            return False
        self.override = shift(current, amount_ms)
        return True

    def reset(self) -> None:
        self.override = None

    def chart(self) -> ChartData:
        return build_chart(self.entities, self.active_range)

    def summary(self) -> dict:
        return {
            "games": [
                {
                    "id": g.entity.id,
                    "display_name": g.entity.display_name,
                    "color": g.color,
                    "thumbnail_url": g.thumbnail_url,
                }
                for g in self.games.values()
            ],
            "pending": list(self.pending),
            "zoomed": self.override is not None,
        }
