"""Thin async wrappers around the Steam store, Steam Web API and SteamCharts."""

from typing import List, Optional

import httpx

from config import Settings, get_settings
from log_config import get_logger
from schemas import CurrentPlayers, DataPoint, SearchResult

logger = get_logger(__name__)


class SteamError(Exception):
    """Base error for provider failures."""


class SearchFailed(SteamError):
    pass


class HistoryUnavailable(SteamError):
    """Raised when a game has no public tracked history."""

    def __init__(self, app_id: int, reason: str):
        super().__init__(f"History unavailable for app {app_id}: {reason}")
        self.app_id = app_id
        self.reason = reason

    def user_message(self, display_name: Optional[str] = None) -> str:
        name = display_name or f"app {self.app_id}"
        return f"Could not load data for {name}. It might not be tracked publicly."


class SteamClient:
    """
    Async client for game search, player history and current player counts.

    Use as an async context manager; pass a transport to stub the network.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self.settings.user_agent},
            timeout=self.settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SteamClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search(self, term: str) -> List[SearchResult]:
        """
        Search the store by free-text term.

        Args:
            term: Search text

        Returns:
            list: Matching games, empty for an empty term
        """
        if not term:
            return []

        params = {
            "term": term,
            "l": self.settings.search_language,
            "cc": self.settings.search_country,
        }
        try:
            resp = await self._client.get(self.settings.search_url, params=params)
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Search for %r failed: %s", term, e)
            raise SearchFailed(f"Search failed for {term!r}") from e

        results = []
        for item in payload.get("items") or []:
            try:
                results.append(SearchResult(
                    id=int(item["id"]),
                    display_name=item["name"],
                    thumbnail_url=item.get("tiny_image"),
                ))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed search item: %r", item)
        return results

    async def history(self, app_id: int) -> List[DataPoint]:
        """
        Fetch the full concurrent-player history for a game.

        Args:
            app_id: Steam app id

        Returns:
            list: Raw points in provider order

        Raises:
            HistoryUnavailable: On network failure, a non-success response,
                an unparsable body or an empty series
        """
        url = self.settings.history_url_template.format(app_id=app_id)
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            raw = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("History fetch for %s returned %s", app_id, e.response.status_code)
            raise HistoryUnavailable(app_id, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("History fetch for %s failed: %s", app_id, e)
            raise HistoryUnavailable(app_id, str(e)) from e
        except ValueError as e:
            logger.error("History for %s is not valid JSON: %s", app_id, e)
            raise HistoryUnavailable(app_id, "invalid response body") from e

        if not isinstance(raw, list):
            raise HistoryUnavailable(app_id, "unexpected response shape")

        # Each entry is [timestamp_ms, count]; count may be null for gaps
        points = []
        for entry in raw:
            if not isinstance(entry, (list, tuple)) or len(entry) < 2 or entry[1] is None:
                continue
            try:
                points.append(DataPoint(timestamp=int(entry[0]), value=int(entry[1])))
            except (TypeError, ValueError, OverflowError) as e:
                logger.error("History for %s has a malformed point %r: %s", app_id, entry, e)
                raise HistoryUnavailable(app_id, "invalid response body") from e

        if not points:
            raise HistoryUnavailable(app_id, "empty series")
        return points

    async def current_players(self, app_id: int) -> CurrentPlayers:
        """Current concurrent players; zeros when the lookup fails."""
        try:
            resp = await self._client.get(self.settings.players_url, params={"appid": app_id})
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Current player lookup for %s failed: %s", app_id, e)
            return CurrentPlayers()

        return CurrentPlayers(**(payload.get("response") or {}))
