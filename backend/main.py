import asyncio
from typing import AsyncIterator, Dict, List, Optional, Set
from fastapi import Depends, FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from aggregation import build_chart
from config import get_settings
from granularity import format_label
from log_config import configure_logging, get_logger
from ranges import default_range, normalize
from schemas import (
    ChartData,
    ChartRequest,
    CurrentPlayers,
    DataPoint,
    DataPointResponse,
    SearchResponse,
    SearchResult,
    SeriesStats,
)
from session import ComparisonSession
from steam_client import HistoryUnavailable, SearchFailed, SteamClient

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

app = FastAPI(title="Player History API")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def get_steam_client() -> AsyncIterator[SteamClient]:
    """Provide a provider client for the lifetime of one request or connection."""
    async with SteamClient(get_settings()) as client:
        yield client


def series_stats(series: List[DataPoint]) -> SeriesStats:
    """
    Get basic statistics about a series.

    Args:
        series: Raw points

    Returns:
        SeriesStats: Count plus min/max timestamps and values
    """
    if not series:
        return SeriesStats(count=0)

    timestamps = [p.timestamp for p in series]
    values = [p.value for p in series]
    return SeriesStats(
        count=len(series),
        min_timestamp=min(timestamps),
        max_timestamp=max(timestamps),
        min_value=min(values),
        max_value=max(values),
    )


@app.get("/")
async def root():
    """Root endpoint to check if the API is running."""
    return {"message": "Player History API is running"}


@app.get("/search", response_model=SearchResponse)
async def search(
    term: Optional[str] = Query(None, description="Free-text game name"),
    client: SteamClient = Depends(get_steam_client),
):
    """Search the store for games matching term."""
    if not term:
        return SearchResponse(items=[])

    try:
        items = await client.search(term)
    except SearchFailed:
        raise HTTPException(status_code=502, detail="Search failed.")
    return SearchResponse(items=items)


@app.get("/history", response_model=DataPointResponse)
async def history(
    appid: Optional[int] = Query(None, description="Steam app id"),
    client: SteamClient = Depends(get_steam_client),
):
    """
    Fetch the raw concurrent-player history for one game.
    The response also carries basic statistics about the series.
    """
    if appid is None:
        raise HTTPException(status_code=400, detail="AppID required")

    try:
        data = await client.history(appid)
    except HistoryUnavailable as e:
        raise HTTPException(status_code=502, detail=e.user_message())

    return DataPointResponse(data=data, stats=series_stats(data))


@app.get("/players", response_model=CurrentPlayers)
async def players(
    appid: Optional[int] = Query(None, description="Steam app id"),
    client: SteamClient = Depends(get_steam_client),
):
    """Current concurrent players for one game."""
    if appid is None:
        return CurrentPlayers()
    return await client.current_players(appid)


@app.post("/chart", response_model=ChartData)
async def chart(request: ChartRequest):
    """
    Bucket and merge the supplied series for a multi-series chart.

    If start and end are both given they are used (swapped if reversed),
    otherwise the range defaults to the intersection of the series.
    """
    if not request.entities:
        return ChartData(rows=[])

    if request.start is not None and request.end is not None:
        active_range = normalize(request.start, request.end)
    else:
        active_range = default_range(e.series for e in request.entities)

    return build_chart(request.entities, active_range)


async def send_chart(websocket: WebSocket, session: ComparisonSession, chunk_size: int):
    """
    Send the session's chart: row chunks, an empty chunk, then a summary.

    Args:
        websocket: Open connection
        session: Comparison state for this connection
        chunk_size: Maximum rows per message
    """
    chart_data = session.chart()
    rows = chart_data.rows

    # Send data in chunks to avoid giant messages
    for i in range(0, len(rows), chunk_size):
        await websocket.send_json(rows[i:i + chunk_size])

    # Send an empty chunk to signal the end of data
    await websocket.send_json([])

    summary = session.summary()
    summary.update(chart_data.model_dump(exclude={"rows"}))
    if chart_data.start is not None and chart_data.label_format:
        summary["start_label"] = format_label(chart_data.start, chart_data.label_format)
        summary["end_label"] = format_label(chart_data.end, chart_data.label_format)
    await websocket.send_json(summary)


class ActionError(Exception):
    """A client request that cannot be applied; reported back as {"error": ...}."""


def apply_action(session: ComparisonSession, data: dict) -> bool:
    """
    Apply one non-fetching action to the session.

    Args:
        session: Comparison state for this connection
        data: Decoded client message

    Returns:
        bool: True if the chart changed and should be resent

    Raises:
        ActionError: If the request is invalid
    """
    action = data.get("action")

    if action == "remove":
        if not session.remove(data.get("id")):
            raise ActionError(f"Unknown game: {data.get('id')}")
        return True

    if action == "zoom":
        left = data.get("left")
        right = data.get("right")
        if not isinstance(left, int) or not isinstance(right, int):
            raise ActionError("zoom requires integer left and right")
        return session.zoom(left, right)

    if action == "set_start":
        # Unparsable date input leaves the range as it was
        return session.set_start(data.get("value"))

    if action == "set_end":
        return session.set_end(data.get("value"))

    if action == "pan_left" or action == "pan_right":
        # Get amount to pan (in milliseconds)
        amount_ms = data.get("amount_ms", 0)
        if not isinstance(amount_ms, int) or amount_ms <= 0:
            raise ActionError("Invalid pan amount")
        if action == "pan_left":
            amount_ms = -amount_ms
        if not session.pan(amount_ms):
            raise ActionError("Nothing to pan")
        return True

    if action == "reset":
        session.reset()
        return True

    raise ActionError(f"Unknown action: {action}")


# Store active WebSocket connections and their state
active_connections: Dict[int, ComparisonSession] = {}


@app.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    client: SteamClient = Depends(get_steam_client),
):
    """
    WebSocket endpoint for an interactive comparison.
    Supports add, remove, zoom, set_start, set_end, pan_left, pan_right
    and reset. Every successful action is answered with the updated chart.

    History fetches run in the background so the connection keeps serving
    other actions; a game removed before its fetch finishes is dropped.
    """
    await websocket.accept()

    # Generate a unique connection ID
    conn_id = id(websocket)
    session = ComparisonSession()
    active_connections[conn_id] = session
    chunk_size = get_settings().ws_chunk_size

    # Chart messages span several frames and must not interleave
    send_lock = asyncio.Lock()
    fetches: Set[asyncio.Task] = set()

    async def send_error(message: str):
        async with send_lock:
            await websocket.send_json({"error": message})

    async def resend_chart():
        async with send_lock:
            await send_chart(websocket, session, chunk_size)

    async def fetch_and_add(game: SearchResult):
        try:
            series = await client.history(game.id)
        except HistoryUnavailable as e:
            session.fail_add(game.id)
            await send_error(e.user_message(game.display_name))
            return

        if session.complete_add(game, series) is not None:
            await resend_chart()

    async def run_fetch(game: SearchResult):
        try:
            await fetch_and_add(game)
        except WebSocketDisconnect:
            logger.info("WebSocket closed before %s finished loading", game.display_name)
        except Exception:
            logger.exception("Failed to add %s on connection %s", game.display_name, conn_id)

    def start_fetch(game: SearchResult):
        task = asyncio.create_task(run_fetch(game))
        fetches.add(task)
        task.add_done_callback(fetches.discard)

    try:
        while True:
            # Wait for a request from the client
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await send_error("Expected a JSON object")
                continue

            if data.get("action") == "add":
                try:
                    game = SearchResult(
                        id=data["id"],
                        display_name=data["display_name"],
                        thumbnail_url=data.get("thumbnail_url"),
                    )
                except (KeyError, ValueError):
                    await send_error("add requires id and display_name")
                    continue

                if not session.begin_add(game):
                    await send_error(f"{game.display_name} is already added or its name is taken")
                    continue

                start_fetch(game)
                continue

            try:
                changed = apply_action(session, data)
            except ActionError as e:
                await send_error(str(e))
                continue
            except Exception:
                logger.exception("Failed to apply %r on connection %s", data.get("action"), conn_id)
                await send_error(f"Could not apply {data.get('action')}")
                continue

            if changed:
                await resend_chart()

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: %s", conn_id)
    except Exception:
        logger.exception("WebSocket error on connection %s", conn_id)
    finally:
        for task in list(fetches):
            task.cancel()
        # Clean up connection state
        active_connections.pop(conn_id, None)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
