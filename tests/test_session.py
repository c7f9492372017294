from conftest import BASE_TS, DAY, make_series
from schemas import ActiveRange, SearchResult
from session import COLORS, ComparisonSession, parse_date_input


def game(game_id, name=None):
    return SearchResult(id=game_id, display_name=name or f"Game {game_id}")


def add(session, game_id, pairs):
    g = game(game_id)
    assert session.begin_add(g)
    return session.complete_add(g, make_series(pairs))


def test_colors_are_reused_after_remove():
    session = ComparisonSession()
    first = add(session, 1, [(0, 1)])
    second = add(session, 2, [(0, 1)])
    assert (first.color, second.color) == (COLORS[0], COLORS[1])

    session.remove(1)
    third = add(session, 3, [(0, 1)])
    assert third.color == COLORS[0]


def test_colors_cycle_when_exhausted():
    session = ComparisonSession()
    for i in range(len(COLORS)):
        add(session, i, [(0, 1)])
    extra = add(session, 99, [(0, 1)])
    assert extra.color == COLORS[len(COLORS) % len(COLORS)]


def test_duplicate_add_is_refused():
    session = ComparisonSession()
    add(session, 1, [(0, 1)])
    assert not session.begin_add(game(1))


def test_stale_response_is_discarded():
    session = ComparisonSession()
    g = game(1)
    assert session.begin_add(g)
    assert session.remove(1)

    assert session.complete_add(g, make_series([(0, 1)])) is None
    assert session.games == {}


def test_failed_add_leaves_state_unchanged():
    session = ComparisonSession()
    add(session, 1, [(0, 1), (10, 1)])
    g = game(2)
    session.begin_add(g)
    session.fail_add(2)
    assert list(session.games) == [1]
    assert session.pending == {}


def test_range_recomputed_on_entity_change():
    session = ComparisonSession()
    add(session, 1, [(BASE_TS, 1), (BASE_TS + 10 * DAY, 1)])
    assert session.active_range == ActiveRange(start=BASE_TS, end=BASE_TS + 10 * DAY)

    session.zoom(BASE_TS + DAY, BASE_TS + 2 * DAY)
    add(session, 2, [(BASE_TS + 3 * DAY, 1), (BASE_TS + 20 * DAY, 1)])
    assert session.override is None
    assert session.active_range == ActiveRange(start=BASE_TS + 3 * DAY, end=BASE_TS + 10 * DAY)


def test_zoom_orders_bounds_and_ignores_empty_selection():
    session = ComparisonSession()
    add(session, 1, [(0, 1), (100, 1)])
    assert not session.zoom(50, 50)
    assert session.zoom(80, 20)
    assert session.active_range == ActiveRange(start=20, end=80)

    session.reset()
    assert session.active_range == ActiveRange(start=0, end=100)


def test_date_edits_swap_reversed_range():
    session = ComparisonSession()
    add(session, 1, [(BASE_TS, 1), (BASE_TS + 10 * DAY, 1)])

    assert session.set_start(BASE_TS + 20 * DAY)
    assert session.active_range == ActiveRange(start=BASE_TS + 10 * DAY, end=BASE_TS + 20 * DAY)

    assert not session.set_end("not a date")
    assert session.set_end("2024-01-03")
    assert session.active_range == ActiveRange(start=BASE_TS + 2 * DAY, end=BASE_TS + 10 * DAY)


def test_pan_shifts_active_range():
    session = ComparisonSession()
    assert not session.pan(DAY)
    add(session, 1, [(0, 1), (DAY, 1)])
    session.pan(-DAY)
    assert session.active_range == ActiveRange(start=-DAY, end=0)


def test_chart_has_one_column_per_game():
    session = ComparisonSession()
    add(session, 1, [(BASE_TS + i * DAY, 10) for i in range(5)])
    add(session, 2, [(BASE_TS + i * DAY, 20) for i in range(1, 6)])

    chart = session.chart()
    assert chart.granularity == "1h"
    assert chart.rows[0] == {"timestamp": BASE_TS + DAY, "Game 1": 10, "Game 2": 20}
    assert len(chart.rows) == 4


def test_parse_date_input():
    assert parse_date_input("2024-01-01") == BASE_TS
    assert parse_date_input(BASE_TS) == BASE_TS
    assert parse_date_input("") is None
    assert parse_date_input(None) is None


def test_duplicate_display_name_is_refused():
    session = ComparisonSession()
    add(session, 1, [(0, 1)])
    assert not session.begin_add(game(2, "Game 1"))
    assert not session.begin_add(game(3, "timestamp"))

    assert session.begin_add(game(4, "Pending"))
    assert not session.begin_add(game(5, "Pending"))


def test_parse_date_input_rejects_non_finite_numbers():
    assert parse_date_input(float("nan")) is None
    assert parse_date_input(float("inf")) is None
    assert parse_date_input(1.5e12) == 1_500_000_000_000


def test_non_finite_date_edit_leaves_range():
    session = ComparisonSession()
    add(session, 1, [(0, 1), (100, 1)])
    assert not session.set_start(float("nan"))
    assert session.active_range == ActiveRange(start=0, end=100)
