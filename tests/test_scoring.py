import datetime as dt

import pytest

from windage_core import Boat, BoatRegistry, Entry, HandicapSystem, Marker, Race, RaceRecord
from windage_core.race import OUTPUT_HEADER, rank, to_win
from windage_core.timing import from_seconds, to_seconds


@pytest.fixture
def registry() -> BoatRegistry:
    return BoatRegistry(
        [
            Boat(sail="101", name="Alpha", owner="Ann", irc=0.85, handicaps={"echo1": 0.90}),
            Boat(sail="102", name="Bravo", owner="Ben", irc=1.0, handicaps={"echo1": 1.0}),
            Boat(sail="103", name="Charlie", owner="Cat", irc=0.95, handicaps={"echo1": 0.95}),
            Boat(sail="104", name="Delta", owner="Dan", irc=1.0, handicaps={}),
        ]
    )


@pytest.fixture
def record() -> RaceRecord:
    return RaceRecord(
        race_id="S1R1",
        ood_sail="105",
        start_time=dt.time(10, 0, 0),
        date=dt.date(2012, 5, 5),
        echo_name="echo1",
    )


def test_score_assigns_places_for_both_systems(registry: BoatRegistry, record: RaceRecord) -> None:
    entries = [
        Entry(sail="101", finish=dt.time(11, 5, 30)),
        Entry(sail="102", finish=dt.time(10, 58, 0)),
        Entry(sail="103", finish=Marker.DNF),
    ]

    results = Race(record, entries, registry).score()
    alpha, bravo, charlie = results.rows

    assert to_seconds(alpha.elapsed) == 3930
    assert to_seconds(alpha.irc.corrected) == 3340.5
    assert alpha.irc.rank == 1
    assert bravo.irc.rank == 2
    assert alpha.echo.rank == 2
    assert bravo.echo.rank == 1
    assert alpha.echo.handicap == 0.90

    # The winner needs no time back; everyone else gets a margin.
    assert alpha.irc.to_win is None
    assert to_seconds(bravo.irc.to_win) == 139.5
    assert to_seconds(alpha.echo.to_win) == pytest.approx(3930 - 3480 / 0.9, abs=1e-6)

    assert charlie.elapsed is Marker.DNF
    assert charlie.irc.corrected is Marker.DNF
    assert charlie.irc.to_win is Marker.DNF
    assert charlie.irc.rank is Marker.DNF
    assert charlie.echo.rank is Marker.DNF

    assert results.placings(HandicapSystem.IRC) == [("101", 1), ("102", 2), ("103", Marker.DNF)]
    assert "S1R1 Saturday" in results.summary_text
    assert "Alpha" in results.summary_text


def test_equal_corrected_times_share_a_place(registry: BoatRegistry, record: RaceRecord) -> None:
    entries = [
        Entry(sail="102", finish=dt.time(10, 58, 0)),
        Entry(sail="101", finish=dt.time(11, 5, 30)),
        Entry(sail="104", finish=dt.time(10, 58, 0)),
        Entry(sail="103", finish=dt.time(11, 40, 0)),
    ]

    results = Race(record, entries, registry).score()

    assert [row.irc.rank for row in results.rows] == [2, 1, 2, 4]


def test_rank_is_non_decreasing_in_corrected_time() -> None:
    times = [from_seconds(s) for s in (4200, 4140, 4200, 4380, 3900)]
    ranks = [rank(t, times) for t in times]

    pairs = sorted(zip((to_seconds(t) for t in times), ranks))
    for (time_a, rank_a), (time_b, rank_b) in zip(pairs, pairs[1:]):
        assert rank_a <= rank_b
        if time_a == time_b:
            assert rank_a == rank_b
    assert rank(from_seconds(4200), times) == 3


def test_rank_ignores_blank_and_marker_times() -> None:
    times = [from_seconds(100), None, Marker.DNF, from_seconds(50)]

    assert rank(from_seconds(100), times) == 2
    assert rank(None, times) is None
    assert rank(Marker.BFD, times) is Marker.BFD


def test_to_win_edge_cases() -> None:
    times = [from_seconds(3000), from_seconds(3300)]

    assert to_win(Marker.DSQ, 1.0, times) is Marker.DSQ
    assert to_win(None, 1.0, times) is None
    assert to_win(from_seconds(3300), None, times) is None
    assert to_win(from_seconds(3300), 1.0, [None, Marker.DNF]) is None
    assert to_win(from_seconds(3000), 1.0, times) is None
    assert to_seconds(to_win(from_seconds(3300), 1.0, times)) == 300


def test_unknown_boat_keeps_its_row_and_does_not_stop_scoring(
    registry: BoatRegistry, record: RaceRecord
) -> None:
    entries = [
        Entry(sail="999", finish=dt.time(10, 30, 0)),
        Entry(sail="101", finish=dt.time(11, 5, 30)),
        Entry(sail="102", finish=dt.time(10, 58, 0)),
    ]

    results = Race(record, entries, registry).score()
    unknown, alpha, bravo = results.rows

    assert unknown.sail == "999"
    assert unknown.name == ""
    assert unknown.owner == ""
    assert unknown.irc.corrected is None
    assert unknown.irc.rank is None
    # The unknown boat's quick time takes no place from anyone.
    assert alpha.irc.rank == 1
    assert bravo.irc.rank == 2


def test_unreadable_finish_is_blank_not_zero(registry: BoatRegistry, record: RaceRecord) -> None:
    entries = [
        Entry(sail="101", finish=None),
        Entry(sail="102", finish=dt.time(10, 58, 0)),
    ]

    results = Race(record, entries, registry).score()
    alpha, bravo = results.rows

    assert alpha.elapsed is None
    assert alpha.irc.corrected is None
    assert alpha.irc.rank is None
    assert bravo.irc.rank == 1


def test_missing_echo_revision_leaves_echo_blank(registry: BoatRegistry, record: RaceRecord) -> None:
    entries = [Entry(sail="104", finish=dt.time(11, 0, 0)), Entry(sail="102", finish=dt.time(11, 10, 0))]

    results = Race(record, entries, registry).score()
    delta, bravo = results.rows

    assert delta.echo.handicap is None
    assert delta.echo.corrected is None
    assert delta.echo.rank is None
    assert delta.irc.rank == 1
    assert bravo.echo.rank == 1


def test_table_keeps_row_order_and_blank_rows(registry: BoatRegistry, record: RaceRecord) -> None:
    entries = [
        Entry(sail="102", finish=dt.time(10, 58, 0)),
        Entry(sail=""),
        Entry(sail="101", finish=dt.time(11, 5, 30)),
    ]

    race = Race(record, entries, registry)
    assert race.starters == 2
    table = race.score().table()

    assert table[0] == OUTPUT_HEADER
    assert [row[0] for row in table[1:]] == ["102", "", "101"]
    assert table[1][1:3] == ["Bravo", "Ben"]
    assert table[1][8] == 2
    assert table[2][4:] == ["", "", "", "", "", "", "", "", ""]
    assert table[3][4] == "01:05:30"
    assert table[3][6] == "00:55:40.5"
    assert table[3][7] == ""
    assert table[3][8] == 1


def test_race_record_weekday_and_ood_name(registry: BoatRegistry, record: RaceRecord) -> None:
    assert record.weekday == "Saturday"
    # 105 is not registered.
    assert record.ood_name(registry) == ""

    record.ood_sail = "101"
    assert record.ood_name(registry) == "Alpha"
    assert RaceRecord(race_id="S1R9").ood_name(registry) == ""
