from windage_core import Boat, BoatRegistry


BOATS_TABLE = [
    ["Sail", "Name", "Owner", "IRC", "", "Echo2011", "EchoJune"],
    ["101", "Alpha", "Ann", "0.85", "ignored", "0.90", "0.92"],
    [102.0, "Bravo", "Ben", 1.0, "", 1.0, ""],
    ["", "Nobody", "", "", "", "", ""],
    ["101", "Alpha Two", "Someone Else", "0.80", "", "0.80", "0.80"],
]


def test_from_table_uses_lowercased_labels() -> None:
    registry = BoatRegistry.from_table(BOATS_TABLE)

    alpha = registry.lookup("101")
    assert alpha is not None
    assert alpha.name == "Alpha"
    assert alpha.owner == "Ann"
    assert alpha.irc == 0.85
    assert alpha.handicaps == {"echo2011": 0.90, "echojune": 0.92}
    assert alpha.handicap("EchoJune") == 0.92


def test_first_occurrence_of_a_sail_number_wins() -> None:
    registry = BoatRegistry.from_table(BOATS_TABLE)

    assert len(registry) == 2
    assert registry.lookup(101).name == "Alpha"


def test_numeric_sail_numbers_match_text() -> None:
    registry = BoatRegistry.from_table(BOATS_TABLE)

    bravo = registry.lookup(102)
    assert bravo is not None
    assert bravo.sail == "102"
    # A blank revision cell leaves that revision missing for the boat.
    assert bravo.handicap("echojune") is None
    assert "102" in registry


def test_lookup_miss_is_none() -> None:
    registry = BoatRegistry.from_table(BOATS_TABLE)

    assert registry.lookup("999") is None
    assert registry.lookup("") is None
    assert registry.lookup(None) is None


def test_max_boats_bounds_the_rows_read() -> None:
    registry = BoatRegistry.from_table(BOATS_TABLE, max_boats=1)

    assert [boat.sail for boat in registry] == ["101"]


def test_registry_from_boats() -> None:
    registry = BoatRegistry([Boat(sail="7", name="Seven", irc=1.02), Boat(sail="7", name="Copy")])

    assert len(registry) == 1
    assert registry.lookup("7").name == "Seven"
    assert BoatRegistry.from_table([]).lookup("7") is None
