from __future__ import annotations

import csv
import datetime as dt
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .boat import BoatRegistry, normalise_sail
from .config import ScoringConfig
from .entry import Entry, HandicapSystem
from .race import Placing, Race, RaceRecord, ScoreResults
from .series import RacePlacings, Series
from .timing import Marker, parse_time

logger = logging.getLogger(__name__)

RACE_INDEX_ALIASES = {
    "race": {"race", "race id", "sheet"},
    "ood": {"ood", "ood sail", "officer of the day"},
    "start": {"start", "start time"},
    "date": {"date"},
    "echo": {"echo", "echo handicap", "handicap"},
}
RACE_SHEET_ALIASES = {
    "sail": {"sail", "sail number", "sail no"},
    "finish": {"finish", "finish time"},
}


def _normalise(value: object) -> str:
    return str(value or "").strip().lower()


def _find_columns(header_row: Sequence[Any], aliases: Dict[str, set]) -> Dict[str, int]:
    mapping: Dict[str, int] = {}
    for idx, raw in enumerate(header_row):
        label = _normalise(raw)
        for key, names in aliases.items():
            if label in names and key not in mapping:
                mapping[key] = idx
    return mapping


def _cell(row: Sequence[Any], index: Optional[int]) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


class DataStore:
    """Reads and writes the scoring tables kept as CSV files in a directory.

    Each table ``<name>`` lives in ``<data_dir>/<name>.csv``.  A calculation
    reads a fresh copy of every table it needs and rewrites the rows of its
    output table that it read, leaving any other rows as they were.
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        config_path: Path | None = None,
        config: ScoringConfig | None = None,
    ) -> None:
        self.data_dir = data_dir or Path(os.getenv("WINDAGE_DATA_DIR", "data"))
        self.config_path = config_path or (self.data_dir / "config.json")
        self.config = config or ScoringConfig.load(self.config_path)

    # ------------------------------------------------------------------
    # Table access

    def table_path(self, name: str) -> Path:
        return self.data_dir / f"{name}.csv"

    def has_table(self, name: str) -> bool:
        return self.table_path(name).exists()

    def read_table(self, name: str) -> List[List[str]]:
        path = self.table_path(name)
        if not path.exists():
            raise FileNotFoundError(f"Table not found: {path}")
        with path.open(newline="", encoding="utf-8") as fh:
            return [row for row in csv.reader(fh)]

    def write_table(self, name: str, rows: Sequence[Sequence[Any]]) -> None:
        path = self.table_path(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", newline="", encoding="utf-8") as fh:
                csv.writer(fh).writerows(rows)
        except OSError as exc:
            raise RuntimeError(f"Failed to write table {path}") from exc

    # ------------------------------------------------------------------
    # Boats and race index

    def load_boats(self) -> BoatRegistry:
        rows = self.read_table(self.config.boats_table)
        registry = BoatRegistry.from_table(rows, max_boats=self.config.max_boats)
        logger.debug("Loaded %d boats from %s", len(registry), self.config.boats_table)
        return registry

    def load_race_index(self) -> Dict[str, RaceRecord]:
        rows = self.read_table(self.config.races_table)
        if not rows:
            return {}

        cols = _find_columns(rows[0], RACE_INDEX_ALIASES)
        for position, key in enumerate(("race", "ood", "start", "date", "echo")):
            cols.setdefault(key, position)

        index: Dict[str, RaceRecord] = {}
        for row in rows[1:]:
            race_id = str(_cell(row, cols["race"]) or "").strip()
            if not race_id:
                continue
            if race_id in index:
                logger.warning("Race %s listed more than once in %s", race_id, self.config.races_table)
                continue
            start = parse_time(_cell(row, cols["start"]))
            if isinstance(start, Marker):
                start = None
            index[race_id] = RaceRecord(
                race_id=race_id,
                ood_sail=normalise_sail(_cell(row, cols["ood"])),
                start_time=start,
                date=self._coerce_date(_cell(row, cols["date"]), race_id),
                echo_name=_normalise(_cell(row, cols["echo"])),
            )
        return index

    def race_record(self, race_id: str, index: Dict[str, RaceRecord] | None = None) -> RaceRecord:
        if index is None:
            index = self.load_race_index()
        record = index.get(race_id)
        if record is None:
            logger.warning("Race %s has no entry in %s", race_id, self.config.races_table)
            return RaceRecord(race_id=race_id)
        return record

    @staticmethod
    def _coerce_date(value: Any, race_id: str) -> Optional[dt.date]:
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, dt.date):
            return value
        text = str(value or "").strip()
        if not text:
            return None
        try:
            return dt.date.fromisoformat(text[:10])
        except ValueError:
            pass
        try:
            return dt.datetime.strptime(text, "%d/%m/%Y").date()
        except ValueError:
            logger.warning("Race %s has an unreadable date '%s'", race_id, text)
            return None

    # ------------------------------------------------------------------
    # Races

    @staticmethod
    def _race_header(rows: Sequence[Sequence[Any]]) -> int:
        for i, row in enumerate(rows[:5]):
            if "sail" in {_normalise(cell) for cell in row}:
                return i
        return 0

    def load_race_entries(self, race_id: str) -> Tuple[List[Entry], List[str]]:
        """Entries of a race table in row order, with the raw finish cells."""

        rows = self.read_table(race_id)
        if not rows:
            return [], []

        header_idx = self._race_header(rows)
        cols = _find_columns(rows[header_idx], RACE_SHEET_ALIASES)
        sail_col = cols.get("sail", 0)
        finish_col = cols.get("finish", 3)

        entries: List[Entry] = []
        raw_finishes: List[str] = []
        for row in rows[header_idx + 1 : header_idx + 1 + self.config.max_entrants]:
            raw_finish = str(_cell(row, finish_col) or "").strip()
            finish = parse_time(raw_finish)
            if raw_finish and finish is None:
                logger.warning("Race %s: finish time '%s' is not a time", race_id, raw_finish)
            entries.append(Entry(sail=normalise_sail(_cell(row, sail_col)), finish=finish))
            raw_finishes.append(raw_finish)
        return entries, raw_finishes

    def load_stored_placings(self, race_id: str, system: HandicapSystem) -> Optional[List[Tuple[str, Placing]]]:
        """Places already written to a race table, or ``None`` without a place column."""

        rows = self.read_table(race_id)
        if not rows:
            return None
        header_idx = self._race_header(rows)
        labels = [_normalise(cell) for cell in rows[header_idx]]
        place_label = f"{system.value.lower()} place"
        if place_label not in labels:
            return None
        place_col = labels.index(place_label)
        sail_col = labels.index("sail") if "sail" in labels else 0

        placings: List[Tuple[str, Placing]] = []
        for row in rows[header_idx + 1 : header_idx + 1 + self.config.max_entrants]:
            sail = normalise_sail(_cell(row, sail_col))
            if not sail:
                continue
            text = str(_cell(row, place_col) or "").strip()
            placing: Placing = Marker.parse(text)
            if placing is None and text.isdigit():
                placing = int(text)
            placings.append((sail, placing))
        return placings

    def score_race(
        self,
        race_id: str,
        registry: BoatRegistry | None = None,
        index: Dict[str, RaceRecord] | None = None,
    ) -> Tuple[ScoreResults, List[str]]:
        registry = registry if registry is not None else self.load_boats()
        record = self.race_record(race_id, index)
        entries, raw_finishes = self.load_race_entries(race_id)
        return Race(record, entries, registry).score(), raw_finishes

    def calculate_race(self, race_id: str) -> ScoreResults:
        """Score a race table and rewrite its entrant rows with the calculated columns.

        Rows above the header and rows past ``max_entrants`` are written back
        unchanged.
        """

        results, raw_finishes = self.score_race(race_id)
        table = results.table()
        for row, raw_finish in zip(table[1:], raw_finishes):
            row[3] = raw_finish

        rows = self.read_table(race_id)
        header_idx = self._race_header(rows) if rows else 0
        after = rows[header_idx + 1 + len(results.rows) :]
        self.write_table(race_id, rows[:header_idx] + table + after)
        return results

    # ------------------------------------------------------------------
    # Series

    def load_series_definition(self, series_id: str) -> Tuple[List[str], List[str]]:
        """Sail numbers (one per row) and race ids (header order) of a series table."""

        rows = self.read_table(series_id)
        if not rows:
            return [], []

        header = rows[0]
        sail_col = 0
        race_ids: List[str] = []
        skip = {"sail", "name", "owner", _normalise(self.config.total_label)}
        for idx, raw in enumerate(header):
            label = str(raw or "").strip()
            if _normalise(label) == "sail":
                sail_col = idx
            if not label or _normalise(label) in skip:
                continue
            race_ids.append(label)

        sails = [normalise_sail(_cell(row, sail_col)) for row in rows[1 : 1 + self.config.max_boats]]
        return sails, race_ids

    def build_series(self, series_id: str, system: HandicapSystem) -> Series:
        sails, race_ids = self.load_series_definition(series_id)
        registry = self.load_boats()
        index = self.load_race_index()

        races: List[RacePlacings] = []
        for race_id in race_ids:
            if not self.has_table(race_id):
                logger.warning("Series %s: no table for race %s", series_id, race_id)
                races.append(RacePlacings(race_id=race_id))
                continue
            if race_id not in index:
                stored = self.load_stored_placings(race_id, system)
                if stored is not None:
                    # No OOD is known, so nobody is averaged in this race.
                    logger.warning("Series %s: race %s is not in %s; using its stored places",
                                   series_id, race_id, self.config.races_table)
                    races.append(RacePlacings(race_id=race_id, placings=stored))
                    continue
            record = self.race_record(race_id, index)
            results, _ = self.score_race(race_id, registry=registry, index={race_id: record})
            races.append(RacePlacings.from_results(results, system, ood_sail=record.ood_sail))

        return Series(series_id, sails, races, registry=registry, config=self.config)

    def calculate_series(self, series_id: str, system: HandicapSystem) -> Series:
        """Score a series table for one handicap system and rewrite its boat rows.

        Rows past ``max_boats`` are written back unchanged.
        """

        series = self.build_series(series_id, system)
        rows = self.read_table(series_id)
        self.write_table(series_id, series.table() + rows[1 + len(series.sails) :])
        return series
