from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from .boat import BoatRegistry, normalise_sail
from .entry import Entry, HandicapSystem
from .timing import Marker, TimeValue, format_time, from_seconds, seconds_or_none

logger = logging.getLogger(__name__)

Placing = Union[int, Marker, None]

OUTPUT_HEADER = [
    "Sail",
    "Name",
    "Owner",
    "Finish",
    "Elapsed",
    "IRC",
    "IRC Corrected",
    "IRC To Win",
    "IRC Place",
    "ECHO",
    "ECHO Corrected",
    "ECHO To Win",
    "ECHO Place",
]


@dataclass
class RaceRecord:
    """A row of the race index."""

    race_id: str
    ood_sail: str = ""
    start_time: Optional[dt.time] = None
    date: Optional[dt.date] = None
    echo_name: str = ""

    @property
    def weekday(self) -> str:
        return self.date.strftime("%A") if self.date else ""

    def ood_name(self, registry: BoatRegistry) -> str:
        boat = registry.lookup(self.ood_sail)
        return boat.name if boat else ""


@dataclass
class RaceResult:
    handicap: Optional[float] = None
    corrected: TimeValue = None
    to_win: TimeValue = None
    rank: Placing = None


@dataclass
class RaceRow:
    sail: str
    name: str
    owner: str
    finish: TimeValue
    elapsed: TimeValue
    irc: RaceResult
    echo: RaceResult

    def result(self, system: HandicapSystem) -> RaceResult:
        return self.irc if system is HandicapSystem.IRC else self.echo


@dataclass
class ScoreResults:
    race_id: str = ""
    rows: List[RaceRow] = field(default_factory=list)
    summary_text: str = ""

    def placings(self, system: HandicapSystem) -> List[Tuple[str, Placing]]:
        """(sail, place) for every starter, in entry order."""

        return [(row.sail, row.result(system).rank) for row in self.rows if row.sail]

    def table(self) -> List[List[Any]]:
        table: List[List[Any]] = [list(OUTPUT_HEADER)]
        for row in self.rows:
            cells: List[Any] = [row.sail, row.name, row.owner, format_time(row.finish), format_time(row.elapsed)]
            for result in (row.irc, row.echo):
                cells.extend(
                    [
                        "" if result.handicap is None else result.handicap,
                        format_time(result.corrected),
                        format_time(result.to_win),
                        _format_placing(result.rank),
                    ]
                )
            table.append(cells)
        return table


def _format_placing(placing: Placing) -> Any:
    if placing is None:
        return ""
    if isinstance(placing, Marker):
        return placing.value
    return placing


def to_win(elapsed: TimeValue, handicap: Optional[float], corrected_times: Sequence[TimeValue]) -> TimeValue:
    """How much faster a boat needed to be to match the best corrected time.

    Blank for the winner, since nobody needs to beat their own time.
    """

    if isinstance(elapsed, Marker):
        return elapsed
    elapsed_seconds = seconds_or_none(elapsed)
    if elapsed_seconds is None or not handicap:
        return None
    valid = [seconds for seconds in map(seconds_or_none, corrected_times) if seconds is not None]
    if not valid:
        return None
    margin = round(elapsed_seconds - min(valid) / handicap, 6)
    return from_seconds(margin) if margin > 0 else None


def rank(corrected: TimeValue, corrected_times: Sequence[TimeValue]) -> Placing:
    """Place of ``corrected`` among the valid corrected times of the race.

    Equal times share a place: the place is one more than the number of
    strictly faster times, e.g. 1:10 among [1:09, 1:08, 1:10, 1:13] is 3rd.
    """

    if isinstance(corrected, Marker):
        return corrected
    seconds = seconds_or_none(corrected)
    if seconds is None:
        return None
    valid = [other for other in map(seconds_or_none, corrected_times) if other is not None]
    return 1 + sum(1 for other in valid if other < seconds)


class Race:
    def __init__(
        self,
        record: RaceRecord,
        entries: Iterable[Entry] | None = None,
        registry: BoatRegistry | None = None,
    ) -> None:
        self.record = record
        self.registry = registry or BoatRegistry()
        self.entries: List[Entry] = []
        for entry in entries or []:
            self.add_entry(entry)

    def add_entry(self, entry: Entry) -> None:
        entry.sail = normalise_sail(entry.sail)
        if entry.boat is None and entry.sail:
            entry.boat = self.registry.lookup(entry.sail)
            if entry.boat is None:
                logger.warning("Race %s: sail number %s is not a registered boat", self.record.race_id, entry.sail)
        self.entries.append(entry)

    @property
    def starters(self) -> int:
        return sum(1 for entry in self.entries if entry.sail)

    def score(self) -> ScoreResults:
        record = self.record
        logger.info("Calculating race results for %s", record.race_id)
        if record.start_time is None:
            logger.warning("Race %s has no start time; elapsed times will be blank", record.race_id)

        for entry in self.entries:
            entry.calculate_corrected(record.start_time, record.echo_name)

        corrected = {
            system: [entry.corrected(system) for entry in self.entries] for system in HandicapSystem
        }

        rows: List[RaceRow] = []
        for entry in self.entries:
            boat = entry.boat
            results = {}
            for system in HandicapSystem:
                if boat is None:
                    results[system] = RaceResult()
                    continue
                handicap = entry.handicap(system, record.echo_name)
                results[system] = RaceResult(
                    handicap=handicap,
                    corrected=entry.corrected(system),
                    to_win=to_win(entry.elapsed, handicap, corrected[system]),
                    rank=rank(entry.corrected(system), corrected[system]),
                )
            rows.append(
                RaceRow(
                    sail=entry.sail,
                    name=boat.name if boat else "",
                    owner=boat.owner if boat else "",
                    finish=entry.finish,
                    elapsed=entry.elapsed,
                    irc=results[HandicapSystem.IRC],
                    echo=results[HandicapSystem.ECHO],
                )
            )

        return ScoreResults(race_id=record.race_id, rows=rows, summary_text=self._build_summary(rows))

    def _build_summary(self, rows: List[RaceRow]) -> str:
        lines = [
            f"{self.record.race_id} {self.record.weekday}".rstrip(),
            "Sail    Boat                Elapsed   IRC       Place ECHO      Place",
        ]
        for row in sorted(rows, key=lambda r: _summary_key(r.irc.rank)):
            if not row.sail:
                continue
            lines.append(
                f"{row.sail.ljust(8)}{row.name[:19].ljust(20)}{format_time(row.elapsed).ljust(10)}"
                f"{format_time(row.irc.corrected).ljust(10)}{str(_format_placing(row.irc.rank)).ljust(6)}"
                f"{format_time(row.echo.corrected).ljust(10)}{_format_placing(row.echo.rank)}"
            )
        return "\n".join(lines)


def _summary_key(placing: Placing) -> Tuple[int, float]:
    if isinstance(placing, int):
        return 0, float(placing)
    if isinstance(placing, Marker):
        return 1, 0.0
    return 2, 0.0
