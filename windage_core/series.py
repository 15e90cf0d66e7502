"""Series points: placings per race, discards and average points for the OOD."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .boat import BoatRegistry, normalise_sail
from .config import ScoringConfig
from .entry import HandicapSystem
from .race import Placing, ScoreResults
from .timing import Marker

logger = logging.getLogger(__name__)


class ScoreKind(str, Enum):
    PLACING = "placing"
    NON_FINISH = "non_finish"
    DNC = "dnc"
    AVG = "avg"


def num_discards(races_sailed: int) -> int:
    """One discard at 3 races, a second at 5, then one more every 3 races."""

    if races_sailed < 3:
        return 0
    if races_sailed < 5:
        return 1
    return 2 + (races_sailed - 5) // 3


def _format_points(points: float) -> str:
    return str(int(points)) if float(points).is_integer() else f"{points:.2f}"


@dataclass
class RaceScore:
    race_id: str
    kind: ScoreKind
    points: float = 0.0
    marker: Optional[Marker] = None
    discarded: bool = False

    @property
    def label(self) -> str:
        if self.kind is ScoreKind.AVG:
            return f"AVG({self.points:.2f})"
        if self.kind is ScoreKind.NON_FINISH:
            code = self.marker.value if self.marker else Marker.DNF.value
            return f"{code}({_format_points(self.points)})"
        if self.kind is ScoreKind.DNC:
            return f"DNC({_format_points(self.points)})"
        return _format_points(self.points)

    def cell(self) -> str:
        # Parentheses mark a discarded score.
        return f"({self.label})" if self.discarded else self.label


@dataclass
class RacePlacings:
    """The places recorded for one race under one handicap system."""

    race_id: str
    placings: List[Tuple[str, Placing]] = field(default_factory=list)
    ood_sail: str = ""

    @property
    def starters(self) -> int:
        return len(self.placings)

    @property
    def sailed(self) -> bool:
        return bool(self.placings)

    def placing(self, sail: str) -> Tuple[bool, Placing]:
        for starter, placing in self.placings:
            if starter == sail:
                return True, placing
        return False, None

    @classmethod
    def from_results(
        cls, results: ScoreResults, system: HandicapSystem, ood_sail: Any = ""
    ) -> "RacePlacings":
        return cls(
            race_id=results.race_id,
            placings=results.placings(system),
            ood_sail=normalise_sail(ood_sail),
        )


@dataclass
class SeriesScore:
    sail: str
    name: str = ""
    owner: str = ""
    races: List[RaceScore] = field(default_factory=list)
    average: float = 0.0
    total: float = 0.0
    position: Optional[int] = None

    @property
    def discarded(self) -> List[RaceScore]:
        return [score for score in self.races if score.discarded]


def race_score(sail: str, race: RacePlacings, config: ScoringConfig) -> Optional[RaceScore]:
    """Points for one boat in one race, or ``None`` when the race has not been sailed."""

    if not race.sailed:
        return None
    sail = normalise_sail(sail)
    if race.ood_sail and race.ood_sail == sail:
        return RaceScore(race.race_id, ScoreKind.AVG)

    found, placing = race.placing(sail)
    if isinstance(placing, Marker):
        if placing is Marker.AVG:
            return RaceScore(race.race_id, ScoreKind.AVG)
        return RaceScore(
            race.race_id,
            ScoreKind.NON_FINISH,
            points=float(race.starters + config.dnf_penalty),
            marker=placing,
        )
    if isinstance(placing, int):
        return RaceScore(race.race_id, ScoreKind.PLACING, points=float(placing))
    if found:
        logger.debug("Race %s: sail %s started without a place; scoring DNC", race.race_id, sail)
    return RaceScore(race.race_id, ScoreKind.DNC, points=float(race.starters + config.dnc_penalty))


def score_boat(
    sail: str,
    races: Sequence[RacePlacings],
    config: ScoringConfig | None = None,
    name: str = "",
    owner: str = "",
) -> SeriesScore:
    config = config or ScoringConfig()
    scores = [score for score in (race_score(sail, race, config) for race in races) if score is not None]

    averaged = [score for score in scores if score.kind is ScoreKind.AVG]
    numeric = [score for score in scores if score.kind is not ScoreKind.AVG]

    # AVG races count towards races sailed but are never discarded.
    discards = min(num_discards(len(scores)), len(numeric))
    if discards:
        for score in sorted(numeric, key=lambda s: s.points)[-discards:]:
            score.discarded = True

    kept = [score.points for score in numeric if not score.discarded]
    average = sum(kept) / len(kept) if kept else 0.0
    for score in averaged:
        score.points = average

    total = round(sum(kept) + average * len(averaged), 2)
    return SeriesScore(
        sail=normalise_sail(sail),
        name=name,
        owner=owner,
        races=scores,
        average=average,
        total=total,
    )


class Series:
    def __init__(
        self,
        series_id: str,
        sails: Iterable[Any],
        races: Iterable[RacePlacings],
        registry: BoatRegistry | None = None,
        config: ScoringConfig | None = None,
    ) -> None:
        self.series_id = series_id
        self.sails = [normalise_sail(sail) for sail in sails]
        self.races = list(races)
        self.registry = registry or BoatRegistry()
        self.config = config or ScoringConfig()

    def score(self) -> List[Optional[SeriesScore]]:
        """One score per sail row, ``None`` for rows without a registered boat."""

        logger.info("Calculating series results for %s (%d races)", self.series_id, len(self.races))
        scores: List[Optional[SeriesScore]] = []
        for sail in self.sails:
            boat = self.registry.lookup(sail) if sail else None
            if boat is None:
                if sail:
                    logger.warning("Series %s: sail number %s is not a registered boat", self.series_id, sail)
                scores.append(None)
                continue
            scores.append(score_boat(sail, self.races, self.config, name=boat.name, owner=boat.owner))
        return scores

    def standings(self) -> List[SeriesScore]:
        """Scored boats ordered by total, low points first; equal totals share a position."""

        scored = [score for score in self.score() if score is not None]
        ordered = sorted(scored, key=lambda s: (s.total, s.name.lower(), s.sail))
        for score in ordered:
            score.position = 1 + sum(1 for other in scored if other.total < score.total)
        return ordered

    def table(self, total_label: str | None = None) -> List[List[Any]]:
        total_label = total_label or self.config.total_label
        header: List[Any] = ["Sail", "Name", "Owner"]
        header.extend(race.race_id for race in self.races)
        header.append(total_label)

        table: List[List[Any]] = [header]
        for sail, score in zip(self.sails, self.score()):
            if score is None:
                table.append([sail, "", ""] + [""] * len(self.races) + [""])
                continue
            # Scores exist only for sailed races, in series order.
            remaining = iter(score.races)
            row: List[Any] = [score.sail, score.name, score.owner]
            row.extend(next(remaining).cell() if race.sailed else "" for race in self.races)
            row.append(f"{score.total:.2f}")
            table.append(row)
        return table
