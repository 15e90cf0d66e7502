"""Race and series scoring for handicap keelboat racing."""

from .boat import Boat, BoatRegistry
from .config import ScoringConfig
from .entry import Entry, HandicapSystem
from .race import Race, RaceRecord, ScoreResults
from .series import Series, SeriesScore, num_discards, score_boat
from .loader import DataStore
from .timing import Marker

__all__ = [
    "Boat",
    "BoatRegistry",
    "ScoringConfig",
    "Entry",
    "HandicapSystem",
    "Race",
    "RaceRecord",
    "ScoreResults",
    "Series",
    "SeriesScore",
    "num_discards",
    "score_boat",
    "DataStore",
    "Marker",
]
