from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)

FIXED_COLUMNS = ("sail", "name", "owner", "irc")


def normalise_sail(value: Any) -> str:
    """Sail numbers compare as text; spreadsheet numbers lose their ``.0``."""

    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def parse_handicap(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except ValueError:
        return None
    return number if number > 0 else None


@dataclass
class Boat:
    """A registered boat and its handicaps.

    ``handicaps`` holds every labelled column beyond the fixed ones, keyed by
    the lowercased label.  The ECHO revisions issued through the season live
    here, one key per revision.
    """

    sail: str
    name: str = ""
    owner: str = ""
    irc: Optional[float] = None
    handicaps: Dict[str, float] = field(default_factory=dict)

    def handicap(self, revision: str) -> Optional[float]:
        return self.handicaps.get(revision.strip().lower())


class BoatRegistry:
    def __init__(self, boats: Iterable[Boat] | None = None) -> None:
        self._boats: Dict[str, Boat] = {}
        for boat in boats or []:
            self.add(boat)

    def add(self, boat: Boat) -> bool:
        key = normalise_sail(boat.sail)
        if not key:
            return False
        if key in self._boats:
            # First occurrence wins.
            logger.warning("Duplicate sail number %s ignored", key)
            return False
        self._boats[key] = boat
        return True

    def lookup(self, sail: Any) -> Optional[Boat]:
        key = normalise_sail(sail)
        if not key:
            return None
        boat = self._boats.get(key)
        if boat is None:
            logger.debug("Sail number %s not found in boat registry", key)
        return boat

    def __contains__(self, sail: Any) -> bool:
        return normalise_sail(sail) in self._boats

    def __iter__(self) -> Iterator[Boat]:
        return iter(self._boats.values())

    def __len__(self) -> int:
        return len(self._boats)

    @classmethod
    def from_table(cls, rows: Sequence[Sequence[Any]], max_boats: int | None = None) -> "BoatRegistry":
        """Build a registry from a header-labelled table.

        Labels are lowercased and unlabelled columns ignored.  Rows without a
        sail number are skipped.
        """

        registry = cls()
        if not rows:
            return registry

        labels = [str(cell or "").strip().lower() for cell in rows[0]]
        body: List[Sequence[Any]] = list(rows[1:])
        if max_boats is not None:
            body = body[:max_boats]

        for row in body:
            record = {label: cell for label, cell in zip(labels, row) if label}
            sail = normalise_sail(record.get("sail"))
            if not sail:
                continue
            handicaps: Dict[str, float] = {}
            for label, cell in record.items():
                if label in FIXED_COLUMNS:
                    continue
                value = parse_handicap(cell)
                if value is not None:
                    handicaps[label] = value
            registry.add(
                Boat(
                    sail=sail,
                    name=str(record.get("name") or "").strip(),
                    owner=str(record.get("owner") or "").strip(),
                    irc=parse_handicap(record.get("irc")),
                    handicaps=handicaps,
                )
            )
        return registry
