from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .boat import Boat
from .timing import Marker, TimeValue, corrected_time, elapsed_time

logger = logging.getLogger(__name__)


class HandicapSystem(str, Enum):
    IRC = "IRC"
    ECHO = "ECHO"


@dataclass
class Entry:
    """One starter in a race: a sail number and what was recorded at the finish.

    ``finish`` is a time of day, a :class:`Marker` or ``None`` when the cell was
    blank or unreadable.  ``boat`` is filled in from the registry; it stays
    ``None`` for sail numbers the registry does not know.
    """

    sail: str
    finish: TimeValue = None
    boat: Optional[Boat] = None

    # Calculated fields
    elapsed: TimeValue = None
    corrected_irc: TimeValue = None
    corrected_echo: TimeValue = None

    def handicap(self, system: HandicapSystem, echo_name: str) -> Optional[float]:
        if self.boat is None:
            return None
        if system is HandicapSystem.IRC:
            return self.boat.irc
        return self.boat.handicap(echo_name) if echo_name else None

    def corrected(self, system: HandicapSystem) -> TimeValue:
        return self.corrected_irc if system is HandicapSystem.IRC else self.corrected_echo

    def calculate_corrected(self, start: TimeValue, echo_name: str) -> None:
        """Recalculate elapsed and corrected times for both handicap systems."""

        self.elapsed = elapsed_time(start, self.finish)
        if self.boat is None:
            self.corrected_irc = None
            self.corrected_echo = None
            return

        if isinstance(self.elapsed, Marker):
            self.corrected_irc = self.elapsed
            self.corrected_echo = self.elapsed
            return

        self.corrected_irc = corrected_time(self.elapsed, self.handicap(HandicapSystem.IRC, echo_name))
        self.corrected_echo = corrected_time(self.elapsed, self.handicap(HandicapSystem.ECHO, echo_name))
        if self.elapsed is not None and self.corrected_echo is None:
            logger.warning("Sail %s has no ECHO handicap named '%s'", self.sail, echo_name)
