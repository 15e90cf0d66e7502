from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator


logger = logging.getLogger(__name__)


class ScoringConfig(BaseModel):
    """Penalties, table bounds and labels shared by one calculation run."""

    dnf_penalty: int = Field(default=1, alias="dnfPenalty", ge=0)
    dnc_penalty: int = Field(default=3, alias="dncPenalty", ge=0)
    max_entrants: int = Field(default=21, alias="maxEntrants", gt=0)
    max_boats: int = Field(default=30, alias="maxBoats", gt=0)
    boats_table: str = Field(default="Boats", alias="boatsTable")
    races_table: str = Field(default="Races", alias="racesTable")
    total_label: str = Field(default="Total", alias="totalLabel")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _check_penalties(self) -> "ScoringConfig":
        if self.dnc_penalty <= self.dnf_penalty:
            raise ValueError("dnc_penalty must be greater than dnf_penalty")
        return self

    @classmethod
    def load(cls, config_path: Path | None = None) -> "ScoringConfig":
        """Read ``config.json`` when present and apply environment overrides."""

        raw: Dict[str, Any] = {}
        if config_path is not None and config_path.exists():
            loaded = json.loads(config_path.read_text())
            if not isinstance(loaded, dict):
                raise ValueError(f"{config_path} must contain a JSON object")
            raw = cls.model_validate(loaded).model_dump()

        for env_name, key in (
            ("WINDAGE_DNF_PENALTY", "dnf_penalty"),
            ("WINDAGE_DNC_PENALTY", "dnc_penalty"),
        ):
            value = os.getenv(env_name, "").strip()
            if value:
                logger.debug("Overriding %s from %s", key, env_name)
                raw[key] = value

        return cls(**raw)
