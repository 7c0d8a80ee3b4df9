"""
Plant Record
============

Read-only view of a plant supplied by the host application.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from growcare.enums import GrowthStage
from growcare.utils.time import coerce_datetime


@dataclass(frozen=True)
class PlantRecord:
    """Plant fields the scheduling engine reads."""

    plant_id: str
    user_id: str
    name: str = "your plant"
    strain_id: str | None = None
    planted_date: datetime | None = None
    growth_stage: GrowthStage | None = None
    cannabis_type: str | None = None
    raw_stage: str | None = None

    def with_stage(self, stage: GrowthStage) -> "PlantRecord":
        return PlantRecord(
            plant_id=self.plant_id,
            user_id=self.user_id,
            name=self.name,
            strain_id=self.strain_id,
            planted_date=self.planted_date,
            growth_stage=stage,
            cannabis_type=self.cannabis_type,
            raw_stage=stage.value,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlantRecord":
        """Build from a host record, accepting snake_case or camelCase keys."""

        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        raw_stage = pick("growth_stage", "growthStage", "stage")
        strain_id = pick("strain_id", "strainId")
        return cls(
            plant_id=str(pick("plant_id", "id", "plantId")),
            user_id=str(pick("user_id", "userId")),
            name=pick("name", "plant_name", "plantName") or "your plant",
            strain_id=str(strain_id) if strain_id is not None else None,
            planted_date=coerce_datetime(pick("planted_date", "plantedDate")),
            growth_stage=GrowthStage.parse(raw_stage),
            cannabis_type=pick("cannabis_type", "cannabisType"),
            raw_stage=str(raw_stage) if raw_stage is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "plant_id": self.plant_id,
            "user_id": self.user_id,
            "name": self.name,
            "strain_id": self.strain_id,
            "planted_date": self.planted_date.isoformat() if self.planted_date else None,
            "growth_stage": self.growth_stage.value if self.growth_stage else self.raw_stage,
            "cannabis_type": self.cannabis_type,
        }
