"""Flowering and harvest prediction result."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from growcare.enums import ConfidenceLevel


@dataclass(frozen=True)
class FloweringPrediction:
    plant_id: str
    strain_name: str
    planted_date: datetime
    expected_flowering_start: datetime
    expected_flowering_end: datetime
    expected_harvest_date: datetime
    confidence: ConfidenceLevel
    factors: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plant_id": self.plant_id,
            "strain_name": self.strain_name,
            "planted_date": self.planted_date.isoformat(),
            "expected_flowering_start": self.expected_flowering_start.isoformat(),
            "expected_flowering_end": self.expected_flowering_end.isoformat(),
            "expected_harvest_date": self.expected_harvest_date.isoformat(),
            "confidence": self.confidence.value,
            "factors": list(self.factors),
        }
