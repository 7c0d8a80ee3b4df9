"""Flowering-window and harvest-date estimates from strain data."""

from __future__ import annotations

import logging
from datetime import timedelta

from growcare.domain.flowering import FloweringPrediction
from growcare.domain.plant import PlantRecord
from growcare.domain.strain_profiles import DEFAULT_FLOWERING_WEEKS
from growcare.enums import ConfidenceLevel, GrowthStage, StrainType
from growcare.services.application.strain_profile_resolver import StrainProfileResolver

logger = logging.getLogger(__name__)

DEFAULT_VEGETATIVE_DAYS = 56
HARVEST_BUFFER = timedelta(days=7)

VEGETATIVE_DAYS: dict[StrainType, tuple[int, str]] = {
    StrainType.SATIVA: (70, "Sativa strains typically need longer vegetative period"),
    StrainType.INDICA: (49, "Indica strains can flower earlier"),
    StrainType.HYBRID: (56, "Hybrid strain with balanced growth pattern"),
}

_NEAR_FLOWERING = (GrowthStage.PRE_FLOWER, GrowthStage.FLOWERING)


class FloweringPredictor:
    def __init__(self, strain_resolver: StrainProfileResolver) -> None:
        self._strains = strain_resolver

    def predict(self, plant: PlantRecord) -> FloweringPrediction | None:
        """Estimate the flowering window and harvest date.

        Returns None when the plant has no planted date. Confidence is HIGH
        when the strain reported its own flowering time or the plant is
        already in (or about to enter) flowering, LOW otherwise.
        """
        if plant.planted_date is None:
            logger.warning("Plant %s has no planted date; cannot predict flowering", plant.plant_id)
            return None

        strain = self._strains.resolve(plant)
        factors: list[str] = []

        vegetative_days, factor = VEGETATIVE_DAYS.get(strain.strain_type, (DEFAULT_VEGETATIVE_DAYS, None))
        if factor:
            factors.append(factor)

        weeks = strain.flowering_weeks or DEFAULT_FLOWERING_WEEKS
        if strain.flowering_weeks_reported:
            confidence = ConfidenceLevel.HIGH
            factors.append(f"Strain flowering time: {weeks} weeks")
        else:
            confidence = ConfidenceLevel.LOW
            factors.append("Using estimated flowering time (strain data incomplete)")

        if plant.growth_stage in _NEAR_FLOWERING:
            confidence = ConfidenceLevel.HIGH
            factors.append("Plant is already in or approaching flowering stage")

        flowering_start = plant.planted_date + timedelta(days=vegetative_days)
        flowering_end = flowering_start + timedelta(weeks=weeks)
        return FloweringPrediction(
            plant_id=plant.plant_id,
            strain_name=strain.name,
            planted_date=plant.planted_date,
            expected_flowering_start=flowering_start,
            expected_flowering_end=flowering_end,
            expected_harvest_date=flowering_end + HARVEST_BUFFER,
            confidence=confidence,
            factors=tuple(factors),
        )
