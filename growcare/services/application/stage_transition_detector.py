"""Growth stage transition detection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from growcare.domain.growth_stages import get_stage_config
from growcare.domain.plant import PlantRecord
from growcare.domain.strain_profiles import StrainCharacteristics
from growcare.enums import GrowthStage
from growcare.services.application.strain_profile_resolver import StrainProfileResolver
from growcare.utils.time import utc_now

logger = logging.getLogger(__name__)


class StageTransitionDetector:
    """Decides whether a plant has outgrown its current stage.

    Read-only: persisting the new stage and regenerating tasks is the
    caller's job.
    """

    def __init__(self, strain_resolver: StrainProfileResolver, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._strains = strain_resolver
        self._clock = clock

    def expected_duration(
        self,
        plant: PlantRecord,
        characteristics: StrainCharacteristics | None = None,
    ) -> float | None:
        """Stage duration in days scaled by the strain's stage modifier."""
        config = get_stage_config(plant.growth_stage)
        if config is None:
            return None
        scheduling = self._strains.scheduling_config(plant, characteristics)
        return config.duration_days * scheduling.modifier_for(config.stage)

    def detect(
        self,
        plant: PlantRecord,
        characteristics: StrainCharacteristics | None = None,
    ) -> GrowthStage | None:
        if plant.planted_date is None:
            return None

        config = get_stage_config(plant.growth_stage)
        if config is None:
            logger.warning("Plant %s has unknown stage %r", plant.plant_id, plant.raw_stage)
            return None
        if config.is_terminal:
            return None

        days_since_planted = (self._clock() - plant.planted_date).days
        expected = self.expected_duration(plant, characteristics)
        if expected is not None and days_since_planted >= expected:
            logger.info(
                "Plant %s ready for %s (%s days planted, %.1f expected in %s)",
                plant.plant_id,
                config.next_stage,
                days_since_planted,
                expected,
                config.stage,
            )
            return config.next_stage
        return None
