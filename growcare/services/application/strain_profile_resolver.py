"""
Strain Profile Resolver
=======================

Resolves a plant's strain into StrainCharacteristics and the matching
StrainSchedulingConfig. Resolution never fails: a missing id, an unknown strain
or a broken directory all produce a synthetic low-confidence "unknown" record.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping

from pydantic import ValidationError

from growcare.domain.plant import PlantRecord
from growcare.domain.strain_profiles import (
    StrainCharacteristics,
    StrainSchedulingConfig,
    get_scheduling_config,
)
from growcare.enums import StrainType
from growcare.schemas.strains import parse_strain_record
from growcare.services.protocols import StrainDirectory
from growcare.utils.cache import TTLCache

logger = logging.getLogger(__name__)

_COMPARED_FREQUENCIES = ("watering_frequency_days", "feeding_frequency_days", "inspection_frequency_days")


class StrainProfileResolver:
    """Strain lookups backed by a read-only directory and a TTL cache."""

    def __init__(
        self,
        directory: StrainDirectory | None,
        *,
        cache_ttl_seconds: int = 600,
        cache_maxsize: int = 256,
    ) -> None:
        self._directory = directory
        self._cache = TTLCache(ttl_seconds=cache_ttl_seconds, maxsize=cache_maxsize)

    def resolve(self, plant: PlantRecord) -> StrainCharacteristics:
        if not plant.strain_id:
            logger.debug("Plant %s has no strain id; using unknown strain profile", plant.plant_id)
            return StrainCharacteristics.unknown()
        characteristics = self._cache.get(plant.strain_id, lambda: self._load(plant.strain_id))
        return characteristics or StrainCharacteristics.unknown(plant.strain_id)

    def scheduling_config(
        self,
        plant: PlantRecord,
        characteristics: StrainCharacteristics | None = None,
    ) -> StrainSchedulingConfig:
        """Scheduling table row for the plant.

        The resolved strain type wins; the plant's own cannabis type is the
        fallback, then the unknown profile.
        """
        characteristics = characteristics or self.resolve(plant)
        if characteristics.strain_type != StrainType.UNKNOWN:
            return get_scheduling_config(characteristics.strain_type)
        return get_scheduling_config(plant.cannabis_type)

    def invalidate(self, strain_id: str | None = None) -> None:
        if strain_id is None:
            self._cache.clear()
        else:
            self._cache.invalidate(strain_id)

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()

    def _load(self, strain_id: str) -> StrainCharacteristics | None:
        if self._directory is None:
            return None
        try:
            raw: Mapping[str, Any] | None = self._directory.lookup(strain_id)
        except Exception as exc:
            # Any directory failure degrades to the unknown profile.
            logger.warning("Strain directory lookup failed for %s: %s", strain_id, exc)
            return None
        if not raw:
            logger.info("Strain %s not found in directory", strain_id)
            return None
        try:
            characteristics = parse_strain_record(raw)
        except ValidationError as exc:
            logger.warning("Strain %s has an invalid record: %s", strain_id, exc.error_count())
            return None
        if characteristics.strain_id is None:
            characteristics = replace(characteristics, strain_id=strain_id)
        return characteristics

    @staticmethod
    def compare_schedules(base: StrainType | str, other: StrainType | str) -> dict[str, dict[str, Any]]:
        """Per-frequency comparison of two strain types' schedules."""
        base_config = get_scheduling_config(base)
        other_config = get_scheduling_config(other)
        comparison: dict[str, dict[str, Any]] = {}
        for attr in _COMPARED_FREQUENCIES:
            base_value = getattr(base_config, attr)
            other_value = getattr(other_config, attr)
            comparison[attr.replace("_frequency_days", "")] = {
                base_config.strain_type.value: base_value,
                other_config.strain_type.value: other_value,
                "difference_percent": round((other_value - base_value) / base_value * 100, 2),
            }
        return comparison
