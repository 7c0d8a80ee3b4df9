"""
Growth-related Enumerations
============================

Plant lifecycle and care-task enums shared by the task engine.
"""

from enum import Enum


class GrowthStage(str, Enum):
    """Lifecycle stages, declared in growth order."""

    GERMINATION = "germination"
    SEEDLING = "seedling"
    VEGETATIVE = "vegetative"
    PRE_FLOWER = "pre_flower"
    FLOWERING = "flowering"
    LATE_FLOWERING = "late_flowering"
    HARVEST = "harvest"
    CURING = "curing"

    def __str__(self):
        return self.value

    @property
    def index(self) -> int:
        return list(GrowthStage).index(self)

    @classmethod
    def parse(cls, value) -> "GrowthStage | None":
        """Return the matching stage or None for unknown input."""
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class TaskType(str, Enum):
    """Closed set of care task types."""

    WATERING = "watering"
    FEEDING = "feeding"
    INSPECTION = "inspection"
    PRUNING = "pruning"
    TRAINING = "training"
    DEFOLIATION = "defoliation"
    FLUSHING = "flushing"
    HARVEST = "harvest"
    TRANSPLANT = "transplant"

    def __str__(self):
        return self.value


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    def __str__(self):
        return self.value


class StrainType(str, Enum):
    """Strain families with their own scheduling profile."""

    INDICA = "indica"
    SATIVA = "sativa"
    HYBRID = "hybrid"
    CBD = "cbd"
    UNKNOWN = "unknown"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value) -> "StrainType":
        """Map free-form input to a strain type, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN
