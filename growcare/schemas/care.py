"""
Care API Schemas
================

Pydantic models for the care API request bodies. Each model converts itself
into the domain object the engine takes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from growcare.domain.activity_profile import ActivityProfile
from growcare.domain.notifications import NotificationBatchRequest
from growcare.domain.plant import PlantRecord
from growcare.domain.plant_task import EnvironmentalConditions
from growcare.enums import GrowthStage, Priority, TaskType
from growcare.utils.time import coerce_datetime, parse_time_of_day


def _stringify(value: Any) -> Any:
    return str(value) if isinstance(value, int) and not isinstance(value, bool) else value


def _aware(value: Any) -> Any:
    """Parse ISO strings and treat naive datetimes as UTC."""
    if value is None or value == "":
        return None
    parsed = coerce_datetime(value)
    return parsed if parsed is not None else value


# ============================================================================
# Plants and tasks
# ============================================================================


class PlantPayload(BaseModel):
    """Plant fields supplied by the host with each request."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(..., min_length=1, validation_alias=AliasChoices("user_id", "userId"))
    name: str = Field(default="your plant", max_length=100, validation_alias=AliasChoices("name", "plant_name"))
    strain_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("strain_id", "strainId"))
    planted_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("planted_date", "plantedDate")
    )
    growth_stage: Optional[str] = Field(
        default=None,
        description="Current growth stage; unknown values are kept and reported",
        validation_alias=AliasChoices("growth_stage", "growthStage", "stage"),
    )
    cannabis_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cannabis_type", "cannabisType")
    )

    @field_validator("user_id", "strain_id", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        return _stringify(v)

    @field_validator("planted_date", mode="before")
    @classmethod
    def parse_planted_date(cls, v):
        return _aware(v)

    def to_record(self, plant_id: str) -> PlantRecord:
        return PlantRecord(
            plant_id=str(plant_id),
            user_id=self.user_id,
            name=self.name or "your plant",
            strain_id=self.strain_id,
            planted_date=self.planted_date,
            growth_stage=GrowthStage.parse(self.growth_stage),
            cannabis_type=self.cannabis_type,
            raw_stage=self.growth_stage,
        )


class GenerateTasksRequest(BaseModel):
    """Body of POST /plants/<plant_id>/tasks/generate."""

    plant: PlantPayload
    stage: Optional[str] = Field(default=None, description="Stage to generate for; defaults to the plant's stage")
    strain_specific: bool = Field(default=False, description="Apply strain adjustments before persisting")


class RecurringTasksRequest(BaseModel):
    """Body of POST /plants/<plant_id>/tasks/recurring."""

    plant: PlantPayload
    task_type: TaskType
    interval_days: int = Field(..., ge=1, le=365)
    end_date: Optional[datetime] = None

    @field_validator("task_type", mode="before")
    @classmethod
    def normalize_task_type(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, v):
        return _aware(v)


class ConditionsRequest(BaseModel):
    """Latest environmental readings for a plant."""

    model_config = ConfigDict(populate_by_name=True)

    humidity: Optional[float] = Field(default=None, ge=0, le=100)
    ph: Optional[float] = Field(default=None, ge=0, le=14, validation_alias=AliasChoices("ph", "pH"))
    temperature: Optional[float] = Field(default=None, ge=-50, le=80)

    def to_conditions(self) -> EnvironmentalConditions:
        return EnvironmentalConditions(humidity=self.humidity, ph=self.ph, temperature=self.temperature)


# ============================================================================
# Notifications
# ============================================================================


class NotificationRequest(BaseModel):
    """Reminder request for one task."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(..., min_length=1)
    plant_id: str = Field(..., min_length=1)
    plant_name: str = Field(default="your plant", max_length=100)
    task_type: TaskType
    title: str = Field(..., min_length=1, max_length=200)
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    user_id: str = Field(..., min_length=1)

    @field_validator("task_id", "plant_id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        return _stringify(v)

    @field_validator("task_type", "priority", mode="before")
    @classmethod
    def normalize_enum(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v):
        return _aware(v)

    def to_request(self) -> NotificationBatchRequest:
        return NotificationBatchRequest(
            task_id=self.task_id,
            plant_id=self.plant_id,
            plant_name=self.plant_name,
            task_type=self.task_type,
            title=self.title,
            due_date=self.due_date,
            priority=self.priority,
            user_id=self.user_id,
        )


class ActivityProfileRequest(BaseModel):
    """Body of PUT /users/<user_id>/activity-profile."""

    preferred_times: List[str] = Field(default_factory=list)
    quiet_hours_start: Optional[str] = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    quiet_hours_end: Optional[str] = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    most_active_hours: List[int] = Field(default_factory=list)
    average_response_minutes: int = Field(default=30, ge=0)
    timezone: str = Field(default="UTC", min_length=1)

    @field_validator("preferred_times")
    @classmethod
    def validate_times(cls, v):
        for value in v:
            if parse_time_of_day(value) is None:
                raise ValueError(f"Invalid time of day: {value!r}")
        return v

    @field_validator("most_active_hours")
    @classmethod
    def validate_hours(cls, v):
        if any(hour < 0 or hour > 23 for hour in v):
            raise ValueError("Active hours must be between 0 and 23")
        return v

    def to_profile(self, user_id: str) -> ActivityProfile:
        return ActivityProfile.from_dict({"user_id": user_id, **self.model_dump()})


# ============================================================================
# Plant-only requests
# ============================================================================


class PlantRequest(BaseModel):
    """Body carrying just the plant, e.g. for flowering prediction."""

    plant: PlantPayload


class StageTransitionRequest(PlantRequest):
    advance: bool = Field(
        default=False,
        description="Record the transition and generate the next stage's tasks",
    )
