"""
Strain Record Schemas
=====================

The strain directory hands back two record shapes: catalog strains
(`thcContent`/`cbdContent`) and user-entered strains (`thcPercentage`,
`floweringTime`, `heightIndoor`, ...). Both are validated here and converted
into one StrainCharacteristics.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from growcare.domain.strain_profiles import DEFAULT_FLOWERING_WEEKS, StrainCharacteristics
from growcare.enums import StrainType

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")

_USER_SHAPE_KEYS = frozenset(
    {
        "floweringTime",
        "flowering_time",
        "thcPercentage",
        "thc_percentage",
        "cbdPercentage",
        "cbd_percentage",
        "heightIndoor",
        "height_indoor",
        "heightOutdoor",
        "height_outdoor",
        "averageYield",
        "average_yield",
    }
)


def _leading_number(value: Any) -> float | None:
    """Accept 18, "18", "18-22%" and return the first number found."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.search(str(value))
    return float(match.group()) if match else None


class _StrainRecordBase(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    strain_id: str | None = Field(default=None, validation_alias=AliasChoices("id", "strain_id", "strainId"))
    name: str = Field(default="Unknown strain")
    strain_type: StrainType = Field(
        default=StrainType.UNKNOWN,
        validation_alias=AliasChoices("type", "strain_type", "strainType"),
    )
    grow_difficulty: str | None = Field(
        default=None,
        validation_alias=AliasChoices("growDifficulty", "grow_difficulty", "difficulty"),
    )

    @field_validator("strain_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return str(value).strip() if value else "Unknown strain"

    @field_validator("strain_type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> StrainType:
        return StrainType.parse(value)


class CatalogStrainRecord(_StrainRecordBase):
    """Shared catalog entry; flowering time is not reported by this shape."""

    thc_content: float | None = Field(default=None, validation_alias=AliasChoices("thcContent", "thc_content"))
    cbd_content: float | None = Field(default=None, validation_alias=AliasChoices("cbdContent", "cbd_content"))

    @field_validator("thc_content", "cbd_content", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float | None:
        return _leading_number(value)

    def to_characteristics(self) -> StrainCharacteristics:
        return StrainCharacteristics(
            strain_id=self.strain_id,
            name=self.name,
            strain_type=self.strain_type,
            flowering_weeks=DEFAULT_FLOWERING_WEEKS,
            grow_difficulty=self.grow_difficulty,
            thc_percentage=self.thc_content,
            cbd_percentage=self.cbd_content,
        )


class UserStrainRecord(_StrainRecordBase):
    """Strain entered by a grower."""

    flowering_time: int | None = Field(
        default=None,
        validation_alias=AliasChoices("floweringTime", "flowering_time", "flowering_weeks"),
    )
    thc_percentage: float | None = Field(
        default=None, validation_alias=AliasChoices("thcPercentage", "thc_percentage")
    )
    cbd_percentage: float | None = Field(
        default=None, validation_alias=AliasChoices("cbdPercentage", "cbd_percentage")
    )
    average_yield: str | None = Field(default=None, validation_alias=AliasChoices("averageYield", "average_yield"))
    height_indoor: str | None = Field(default=None, validation_alias=AliasChoices("heightIndoor", "height_indoor"))
    height_outdoor: str | None = Field(
        default=None, validation_alias=AliasChoices("heightOutdoor", "height_outdoor")
    )

    @field_validator("flowering_time", mode="before")
    @classmethod
    def _weeks(cls, value: Any) -> int | None:
        number = _leading_number(value)
        return int(number) if number and number > 0 else None

    @field_validator("thc_percentage", "cbd_percentage", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float | None:
        return _leading_number(value)

    @field_validator("average_yield", "height_indoor", "height_outdoor", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    def to_characteristics(self) -> StrainCharacteristics:
        return StrainCharacteristics(
            strain_id=self.strain_id,
            name=self.name,
            strain_type=self.strain_type,
            flowering_weeks=self.flowering_time or DEFAULT_FLOWERING_WEEKS,
            grow_difficulty=self.grow_difficulty,
            thc_percentage=self.thc_percentage,
            cbd_percentage=self.cbd_percentage,
            average_yield=self.average_yield,
            height_indoor=self.height_indoor,
            height_outdoor=self.height_outdoor,
            flowering_weeks_reported=self.flowering_time is not None,
        )


def parse_strain_record(raw: Mapping[str, Any]) -> StrainCharacteristics:
    """Validate either record shape and normalize it.

    Raises:
        pydantic.ValidationError: the record cannot be validated
    """
    model = UserStrainRecord if _USER_SHAPE_KEYS & set(raw) else CatalogStrainRecord
    return model.model_validate(dict(raw)).to_characteristics()
