"""Behavior catalog domain models and enums."""

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pet_of_the_day.core.config import Constants
from pet_of_the_day.core.errors import validation_error_from


class BehaviorCategory(StrEnum):
    """Catalog grouping for behaviors."""

    POTTY_TRAINING = "potty_training"
    FEEDING = "feeding"
    SOCIAL = "social"
    TRAINING = "training"
    PLAY = "play"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Return True if value names one of the categories."""
        return value in cls._value2member_map_


class Species(StrEnum):
    """Species a behavior applies to."""

    DOG = "dog"
    CAT = "cat"
    BOTH = "both"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Return True if value names one of the species options."""
        return value in cls._value2member_map_


class Behavior(BaseModel):
    """Predefined action a pet can perform, with its point value."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique behavior ID")
    name: str = Field(..., description="Display name (e.g., 'Went potty outside')")
    description: str = Field(default="", description="Longer explanation of the behavior")
    category: BehaviorCategory = Field(..., description="Catalog category")
    point_value: int = Field(..., description="Points awarded per log, -10..10 and never zero")
    min_interval_minutes: int = Field(..., description="Minimum minutes between two logs for the same pet")
    species: Species = Field(default=Species.BOTH, description="Species the behavior applies to")
    icon: str = Field(default="", description="Emoji or icon name")
    is_active: bool = Field(default=True, description="Inactive behaviors cannot be logged")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is present and fits the catalog limit."""
        if not v:
            raise ValueError("behavior name is required")
        if len(v) > Constants.BEHAVIOR_NAME_MAX_LENGTH:
            raise ValueError(f"behavior name must be {Constants.BEHAVIOR_NAME_MAX_LENGTH} characters or less")
        return v

    @field_validator("point_value")
    @classmethod
    def validate_point_value(cls, v: int) -> int:
        """Validate point value is within range and non-zero."""
        if v < Constants.MIN_POINT_VALUE or v > Constants.MAX_POINT_VALUE:
            raise ValueError(
                f"point value must be between {Constants.MIN_POINT_VALUE} and +{Constants.MAX_POINT_VALUE}"
            )
        if v == 0:
            raise ValueError("point value cannot be zero")
        return v

    @field_validator("min_interval_minutes")
    @classmethod
    def validate_min_interval(cls, v: int) -> int:
        """Validate the minimum re-log interval."""
        if v < Constants.MIN_INTERVAL_MINUTES or v > Constants.MAX_INTERVAL_MINUTES:
            raise ValueError(
                f"minimum interval must be between {Constants.MIN_INTERVAL_MINUTES} "
                f"and {Constants.MAX_INTERVAL_MINUTES} minutes"
            )
        return v

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: object) -> object:
        """Reject categories outside the fixed set with a readable message."""
        if not BehaviorCategory.is_valid(str(v)):
            raise ValueError(f"invalid behavior category: {v}")
        return v

    @field_validator("species", mode="before")
    @classmethod
    def validate_species(cls, v: object) -> object:
        """Reject species outside the fixed set with a readable message."""
        if not Species.is_valid(str(v)):
            raise ValueError(f"invalid species: {v}")
        return v

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        name: str,
        category: BehaviorCategory | str,
        point_value: int,
        min_interval_minutes: int,
        species: Species | str = Species.BOTH,
        description: str = "",
        icon: str = "",
    ) -> "Behavior":
        """Build a new active behavior.

        Raises:
            DomainValidationError: If any field breaks the catalog rules
        """
        try:
            return cls(
                name=name,
                description=description,
                category=category,
                point_value=point_value,
                min_interval_minutes=min_interval_minutes,
                species=species,
                icon=icon,
            )
        except ValidationError as e:
            raise validation_error_from(e) from e

    def update(  # noqa: PLR0913
        self,
        *,
        name: str,
        description: str,
        category: BehaviorCategory | str,
        point_value: int,
        min_interval_minutes: int,
        species: Species | str,
        icon: str,
        is_active: bool,
    ) -> "Behavior":
        """Return a fully replaced copy of this behavior, re-validating every field.

        Existing behavior logs keep the points they were awarded; only future logs
        see the new point value.

        Raises:
            DomainValidationError: If any field breaks the catalog rules
        """
        try:
            return Behavior(
                id=self.id,
                name=name,
                description=description,
                category=category,
                point_value=point_value,
                min_interval_minutes=min_interval_minutes,
                species=species,
                icon=icon,
                is_active=is_active,
                created_at=self.created_at,
                updated_at=datetime.now(UTC),
            )
        except ValidationError as e:
            raise validation_error_from(e) from e

    def is_valid_for_species(self, species: Species | str) -> bool:
        """Return True if the behavior applies to the given species."""
        return self.species == Species.BOTH or self.species == species

    def is_positive(self) -> bool:
        """Return True if the behavior awards points."""
        return self.point_value > 0

    def is_negative(self) -> bool:
        """Return True if the behavior removes points."""
        return self.point_value < 0
