"""Behavior log domain models: one recorded occurrence of a behavior."""

import uuid
from datetime import datetime, timedelta

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from pet_of_the_day.core.clock import ensure_aware, utc_now
from pet_of_the_day.core.config import Constants
from pet_of_the_day.core.errors import DomainValidationError, NotFoundError, validation_error_from


class BehaviorLogGroupShare(BaseModel):
    """Visibility of a behavior log inside one group."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique share ID")
    behavior_log_id: str = Field(..., description="Log this share belongs to")
    group_id: str = Field(..., description="Group the log is shared with")
    created_at: datetime = Field(default_factory=utc_now)


class BehaviorLog(BaseModel):
    """Behavior log entry.

    ``points_awarded`` is copied from the behavior when the log is recorded, so
    later catalog edits never change history.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique log ID")
    pet_id: str = Field(..., description="Pet the behavior was performed by")
    behavior_id: str = Field(..., description="Catalog behavior that was performed")
    user_id: str = Field(..., description="User who recorded the log")
    points_awarded: int = Field(..., description="Points copied from the behavior at recording time")
    logged_at: datetime = Field(..., description="When the behavior happened")
    created_at: datetime = Field(default_factory=utc_now)
    notes: str = Field(default="", description="Free-text notes")
    group_shares: list[BehaviorLogGroupShare] = Field(default_factory=list)

    @field_validator("pet_id", "behavior_id", "user_id")
    @classmethod
    def validate_required_id(cls, v: str, info: ValidationInfo) -> str:
        """Validate ids are not empty."""
        if not v or not v.strip():
            label = info.field_name.removesuffix("_id").replace("_", " ")
            raise ValueError(f"{label} ID is required")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: str) -> str:
        """Validate notes length."""
        if len(v) > Constants.NOTES_MAX_LENGTH:
            raise ValueError(f"notes must be {Constants.NOTES_MAX_LENGTH} characters or less")
        return v

    @field_validator("logged_at")
    @classmethod
    def validate_logged_at_aware(cls, v: datetime) -> datetime:
        """Store logged_at as an aware instant."""
        return ensure_aware(v)

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        pet_id: str,
        behavior_id: str,
        user_id: str,
        points_awarded: int,
        logged_at: datetime,
        notes: str = "",
        now: datetime | None = None,
    ) -> "BehaviorLog":
        """Build a new behavior log with no group shares.

        Raises:
            DomainValidationError: If an id is empty, notes are too long, or
                logged_at is in the future or more than 24 hours old
        """
        try:
            log = cls(
                pet_id=pet_id,
                behavior_id=behavior_id,
                user_id=user_id,
                points_awarded=points_awarded,
                logged_at=logged_at,
                notes=notes,
            )
        except ValidationError as e:
            raise validation_error_from(e) from e

        validate_logged_at_window(log.logged_at, now=now)
        return log

    def add_group_share(self, group_id: str) -> BehaviorLogGroupShare:
        """Share this log with a group.

        Raises:
            DomainValidationError: If group_id is empty or already shared
        """
        if not group_id:
            raise DomainValidationError("group ID is required")
        if self.is_shared_with_group(group_id):
            raise DomainValidationError(f"behavior log is already shared with group {group_id}")

        share = BehaviorLogGroupShare(behavior_log_id=self.id, group_id=group_id)
        self.group_shares.append(share)
        return share

    def remove_group_share(self, group_id: str) -> BehaviorLogGroupShare:
        """Stop sharing this log with a group.

        Raises:
            NotFoundError: If the log is not shared with the group
        """
        for index, share in enumerate(self.group_shares):
            if share.group_id == group_id:
                return self.group_shares.pop(index)
        raise NotFoundError(f"group share not found for group {group_id}")

    def is_shared_with_group(self, group_id: str) -> bool:
        """Return True if this log is shared with the group."""
        return any(share.group_id == group_id for share in self.group_shares)

    def shared_group_ids(self) -> list[str]:
        """Return the ids of every group the log is shared with."""
        return [share.group_id for share in self.group_shares]

    def is_positive(self) -> bool:
        """Return True if the log awards points."""
        return self.points_awarded > 0

    def is_negative(self) -> bool:
        """Return True if the log removes points."""
        return self.points_awarded < 0

    def is_within_last_hours(self, hours: int, *, now: datetime | None = None) -> bool:
        """Return True if the behavior happened within the last ``hours`` hours."""
        cutoff = (now or utc_now()) - timedelta(hours=hours)
        return self.logged_at > cutoff


def validate_logged_at_window(logged_at: datetime, *, now: datetime | None = None) -> None:
    """Check logged_at is not in the future and not older than the backdating window.

    Raises:
        DomainValidationError: If logged_at falls outside the window
    """
    current = ensure_aware(now) if now is not None else utc_now()
    logged_at = ensure_aware(logged_at)

    if logged_at > current:
        raise DomainValidationError("logged time cannot be in the future")

    if logged_at < current - timedelta(hours=Constants.MAX_BACKDATE_HOURS):
        raise DomainValidationError(
            f"logged time cannot be more than {Constants.MAX_BACKDATE_HOURS} hours in the past"
        )


class BehaviorLogFilter(BaseModel):
    """Criteria for searching behavior logs."""

    pet_id: str | None = None
    behavior_id: str | None = None
    group_id: str | None = None
    user_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = Field(default=Constants.DEFAULT_PAGE_LIMIT, ge=1)
    offset: int = Field(default=0, ge=0)

    def matches(self, log: BehaviorLog) -> bool:
        """Return True if the log satisfies every set criterion."""
        if self.pet_id is not None and log.pet_id != self.pet_id:
            return False
        if self.behavior_id is not None and log.behavior_id != self.behavior_id:
            return False
        if self.group_id is not None and not log.is_shared_with_group(self.group_id):
            return False
        if self.user_id is not None and log.user_id != self.user_id:
            return False
        if self.date_from is not None and log.logged_at < ensure_aware(self.date_from):
            return False
        return not (self.date_to is not None and log.logged_at > ensure_aware(self.date_to))
