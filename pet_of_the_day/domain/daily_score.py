"""Daily score aggregate for one pet, in one group, on one logical day."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from pet_of_the_day.core.clock import utc_now
from pet_of_the_day.core.config import Constants
from pet_of_the_day.core.errors import DomainValidationError
from pet_of_the_day.domain.behavior import BehaviorCategory
from pet_of_the_day.domain.behavior_log import BehaviorLog


class DailyScore(BaseModel):
    """Running totals for (pet, group, logical day).

    add_behavior_log and remove_behavior_log are exact inverses for the point
    total. The positive/negative counters are floored at zero on removal, so
    removing a log twice is not rejected, it just stops at zero.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique score ID")
    pet_id: str = Field(..., description="Pet the score belongs to")
    group_id: str = Field(..., description="Group the score counts in")
    day: date = Field(..., description="Logical day the score covers")
    total_points: int = 0
    positive_behaviors: int = 0
    negative_behaviors: int = 0
    last_activity_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def new(cls, *, pet_id: str, group_id: str, day: date) -> "DailyScore":
        """Create an empty score row.

        Raises:
            DomainValidationError: If pet_id or group_id is empty
        """
        if not pet_id:
            raise DomainValidationError("pet ID is required")
        if not group_id:
            raise DomainValidationError("group ID is required")
        # A datetime is also a date; keep only the calendar part.
        normalized = date(day.year, day.month, day.day)
        return cls(pet_id=pet_id, group_id=group_id, day=normalized)

    def add_behavior_log(self, behavior_log: BehaviorLog) -> None:
        """Add a log's contribution."""
        self.total_points += behavior_log.points_awarded

        if behavior_log.is_positive():
            self.positive_behaviors += 1
        elif behavior_log.is_negative():
            self.negative_behaviors += 1

        # Last write wins, even when the log is older than the current value.
        self.last_activity_at = behavior_log.logged_at
        self.updated_at = utc_now()

    def remove_behavior_log(self, behavior_log: BehaviorLog) -> None:
        """Remove a log's contribution; counters never drop below zero."""
        self.total_points -= behavior_log.points_awarded

        if behavior_log.is_positive():
            self.positive_behaviors = max(0, self.positive_behaviors - 1)
        elif behavior_log.is_negative():
            self.negative_behaviors = max(0, self.negative_behaviors - 1)

        self.updated_at = utc_now()

    def is_winning_score(self, other: "DailyScore") -> bool:
        """Return True if this score beats the other under the tie-break rule."""
        if self.total_points != other.total_points:
            return self.total_points > other.total_points
        return self.negative_behaviors < other.negative_behaviors

    def is_tied_with(self, other: "DailyScore") -> bool:
        """Return True if neither score beats the other."""
        return self.total_points == other.total_points and self.negative_behaviors == other.negative_behaviors

    def is_positive(self) -> bool:
        return self.total_points > 0

    def has_activity(self) -> bool:
        return self.positive_behaviors > 0 or self.negative_behaviors > 0

    def net_behavior_count(self) -> int:
        return self.positive_behaviors - self.negative_behaviors


class DailyScoreBreakdown(BaseModel):
    """How many times each behavior contributed to a daily score."""

    behavior_id: str
    behavior_name: str
    behavior_category: BehaviorCategory
    count: int
    points_per_instance: int
    total_points: int


class DailyScoreFilter(BaseModel):
    """Criteria for searching daily scores."""

    pet_id: str | None = None
    group_id: str | None = None
    day: date | None = None
    date_from: date | None = None
    date_to: date | None = None
    min_points: int | None = None
    has_activity: bool | None = None
    limit: int = Field(default=Constants.DEFAULT_PAGE_LIMIT, ge=1)
    offset: int = Field(default=0, ge=0)

    def matches(self, score: DailyScore) -> bool:  # noqa: PLR0911
        """Return True if the score satisfies every set criterion."""
        if self.pet_id is not None and score.pet_id != self.pet_id:
            return False
        if self.group_id is not None and score.group_id != self.group_id:
            return False
        if self.day is not None and score.day != self.day:
            return False
        if self.date_from is not None and score.day < self.date_from:
            return False
        if self.date_to is not None and score.day > self.date_to:
            return False
        if self.min_points is not None and score.total_points < self.min_points:
            return False
        return not (self.has_activity is not None and score.has_activity() != self.has_activity)


class PetDailyScoreSummary(BaseModel):
    """A pet's score for one logical day across every group visible to the requester."""

    pet_id: str
    pet_name: str
    day: date
    total_score: int = 0
    positive_behaviors: int = 0
    negative_behaviors: int = 0
    breakdown: list[DailyScoreBreakdown] = Field(default_factory=list)
    calculated_at: datetime = Field(default_factory=utc_now)
    user_timezone: str
