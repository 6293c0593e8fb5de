"""Ranking projections and Pet of the Day winner records."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from pet_of_the_day.core.clock import utc_now
from pet_of_the_day.domain.daily_score import DailyScore


class PetRanking(BaseModel):
    """A pet's standing within a group for one ranking request (never persisted)."""

    pet_id: str
    pet_name: str = ""
    owner_name: str = ""
    total_points: int = 0
    todays_points: int = 0
    positive_behaviors: int = 0
    negative_behaviors: int = 0
    last_activity_at: datetime | None = None
    rank: int = 0
    is_tied: bool = False

    def update_from_daily_score(self, daily_score: DailyScore) -> None:
        """Fold one daily score row into the projection.

        Totals accumulate across rows (date-range rankings); todays_points holds
        the most recently folded row.
        """
        self.todays_points = daily_score.total_points
        self.total_points += daily_score.total_points
        self.positive_behaviors += daily_score.positive_behaviors
        self.negative_behaviors += daily_score.negative_behaviors

        if daily_score.last_activity_at is not None and (
            self.last_activity_at is None or daily_score.last_activity_at > self.last_activity_at
        ):
            self.last_activity_at = daily_score.last_activity_at

    def set_rank(self, rank: int, *, is_tied: bool) -> None:
        self.rank = rank
        self.is_tied = is_tied

    def compare_for_ranking(self, other: "PetRanking") -> int:
        """Compare two projections under the tie-break rule.

        Returns:
            1 if self ranks higher, -1 if other ranks higher, 0 on a true tie
        """
        if self.total_points != other.total_points:
            return 1 if self.total_points > other.total_points else -1

        # Fewer penalties wins
        if self.negative_behaviors != other.negative_behaviors:
            return 1 if self.negative_behaviors < other.negative_behaviors else -1

        return 0


class PetOfTheDayWinner(BaseModel):
    """Persisted outcome of a Pet of the Day selection for (group, day)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique winner record ID")
    group_id: str
    pet_id: str
    pet_name: str = ""
    owner_name: str = ""
    day: date
    final_score: int
    positive_behaviors: int = 0
    negative_behaviors: int = 0
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_ranking(cls, *, group_id: str, day: date, ranking: PetRanking) -> "PetOfTheDayWinner":
        """Build a winner record from a ranking projection."""
        return cls(
            group_id=group_id,
            pet_id=ranking.pet_id,
            pet_name=ranking.pet_name,
            owner_name=ranking.owner_name,
            day=date(day.year, day.month, day.day),
            final_score=ranking.total_points,
            positive_behaviors=ranking.positive_behaviors,
            negative_behaviors=ranking.negative_behaviors,
        )

    def is_eligible_for_win(self) -> bool:
        """Only strictly positive scores can win."""
        return self.final_score > 0


class GroupPetOfTheDayStats(BaseModel):
    """Summary of a group's Pet of the Day history."""

    group_id: str
    total_wins: int = 0
    unique_pets: int = 0
    most_wins: int = 0
    most_wins_pet_id: str | None = None
    average_score: float = 0.0
    last_win_date: date | None = None


class GroupRankings(BaseModel):
    """Ranked pets of one group, for a single logical day or a date range."""

    group_id: str
    group_name: str
    day: date | None = Field(default=None, description="Logical day ranked (single-day queries)")
    date_from: date | None = None
    date_to: date | None = None
    rankings: list[PetRanking] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)
