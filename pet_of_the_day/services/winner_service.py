"""Pet of the Day selection and winner history.

Every pet sharing the top rank of a group's day wins, provided its score is
strictly positive. Selecting again for the same (group, day) replaces the
previous winners, so re-running a selection is idempotent.
"""

import logging
from collections import Counter
from datetime import date

from pet_of_the_day.core.errors import AuthorizationError
from pet_of_the_day.core.logging import span
from pet_of_the_day.domain.ranking import GroupPetOfTheDayStats, PetOfTheDayWinner
from pet_of_the_day.domain.repository import AuthorizationGateway, WinnerStore
from pet_of_the_day.services.ranking_service import RankingService


logger = logging.getLogger(__name__)


class WinnerService:
    """Select and query Pet of the Day winners."""

    def __init__(
        self,
        *,
        winners: WinnerStore,
        ranking_service: RankingService,
        authorization: AuthorizationGateway,
    ) -> None:
        self._winners = winners
        self._rankings = ranking_service
        self._authorization = authorization

    def select_winners(self, group_id: str, day: date) -> list[PetOfTheDayWinner]:
        """Select and store the Pet of the Day winners for a group's logical day.

        Args:
            group_id: Group to select for
            day: Logical day being closed

        Returns:
            The stored winners; empty when nobody ranked or the top score is not positive
        """
        with span("winner_service.select_winners"):
            rankings = self._rankings.calculate_group_rankings(group_id, day)

            top_rank = min((ranking.rank for ranking in rankings), default=None)
            winners = [
                PetOfTheDayWinner.from_ranking(group_id=group_id, day=day, ranking=ranking)
                for ranking in rankings
                if ranking.rank == top_rank
            ]
            winners = [winner for winner in winners if winner.is_eligible_for_win()]

            with self._winners.locked():
                cleared = self._winners.delete_by_group_and_date(group_id, day)
                for winner in winners:
                    self._winners.create(winner)

            logger.info(
                "pet_of_the_day_selected",
                extra={
                    "group_id": group_id,
                    "day": day.isoformat(),
                    "winner_count": len(winners),
                    "winner_pet_ids": [winner.pet_id for winner in winners],
                    "replaced_count": cleared,
                },
            )
            return winners

    def get_winners(self, group_id: str, day: date, user_id: str | None = None) -> list[PetOfTheDayWinner]:
        """Return the stored winners for a group's logical day.

        Raises:
            AuthorizationError: If user_id is given and is not a group member
        """
        self._check_group_access(group_id, user_id)
        return self._winners.get_by_group_and_date(group_id, day)

    def get_winner_history(
        self, group_id: str, date_from: date, date_to: date, user_id: str | None = None
    ) -> list[PetOfTheDayWinner]:
        """Return winners between two logical days (inclusive), newest first."""
        self._check_group_access(group_id, user_id)
        return self._winners.get_history(group_id, date_from, date_to)

    def get_group_stats(self, group_id: str, user_id: str | None = None) -> GroupPetOfTheDayStats:
        """Summarize a group's Pet of the Day history."""
        with span("winner_service.get_group_stats"):
            self._check_group_access(group_id, user_id)
            winners = sorted(self._winners.list_by_group(group_id), key=lambda w: w.day)

            stats = GroupPetOfTheDayStats(group_id=group_id)
            if not winners:
                return stats

            wins_per_pet: Counter[str] = Counter()
            most_wins, most_wins_pet_id = 0, None
            for winner in winners:
                wins_per_pet[winner.pet_id] += 1
                # Ties go to the pet that reached the top count on the earliest day.
                if wins_per_pet[winner.pet_id] > most_wins:
                    most_wins, most_wins_pet_id = wins_per_pet[winner.pet_id], winner.pet_id

            stats.total_wins = len(winners)
            stats.unique_pets = len(wins_per_pet)
            stats.most_wins = most_wins
            stats.most_wins_pet_id = most_wins_pet_id
            stats.average_score = sum(winner.final_score for winner in winners) / len(winners)
            stats.last_win_date = winners[-1].day
            return stats

    def _check_group_access(self, group_id: str, user_id: str | None) -> None:
        if user_id is not None and not self._authorization.can_user_access_group(user_id, group_id):
            raise AuthorizationError("user does not have access to group")
