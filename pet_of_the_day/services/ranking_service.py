"""Ranking service: orders a group's pets by daily score.

Ordering uses the tie-break rule: total points descending, then fewer negative
behaviors first. Ranks follow competition ranking: two pets tied for first
both get rank 1 and the next pet gets rank 3.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date
from functools import cmp_to_key

from pet_of_the_day.core.config import Constants
from pet_of_the_day.core.errors import AuthorizationError, DomainValidationError, NotFoundError
from pet_of_the_day.core.logging import span
from pet_of_the_day.domain.daily_score import DailyScore, DailyScoreFilter
from pet_of_the_day.domain.ranking import GroupRankings, PetRanking
from pet_of_the_day.domain.repository import AuthorizationGateway
from pet_of_the_day.services.daily_score_service import DailyScoreService
from pet_of_the_day.services.time_boundary import current_logical_day


logger = logging.getLogger(__name__)

# Maps a pet id to (pet name, owner name); None means the pet cannot be ranked.
PetLookup = Callable[[str], tuple[str, str] | None]


def rank(rankings: list[PetRanking]) -> list[PetRanking]:
    """Sort projections by the tie-break rule and assign ranks in place.

    The sort is stable, so tied pets keep their input order. Each pet is
    compared with its predecessor only: a tie shares the predecessor's rank
    (and marks both tied), otherwise the rank is the 1-based position.

    Returns:
        The same list, sorted and ranked
    """
    rankings.sort(key=cmp_to_key(lambda a, b: b.compare_for_ranking(a)))

    current_rank = Constants.RANK_FIRST
    for index, ranking in enumerate(rankings):
        if index == 0:
            ranking.set_rank(current_rank, is_tied=False)
            continue

        previous = rankings[index - 1]
        if ranking.compare_for_ranking(previous) == 0:
            ranking.set_rank(current_rank, is_tied=True)
            previous.set_rank(current_rank, is_tied=True)
        else:
            current_rank = index + 1
            ranking.set_rank(current_rank, is_tied=False)

    return rankings


def rankings_from_scores(scores: Iterable[DailyScore], pet_lookup: PetLookup) -> list[PetRanking]:
    """Build one projection per pet from daily score rows.

    Rows for the same pet (date ranges) are folded together in day order.
    Pets the lookup cannot resolve are skipped.
    """
    projections: dict[str, PetRanking] = {}
    skipped: set[str] = set()

    for score in sorted(scores, key=lambda s: s.day):
        if score.pet_id in skipped:
            continue

        projection = projections.get(score.pet_id)
        if projection is None:
            names = pet_lookup(score.pet_id)
            if names is None:
                skipped.add(score.pet_id)
                logger.warning("ranking_pet_skipped", extra={"pet_id": score.pet_id})
                continue
            pet_name, owner_name = names
            projection = PetRanking(pet_id=score.pet_id, pet_name=pet_name, owner_name=owner_name)
            projections[score.pet_id] = projection

        projection.update_from_daily_score(score)

    return list(projections.values())


def validate_ranking_consistency(rankings: list[PetRanking]) -> None:
    """Check a ranked list is ordered and its rank numbers never decrease.

    Raises:
        DomainValidationError: On the first inconsistency found
    """
    for previous, current in zip(rankings, rankings[1:], strict=False):
        if current.compare_for_ranking(previous) > 0:
            raise DomainValidationError(
                f"ranking inconsistency: pet {current.pet_id} should rank higher than pet {previous.pet_id}"
            )
        if current.rank < previous.rank:
            raise DomainValidationError(
                f"rank number inconsistency: pet {current.pet_id} has rank {current.rank} "
                f"but follows pet with rank {previous.rank}"
            )


class RankingService:
    """Compute group rankings from stored daily scores."""

    def __init__(self, *, daily_score_service: DailyScoreService, authorization: AuthorizationGateway) -> None:
        self._daily_scores = daily_score_service
        self._authorization = authorization

    def calculate_group_rankings(self, group_id: str, day: date) -> list[PetRanking]:
        """Rank every pet with a daily score in the group on a logical day."""
        with span("ranking_service.calculate_group_rankings"):
            scores = self._daily_scores.find_scores(DailyScoreFilter(group_id=group_id, day=day))
            rankings = rank(rankings_from_scores(scores, self._lookup_pet))
            logger.debug(
                "group_rankings_calculated",
                extra={"group_id": group_id, "day": day.isoformat(), "pet_count": len(rankings)},
            )
            return rankings

    def get_group_rankings(
        self,
        group_id: str,
        user_id: str,
        *,
        day: date | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> GroupRankings:
        """Return a group's rankings for a member.

        With both date_from and date_to, totals are summed over the range.
        Otherwise a single logical day is ranked, defaulting to the user's
        current logical day.

        Raises:
            AuthorizationError: If the user is not a member of the group
            NotFoundError: If the group does not exist
            DomainValidationError: If only one range bound is given or the range is reversed
        """
        with span("ranking_service.get_group_rankings"):
            if not self._authorization.can_user_access_group(user_id, group_id):
                raise AuthorizationError("user does not have access to group")

            group = self._authorization.get_group_info(group_id)
            if group is None:
                raise NotFoundError(f"group not found: {group_id}")

            if (date_from is None) != (date_to is None):
                raise DomainValidationError("date_from and date_to must be given together")

            if date_from is not None and date_to is not None:
                if date_from > date_to:
                    raise DomainValidationError("date_from must not be after date_to")
                scores = self._daily_scores.find_scores(
                    DailyScoreFilter(group_id=group_id, date_from=date_from, date_to=date_to)
                )
                rankings = rank(rankings_from_scores(scores, self._lookup_pet))
                return GroupRankings(
                    group_id=group_id,
                    group_name=group.name,
                    date_from=date_from,
                    date_to=date_to,
                    rankings=rankings,
                )

            target_day = day if day is not None else current_logical_day(self._daily_scores.settings_for(user_id))
            return GroupRankings(
                group_id=group_id,
                group_name=group.name,
                day=target_day,
                rankings=self.calculate_group_rankings(group_id, target_day),
            )

    def validate_ranking_consistency(self, rankings: list[PetRanking]) -> None:
        """Raise DomainValidationError if a ranked list is out of order."""
        validate_ranking_consistency(rankings)

    def _lookup_pet(self, pet_id: str) -> tuple[str, str] | None:
        pet = self._authorization.get_pet_info(pet_id)
        if pet is None:
            return None
        owner = self._authorization.get_user_info(pet.owner_id)
        if owner is None:
            return None
        return pet.name, owner.name
