"""Daily score service: keeps per-(pet, group, logical day) totals in step with behavior logs.

Each log contributes to the daily score of every group it is shared with. The
logical day is resolved once per log from its logged_at instant and the
recording user's timezone settings, so apply and reverse always land on the
same row.
"""

import logging
from collections.abc import Callable, Iterator
from datetime import UTC, date, datetime, time, timedelta

from pet_of_the_day.core.config import Constants
from pet_of_the_day.core.errors import AuthorizationError, NotFoundError
from pet_of_the_day.core.logging import span
from pet_of_the_day.domain.behavior_log import BehaviorLog, BehaviorLogFilter
from pet_of_the_day.domain.daily_score import (
    DailyScore,
    DailyScoreBreakdown,
    DailyScoreFilter,
    PetDailyScoreSummary,
)
from pet_of_the_day.domain.repository import (
    AuthorizationGateway,
    BehaviorLogStore,
    BehaviorStore,
    DailyScoreStore,
    UserSettingsStore,
)
from pet_of_the_day.domain.settings import UserTimezoneSettings
from pet_of_the_day.services.time_boundary import current_logical_day, resolve_logical_day_or_default


logger = logging.getLogger(__name__)

# A logical day always lies within this many days of its UTC calendar date.
_LOG_SCAN_MARGIN_DAYS = 2


class DailyScoreService:
    """Apply, reverse, rebuild and query daily scores."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        daily_scores: DailyScoreStore,
        behavior_logs: BehaviorLogStore,
        behaviors: BehaviorStore,
        authorization: AuthorizationGateway,
        user_settings: UserSettingsStore,
    ) -> None:
        self._daily_scores = daily_scores
        self._behavior_logs = behavior_logs
        self._behaviors = behaviors
        self._authorization = authorization
        self._user_settings = user_settings

    def settings_for(self, user_id: str) -> UserTimezoneSettings:
        """Return a user's timezone settings, or the defaults when they have none."""
        return self._user_settings.get_timezone_settings(user_id) or UserTimezoneSettings.default_for(user_id)

    def logical_day_for(self, behavior_log: BehaviorLog) -> date:
        """Resolve the logical day a log counts towards, using its recorder's settings."""
        return resolve_logical_day_or_default(behavior_log.logged_at, self.settings_for(behavior_log.user_id))

    def apply_log(self, behavior_log: BehaviorLog) -> list[DailyScore]:
        """Add a log's contribution to the daily score of every group it is shared with.

        All groups are updated or none are: if one group fails, the groups
        already updated are reversed before the error propagates.
        """
        with span("daily_score_service.apply_log"):
            day = self.logical_day_for(behavior_log)
            with self._daily_scores.locked():
                return self._update_every_group(
                    behavior_log, day, change=self.apply_log_to_group, undo=self.reverse_log_from_group
                )

    def reverse_log(self, behavior_log: BehaviorLog) -> list[DailyScore]:
        """Remove a log's contribution from the daily score of every group it is shared with.

        All groups are reversed or none are, as for apply_log.
        """
        with span("daily_score_service.reverse_log"):
            day = self.logical_day_for(behavior_log)
            with self._daily_scores.locked():
                return self._update_every_group(
                    behavior_log, day, change=self.reverse_log_from_group, undo=self.apply_log_to_group
                )

    def _update_every_group(
        self,
        behavior_log: BehaviorLog,
        day: date,
        *,
        change: Callable[..., DailyScore],
        undo: Callable[..., DailyScore],
    ) -> list[DailyScore]:
        scores: list[DailyScore] = []
        try:
            for group_id in behavior_log.shared_group_ids():
                scores.append(change(behavior_log, group_id, day=day))
        except Exception:
            for score in reversed(scores):
                undo(behavior_log, score.group_id, day=day)
            logger.warning(
                "daily_score_update_rolled_back",
                extra={
                    "log_id": behavior_log.id,
                    "pet_id": behavior_log.pet_id,
                    "day": day.isoformat(),
                    "rolled_back_groups": [score.group_id for score in scores],
                },
            )
            raise
        return scores

    def apply_log_to_group(self, behavior_log: BehaviorLog, group_id: str, *, day: date | None = None) -> DailyScore:
        """Add a log's contribution to one group's daily score."""
        if day is None:
            day = self.logical_day_for(behavior_log)

        with self._daily_scores.locked():
            score = self._daily_scores.get_or_create(behavior_log.pet_id, group_id, day)
            score.add_behavior_log(behavior_log)
            self._daily_scores.update(score)

        logger.debug(
            "daily_score_applied",
            extra={
                "pet_id": behavior_log.pet_id,
                "group_id": group_id,
                "day": day.isoformat(),
                "points": behavior_log.points_awarded,
                "total_points": score.total_points,
            },
        )
        return score

    def reverse_log_from_group(
        self, behavior_log: BehaviorLog, group_id: str, *, day: date | None = None
    ) -> DailyScore:
        """Remove a log's contribution from one group's daily score."""
        if day is None:
            day = self.logical_day_for(behavior_log)

        with self._daily_scores.locked():
            score = self._daily_scores.get_or_create(behavior_log.pet_id, group_id, day)
            score.remove_behavior_log(behavior_log)
            self._daily_scores.update(score)

        logger.debug(
            "daily_score_reversed",
            extra={
                "pet_id": behavior_log.pet_id,
                "group_id": group_id,
                "day": day.isoformat(),
                "points": behavior_log.points_awarded,
                "total_points": score.total_points,
            },
        )
        return score

    def find_scores(self, score_filter: DailyScoreFilter) -> list[DailyScore]:
        """Return every daily score matching the filter, paging through the store."""
        return list(self._iter_scores(score_filter))

    def logs_for_day(self, pet_id: str, group_id: str, day: date) -> list[BehaviorLog]:
        """Return the logs shared with a group that count towards a pet's logical day, oldest first."""
        midnight = datetime.combine(day, time.min, tzinfo=UTC)
        log_filter = BehaviorLogFilter(
            pet_id=pet_id,
            group_id=group_id,
            date_from=midnight - timedelta(days=_LOG_SCAN_MARGIN_DAYS),
            date_to=midnight + timedelta(days=_LOG_SCAN_MARGIN_DAYS),
        )
        logs = [log for log in self._iter_logs(log_filter) if self.logical_day_for(log) == day]
        return sorted(logs, key=lambda log: log.logged_at)

    def recalculate_from_logs(self, pet_id: str, group_id: str, day: date) -> DailyScore:
        """Rebuild one daily score row from the logs shared with the group on that day."""
        with span("daily_score_service.recalculate_from_logs"):
            logs = self.logs_for_day(pet_id, group_id, day)

            with self._daily_scores.locked():
                current = self._daily_scores.get_or_create(pet_id, group_id, day)
                rebuilt = DailyScore(
                    id=current.id,
                    pet_id=pet_id,
                    group_id=group_id,
                    day=current.day,
                    created_at=current.created_at,
                )
                for behavior_log in logs:
                    rebuilt.add_behavior_log(behavior_log)
                self._daily_scores.update(rebuilt)

            if rebuilt.total_points != current.total_points:
                logger.warning(
                    "daily_score_drift_corrected",
                    extra={
                        "pet_id": pet_id,
                        "group_id": group_id,
                        "day": day.isoformat(),
                        "stored_points": current.total_points,
                        "recalculated_points": rebuilt.total_points,
                    },
                )
            return rebuilt

    def get_pet_daily_score(self, pet_id: str, user_id: str, day: date | None = None) -> PetDailyScoreSummary:
        """Return a pet's totals for one logical day across the requester's groups.

        Args:
            pet_id: Pet to report on
            user_id: Requesting user; only groups they belong to are included
            day: Logical day (default: the user's current logical day)

        Returns:
            PetDailyScoreSummary with totals and a per-behavior breakdown

        Raises:
            AuthorizationError: If the user cannot access the pet
            NotFoundError: If the pet does not exist
        """
        with span("daily_score_service.get_pet_daily_score"):
            if not self._authorization.can_user_access_pet(user_id, pet_id):
                raise AuthorizationError("user does not have access to pet")

            pet = self._authorization.get_pet_info(pet_id)
            if pet is None:
                raise NotFoundError(f"pet not found: {pet_id}")

            user_settings = self.settings_for(user_id)
            target_day = day if day is not None else current_logical_day(user_settings)

            summary = PetDailyScoreSummary(
                pet_id=pet_id,
                pet_name=pet.name,
                day=target_day,
                user_timezone=user_settings.timezone,
            )
            breakdown: dict[str, DailyScoreBreakdown] = {}

            for group_id in self._authorization.get_user_groups(user_id):
                if not self._authorization.is_pet_in_group(pet_id, group_id):
                    continue

                for score in self.find_scores(DailyScoreFilter(pet_id=pet_id, group_id=group_id, day=target_day)):
                    summary.total_score += score.total_points
                    summary.positive_behaviors += score.positive_behaviors
                    summary.negative_behaviors += score.negative_behaviors

                for behavior_log in self.logs_for_day(pet_id, group_id, target_day):
                    self._add_to_breakdown(breakdown, behavior_log)

            summary.breakdown = sorted(breakdown.values(), key=lambda item: (-item.total_points, item.behavior_name))
            return summary

    def _add_to_breakdown(self, breakdown: dict[str, DailyScoreBreakdown], behavior_log: BehaviorLog) -> None:
        item = breakdown.get(behavior_log.behavior_id)
        if item is not None:
            item.count += 1
            item.total_points += behavior_log.points_awarded
            return

        behavior = self._behaviors.get_by_id(behavior_log.behavior_id)
        if behavior is None:
            logger.warning("breakdown_behavior_missing", extra={"behavior_id": behavior_log.behavior_id})
            return

        breakdown[behavior_log.behavior_id] = DailyScoreBreakdown(
            behavior_id=behavior.id,
            behavior_name=behavior.name,
            behavior_category=behavior.category,
            count=1,
            points_per_instance=behavior_log.points_awarded,
            total_points=behavior_log.points_awarded,
        )

    def _iter_scores(self, score_filter: DailyScoreFilter) -> Iterator[DailyScore]:
        page = score_filter.model_copy(update={"limit": Constants.DEFAULT_PAGE_LIMIT, "offset": 0})
        while True:
            batch = self._daily_scores.find(page)
            yield from batch
            if len(batch) < page.limit:
                return
            page = page.model_copy(update={"offset": page.offset + page.limit})

    def _iter_logs(self, log_filter: BehaviorLogFilter) -> Iterator[BehaviorLog]:
        page = log_filter.model_copy(update={"limit": Constants.DEFAULT_PAGE_LIMIT, "offset": 0})
        while True:
            batch = self._behavior_logs.find(page)
            yield from batch
            if len(batch) < page.limit:
                return
            page = page.model_copy(update={"offset": page.offset + page.limit})
