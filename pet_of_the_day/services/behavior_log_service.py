"""Behavior log service for recording, sharing and deleting behavior logs.

Recording a behavior is the write path of the whole engine:
- Authorization: the recorder must have access to the pet and to every group
  the log is shared with, and the pet must belong to those groups.
- Duplicate prevention: the same behavior cannot be logged again for a pet
  before its minimum interval has elapsed.
- Scoring: once stored, the log's points are added to the pet's daily score in
  each shared group, on the logical day of the recorder's timezone.
"""

import logging
from datetime import date, datetime, timedelta

from pydantic import BaseModel, Field

from pet_of_the_day.core.clock import ensure_aware, utc_now
from pet_of_the_day.core.errors import (
    AuthorizationError,
    DomainValidationError,
    NotFoundError,
    RateLimitError,
    format_wait,
)
from pet_of_the_day.core.logging import log_with_user_context, span
from pet_of_the_day.domain.behavior import Behavior
from pet_of_the_day.domain.behavior_log import BehaviorLog, BehaviorLogFilter
from pet_of_the_day.domain.daily_score import DailyScore
from pet_of_the_day.domain.repository import AuthorizationGateway, BehaviorLogStore, BehaviorStore
from pet_of_the_day.services.daily_score_service import DailyScoreService


logger = logging.getLogger(__name__)


class RecordBehaviorResult(BaseModel):
    """Outcome of recording a behavior."""

    behavior_log: BehaviorLog
    behavior: Behavior
    day: date = Field(..., description="Logical day the log counts towards")
    daily_scores: list[DailyScore] = Field(default_factory=list, description="Updated score per shared group")
    message: str


def _round_minutes(duration: timedelta) -> str:
    minutes = max(0, round(duration.total_seconds() / 60))
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


class BehaviorLogService:
    """Record behavior logs and keep daily scores consistent with them."""

    def __init__(
        self,
        *,
        behaviors: BehaviorStore,
        behavior_logs: BehaviorLogStore,
        authorization: AuthorizationGateway,
        daily_score_service: DailyScoreService,
    ) -> None:
        self._behaviors = behaviors
        self._behavior_logs = behavior_logs
        self._authorization = authorization
        self._daily_scores = daily_score_service

    def record_behavior(  # noqa: PLR0913
        self,
        *,
        pet_id: str,
        behavior_id: str,
        user_id: str,
        group_ids: list[str],
        logged_at: datetime | None = None,
        notes: str = "",
        now: datetime | None = None,
    ) -> RecordBehaviorResult:
        """Record that a pet performed a behavior and score it in every shared group.

        If the daily scores cannot be updated the log is removed again and the
        storage error propagates.

        Args:
            pet_id: Pet that performed the behavior
            behavior_id: Catalog behavior
            user_id: User recording the log
            group_ids: Groups the log is shared with (may be empty)
            logged_at: When the behavior happened (default: now)
            notes: Optional free-text notes
            now: Current instant, for callers that control the clock

        Returns:
            RecordBehaviorResult with the stored log and updated scores

        Raises:
            DomainValidationError: Empty ids, inactive or wrong-species behavior,
                bad logged time, notes too long, or a group listed twice
            AuthorizationError: If the user cannot access the pet or a group, or
                the pet is not in a group
            NotFoundError: If the behavior or pet does not exist
            RateLimitError: If the behavior was logged too recently for this pet
        """
        with span("behavior_log_service.record_behavior"):
            for value, label in ((pet_id, "pet"), (behavior_id, "behavior"), (user_id, "user")):
                if not value:
                    raise DomainValidationError(f"{label} ID is required")
            if any(not group_id for group_id in group_ids):
                raise DomainValidationError("group ID is required")

            if not self._authorization.can_user_access_pet(user_id, pet_id):
                raise AuthorizationError(f"user {user_id} does not have access to pet {pet_id}")

            behavior = self._behaviors.get_by_id(behavior_id)
            if behavior is None:
                raise NotFoundError(f"behavior not found: {behavior_id}")
            if not behavior.is_active:
                raise DomainValidationError("behavior is not active")

            pet = self._authorization.get_pet_info(pet_id)
            if pet is None:
                raise NotFoundError(f"pet not found: {pet_id}")
            if not behavior.is_valid_for_species(pet.species):
                raise DomainValidationError(f"behavior {behavior.name} is not valid for {pet.species}")

            current = ensure_aware(now) if now is not None else utc_now()
            candidate = ensure_aware(logged_at) if logged_at is not None else current

            # The last-logged check and the insert must not interleave with another writer.
            with self._behavior_logs.locked():
                self._check_duplicate(pet_id, behavior, candidate)

                behavior_log = BehaviorLog.create(
                    pet_id=pet_id,
                    behavior_id=behavior_id,
                    user_id=user_id,
                    points_awarded=behavior.point_value,
                    logged_at=candidate,
                    notes=notes,
                    now=current,
                )

                for group_id in group_ids:
                    self._check_group_access(user_id, pet_id, group_id)
                    behavior_log.add_group_share(group_id)

                self._behavior_logs.create(behavior_log)

            day = self._daily_scores.logical_day_for(behavior_log)
            try:
                daily_scores = self._daily_scores.apply_log(behavior_log)
            except Exception:
                self._behavior_logs.delete(behavior_log.id)
                logger.warning("behavior_log_discarded", extra={"log_id": behavior_log.id, "pet_id": pet_id})
                raise

            log_with_user_context(
                logger,
                "info",
                "behavior_logged",
                user_id=user_id,
                pet_id=pet_id,
                behavior_id=behavior_id,
                log_id=behavior_log.id,
                points=behavior_log.points_awarded,
                group_count=len(group_ids),
                day=day.isoformat(),
            )

            return RecordBehaviorResult(
                behavior_log=behavior_log,
                behavior=behavior,
                day=day,
                daily_scores=daily_scores,
                message=f"Successfully logged behavior '{behavior.name}' for {pet.name}",
            )

    def delete_behavior_log(self, log_id: str, user_id: str) -> None:
        """Delete a log after removing its points from every affected daily score.

        The recorder, or anyone with access to the pet, may delete. If the
        scores cannot be reversed the log is left in place.

        Raises:
            NotFoundError: If the log does not exist
            AuthorizationError: If the user may not delete the log
        """
        with span("behavior_log_service.delete_behavior_log"):
            behavior_log = self._require_log(log_id)

            if behavior_log.user_id != user_id and not self._authorization.can_user_access_pet(
                user_id, behavior_log.pet_id
            ):
                raise AuthorizationError(f"user {user_id} does not have permission to delete this behavior log")

            self._daily_scores.reverse_log(behavior_log)
            self._behavior_logs.delete(log_id)

            log_with_user_context(
                logger,
                "info",
                "behavior_log_deleted",
                user_id=user_id,
                log_id=log_id,
                pet_id=behavior_log.pet_id,
                points=behavior_log.points_awarded,
            )

    def get_behavior_log(self, log_id: str, user_id: str) -> BehaviorLog:
        """Get one log the user is allowed to see.

        Visible to the recorder, anyone with pet access, and members of a group
        the log is shared with.

        Raises:
            NotFoundError: If the log does not exist
            AuthorizationError: If the user cannot see the log
        """
        behavior_log = self._require_log(log_id)
        if behavior_log.user_id == user_id or self._authorization.can_user_access_pet(user_id, behavior_log.pet_id):
            return behavior_log
        if any(
            self._authorization.can_user_access_group(user_id, group_id)
            for group_id in behavior_log.shared_group_ids()
        ):
            return behavior_log
        raise AuthorizationError(f"user {user_id} does not have access to behavior log {log_id}")

    def get_behavior_logs(self, user_id: str, log_filter: BehaviorLogFilter | None = None) -> list[BehaviorLog]:
        """Search logs, newest first.

        A filter on a pet needs pet access and a filter on a group needs group
        membership. Without either, only the user's own logs are searched.

        Raises:
            AuthorizationError: If the user cannot access the filtered pet or group
        """
        with span("behavior_log_service.get_behavior_logs"):
            log_filter = log_filter or BehaviorLogFilter()

            if log_filter.pet_id is not None and not self._authorization.can_user_access_pet(
                user_id, log_filter.pet_id
            ):
                raise AuthorizationError(f"user {user_id} does not have access to pet {log_filter.pet_id}")
            if log_filter.group_id is not None and not self._authorization.can_user_access_group(
                user_id, log_filter.group_id
            ):
                raise AuthorizationError(f"user {user_id} does not have access to group {log_filter.group_id}")
            if log_filter.pet_id is None and log_filter.group_id is None:
                log_filter = log_filter.model_copy(update={"user_id": user_id})

            logs = self._behavior_logs.find(log_filter)
            logger.debug("behavior_logs_fetched", extra={"user_id": user_id, "count": len(logs)})
            return logs

    def share_with_group(self, log_id: str, user_id: str, group_id: str) -> BehaviorLog:
        """Share an existing log with another group and score it there.

        Raises:
            NotFoundError: If the log does not exist
            AuthorizationError: If the user cannot manage the log or the group
            DomainValidationError: If the log is already shared with the group
        """
        with span("behavior_log_service.share_with_group"):
            behavior_log = self._require_log(log_id)
            self._check_can_manage(user_id, behavior_log)
            self._check_group_access(user_id, behavior_log.pet_id, group_id)

            behavior_log.add_group_share(group_id)
            self._behavior_logs.update(behavior_log)
            self._daily_scores.apply_log_to_group(behavior_log, group_id)

            logger.info("behavior_log_shared", extra={"log_id": log_id, "group_id": group_id, "user_id": user_id})
            return behavior_log

    def unshare_from_group(self, log_id: str, user_id: str, group_id: str) -> BehaviorLog:
        """Stop sharing a log with a group and remove its points there.

        Raises:
            NotFoundError: If the log does not exist or is not shared with the group
            AuthorizationError: If the user cannot manage the log
        """
        with span("behavior_log_service.unshare_from_group"):
            behavior_log = self._require_log(log_id)
            self._check_can_manage(user_id, behavior_log)

            if not behavior_log.is_shared_with_group(group_id):
                raise NotFoundError(f"group share not found for group {group_id}")

            self._daily_scores.reverse_log_from_group(behavior_log, group_id)
            behavior_log.remove_group_share(group_id)
            self._behavior_logs.update(behavior_log)

            logger.info("behavior_log_unshared", extra={"log_id": log_id, "group_id": group_id, "user_id": user_id})
            return behavior_log

    def _require_log(self, log_id: str) -> BehaviorLog:
        if not log_id:
            raise DomainValidationError("behavior log ID is required")
        behavior_log = self._behavior_logs.get_by_id(log_id)
        if behavior_log is None:
            raise NotFoundError(f"behavior log not found: {log_id}")
        return behavior_log

    def _check_can_manage(self, user_id: str, behavior_log: BehaviorLog) -> None:
        if behavior_log.user_id == user_id:
            return
        if not self._authorization.can_user_access_pet(user_id, behavior_log.pet_id):
            raise AuthorizationError(f"user {user_id} does not have permission to change this behavior log")

    def _check_group_access(self, user_id: str, pet_id: str, group_id: str) -> None:
        if not self._authorization.can_user_access_group(user_id, group_id):
            raise AuthorizationError(f"user {user_id} does not have access to group {group_id}")
        if not self._authorization.is_pet_in_group(pet_id, group_id):
            raise AuthorizationError(f"pet {pet_id} is not a member of group {group_id}")

    def _check_duplicate(self, pet_id: str, behavior: Behavior, candidate: datetime) -> None:
        last_logged_at = self._behavior_logs.get_last_logged_at(pet_id, behavior.id)
        if last_logged_at is None:
            return

        min_interval = timedelta(minutes=behavior.min_interval_minutes)
        elapsed = candidate - ensure_aware(last_logged_at)
        if elapsed >= min_interval:
            return

        retry_after = min_interval - elapsed
        logger.info(
            "behavior_log_rate_limited",
            extra={
                "pet_id": pet_id,
                "behavior_id": behavior.id,
                "retry_after_seconds": int(retry_after.total_seconds()),
            },
        )
        raise RateLimitError(
            f"must wait {format_wait(retry_after)} before logging this behavior again "
            f"(last logged {_round_minutes(elapsed)} ago)",
            retry_after=retry_after,
            elapsed=elapsed,
        )
