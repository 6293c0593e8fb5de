"""Pure Python in-memory implementations of the collaborator contracts.

Used by tests and by applications that embed the engine without a database.
Every store serializes access with a re-entrant lock and checks the request
deadline before touching its data, the way a real storage adapter would honour
the caller's timeout.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime

from pet_of_the_day.core.deadline import check_deadline
from pet_of_the_day.domain.behavior import Behavior, BehaviorCategory, Species
from pet_of_the_day.domain.behavior_log import BehaviorLog, BehaviorLogFilter
from pet_of_the_day.domain.daily_score import DailyScore, DailyScoreFilter
from pet_of_the_day.domain.ranking import PetOfTheDayWinner
from pet_of_the_day.domain.repository import GroupInfo, PetInfo, UserInfo
from pet_of_the_day.domain.settings import UserTimezoneSettings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Storage-level failure."""


class RecordNotFoundError(DatabaseError, KeyError):
    """Storage was asked to change a record that does not exist."""


class _LockedStore:
    """Shared lock and deadline handling for the in-memory stores."""

    collection = "records"

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def locked(self) -> threading.RLock:
        """Exclusive section for multi-step read-modify-write sequences."""
        return self._lock

    def _begin(self, operation: str) -> None:
        check_deadline(f"{self.collection}.{operation}")


class InMemoryBehaviorStore(_LockedStore):
    """Behavior catalog kept in a dict keyed by behavior id."""

    collection = "behaviors"

    def __init__(self) -> None:
        super().__init__()
        self._behaviors: dict[str, Behavior] = {}

    def create(self, behavior: Behavior) -> Behavior:
        self._begin("create")
        with self._lock:
            if behavior.id in self._behaviors:
                raise DatabaseError(f"Duplicate id in {self.collection}: {behavior.id}")
            self._behaviors[behavior.id] = behavior
        logger.debug("Created record", extra={"collection": self.collection, "record_id": behavior.id})
        return behavior

    def get_by_id(self, behavior_id: str) -> Behavior | None:
        self._begin("get_by_id")
        with self._lock:
            return self._behaviors.get(behavior_id)

    def get_by_name(self, name: str) -> Behavior | None:
        self._begin("get_by_name")
        with self._lock:
            return next((b for b in self._behaviors.values() if b.name == name), None)

    def list_all_active(self, *, category: BehaviorCategory | None = None) -> list[Behavior]:
        self._begin("list_all_active")
        with self._lock:
            behaviors = [b for b in self._behaviors.values() if b.is_active]
        if category is not None:
            behaviors = [b for b in behaviors if b.category == category]
        return sorted(behaviors, key=lambda b: (b.category.value, b.name))

    def list_by_species(self, species: Species, *, category: BehaviorCategory | None = None) -> list[Behavior]:
        return [b for b in self.list_all_active(category=category) if b.is_valid_for_species(species)]

    def update(self, behavior: Behavior) -> Behavior:
        self._begin("update")
        with self._lock:
            if behavior.id not in self._behaviors:
                raise RecordNotFoundError(f"Record not found in {self.collection}: {behavior.id}")
            self._behaviors[behavior.id] = behavior
        return behavior


class InMemoryBehaviorLogStore(_LockedStore):
    """Behavior logs kept in a dict keyed by log id."""

    collection = "behavior_logs"

    def __init__(self) -> None:
        super().__init__()
        self._logs: dict[str, BehaviorLog] = {}

    def create(self, behavior_log: BehaviorLog) -> BehaviorLog:
        self._begin("create")
        with self._lock:
            if behavior_log.id in self._logs:
                raise DatabaseError(f"Duplicate id in {self.collection}: {behavior_log.id}")
            self._logs[behavior_log.id] = behavior_log.model_copy(deep=True)
        logger.debug("Created record", extra={"collection": self.collection, "record_id": behavior_log.id})
        return behavior_log

    def get_by_id(self, log_id: str) -> BehaviorLog | None:
        self._begin("get_by_id")
        with self._lock:
            stored = self._logs.get(log_id)
            return stored.model_copy(deep=True) if stored else None

    def get_last_logged_at(self, pet_id: str, behavior_id: str) -> datetime | None:
        self._begin("get_last_logged_at")
        with self._lock:
            times = [
                log.logged_at
                for log in self._logs.values()
                if log.pet_id == pet_id and log.behavior_id == behavior_id
            ]
        return max(times, default=None)

    def find(self, log_filter: BehaviorLogFilter) -> list[BehaviorLog]:
        self._begin("find")
        with self._lock:
            matches = [log.model_copy(deep=True) for log in self._logs.values() if log_filter.matches(log)]
        matches.sort(key=lambda log: log.logged_at, reverse=True)
        return matches[log_filter.offset : log_filter.offset + log_filter.limit]

    def update(self, behavior_log: BehaviorLog) -> BehaviorLog:
        self._begin("update")
        with self._lock:
            if behavior_log.id not in self._logs:
                raise RecordNotFoundError(f"Record not found in {self.collection}: {behavior_log.id}")
            self._logs[behavior_log.id] = behavior_log.model_copy(deep=True)
        return behavior_log

    def delete(self, log_id: str) -> None:
        self._begin("delete")
        with self._lock:
            if log_id not in self._logs:
                raise RecordNotFoundError(f"Record not found in {self.collection}: {log_id}")
            del self._logs[log_id]
        logger.debug("Deleted record", extra={"collection": self.collection, "record_id": log_id})


class InMemoryDailyScoreStore(_LockedStore):
    """Daily scores keyed by (pet, group, day)."""

    collection = "daily_scores"

    def __init__(self) -> None:
        super().__init__()
        self._scores: dict[tuple[str, str, date], DailyScore] = {}

    def get_or_create(self, pet_id: str, group_id: str, day: date) -> DailyScore:
        self._begin("get_or_create")
        key = (pet_id, group_id, date(day.year, day.month, day.day))
        with self._lock:
            score = self._scores.get(key)
            if score is None:
                score = DailyScore.new(pet_id=pet_id, group_id=group_id, day=day)
                self._scores[key] = score
                logger.debug("Created record", extra={"collection": self.collection, "record_id": score.id})
            return score.model_copy(deep=True)

    def update(self, daily_score: DailyScore) -> DailyScore:
        self._begin("update")
        key = (daily_score.pet_id, daily_score.group_id, daily_score.day)
        with self._lock:
            existing = self._scores.get(key)
            if existing is None or existing.id != daily_score.id:
                raise RecordNotFoundError(f"Record not found in {self.collection}: {daily_score.id}")
            self._scores[key] = daily_score.model_copy(deep=True)
        return daily_score

    def find(self, score_filter: DailyScoreFilter) -> list[DailyScore]:
        self._begin("find")
        with self._lock:
            matches = [s.model_copy(deep=True) for s in self._scores.values() if score_filter.matches(s)]
        matches.sort(key=lambda s: (s.day, s.pet_id))
        return matches[score_filter.offset : score_filter.offset + score_filter.limit]

    def delete(self, score_id: str) -> None:
        self._begin("delete")
        with self._lock:
            key = next((k for k, s in self._scores.items() if s.id == score_id), None)
            if key is None:
                raise RecordNotFoundError(f"Record not found in {self.collection}: {score_id}")
            del self._scores[key]


class InMemoryWinnerStore(_LockedStore):
    """Pet of the Day winners."""

    collection = "pet_of_the_day_winners"

    def __init__(self) -> None:
        super().__init__()
        self._winners: list[PetOfTheDayWinner] = []

    def create(self, winner: PetOfTheDayWinner) -> PetOfTheDayWinner:
        self._begin("create")
        with self._lock:
            self._winners.append(winner.model_copy(deep=True))
        return winner

    def get_by_group_and_date(self, group_id: str, day: date) -> list[PetOfTheDayWinner]:
        self._begin("get_by_group_and_date")
        with self._lock:
            return [w.model_copy(deep=True) for w in self._winners if w.group_id == group_id and w.day == day]

    def delete_by_group_and_date(self, group_id: str, day: date) -> int:
        self._begin("delete_by_group_and_date")
        with self._lock:
            kept = [w for w in self._winners if not (w.group_id == group_id and w.day == day)]
            removed = len(self._winners) - len(kept)
            self._winners = kept
        return removed

    def get_history(self, group_id: str, date_from: date, date_to: date) -> list[PetOfTheDayWinner]:
        self._begin("get_history")
        with self._lock:
            history = [
                w.model_copy(deep=True)
                for w in self._winners
                if w.group_id == group_id and date_from <= w.day <= date_to
            ]
        return sorted(history, key=lambda w: w.day, reverse=True)

    def list_by_group(self, group_id: str) -> list[PetOfTheDayWinner]:
        self._begin("list_by_group")
        with self._lock:
            return [w.model_copy(deep=True) for w in self._winners if w.group_id == group_id]


class InMemoryAuthorizationGateway(_LockedStore):
    """Pet ownership, group membership and lookups held in memory."""

    collection = "authorization"

    def __init__(self) -> None:
        super().__init__()
        self._users: dict[str, UserInfo] = {}
        self._pets: dict[str, PetInfo] = {}
        self._groups: dict[str, GroupInfo] = {}
        self._pet_access: dict[str, set[str]] = defaultdict(set)
        self._group_members: dict[str, set[str]] = defaultdict(set)
        self._group_pets: dict[str, set[str]] = defaultdict(set)

    def add_user(self, user: UserInfo) -> UserInfo:
        with self._lock:
            self._users[user.id] = user
        return user

    def add_pet(self, pet: PetInfo, *, co_owner_ids: tuple[str, ...] = ()) -> PetInfo:
        """Register a pet; its owner and co-owners get pet access."""
        with self._lock:
            self._pets[pet.id] = pet
            self._pet_access[pet.id].update({pet.owner_id, *co_owner_ids})
        return pet

    def add_group(self, group: GroupInfo, *, member_ids: tuple[str, ...] = ()) -> GroupInfo:
        with self._lock:
            self._groups[group.id] = group
            self._group_members[group.id].update(member_ids)
        return group

    def add_member(self, group_id: str, user_id: str) -> None:
        with self._lock:
            self._group_members[group_id].add(user_id)

    def add_pet_to_group(self, group_id: str, pet_id: str) -> None:
        with self._lock:
            self._group_pets[group_id].add(pet_id)

    def can_user_access_pet(self, user_id: str, pet_id: str) -> bool:
        self._begin("can_user_access_pet")
        with self._lock:
            return user_id in self._pet_access.get(pet_id, set())

    def can_user_access_group(self, user_id: str, group_id: str) -> bool:
        self._begin("can_user_access_group")
        with self._lock:
            return user_id in self._group_members.get(group_id, set())

    def is_pet_in_group(self, pet_id: str, group_id: str) -> bool:
        self._begin("is_pet_in_group")
        with self._lock:
            return pet_id in self._group_pets.get(group_id, set())

    def get_pet_info(self, pet_id: str) -> PetInfo | None:
        self._begin("get_pet_info")
        with self._lock:
            return self._pets.get(pet_id)

    def get_group_info(self, group_id: str) -> GroupInfo | None:
        self._begin("get_group_info")
        with self._lock:
            return self._groups.get(group_id)

    def get_user_info(self, user_id: str) -> UserInfo | None:
        self._begin("get_user_info")
        with self._lock:
            return self._users.get(user_id)

    def get_user_groups(self, user_id: str) -> list[str]:
        self._begin("get_user_groups")
        with self._lock:
            return sorted(group_id for group_id, members in self._group_members.items() if user_id in members)


class InMemoryUserSettingsStore(_LockedStore):
    """User timezone settings keyed by user id."""

    collection = "user_settings"

    def __init__(self) -> None:
        super().__init__()
        self._settings: dict[str, UserTimezoneSettings] = {}

    def get_timezone_settings(self, user_id: str) -> UserTimezoneSettings | None:
        self._begin("get_timezone_settings")
        with self._lock:
            return self._settings.get(user_id)

    def save_timezone_settings(self, user_settings: UserTimezoneSettings) -> UserTimezoneSettings:
        self._begin("save_timezone_settings")
        with self._lock:
            self._settings[user_settings.user_id] = user_settings
        return user_settings


@dataclass
class InMemoryBackend:
    """Every in-memory collaborator, wired together."""

    behaviors: InMemoryBehaviorStore = field(default_factory=InMemoryBehaviorStore)
    behavior_logs: InMemoryBehaviorLogStore = field(default_factory=InMemoryBehaviorLogStore)
    daily_scores: InMemoryDailyScoreStore = field(default_factory=InMemoryDailyScoreStore)
    winners: InMemoryWinnerStore = field(default_factory=InMemoryWinnerStore)
    authorization: InMemoryAuthorizationGateway = field(default_factory=InMemoryAuthorizationGateway)
    user_settings: InMemoryUserSettingsStore = field(default_factory=InMemoryUserSettingsStore)
