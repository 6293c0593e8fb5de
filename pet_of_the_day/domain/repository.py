"""Collaborator contracts the scoring engine is written against.

Storage technology, group membership and pet ownership live outside the
engine; these protocols describe exactly what the engine needs from them.
"""

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Protocol

from pydantic import BaseModel

from pet_of_the_day.domain.behavior import Behavior, BehaviorCategory, Species
from pet_of_the_day.domain.behavior_log import BehaviorLog, BehaviorLogFilter
from pet_of_the_day.domain.daily_score import DailyScore, DailyScoreFilter
from pet_of_the_day.domain.ranking import PetOfTheDayWinner
from pet_of_the_day.domain.settings import UserTimezoneSettings


class PetInfo(BaseModel):
    """Basic pet information from the pet context."""

    id: str
    name: str
    species: Species
    owner_id: str


class GroupInfo(BaseModel):
    """Basic group information from the community context."""

    id: str
    name: str
    description: str = ""


class UserInfo(BaseModel):
    """Basic user information."""

    id: str
    name: str


class BehaviorStore(Protocol):
    """Behavior catalog storage."""

    def create(self, behavior: Behavior) -> Behavior: ...

    def get_by_id(self, behavior_id: str) -> Behavior | None: ...

    def get_by_name(self, name: str) -> Behavior | None: ...

    def list_all_active(self, *, category: BehaviorCategory | None = None) -> list[Behavior]: ...

    def list_by_species(self, species: Species, *, category: BehaviorCategory | None = None) -> list[Behavior]: ...

    def update(self, behavior: Behavior) -> Behavior: ...


class BehaviorLogStore(Protocol):
    """Behavior log storage, including the per-(pet, behavior) last-logged index.

    Reading the last logged time and inserting the next log is a
    check-then-write; callers hold ``locked()`` around it.
    """

    def create(self, behavior_log: BehaviorLog) -> BehaviorLog: ...

    def get_by_id(self, log_id: str) -> BehaviorLog | None: ...

    def get_last_logged_at(self, pet_id: str, behavior_id: str) -> datetime | None: ...

    def find(self, log_filter: BehaviorLogFilter) -> list[BehaviorLog]: ...

    def update(self, behavior_log: BehaviorLog) -> BehaviorLog: ...

    def delete(self, log_id: str) -> None: ...

    def locked(self) -> AbstractContextManager[object]: ...


class DailyScoreStore(Protocol):
    """Daily score storage.

    get_or_create followed by update is a read-modify-write; callers hold
    ``locked()`` around the pair so two writers never interleave on one key.
    """

    def get_or_create(self, pet_id: str, group_id: str, day: date) -> DailyScore: ...

    def update(self, daily_score: DailyScore) -> DailyScore: ...

    def find(self, score_filter: DailyScoreFilter) -> list[DailyScore]: ...

    def delete(self, score_id: str) -> None: ...

    def locked(self) -> AbstractContextManager[object]: ...


class WinnerStore(Protocol):
    """Pet of the Day winner storage."""

    def create(self, winner: PetOfTheDayWinner) -> PetOfTheDayWinner: ...

    def get_by_group_and_date(self, group_id: str, day: date) -> list[PetOfTheDayWinner]: ...

    def delete_by_group_and_date(self, group_id: str, day: date) -> int: ...

    def get_history(self, group_id: str, date_from: date, date_to: date) -> list[PetOfTheDayWinner]: ...

    def list_by_group(self, group_id: str) -> list[PetOfTheDayWinner]: ...

    def locked(self) -> AbstractContextManager[object]: ...


class AuthorizationGateway(Protocol):
    """Access checks and lookups answered by the pet and community contexts."""

    def can_user_access_pet(self, user_id: str, pet_id: str) -> bool: ...

    def can_user_access_group(self, user_id: str, group_id: str) -> bool: ...

    def is_pet_in_group(self, pet_id: str, group_id: str) -> bool: ...

    def get_pet_info(self, pet_id: str) -> PetInfo | None: ...

    def get_group_info(self, group_id: str) -> GroupInfo | None: ...

    def get_user_info(self, user_id: str) -> UserInfo | None: ...

    def get_user_groups(self, user_id: str) -> list[str]: ...


class UserSettingsStore(Protocol):
    """User timezone settings storage."""

    def get_timezone_settings(self, user_id: str) -> UserTimezoneSettings | None: ...

    def save_timezone_settings(self, user_settings: UserTimezoneSettings) -> UserTimezoneSettings: ...
