"""Pytest configuration and fixtures for unit tests."""

from dataclasses import dataclass
from datetime import UTC, datetime

import logfire
import pytest

from pet_of_the_day.core.memory_store import InMemoryBackend
from pet_of_the_day.domain.behavior import Behavior, Species
from pet_of_the_day.domain.repository import GroupInfo, PetInfo, UserInfo
from pet_of_the_day.engine import PetOfTheDayEngine


@pytest.fixture(scope="session", autouse=True)
def quiet_logfire():
    """Configure Logfire locally so spans never try to export."""
    logfire.configure(send_to_logfire=False, console=False)


@dataclass
class Household:
    """Ids of the users, pets and group registered by the household fixture."""

    alice: str = "user-alice"
    bob: str = "user-bob"
    carol: str = "user-carol"
    outsider: str = "user-outsider"
    rex: str = "pet-rex"
    whiskers: str = "pet-whiskers"
    luna: str = "pet-luna"
    stray: str = "pet-stray"
    family: str = "group-family"
    park: str = "group-park"


@pytest.fixture
def now() -> datetime:
    """Midday UTC; the default 21:00 UTC reset keeps this on 2024-06-15."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def backend() -> InMemoryBackend:
    """Provides fresh in-memory collaborators for each test."""
    return InMemoryBackend()


@pytest.fixture
def engine(backend: InMemoryBackend) -> PetOfTheDayEngine:
    """Engine over the in-memory backend with the default catalog seeded."""
    return PetOfTheDayEngine.in_memory(backend)


@pytest.fixture
def household(backend: InMemoryBackend) -> Household:
    """Three owners, their pets and two groups.

    - family: alice, bob, carol; pets rex, whiskers, luna
    - park: alice only; pet rex
    - stray is owned by the outsider and belongs to no group
    """
    ids = Household()
    auth = backend.authorization

    for user_id, name in (
        (ids.alice, "Alice"),
        (ids.bob, "Bob"),
        (ids.carol, "Carol"),
        (ids.outsider, "Olivia"),
    ):
        auth.add_user(UserInfo(id=user_id, name=name))

    auth.add_pet(PetInfo(id=ids.rex, name="Rex", species=Species.DOG, owner_id=ids.alice))
    auth.add_pet(PetInfo(id=ids.whiskers, name="Whiskers", species=Species.CAT, owner_id=ids.bob))
    auth.add_pet(PetInfo(id=ids.luna, name="Luna", species=Species.DOG, owner_id=ids.carol))
    auth.add_pet(PetInfo(id=ids.stray, name="Stray", species=Species.DOG, owner_id=ids.outsider))

    auth.add_group(GroupInfo(id=ids.family, name="Family"), member_ids=(ids.alice, ids.bob, ids.carol))
    auth.add_group(GroupInfo(id=ids.park, name="Dog Park"), member_ids=(ids.alice,))
    for pet_id in (ids.rex, ids.whiskers, ids.luna):
        auth.add_pet_to_group(ids.family, pet_id)
    auth.add_pet_to_group(ids.park, ids.rex)

    return ids


@pytest.fixture
def behavior_named(backend: InMemoryBackend, engine: PetOfTheDayEngine):
    """Look up a seeded catalog behavior by name."""

    def _lookup(name: str) -> Behavior:
        behavior = backend.behaviors.get_by_name(name)
        assert behavior is not None, f"behavior {name!r} is not seeded"
        return behavior

    return _lookup
