"""Unit tests for the behavior catalog service."""

import pytest

from pet_of_the_day.core.errors import DomainValidationError, NotFoundError
from pet_of_the_day.core.memory_store import InMemoryBehaviorStore
from pet_of_the_day.domain.behavior import BehaviorCategory, Species
from pet_of_the_day.services.behavior_catalog import DEFAULT_BEHAVIORS, BehaviorCatalog


@pytest.fixture
def catalog() -> BehaviorCatalog:
    return BehaviorCatalog(InMemoryBehaviorStore())


@pytest.mark.unit
class TestSeedDefaultCatalog:
    """Tests for seeding the predefined behaviors."""

    def test_seed_installs_every_default(self, catalog):
        created = catalog.seed_default_catalog()

        assert len(created) == len(DEFAULT_BEHAVIORS) == 22
        assert len(catalog.list_active()) == 22

    def test_seed_is_idempotent(self, catalog):
        catalog.seed_default_catalog()

        assert catalog.seed_default_catalog() == []
        assert len(catalog.list_active()) == 22

    def test_seed_skips_existing_names(self, catalog):
        catalog.create_behavior(
            name="Went potty outside",
            category=BehaviorCategory.POTTY_TRAINING,
            point_value=7,
            min_interval_minutes=30,
        )

        created = catalog.seed_default_catalog()

        assert len(created) == 21
        potty = [b for b in catalog.list_active() if b.name == "Went potty outside"]
        assert [b.point_value for b in potty] == [7]

    def test_every_category_is_represented(self, catalog):
        catalog.seed_default_catalog()

        categories = {behavior.category for behavior in catalog.list_active()}

        assert categories == set(BehaviorCategory)


@pytest.mark.unit
class TestListing:
    """Tests for listing active behaviors."""

    def test_cats_do_not_see_leash_behaviors(self, catalog):
        catalog.seed_default_catalog()

        cat_names = {behavior.name for behavior in catalog.list_for_species(Species.CAT)}
        dog_names = {behavior.name for behavior in catalog.list_for_species(Species.DOG)}

        assert "Walked nicely on leash" not in cat_names
        assert "Walked nicely on leash" in dog_names
        assert len(cat_names) == 20
        assert len(dog_names) == 22

    def test_filter_by_category(self, catalog):
        catalog.seed_default_catalog()

        feeding = catalog.list_active(category="feeding")

        assert len(feeding) == 4
        assert all(behavior.category is BehaviorCategory.FEEDING for behavior in feeding)

    def test_inactive_behaviors_hidden(self, catalog):
        behavior = catalog.create_behavior(
            name="Fetched the ball", category=BehaviorCategory.PLAY, point_value=2, min_interval_minutes=10
        )
        catalog.update_behavior(
            behavior.id,
            name=behavior.name,
            description=behavior.description,
            category=behavior.category,
            point_value=behavior.point_value,
            min_interval_minutes=behavior.min_interval_minutes,
            species=behavior.species,
            icon=behavior.icon,
            is_active=False,
        )

        assert catalog.list_active() == []

    def test_unknown_category_rejected(self, catalog):
        with pytest.raises(DomainValidationError, match="invalid behavior category"):
            catalog.list_active(category="grooming")


@pytest.mark.unit
class TestCatalogMaintenance:
    """Tests for get, create and update."""

    def test_get_missing_behavior(self, catalog):
        with pytest.raises(NotFoundError, match="behavior not found"):
            catalog.get_behavior("missing")

    def test_create_rejects_invalid(self, catalog):
        with pytest.raises(DomainValidationError):
            catalog.create_behavior(
                name="Napped", category=BehaviorCategory.PLAY, point_value=0, min_interval_minutes=10
            )

    def test_update_is_persisted(self, catalog):
        behavior = catalog.create_behavior(
            name="Napped", category=BehaviorCategory.PLAY, point_value=1, min_interval_minutes=60
        )

        catalog.update_behavior(
            behavior.id,
            name="Napped quietly",
            description="Slept without fuss",
            category=BehaviorCategory.PLAY,
            point_value=2,
            min_interval_minutes=90,
            species=Species.CAT,
            icon="😴",
            is_active=True,
        )

        stored = catalog.get_behavior(behavior.id)
        assert stored.name == "Napped quietly"
        assert stored.point_value == 2
        assert stored.species is Species.CAT

    def test_update_missing_behavior(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.update_behavior(
                "missing",
                name="x",
                description="",
                category=BehaviorCategory.PLAY,
                point_value=1,
                min_interval_minutes=10,
                species=Species.BOTH,
                icon="",
                is_active=True,
            )
