"""Behavior catalog service for looking up, listing and maintaining behaviors."""

import logging

from pet_of_the_day.core.errors import DomainValidationError, NotFoundError
from pet_of_the_day.core.logging import span
from pet_of_the_day.domain.behavior import Behavior, BehaviorCategory, Species
from pet_of_the_day.domain.repository import BehaviorStore


logger = logging.getLogger(__name__)


# Predefined catalog installed by seed_default_catalog(), keyed by unique name.
DEFAULT_BEHAVIORS: tuple[dict[str, object], ...] = (
    # Potty training
    {
        "name": "Went potty outside",
        "description": "Pet successfully used designated outdoor bathroom area",
        "category": BehaviorCategory.POTTY_TRAINING,
        "point_value": 5,
        "min_interval_minutes": 30,
        "icon": "🌳",
    },
    {
        "name": "Indoor accident",
        "description": "Pet had an accident inside the house",
        "category": BehaviorCategory.POTTY_TRAINING,
        "point_value": -3,
        "min_interval_minutes": 60,
        "icon": "💧",
    },
    {
        "name": "Used training pad",
        "description": "Pet correctly used designated training pad",
        "category": BehaviorCategory.POTTY_TRAINING,
        "point_value": 3,
        "min_interval_minutes": 30,
        "icon": "📄",
    },
    {
        "name": "Signaled for potty",
        "description": "Pet gave clear signal when needing to go outside",
        "category": BehaviorCategory.POTTY_TRAINING,
        "point_value": 4,
        "min_interval_minutes": 45,
        "icon": "🔔",
    },
    # Feeding
    {
        "name": "Ate all food",
        "description": "Pet finished their entire meal",
        "category": BehaviorCategory.FEEDING,
        "point_value": 2,
        "min_interval_minutes": 120,
        "icon": "🍽️",
    },
    {
        "name": "Left food uneaten",
        "description": "Pet left significant amount of food in bowl",
        "category": BehaviorCategory.FEEDING,
        "point_value": -1,
        "min_interval_minutes": 240,
        "icon": "🥣",
    },
    {
        "name": "Stole human food",
        "description": "Pet took food that wasn't meant for them",
        "category": BehaviorCategory.FEEDING,
        "point_value": -2,
        "min_interval_minutes": 60,
        "icon": "🍖",
    },
    {
        "name": "Waited politely for food",
        "description": "Pet sat and waited patiently during meal preparation",
        "category": BehaviorCategory.FEEDING,
        "point_value": 3,
        "min_interval_minutes": 240,
        "icon": "😇",
    },
    # Social
    {
        "name": "Good with people",
        "description": "Pet was friendly and well-behaved with humans",
        "category": BehaviorCategory.SOCIAL,
        "point_value": 3,
        "min_interval_minutes": 60,
        "icon": "👥",
    },
    {
        "name": "Good with other pets",
        "description": "Pet played nicely with other animals",
        "category": BehaviorCategory.SOCIAL,
        "point_value": 2,
        "min_interval_minutes": 60,
        "icon": "🐕",
    },
    {
        "name": "Aggressive behavior",
        "description": "Pet showed aggression towards people or animals",
        "category": BehaviorCategory.SOCIAL,
        "point_value": -5,
        "min_interval_minutes": 30,
        "icon": "😡",
    },
    {
        "name": "Greeted guests nicely",
        "description": "Pet welcomed visitors in a calm, friendly manner",
        "category": BehaviorCategory.SOCIAL,
        "point_value": 4,
        "min_interval_minutes": 120,
        "icon": "👋",
    },
    # Training
    {
        "name": "Followed basic command",
        "description": "Pet successfully obeyed sit, stay, come, or similar command",
        "category": BehaviorCategory.TRAINING,
        "point_value": 4,
        "min_interval_minutes": 15,
        "icon": "✨",
    },
    {
        "name": "Ignored command",
        "description": "Pet didn't respond to clear commands",
        "category": BehaviorCategory.TRAINING,
        "point_value": -2,
        "min_interval_minutes": 30,
        "icon": "🙄",
    },
    {
        "name": "Learned new trick",
        "description": "Pet successfully learned and performed a new trick",
        "category": BehaviorCategory.TRAINING,
        "point_value": 6,
        "min_interval_minutes": 60,
        "icon": "🎪",
    },
    {
        "name": "Walked nicely on leash",
        "description": "Pet walked calmly without pulling during walk",
        "category": BehaviorCategory.TRAINING,
        "point_value": 3,
        "min_interval_minutes": 180,
        "species": Species.DOG,
        "icon": "🦮",
    },
    {
        "name": "Pulled on leash",
        "description": "Pet pulled excessively during walk",
        "category": BehaviorCategory.TRAINING,
        "point_value": -1,
        "min_interval_minutes": 180,
        "species": Species.DOG,
        "icon": "➡️",
    },
    # Play
    {
        "name": "Active playtime",
        "description": "Pet engaged in healthy, active play",
        "category": BehaviorCategory.PLAY,
        "point_value": 2,
        "min_interval_minutes": 60,
        "icon": "🎾",
    },
    {
        "name": "Destructive chewing",
        "description": "Pet chewed inappropriate items (furniture, shoes, etc.)",
        "category": BehaviorCategory.PLAY,
        "point_value": -4,
        "min_interval_minutes": 30,
        "icon": "🦷",
    },
    {
        "name": "Played with toys appropriately",
        "description": "Pet used toys as intended without destroying them",
        "category": BehaviorCategory.PLAY,
        "point_value": 2,
        "min_interval_minutes": 120,
        "icon": "🧸",
    },
    {
        "name": "Calm relaxation time",
        "description": "Pet rested peacefully without demanding attention",
        "category": BehaviorCategory.PLAY,
        "point_value": 1,
        "min_interval_minutes": 240,
        "icon": "😴",
    },
    {
        "name": "Excessive barking/meowing",
        "description": "Pet made excessive noise without clear reason",
        "category": BehaviorCategory.PLAY,
        "point_value": -3,
        "min_interval_minutes": 60,
        "icon": "🔊",
    },
)


class BehaviorCatalog:
    """Read and maintain the predefined behavior catalog."""

    def __init__(self, behaviors: BehaviorStore) -> None:
        self._behaviors = behaviors

    def get_behavior(self, behavior_id: str) -> Behavior:
        """Get a behavior by id.

        Raises:
            NotFoundError: If no behavior has this id
        """
        behavior = self._behaviors.get_by_id(behavior_id)
        if behavior is None:
            raise NotFoundError(f"behavior not found: {behavior_id}")
        return behavior

    def list_active(
        self,
        *,
        species: Species | str | None = None,
        category: BehaviorCategory | str | None = None,
    ) -> list[Behavior]:
        """List active behaviors, optionally narrowed to a species and/or category.

        Raises:
            DomainValidationError: If species or category is not a known value
        """
        if category is not None and not BehaviorCategory.is_valid(str(category)):
            raise DomainValidationError(f"invalid behavior category: {category}")
        if species is not None and not Species.is_valid(str(species)):
            raise DomainValidationError(f"invalid species: {species}")

        category_filter = BehaviorCategory(category) if category is not None else None
        if species is None:
            return self._behaviors.list_all_active(category=category_filter)
        return self._behaviors.list_by_species(Species(species), category=category_filter)

    def list_for_species(self, species: Species | str) -> list[Behavior]:
        """List active behaviors a pet of this species can perform (includes 'both')."""
        return self.list_active(species=species)

    def create_behavior(  # noqa: PLR0913
        self,
        *,
        name: str,
        category: BehaviorCategory | str,
        point_value: int,
        min_interval_minutes: int,
        species: Species | str = Species.BOTH,
        description: str = "",
        icon: str = "",
    ) -> Behavior:
        """Validate and store a new catalog behavior.

        Raises:
            DomainValidationError: If any field breaks the catalog rules
        """
        with span("behavior_catalog.create_behavior"):
            behavior = Behavior.create(
                name=name,
                category=category,
                point_value=point_value,
                min_interval_minutes=min_interval_minutes,
                species=species,
                description=description,
                icon=icon,
            )
            created = self._behaviors.create(behavior)
            logger.info(
                "behavior_created",
                extra={"behavior_id": created.id, "behavior_name": created.name, "point_value": created.point_value},
            )
            return created

    def update_behavior(  # noqa: PLR0913
        self,
        behavior_id: str,
        *,
        name: str,
        description: str,
        category: BehaviorCategory | str,
        point_value: int,
        min_interval_minutes: int,
        species: Species | str,
        icon: str,
        is_active: bool,
    ) -> Behavior:
        """Replace every editable field of a behavior.

        Past logs keep their awarded points.

        Raises:
            NotFoundError: If the behavior does not exist
            DomainValidationError: If any field breaks the catalog rules
        """
        with span("behavior_catalog.update_behavior"):
            current = self.get_behavior(behavior_id)
            updated = current.update(
                name=name,
                description=description,
                category=category,
                point_value=point_value,
                min_interval_minutes=min_interval_minutes,
                species=species,
                icon=icon,
                is_active=is_active,
            )
            self._behaviors.update(updated)
            logger.info(
                "behavior_updated",
                extra={"behavior_id": behavior_id, "point_value": updated.point_value, "is_active": is_active},
            )
            return updated

    def seed_default_catalog(self) -> list[Behavior]:
        """Install the predefined behaviors that are not in the store yet.

        Idempotent: behaviors are matched by name, existing ones are skipped.

        Returns:
            The behaviors created by this call
        """
        with span("behavior_catalog.seed_default_catalog"):
            created: list[Behavior] = []
            for seed in DEFAULT_BEHAVIORS:
                name = str(seed["name"])
                if self._behaviors.get_by_name(name) is not None:
                    logger.debug("behavior_seed_skipped", extra={"behavior_name": name})
                    continue
                created.append(self._behaviors.create(Behavior.create(**seed)))  # type: ignore[arg-type]

            logger.info(
                "behavior_catalog_seeded",
                extra={"created_count": len(created), "catalog_size": len(DEFAULT_BEHAVIORS)},
            )
            return created
