"""pet-of-the-day - behavior scoring and Pet of the Day ranking engine."""

import logging
from dataclasses import dataclass

from pet_of_the_day.core.logging import configure_logfire
from pet_of_the_day.core.memory_store import InMemoryBackend
from pet_of_the_day.domain.repository import (
    AuthorizationGateway,
    BehaviorLogStore,
    BehaviorStore,
    DailyScoreStore,
    UserSettingsStore,
    WinnerStore,
)
from pet_of_the_day.services.behavior_catalog import BehaviorCatalog
from pet_of_the_day.services.behavior_log_service import BehaviorLogService
from pet_of_the_day.services.daily_score_service import DailyScoreService
from pet_of_the_day.services.ranking_service import RankingService
from pet_of_the_day.services.winner_service import WinnerService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PetOfTheDayEngine:
    """Every service, wired to one set of collaborators."""

    catalog: BehaviorCatalog
    behavior_logs: BehaviorLogService
    daily_scores: DailyScoreService
    rankings: RankingService
    winners: WinnerService

    @classmethod
    def build(  # noqa: PLR0913
        cls,
        *,
        behaviors: BehaviorStore,
        behavior_logs: BehaviorLogStore,
        daily_scores: DailyScoreStore,
        winners: WinnerStore,
        authorization: AuthorizationGateway,
        user_settings: UserSettingsStore,
    ) -> "PetOfTheDayEngine":
        """Wire the services on top of the given stores and gateway."""
        daily_score_service = DailyScoreService(
            daily_scores=daily_scores,
            behavior_logs=behavior_logs,
            behaviors=behaviors,
            authorization=authorization,
            user_settings=user_settings,
        )
        ranking_service = RankingService(daily_score_service=daily_score_service, authorization=authorization)
        return cls(
            catalog=BehaviorCatalog(behaviors),
            behavior_logs=BehaviorLogService(
                behaviors=behaviors,
                behavior_logs=behavior_logs,
                authorization=authorization,
                daily_score_service=daily_score_service,
            ),
            daily_scores=daily_score_service,
            rankings=ranking_service,
            winners=WinnerService(winners=winners, ranking_service=ranking_service, authorization=authorization),
        )

    @classmethod
    def in_memory(cls, backend: InMemoryBackend | None = None, *, seed_catalog: bool = True) -> "PetOfTheDayEngine":
        """Build an engine over in-memory collaborators, optionally seeding the behavior catalog."""
        backend = backend or InMemoryBackend()
        engine = cls.build(
            behaviors=backend.behaviors,
            behavior_logs=backend.behavior_logs,
            daily_scores=backend.daily_scores,
            winners=backend.winners,
            authorization=backend.authorization,
            user_settings=backend.user_settings,
        )
        if seed_catalog:
            engine.catalog.seed_default_catalog()
        return engine


def create_engine(backend: InMemoryBackend | None = None) -> PetOfTheDayEngine:
    """Configure observability and return an in-memory engine with the default catalog."""
    configure_logfire()
    engine = PetOfTheDayEngine.in_memory(backend)
    logger.info("engine_started", extra={"backend": "in_memory"})
    return engine
