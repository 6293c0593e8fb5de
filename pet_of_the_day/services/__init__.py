from pet_of_the_day.services import (
    behavior_catalog,
    behavior_log_service,
    daily_score_service,
    ranking_service,
    time_boundary,
    winner_service,
)


__all__ = [
    "behavior_catalog",
    "behavior_log_service",
    "daily_score_service",
    "ranking_service",
    "time_boundary",
    "winner_service",
]
