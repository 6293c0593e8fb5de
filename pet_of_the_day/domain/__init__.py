"""Domain models and DTOs."""

from pet_of_the_day.domain.behavior import Behavior, BehaviorCategory, Species
from pet_of_the_day.domain.behavior_log import BehaviorLog, BehaviorLogFilter, BehaviorLogGroupShare
from pet_of_the_day.domain.daily_score import DailyScore, DailyScoreBreakdown, DailyScoreFilter, PetDailyScoreSummary
from pet_of_the_day.domain.ranking import GroupPetOfTheDayStats, GroupRankings, PetOfTheDayWinner, PetRanking
from pet_of_the_day.domain.repository import GroupInfo, PetInfo, UserInfo
from pet_of_the_day.domain.settings import Language, Theme, UserTimezoneSettings


__all__ = [
    "Behavior",
    "BehaviorCategory",
    "BehaviorLog",
    "BehaviorLogFilter",
    "BehaviorLogGroupShare",
    "DailyScore",
    "DailyScoreBreakdown",
    "DailyScoreFilter",
    "GroupInfo",
    "GroupPetOfTheDayStats",
    "GroupRankings",
    "Language",
    "PetDailyScoreSummary",
    "PetInfo",
    "PetOfTheDayWinner",
    "PetRanking",
    "Species",
    "Theme",
    "UserInfo",
    "UserTimezoneSettings",
]
