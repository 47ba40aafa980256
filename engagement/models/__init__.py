"""Pydantic models for the engagement engine"""

from engagement.models.challenge import (
    ChallengeTier,
    ChallengeCategory,
    Plan,
    ChallengeDef,
    PlanQuota,
    WeeklyItem,
    WeeklyStateEntry,
    WeeklyState,
    TIER_ORDER,
)
from engagement.models.weekly import WeeklyStatus, PairWeekly, WeeklyHistoryEntry, Pair
from engagement.models.streak import StreakDoc, CatchupActivation
from engagement.models.points import PointsEvent

__all__ = [
    "ChallengeTier",
    "ChallengeCategory",
    "Plan",
    "ChallengeDef",
    "PlanQuota",
    "WeeklyItem",
    "WeeklyStateEntry",
    "WeeklyState",
    "TIER_ORDER",
    "WeeklyStatus",
    "PairWeekly",
    "WeeklyHistoryEntry",
    "Pair",
    "StreakDoc",
    "CatchupActivation",
    "PointsEvent",
]
