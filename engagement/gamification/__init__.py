"""
Weekly Engagement Engine

This package implements the couple engagement loop:
- Local-time ISO week windows
- Deterministic weekly challenge rotation with tiered unlock quotas
- Per-user weekly challenge state (opened/completed)
- Pair weekly points goals, completion and reward claims
- Daily streaks with a once-per-week catch-up
"""

from engagement.gamification.week_window import week_identifier, week_range, local_day
from engagement.gamification.selector import Mulberry32, derive_seed, pick_without_replacement
from engagement.gamification.catalog import ChallengeCatalog, PLAN_QUOTAS, UNLOCK_REQUIREMENTS
from engagement.gamification.rotation import plan_week
from engagement.gamification.weekly_state import WeeklyStateStore
from engagement.gamification.points_aggregator import PointsAggregator
from engagement.gamification.streak_system import (
    StreakEngine,
    StreakTransition,
    apply_completion,
    apply_catchup_activation,
)

__all__ = [
    "week_identifier",
    "week_range",
    "local_day",
    "Mulberry32",
    "derive_seed",
    "pick_without_replacement",
    "ChallengeCatalog",
    "PLAN_QUOTAS",
    "UNLOCK_REQUIREMENTS",
    "plan_week",
    "WeeklyStateStore",
    "PointsAggregator",
    "StreakEngine",
    "StreakTransition",
    "apply_completion",
    "apply_catchup_activation",
]
