"""
Per-aggregate repositories over the document store.

Module organization:
- weekly_state.py: per-user weekly challenge state
- streaks.py: per-user daily streak documents
- pairs.py: pair records, live weekly summary, weekly history
- points.py: append-only points events
"""

from engagement.db.queries.weekly_state import WeeklyStateRepo, weekly_state_key
from engagement.db.queries.streaks import StreakRepo
from engagement.db.queries.pairs import PairWeeklyRepo, history_key
from engagement.db.queries.points import PointsEventRepo

__all__ = [
    "WeeklyStateRepo",
    "weekly_state_key",
    "StreakRepo",
    "PairWeeklyRepo",
    "history_key",
    "PointsEventRepo",
]
