"""Daily streak models"""
from enum import Enum
from pydantic import BaseModel, model_validator
from typing import Optional
from datetime import date, datetime


class StreakDoc(BaseModel):
    """
    Per-user daily streak state

    The streak state machine is implicit in these fields; see
    engagement.gamification.streak_system.apply_completion.
    """
    user_id: str
    current: int = 0
    longest: int = 0
    last_active_day: Optional[date] = None
    today_count: int = 0
    # Calendar day today_count refers to
    today_count_day: Optional[date] = None
    catchup_pending: bool = False
    catchup_base_current: int = 0
    catchup_week_id: Optional[str] = None
    catchup_intent_week_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_counters(self) -> "StreakDoc":
        if self.current < 0:
            raise ValueError("current streak cannot be negative")
        if self.longest < self.current:
            raise ValueError("longest streak cannot be below current streak")
        return self


class CatchupActivation(str, Enum):
    """Outcome of arming the weekly catch-up"""
    ARMED = "armed"
    ALREADY_ARMED = "already_armed"
    ALREADY_USED = "already_used"
