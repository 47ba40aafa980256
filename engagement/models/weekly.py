"""Pair-level weekly goal models"""
from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class WeeklyStatus(str, Enum):
    """Weekly goal status"""
    ACTIVE = "active"
    COMPLETED = "completed"
    MISSED = "missed"


class PairWeekly(BaseModel):
    """Live weekly summary stored on the pair record"""
    week_key: str
    week_start: datetime
    target: int
    status: WeeklyStatus = WeeklyStatus.ACTIVE
    progress: int = 0
    weekly_streak: int = 0
    longest_weekly_streak: int = 0
    selected_reward_id: Optional[str] = None


class WeeklyHistoryEntry(BaseModel):
    """One audit entry per (pair, week)"""
    pair_id: str
    week_key: str
    target: int
    earned: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
    reward_id: Optional[str] = None


class Pair(BaseModel):
    """Two linked accounts sharing points and rewards"""
    pair_id: str
    members: list[str] = []
    weekly: Optional[PairWeekly] = None
    created_at: Optional[datetime] = None
