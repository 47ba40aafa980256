"""Challenge catalog and weekly rotation models"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ChallengeTier(str, Enum):
    """Difficulty/reward class of a challenge"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    SUPER = "super"


# Draw order used by the rotation planner
TIER_ORDER: tuple[ChallengeTier, ...] = (
    ChallengeTier.EASY,
    ChallengeTier.MEDIUM,
    ChallengeTier.HARD,
    ChallengeTier.SUPER,
)


class ChallengeCategory(str, Enum):
    """Challenge categories shown as tabs"""
    DATES = "dates"
    KINDNESS = "kindness"
    TALK = "talk"
    SURPRISE = "surprise"
    PLAY = "play"


class Plan(str, Enum):
    """Subscription plan"""
    FREE = "free"
    PREMIUM = "premium"


class ChallengeDef(BaseModel):
    """Immutable catalog entry"""
    model_config = {"frozen": True}

    id: str
    title: str
    tier: ChallengeTier
    category: ChallengeCategory
    description: str = ""
    points: int = 0
    premium_only: bool = False


class PlanQuota(BaseModel):
    """Per-plan slot counts: opened for free vs. presented locked"""
    plan: Plan
    open: dict[ChallengeTier, int] = Field(default_factory=dict)
    unlockable: dict[ChallengeTier, int] = Field(default_factory=dict)

    def present_count(self, tier: ChallengeTier) -> int:
        return max(0, self.open.get(tier, 0)) + max(0, self.unlockable.get(tier, 0))


class WeeklyItem(BaseModel):
    """A challenge as one user sees it in one week (derived, not persisted)"""
    challenge: ChallengeDef
    opened: bool = False
    completed: bool = False
    locked_reason: Optional[str] = None

    @property
    def id(self) -> str:
        return self.challenge.id

    @property
    def tier(self) -> ChallengeTier:
        return self.challenge.tier


class WeeklyStateEntry(BaseModel):
    """Persisted per-challenge flags inside a user's week record"""
    opened: bool = False
    completed: bool = False
    unlocked_at: Optional[datetime] = None
    tier: Optional[ChallengeTier] = None


class WeeklyState(BaseModel):
    """Per (user, week) record of opened/completed challenges"""
    user_id: str
    week_id: str
    items: dict[str, WeeklyStateEntry] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
