"""
EngagementService - Engagement Engine Facade

Entry point for the request handlers of the app. Every method returns an
OperationResult instead of raising, so callers branch on error_kind
('not_found', 'precondition_failed', 'invalid_argument', 'store_error')
without string matching.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from engagement.db.documents import DocumentStore
from engagement.db.queries import (
    PairWeeklyRepo,
    PointsEventRepo,
    StreakRepo,
    WeeklyStateRepo,
)
from engagement.exceptions import EngagementError, PreconditionFailedError
from engagement.gamification.catalog import ChallengeCatalog, default_catalog
from engagement.gamification.points_aggregator import PointsAggregator
from engagement.gamification.streak_system import StreakEngine
from engagement.gamification.week_window import week_identifier
from engagement.gamification.weekly_state import WeeklyStateStore
from engagement.models import CatchupActivation, ChallengeCategory
from engagement.monitoring import track_operation

logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    """Typed outcome of a service call"""
    ok: bool
    data: Any = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    user_message: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> "OperationResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: EngagementError, data: Any = None) -> "OperationResult":
        return cls(
            ok=False,
            data=data,
            error_kind=error.kind,
            error_message=error.message,
            user_message=error.user_message,
            request_id=error.request_id,
        )


class EngagementService:
    """
    Service for the weekly engagement engine.

    Responsibilities:
    - Weekly challenge plan, unlocks and completion flags
    - Pair weekly points goal and reward claims
    - Daily streaks and the weekly catch-up
    """

    def __init__(
        self,
        store: DocumentStore,
        catalog: Optional[ChallengeCatalog] = None,
        strict_claims: Optional[bool] = None,
    ):
        """
        Initialize EngagementService.

        Args:
            store: Document store backing every repository
            catalog: Challenge pool (defaults to the built-in catalog)
            strict_claims: Reject a second weekly claim (defaults to CLAIM_STRICT_MODE)
        """
        self.store = store
        self.catalog = catalog or default_catalog
        self.weekly_state = WeeklyStateStore(WeeklyStateRepo(store), self.catalog)
        self.aggregator = PointsAggregator(
            PairWeeklyRepo(store),
            PointsEventRepo(store),
            strict_claims=strict_claims,
        )
        self.streaks = StreakEngine(StreakRepo(store))
        logger.debug("EngagementService initialized")

    async def _run(self, operation: str, call: Callable[[], Awaitable[Any]]) -> OperationResult:
        try:
            with track_operation(operation):
                return OperationResult.success(await call())
        except EngagementError as e:
            return OperationResult.failure(e)
        except Exception as e:
            logger.error(f"Unexpected error in {operation}: {e}", exc_info=True)
            return OperationResult(
                ok=False,
                error_kind="internal",
                error_message=str(e),
                user_message="An error occurred. Please try again.",
            )

    # ==========================================
    # Weekly challenges
    # ==========================================

    async def weekly_items(
        self,
        user_id: str,
        is_premium: bool,
        category_filter: Union[ChallengeCategory, str, None] = "all",
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """This week's challenges with opened/completed flags applied"""
        week_id = week_identifier(now or datetime.now(timezone.utc), tz_offset_minutes)
        return await self._run(
            "weekly_items",
            lambda: self.weekly_state.weekly_items(user_id, is_premium, category_filter, week_id),
        )

    async def unlock_challenge(
        self,
        user_id: str,
        challenge_id: str,
        weekly_points: int,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        now = now or datetime.now(timezone.utc)
        week_id = week_identifier(now, tz_offset_minutes)
        return await self._run(
            "unlock_challenge",
            lambda: self.weekly_state.unlock_challenge(user_id, week_id, challenge_id, weekly_points, now=now),
        )

    async def set_challenge_completed(
        self,
        user_id: str,
        challenge_id: str,
        completed: bool = True,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        week_id = week_identifier(now or datetime.now(timezone.utc), tz_offset_minutes)
        return await self._run(
            "set_challenge_completed",
            lambda: self.weekly_state.set_completed(user_id, week_id, challenge_id, completed),
        )

    # ==========================================
    # Pair weekly goal
    # ==========================================

    async def register_pair(self, pair_id: str, members: Optional[list[str]] = None) -> OperationResult:
        return await self._run("register_pair", lambda: self.aggregator.register_pair(pair_id, members))

    async def record_points(
        self,
        pair_id: str,
        value: float,
        owner_id: Optional[str] = None,
        reason: str = "",
        created_at: Optional[datetime] = None,
    ) -> OperationResult:
        return await self._run(
            "record_points",
            lambda: self.aggregator.record_points(pair_id, value, owner_id, reason, created_at),
        )

    async def ensure_weekly(
        self,
        pair_id: str,
        target: Optional[int] = None,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Recompute this week's pair progress (idempotent)"""
        return await self._run(
            "ensure_weekly",
            lambda: self.aggregator.ensure_weekly(pair_id, target, tz_offset_minutes, now),
        )

    async def claim_weekly_reward(
        self,
        pair_id: str,
        reward_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
        strict: Optional[bool] = None,
    ) -> OperationResult:
        return await self._run(
            "claim_weekly_reward",
            lambda: self.aggregator.claim_weekly_reward(pair_id, reward_id, tz_offset_minutes, now, strict),
        )

    async def get_pair_weekly(
        self,
        pair_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        return await self._run(
            "get_pair_weekly",
            lambda: self.aggregator.get_pair_weekly(pair_id, tz_offset_minutes, now),
        )

    # ==========================================
    # Streaks
    # ==========================================

    async def notify_completion(
        self,
        user_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Count a completed action toward the user's daily streak"""
        return await self._run(
            "notify_completion",
            lambda: self.streaks.notify_completion(user_id, tz_offset_minutes, now),
        )

    async def activate_catchup(
        self,
        user_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """
        Arm this week's catch-up

        Re-arming in the same week is ok (no change). Arming after catch-up
        was already used this week leaves the document unchanged and is
        reported as precondition_failed.
        """

        async def call():
            doc, outcome = await self.streaks.activate_catchup(user_id, tz_offset_minutes, now)
            if outcome == CatchupActivation.ALREADY_USED:
                raise PreconditionFailedError(
                    "Catch-up already used this week",
                    reason=outcome.value,
                    user_id=user_id,
                    operation="activate_catchup",
                )
            return doc

        return await self._run("activate_catchup", call)

    async def get_streak(self, user_id: str) -> OperationResult:
        return await self._run("get_streak", lambda: self.streaks.get_streak(user_id))
