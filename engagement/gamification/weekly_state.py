"""
Weekly Challenge State

Persists which of a user's weekly challenges are opened and completed, and
merges that state into the deterministic weekly plan on every read.

Mutations auto-create the (user, week) record, so callers never need to call
ensure_week_doc first; it stays available as an explicit idempotent step.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from engagement.db.queries import WeeklyStateRepo
from engagement.exceptions import (
    PreconditionFailedError,
    RecordNotFoundError,
    ValidationError,
    require_id,
)
from engagement.gamification.catalog import (
    ALL_CATEGORIES,
    ChallengeCatalog,
    UNLOCK_REQUIREMENTS,
    default_catalog,
)
from engagement.gamification.rotation import plan_week
from engagement.gamification.week_window import parse_week_identifier
from engagement.models import (
    ChallengeCategory,
    ChallengeTier,
    WeeklyItem,
    WeeklyState,
    WeeklyStateEntry,
)

logger = logging.getLogger(__name__)


def _check_week_id(week_id: str) -> None:
    try:
        parse_week_identifier(week_id)
    except ValueError as e:
        raise ValidationError(str(e), field="week_id", value=week_id)


def _check_category(category_filter: Union[ChallengeCategory, str, None]) -> None:
    if category_filter is None or category_filter == ALL_CATEGORIES:
        return
    try:
        ChallengeCategory(category_filter)
    except ValueError:
        raise ValidationError(
            f"Unknown category: {category_filter}",
            field="category_filter",
            value=str(category_filter),
        )


class WeeklyStateStore:
    """Per-(user, week) opened/completed flags"""

    def __init__(
        self,
        repo: WeeklyStateRepo,
        catalog: Optional[ChallengeCatalog] = None,
        unlock_requirements: Optional[dict[ChallengeTier, int]] = None,
    ):
        self.repo = repo
        self.catalog = catalog or default_catalog
        self.unlock_requirements = unlock_requirements or UNLOCK_REQUIREMENTS

    async def ensure_week_doc(self, user_id: str, week_id: str) -> WeeklyState:
        """Create the week record if it does not exist yet (safe to call on every access)"""
        require_id(user_id, "user_id", operation="ensure_week_doc")
        _check_week_id(week_id)
        return await self.repo.ensure(user_id, week_id)

    async def record_unlock(
        self,
        user_id: str,
        week_id: str,
        challenge_id: str,
        tier: ChallengeTier,
        now: Optional[datetime] = None,
    ) -> WeeklyState:
        """Mark a challenge opened and stamp the unlock time; completed is left as is"""
        require_id(user_id, "user_id", operation="record_unlock")
        require_id(challenge_id, "challenge_id", operation="record_unlock")
        _check_week_id(week_id)
        unlocked_at = now or datetime.now(timezone.utc)

        def open_entry(entry: WeeklyStateEntry) -> WeeklyStateEntry:
            return entry.model_copy(update={
                "opened": True,
                "unlocked_at": entry.unlocked_at or unlocked_at,
                "tier": ChallengeTier(tier),
            })

        state = await self.repo.update_item(user_id, week_id, challenge_id, open_entry)
        logger.info(f"User {user_id} unlocked {challenge_id} ({tier}) for {week_id}")
        return state

    async def set_completed(
        self,
        user_id: str,
        week_id: str,
        challenge_id: str,
        completed: bool,
    ) -> WeeklyState:
        """Set only the completed flag of one challenge"""
        require_id(user_id, "user_id", operation="set_completed")
        require_id(challenge_id, "challenge_id", operation="set_completed")
        _check_week_id(week_id)

        state = await self.repo.update_item(
            user_id,
            week_id,
            challenge_id,
            lambda entry: entry.model_copy(update={"completed": bool(completed)}),
        )
        logger.info(f"User {user_id} set {challenge_id} completed={completed} for {week_id}")
        return state

    async def unlock_challenge(
        self,
        user_id: str,
        week_id: str,
        challenge_id: str,
        weekly_points: int,
        now: Optional[datetime] = None,
    ) -> WeeklyState:
        """
        Open a locked challenge once the weekly points requirement is met

        Raises:
            RecordNotFoundError: challenge_id is not in the catalog
            PreconditionFailedError: weekly_points below the tier requirement
        """
        challenge = self.catalog.get(challenge_id)
        if challenge is None:
            raise RecordNotFoundError(
                f"Challenge {challenge_id} not found",
                record_type="Challenge",
                record_id=challenge_id,
                user_id=user_id,
                operation="unlock_challenge",
            )

        required = self.unlock_requirements.get(challenge.tier, 0)
        if weekly_points < required:
            raise PreconditionFailedError(
                f"Need {required} weekly points",
                reason="insufficient_points",
                user_id=user_id,
                operation="unlock_challenge",
                context={"challenge_id": challenge_id, "weekly_points": weekly_points, "required": required},
            )

        return await self.record_unlock(user_id, week_id, challenge_id, challenge.tier, now=now)

    async def weekly_items(
        self,
        user_id: str,
        is_premium: bool,
        category_filter: Union[ChallengeCategory, str, None],
        week_id: str,
    ) -> list[WeeklyItem]:
        """
        This week's plan with persisted flags applied

        A persisted opened=True clears the plan's lock.
        """
        _check_category(category_filter)
        state = await self.ensure_week_doc(user_id, week_id)
        items = plan_week(
            user_id,
            is_premium,
            category_filter,
            week_id,
            catalog=self.catalog,
            unlock_requirements=self.unlock_requirements,
        )

        merged: list[WeeklyItem] = []
        for item in items:
            entry = state.items.get(item.id)
            if entry is None:
                merged.append(item)
                continue
            opened = item.opened or entry.opened
            merged.append(item.model_copy(update={
                "opened": opened,
                "completed": entry.completed,
                "locked_reason": None if opened else item.locked_reason,
            }))
        return merged
