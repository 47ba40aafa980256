"""
Weekly Points Aggregation

Sums a pair's points for the current local week, keeps the pair's live
weekly summary and the per-week history entry up to date, and handles the
weekly reward claim.

Policies:
- Only positive events count toward the weekly goal; negative adjustments
  are excluded from the total.
- Completion is monotonic: once a week's history entry records
  completed=True it stays True (and completed_at keeps its first value),
  even if a later correction lowers the sum.
- Claiming is not idempotent by default: a second claim in the same week
  increments the weekly streak again. Strict mode rejects it instead.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from engagement import config
from engagement.db.queries import PairWeeklyRepo, PointsEventRepo
from engagement.exceptions import (
    PreconditionFailedError,
    RecordNotFoundError,
    ValidationError,
    require_id,
)
from engagement.gamification.week_window import week_identifier, week_range
from engagement.models import (
    Pair,
    PairWeekly,
    PointsEvent,
    WeeklyHistoryEntry,
    WeeklyStatus,
)

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


class PointsAggregator:
    """Pair-level weekly goal progress, completion and reward claims"""

    def __init__(
        self,
        pairs: PairWeeklyRepo,
        points: PointsEventRepo,
        strict_claims: Optional[bool] = None,
    ):
        self.pairs = pairs
        self.points = points
        self.strict_claims = config.CLAIM_STRICT_MODE if strict_claims is None else strict_claims

    async def register_pair(self, pair_id: str, members: Optional[list[str]] = None) -> Pair:
        """Create the pair record ensure_weekly requires (idempotent)"""
        require_id(pair_id, "pair_id", operation="register_pair")
        return await self.pairs.create_pair(pair_id, members or [])

    async def record_points(
        self,
        pair_id: str,
        value: float,
        owner_id: Optional[str] = None,
        reason: str = "",
        created_at: Optional[datetime] = None,
    ) -> PointsEvent:
        """
        Append a points event (negative values are adjustments)

        Raises:
            ValidationError: blank pair_id, or value is not a finite number
        """
        require_id(pair_id, "pair_id", operation="record_points")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(
                "value must be a finite number",
                field="value",
                value=str(value),
                operation="record_points",
            )
        event = PointsEvent(
            pair_id=pair_id,
            value=value,
            owner_id=owner_id,
            reason=reason,
            created_at=_now(created_at),
        )
        return await self.points.add(event)

    async def sum_for_week(self, pair_id: str, range_: tuple[datetime, datetime]) -> int:
        """Sum of positive event values for pair_id with created_at in [start, end)"""
        start, end = range_
        events = await self.points.list_for_range(pair_id, start, end)
        total = sum(e.value for e in events if e.value > 0)
        return int(total)

    async def ensure_weekly(
        self,
        pair_id: str,
        target: Optional[int] = None,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> PairWeekly:
        """
        Recompute this week's progress and merge it into the pair summary and
        the week's history entry

        Safe to call repeatedly: with no new events the result is identical.

        Raises:
            RecordNotFoundError: the pair does not exist
        """
        require_id(pair_id, "pair_id", operation="ensure_weekly")
        target = config.DEFAULT_WEEKLY_TARGET if target is None else target
        now = _now(now)

        if await self.pairs.get_pair(pair_id) is None:
            raise RecordNotFoundError(
                f"Pair {pair_id} not found",
                record_type="Pair",
                record_id=pair_id,
                operation="ensure_weekly",
            )

        week_key = week_identifier(now, tz_offset_minutes)
        start, end = week_range(now, tz_offset_minutes)
        total = await self.sum_for_week(pair_id, (start, end))
        reached = total >= target

        def merge_history(prev: Optional[WeeklyHistoryEntry]) -> WeeklyHistoryEntry:
            if prev is None:
                return WeeklyHistoryEntry(
                    pair_id=pair_id,
                    week_key=week_key,
                    target=target,
                    earned=total,
                    completed=reached,
                    completed_at=now if reached else None,
                )
            completed = prev.completed or reached
            return prev.model_copy(update={
                "target": target,
                "earned": total,
                "completed": completed,
                "completed_at": prev.completed_at or (now if completed else None),
            })

        history = await self.pairs.update_history(pair_id, week_key, merge_history)

        def merge_weekly(prev: Optional[PairWeekly]) -> PairWeekly:
            same_week = prev is not None and prev.week_key == week_key
            return PairWeekly(
                week_key=week_key,
                week_start=start,
                target=target,
                status=WeeklyStatus.COMPLETED if history.completed else WeeklyStatus.ACTIVE,
                progress=total,
                weekly_streak=prev.weekly_streak if prev else 0,
                longest_weekly_streak=prev.longest_weekly_streak if prev else 0,
                selected_reward_id=prev.selected_reward_id if same_week else None,
            )

        weekly = await self.pairs.update_weekly(pair_id, merge_weekly)
        if weekly is None:
            # Pair deleted between the existence check and the write
            raise RecordNotFoundError(
                f"Pair {pair_id} not found",
                record_type="Pair",
                record_id=pair_id,
                operation="ensure_weekly",
            )

        if history.completed and not reached:
            logger.info(
                f"Pair {pair_id} week {week_key} stays completed although earned "
                f"dropped to {total}/{target}"
            )
        logger.debug(f"Pair {pair_id} week {week_key}: {total}/{target} ({weekly.status.value})")
        return weekly

    async def claim_weekly_reward(
        self,
        pair_id: str,
        reward_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
        strict: Optional[bool] = None,
    ) -> PairWeekly:
        """
        Claim this week's reward and extend the weekly streak

        Raises:
            RecordNotFoundError: the pair does not exist, or no history entry for
                this week (ensure_weekly never ran)
            PreconditionFailedError: target not yet met, or already claimed in strict mode
        """
        require_id(pair_id, "pair_id", operation="claim_weekly_reward")
        require_id(reward_id, "reward_id", operation="claim_weekly_reward")
        strict = self.strict_claims if strict is None else strict
        now = _now(now)
        week_key = week_identifier(now, tz_offset_minutes)

        # Checked before the history write so a reward is never recorded without a streak bump
        if await self.pairs.get_pair(pair_id) is None:
            raise RecordNotFoundError(
                f"Pair {pair_id} not found",
                record_type="Pair",
                record_id=pair_id,
                operation="claim_weekly_reward",
            )

        def record_reward(prev: Optional[WeeklyHistoryEntry]) -> WeeklyHistoryEntry:
            if prev is None:
                raise RecordNotFoundError(
                    f"Weekly history for {pair_id} {week_key} missing",
                    record_type="WeeklyHistory",
                    record_id=f"{pair_id}_{week_key}",
                    operation="claim_weekly_reward",
                )
            if not prev.completed:
                raise PreconditionFailedError(
                    "Target not yet met",
                    reason="target_not_met",
                    operation="claim_weekly_reward",
                    context={"pair_id": pair_id, "week_key": week_key, "earned": prev.earned, "target": prev.target},
                )
            if strict and prev.reward_id:
                raise PreconditionFailedError(
                    "Weekly reward already claimed",
                    reason="already_claimed",
                    operation="claim_weekly_reward",
                    context={"pair_id": pair_id, "week_key": week_key, "reward_id": prev.reward_id},
                )
            return prev.model_copy(update={"reward_id": reward_id})

        history = await self.pairs.update_history(pair_id, week_key, record_reward)

        def bump_streak(prev: Optional[PairWeekly]) -> PairWeekly:
            if prev is None or prev.week_key != week_key:
                start, _ = week_range(now, tz_offset_minutes)
                base = PairWeekly(
                    week_key=week_key,
                    week_start=start,
                    target=history.target,
                    status=WeeklyStatus.COMPLETED,
                    progress=history.earned,
                    weekly_streak=prev.weekly_streak if prev else 0,
                    longest_weekly_streak=prev.longest_weekly_streak if prev else 0,
                )
            else:
                base = prev
            streak = base.weekly_streak + 1
            return base.model_copy(update={
                "weekly_streak": streak,
                "longest_weekly_streak": max(streak, base.longest_weekly_streak),
                "selected_reward_id": reward_id,
            })

        weekly = await self.pairs.update_weekly(pair_id, bump_streak)
        if weekly is None:
            raise RecordNotFoundError(
                f"Pair {pair_id} not found",
                record_type="Pair",
                record_id=pair_id,
                operation="claim_weekly_reward",
            )

        logger.info(
            f"Pair {pair_id} claimed reward {reward_id} for {week_key}; "
            f"weekly streak {weekly.weekly_streak} (longest {weekly.longest_weekly_streak})"
        )
        return weekly

    async def get_pair_weekly(
        self,
        pair_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> Optional[PairWeekly]:
        """
        Read the stored weekly summary without recomputing it

        The summary is whatever ensure_weekly last wrote, so it can belong to
        an earlier week:
        - an earlier week that never completed is reported as missed
        - an earlier week that completed is returned as stored (status
          completed); its week_key differs from the current week's, which is
          how callers showing "this week" tell it apart

        Call ensure_weekly to roll the summary over to the current week.
        """
        require_id(pair_id, "pair_id", operation="get_pair_weekly")
        pair = await self.pairs.get_pair(pair_id)
        if pair is None:
            raise RecordNotFoundError(
                f"Pair {pair_id} not found",
                record_type="Pair",
                record_id=pair_id,
                operation="get_pair_weekly",
            )
        weekly = pair.weekly
        if weekly is None:
            return None

        current_key = week_identifier(_now(now), tz_offset_minutes)
        if weekly.week_key != current_key and weekly.status != WeeklyStatus.COMPLETED:
            return weekly.model_copy(update={"status": WeeklyStatus.MISSED})
        return weekly
