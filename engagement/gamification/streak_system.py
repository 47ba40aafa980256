"""
Daily Streak Tracking with Weekly Catch-up

Tracks one daily completion streak per user:
- Multiple completions on the same day count once toward the streak
- A completion on the day after the last active day extends the streak
- A gap resets the streak to 1, unless the user armed this week's catch-up

Catch-up (once per ISO week):
- The user arms it explicitly (activate_catchup)
- On a gap day the first completion arms the pending state; the second
  completion that same day restores the streak to base + 1
- Once consumed, catch-up cannot be used again until the next ISO week

The transition functions are pure; StreakEngine wraps them in an atomic
read-modify-write against the streak repository.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional
import logging

from engagement.db.queries import StreakRepo
from engagement.exceptions import require_id
from engagement.gamification.week_window import local_day, week_identifier
from engagement.models import CatchupActivation, StreakDoc

logger = logging.getLogger(__name__)


class StreakTransition(str, Enum):
    """Which branch of the state machine a completion took"""
    FRESH = "fresh"
    SAME_DAY = "same_day"
    CONSECUTIVE = "consecutive"
    CATCHUP_ARMED = "catchup_armed"
    CATCHUP_WAITING = "catchup_waiting"
    CATCHUP_CONSUMED = "catchup_consumed"
    RESET = "reset"


def _next_today_count(doc: StreakDoc, today: date) -> int:
    # Older documents lack today_count_day; their count belongs to last_active_day
    count_day = doc.today_count_day or doc.last_active_day
    if count_day == today:
        return max(doc.today_count, 0) + 1
    return 1


def apply_completion(
    doc: Optional[StreakDoc],
    user_id: str,
    today: date,
    week_id: str,
    now: Optional[datetime] = None,
) -> tuple[StreakDoc, StreakTransition]:
    """
    Streak state after one completion on `today` (in ISO week `week_id`)

    Returns:
        (new document, transition taken)
    """
    stamp = now or datetime.now(timezone.utc)

    # Fresh: first ever completion, or a document created only to arm catch-up
    if doc is None or doc.last_active_day is None:
        base = doc or StreakDoc(user_id=user_id)
        return base.model_copy(update={
            "current": 1,
            "longest": max(base.longest, 1),
            "last_active_day": today,
            "today_count": 1,
            "today_count_day": today,
            "catchup_pending": False,
            "updated_at": stamp,
        }), StreakTransition.FRESH

    last = doc.last_active_day
    new_count = _next_today_count(doc, today)

    # Same day (a last day in the future after an offset change also lands here)
    if last >= today:
        return doc.model_copy(update={
            "today_count": new_count,
            "today_count_day": today,
            "updated_at": stamp,
        }), StreakTransition.SAME_DAY

    # Consecutive day
    if last == today - timedelta(days=1):
        current = doc.current + 1
        return doc.model_copy(update={
            "current": current,
            "longest": max(doc.longest, current),
            "last_active_day": today,
            "today_count": 1,
            "today_count_day": today,
            "catchup_pending": False,
            "updated_at": stamp,
        }), StreakTransition.CONSECUTIVE

    # Gap: catch-up only if armed for this week and not yet consumed this week
    catchup_available = (
        doc.catchup_intent_week_id == week_id
        and doc.catchup_week_id != week_id
    )

    if catchup_available:
        if not doc.catchup_pending:
            return doc.model_copy(update={
                "catchup_pending": True,
                "catchup_base_current": doc.current,
                "today_count": 1,
                "today_count_day": today,
                "updated_at": stamp,
            }), StreakTransition.CATCHUP_ARMED

        if new_count >= 2:
            current = doc.catchup_base_current + 1
            return doc.model_copy(update={
                "current": current,
                "longest": max(doc.longest, current),
                "last_active_day": today,
                "today_count": new_count,
                "today_count_day": today,
                "catchup_pending": False,
                "catchup_week_id": week_id,
                "updated_at": stamp,
            }), StreakTransition.CATCHUP_CONSUMED

        return doc.model_copy(update={
            "today_count": new_count,
            "today_count_day": today,
            "updated_at": stamp,
        }), StreakTransition.CATCHUP_WAITING

    # Gap without catch-up: hard reset
    return doc.model_copy(update={
        "current": 1,
        "longest": max(doc.longest, 1),
        "last_active_day": today,
        "today_count": 1,
        "today_count_day": today,
        "catchup_pending": False,
        "updated_at": stamp,
    }), StreakTransition.RESET


def apply_catchup_activation(
    doc: Optional[StreakDoc],
    user_id: str,
    week_id: str,
    now: Optional[datetime] = None,
) -> tuple[Optional[StreakDoc], CatchupActivation]:
    """
    Record the user's intent to use this week's catch-up

    Returns:
        (new document or None when unchanged, activation outcome)
    """
    stamp = now or datetime.now(timezone.utc)

    if doc is None:
        # Created pre-armed; the first completion still starts the streak at 1
        return StreakDoc(
            user_id=user_id,
            catchup_pending=True,
            catchup_base_current=0,
            catchup_intent_week_id=week_id,
            updated_at=stamp,
        ), CatchupActivation.ARMED

    if doc.catchup_week_id == week_id:
        return None, CatchupActivation.ALREADY_USED
    if doc.catchup_intent_week_id == week_id:
        return None, CatchupActivation.ALREADY_ARMED

    # A pending flag left over from an earlier week must not carry into this one
    return doc.model_copy(update={
        "catchup_intent_week_id": week_id,
        "catchup_pending": False,
        "catchup_base_current": doc.current,
        "updated_at": stamp,
    }), CatchupActivation.ARMED


class StreakEngine:
    """Per-user streak operations over the streak repository"""

    def __init__(self, repo: StreakRepo):
        self.repo = repo

    async def notify_completion(
        self,
        user_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> StreakDoc:
        """
        Count one completed action toward the user's daily streak

        Day and week keys are taken in the user's local time (fixed offset).
        """
        require_id(user_id, "user_id", operation="notify_completion")
        now = now or datetime.now(timezone.utc)
        today = local_day(now, tz_offset_minutes)
        week_id = week_identifier(now, tz_offset_minutes)
        taken: list[StreakTransition] = []

        def transition(current: Optional[StreakDoc]) -> StreakDoc:
            after, kind = apply_completion(current, user_id, today, week_id, now)
            taken.append(kind)
            return after

        doc = await self.repo.update(user_id, transition)
        kind = taken[-1]

        if kind == StreakTransition.RESET:
            logger.info(f"User {user_id} streak reset to 1 on {today} (longest {doc.longest})")
        elif kind == StreakTransition.CATCHUP_CONSUMED:
            logger.info(f"User {user_id} used catch-up for {week_id}: streak restored to {doc.current}")
        else:
            logger.debug(f"User {user_id} streak {kind.value}: current={doc.current}, today_count={doc.today_count}")
        return doc

    async def activate_catchup(
        self,
        user_id: str,
        tz_offset_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> tuple[StreakDoc, CatchupActivation]:
        """
        Arm this ISO week's catch-up

        No-op (document unchanged) if catch-up was already armed or already
        used this week; the outcome says which.
        """
        require_id(user_id, "user_id", operation="activate_catchup")
        now = now or datetime.now(timezone.utc)
        week_id = week_identifier(now, tz_offset_minutes)
        outcome: list[CatchupActivation] = []

        def transition(current: Optional[StreakDoc]) -> Optional[StreakDoc]:
            after, result = apply_catchup_activation(current, user_id, week_id, now)
            outcome.append(result)
            return after

        doc = await self.repo.update(user_id, transition)
        logger.info(f"User {user_id} catch-up activation for {week_id}: {outcome[-1].value}")
        return doc, outcome[-1]

    async def get_streak(self, user_id: str) -> Optional[StreakDoc]:
        require_id(user_id, "user_id", operation="get_streak")
        return await self.repo.get(user_id)


def format_streak_display(doc: Optional[StreakDoc]) -> str:
    """
    Format a streak for display

    Args:
        doc: Streak document from StreakEngine.get_streak()

    Returns:
        Single-line summary
    """
    if doc is None or doc.current == 0:
        return "No streak yet. Complete a task together to start one! 💪"

    line = f"🔥 {doc.current}-day streak"
    if doc.longest > doc.current:
        line += f" (best: {doc.longest})"
    if doc.catchup_pending:
        line += " · catch-up armed: complete 2 tasks today"
    return line
