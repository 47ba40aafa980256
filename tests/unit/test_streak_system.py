"""Unit tests for daily streaks and weekly catch-up (engagement/gamification/streak_system.py)"""
import random

import pytest
from datetime import date, datetime, timedelta, timezone

from engagement.exceptions import ValidationError
from engagement.gamification.streak_system import (
    StreakTransition,
    apply_catchup_activation,
    apply_completion,
    format_streak_display,
)
from engagement.gamification.week_window import week_identifier
from engagement.models import CatchupActivation, StreakDoc

UTC = timezone.utc


def at_noon(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, 0, tzinfo=UTC)


def week_of(day: date) -> str:
    return week_identifier(at_noon(day))


# ============================================================================
# Pure Transition Tests
# ============================================================================

def test_first_completion_is_fresh():
    """Test a missing document starts a streak of 1"""
    doc, kind = apply_completion(None, "u1", date(2025, 3, 3), "2025-W10")

    assert kind == StreakTransition.FRESH
    assert doc.current == 1
    assert doc.longest == 1
    assert doc.last_active_day == date(2025, 3, 3)
    assert doc.today_count == 1


def test_same_day_counts_once():
    """Test repeated completions on one day do not extend the streak"""
    doc, _ = apply_completion(None, "u1", date(2025, 3, 3), "2025-W10")
    doc, kind = apply_completion(doc, "u1", date(2025, 3, 3), "2025-W10")
    doc, _ = apply_completion(doc, "u1", date(2025, 3, 3), "2025-W10")

    assert kind == StreakTransition.SAME_DAY
    assert doc.current == 1
    assert doc.today_count == 3


def test_consecutive_day_extends():
    """Test the next day extends the streak and resets today_count"""
    doc, _ = apply_completion(None, "u1", date(2025, 3, 3), "2025-W10")
    doc, _ = apply_completion(doc, "u1", date(2025, 3, 3), "2025-W10")
    doc, kind = apply_completion(doc, "u1", date(2025, 3, 4), "2025-W10")

    assert kind == StreakTransition.CONSECUTIVE
    assert doc.current == 2
    assert doc.longest == 2
    assert doc.today_count == 1


def test_gap_without_catchup_resets():
    """Test a missed day resets current but keeps longest"""
    doc = StreakDoc(user_id="u1", current=6, longest=9, last_active_day=date(2025, 3, 3), today_count=1)
    doc, kind = apply_completion(doc, "u1", date(2025, 3, 5), "2025-W10")

    assert kind == StreakTransition.RESET
    assert doc.current == 1
    assert doc.longest == 9
    assert doc.last_active_day == date(2025, 3, 5)


def test_future_last_day_treated_as_same_day():
    """Test a last active day after today leaves the streak alone"""
    doc = StreakDoc(user_id="u1", current=3, longest=3, last_active_day=date(2025, 3, 4), today_count=1,
                    today_count_day=date(2025, 3, 4))
    after, kind = apply_completion(doc, "u1", date(2025, 3, 3), "2025-W10")

    assert kind == StreakTransition.SAME_DAY
    assert after.current == 3
    assert after.last_active_day == date(2025, 3, 4)


def test_legacy_doc_without_count_day():
    """Test documents written before today_count_day existed"""
    doc = StreakDoc(user_id="u1", current=2, longest=2, last_active_day=date(2025, 3, 3), today_count=1)
    after, kind = apply_completion(doc, "u1", date(2025, 3, 3), "2025-W10")

    assert kind == StreakTransition.SAME_DAY
    assert after.today_count == 2


def test_catchup_needs_two_completions_on_gap_day():
    """Test armed catch-up restores base + 1 on the second completion"""
    doc = StreakDoc(user_id="u1", current=4, longest=4, last_active_day=date(2025, 3, 3), today_count=1)
    doc, outcome = apply_catchup_activation(doc, "u1", "2025-W10")
    assert outcome == CatchupActivation.ARMED
    assert doc.catchup_base_current == 4

    doc, kind = apply_completion(doc, "u1", date(2025, 3, 6), "2025-W10")
    assert kind == StreakTransition.CATCHUP_ARMED
    assert doc.catchup_pending is True
    assert doc.current == 4
    assert doc.last_active_day == date(2025, 3, 3)

    doc, kind = apply_completion(doc, "u1", date(2025, 3, 6), "2025-W10")
    assert kind == StreakTransition.CATCHUP_CONSUMED
    assert doc.current == 5
    assert doc.longest == 5
    assert doc.catchup_pending is False
    assert doc.catchup_week_id == "2025-W10"
    assert doc.last_active_day == date(2025, 3, 6)


def test_catchup_pending_does_not_cross_days():
    """Test one completion on each of two gap days never consumes catch-up"""
    doc = StreakDoc(user_id="u1", current=4, longest=4, last_active_day=date(2025, 3, 3), today_count=1,
                    catchup_intent_week_id="2025-W10", catchup_base_current=4)

    doc, kind = apply_completion(doc, "u1", date(2025, 3, 5), "2025-W10")
    assert kind == StreakTransition.CATCHUP_ARMED
    doc, kind = apply_completion(doc, "u1", date(2025, 3, 6), "2025-W10")
    assert kind == StreakTransition.CATCHUP_WAITING
    assert doc.today_count == 1
    assert doc.current == 4

    doc, kind = apply_completion(doc, "u1", date(2025, 3, 6), "2025-W10")
    assert kind == StreakTransition.CATCHUP_CONSUMED
    assert doc.current == 5


def test_catchup_intent_for_other_week_is_ignored():
    """Test an intent armed last week does not apply this week"""
    doc = StreakDoc(user_id="u1", current=4, longest=4, last_active_day=date(2025, 3, 3), today_count=1,
                    catchup_intent_week_id="2025-W09", catchup_pending=True)
    doc, kind = apply_completion(doc, "u1", date(2025, 3, 6), "2025-W10")

    assert kind == StreakTransition.RESET
    assert doc.current == 1
    assert doc.catchup_pending is False


def test_activation_outcomes():
    """Test armed / already armed / already used"""
    created, outcome = apply_catchup_activation(None, "u1", "2025-W10")
    assert outcome == CatchupActivation.ARMED
    assert created.catchup_pending is True
    assert created.current == 0
    assert created.last_active_day is None

    armed = StreakDoc(user_id="u1", current=2, longest=2, catchup_intent_week_id="2025-W10")
    assert apply_catchup_activation(armed, "u1", "2025-W10") == (None, CatchupActivation.ALREADY_ARMED)

    used = armed.model_copy(update={"catchup_week_id": "2025-W10"})
    assert apply_catchup_activation(used, "u1", "2025-W10") == (None, CatchupActivation.ALREADY_USED)

    rearmed, outcome = apply_catchup_activation(used, "u1", "2025-W11")
    assert outcome == CatchupActivation.ARMED
    assert rearmed.catchup_intent_week_id == "2025-W11"


def test_pre_armed_doc_first_completion_is_fresh():
    """Test a document created by activation starts at 1"""
    doc, _ = apply_catchup_activation(None, "u1", "2025-W10")
    doc, kind = apply_completion(doc, "u1", date(2025, 3, 3), "2025-W10")

    assert kind == StreakTransition.FRESH
    assert doc.current == 1
    assert doc.catchup_pending is False
    assert doc.catchup_intent_week_id == "2025-W10"


def test_streak_doc_rejects_bad_counters():
    """Test model invariants"""
    with pytest.raises(ValueError):
        StreakDoc(user_id="u1", current=-1)
    with pytest.raises(ValueError):
        StreakDoc(user_id="u1", current=5, longest=3)


# ============================================================================
# Randomized Invariant Tests
# ============================================================================

@pytest.mark.parametrize("seed", range(10))
def test_random_histories_keep_invariants(seed):
    """Test counters and catch-up limits over random completion histories"""
    rnd = random.Random(seed)
    doc = None
    day = date(2025, 1, 1)
    consumed_weeks: list[str] = []

    for _ in range(200):
        day += timedelta(days=rnd.choice([0, 0, 1, 1, 1, 2, 3, 5]))
        week = week_of(day)

        if rnd.random() < 0.2:
            after, _ = apply_catchup_activation(doc, "u1", week)
            doc = after or doc

        before = doc
        doc, kind = apply_completion(doc, "u1", day, week)

        assert doc.current >= 1
        assert doc.longest >= doc.current
        if before is not None:
            assert doc.longest >= before.longest
        if kind == StreakTransition.CATCHUP_CONSUMED:
            consumed_weeks.append(week)
            assert doc.current == before.catchup_base_current + 1
        if kind in (StreakTransition.CATCHUP_ARMED, StreakTransition.CATCHUP_WAITING):
            assert doc.current == before.current

    # Catch-up is consumed at most once per ISO week
    assert len(consumed_weeks) == len(set(consumed_weeks))


# ============================================================================
# Engine Tests
# ============================================================================

@pytest.mark.asyncio
async def test_engine_requires_user_id(streak_engine, monday):
    """Test blank user ids are rejected"""
    with pytest.raises(ValidationError):
        await streak_engine.notify_completion("", now=monday)


@pytest.mark.asyncio
async def test_engine_persists_streak(streak_engine, test_user_id, monday):
    """Test notify_completion writes through to the store"""
    await streak_engine.notify_completion(test_user_id, now=monday)
    await streak_engine.notify_completion(test_user_id, now=monday + timedelta(days=1))

    stored = await streak_engine.get_streak(test_user_id)
    assert stored.current == 2
    assert stored.last_active_day == date(2025, 3, 4)
    assert await streak_engine.get_streak("someone-else") is None


@pytest.mark.asyncio
async def test_engine_uses_local_day(streak_engine, test_user_id):
    """Test day keys follow the caller's offset"""
    # 23:30 UTC on Mon and Tue; at UTC+1 those are Tue and Wed
    await streak_engine.notify_completion(test_user_id, 60, now=datetime(2025, 3, 3, 23, 30, tzinfo=UTC))
    doc = await streak_engine.notify_completion(test_user_id, 60, now=datetime(2025, 3, 4, 23, 30, tzinfo=UTC))

    assert doc.current == 2
    assert doc.last_active_day == date(2025, 3, 5)


@pytest.mark.asyncio
async def test_engine_catchup_end_to_end(streak_engine, test_user_id):
    """Test catch-up across two ISO weeks"""
    user = test_user_id

    await streak_engine.notify_completion(user, now=at_noon(date(2025, 3, 2)))   # Sun, W09
    doc = await streak_engine.notify_completion(user, now=at_noon(date(2025, 3, 3)))   # Mon, W10
    assert doc.current == 2

    # Missed Tue and Wed; arm and complete twice on Thu
    thursday = at_noon(date(2025, 3, 6))
    doc, outcome = await streak_engine.activate_catchup(user, now=thursday)
    assert outcome == CatchupActivation.ARMED

    doc = await streak_engine.notify_completion(user, now=thursday)
    assert doc.catchup_pending is True
    assert doc.current == 2
    doc = await streak_engine.notify_completion(user, now=thursday + timedelta(minutes=5))
    assert doc.current == 3
    assert doc.catchup_week_id == "2025-W10"

    # Used up for W10
    again, outcome = await streak_engine.activate_catchup(user, now=thursday + timedelta(hours=1))
    assert outcome == CatchupActivation.ALREADY_USED
    assert again == doc

    doc = await streak_engine.notify_completion(user, now=at_noon(date(2025, 3, 7)))   # Fri
    assert doc.current == 4

    # Missed Sat-Mon; W11 grants a new catch-up
    tuesday = at_noon(date(2025, 3, 11))
    _, outcome = await streak_engine.activate_catchup(user, now=tuesday)
    assert outcome == CatchupActivation.ARMED
    await streak_engine.notify_completion(user, now=tuesday)
    doc = await streak_engine.notify_completion(user, now=tuesday + timedelta(minutes=1))

    assert doc.current == 5
    assert doc.longest == 5
    assert doc.catchup_week_id == "2025-W11"


@pytest.mark.asyncio
async def test_engine_activate_twice_is_already_armed(streak_engine, test_user_id, monday):
    """Test a repeat activation in the same week is a no-op"""
    first, outcome = await streak_engine.activate_catchup(test_user_id, now=monday)
    assert outcome == CatchupActivation.ARMED

    second, outcome = await streak_engine.activate_catchup(test_user_id, now=monday + timedelta(days=1))
    assert outcome == CatchupActivation.ALREADY_ARMED
    assert second == first


# ============================================================================
# Display Tests
# ============================================================================

def test_format_streak_display():
    """Test display strings"""
    assert "No streak yet" in format_streak_display(None)
    assert "No streak yet" in format_streak_display(StreakDoc(user_id="u1"))

    line = format_streak_display(StreakDoc(user_id="u1", current=3, longest=7, catchup_pending=True))
    assert "3-day streak" in line
    assert "best: 7" in line
    assert "catch-up armed" in line
