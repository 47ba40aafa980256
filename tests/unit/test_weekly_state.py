"""Unit tests for per-user weekly challenge state (engagement/gamification/weekly_state.py)"""
import pytest
from datetime import datetime, timedelta, timezone

from engagement.db.queries import WeeklyStateRepo
from engagement.db.queries.weekly_state import COLLECTION, weekly_state_key
from engagement.exceptions import (
    PreconditionFailedError,
    RecordNotFoundError,
    ValidationError,
)
from engagement.gamification.rotation import plan_week
from engagement.models import ChallengeTier

WEEK = "2025-W10"


# ============================================================================
# Week Record Tests
# ============================================================================

@pytest.mark.asyncio
async def test_ensure_week_doc_creates_once(weekly_state_store, store, test_user_id):
    """Test ensure_week_doc is idempotent"""
    first = await weekly_state_store.ensure_week_doc(test_user_id, WEEK)
    await weekly_state_store.set_completed(test_user_id, WEEK, "base_photo_swap", True)
    second = await weekly_state_store.ensure_week_doc(test_user_id, WEEK)

    assert first.items == {}
    assert first.user_id == test_user_id
    assert second.created_at == first.created_at
    # Existing items survive a repeat ensure
    assert second.items["base_photo_swap"].completed is True

    raw = await store.get_document(COLLECTION, weekly_state_key(test_user_id, WEEK))
    assert raw["week_id"] == WEEK


@pytest.mark.asyncio
async def test_ensure_week_doc_rejects_bad_input(weekly_state_store):
    """Test blank user ids and malformed week ids"""
    with pytest.raises(ValidationError):
        await weekly_state_store.ensure_week_doc("", WEEK)
    with pytest.raises(ValidationError):
        await weekly_state_store.ensure_week_doc("user-1", "2025-10")


@pytest.mark.asyncio
async def test_mutation_auto_creates_week_doc(weekly_state_store, test_user_id):
    """Test set_completed works without a prior ensure"""
    state = await weekly_state_store.set_completed(test_user_id, WEEK, "base_sunrise_walk", True)

    assert state.user_id == test_user_id
    assert state.week_id == WEEK
    assert state.items["base_sunrise_walk"].completed is True
    assert state.items["base_sunrise_walk"].opened is False


@pytest.mark.asyncio
async def test_weeks_are_isolated(weekly_state_store, test_user_id):
    """Test state for one week does not leak into the next"""
    await weekly_state_store.set_completed(test_user_id, WEEK, "base_sunrise_walk", True)
    next_week = await weekly_state_store.ensure_week_doc(test_user_id, "2025-W11")

    assert next_week.items == {}


# ============================================================================
# Unlock / Complete Tests
# ============================================================================

@pytest.mark.asyncio
async def test_record_unlock_keeps_completed_and_first_timestamp(weekly_state_store, test_user_id, monday):
    """Test record_unlock only touches opened/unlocked_at/tier"""
    await weekly_state_store.set_completed(test_user_id, WEEK, "25_memory_map", True)

    first = await weekly_state_store.record_unlock(
        test_user_id, WEEK, "25_memory_map", ChallengeTier.HARD, now=monday
    )
    again = await weekly_state_store.record_unlock(
        test_user_id, WEEK, "25_memory_map", ChallengeTier.HARD, now=monday + timedelta(hours=5)
    )

    entry = again.items["25_memory_map"]
    assert entry.opened is True
    assert entry.completed is True
    assert entry.tier == ChallengeTier.HARD
    assert entry.unlocked_at == monday
    assert first.items["25_memory_map"].unlocked_at == monday


@pytest.mark.asyncio
async def test_set_completed_touches_only_completed(weekly_state_store, test_user_id, monday):
    """Test completion flag can be toggled without closing the challenge"""
    await weekly_state_store.record_unlock(test_user_id, WEEK, "10_mini_picnic", ChallengeTier.MEDIUM, now=monday)
    await weekly_state_store.set_completed(test_user_id, WEEK, "10_mini_picnic", True)
    state = await weekly_state_store.set_completed(test_user_id, WEEK, "10_mini_picnic", False)

    entry = state.items["10_mini_picnic"]
    assert entry.completed is False
    assert entry.opened is True
    assert entry.unlocked_at == monday


@pytest.mark.asyncio
async def test_unlock_challenge_requires_points(weekly_state_store, test_user_id):
    """Test tier requirement gate"""
    with pytest.raises(PreconditionFailedError) as exc_info:
        await weekly_state_store.unlock_challenge(test_user_id, WEEK, "50_home_spa", weekly_points=49)

    assert exc_info.value.reason == "insufficient_points"
    assert exc_info.value.message == "Need 50 weekly points"

    state = await weekly_state_store.unlock_challenge(test_user_id, WEEK, "50_home_spa", weekly_points=50)
    assert state.items["50_home_spa"].opened is True
    assert state.items["50_home_spa"].tier == ChallengeTier.SUPER


@pytest.mark.asyncio
async def test_unlock_challenge_unknown_id(weekly_state_store, test_user_id):
    """Test unknown challenge ids raise RecordNotFoundError"""
    with pytest.raises(RecordNotFoundError):
        await weekly_state_store.unlock_challenge(test_user_id, WEEK, "no_such_challenge", weekly_points=100)


# ============================================================================
# Weekly Items Merge Tests
# ============================================================================

@pytest.mark.asyncio
async def test_weekly_items_matches_plan_when_empty(weekly_state_store, test_user_id):
    """Test no persisted state means the raw plan"""
    items = await weekly_state_store.weekly_items(test_user_id, True, "all", WEEK)
    plan = plan_week(test_user_id, True, "all", WEEK)

    assert [i.id for i in items] == [i.id for i in plan]
    assert [i.opened for i in items] == [i.opened for i in plan]
    assert all(not i.completed for i in items)


@pytest.mark.asyncio
async def test_weekly_items_merges_unlocks(weekly_state_store, test_user_id):
    """Test an unlocked challenge shows opened with no lock reason"""
    plan = plan_week(test_user_id, False, "all", WEEK)
    locked = next(i for i in plan if not i.opened)
    opened = next(i for i in plan if i.opened)

    await weekly_state_store.unlock_challenge(test_user_id, WEEK, locked.id, weekly_points=30)
    await weekly_state_store.set_completed(test_user_id, WEEK, opened.id, True)

    items = {i.id: i for i in await weekly_state_store.weekly_items(test_user_id, False, "all", WEEK)}

    assert items[locked.id].opened is True
    assert items[locked.id].locked_reason is None
    assert items[opened.id].completed is True
    assert items[opened.id].opened is True


@pytest.mark.asyncio
async def test_weekly_items_ignores_state_outside_plan(weekly_state_store, test_user_id):
    """Test stray persisted entries do not add challenges to the plan"""
    plan_ids = {i.id for i in plan_week(test_user_id, False, "all", WEEK)}
    stray = next(c for c in ["base_sunrise_walk", "base_photo_swap", "base_music_memory"] if c not in plan_ids)

    await weekly_state_store.set_completed(test_user_id, WEEK, stray, True)
    items = await weekly_state_store.weekly_items(test_user_id, False, "all", WEEK)

    assert {i.id for i in items} == plan_ids


@pytest.mark.asyncio
async def test_repo_get_missing_returns_none(store):
    """Test repo get on a missing record"""
    repo = WeeklyStateRepo(store)
    assert await repo.get("nobody", WEEK) is None
