"""Global test fixtures and utilities for engagement engine tests"""
import pytest
from datetime import datetime, timezone

from engagement.db.memory_store import InMemoryDocumentStore
from engagement.db.queries import (
    PairWeeklyRepo,
    PointsEventRepo,
    StreakRepo,
    WeeklyStateRepo,
)
from engagement.gamification.points_aggregator import PointsAggregator
from engagement.gamification.streak_system import StreakEngine
from engagement.gamification.weekly_state import WeeklyStateStore
from engagement.services.engagement_service import EngagementService


# ============================================================================
# Clock Fixtures
# ============================================================================

# Monday of ISO week 2025-W10
MONDAY_W10 = datetime(2025, 3, 3, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def monday():
    """Monday noon UTC, ISO week 2025-W10"""
    return MONDAY_W10


# ============================================================================
# Store & Engine Fixtures
# ============================================================================

@pytest.fixture
def store():
    """Fresh in-memory document store"""
    return InMemoryDocumentStore()


@pytest.fixture
def weekly_state_store(store):
    return WeeklyStateStore(WeeklyStateRepo(store))


@pytest.fixture
def aggregator(store):
    return PointsAggregator(PairWeeklyRepo(store), PointsEventRepo(store), strict_claims=False)


@pytest.fixture
def streak_engine(store):
    return StreakEngine(StreakRepo(store))


@pytest.fixture
def service(store):
    return EngagementService(store, strict_claims=False)


# ============================================================================
# User & Pair Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def test_pair_id():
    """Standard test pair ID"""
    return "pair-abc"
