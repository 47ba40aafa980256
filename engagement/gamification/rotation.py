"""
Weekly Challenge Rotation

Builds the set of challenges one user sees in one ISO week. The plan is a
pure function of (catalog order, plan quota, user id, week id): the whole
week is one draw sequence from a single seeded stream, so the same user sees
the same picks all week long.
"""

import logging
from typing import Optional, Union

from engagement.gamification.catalog import (
    ALL_CATEGORIES,
    ChallengeCatalog,
    UNLOCK_REQUIREMENTS,
    default_catalog,
    quota_for,
)
from engagement.gamification.selector import pick_without_replacement, rng_for
from engagement.models import (
    ChallengeCategory,
    ChallengeTier,
    Plan,
    PlanQuota,
    TIER_ORDER,
    WeeklyItem,
)

logger = logging.getLogger(__name__)


def locked_reason_for(tier: ChallengeTier, requirements: Optional[dict[ChallengeTier, int]] = None) -> Optional[str]:
    required = (requirements or UNLOCK_REQUIREMENTS).get(tier, 0)
    return f"Need {required} weekly points" if required > 0 else None


def plan_week(
    user_id: str,
    is_premium: bool,
    category_filter: Union[ChallengeCategory, str, None],
    week_id: str,
    catalog: Optional[ChallengeCatalog] = None,
    quotas: Optional[dict[Plan, PlanQuota]] = None,
    unlock_requirements: Optional[dict[ChallengeTier, int]] = None,
) -> list[WeeklyItem]:
    """
    This week's visible challenges for a user

    Steps:
    1. Filter the catalog by category ('all' passes through); premium-only
       challenges are dropped for free plans
    2. Partition by tier
    3. Per tier, present open + unlockable slots
    4. Draw every tier from one Mulberry32 stream seeded by (user_id, week_id),
       tiers in easy -> super order
    5. The first open[tier] draws are opened, the rest locked

    Args:
        user_id: User's ID (seed input)
        is_premium: Selects the premium or free quota
        category_filter: Category value or 'all'
        week_id: ISO week label, e.g. '2025-W10' (seed input)

    Returns:
        WeeklyItem list in draw order, tier by tier. Opened/completed flags
        persisted for the week are merged in by the caller.
    """
    catalog = catalog or default_catalog
    quota = quota_for(is_premium, quotas)

    pool = catalog.filter(category_filter or ALL_CATEGORIES, include_premium=is_premium)
    by_tier = catalog.by_tier(pool)
    rng = rng_for(user_id, week_id)

    items: list[WeeklyItem] = []
    for tier in TIER_ORDER:
        present = quota.present_count(tier)
        if present <= 0:
            continue

        drawn = pick_without_replacement(by_tier.get(tier, []), present, rng)
        open_budget = max(0, quota.open.get(tier, 0))
        for challenge in drawn:
            if open_budget > 0:
                open_budget -= 1
                items.append(WeeklyItem(challenge=challenge, opened=True))
            else:
                items.append(WeeklyItem(
                    challenge=challenge,
                    opened=False,
                    locked_reason=locked_reason_for(tier, unlock_requirements),
                ))

    logger.debug(
        f"Planned week {week_id} for user {user_id} "
        f"(premium={is_premium}, category={category_filter}): {len(items)} items"
    )
    return items
