"""
Challenge Catalog

Static pool of couple challenges plus the per-plan quota and unlock tables
the weekly rotation is built from.

Tiers:
- easy: light bonding, opened straight away
- medium: unlocks at 10 weekly points
- hard: unlocks at 25 weekly points
- super: unlocks at 50 weekly points
"""

import logging
from typing import Iterable, Optional, Union

from engagement.models import (
    ChallengeCategory,
    ChallengeDef,
    ChallengeTier,
    Plan,
    PlanQuota,
)

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


# ============================================
# Unlock requirements & plan quotas
# ============================================

UNLOCK_REQUIREMENTS: dict[ChallengeTier, int] = {
    ChallengeTier.EASY: 0,
    ChallengeTier.MEDIUM: 10,
    ChallengeTier.HARD: 25,
    ChallengeTier.SUPER: 50,
}

PLAN_QUOTAS: dict[Plan, PlanQuota] = {
    Plan.FREE: PlanQuota(
        plan=Plan.FREE,
        open={ChallengeTier.EASY: 1},
        unlockable={ChallengeTier.HARD: 1},
    ),
    Plan.PREMIUM: PlanQuota(
        plan=Plan.PREMIUM,
        open={ChallengeTier.EASY: 4},
        unlockable={
            ChallengeTier.MEDIUM: 3,
            ChallengeTier.HARD: 3,
            ChallengeTier.SUPER: 3,
        },
    ),
}


def unlock_requirement(tier: ChallengeTier) -> int:
    return UNLOCK_REQUIREMENTS.get(tier, 0)


def quota_for(is_premium: bool, quotas: Optional[dict[Plan, PlanQuota]] = None) -> PlanQuota:
    quotas = quotas or PLAN_QUOTAS
    return quotas[Plan.PREMIUM if is_premium else Plan.FREE]


# ============================================
# Default challenge pool
# ============================================

def _c(id, title, tier, category, description, points, premium_only=False) -> ChallengeDef:
    return ChallengeDef(
        id=id,
        title=title,
        tier=tier,
        category=category,
        description=description,
        points=points,
        premium_only=premium_only,
    )


E, M, H, S = ChallengeTier.EASY, ChallengeTier.MEDIUM, ChallengeTier.HARD, ChallengeTier.SUPER
DATES, KIND, TALK, SURP, PLAY = (
    ChallengeCategory.DATES,
    ChallengeCategory.KINDNESS,
    ChallengeCategory.TALK,
    ChallengeCategory.SURPRISE,
    ChallengeCategory.PLAY,
)

DEFAULT_CHALLENGES: list[ChallengeDef] = [
    # ========== EASY ==========
    _c("base_sunrise_walk", "Sunrise Walk Together", E, DATES,
       "Wake up early, grab a warm drink, and catch the sunrise while holding hands.", 2),
    _c("base_gratitude_trade", "Gratitude Trade (3x3)", E, TALK,
       "Each partner shares 3 things they are grateful for about the other. No repeats!", 2),
    _c("base_screen_free_dinner", "Screen-Free Dinner", E, DATES,
       "Cook or order in, but put phones away. Light a candle and ask one deep question.", 2),
    _c("base_music_memory", "Our Song", E, PLAY,
       "Build a tiny playlist (5 songs) that remind you of each other. Listen together.", 2),
    _c("base_compliment_note", "Sticky-Note Compliment", E, KIND,
       "Leave a handwritten compliment where your partner will find it today.", 2),
    _c("base_photo_swap", "Photo Swap", E, SURP,
       "Send each other one photo from your day with a one-line story.", 2),
    _c("p_puzzle_letter", "Love Letter Puzzle", E, SURP,
       "Write a short love letter, cut it into 6-8 pieces, and hide them with clues at home.", 4,
       premium_only=True),

    # ========== MEDIUM (10 pts) ==========
    _c("10_secret_kindness", "Secret Act of Kindness", M, KIND,
       "Do something thoughtful for your partner without telling them. Let them find it.", 3),
    _c("10_storytime_childhood", "Storytime: Childhood", M, TALK,
       "Share 3 childhood stories you have never told before: sweet, funny, or awkward!", 3),
    _c("10_mini_picnic", "Mini Picnic", M, DATES,
       "Pack 3 snacks and a blanket. Head to a park for a 30-minute micro-date.", 3),
    _c("10_board_game_night", "Board-Game Night", M, PLAY,
       "Dig out a game you have not played in ages. Loser makes dessert.", 3),

    # ========== HARD (25 pts) ==========
    _c("25_cook_new_recipe", "Cook a New Recipe", H, PLAY,
       "Pick a cuisine you rarely eat, shop together, and cook something new.", 4),
    _c("25_memory_map", "Memory Map", H, SURP,
       "Draw a map of 5 places that mattered in your story. Tell a memory for each.", 4),
    _c("25_love_letter_swap", "Love Letter Swap", H, KIND,
       "Write each other a short letter and read them aloud.", 4),
    _c("25_future_questions", "Five-Year Questions", H, TALK,
       "Take turns answering: where do we want to be in five years, and what is one step this month?", 4),

    # ========== SUPER (50 pts) ==========
    _c("50_treasure_memories", "Treasure Hunt: Our Memories", S, PLAY,
       "Create a 5-stop treasure hunt using shared memories. Each clue references a moment.", 5),
    _c("50_mystery_mini_date", "Mystery Mini-Date", S, DATES,
       "Plan a 1-hour surprise micro-date. Only reveal the meeting point.", 4),
    _c("50_home_spa", "Home Spa Night", S, KIND,
       "Candles, soft music, tea, foot bath, and 10-minute massage each.", 5),
    _c("50_time_capsule", "Time Capsule", S, SURP,
       "Fill a box with notes and keepsakes from this year. Agree on a date to open it.", 5),
]


class ChallengeCatalog:
    """Queryable, read-only challenge pool (preserves authoring order)"""

    def __init__(self, challenges: Optional[Iterable[ChallengeDef]] = None):
        self._challenges: list[ChallengeDef] = list(
            DEFAULT_CHALLENGES if challenges is None else challenges
        )
        self._by_id: dict[str, ChallengeDef] = {c.id: c for c in self._challenges}
        if len(self._by_id) != len(self._challenges):
            raise ValueError("Duplicate challenge id in catalog")

    def __len__(self) -> int:
        return len(self._challenges)

    def all(self) -> list[ChallengeDef]:
        return list(self._challenges)

    def get(self, challenge_id: str) -> Optional[ChallengeDef]:
        return self._by_id.get(challenge_id)

    def filter(
        self,
        category: Union[ChallengeCategory, str, None] = ALL_CATEGORIES,
        include_premium: bool = True,
    ) -> list[ChallengeDef]:
        """Challenges in category ('all' or None passes everything through)"""
        if category is None or category == ALL_CATEGORIES:
            wanted = None
        else:
            wanted = ChallengeCategory(category)
        return [
            c for c in self._challenges
            if (wanted is None or c.category == wanted)
            and (include_premium or not c.premium_only)
        ]

    def by_tier(self, challenges: Optional[Iterable[ChallengeDef]] = None) -> dict[ChallengeTier, list[ChallengeDef]]:
        """Partition challenges (default: whole catalog) by tier, keeping order"""
        partitions: dict[ChallengeTier, list[ChallengeDef]] = {}
        for c in (self._challenges if challenges is None else challenges):
            partitions.setdefault(c.tier, []).append(c)
        return partitions


default_catalog = ChallengeCatalog()
