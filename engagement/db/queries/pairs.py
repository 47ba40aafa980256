"""Pair weekly summary and weekly history queries"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from engagement.db.documents import DocumentStore
from engagement.models import Pair, PairWeekly, WeeklyHistoryEntry

logger = logging.getLogger(__name__)

PAIRS_COLLECTION = "pairs"
HISTORY_COLLECTION = "weeklyHistory"


def history_key(pair_id: str, week_key: str) -> str:
    return f"{pair_id}_{week_key}"


class PairWeeklyRepo:
    """Live weekly summary (on the pair record) plus one history entry per week"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_pair(self, pair_id: str) -> Optional[Pair]:
        doc = await self.store.get_document(PAIRS_COLLECTION, pair_id)
        return Pair.model_validate(doc) if doc else None

    async def create_pair(self, pair_id: str, members: list[str]) -> Pair:
        """Create the pair record if absent (idempotent)"""

        def create_if_absent(current: Optional[dict]) -> Optional[dict]:
            if current is not None:
                return None
            return Pair(
                pair_id=pair_id,
                members=members,
                created_at=datetime.now(timezone.utc),
            ).model_dump(mode="json")

        doc = await self.store.update_document(PAIRS_COLLECTION, pair_id, create_if_absent)
        return Pair.model_validate(doc)

    async def update_weekly(
        self,
        pair_id: str,
        change: Callable[[Optional[PairWeekly]], PairWeekly],
    ) -> Optional[PairWeekly]:
        """
        Replace the pair's live weekly summary with change(current)

        Returns None without writing if the pair record does not exist.
        """

        def mutate(current: Optional[dict]) -> Optional[dict]:
            if current is None:
                return None
            before = current.get("weekly")
            weekly = change(PairWeekly.model_validate(before) if before else None)
            # Full dump (None included) so cleared fields overwrite on merge
            return {"weekly": weekly.model_dump(mode="json")}

        doc = await self.store.update_document(PAIRS_COLLECTION, pair_id, mutate)
        if not doc or not doc.get("weekly"):
            return None
        return PairWeekly.model_validate(doc["weekly"])

    async def get_history(self, pair_id: str, week_key: str) -> Optional[WeeklyHistoryEntry]:
        doc = await self.store.get_document(HISTORY_COLLECTION, history_key(pair_id, week_key))
        return WeeklyHistoryEntry.model_validate(doc) if doc else None

    async def update_history(
        self,
        pair_id: str,
        week_key: str,
        change: Callable[[Optional[WeeklyHistoryEntry]], Optional[WeeklyHistoryEntry]],
    ) -> Optional[WeeklyHistoryEntry]:
        """Upsert the (pair, week) history entry with change(current)"""

        def mutate(current: Optional[dict]) -> Optional[dict]:
            before = WeeklyHistoryEntry.model_validate(current) if current is not None else None
            after = change(before)
            return after.model_dump(mode="json") if after is not None else None

        doc = await self.store.update_document(HISTORY_COLLECTION, history_key(pair_id, week_key), mutate)
        return WeeklyHistoryEntry.model_validate(doc) if doc else None
