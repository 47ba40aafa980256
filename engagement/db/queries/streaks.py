"""Streak document queries"""
import logging
from typing import Callable, Optional

from engagement.db.documents import DocumentStore
from engagement.models import StreakDoc

logger = logging.getLogger(__name__)

COLLECTION = "streaks"


class StreakRepo:
    """Reads and writes StreakDoc documents keyed by user_id"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, user_id: str) -> Optional[StreakDoc]:
        doc = await self.store.get_document(COLLECTION, user_id)
        return StreakDoc.model_validate(doc) if doc else None

    async def update(
        self,
        user_id: str,
        transition: Callable[[Optional[StreakDoc]], Optional[StreakDoc]],
    ) -> Optional[StreakDoc]:
        """
        Atomically replace the streak document with transition(current)

        A transition returning None leaves the stored document unchanged.
        """

        def mutate(current: Optional[dict]) -> Optional[dict]:
            before = StreakDoc.model_validate(current) if current is not None else None
            after = transition(before)
            if after is None:
                return None
            return after.model_dump(mode="json")

        doc = await self.store.update_document(COLLECTION, user_id, mutate)
        return StreakDoc.model_validate(doc) if doc else None
