"""Per-user weekly challenge state queries"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from engagement.db.documents import DocumentStore
from engagement.models import WeeklyState, WeeklyStateEntry

logger = logging.getLogger(__name__)

COLLECTION = "weeklyState"


def weekly_state_key(user_id: str, week_id: str) -> str:
    return f"{user_id}_{week_id}"


class WeeklyStateRepo:
    """Reads and writes WeeklyState documents keyed by (user_id, week_id)"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, user_id: str, week_id: str) -> Optional[WeeklyState]:
        doc = await self.store.get_document(COLLECTION, weekly_state_key(user_id, week_id))
        return WeeklyState.model_validate(doc) if doc else None

    async def ensure(self, user_id: str, week_id: str) -> WeeklyState:
        """Create the week record if absent; never touches an existing one"""

        def create_if_absent(current: Optional[dict]) -> Optional[dict]:
            if current is not None:
                return None
            logger.info(f"Created weekly state for user {user_id}, week {week_id}")
            return WeeklyState(
                user_id=user_id,
                week_id=week_id,
                created_at=datetime.now(timezone.utc),
            ).model_dump(mode="json")

        doc = await self.store.update_document(COLLECTION, weekly_state_key(user_id, week_id), create_if_absent)
        return WeeklyState.model_validate(doc)

    async def update_item(
        self,
        user_id: str,
        week_id: str,
        challenge_id: str,
        change: Callable[[WeeklyStateEntry], WeeklyStateEntry],
    ) -> WeeklyState:
        """
        Apply change to one challenge entry, creating the week record and
        the entry on first use
        """

        def mutate(current: Optional[dict]) -> dict:
            state = (
                WeeklyState.model_validate(current)
                if current is not None
                else WeeklyState(user_id=user_id, week_id=week_id, created_at=datetime.now(timezone.utc))
            )
            entry = state.items.get(challenge_id, WeeklyStateEntry())
            state.items[challenge_id] = change(entry)
            return state.model_dump(mode="json")

        doc = await self.store.update_document(COLLECTION, weekly_state_key(user_id, week_id), mutate)
        return WeeklyState.model_validate(doc)
