"""Points event queries"""
import logging
from datetime import datetime

from pydantic import ValidationError as ModelValidationError

from engagement.db.documents import DocumentStore, FieldFilter
from engagement.models import PointsEvent

logger = logging.getLogger(__name__)

COLLECTION = "points"


class PointsEventRepo:
    """Append-only points events; range scans by pair and creation time"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def add(self, event: PointsEvent) -> PointsEvent:
        payload = event.model_dump(mode="json", exclude={"id"})
        key = await self.store.add_document(COLLECTION, payload)
        logger.debug(f"Recorded {event.value} points for pair {event.pair_id} ({key})")
        return event.model_copy(update={"id": key})

    async def list_for_range(self, pair_id: str, start: datetime, end: datetime) -> list[PointsEvent]:
        """
        Events for pair_id with start <= created_at < end, oldest first

        Stored events that no longer validate (e.g. a non-finite value written
        before values were checked) are skipped with a warning.
        """
        docs = await self.store.query_by_field_range(
            COLLECTION,
            [
                FieldFilter("pair_id", "==", pair_id),
                FieldFilter("created_at", ">=", start),
                FieldFilter("created_at", "<", end),
            ],
            order_by="created_at",
        )
        events: list[PointsEvent] = []
        for doc in docs:
            try:
                events.append(PointsEvent.model_validate(doc))
            except ModelValidationError as e:
                logger.warning(f"Skipping unreadable points event for pair {pair_id}: {e}")
        return events
