"""Points event models"""
import math
from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime, timezone


class PointsEvent(BaseModel):
    """Append-only point award (or negative adjustment) for a pair"""
    pair_id: str
    value: float
    created_at: datetime
    owner_id: Optional[str] = None
    reason: str = ""
    id: Optional[str] = None

    @field_validator("value")
    @classmethod
    def _finite_value(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("points value must be a finite number")
        return v

    @field_validator("created_at")
    @classmethod
    def _ensure_aware(cls, v: datetime) -> datetime:
        # Stored instants are always UTC-aware
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
