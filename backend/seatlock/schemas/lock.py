"""
Pydantic schemas for seat lock requests and responses.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from seatlock.models.enums import ItemType, LockStatus
from seatlock.models.seat_lock import SeatLock
from seatlock.schemas.common import CamelModel, UTCDateTime


class LockAcquireRequest(CamelModel):
    item_type: ItemType
    item_id: str = Field(..., min_length=1, max_length=36)
    user_id: Optional[str] = Field(None, min_length=1, max_length=64)
    quantity: int = Field(default=1, ge=1)
    ttl_minutes: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class LockResponse(CamelModel):
    id: str
    item_type: ItemType
    item_id: str
    user_id: Optional[str]
    quantity: int
    status: LockStatus
    # ACTIVE rows past their expiry read as EXPIRED here; the row itself is never rewritten
    effective_status: LockStatus
    expires_at: UTCDateTime
    released_at: Optional[UTCDateTime]
    created_at: UTCDateTime

    @classmethod
    def from_lock(cls, lock: SeatLock, now: Optional[datetime] = None) -> "LockResponse":
        return cls(
            id=lock.id,
            item_type=lock.item_type,
            item_id=lock.item_id,
            user_id=lock.user_id,
            quantity=lock.quantity,
            status=lock.status,
            effective_status=lock.effective_status(now or datetime.now(timezone.utc)),
            expires_at=lock.expires_at,
            released_at=lock.released_at,
            created_at=lock.created_at,
        )


class LockAcquireResponse(CamelModel):
    success: bool = True
    lock: LockResponse


class LockListResponse(CamelModel):
    locks: list[LockResponse]
    total: int


class LockPurgeResponse(CamelModel):
    success: bool = True
    deleted: int
