"""
Seat lock and availability endpoints.

POST   /availability/locks          acquire a time-boxed hold
DELETE /availability/locks/{id}     release it (idempotent)
GET    /availability/locks[/{id}]   inspect holds
GET    /availability/{type}/{id}    capacity / reserved / spotsLeft
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.exceptions import ItemNotFoundError
from seatlock.db.session import get_db
from seatlock.models.enums import ItemType
from seatlock.models.item import ItemRef
from seatlock.schemas.common import SuccessResponse
from seatlock.schemas.item import AvailabilityResponse
from seatlock.schemas.lock import LockAcquireRequest, LockAcquireResponse, LockListResponse, LockResponse
from seatlock.services.availability import get_availability
from seatlock.services.cache_service import invalidate_listing_cache
from seatlock.services.lock_service import acquire_lock, get_lock, list_locks, release_lock

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.post("/locks", response_model=LockAcquireResponse, status_code=status.HTTP_201_CREATED)
async def acquire_lock_endpoint(
    lock_request: LockAcquireRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Hold seats on a class or event while checkout is in progress.

    Fails with 400 when the item is not bookable or has too few spots left,
    and with 503 when the database aborted the transaction (safe to retry).
    """
    lock = await acquire_lock(
        db,
        ItemRef(lock_request.item_type, lock_request.item_id),
        user_id=lock_request.user_id,
        quantity=lock_request.quantity,
        ttl_minutes=lock_request.ttl_minutes,
    )
    await invalidate_listing_cache()
    return LockAcquireResponse(lock=LockResponse.from_lock(lock))


@router.delete("/locks/{lock_id}", response_model=SuccessResponse)
async def release_lock_endpoint(
    lock_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Release a hold early. Releasing twice, or after expiry, still succeeds."""
    released = await release_lock(db, lock_id)
    if released:
        await invalidate_listing_cache()
    return SuccessResponse()


@router.get("/locks/{lock_id}", response_model=LockResponse)
async def get_lock_endpoint(
    lock_id: str,
    db: AsyncSession = Depends(get_db),
):
    lock = await get_lock(db, lock_id)
    return LockResponse.from_lock(lock)


@router.get("/locks", response_model=LockListResponse)
async def list_locks_endpoint(
    item_type: Optional[ItemType] = Query(None, alias="itemType"),
    item_id: Optional[str] = Query(None, alias="itemId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    active_only: bool = Query(False, alias="activeOnly"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    locks = await list_locks(
        db,
        item_type=item_type,
        item_id=item_id,
        user_id=user_id,
        active_only=active_only,
        limit=limit,
    )
    return LockListResponse(locks=[LockResponse.from_lock(lock) for lock in locks], total=len(locks))


@router.get("/{item_type}/{item_id}", response_model=AvailabilityResponse)
async def get_availability_endpoint(
    item_type: ItemType,
    item_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Live figures, never cached. 404 when the item is not offered."""
    ref = ItemRef(item_type, item_id)
    availability = await get_availability(db, ref)
    if availability is None:
        raise ItemNotFoundError(item_type.value, item_id)

    return AvailabilityResponse(
        item_type=item_type,
        item_id=item_id,
        capacity=availability.capacity,
        reserved=availability.reserved,
        spots_left=availability.spots_left,
    )
