"""
Admin endpoints: item creation, activation gates, capacity, lock cleanup.

Access control is handled in front of this service (gateway / admin
session), not here.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.db.session import get_db
from seatlock.models.enums import ItemType
from seatlock.models.item import ItemRef
from seatlock.schemas.item import (
    CapacityUpdate,
    ClassAdminResponse,
    ClassCreate,
    ClassStatusUpdate,
    EventAdminResponse,
    EventCreate,
    EventStatusUpdate,
)
from seatlock.schemas.lock import LockPurgeResponse
from seatlock.services.cache_service import invalidate_listing_cache
from seatlock.services.item_service import (
    create_class,
    create_event,
    set_class_active,
    set_event_status,
    update_capacity,
)
from seatlock.services.lock_service import purge_stale_locks

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/classes", response_model=ClassAdminResponse, status_code=status.HTTP_201_CREATED)
async def create_class_endpoint(class_data: ClassCreate, db: AsyncSession = Depends(get_db)):
    dance_class = await create_class(db, class_data)
    await invalidate_listing_cache()
    return dance_class


@router.post("/events", response_model=EventAdminResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(event_data: EventCreate, db: AsyncSession = Depends(get_db)):
    event = await create_event(db, event_data)
    await invalidate_listing_cache()
    return event


@router.put("/classes/{class_id}/status", response_model=ClassAdminResponse)
async def update_class_status_endpoint(
    class_id: str,
    update: ClassStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate a class. Inactive classes take no new locks."""
    dance_class = await set_class_active(db, class_id, update.is_active)
    await invalidate_listing_cache()
    return dance_class


@router.put("/events/{event_id}/status", response_model=EventAdminResponse)
async def update_event_status_endpoint(
    event_id: str,
    update: EventStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """DRAFT, PUBLISHED or CANCELLED. Only PUBLISHED events take locks."""
    event = await set_event_status(db, event_id, update.status)
    await invalidate_listing_cache()
    return event


@router.put("/classes/{class_id}/capacity", response_model=ClassAdminResponse)
async def update_class_capacity_endpoint(
    class_id: str,
    update: CapacityUpdate,
    db: AsyncSession = Depends(get_db),
):
    dance_class = await update_capacity(db, ItemRef(ItemType.CLASS, class_id), update.capacity)
    await invalidate_listing_cache()
    return dance_class


@router.put("/events/{event_id}/capacity", response_model=EventAdminResponse)
async def update_event_capacity_endpoint(
    event_id: str,
    update: CapacityUpdate,
    db: AsyncSession = Depends(get_db),
):
    event = await update_capacity(db, ItemRef(ItemType.EVENT, event_id), update.capacity)
    await invalidate_listing_cache()
    return event


@router.post("/locks/purge", response_model=LockPurgeResponse)
async def purge_locks_endpoint(
    retention_hours: Optional[int] = Query(None, ge=0, alias="retentionHours"),
    db: AsyncSession = Depends(get_db),
):
    """Delete lock rows whose hold ended before the retention window."""
    deleted = await purge_stale_locks(db, retention_hours=retention_hours)
    return LockPurgeResponse(deleted=deleted)
