"""
Booking workflow endpoints: create, confirm, cancel, complete.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.db.session import get_db
from seatlock.models.enums import ItemType
from seatlock.models.item import ItemRef
from seatlock.schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from seatlock.services.booking_service import (
    cancel_booking,
    complete_booking,
    confirm_booking,
    create_booking,
    get_booking,
    list_bookings,
)
from seatlock.services.cache_service import invalidate_listing_cache

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Record a purchase as PENDING. Pass the lockId obtained from
    POST /availability/locks so confirmation can consume the held seat.
    """
    booking = await create_booking(
        db,
        ItemRef(booking_data.item_type, booking_data.item_id),
        booking_data.user_id,
        lock_id=booking_data.lock_id,
    )
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking_endpoint(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Confirm after payment capture. Consumes the booking's lock if it is still
    held, otherwise re-checks capacity (400 when the item filled up meanwhile).
    """
    booking = await confirm_booking(db, booking_id)
    await invalidate_listing_cache()
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking_endpoint(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
):
    booking = await cancel_booking(db, booking_id)
    await invalidate_listing_cache()
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking_endpoint(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
):
    booking = await complete_booking(db, booking_id)
    return BookingResponse.from_booking(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking(db, booking_id)
    return BookingResponse.from_booking(booking)


@router.get("/", response_model=BookingListResponse)
async def list_bookings_endpoint(
    user_id: Optional[str] = Query(None, alias="userId"),
    item_type: Optional[ItemType] = Query(None, alias="itemType"),
    item_id: Optional[str] = Query(None, alias="itemId"),
    db: AsyncSession = Depends(get_db),
):
    ref = ItemRef(item_type, item_id) if item_type and item_id else None
    bookings = await list_bookings(db, user_id=user_id, ref=ref)
    return BookingListResponse(bookings=[BookingResponse.from_booking(b) for b in bookings])
