"""
Booking workflow: the thin layer that turns a held seat into a booking.

Lifecycle:
  PENDING -> CONFIRMED -> COMPLETED
  PENDING | CONFIRMED -> CANCELLED

A booking only occupies a seat once CONFIRMED (or COMPLETED). Confirmation is
the one step here that consumes capacity, so it runs under the same item-row
claim as lock acquisition:

  - booking made under a lock that is still active: the lock is marked
    CONSUMED and the booking takes its place (no capacity check needed, the
    seat was already held)
  - no lock, or the lock lapsed/was released: the booking must pass the
    regular capacity check for one seat, exactly like a fresh acquisition

This keeps every path that produces a counted booking behind the admission
check. A lock for several seats is consumed as a whole by the booking it was
made for; the remaining seats go back to the pool.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.exceptions import (
    BookingConflictError,
    BookingNotFoundError,
    CapacityExceededError,
    InvalidLockError,
    InvalidTransitionError,
    ItemUnavailableError,
    LockNotFoundError,
)
from seatlock.core.logging import get_logger
from seatlock.core.metrics import record_booking_transition
from seatlock.db.transaction import transaction
from seatlock.models.booking import Booking
from seatlock.models.enums import BookingStatus, COUNTED_BOOKING_STATUSES, LockStatus
from seatlock.models.item import ItemRef
from seatlock.models.seat_lock import SeatLock
from seatlock.services.availability import count_reserved
from seatlock.services.lock_service import claim_item

logger = get_logger(__name__)


async def _get_booking(db: AsyncSession, booking_id: str) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).with_for_update()
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFoundError(booking_id)
    return booking


async def _ensure_no_counted_booking(
    db: AsyncSession,
    ref: ItemRef,
    user_id: str,
    exclude_id: Optional[str] = None,
) -> None:
    query = select(Booking.id).where(
        ref.kind.booking_fk == ref.item_id,
        Booking.user_id == user_id,
        Booking.status.in_(COUNTED_BOOKING_STATUSES),
    )
    if exclude_id is not None:
        query = query.where(Booking.id != exclude_id)

    if (await db.execute(query.limit(1))).scalar_one_or_none() is not None:
        raise BookingConflictError("You already have a booking for this item")


async def create_booking(
    db: AsyncSession,
    ref: ItemRef,
    user_id: str,
    lock_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Record a purchase intent as a PENDING booking. Does not occupy a seat.
    A lock, when given, must be for the same item and, if it carries a user,
    for the same user.
    """
    now = now or datetime.now(timezone.utc)
    kind = ref.kind

    async with transaction(db):
        item = await db.execute(
            select(kind.model.id).where(kind.model.id == ref.item_id, kind.bookable_at(now))
        )
        if item.scalar_one_or_none() is None:
            raise ItemUnavailableError(ref.item_type.value, ref.item_id)

        await _ensure_no_counted_booking(db, ref, user_id)

        if lock_id is not None:
            lock = (
                await db.execute(select(SeatLock).where(SeatLock.id == lock_id))
            ).scalar_one_or_none()
            if lock is None:
                raise LockNotFoundError(lock_id)
            if lock.item_type != ref.item_type or lock.item_id != ref.item_id:
                raise InvalidLockError("Lock does not belong to this item")
            if lock.user_id is not None and lock.user_id != user_id:
                raise InvalidLockError("Lock belongs to another user")

        booking = Booking(
            user_id=user_id,
            lock_id=lock_id,
            status=BookingStatus.PENDING,
            **ref.booking_fields(),
        )
        db.add(booking)
        await db.flush()

    record_booking_transition(BookingStatus.PENDING.value)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        item=str(ref),
        lock_id=lock_id,
    )
    return booking


async def confirm_booking(
    db: AsyncSession,
    booking_id: str,
    now: Optional[datetime] = None,
) -> Booking:
    """
    PENDING -> CONFIRMED, typically after payment capture or an admin
    override. Confirming an already confirmed booking is a no-op.

    The activation gate is not applied: a purchase paid under a valid hold is
    honoured even if the item was unpublished in the meantime.
    """
    now = now or datetime.now(timezone.utc)

    async with transaction(db):
        booking = await _get_booking(db, booking_id)
        if booking.status == BookingStatus.CONFIRMED:
            logger.info("booking_confirm_noop", booking_id=booking_id)
            return booking
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransitionError(booking.status.value, BookingStatus.CONFIRMED.value)

        ref = ItemRef.of_booking(booking)
        capacity = await claim_item(db, ref, now, gated=False)
        await _ensure_no_counted_booking(db, ref, booking.user_id, exclude_id=booking.id)

        held = None
        if booking.lock_id is not None:
            held = (
                await db.execute(
                    select(SeatLock).where(
                        SeatLock.id == booking.lock_id,
                        SeatLock.counting_at(now),
                    )
                )
            ).scalar_one_or_none()

        if held is not None:
            held.status = LockStatus.CONSUMED
            held.released_at = now
        else:
            reserved = await count_reserved(db, ref, now)
            if reserved + 1 > capacity:
                logger.warning(
                    "booking_confirm_rejected_capacity",
                    booking_id=booking_id,
                    item=str(ref),
                    lock_id=booking.lock_id,
                )
                raise CapacityExceededError(1, max(0, capacity - reserved))

        booking.status = BookingStatus.CONFIRMED
        await db.flush()

    record_booking_transition(BookingStatus.CONFIRMED.value)
    logger.info(
        "booking_confirmed",
        booking_id=booking.id,
        item=str(ref),
        consumed_lock=held.id if held is not None else None,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: str,
    now: Optional[datetime] = None,
) -> Booking:
    """Cancel a pending or confirmed booking and release its lock if still held."""
    now = now or datetime.now(timezone.utc)

    async with transaction(db):
        booking = await _get_booking(db, booking_id)
        if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise InvalidTransitionError(booking.status.value, BookingStatus.CANCELLED.value)

        booking.status = BookingStatus.CANCELLED
        if booking.lock_id is not None:
            await db.execute(
                update(SeatLock)
                .where(SeatLock.id == booking.lock_id, SeatLock.status == LockStatus.ACTIVE)
                .values(status=LockStatus.RELEASED, released_at=now)
                .execution_options(synchronize_session=False)
            )
        await db.flush()

    record_booking_transition(BookingStatus.CANCELLED.value)
    logger.info("booking_cancelled", booking_id=booking.id, user_id=booking.user_id)
    return booking


async def complete_booking(db: AsyncSession, booking_id: str) -> Booking:
    """CONFIRMED -> COMPLETED once the class or event has taken place."""
    async with transaction(db):
        booking = await _get_booking(db, booking_id)
        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidTransitionError(booking.status.value, BookingStatus.COMPLETED.value)
        booking.status = BookingStatus.COMPLETED
        await db.flush()

    record_booking_transition(BookingStatus.COMPLETED.value)
    logger.info("booking_completed", booking_id=booking.id)
    return booking


async def get_booking(db: AsyncSession, booking_id: str) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFoundError(booking_id)
    return booking


async def list_bookings(
    db: AsyncSession,
    user_id: Optional[str] = None,
    ref: Optional[ItemRef] = None,
) -> list[Booking]:
    query = select(Booking)
    if user_id is not None:
        query = query.where(Booking.user_id == user_id)
    if ref is not None:
        query = query.where(ref.kind.booking_fk == ref.item_id)

    result = await db.execute(query.order_by(Booking.created_at.desc()))
    return list(result.scalars().all())
