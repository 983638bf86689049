"""
Seat lock service: admission control for classes and events.

CONCURRENCY STRATEGY: Item-row claim inside one transaction
============================================================

Problem:
  Two checkouts ask for the last seat at the same moment.
  Both count reserved seats, both see one left, both insert a lock.
  Result: Oversell.

Solution:
  Acquisition runs check-then-insert as a single transaction that starts by
  claiming the item row:

  1. UPDATE classes|events SET version = version + 1
     WHERE id = :item_id AND <activation gate>
     Zero rows -> the item is missing or not bookable (ItemUnavailable).
     Otherwise the row is now write-locked until we commit.
  2. reserved = counted bookings + held seats (status AND expiry filter)
     reserved + quantity > capacity -> CapacityExceeded
  3. INSERT the ACTIVE seat lock with expires_at = now + ttl

  A concurrent acquisition for the same item blocks on step 1 until we
  commit or roll back, then counts again and sees our lock. Acquisitions for
  different items never contend. Under READ COMMITTED each statement takes a
  fresh snapshot, so the count in step 2 always includes the lock committed
  by whoever held the row before us.

  The `version` column is bumped as a pessimistic claim rather than compared
  optimistically: we want exactly one winner per remaining seat, not a retry
  loop. No retries are attempted here; a store abort surfaces as
  TransientStoreError and the caller may retry with backoff.

Expiry is lazy. Locks are never swept to EXPIRED for correctness; every
count goes through SeatLock.active_for.
"""

import math
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.config import get_settings
from seatlock.core.exceptions import (
    CapacityExceededError,
    InvalidLockRequestError,
    ItemUnavailableError,
    LockNotFoundError,
    TransientStoreError,
)
from seatlock.core.logging import get_logger
from seatlock.core.metrics import lock_acquisition_latency, locks_purged, record_lock_acquisition, record_lock_release
from seatlock.db.transaction import transaction
from seatlock.models.enums import ItemType, LockStatus
from seatlock.models.item import ItemRef
from seatlock.models.seat_lock import SeatLock
from seatlock.services.availability import count_reserved

logger = get_logger(__name__)


def resolve_ttl(ttl_minutes: Optional[float]) -> timedelta:
    settings = get_settings()
    if ttl_minutes is None:
        ttl_minutes = settings.SEAT_LOCK_DEFAULT_TTL_MINUTES
    if not math.isfinite(ttl_minutes) or ttl_minutes <= 0:
        raise InvalidLockRequestError("ttlMinutes must be a finite number greater than 0")
    return timedelta(minutes=min(ttl_minutes, settings.SEAT_LOCK_MAX_TTL_MINUTES))


async def claim_item(db: AsyncSession, ref: ItemRef, now: datetime, *, gated: bool = True) -> int:
    """
    Write-lock the item row for the rest of the current transaction and
    return its capacity. Raises ItemUnavailableError if the row is missing
    or, when `gated`, fails its activation gate.
    """
    kind = ref.kind
    conditions = [kind.model.id == ref.item_id]
    if gated:
        conditions.append(kind.bookable_at(now))

    claimed = await db.execute(
        update(kind.model)
        .where(*conditions)
        .values(version=kind.model.version + 1)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount == 0:
        raise ItemUnavailableError(ref.item_type.value, ref.item_id)

    result = await db.execute(select(kind.capacity).where(kind.model.id == ref.item_id))
    return result.scalar_one()


async def acquire_lock(
    db: AsyncSession,
    ref: ItemRef,
    user_id: Optional[str] = None,
    quantity: int = 1,
    ttl_minutes: Optional[float] = None,
    now: Optional[datetime] = None,
) -> SeatLock:
    """
    Hold `quantity` seats on an item until now + ttl.

    The session must not have an open transaction; this function owns it.
    On any failure nothing is inserted.
    """
    settings = get_settings()
    if quantity < 1 or quantity > settings.SEAT_LOCK_MAX_QUANTITY:
        raise InvalidLockRequestError(
            f"quantity must be between 1 and {settings.SEAT_LOCK_MAX_QUANTITY}"
        )
    ttl = resolve_ttl(ttl_minutes)
    now = now or datetime.now(timezone.utc)
    item_type = ref.item_type.value

    start_time = time.perf_counter()
    try:
        async with transaction(db):
            capacity = await claim_item(db, ref, now)

            reserved = await count_reserved(db, ref, now)
            if reserved + quantity > capacity:
                raise CapacityExceededError(quantity, max(0, capacity - reserved))

            lock = SeatLock(
                item_type=ref.item_type,
                item_id=ref.item_id,
                user_id=user_id,
                quantity=quantity,
                status=LockStatus.ACTIVE,
                expires_at=now + ttl,
            )
            db.add(lock)
            await db.flush()
    except ItemUnavailableError:
        record_lock_acquisition(item_type, "unavailable")
        logger.warning("lock_rejected_unavailable", item=str(ref), user_id=user_id)
        raise
    except CapacityExceededError as exc:
        record_lock_acquisition(item_type, "capacity_exceeded")
        logger.warning(
            "lock_rejected_capacity",
            item=str(ref),
            requested=quantity,
            spots_left=exc.spots_left,
        )
        raise
    except TransientStoreError:
        record_lock_acquisition(item_type, "transient")
        raise
    finally:
        lock_acquisition_latency.observe(time.perf_counter() - start_time)

    record_lock_acquisition(item_type, "acquired")
    logger.info(
        "lock_acquired",
        lock_id=lock.id,
        item=str(ref),
        user_id=user_id,
        quantity=quantity,
        expires_at=lock.expires_at.isoformat(),
    )
    return lock


async def release_lock(
    db: AsyncSession,
    lock_id: str,
    now: Optional[datetime] = None,
) -> bool:
    """
    Release a held lock. Idempotent: a lock that is already released,
    consumed or expired is left untouched and the call still succeeds.

    Returns True if this call moved the lock to RELEASED.
    Raises LockNotFoundError for an unknown id.
    """
    now = now or datetime.now(timezone.utc)

    async with transaction(db):
        exists = await db.execute(select(SeatLock.id).where(SeatLock.id == lock_id))
        if exists.scalar_one_or_none() is None:
            raise LockNotFoundError(lock_id)

        result = await db.execute(
            update(SeatLock)
            .where(SeatLock.id == lock_id, SeatLock.counting_at(now))
            .values(status=LockStatus.RELEASED, released_at=now)
            .execution_options(synchronize_session=False)
        )
        released = result.rowcount == 1

    record_lock_release(released)
    if released:
        logger.info("lock_released", lock_id=lock_id)
    else:
        logger.info("lock_release_noop", lock_id=lock_id, reason="not_active")
    return released


async def get_lock(db: AsyncSession, lock_id: str) -> SeatLock:
    result = await db.execute(select(SeatLock).where(SeatLock.id == lock_id))
    lock = result.scalar_one_or_none()
    if not lock:
        raise LockNotFoundError(lock_id)
    return lock


async def list_locks(
    db: AsyncSession,
    item_type: Optional[ItemType] = None,
    item_id: Optional[str] = None,
    user_id: Optional[str] = None,
    active_only: bool = False,
    now: Optional[datetime] = None,
    limit: int = 100,
) -> list[SeatLock]:
    """Newest first. `active_only` applies the same status-and-expiry predicate as counting."""
    query = select(SeatLock)

    if item_type is not None:
        query = query.where(SeatLock.item_type == item_type)
    if item_id is not None:
        query = query.where(SeatLock.item_id == item_id)
    if user_id is not None:
        query = query.where(SeatLock.user_id == user_id)
    if active_only:
        query = query.where(SeatLock.counting_at(now or datetime.now(timezone.utc)))

    result = await db.execute(query.order_by(SeatLock.created_at.desc()).limit(limit))
    return list(result.scalars().all())


async def purge_stale_locks(
    db: AsyncSession,
    retention_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Garbage-collect lock rows whose hold ended more than `retention_hours`
    ago. Such rows can no longer count whatever their status says, so this
    never changes availability; it only keeps the table small.
    """
    if retention_hours is None:
        retention_hours = get_settings().SEAT_LOCK_RETENTION_HOURS
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=retention_hours)

    async with transaction(db):
        result = await db.execute(
            delete(SeatLock)
            .where(SeatLock.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount

    locks_purged.inc(deleted)
    logger.info("stale_locks_purged", deleted=deleted, cutoff=cutoff.isoformat())
    return deleted
