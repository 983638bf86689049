"""
Public event endpoints with computed availability and Redis-cached listings.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.logging import get_logger
from seatlock.db.session import get_db
from seatlock.models.enums import ItemType
from seatlock.models.item import ItemRef
from seatlock.schemas.item import EventListResponse, EventResponse
from seatlock.services.cache_service import get_cached_listing, set_cached_listing
from seatlock.services.item_service import get_bookable, list_bookable

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    db: AsyncSession = Depends(get_db),
):
    """Published events, soonest first, with currentAttendees."""
    cached = await get_cached_listing("events", page, page_size)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    rows, total = await list_bookable(db, ItemType.EVENT, page, page_size)
    response = EventListResponse(
        events=[EventResponse.build(event, reserved) for event, reserved in rows],
        total=total,
        page=page,
        page_size=page_size,
    )

    await set_cached_listing("events", page, page_size, response.model_dump(mode="json", by_alias=True))
    return response


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Not cached (needs real-time seat counts)."""
    event, reserved = await get_bookable(db, ItemRef(ItemType.EVENT, event_id))
    return EventResponse.build(event, reserved)
