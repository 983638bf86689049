"""
Public class endpoints with computed availability and Redis-cached listings.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from seatlock.core.logging import get_logger
from seatlock.db.session import get_db
from seatlock.models.enums import ItemType
from seatlock.models.item import ItemRef
from seatlock.schemas.item import ClassListResponse, ClassResponse
from seatlock.services.cache_service import get_cached_listing, set_cached_listing
from seatlock.services.item_service import get_bookable, list_bookable

logger = get_logger(__name__)
router = APIRouter(prefix="/classes", tags=["Classes"])


@router.get("/", response_model=ClassListResponse)
async def list_classes_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    db: AsyncSession = Depends(get_db),
):
    """
    Active classes with currentStudents = confirmed bookings + held seats.
    Cached briefly in Redis; see cache_service for the staleness bound.
    """
    cached = await get_cached_listing("classes", page, page_size)
    if cached:
        logger.info("classes_list_cache_hit", page=page)
        cached["cached"] = True
        return ClassListResponse(**cached)

    rows, total = await list_bookable(db, ItemType.CLASS, page, page_size)
    response = ClassListResponse(
        classes=[ClassResponse.build(dance_class, reserved) for dance_class, reserved in rows],
        total=total,
        page=page,
        page_size=page_size,
    )

    await set_cached_listing("classes", page, page_size, response.model_dump(mode="json", by_alias=True))
    return response


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class_endpoint(
    class_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Single class with live seat counts. 404 unless the class is bookable."""
    dance_class, reserved = await get_bookable(db, ItemRef(ItemType.CLASS, class_id))
    return ClassResponse.build(dance_class, reserved)
