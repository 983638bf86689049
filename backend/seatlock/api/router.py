"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from seatlock.api.routes import availability, classes, events, bookings, admin

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(availability.router)
api_router.include_router(classes.router)
api_router.include_router(events.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
