"""
Typed errors for the reservation core and their HTTP rendering.

Every failure path in the services raises one of these; the handlers below
turn them into the `{"success": false, "error": ...}` envelope so nothing
in the core has to know about HTTP.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from seatlock.core.logging import get_logger

logger = get_logger(__name__)


class SeatLockError(Exception):
    """Base class for client-facing domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "SEAT_LOCK_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ItemUnavailableError(SeatLockError):
    """Item missing, inactive, unpublished or past its end date."""

    code = "ITEM_UNAVAILABLE"

    def __init__(self, item_type: str, item_id: str, message: str | None = None):
        self.item_type = item_type
        self.item_id = item_id
        label = "Class" if item_type == "CLASS" else "Event"
        state = "inactive" if item_type == "CLASS" else "not published"
        super().__init__(message or f"{label} not found or {state}")


class ItemNotFoundError(SeatLockError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_type: str, item_id: str):
        self.item_type = item_type
        self.item_id = item_id
        label = "Class" if item_type == "CLASS" else "Event"
        super().__init__(f"{label} not found")


class InvalidItemError(SeatLockError):
    code = "INVALID_ITEM"


class CapacityExceededError(SeatLockError):
    code = "CAPACITY_EXCEEDED"

    def __init__(self, requested: int, spots_left: int):
        self.requested = requested
        self.spots_left = spots_left
        super().__init__(
            f"No seats available. Requested: {requested}, Available: {spots_left}"
        )


class LockNotFoundError(SeatLockError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "LOCK_NOT_FOUND"

    def __init__(self, lock_id: str):
        self.lock_id = lock_id
        super().__init__("Lock not found")


class BookingNotFoundError(SeatLockError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__("Booking not found")


class BookingConflictError(SeatLockError):
    status_code = status.HTTP_409_CONFLICT
    code = "BOOKING_CONFLICT"


class InvalidLockRequestError(SeatLockError):
    """Quantity or hold duration outside the accepted range."""

    code = "INVALID_LOCK_REQUEST"


class InvalidLockError(SeatLockError):
    """The lock handed to the booking workflow does not match the booking."""

    code = "INVALID_LOCK"


class InvalidTransitionError(SeatLockError):
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move booking from {current} to {target}")


class TransientStoreError(SeatLockError):
    """The transaction was aborted by the store; safe to retry with backoff."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "TRANSIENT_STORE_ERROR"

    def __init__(self, message: str = "Temporary database conflict, please retry"):
        super().__init__(message)


async def seat_lock_error_handler(request: Request, exc: SeatLockError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", code=exc.code, error=exc.message)
    else:
        logger.warning("domain_error", code=exc.code, error=exc.message)

    headers = {"Retry-After": "1"} if isinstance(exc, TransientStoreError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "code": exc.code},
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Raw inputs are left out: they may not be JSON-encodable (NaN, bytes).
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    first = errors[0] if errors else {"loc": [], "msg": "Invalid request"}
    field = ".".join(str(part) for part in first["loc"] if part != "body")
    message = f"{field}: {first['msg']}" if field else first["msg"]

    logger.info("request_validation_failed", path=request.url.path, errors=len(errors))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "error": message, "code": "VALIDATION_ERROR", "detail": errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SeatLockError, seat_lock_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
