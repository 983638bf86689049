"""
HTTP tests: request/response shapes and status codes for the public,
booking and admin endpoints.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from seatlock.core.exceptions import TransientStoreError
from seatlock.models import EventStatus, SeatLock

LOCKS_URL = "/api/v1/availability/locks"


async def _acquire(client: AsyncClient, item_type: str, item_id: str, **extra):
    return await client.post(
        LOCKS_URL,
        json={"itemType": item_type, "itemId": item_id, **extra},
    )


@pytest.mark.asyncio
async def test_acquire_lock(client: AsyncClient, test_class):
    """Successful acquisition returns the lock in a success envelope."""
    response = await _acquire(client, "CLASS", test_class.id, userId="user-a", quantity=2)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    lock = data["lock"]
    assert lock["itemType"] == "CLASS"
    assert lock["itemId"] == test_class.id
    assert lock["userId"] == "user-a"
    assert lock["quantity"] == 2
    assert lock["status"] == "ACTIVE"
    assert lock["effectiveStatus"] == "ACTIVE"
    assert lock["expiresAt"]


@pytest.mark.asyncio
async def test_acquire_lock_sold_out(client: AsyncClient, test_class):
    """Asking for more than is left returns 400 with the reason."""
    await _acquire(client, "CLASS", test_class.id, quantity=1)

    response = await _acquire(client, "CLASS", test_class.id, quantity=2)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "No seats available. Requested: 2, Available: 1",
        "code": "CAPACITY_EXCEEDED",
    }


@pytest.mark.asyncio
async def test_acquire_lock_on_draft_event(client: AsyncClient, make_event):
    draft = await make_event(status=EventStatus.DRAFT)
    response = await _acquire(client, "EVENT", draft.id)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"] == "Event not found or not published"


@pytest.mark.asyncio
async def test_acquire_lock_validation(client: AsyncClient, test_class):
    """Malformed requests are rejected before reaching the service."""
    assert (await _acquire(client, "CLASS", test_class.id, quantity=0)).status_code == 422
    assert (await _acquire(client, "CLASS", test_class.id, ttlMinutes=-5)).status_code == 422
    assert (await _acquire(client, "WORKSHOP", test_class.id)).status_code == 422


@pytest.mark.asyncio
async def test_acquire_lock_rejects_non_finite_ttl(client: AsyncClient, test_class):
    """NaN is valid JSON to some clients; it must come back as a typed 422, not a 500."""
    response = await client.post(
        LOCKS_URL,
        content='{"itemType": "CLASS", "itemId": "' + test_class.id + '", "ttlMinutes": NaN}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "VALIDATION_ERROR"
    assert data["error"].startswith("ttlMinutes")
    assert (await client.get(LOCKS_URL)).json()["total"] == 0


@pytest.mark.asyncio
async def test_invalid_body_uses_error_envelope(client: AsyncClient):
    response = await client.post(LOCKS_URL, json={"itemType": "WORKSHOP"})

    assert response.status_code == 422
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "VALIDATION_ERROR"
    fields = {tuple(error["loc"]) for error in data["detail"]}
    assert ("body", "itemType") in fields
    assert ("body", "itemId") in fields


@pytest.mark.asyncio
async def test_lock_timestamps_carry_utc_offset(client: AsyncClient, test_class):
    lock_id = (await _acquire(client, "CLASS", test_class.id)).json()["lock"]["id"]
    await client.delete(f"{LOCKS_URL}/{lock_id}")

    lock = (await client.get(f"{LOCKS_URL}/{lock_id}")).json()
    for field in ("createdAt", "expiresAt", "releasedAt"):
        parsed = datetime.fromisoformat(lock[field].replace("Z", "+00:00"))
        assert parsed.utcoffset() == timedelta(0)


@pytest.mark.asyncio
async def test_release_lock_twice(client: AsyncClient, test_class):
    lock_id = (await _acquire(client, "CLASS", test_class.id)).json()["lock"]["id"]

    first = await client.delete(f"{LOCKS_URL}/{lock_id}")
    second = await client.delete(f"{LOCKS_URL}/{lock_id}")

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json() == {"success": True}

    lock = (await client.get(f"{LOCKS_URL}/{lock_id}")).json()
    assert lock["status"] == "RELEASED"
    assert lock["releasedAt"] is not None


@pytest.mark.asyncio
async def test_release_unknown_lock(client: AsyncClient):
    response = await client.delete(f"{LOCKS_URL}/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["error"] == "Lock not found"


@pytest.mark.asyncio
async def test_expired_lock_reads_expired(client: AsyncClient, session_factory, test_class):
    lock_id = (await _acquire(client, "CLASS", test_class.id, quantity=2)).json()["lock"]["id"]

    async with session_factory() as session:
        await session.execute(
            update(SeatLock)
            .where(SeatLock.id == lock_id)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        await session.commit()

    lock = (await client.get(f"{LOCKS_URL}/{lock_id}")).json()
    assert lock["status"] == "ACTIVE"
    assert lock["effectiveStatus"] == "EXPIRED"

    # The seats are free again without any cleanup having run
    response = await _acquire(client, "CLASS", test_class.id, quantity=2)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_list_locks(client: AsyncClient, test_class, test_event):
    await _acquire(client, "CLASS", test_class.id, userId="user-a")
    await _acquire(client, "EVENT", test_event.id, userId="user-a")
    await _acquire(client, "EVENT", test_event.id, userId="user-b")

    response = await client.get(LOCKS_URL, params={"userId": "user-a", "activeOnly": "true"})
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = await client.get(LOCKS_URL, params={"itemType": "EVENT", "itemId": test_event.id})
    assert response.json()["total"] == 2


@pytest.mark.asyncio
async def test_availability_endpoint(client: AsyncClient, test_event):
    await _acquire(client, "EVENT", test_event.id, quantity=2)

    response = await client.get(f"/api/v1/availability/EVENT/{test_event.id}")

    assert response.status_code == 200
    assert response.json() == {
        "itemType": "EVENT",
        "itemId": test_event.id,
        "capacity": 3,
        "reserved": 2,
        "spotsLeft": 1,
    }


@pytest.mark.asyncio
async def test_availability_of_inactive_class(client: AsyncClient, make_class):
    inactive = await make_class(is_active=False)
    response = await client.get(f"/api/v1/availability/CLASS/{inactive.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_class_listing_counts_held_seats(client: AsyncClient, test_class, make_class):
    """currentStudents includes seats held by active locks."""
    await make_class(title="Retired Class", is_active=False)
    await _acquire(client, "CLASS", test_class.id)

    response = await client.get("/api/v1/classes/")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["cached"] is False
    listed = data["classes"][0]
    assert listed["id"] == test_class.id
    assert listed["maxStudents"] == 2
    assert listed["currentStudents"] == 1
    assert listed["spotsLeft"] == 1


@pytest.mark.asyncio
async def test_event_detail(client: AsyncClient, test_event):
    await _acquire(client, "EVENT", test_event.id)

    response = await client.get(f"/api/v1/events/{test_event.id}")

    assert response.status_code == 200
    data = response.json()
    assert data["maxAttendees"] == 3
    assert data["currentAttendees"] == 1
    assert data["spotsLeft"] == 2


@pytest.mark.asyncio
async def test_unpublished_event_is_hidden(client: AsyncClient, make_event):
    draft = await make_event(status=EventStatus.DRAFT)

    assert (await client.get(f"/api/v1/events/{draft.id}")).status_code == 404
    assert (await client.get("/api/v1/events/")).json()["total"] == 0


@pytest.mark.asyncio
async def test_admin_event_lifecycle(client: AsyncClient):
    """Create a draft event, publish it, and it becomes lockable."""
    start = (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()
    response = await client.post(
        "/api/v1/admin/events",
        json={"title": "Milonga Night", "maxAttendees": 1, "startDate": start},
    )
    assert response.status_code == 201
    event = response.json()
    assert event["status"] == "DRAFT"

    assert (await _acquire(client, "EVENT", event["id"])).status_code == 400

    response = await client.put(f"/api/v1/admin/events/{event['id']}/status", json={"status": "PUBLISHED"})
    assert response.status_code == 200
    assert response.json()["status"] == "PUBLISHED"

    assert (await _acquire(client, "EVENT", event["id"])).status_code == 201
    assert (await _acquire(client, "EVENT", event["id"])).status_code == 400


@pytest.mark.asyncio
async def test_admin_rejects_past_event(client: AsyncClient):
    start = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = await client.post(
        "/api/v1/admin/events",
        json={"title": "Yesterday", "maxAttendees": 10, "startDate": start},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ITEM"


@pytest.mark.asyncio
async def test_admin_class_capacity_and_status(client: AsyncClient):
    response = await client.post("/api/v1/admin/classes", json={"title": "Bachata", "maxCapacity": 1})
    assert response.status_code == 201
    class_id = response.json()["id"]

    response = await client.put(f"/api/v1/admin/classes/{class_id}/capacity", json={"capacity": 3})
    assert response.json()["maxCapacity"] == 3
    assert (await client.get(f"/api/v1/availability/CLASS/{class_id}")).json()["spotsLeft"] == 3

    response = await client.put(f"/api/v1/admin/classes/{class_id}/status", json={"isActive": False})
    assert response.json()["isActive"] is False
    assert (await _acquire(client, "CLASS", class_id)).json()["error"] == "Class not found or inactive"


@pytest.mark.asyncio
async def test_admin_unknown_item(client: AsyncClient):
    response = await client.put("/api/v1/admin/classes/missing/status", json={"isActive": True})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booking_flow(client: AsyncClient, test_class):
    """Hold a seat, book under the hold, confirm: the seat stays taken exactly once."""
    lock_id = (await _acquire(client, "CLASS", test_class.id, userId="user-a")).json()["lock"]["id"]

    response = await client.post(
        "/api/v1/bookings/",
        json={"itemType": "CLASS", "itemId": test_class.id, "userId": "user-a", "lockId": lock_id},
    )
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "PENDING"
    assert booking["lockId"] == lock_id

    response = await client.post(f"/api/v1/bookings/{booking['id']}/confirm")
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    assert (await client.get(f"{LOCKS_URL}/{lock_id}")).json()["status"] == "CONSUMED"
    availability = (await client.get(f"/api/v1/availability/CLASS/{test_class.id}")).json()
    assert availability["reserved"] == 1

    response = await client.get("/api/v1/bookings/", params={"userId": "user-a"})
    assert len(response.json()["bookings"]) == 1

    response = await client.post(f"/api/v1/bookings/{booking['id']}/complete")
    assert response.json()["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, test_event):
    """Same user booking the same event twice returns 409."""
    payload = {"itemType": "EVENT", "itemId": test_event.id, "userId": "user-a"}
    booking_id = (await client.post("/api/v1/bookings/", json=payload)).json()["id"]
    await client.post(f"/api/v1/bookings/{booking_id}/confirm")

    response = await client.post("/api/v1/bookings/", json=payload)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_transition(client: AsyncClient, test_event):
    payload = {"itemType": "EVENT", "itemId": test_event.id, "userId": "user-a"}
    booking_id = (await client.post("/api/v1/bookings/", json=payload)).json()["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/complete")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_purge_endpoint(client: AsyncClient, session_factory, test_class):
    lock_id = (await _acquire(client, "CLASS", test_class.id)).json()["lock"]["id"]
    async with session_factory() as session:
        await session.execute(
            update(SeatLock)
            .where(SeatLock.id == lock_id)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(days=3))
        )
        await session.commit()

    response = await client.post("/api/v1/admin/locks/purge", params={"retentionHours": 24})

    assert response.status_code == 200
    assert response.json() == {"success": True, "deleted": 1}
    assert (await client.get(f"{LOCKS_URL}/{lock_id}")).status_code == 404


@pytest.mark.asyncio
async def test_transient_store_error_is_retryable(client: AsyncClient, test_class, monkeypatch):
    async def aborted(*args, **kwargs):
        raise TransientStoreError()

    monkeypatch.setattr("seatlock.api.routes.availability.acquire_lock", aborted)

    response = await _acquire(client, "CLASS", test_class.id)

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"
    assert response.json()["success"] is False
    assert response.json()["code"] == "TRANSIENT_STORE_ERROR"


@pytest.mark.asyncio
async def test_request_id_is_propagated(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "checkout-42"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "checkout-42"
    assert response.headers["X-Response-Time"].endswith("ms")
    assert response.json()["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient, test_class):
    await _acquire(client, "CLASS", test_class.id)

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "seat_lock_acquisitions_total" in response.text
