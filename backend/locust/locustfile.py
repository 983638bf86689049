"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

LOCKS_URL = "/api/v1/availability/locks"

# Shared state
EVENT_IDS = []
CONCURRENCY_CLASS_ID = None


def random_user_id():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: Creating concurrency test class...")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COALESCE(SUM(quantity), 0) FROM seat_locks
      WHERE item_id = X AND status = 'ACTIVE' AND expires_at > now();
    Should be ≤ 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = random_user_id()

        if not CONCURRENCY_CLASS_ID:
            resp = self.client.post("/api/v1/admin/classes", json={
                "title": "Concurrency Test Class",
                "description": "10 seats only",
                "maxCapacity": 10,
            })
            if resp.status_code == 201:
                globals()["CONCURRENCY_CLASS_ID"] = resp.json()["id"]
                print(f"\n✓ Created class {CONCURRENCY_CLASS_ID} with 10 seats\n")

    @tag("concurrency")
    @task
    def hold_limited_seats(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_CLASS_ID:
            return

        with self.client.post(LOCKS_URL,
            json={"itemType": "CLASS", "itemId": CONCURRENCY_CLASS_ID, "userId": self.user_id},
            catch_response=True,
            name=LOCKS_URL + " [contended]",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
            elif resp.status_code == 503:
                resp.success()  # Store abort, client would retry
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached listing."""
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events/?page={page}&pageSize=20",
            name="/api/v1/events/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_availability(self):
        """Live figures, never cached."""
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            self.client.get(f"/api/v1/availability/EVENT/{event_id}",
                name="/api/v1/availability/EVENT/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, payload, allowed, name):
        with self.client.post(LOCKS_URL, json=payload, catch_response=True, name=name) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_item(self):
        self._expect({"itemType": "EVENT", "itemId": "does-not-exist"}, [400], "unknown item")

    @tag("edge")
    @task
    def zero_quantity(self):
        self._expect({"itemType": "EVENT", "itemId": "x", "quantity": 0}, [422], "zero quantity")

    @tag("edge")
    @task
    def huge_quantity(self):
        self._expect({"itemType": "EVENT", "itemId": "x", "quantity": 999999}, [400, 422], "huge quantity")

    @tag("edge")
    @task
    def unknown_item_type(self):
        self._expect({"itemType": "WORKSHOP", "itemId": "x"}, [422], "unknown type")

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(LOCKS_URL,
            data="not json at all",
            catch_response=True
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def release_unknown_lock(self):
        with self.client.delete(f"{LOCKS_URL}/does-not-exist",
            catch_response=True, name=LOCKS_URL + "/{id} [unknown]"
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic checkout workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some checkouts: hold, then book and confirm or abandon
      - Rare creates
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.user_id = random_user_id()

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&pageSize=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @task(10)
    def checkout(self):
        """Hold seats; most buyers complete payment, some walk away."""
        if not EVENT_IDS:
            return
        event_id = random.choice(EVENT_IDS)
        resp = self.client.post(LOCKS_URL, json={
            "itemType": "EVENT",
            "itemId": event_id,
            "userId": self.user_id,
            "quantity": random.randint(1, 3),
            "ttlMinutes": 5,
        })
        if resp.status_code != 201:
            return
        lock_id = resp.json()["lock"]["id"]

        roll = random.random()
        if roll < 0.6:
            booking = self.client.post("/api/v1/bookings/", json={
                "itemType": "EVENT",
                "itemId": event_id,
                "userId": self.user_id,
                "lockId": lock_id,
            })
            if booking.status_code == 201:
                self.client.post(f"/api/v1/bookings/{booking.json()['id']}/confirm",
                    name="/api/v1/bookings/{id}/confirm")
        elif roll < 0.8:
            self.client.delete(f"{LOCKS_URL}/{lock_id}", name=LOCKS_URL + "/{id}")
        # else: abandoned, the hold lapses on its own

    @task(3)
    def create_event(self):
        future = (datetime.now(timezone.utc) + timedelta(days=random.randint(1, 90))).isoformat()
        resp = self.client.post("/api/v1/admin/events", json={
            "title": f"Event {random.randint(1, 10000)}",
            "description": "Load test event",
            "maxAttendees": random.randint(10, 500),
            "status": "PUBLISHED",
            "startDate": future,
        })
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
