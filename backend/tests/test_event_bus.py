# backend/tests/test_event_bus.py
from __future__ import annotations

import json

from fastapi.testclient import TestClient

from gestimmo.domain.statuses import Role
from gestimmo.main import create_app
from gestimmo.middleware.realtime_mutations import entity_from_path
from gestimmo.realtime.event_bus import EventBus, QueueSubscriber

from factories import auth_headers, make_profile


class _Broken:
    closed = False

    def send(self, text: str) -> None:
        raise ConnectionResetError("peer gone")

    def close(self) -> None:
        self.closed = True


def _frame(sub: QueueSubscriber) -> dict:
    raw = sub.queue.get_nowait()
    assert raw.startswith("data: ")
    assert raw.endswith("\n\n")
    return json.loads(raw[len("data: "):])


def test_publish_fans_out_and_drops_failures():
    bus = EventBus()
    good = QueueSubscriber()
    bus.subscribe(good)
    bus.subscribe(_Broken())
    assert len(bus) == 2

    delivered = bus.publish({"action": "POST", "entity": "payments", "path": "/api/web/payments", "status": 201})
    assert delivered == 1
    assert len(bus) == 1

    event = _frame(good)
    assert event["type"] == "mutation"
    assert event["entity"] == "payments"
    assert "ts" in event


def test_full_queue_counts_as_failed_write():
    bus = EventBus()
    slow = QueueSubscriber(maxsize=1)
    bus.subscribe(slow)

    assert bus.publish({"action": "PUT"}) == 1
    assert bus.publish({"action": "PUT"}) == 0
    assert len(bus) == 0


def test_dispose_closes_everyone():
    bus = EventBus()
    sub = QueueSubscriber()
    bus.subscribe(sub)
    bus.dispose()

    assert len(bus) == 0
    assert sub.closed is True
    assert sub.queue.get_nowait() is None


def test_entity_from_path():
    assert entity_from_path("/api/web/contracts/12/accept") == "contracts"
    assert entity_from_path("/api/mobile/payments/manual") == "payments"
    assert entity_from_path("/api/properties/3") == "properties"
    assert entity_from_path("/health") == "health"


def test_successful_writes_are_announced():
    manager = make_profile("manager@test.local", role=Role.MANAGER)

    with TestClient(create_app()) as client:
        sub = QueueSubscriber()
        client.app.state.event_bus.subscribe(sub)

        denied = client.post("/api/web/properties", json={"title": "T3", "address": "5 quai Perrache"})
        assert denied.status_code == 401
        assert sub.queue.empty()

        res = client.post(
            "/api/web/properties",
            json={"title": "T3", "address": "5 quai Perrache"},
            headers=auth_headers(manager),
        )
        assert res.status_code == 201

        event = _frame(sub)
        assert event["action"] == "POST"
        assert event["entity"] == "properties"
        assert event["path"] == "/api/web/properties"
        assert event["status"] == 201
        assert event["actor_id"] == manager.id

        # Reads are never announced.
        client.get("/api/web/properties", headers=auth_headers(manager))
        assert sub.queue.empty()


def test_stream_requires_a_token(client):
    res = client.get("/realtime/stream")
    assert res.status_code == 401
