import time

import jwt
from fastapi.testclient import TestClient

from walkin.api.app import create_app
from walkin.api.core.config import Settings

from .conftest import ADMIN_HEADERS, WEBHOOK_SECRET


def add_entry(client, service_type="Haircut", minutes=30):
    resp = client.post(
        "/queue/add",
        json={"serviceType": service_type, "estimatedDurationMinutes": minutes},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


# ============================================
# Infrastructure
# ============================================


def test_health_and_ping(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/ping").text == "pong"
    status = client.get("/status").json()
    assert status["db_connected"] is None
    assert status["live_connections"] == 0


# ============================================
# Queue
# ============================================


def test_empty_queue_status(client):
    resp = client.get("/queue/status")
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 0
    assert body["estimatedWait"] == "No wait"
    assert "isOpen" in body["businessStatus"]
    assert "lastUpdate" in body


def test_add_requires_admin(client):
    payload = {"serviceType": "Haircut", "estimatedDurationMinutes": 30}
    assert client.post("/queue/add", json=payload).status_code == 403
    assert client.post("/queue/add", json=payload, headers={"X-Admin-Session": "true"}).status_code == 403
    assert client.get("/queue/status").json()["count"] == 0


def test_add_and_complete(client):
    entry = add_entry(client)
    assert entry["serviceType"] == "Haircut"
    assert entry["estimatedDuration"] == 30
    assert entry["isCompleted"] is False

    status = client.get("/queue/status").json()
    assert status["count"] == 1
    assert status["estimatedWait"] == "15-20 minutes"

    resp = client.post(
        f"/queue/complete/{entry['id']}", json={"actualDurationMinutes": 25}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["entry"]["isCompleted"] is True
    assert body["entry"]["actualDuration"] == 25
    assert client.get("/queue/status").json()["count"] == 0


def test_add_accepts_short_alias(client):
    resp = client.post(
        "/queue/add", json={"serviceType": "Beard", "estimatedDuration": 10}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["estimatedDuration"] == 10


def test_add_validation_errors(client):
    for payload in (
        {"serviceType": "", "estimatedDurationMinutes": 10},
        {"serviceType": "Cut", "estimatedDurationMinutes": 0},
        {"serviceType": "Cut", "estimatedDurationMinutes": "ten"},
        {},
    ):
        resp = client.post("/queue/add", json=payload, headers=ADMIN_HEADERS)
        assert resp.status_code == 400, payload
    assert client.get("/queue/status").json()["count"] == 0


def test_complete_error_codes(client):
    entry = add_entry(client)
    url = f"/queue/complete/{entry['id']}"

    assert client.post(url, json={"actualDurationMinutes": 10}).status_code == 403
    assert client.post(url, json={"actualDurationMinutes": -1}, headers=ADMIN_HEADERS).status_code == 400
    assert client.post(url, json={"actualDurationMinutes": 10}, headers=ADMIN_HEADERS).status_code == 200
    assert client.post(url, json={"actualDurationMinutes": 12}, headers=ADMIN_HEADERS).status_code == 409
    assert (
        client.post("/queue/complete/9999", json={"actualDurationMinutes": 5}, headers=ADMIN_HEADERS).status_code
        == 404
    )


def test_outstanding_entries(client):
    first = add_entry(client, "Cut", 20)
    second = add_entry(client, "Beard", 10)
    client.post(f"/queue/complete/{first['id']}", json={"actualDurationMinutes": 18}, headers=ADMIN_HEADERS)

    resp = client.get("/queue/entries", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert [e["id"] for e in resp.json()] == [second["id"]]
    assert client.get("/queue/entries").status_code == 403


def test_analytics_endpoint(client):
    assert client.get("/queue/analytics/2024-01-01", headers=ADMIN_HEADERS).json() == []
    assert client.get("/queue/analytics/2024-01-01").status_code == 403


# ============================================
# WebSocket
# ============================================


def test_websocket_receives_snapshot_on_connect_and_updates(client):
    with client.websocket_connect("/ws") as ws:
        first = ws.receive_json()
        assert first["type"] == "queue_update"
        assert first["count"] == 0

        add_entry(client)
        update = ws.receive_json()
        assert update["type"] == "queue_update"
        assert update["count"] == 1
        assert update["estimatedWait"] == "15-20 minutes"


def test_ai_reply_routed_to_authenticated_socket(client):
    hub = client.app.state.services.hub
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "auth", "userId": "owner"})
        assert wait_until(lambda: hub.tagged_count("owner") == 1)

        resp = client.post(
            "/webhook/ai-response",
            json={"userId": "owner", "message": "Next customer in 5 minutes"},
            headers={"X-Webhook-Secret": WEBHOOK_SECRET},
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

        assert ws.receive_json() == {
            "type": "ai_chat",
            "message": "Next customer in 5 minutes",
            "isFromUser": False,
        }

    history = client.get("/ai-chat/history", headers=ADMIN_HEADERS).json()
    assert [(m["message"], m["isFromUser"]) for m in history] == [("Next customer in 5 minutes", False)]


def test_webhook_requires_secret(client):
    payload = {"userId": "owner", "message": "hi"}
    assert client.post("/webhook/ai-response", json=payload).status_code == 403
    assert (
        client.post("/webhook/ai-response", json=payload, headers={"X-Webhook-Secret": "nope"}).status_code
        == 403
    )
    assert client.get("/ai-chat/history", headers=ADMIN_HEADERS).json() == []


def test_post_chat_message(client):
    resp = client.post("/ai-chat/message", json={"message": "How busy is it?"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["isFromUser"] is True
    assert resp.json()["userId"] == "owner"
    assert client.post("/ai-chat/message", json={"message": "  "}, headers=ADMIN_HEADERS).status_code == 400

    history = client.get("/ai-chat/history", headers=ADMIN_HEADERS).json()
    assert [m["message"] for m in history] == ["How busy is it?"]


# ============================================
# JWT admin gate
# ============================================


def test_jwt_cookie_gate():
    settings = Settings(
        _env_file=None,
        database_url="",
        environment="test",
        admin_gate="jwt",
        jwt_secret_key="jwt-secret",
        snapshot_refresh_interval=3600,
    )
    admin = jwt.encode({"sub": "7", "is_admin": True}, "jwt-secret", algorithm="HS256")
    viewer = jwt.encode({"sub": "8", "is_admin": False}, "jwt-secret", algorithm="HS256")
    payload = {"serviceType": "Cut", "estimatedDurationMinutes": 15}

    with TestClient(create_app(settings)) as client:
        assert client.post("/queue/add", json=payload, headers={"Cookie": f"auth_token={viewer}"}).status_code == 403
        assert client.post("/queue/add", json=payload, headers=ADMIN_HEADERS).status_code == 403
        resp = client.post("/queue/add", json=payload, headers={"Cookie": f"auth_token={admin}"})
        assert resp.status_code == 200
        assert client.get("/queue/status").json()["count"] == 1
