"""Integration tests for the push notification endpoints."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from app.config import settings
from app.core.webpush.crypto import decrypt
from app.core.webpush.encoding import b64url_decode
from conftest import register_and_login

CRON_HEADERS = {"X-Cron-Secret": "test-cron-secret"}


def _subscription_body(subscriber) -> dict:
    return {
        "endpoint": subscriber.endpoint,
        "expirationTime": None,
        "keys": {"p256dh": subscriber.p256dh, "auth": subscriber.auth},
    }


def _current_user_id(client: TestClient, headers: dict) -> str:
    return client.get("/api/v1/users/me", headers=headers).json()["id"]


def test_vapid_public_key_is_stable(client: TestClient) -> None:
    first = client.get("/api/v1/notifications/vapid-public-key")
    second = client.get("/api/v1/notifications/vapid-public-key")

    assert first.status_code == 200
    key = first.json()["publicKey"]
    assert len(b64url_decode(key)) == 65
    assert second.json()["publicKey"] == key


def test_subscribe_requires_authentication(client: TestClient, subscriber) -> None:
    response = client.post("/api/v1/notifications/subscribe", json=_subscription_body(subscriber))

    assert response.status_code == 401


def test_subscribe_list_and_unsubscribe(client: TestClient, auth_headers, subscriber) -> None:
    response = client.post(
        "/api/v1/notifications/subscribe",
        json=_subscription_body(subscriber),
        headers={**auth_headers, "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/130.0"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["endpoint"] == subscriber.endpoint
    assert data["user_agent"].startswith("Mozilla/5.0")

    again = client.post(
        "/api/v1/notifications/subscribe", json=_subscription_body(subscriber), headers=auth_headers
    )
    assert again.status_code == 201
    assert again.json()["id"] == data["id"]

    listed = client.get("/api/v1/notifications/subscriptions", headers=auth_headers)
    assert [s["endpoint"] for s in listed.json()] == [subscriber.endpoint]

    removed = client.request(
        "DELETE",
        "/api/v1/notifications/subscribe",
        json={"endpoint": subscriber.endpoint},
        headers=auth_headers,
    )
    assert removed.json() == {"removed": True}
    removed_again = client.request(
        "DELETE",
        "/api/v1/notifications/subscribe",
        json={"endpoint": subscriber.endpoint},
        headers=auth_headers,
    )
    assert removed_again.json() == {"removed": False}


def test_subscribe_rejects_invalid_keys(client: TestClient, auth_headers, subscriber) -> None:
    body = _subscription_body(subscriber)
    body["keys"]["p256dh"] = "AAAA"

    response = client.post("/api/v1/notifications/subscribe", json=body, headers=auth_headers)

    assert response.status_code == 422
    assert "p256dh" in response.json()["detail"]["message"]


def test_subscribe_rejects_plain_http_endpoint(client: TestClient, auth_headers, subscriber) -> None:
    body = _subscription_body(subscriber)
    body["endpoint"] = "http://push.example.com/insecure"

    response = client.post("/api/v1/notifications/subscribe", json=body, headers=auth_headers)

    assert response.status_code == 422


def test_test_notification_reaches_own_devices(
    client: TestClient, auth_headers, subscriber, push_service
) -> None:
    client.post(
        "/api/v1/notifications/subscribe", json=_subscription_body(subscriber), headers=auth_headers
    )

    response = client.post("/api/v1/notifications/test", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["sent"] == 1
    payload = json.loads(
        decrypt(push_service.requests[0].content, subscriber.private_key, subscriber.auth)
    )
    assert payload["title"] == "Success!"


def test_direct_send_requires_cron_secret(client: TestClient, auth_headers) -> None:
    body = {"userId": _current_user_id(client, auth_headers), "title": "Hi", "body": "There"}

    missing = client.post("/api/v1/notifications/send", json=body)
    wrong = client.post("/api/v1/notifications/send", json=body, headers={"X-Cron-Secret": "nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401


def test_direct_send_without_configured_secret(client: TestClient, auth_headers, monkeypatch) -> None:
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    body = {"userId": _current_user_id(client, auth_headers), "title": "Hi", "body": "There"}

    response = client.post("/api/v1/notifications/send", json=body, headers=CRON_HEADERS)

    assert response.status_code == 500
    assert response.json()["detail"] == "Server configuration error"


def test_direct_send_prunes_gone_devices(
    client: TestClient, auth_headers, subscriber, second_subscriber, push_service
) -> None:
    for device in (subscriber, second_subscriber):
        client.post(
            "/api/v1/notifications/subscribe", json=_subscription_body(device), headers=auth_headers
        )
    push_service.statuses[second_subscriber.endpoint] = 410
    body = {
        "userId": _current_user_id(client, auth_headers),
        "title": "Hi",
        "body": "There",
        "url": "/chat",
    }

    response = client.post("/api/v1/notifications/send", json=body, headers=CRON_HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["sent"] == 1
    assert data["total"] == 2
    assert data["pruned"] == 1
    listed = client.get("/api/v1/notifications/subscriptions", headers=auth_headers).json()
    assert [s["endpoint"] for s in listed] == [subscriber.endpoint]


def test_schedule_list_and_snooze(client: TestClient, auth_headers) -> None:
    created = client.post(
        "/api/v1/notifications/scheduled",
        json={"title": "Drink water", "body": "Stay hydrated", "delay_seconds": 600},
        headers=auth_headers,
    )
    assert created.status_code == 201
    notification = created.json()
    assert notification["sent"] is False

    snoozed = client.post(
        f"/api/v1/notifications/scheduled/{notification['id']}/snooze",
        json={"minutes": 15},
        headers=auth_headers,
    )
    assert snoozed.status_code == 200
    assert snoozed.json()["id"] != notification["id"]

    listed = client.get("/api/v1/notifications/scheduled", headers=auth_headers).json()
    by_id = {item["id"]: item for item in listed}
    assert by_id[notification["id"]]["superseded_by_id"] == snoozed.json()["id"]


def test_schedule_requires_one_time_field(client: TestClient, auth_headers) -> None:
    response = client.post(
        "/api/v1/notifications/scheduled",
        json={"title": "Drink water", "body": "Stay hydrated"},
        headers=auth_headers,
    )

    assert response.status_code == 422
    data = response.json()
    assert data["message"] == "Validation failed"
    assert "Provide exactly one of scheduled_for or delay_seconds" in data["detail"][0]["msg"]


def test_snooze_of_unknown_notification(client: TestClient, auth_headers) -> None:
    response = client.post(
        "/api/v1/notifications/scheduled/00000000-0000-0000-0000-000000000000/snooze",
        json={"minutes": 5},
        headers=auth_headers,
    )

    assert response.status_code == 404


def test_notifications_are_private(client: TestClient, auth_headers) -> None:
    created = client.post(
        "/api/v1/notifications/scheduled",
        json={"title": "Mine", "body": "Only mine", "delay_seconds": 60},
        headers=auth_headers,
    ).json()
    intruder = register_and_login(client, "intruder@example.com")

    assert client.get("/api/v1/notifications/scheduled", headers=intruder).json() == []
    response = client.post(
        f"/api/v1/notifications/scheduled/{created['id']}/snooze",
        json={"minutes": 5},
        headers=intruder,
    )
    assert response.status_code == 404


def test_dispatch_endpoint(client: TestClient, auth_headers, subscriber, push_service) -> None:
    client.post(
        "/api/v1/notifications/subscribe", json=_subscription_body(subscriber), headers=auth_headers
    )
    past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    client.post(
        "/api/v1/notifications/scheduled",
        json={"title": "Drink water", "body": "Stay hydrated", "scheduled_for": past},
        headers=auth_headers,
    )

    unauthorized = client.post("/api/v1/notifications/dispatch")
    assert unauthorized.status_code == 401

    response = client.post("/api/v1/notifications/dispatch", headers=CRON_HEADERS)
    assert response.status_code == 200
    assert response.json() == {"processed": 1, "pushSent": 1, "failed": 0}

    again = client.post("/api/v1/notifications/dispatch", headers=CRON_HEADERS)
    assert again.json() == {"processed": 0, "pushSent": 0, "failed": 0}
    assert len(push_service.requests) == 1


def test_disabling_notifications_drops_subscriptions(
    client: TestClient, auth_headers, subscriber
) -> None:
    client.post(
        "/api/v1/notifications/subscribe", json=_subscription_body(subscriber), headers=auth_headers
    )

    response = client.patch(
        "/api/v1/users/me", json={"notifications_enabled": False}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["notifications_enabled"] is False
    assert client.get("/api/v1/notifications/subscriptions", headers=auth_headers).json() == []


def test_opted_out_user_cannot_resubscribe_or_be_pushed(
    client: TestClient, auth_headers, subscriber, push_service
) -> None:
    client.patch("/api/v1/users/me", json={"notifications_enabled": False}, headers=auth_headers)

    subscribe = client.post(
        "/api/v1/notifications/subscribe", json=_subscription_body(subscriber), headers=auth_headers
    )
    body = {"userId": _current_user_id(client, auth_headers), "title": "Hi", "body": "There"}
    direct = client.post("/api/v1/notifications/send", json=body, headers=CRON_HEADERS)
    test_push = client.post("/api/v1/notifications/test", headers=auth_headers)

    assert subscribe.status_code == 422
    assert direct.status_code == 200
    assert direct.json()["sent"] == 0
    assert direct.json()["message"] == "Notifications are disabled for this user"
    assert test_push.json()["total"] == 0
    assert push_service.requests == []
