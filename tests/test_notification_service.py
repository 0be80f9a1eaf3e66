"""Tests for fanning a message out to every device of a user."""
from __future__ import annotations

import json

from app.core.webpush.crypto import decrypt
from app.services.notification_service import NotificationService, build_payload
from app.services.subscription_registry import SubscriptionRegistry


def _register(db_session, user, *subscribers) -> None:
    registry = SubscriptionRegistry(db_session)
    for subscriber in subscribers:
        registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)


def test_payload_defaults() -> None:
    payload = build_payload()

    assert payload["title"] == "AURA"
    assert payload["body"] == "You have a new notification"
    assert payload["icon"] == "/pwa-192x192.png"
    assert payload["tag"].startswith("aura-")
    assert payload["data"] == {}
    assert "url" not in payload


def test_payload_overrides() -> None:
    payload = build_payload(
        "Drink water", "Time for a glass", tag="hydration", data={"kind": "water"}, url="/habits"
    )

    assert payload["title"] == "Drink water"
    assert payload["body"] == "Time for a glass"
    assert payload["tag"] == "hydration"
    assert payload["data"] == {"kind": "water"}
    assert payload["url"] == "/habits"


def test_every_device_receives_its_own_ciphertext(
    db_session, user, subscriber, second_subscriber, push_sender, push_service
) -> None:
    _register(db_session, user, subscriber, second_subscriber)
    service = NotificationService(db_session, push_sender)

    outcome = service.send_to_user(user.id, "Hello", "From the server")

    assert outcome.success is True
    assert outcome.sent == 2
    assert outcome.total == 2
    by_endpoint = {str(request.url): request for request in push_service.requests}
    for device in (subscriber, second_subscriber):
        plaintext = decrypt(by_endpoint[device.endpoint].content, device.private_key, device.auth)
        assert json.loads(plaintext)["title"] == "Hello"


def test_gone_subscriptions_are_pruned(
    db_session, user, subscriber, second_subscriber, push_sender, push_service
) -> None:
    _register(db_session, user, subscriber, second_subscriber)
    push_service.statuses[second_subscriber.endpoint] = 410
    service = NotificationService(db_session, push_sender)

    outcome = service.send_to_user(user.id, "Hello", "World")

    assert outcome.sent == 1
    assert outcome.pruned == 1
    assert outcome.has_failures is False
    remaining = SubscriptionRegistry(db_session).list_by_user(user.id)
    assert [s.endpoint for s in remaining] == [subscriber.endpoint]


def test_one_failing_device_does_not_block_the_others(
    db_session, user, subscriber, second_subscriber, push_sender, push_service
) -> None:
    _register(db_session, user, subscriber, second_subscriber)
    push_service.statuses[subscriber.endpoint] = 500
    service = NotificationService(db_session, push_sender)

    outcome = service.send_to_user(user.id, "Hello", "World")

    assert len(push_service.requests) == 2
    assert outcome.sent == 1
    assert outcome.success is True
    assert outcome.has_failures is True
    assert outcome.pruned == 0
    assert len(SubscriptionRegistry(db_session).list_by_user(user.id)) == 2


def test_user_without_subscriptions(db_session, user, push_sender, push_service) -> None:
    outcome = NotificationService(db_session, push_sender).send_to_user(user.id, "Hello", "World")

    assert outcome.total == 0
    assert outcome.success is False
    assert outcome.message == "No push subscriptions found"
    assert push_service.requests == []


def test_result_serialisation(db_session, user, subscriber, push_sender) -> None:
    _register(db_session, user, subscriber)

    data = NotificationService(db_session, push_sender).send_to_user(user.id).as_dict()

    assert data["success"] is True
    assert data["message"] == "Sent to 1/1 subscription(s)"
    assert data["results"][0]["endpoint"] == subscriber.endpoint
    assert data["results"][0]["status_code"] == 201


def test_opted_out_user_receives_nothing(
    db_session, user, subscriber, push_sender, push_service
) -> None:
    _register(db_session, user, subscriber)
    user.notifications_enabled = False
    db_session.commit()

    outcome = NotificationService(db_session, push_sender).send_to_user(user.id, "Hello", "Nope")

    assert outcome.opted_out is True
    assert outcome.success is False
    assert outcome.has_failures is False
    assert outcome.message == "Notifications are disabled for this user"
    assert push_service.requests == []
