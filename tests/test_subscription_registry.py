"""Tests for the push subscription registry."""
from __future__ import annotations

import base64

import pytest
from sqlalchemy.exc import OperationalError

from app.core.webpush.encoding import b64url_decode
from app.services.subscription_registry import SubscriptionRegistry
from app.utils.exceptions import StorageError, ValidationError


def test_upsert_creates_subscription(db_session, user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)

    subscription = registry.upsert(
        user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth, user_agent="Firefox"
    )

    assert subscription.user_id == user.id
    assert subscription.endpoint == subscriber.endpoint
    assert subscription.p256dh == subscriber.p256dh
    assert subscription.user_agent == "Firefox"
    assert [s.endpoint for s in registry.list_by_user(user.id)] == [subscriber.endpoint]


def test_upsert_is_idempotent_per_endpoint(db_session, user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    first = registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)

    refreshed_auth = base64.urlsafe_b64encode(b"\x01" * 16).decode().rstrip("=")
    second = registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, refreshed_auth)

    assert second.id == first.id
    assert second.auth == refreshed_auth
    assert len(registry.list_by_user(user.id)) == 1


def test_multiple_devices_per_user(db_session, user, subscriber, second_subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)
    registry.upsert(
        user.id, second_subscriber.endpoint, second_subscriber.p256dh, second_subscriber.auth
    )

    endpoints = {s.endpoint for s in registry.list_by_user(user.id)}

    assert endpoints == {subscriber.endpoint, second_subscriber.endpoint}


def test_same_endpoint_for_different_users(db_session, user, other_user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)
    registry.upsert(other_user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)

    assert len(registry.list_by_user(user.id)) == 1
    assert len(registry.list_by_user(other_user.id)) == 1


def test_keys_are_stored_as_base64url(db_session, user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    standard_key = base64.b64encode(b64url_decode(subscriber.p256dh)).decode()
    standard_auth = base64.b64encode(b64url_decode(subscriber.auth)).decode()

    subscription = registry.upsert(user.id, subscriber.endpoint, standard_key, standard_auth)

    assert subscription.p256dh == subscriber.p256dh
    assert subscription.auth == subscriber.auth


@pytest.mark.parametrize(
    "endpoint",
    ["http://push.example.com/abc", "/relative/path", "", "push.example.com/abc"],
)
def test_endpoint_must_be_absolute_https(db_session, user, subscriber, endpoint) -> None:
    registry = SubscriptionRegistry(db_session)

    with pytest.raises(ValidationError):
        registry.upsert(user.id, endpoint, subscriber.p256dh, subscriber.auth)


def test_malformed_keys_are_rejected(db_session, user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)

    with pytest.raises(ValidationError):
        registry.upsert(user.id, subscriber.endpoint, "AAAA", subscriber.auth)
    with pytest.raises(ValidationError):
        registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, "AAAA")
    assert registry.list_by_user(user.id) == []


def test_long_user_agent_is_truncated(db_session, user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)

    subscription = registry.upsert(
        user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth, user_agent="x" * 400
    )

    assert len(subscription.user_agent) == 255


def test_remove(db_session, user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)

    assert registry.remove(user.id, subscriber.endpoint) is True
    assert registry.remove(user.id, subscriber.endpoint) is False
    assert registry.list_by_user(user.id) == []


def test_remove_only_affects_owner(db_session, user, other_user, subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    registry.upsert(other_user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)

    assert registry.remove(user.id, subscriber.endpoint) is False
    assert len(registry.list_by_user(other_user.id)) == 1


def test_remove_all(db_session, user, subscriber, second_subscriber) -> None:
    registry = SubscriptionRegistry(db_session)
    registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)
    registry.upsert(
        user.id, second_subscriber.endpoint, second_subscriber.p256dh, second_subscriber.auth
    )

    assert registry.remove_all(user.id) == 2
    assert registry.list_by_user(user.id) == []


def test_write_failure_surfaces_as_storage_error(db_session, user, subscriber, monkeypatch) -> None:
    registry = SubscriptionRegistry(db_session)

    def failing_commit() -> None:
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(StorageError):
        registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)


def test_opted_out_user_cannot_subscribe(db_session, user, subscriber) -> None:
    user.notifications_enabled = False
    db_session.commit()
    registry = SubscriptionRegistry(db_session)

    with pytest.raises(ValidationError):
        registry.upsert(user.id, subscriber.endpoint, subscriber.p256dh, subscriber.auth)
    assert registry.list_by_user(user.id) == []
