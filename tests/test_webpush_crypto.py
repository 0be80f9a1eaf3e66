"""Tests for aes128gcm Web Push message encryption."""
from __future__ import annotations

import base64
import json
import struct

import http_ece
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.webpush.crypto import (
    MAX_BODY_LENGTH,
    MAX_PAYLOAD_LENGTH,
    RECORD_SIZE,
    DecryptionError,
    decrypt,
    encrypt,
)
from app.core.webpush.encoding import b64url_decode, b64url_encode, normalize_b64url
from app.utils.exceptions import ValidationError


def test_round_trip_restores_payload(subscriber) -> None:
    payload = json.dumps({"title": "Drink water", "body": "Stay hydrated"}).encode()

    encrypted = encrypt(payload, subscriber.p256dh, subscriber.auth)

    assert decrypt(encrypted.body, subscriber.private_key, subscriber.auth) == payload


def test_body_decrypts_with_independent_implementation(subscriber) -> None:
    payload = b"When I grow up, I want to be a watermelon"

    encrypted = encrypt(payload, subscriber.p256dh, subscriber.auth)

    plaintext = http_ece.decrypt(
        encrypted.body,
        private_key=subscriber.private_key,
        auth_secret=b64url_decode(subscriber.auth),
        version="aes128gcm",
    )
    assert plaintext == payload


def test_header_layout(subscriber) -> None:
    payload = b"hello"

    encrypted = encrypt(payload, subscriber.p256dh, subscriber.auth)
    body = encrypted.body

    assert body[:16] == encrypted.salt
    assert struct.unpack("!I", body[16:20])[0] == RECORD_SIZE
    assert body[20] == 65
    assert body[21:86] == encrypted.sender_public_key
    assert encrypted.sender_public_key[0] == 0x04
    # payload + 0x02 delimiter + 16 byte GCM tag
    assert len(body) == 86 + len(payload) + 1 + 16


def test_salt_and_sender_key_are_fresh_per_message(subscriber) -> None:
    first = encrypt(b"same", subscriber.p256dh, subscriber.auth)
    second = encrypt(b"same", subscriber.p256dh, subscriber.auth)

    assert first.salt != second.salt
    assert first.sender_public_key != second.sender_public_key
    assert first.body != second.body


def test_pinned_salt_and_key_are_deterministic(subscriber) -> None:
    salt = bytes(range(16))
    sender_key = ec.derive_private_key(12345678901234567890, ec.SECP256R1())

    first = encrypt(b"pinned", subscriber.p256dh, subscriber.auth, salt=salt, sender_private_key=sender_key)
    second = encrypt(b"pinned", subscriber.p256dh, subscriber.auth, salt=salt, sender_private_key=sender_key)

    assert first.body == second.body
    assert first.body[:16] == salt


def test_largest_payload_fits_the_push_service_limit(subscriber) -> None:
    payload = b"x" * MAX_PAYLOAD_LENGTH

    encrypted = encrypt(payload, subscriber.p256dh, subscriber.auth)

    assert MAX_PAYLOAD_LENGTH == 3993
    assert len(encrypted.body) == MAX_BODY_LENGTH
    assert decrypt(encrypted.body, subscriber.private_key, subscriber.auth) == payload


def test_oversized_payload_is_rejected(subscriber) -> None:
    with pytest.raises(ValidationError):
        encrypt(b"x" * (MAX_PAYLOAD_LENGTH + 1), subscriber.p256dh, subscriber.auth)


def test_full_record_payload_is_rejected(subscriber) -> None:
    # fits one record but the body would exceed 4096 octets
    with pytest.raises(ValidationError):
        encrypt(b"x" * (RECORD_SIZE - 17), subscriber.p256dh, subscriber.auth)


def test_invalid_subscriber_key_is_rejected(subscriber) -> None:
    with pytest.raises(ValidationError):
        encrypt(b"hello", b64url_encode(b"\x04" + b"\x00" * 10), subscriber.auth)


def test_point_not_on_curve_is_rejected(subscriber) -> None:
    with pytest.raises(ValidationError):
        encrypt(b"hello", b64url_encode(b"\x04" + b"\x01" * 64), subscriber.auth)


def test_short_auth_secret_is_rejected(subscriber) -> None:
    with pytest.raises(ValidationError):
        encrypt(b"hello", subscriber.p256dh, b64url_encode(b"short"))


def test_wrong_auth_secret_fails_decryption(subscriber) -> None:
    encrypted = encrypt(b"hello", subscriber.p256dh, subscriber.auth)

    with pytest.raises(DecryptionError):
        decrypt(encrypted.body, subscriber.private_key, b64url_encode(b"\x00" * 16))


def test_tampered_body_fails_decryption(subscriber) -> None:
    encrypted = encrypt(b"hello", subscriber.p256dh, subscriber.auth)
    tampered = encrypted.body[:-1] + bytes([encrypted.body[-1] ^ 0x01])

    with pytest.raises(DecryptionError):
        decrypt(tampered, subscriber.private_key, subscriber.auth)


def test_standard_base64_keys_are_accepted(subscriber) -> None:
    raw = subscriber.private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    standard = base64.b64encode(raw).decode()

    assert normalize_b64url(standard) == subscriber.p256dh
    encrypted = encrypt(b"hello", standard, subscriber.auth)
    assert decrypt(encrypted.body, subscriber.private_key, subscriber.auth) == b"hello"
