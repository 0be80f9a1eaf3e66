"""Message encryption for Web Push (RFC 8291) using the aes128gcm encoding (RFC 8188).

Only single-record messages are produced. The whole body, header included,
must fit in the 4096 octets every push service is required to accept
(RFC 8030 section 7.2), which leaves 3993 bytes of plaintext. The header
layout is::

    salt (16) | record size (uint32 BE) | keyid length (1) | keyid (65) | ciphertext

where ``keyid`` is the sender's ephemeral public key.
"""
from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from app.core.webpush.encoding import b64url_decode
from app.utils.exceptions import ValidationError

RECORD_SIZE = 4096
SALT_LENGTH = 16
AUTH_SECRET_LENGTH = 16
PUBLIC_KEY_LENGTH = 65
TAG_LENGTH = 16
HEADER_LENGTH = SALT_LENGTH + 4 + 1 + PUBLIC_KEY_LENGTH
LAST_RECORD_DELIMITER = b"\x02"
MAX_BODY_LENGTH = 4096
MAX_PAYLOAD_LENGTH = MAX_BODY_LENGTH - HEADER_LENGTH - len(LAST_RECORD_DELIMITER) - TAG_LENGTH

WEBPUSH_INFO = b"WebPush: info\x00"
CEK_INFO = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO = b"Content-Encoding: nonce\x00"


class DecryptionError(ValueError):
    """Raised when an aes128gcm body cannot be decrypted or is malformed."""


@dataclass(frozen=True)
class EncryptedPayload:
    """The wire body together with the per-message values it embeds."""

    body: bytes
    salt: bytes
    sender_public_key: bytes
    record_size: int = RECORD_SIZE


def _hkdf(salt: bytes, ikm: bytes, info: bytes, length: int) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)


def _public_bytes(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def load_subscriber_key(p256dh: str) -> tuple[bytes, ec.EllipticCurvePublicKey]:
    """Decode and validate a subscriber's base64url ``p256dh`` key."""

    try:
        raw = b64url_decode(p256dh)
    except ValueError as exc:
        raise ValidationError("p256dh is not valid base64") from exc
    if len(raw) != PUBLIC_KEY_LENGTH or raw[0] != 0x04:
        raise ValidationError(
            "p256dh must be a 65 byte uncompressed P-256 point",
            {"length": len(raw)},
        )
    try:
        key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
    except ValueError as exc:
        raise ValidationError("p256dh is not a point on P-256") from exc
    return raw, key


def load_auth_secret(auth: str) -> bytes:
    """Decode and validate a subscriber's 16 byte ``auth`` secret."""

    try:
        raw = b64url_decode(auth)
    except ValueError as exc:
        raise ValidationError("auth secret is not valid base64") from exc
    if len(raw) != AUTH_SECRET_LENGTH:
        raise ValidationError("auth secret must be 16 bytes", {"length": len(raw)})
    return raw


def _derive_key_and_nonce(
    shared_secret: bytes,
    auth_secret: bytes,
    receiver_public: bytes,
    sender_public: bytes,
    salt: bytes,
) -> tuple[bytes, bytes]:
    ikm = _hkdf(
        salt=auth_secret,
        ikm=shared_secret,
        info=WEBPUSH_INFO + receiver_public + sender_public,
        length=32,
    )
    cek = _hkdf(salt=salt, ikm=ikm, info=CEK_INFO, length=16)
    nonce = _hkdf(salt=salt, ikm=ikm, info=NONCE_INFO, length=12)
    return cek, nonce


def encrypt(
    payload: bytes,
    p256dh: str,
    auth: str,
    *,
    salt: Optional[bytes] = None,
    sender_private_key: Optional[ec.EllipticCurvePrivateKey] = None,
    record_size: int = RECORD_SIZE,
) -> EncryptedPayload:
    """Encrypt ``payload`` for one subscription.

    ``salt`` and ``sender_private_key`` are generated fresh for every call;
    they are only accepted as arguments so known-answer tests can pin them.
    """

    max_plaintext = min(
        MAX_PAYLOAD_LENGTH, record_size - len(LAST_RECORD_DELIMITER) - TAG_LENGTH
    )
    if len(payload) > max_plaintext:
        raise ValidationError(
            "Payload too large for a single push record",
            {"size": len(payload), "max": max_plaintext},
        )

    receiver_public, receiver_key = load_subscriber_key(p256dh)
    auth_secret = load_auth_secret(auth)

    salt = salt if salt is not None else os.urandom(SALT_LENGTH)
    if len(salt) != SALT_LENGTH:
        raise ValidationError("salt must be 16 bytes")
    sender_key = sender_private_key or ec.generate_private_key(ec.SECP256R1())
    sender_public = _public_bytes(sender_key)

    shared_secret = sender_key.exchange(ec.ECDH(), receiver_key)
    cek, nonce = _derive_key_and_nonce(
        shared_secret, auth_secret, receiver_public, sender_public, salt
    )

    ciphertext = AESGCM(cek).encrypt(nonce, payload + LAST_RECORD_DELIMITER, None)
    header = salt + struct.pack("!IB", record_size, len(sender_public)) + sender_public
    return EncryptedPayload(
        body=header + ciphertext,
        salt=salt,
        sender_public_key=sender_public,
        record_size=record_size,
    )


def decrypt(body: bytes, receiver_private_key: ec.EllipticCurvePrivateKey, auth: str) -> bytes:
    """Decrypt a single-record aes128gcm body as the subscribing browser would."""

    if len(body) < HEADER_LENGTH + TAG_LENGTH:
        raise DecryptionError("Body shorter than aes128gcm header")

    salt = body[:SALT_LENGTH]
    record_size, key_id_length = struct.unpack("!IB", body[SALT_LENGTH:SALT_LENGTH + 5])
    key_start = SALT_LENGTH + 5
    sender_public = body[key_start:key_start + key_id_length]
    ciphertext = body[key_start + key_id_length:]
    if len(ciphertext) > record_size:
        raise DecryptionError("Multi-record bodies are not supported")

    try:
        sender_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), sender_public)
    except ValueError as exc:
        raise DecryptionError("Invalid sender key in header") from exc

    receiver_public = _public_bytes(receiver_private_key)
    shared_secret = receiver_private_key.exchange(ec.ECDH(), sender_key)
    cek, nonce = _derive_key_and_nonce(
        shared_secret, load_auth_secret(auth), receiver_public, sender_public, salt
    )

    try:
        padded = AESGCM(cek).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise DecryptionError("Authentication tag mismatch") from exc

    stripped = padded.rstrip(b"\x00")
    if not stripped.endswith(LAST_RECORD_DELIMITER):
        raise DecryptionError("Missing last-record padding delimiter")
    return stripped[:-1]
