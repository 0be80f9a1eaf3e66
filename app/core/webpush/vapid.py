"""VAPID (RFC 8292) key handling and ES256 JWT signing."""
from __future__ import annotations

import time
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt

from app.core.webpush.encoding import b64url_decode, b64url_encode
from app.utils.exceptions import ConfigurationError, ValidationError

ALGORITHM = "ES256"
DEFAULT_TOKEN_TTL_SECONDS = 12 * 3600


def _public_bytes(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def _scalar_bytes(private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return private_key.private_numbers().private_value.to_bytes(32, "big")


@dataclass(frozen=True)
class VapidKeyPair:
    """Application server key pair, both halves as base64url text.

    ``public_key`` is the 65 byte uncompressed point handed to browsers as
    ``applicationServerKey``; ``private_key`` is the 32 byte scalar ``d``.
    """

    public_key: str
    private_key: str

    @classmethod
    def generate(cls) -> "VapidKeyPair":
        """Create a fresh P-256 key pair."""

        private_key = ec.generate_private_key(ec.SECP256R1())
        return cls(
            public_key=b64url_encode(_public_bytes(private_key)),
            private_key=b64url_encode(_scalar_bytes(private_key)),
        )

    @classmethod
    def from_private_key(cls, value: str) -> "VapidKeyPair":
        """Build a pair from a base64url scalar or a PEM encoded private key."""

        private_key = _load_private_key(value)
        return cls(
            public_key=b64url_encode(_public_bytes(private_key)),
            private_key=b64url_encode(_scalar_bytes(private_key)),
        )

    @cached_property
    def signing_key(self) -> ec.EllipticCurvePrivateKey:
        return _load_private_key(self.private_key)

    @property
    def private_pem(self) -> str:
        return self.signing_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    @property
    def public_pem(self) -> str:
        return self.signing_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def validate(self) -> None:
        """Ensure both halves decode and belong to each other."""

        try:
            public = b64url_decode(self.public_key)
        except ValueError as exc:
            raise ConfigurationError("VAPID public key is not valid base64url") from exc
        if len(public) != 65 or public[0] != 0x04:
            raise ConfigurationError("VAPID public key must be a 65 byte uncompressed point")
        if _public_bytes(self.signing_key) != public:
            raise ConfigurationError("VAPID public key does not match the private key")


def _load_private_key(value: str) -> ec.EllipticCurvePrivateKey:
    text = value.strip()
    if text.startswith("-----BEGIN"):
        try:
            key = serialization.load_pem_private_key(
                text.replace("\\n", "\n").encode("ascii"), password=None
            )
        except ValueError as exc:
            raise ConfigurationError("VAPID private key PEM could not be parsed") from exc
        if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(
            key.curve, ec.SECP256R1
        ):
            raise ConfigurationError("VAPID private key must be a P-256 EC key")
        return key

    try:
        raw = b64url_decode(text)
    except ValueError as exc:
        raise ConfigurationError("VAPID private key is not valid base64url") from exc
    if len(raw) != 32:
        raise ConfigurationError("VAPID private key must be a 32 byte scalar")
    try:
        return ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
    except ValueError as exc:
        raise ConfigurationError("VAPID private key is out of range for P-256") from exc


def audience_for(endpoint: str) -> str:
    """Return the origin of a push endpoint, used as the JWT ``aud`` claim."""

    parsed = urlparse(endpoint)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("Push endpoint must be an absolute URL", {"endpoint": endpoint})
    return f"{parsed.scheme}://{parsed.netloc}"


class VapidSigner:
    """Sign VAPID authorization tokens with a fixed application key pair."""

    def __init__(
        self,
        keys: VapidKeyPair,
        subject: str,
        token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
    ) -> None:
        if not subject.startswith(("mailto:", "https:")):
            raise ConfigurationError(
                "VAPID subject must be a mailto: or https: URI", {"subject": subject}
            )
        keys.validate()
        self.keys = keys
        self.subject = subject
        self.token_ttl_seconds = token_ttl_seconds

    def claims(self, audience: str, now: Optional[float] = None) -> Dict[str, Any]:
        issued = int(now if now is not None else time.time())
        return {
            "aud": audience,
            "exp": issued + self.token_ttl_seconds,
            "sub": self.subject,
        }

    def create_token(self, audience: str, now: Optional[float] = None) -> str:
        """Return a compact ES256 JWT for ``audience``."""

        return jwt.encode(
            self.claims(audience, now),
            self.keys.private_pem,
            algorithm=ALGORITHM,
            headers={"typ": "JWT"},
        )

    def authorization_header(self, endpoint: str, now: Optional[float] = None) -> str:
        """Build the ``Authorization`` header value for a push endpoint."""

        token = self.create_token(audience_for(endpoint), now)
        return f"vapid t={token}, k={self.keys.public_key}"
