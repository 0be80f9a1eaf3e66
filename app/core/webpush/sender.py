"""Deliver encrypted messages to browser push services."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol, Union

import httpx
from loguru import logger

from app.core.webpush.crypto import encrypt
from app.core.webpush.vapid import VapidKeyPair, VapidSigner
from app.utils.exceptions import ValidationError

GONE_STATUSES = frozenset({404, 410})
RATE_LIMITED_STATUS = 429

PayloadType = Union[bytes, str, Dict[str, Any]]


class PushTarget(Protocol):
    """Anything carrying a push endpoint and the subscriber's keys."""

    endpoint: str
    p256dh: str
    auth: str


@dataclass
class DeliveryResult:
    """Outcome of one delivery attempt to one endpoint."""

    endpoint: str
    status_code: Optional[int]
    success: bool
    gone: bool = False
    rate_limited: bool = False
    retry_after: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def short_endpoint(endpoint: str, limit: int = 60) -> str:
    """Trim an endpoint for log output; the tail is a per-device token."""

    return endpoint if len(endpoint) <= limit else f"{endpoint[:limit]}..."


def _coerce_payload(payload: PayloadType) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class WebPushSender:
    """Encrypt, sign and POST a message to a single push subscription.

    Each :meth:`send` call makes exactly one HTTP attempt. Per-recipient
    problems come back as a :class:`DeliveryResult`; only configuration
    problems (bad VAPID keys or subject) raise, at construction time.
    """

    def __init__(
        self,
        keys: VapidKeyPair,
        subject: str,
        *,
        client: Optional[httpx.Client] = None,
        ttl_seconds: int = 86400,
        timeout: float = 10.0,
        token_ttl_seconds: int = 12 * 3600,
    ) -> None:
        self.signer = VapidSigner(keys, subject, token_ttl_seconds=token_ttl_seconds)
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def public_key(self) -> str:
        return self.signer.keys.public_key

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "WebPushSender":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def build_request(self, subscription: PushTarget, payload: PayloadType) -> httpx.Request:
        """Return the fully encrypted and signed request without sending it."""

        encrypted = encrypt(_coerce_payload(payload), subscription.p256dh, subscription.auth)
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Encoding": "aes128gcm",
            "TTL": str(self.ttl_seconds),
            "Authorization": self.signer.authorization_header(subscription.endpoint),
        }
        return self._client.build_request(
            "POST",
            subscription.endpoint,
            content=encrypted.body,
            headers=headers,
            timeout=self.timeout,
        )

    def send(self, subscription: PushTarget, payload: PayloadType) -> DeliveryResult:
        """Deliver ``payload`` to one subscription and classify the response."""

        endpoint = subscription.endpoint
        try:
            request = self.build_request(subscription, payload)
        except ValidationError as exc:
            logger.warning(
                "Push payload could not be prepared",
                endpoint=short_endpoint(endpoint),
                error=exc.message,
            )
            return DeliveryResult(endpoint=endpoint, status_code=None, success=False, error=exc.message)

        try:
            response = self._client.send(request)
        except httpx.HTTPError as exc:
            logger.warning(
                "Push service request failed",
                endpoint=short_endpoint(endpoint),
                error=repr(exc),
            )
            return DeliveryResult(endpoint=endpoint, status_code=None, success=False, error=repr(exc))

        status_code = response.status_code
        if 200 <= status_code < 300:
            logger.debug("Push accepted", endpoint=short_endpoint(endpoint), status=status_code)
            return DeliveryResult(endpoint=endpoint, status_code=status_code, success=True)

        if status_code in GONE_STATUSES:
            logger.info("Push subscription gone", endpoint=short_endpoint(endpoint), status=status_code)
            return DeliveryResult(
                endpoint=endpoint,
                status_code=status_code,
                success=False,
                gone=True,
                error=f"Subscription gone ({status_code})",
            )

        result = DeliveryResult(
            endpoint=endpoint,
            status_code=status_code,
            success=False,
            rate_limited=status_code == RATE_LIMITED_STATUS,
            retry_after=response.headers.get("Retry-After"),
            error=f"Push service returned {status_code}: {response.text[:200]}",
        )
        logger.warning(
            "Push rejected",
            endpoint=short_endpoint(endpoint),
            status=status_code,
            retry_after=result.retry_after,
        )
        return result
