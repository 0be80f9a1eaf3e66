"""Base64url helpers shared by the push crypto and VAPID modules."""
from __future__ import annotations

import base64


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""

    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Decode base64url or standard base64 text, with or without padding.

    Browsers hand out keys as base64url while some client libraries
    re-encode them with the standard alphabet, so both are accepted.
    """

    normalized = value.strip().replace("+", "-").replace("/", "_").rstrip("=")
    padding = "=" * (-len(normalized) % 4)
    try:
        return base64.urlsafe_b64decode(normalized + padding)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid base64 value: {exc}") from exc


def normalize_b64url(value: str) -> str:
    """Return ``value`` re-encoded as canonical unpadded base64url."""

    return b64url_encode(b64url_decode(value))
