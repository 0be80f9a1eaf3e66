"""Behaviour the browser service worker implements, as testable functions.

The worker script shipped with the PWA mirrors these rules one to one: how a
push message is turned into a displayed notification, what a click on that
notification does, and which requests the offline cache intercepts.
"""
from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
from urllib.parse import urlsplit

DEFAULT_TITLE = "AURA"
DEFAULT_BODY = "You have a new notification"
DEFAULT_ICON = "/pwa-192x192.png"
DEFAULT_TAG = "aura-notification"
VIBRATE_PATTERN = [100, 50, 100]
NOTIFICATION_ACTIONS = [
    {"action": "open", "title": "Open AURA"},
    {"action": "dismiss", "title": "Dismiss"},
]

CACHE_NAME = "aura-pwa-v2"
STATIC_ASSETS = ("/", "/pwa-192x192.png", "/pwa-512x512.png", "/favicon.ico")


@dataclass
class DisplayNotification:
    """Arguments for ``registration.showNotification(title, options)``."""

    title: str
    body: str
    icon: str
    badge: str
    tag: str
    data: Dict[str, Any]
    vibrate: List[int] = field(default_factory=lambda: list(VIBRATE_PATTERN))
    require_interaction: bool = True
    actions: List[Dict[str, str]] = field(default_factory=lambda: [dict(a) for a in NOTIFICATION_ACTIONS])

    def options(self) -> Dict[str, Any]:
        return {
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "tag": self.tag,
            "vibrate": self.vibrate,
            "requireInteraction": self.require_interaction,
            "data": self.data,
            "actions": self.actions,
        }


def parse_push_data(
    raw: Union[bytes, str, None],
    *,
    origin: str,
    now_ms: Optional[int] = None,
) -> DisplayNotification:
    """Render a push message; malformed data still produces a notification.

    A JSON object is merged over the defaults. Anything else is shown
    verbatim as the body.
    """

    arrived = now_ms if now_ms is not None else int(time.time() * 1000)
    message: Dict[str, Any] = {
        "title": DEFAULT_TITLE,
        "body": DEFAULT_BODY,
        "icon": DEFAULT_ICON,
        "badge": DEFAULT_ICON,
        "tag": DEFAULT_TAG,
    }

    if raw is not None:
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            message.update(payload)
        else:
            message["body"] = text

    extra = message.get("data")
    data: Dict[str, Any] = {
        "dateOfArrival": arrived,
        "url": message.get("url") or origin,
    }
    if isinstance(extra, dict):
        data.update(extra)

    return DisplayNotification(
        title=str(message.get("title") or DEFAULT_TITLE),
        body=str(message.get("body") if message.get("body") is not None else DEFAULT_BODY),
        icon=message.get("icon") or DEFAULT_ICON,
        badge=message.get("badge") or DEFAULT_ICON,
        tag=message.get("tag") or f"aura-{arrived}",
        data=data,
    )


class ClickAction(str, Enum):
    NONE = "none"
    FOCUS = "focus"
    OPEN = "open"


@dataclass(frozen=True)
class ClickOutcome:
    action: ClickAction
    url: Optional[str] = None


def resolve_click(action: Optional[str], client_urls: Sequence[str], origin: str) -> ClickOutcome:
    """Decide what a click on a displayed notification does.

    The notification itself is always closed first.
    """

    if action in ("close", "dismiss"):
        return ClickOutcome(ClickAction.NONE)
    for url in client_urls:
        if origin in url:
            return ClickOutcome(ClickAction.FOCUS, url)
    return ClickOutcome(ClickAction.OPEN, "/")


def _origin_of(url: str) -> tuple[str, str]:
    parts = urlsplit(url)
    return parts.scheme.lower(), parts.netloc.lower()


@dataclass(frozen=True)
class CachePolicy:
    """Offline cache rules: cache-first for same-origin GETs."""

    cache_name: str = CACHE_NAME
    static_assets: tuple[str, ...] = STATIC_ASSETS

    def caches_to_purge(self, existing: Iterable[str]) -> List[str]:
        """Caches left over from earlier worker versions, deleted on activate."""

        return [name for name in existing if name != self.cache_name]

    def should_intercept(self, method: str, url: str, origin: str) -> bool:
        if method.upper() != "GET":
            return False
        if url.startswith("chrome-extension"):
            return False
        return _origin_of(url) == _origin_of(origin)

    def should_store(self, status: int, response_type: str) -> bool:
        return status == 200 and response_type == "basic"
