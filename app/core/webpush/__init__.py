"""Web Push protocol: aes128gcm message encryption, VAPID signing and delivery."""

from .crypto import DecryptionError, EncryptedPayload, decrypt, encrypt
from .sender import DeliveryResult, PushTarget, WebPushSender
from .vapid import VapidKeyPair, VapidSigner, audience_for

__all__ = [
    "DecryptionError",
    "DeliveryResult",
    "EncryptedPayload",
    "PushTarget",
    "VapidKeyPair",
    "VapidSigner",
    "WebPushSender",
    "audience_for",
    "decrypt",
    "encrypt",
]
