"""CLI script to generate a VAPID key pair for Web Push.

Paste the output into the environment (or ``.env``) of every process that
sends pushes. Keys stored there take precedence over the pair persisted in
``system_config``.
"""
from __future__ import annotations

import argparse

from app.core.webpush.vapid import VapidKeyPair


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a VAPID key pair")
    parser.add_argument(
        "--pem",
        action="store_true",
        help="Also print the private key in PEM format",
    )
    args = parser.parse_args()

    keys = VapidKeyPair.generate()

    print("VAPID keys generated.\n")
    print(f"VAPID_PUBLIC_KEY={keys.public_key}")
    print(f"VAPID_PRIVATE_KEY={keys.private_key}")
    if args.pem:
        print()
        print(keys.private_pem)
    print("\nThe public key is what browsers subscribe with; changing it orphans existing subscriptions.")


if __name__ == "__main__":
    main()
