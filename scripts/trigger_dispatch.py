"""CLI script to manually run the scheduled notification dispatcher."""
from __future__ import annotations

import argparse

from app.tasks.notifications import process_scheduled_notifications


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Deliver every scheduled notification that is due",
    )
    parser.add_argument(
        "--async",
        action="store_true",
        dest="use_async",
        help="Queue task asynchronously instead of running immediately",
    )

    args = parser.parse_args()

    if args.use_async:
        task = process_scheduled_notifications.apply_async()
        print(f"Task queued: {task.id}")
    else:
        result = process_scheduled_notifications.run()
        print(f"Result: {result}")


if __name__ == "__main__":
    main()
