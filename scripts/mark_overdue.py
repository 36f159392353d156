from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone

from csrportal.core.logging import configure_logging
from csrportal.persistence.db import SessionLocal
from csrportal.services.subscriptions import mark_overdue_subscriptions


async def sweep(now: datetime | None) -> None:
    async with SessionLocal() as session:
        updated = await mark_overdue_subscriptions(session, now=now)
        print(f"marked_overdue_subscriptions={updated}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Move active subscriptions whose billing date passed to overdue."
    )
    parser.add_argument(
        "--as-of",
        default=None,
        help="ISO-8601 cutoff (UTC when no offset is given); defaults to now.",
    )
    args = parser.parse_args()
    now = None
    if args.as_of:
        now = datetime.fromisoformat(args.as_of)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
    configure_logging()
    asyncio.run(sweep(now))


if __name__ == "__main__":
    main()
