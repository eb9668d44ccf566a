"""
Pickup reminder job entry point, for schedulers that run commands.

    python -m storefront.jobs.pickup_reminders day-before
"""

import argparse
import asyncio
import logging

import storefront.models  # noqa: F401
from storefront.clients.sms import get_sms_sender
from storefront.config import settings
from storefront.database import AsyncSessionLocal, engine
from storefront.services.notifications import DAY_BEFORE, DAY_OF
from storefront.services.reminder_service import run_pickup_reminders
from storefront.utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def main(kind: str) -> int:
    try:
        async with AsyncSessionLocal() as db:
            run = await run_pickup_reminders(db, kind, get_sms_sender())
    finally:
        await engine.dispose()

    logger.info(
        "Pickup reminder job finished",
        extra={
            "kind": run.kind,
            "sent": run.sent,
            "failed": run.failed,
            "target_pickup_date": run.target_pickup_date.isoformat() if run.target_pickup_date else None,
            "note": run.note,
        },
    )
    return 1 if run.failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send pickup reminder SMS for the active event")
    parser.add_argument("kind", choices=[DAY_BEFORE, DAY_OF])
    args = parser.parse_args()

    setup_logging(settings.log_level)
    raise SystemExit(asyncio.run(main(args.kind)))
