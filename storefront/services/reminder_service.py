"""
Pickup reminder sweep.

Each order moves from not-reminded to reminded once per kind, recorded in
that kind's timestamp column. Sends are sequential; a failed send is logged
and the sweep moves on without stamping, so the next run retries it. A send
whose stamp write fails will be repeated on the next run (at-least-once).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.clients.sms import SmsSender
from storefront.config import settings
from storefront.exceptions import NotificationError, ValidationFailed
from storefront.metrics import NOTIFICATIONS, REMINDERS
from storefront.models.event import Event
from storefront.models.order import Order, OrderStatus
from storefront.services.notifications import DAY_BEFORE, DAY_OF, pickup_reminder_text
from storefront.utils.timeutils import civil_today_and_tomorrow, utcnow

logger = logging.getLogger(__name__)

REMINDER_COLUMNS = {
    DAY_BEFORE: Order.pickup_reminder_day_before_sent_at,
    DAY_OF: Order.pickup_reminder_day_of_sent_at,
}


@dataclass
class ReminderRun:
    kind: str
    sent: int = 0
    failed: int = 0
    target_pickup_date: date | None = None
    note: str | None = None


async def run_pickup_reminders(
    db: AsyncSession,
    kind: str,
    sms_sender: SmsSender,
    now: datetime | None = None,
) -> ReminderRun:
    if kind not in REMINDER_COLUMNS:
        raise ValidationFailed("Invalid kind")
    column = REMINDER_COLUMNS[kind]

    result = await db.execute(
        select(Event).where(Event.is_active.is_(True)).order_by(Event.pickup_date.asc()).limit(1)
    )
    event = result.scalars().first()
    if event is None:
        return ReminderRun(kind=kind, note="No active event")

    today, tomorrow = civil_today_and_tomorrow(settings.pickup_timezone, now)
    target = today if kind == DAY_OF else tomorrow
    run = ReminderRun(kind=kind, target_pickup_date=target)

    if event.pickup_date != target:
        run.note = (
            f"Active event pickup_date ({event.pickup_date.isoformat()}) "
            f"does not match target ({target.isoformat()})"
        )
        return run

    orders = (
        await db.execute(
            select(Order.id, Order.phone).where(
                Order.event_id == event.id,
                Order.paid.is_(True),
                Order.status == OrderStatus.CONFIRMED.value,
                Order.phone.is_not(None),
                column.is_(None),
            )
        )
    ).all()

    body = pickup_reminder_text(event, kind)
    logger.info(
        "Sending pickup reminders",
        extra={"kind": kind, "event_id": str(event.id), "candidates": len(orders)},
    )

    for order_id, phone in orders:
        try:
            await sms_sender.send(phone, body)
        except NotificationError as exc:
            run.failed += 1
            REMINDERS.labels(kind, "failed").inc()
            NOTIFICATIONS.labels("sms", "failed").inc()
            logger.error(
                "Pickup reminder failed",
                extra={"order_id": str(order_id), "kind": kind, "error": str(exc)},
            )
            continue

        NOTIFICATIONS.labels("sms", "sent").inc()
        try:
            await db.execute(
                update(Order).where(Order.id == order_id).values({column.key: utcnow()})
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            REMINDERS.labels(kind, "stamp_failed").inc()
            logger.exception(
                "Reminder sent but timestamp not stored; it will be resent",
                extra={"order_id": str(order_id), "kind": kind},
            )
        else:
            REMINDERS.labels(kind, "sent").inc()
        run.sent += 1

    logger.info(
        "Pickup reminders finished",
        extra={"kind": kind, "sent": run.sent, "failed": run.failed},
    )
    return run
