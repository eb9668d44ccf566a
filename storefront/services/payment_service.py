"""
Payment confirmation: the consumer side of Stripe's checkout webhook.

Guarantees:
  - Idempotency: the confirmation email is sent at most once per order,
    keyed on orders.confirmation_email_sent_at
  - Acknowledgement: nothing here raises for downstream failures (store or
    email); the caller always answers the processor with success so it does
    not redeliver in a loop
"""

import logging
import uuid
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.clients.email import EmailSender
from storefront.clients.payments import CHECKOUT_SESSION_COMPLETED, WebhookEvent
from storefront.config import settings
from storefront.exceptions import NotificationError
from storefront.metrics import NOTIFICATIONS, WEBHOOK_EVENTS
from storefront.models.order import Order, OrderStatus
from storefront.services.notifications import confirmation_subject, render_confirmation_email
from storefront.services.order_service import build_summary, fetch_order
from storefront.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class WebhookOutcome(str, Enum):
    CONFIRMED = "confirmed"
    ALREADY_NOTIFIED = "already_notified"
    EMAIL_FAILED = "email_failed"
    STAMP_FAILED = "stamp_failed"
    IGNORED = "ignored"
    MISSING_ORDER = "missing_order"
    UPDATE_FAILED = "update_failed"


def _order_id_from(event: WebhookEvent) -> uuid.UUID | None:
    raw = event.metadata.get("order_id")
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


async def mark_order_paid(
    db: AsyncSession, order_id: uuid.UUID, payment_intent_id: str | None
) -> bool:
    """Flip the order to confirmed/paid. Returns False if no row matched."""
    result = await db.execute(
        update(Order)
        .where(Order.id == order_id)
        .values(
            paid=True,
            status=OrderStatus.CONFIRMED.value,
            stripe_payment_intent_id=payment_intent_id,
        )
    )
    await db.commit()
    return result.rowcount > 0


async def send_confirmation_once(
    db: AsyncSession, order_id: uuid.UUID, email_sender: EmailSender
) -> WebhookOutcome:
    order = await fetch_order(db, order_id)
    if order is None or order.event is None:
        logger.warning("Could not load order for email check", extra={"order_id": str(order_id)})
        return WebhookOutcome.MISSING_ORDER

    if order.confirmation_email_sent_at is not None:
        logger.info("Confirmation email already sent, skipping", extra={"order_id": str(order_id)})
        NOTIFICATIONS.labels("email", "skipped").inc()
        return WebhookOutcome.ALREADY_NOTIFIED

    summary = build_summary(order)
    html = render_confirmation_email(summary, settings.public_base_url, settings.brand_name)
    try:
        await email_sender.send(
            to=order.email,
            subject=confirmation_subject(settings.brand_name),
            html=html,
        )
    except NotificationError as exc:
        # Swallowed: a failed email must not make Stripe redeliver the event
        NOTIFICATIONS.labels("email", "failed").inc()
        logger.error("Email send failed", extra={"order_id": str(order_id), "error": str(exc)})
        return WebhookOutcome.EMAIL_FAILED

    NOTIFICATIONS.labels("email", "sent").inc()
    try:
        await db.execute(
            update(Order).where(Order.id == order_id).values(confirmation_email_sent_at=utcnow())
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Confirmation email sent but timestamp not stored",
            extra={"order_id": str(order_id)},
        )
        return WebhookOutcome.STAMP_FAILED

    logger.info("Confirmation email sent", extra={"order_id": str(order_id), "to": order.email})
    return WebhookOutcome.CONFIRMED


async def handle_webhook_event(
    db: AsyncSession, event: WebhookEvent, email_sender: EmailSender
) -> WebhookOutcome:
    """Apply a verified Stripe event. Signature checks happen before this."""
    if event.type != CHECKOUT_SESSION_COMPLETED:
        logger.info("Unhandled Stripe event type", extra={"event_type": event.type})
        WEBHOOK_EVENTS.labels(WebhookOutcome.IGNORED.value).inc()
        return WebhookOutcome.IGNORED

    order_id = _order_id_from(event)
    if order_id is None:
        logger.error(
            "Missing order_id in session metadata",
            extra={"session_id": event.session_id, "metadata": event.metadata},
        )
        WEBHOOK_EVENTS.labels(WebhookOutcome.MISSING_ORDER.value).inc()
        return WebhookOutcome.MISSING_ORDER

    try:
        matched = await mark_order_paid(db, order_id, event.payment_intent_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        # Acknowledged anyway; the order needs manual remediation
        logger.error(
            "Failed to update order paid",
            extra={"order_id": str(order_id), "session_id": event.session_id, "error": str(exc)},
        )
        WEBHOOK_EVENTS.labels(WebhookOutcome.UPDATE_FAILED.value).inc()
        return WebhookOutcome.UPDATE_FAILED

    if not matched:
        logger.warning(
            "No order matched webhook metadata",
            extra={"order_id": str(order_id), "session_id": event.session_id},
        )
        WEBHOOK_EVENTS.labels(WebhookOutcome.MISSING_ORDER.value).inc()
        return WebhookOutcome.MISSING_ORDER

    logger.info(
        "Order marked as paid",
        extra={
            "order_id": str(order_id),
            "session_id": event.session_id,
            "payment_intent_id": event.payment_intent_id,
        },
    )

    outcome = await send_confirmation_once(db, order_id, email_sender)
    WEBHOOK_EVENTS.labels(outcome.value).inc()
    return outcome
