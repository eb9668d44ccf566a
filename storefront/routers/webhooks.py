import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.clients.email import EmailSender, get_email_sender
from storefront.clients.payments import PaymentGateway, get_payment_gateway
from storefront.database import get_db
from storefront.exceptions import WebhookVerificationError
from storefront.metrics import WEBHOOK_EVENTS
from storefront.services import payment_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    email_sender: EmailSender = Depends(get_email_sender),
) -> dict:
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature")
    if not gateway.webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook not configured"
        )

    # Signature is computed over the raw bytes
    payload = await request.body()
    try:
        event = gateway.verify_webhook(payload, stripe_signature)
    except WebhookVerificationError as exc:
        logger.error("Webhook signature verification failed", extra={"error": str(exc)})
        WEBHOOK_EVENTS.labels("invalid_signature").inc()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    logger.info(
        "Received Stripe webhook",
        extra={"event_id": event.id, "event_type": event.type, "session_id": event.session_id},
    )

    try:
        outcome = await payment_service.handle_webhook_event(db, event, email_sender)
    except Exception:
        # Acknowledge anyway so Stripe does not redeliver in a loop
        logger.exception(
            "Webhook handler error",
            extra={"event_id": event.id, "event_type": event.type},
        )
        return {"received": True}

    return {"received": True, "outcome": outcome.value}
