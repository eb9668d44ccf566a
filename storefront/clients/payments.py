"""
Stripe adapter.

The stripe SDK is synchronous; calls are pushed to a worker thread so they
don't block the event loop. Everything above this module deals in the small
dataclasses below rather than raw Stripe objects.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import stripe
from starlette.concurrency import run_in_threadpool

from storefront.config import settings
from storefront.exceptions import PaymentGatewayError, WebhookVerificationError

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


@dataclass
class LineItem:
    name: str
    unit_amount: int
    quantity: int


@dataclass
class CheckoutSession:
    id: str
    url: str


@dataclass
class WebhookEvent:
    id: str
    type: str
    session_id: str | None = None
    payment_intent_id: str | None = None
    customer_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


class PaymentGateway:
    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        currency: str = "usd",
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency

    async def create_checkout_session(
        self,
        *,
        line_items: list[LineItem],
        customer_email: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        if not self.secret_key:
            raise PaymentGatewayError("STRIPE_SECRET_KEY is not configured")

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "billing_address_collection": "auto",
            "customer_email": customer_email,
            "line_items": [
                {
                    "quantity": li.quantity,
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": li.unit_amount,
                        "product_data": {"name": li.name},
                    },
                }
                for li in line_items
            ],
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }

        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create, api_key=self.secret_key, **params
            )
        except stripe.StripeError as exc:
            msg = getattr(exc, "user_message", None) or str(exc)
            raise PaymentGatewayError(msg) from exc

        if not session.url:
            raise PaymentGatewayError("Stripe session URL missing")
        return CheckoutSession(id=session.id, url=session.url)

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Check the Stripe-Signature header and unpack the event.

        Raises WebhookVerificationError if the payload or signature is bad.
        The verified body is read as plain JSON, not as SDK objects.
        """
        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature, self.webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
        except UnicodeDecodeError as exc:
            raise WebhookVerificationError("Invalid payload") from exc
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError("Invalid signature") from exc

        try:
            event = json.loads(body)
            obj = event["data"]["object"]
            metadata = obj.get("metadata") or {}
            payment_intent = obj.get("payment_intent")
            return WebhookEvent(
                id=event["id"],
                type=event["type"],
                session_id=obj.get("id"),
                payment_intent_id=payment_intent if isinstance(payment_intent, str) else None,
                customer_email=obj.get("customer_email"),
                metadata={str(k): str(v) for k, v in dict(metadata).items()},
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise WebhookVerificationError("Invalid payload") from exc


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        currency=settings.currency,
    )
