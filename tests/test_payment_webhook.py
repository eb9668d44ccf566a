import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from storefront.clients.payments import (
    CHECKOUT_SESSION_COMPLETED,
    PaymentGateway,
    WebhookEvent,
    get_payment_gateway,
)
from storefront.main import app
from storefront.services.order_service import fetch_order
from storefront.services.payment_service import WebhookOutcome, handle_webhook_event
from tests.factories import make_event, make_order, make_product, signed_webhook


def _completed(order_id, event_id="evt_1") -> WebhookEvent:
    return WebhookEvent(
        id=event_id,
        type=CHECKOUT_SESSION_COMPLETED,
        session_id="cs_test_1",
        payment_intent_id="pi_123",
        customer_email="ada@example.com",
        metadata={"order_id": str(order_id)} if order_id is not None else {},
    )


async def _pending_order(db):
    pho = await make_product(db, "Pho", 500)
    event = await make_event(db, menu=[pho])
    return await make_order(db, event, paid=False, status="pending", items=[(pho, 2)])


async def test_completed_session_confirms_order_and_emails(db, email_sender):
    order = await _pending_order(db)

    outcome = await handle_webhook_event(db, _completed(order.id), email_sender)

    assert outcome is WebhookOutcome.CONFIRMED
    stored = await fetch_order(db, order.id)
    assert stored.paid is True
    assert stored.status == "confirmed"
    assert stored.stripe_payment_intent_id == "pi_123"
    assert stored.confirmation_email_sent_at is not None

    assert len(email_sender.sent) == 1
    message = email_sender.sent[0]
    assert message["to"] == "ada@example.com"
    assert "$10.00" in message["html"]
    assert f"/order/{order.id}?t={order.public_token}" in message["html"]


async def test_redelivery_sends_no_second_email(db, email_sender):
    order = await _pending_order(db)

    await handle_webhook_event(db, _completed(order.id), email_sender)
    outcome = await handle_webhook_event(db, _completed(order.id, "evt_2"), email_sender)

    assert outcome is WebhookOutcome.ALREADY_NOTIFIED
    assert len(email_sender.sent) == 1
    stored = await fetch_order(db, order.id)
    assert stored.paid is True


async def test_missing_order_id_is_acknowledged(db, email_sender):
    outcome = await handle_webhook_event(db, _completed(None), email_sender)

    assert outcome is WebhookOutcome.MISSING_ORDER
    assert email_sender.sent == []


async def test_unknown_order_id_is_acknowledged(db, email_sender):
    outcome = await handle_webhook_event(db, _completed(uuid.uuid4()), email_sender)

    assert outcome is WebhookOutcome.MISSING_ORDER
    assert email_sender.sent == []


async def test_other_event_types_are_ignored(db, email_sender):
    order = await _pending_order(db)
    event = _completed(order.id)
    event.type = "payment_intent.created"

    outcome = await handle_webhook_event(db, event, email_sender)

    assert outcome is WebhookOutcome.IGNORED
    stored = await fetch_order(db, order.id)
    assert stored.paid is False


async def test_email_failure_keeps_order_paid_and_allows_retry(db, email_sender):
    """A failed send is not stamped, so a redelivery tries again."""
    order = await _pending_order(db)
    email_sender.fail = True

    outcome = await handle_webhook_event(db, _completed(order.id), email_sender)

    assert outcome is WebhookOutcome.EMAIL_FAILED
    stored = await fetch_order(db, order.id)
    assert stored.paid is True
    assert stored.confirmation_email_sent_at is None

    email_sender.fail = False
    outcome = await handle_webhook_event(db, _completed(order.id, "evt_2"), email_sender)
    assert outcome is WebhookOutcome.CONFIRMED
    assert len(email_sender.sent) == 1


async def test_webhook_endpoint_rejects_bad_signature(client, gateway, email_sender):
    gateway.next_event = _completed(uuid.uuid4())

    resp = await client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "forged"})

    assert resp.status_code == 400
    assert email_sender.sent == []


async def test_webhook_endpoint_requires_signature_header(client):
    resp = await client.post("/api/stripe/webhook", content=b"{}")
    assert resp.status_code == 400


async def test_webhook_endpoint_acknowledges_missing_order(client, gateway):
    gateway.next_event = _completed(None)

    resp = await client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "valid"})

    assert resp.status_code == 200
    assert resp.json() == {"received": True, "outcome": "missing_order"}


async def test_webhook_endpoint_confirms_order(client, session_factory, gateway, email_sender):
    async with session_factory() as db:
        order = await _pending_order(db)
    gateway.next_event = _completed(order.id)

    resp = await client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "valid"})

    assert resp.status_code == 200
    assert resp.json()["outcome"] == "confirmed"
    assert len(email_sender.sent) == 1


async def test_update_failure_is_reported(db, email_sender):
    failure = OperationalError("UPDATE orders", {}, Exception("database is locked"))

    with patch("storefront.services.payment_service.mark_order_paid", AsyncMock(side_effect=failure)):
        outcome = await handle_webhook_event(db, _completed(uuid.uuid4()), email_sender)

    assert outcome is WebhookOutcome.UPDATE_FAILED
    assert email_sender.sent == []


async def test_webhook_endpoint_acknowledges_update_failure(client, gateway, email_sender):
    gateway.next_event = _completed(uuid.uuid4())
    failure = OperationalError("UPDATE orders", {}, Exception("database is locked"))

    with patch("storefront.services.payment_service.mark_order_paid", AsyncMock(side_effect=failure)):
        resp = await client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "valid"})

    assert resp.status_code == 200
    assert resp.json() == {"received": True, "outcome": "update_failed"}
    assert email_sender.sent == []


async def test_webhook_endpoint_acknowledges_unexpected_error(client, gateway):
    gateway.next_event = _completed(uuid.uuid4())

    with patch(
        "storefront.services.payment_service.handle_webhook_event",
        AsyncMock(side_effect=RuntimeError("boom")),
    ):
        resp = await client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "valid"})

    assert resp.status_code == 200
    assert resp.json() == {"received": True}


class TestSignedDelivery:
    """Deliveries verified by the real Stripe signature check."""

    @pytest.fixture(autouse=True)
    def real_gateway(self, client):
        app.dependency_overrides[get_payment_gateway] = lambda: PaymentGateway(
            secret_key="sk_test", webhook_secret="whsec_test"
        )

    async def test_confirms_order(self, client, session_factory, email_sender):
        async with session_factory() as db:
            order = await _pending_order(db)
        body, header = signed_webhook(
            {
                "id": "evt_live_1",
                "object": "event",
                "type": CHECKOUT_SESSION_COMPLETED,
                "data": {
                    "object": {
                        "id": "cs_test_1",
                        "object": "checkout.session",
                        "payment_intent": "pi_123",
                        "customer_email": "ada@example.com",
                        "metadata": {"order_id": str(order.id)},
                    }
                },
            },
            "whsec_test",
        )

        resp = await client.post(
            "/api/stripe/webhook",
            content=body,
            headers={"stripe-signature": header, "content-type": "application/json"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"received": True, "outcome": "confirmed"}
        assert len(email_sender.sent) == 1
        async with session_factory() as db:
            stored = await fetch_order(db, order.id)
        assert stored.paid is True
        assert stored.stripe_payment_intent_id == "pi_123"

    async def test_forged_signature_is_rejected(self, client, email_sender):
        body, header = signed_webhook({"id": "evt_x", "type": CHECKOUT_SESSION_COMPLETED}, "whsec_attacker")

        resp = await client.post("/api/stripe/webhook", content=body, headers={"stripe-signature": header})

        assert resp.status_code == 400
        assert email_sender.sent == []
