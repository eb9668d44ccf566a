import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.clients.payments import LineItem, PaymentGateway
from storefront.exceptions import (
    CheckoutFailed,
    NotFound,
    PaymentGatewayError,
    ValidationFailed,
)
from storefront.metrics import CHECKOUTS
from storefront.models.event import Event, EventProduct
from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.models.product import Product
from storefront.schemas.order import CartItem, CheckoutRequest
from storefront.services.customer_directory import normalize_email
from storefront.utils.phone import resolve_phone
from storefront.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class PricedLine:
    product_id: uuid.UUID
    name: str
    unit_price_cents: int
    quantity: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def merge_cart(items: list[CartItem]) -> dict[uuid.UUID, int]:
    """Sum quantities per product id, keeping first-seen order."""
    merged: dict[uuid.UUID, int] = {}
    for item in items:
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    return merged


def price_cart(cart: dict[uuid.UUID, int], products: dict[uuid.UUID, Product]) -> list[PricedLine]:
    return [
        PricedLine(
            product_id=product_id,
            name=products[product_id].name,
            unit_price_cents=products[product_id].price_cents,
            quantity=quantity,
        )
        for product_id, quantity in cart.items()
    ]


async def _load_orderable_event(db: AsyncSession, event_id: uuid.UUID) -> Event:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    if not event.is_active:
        raise ValidationFailed("Preorders are closed for this event")
    if utcnow() > as_utc(event.deadline):
        raise ValidationFailed("Order deadline has passed")
    return event


async def _check_menu(db: AsyncSession, event_id: uuid.UUID, product_ids: list[uuid.UUID]) -> None:
    result = await db.execute(
        select(EventProduct.product_id)
        .join(Product, Product.id == EventProduct.product_id)
        .where(
            EventProduct.event_id == event_id,
            EventProduct.is_active.is_(True),
            Product.is_active.is_(True),
            EventProduct.product_id.in_(product_ids),
        )
    )
    allowed = set(result.scalars().all())
    if any(pid not in allowed for pid in product_ids):
        raise ValidationFailed("One or more items are not available for this event")


async def _load_products(db: AsyncSession, product_ids: list[uuid.UUID]) -> dict[uuid.UUID, Product]:
    result = await db.execute(
        select(Product).where(Product.id.in_(product_ids), Product.is_active.is_(True))
    )
    products = {p.id: p for p in result.scalars().all()}
    if len(products) != len(product_ids):
        raise ValidationFailed("One or more products are invalid")
    return products


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_checkout(
    db: AsyncSession,
    body: CheckoutRequest,
    gateway: PaymentGateway,
    origin: str,
    request_id: str = "unknown",
) -> str:
    """Validate the cart, persist a pending order and open a payment session.

    Returns the hosted payment page URL. Writes happen in order (order row,
    items, session id) with no rollback of earlier steps: a failure after the
    order is stored leaves it pending, and it can only become paid through a
    verified webhook.
    """
    customer = body.customer
    try:
        phone = resolve_phone(customer.phone, customer.sms_opt_in)
        cart = merge_cart(body.items)
        product_ids = list(cart)

        # 1. Event must exist, be the active drop, and still be open
        await _load_orderable_event(db, body.event_id)

        # 2. Every product must be on this event's active menu
        await _check_menu(db, body.event_id, product_ids)

        # 3. Authoritative product rows; prices come only from here
        products = await _load_products(db, product_ids)
    except (ValidationFailed, NotFound):
        CHECKOUTS.labels("rejected").inc()
        raise

    lines = price_cart(cart, products)
    total_cents = sum(line.line_total_cents for line in lines)
    if total_cents <= 0:
        CHECKOUTS.labels("rejected").inc()
        raise ValidationFailed("Invalid total")

    # 4. Persist order + items (pending until the payment webhook confirms it)
    try:
        order = Order(
            event_id=body.event_id,
            customer_name=customer.name.strip(),
            email=normalize_email(str(customer.email)),
            phone=phone,
            sms_opt_in=customer.sms_opt_in,
            total_cents=total_cents,
            paid=False,
            status=OrderStatus.PENDING.value,
        )
        db.add(order)
        await db.flush()  # obtain order.id before inserting items

        for line in lines:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    qty=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    line_total_cents=line.line_total_cents,
                )
            )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        CHECKOUTS.labels("failed").inc()
        logger.exception("Failed to persist order", extra={"request_id": request_id})
        raise CheckoutFailed("Failed to create order") from exc

    order_id = order.id
    logger.info(
        "Order persisted, creating payment session",
        extra={
            "order_id": str(order_id),
            "event_id": str(body.event_id),
            "request_id": request_id,
            "total_cents": total_cents,
            "item_count": len(lines),
        },
    )

    # 5. Hosted payment session; metadata lets the webhook find the order again
    try:
        session = await gateway.create_checkout_session(
            line_items=[
                LineItem(name=line.name, unit_amount=line.unit_price_cents, quantity=line.quantity)
                for line in lines
            ],
            customer_email=order.email,
            metadata={
                "order_id": str(order_id),
                "event_id": str(body.event_id),
                "customer_name": order.customer_name,
                "customer_phone": phone or "",
                "sms_opt_in": "true" if customer.sms_opt_in else "false",
            },
            success_url=f"{origin}/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/canceled",
        )
    except PaymentGatewayError as exc:
        CHECKOUTS.labels("failed").inc()
        logger.error(
            "Payment session creation failed",
            extra={"order_id": str(order_id), "request_id": request_id, "error": str(exc)},
        )
        raise CheckoutFailed("Checkout failed") from exc

    # 6. Link the session to the order
    try:
        await db.execute(
            update(Order).where(Order.id == order_id).values(stripe_session_id=session.id)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        CHECKOUTS.labels("failed").inc()
        logger.exception(
            "Failed to link payment session",
            extra={"order_id": str(order_id), "session_id": session.id, "request_id": request_id},
        )
        raise CheckoutFailed("Checkout failed") from exc

    CHECKOUTS.labels("session_created").inc()
    logger.info(
        "Payment session created",
        extra={"order_id": str(order_id), "session_id": session.id, "request_id": request_id},
    )
    return session.url
