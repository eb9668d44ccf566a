import hashlib
import hmac
import json
from datetime import date, datetime, time, timedelta, timezone

from storefront.models import Event, EventProduct, Order, OrderItem, Product
from storefront.utils.timeutils import utcnow


async def make_product(db, name="Pho", price_cents=500, is_active=True) -> Product:
    product = Product(name=name, description=f"{name} bowl", price_cents=price_cents, is_active=is_active)
    db.add(product)
    await db.commit()
    return product


async def make_event(
    db,
    *,
    title="Winter Drop",
    pickup_date=date(2026, 3, 10),
    is_active=True,
    deadline: datetime | None = None,
    menu: list[Product] | None = None,
    inactive_menu: list[Product] | None = None,
) -> Event:
    event = Event(
        title=title,
        pickup_date=pickup_date,
        pickup_start=time(13, 0),
        pickup_end=time(15, 30),
        location_name="Corner Hall",
        location_address="123 Main St, Chicago, IL",
        deadline=deadline or utcnow() + timedelta(days=2),
        is_active=is_active,
    )
    db.add(event)
    await db.flush()
    for i, product in enumerate(menu or []):
        db.add(EventProduct(event_id=event.id, product_id=product.id, sort_order=i, is_active=True))
    for product in inactive_menu or []:
        db.add(EventProduct(event_id=event.id, product_id=product.id, sort_order=99, is_active=False))
    await db.commit()
    return event


async def make_order(
    db,
    event: Event,
    *,
    email="ada@example.com",
    name="Ada",
    phone: str | None = "+13125550100",
    paid=True,
    status="confirmed",
    sms_opt_in=False,
    items: list[tuple[Product, int]] | None = None,
    created_at: datetime | None = None,
    **extra,
) -> Order:
    items = items or []
    total = sum(p.price_cents * q for p, q in items) or 1000
    order = Order(
        event_id=event.id,
        customer_name=name,
        email=email,
        phone=phone,
        sms_opt_in=sms_opt_in,
        total_cents=total,
        paid=paid,
        status=status,
        created_at=created_at or datetime.now(timezone.utc),
        **extra,
    )
    db.add(order)
    await db.flush()
    for product, qty in items:
        db.add(
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                qty=qty,
                unit_price_cents=product.price_cents,
                line_total_cents=product.price_cents * qty,
            )
        )
    await db.commit()
    return order


def signed_webhook(event: dict, secret: str, timestamp: int | None = None) -> tuple[bytes, str]:
    """Body and Stripe-Signature header, signed the way Stripe signs deliveries."""
    body = json.dumps(event).encode()
    ts = int(utcnow().timestamp()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + body, hashlib.sha256).hexdigest()
    return body, f"t={ts},v1={digest}"
