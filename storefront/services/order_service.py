import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.exceptions import NotFound
from storefront.models.event import Event
from storefront.models.order import Order, OrderItem
from storefront.schemas.event import EventResponse
from storefront.schemas.order import (
    AdminOrderResponse,
    EventOrdersResponse,
    OrderLine,
    OrderSummary,
    OrderTotals,
    PickupDetails,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_summary(order: Order) -> OrderSummary:
    event = order.event
    return OrderSummary(
        id=order.id,
        status=order.status,
        paid=order.paid,
        total_cents=order.total_cents,
        customer_name=order.customer_name,
        email=order.email,
        phone=order.phone,
        created_at=order.created_at,
        public_token=order.public_token,
        event=PickupDetails(
            title=event.title,
            pickup_date=event.pickup_date,
            pickup_start=event.pickup_start,
            pickup_end=event.pickup_end,
            location_name=event.location_name,
            location_address=event.location_address,
        ),
        items=[
            OrderLine(
                product_name=item.product.name if item.product else "Item",
                qty=item.qty,
                unit_price_cents=item.unit_price_cents,
                line_total_cents=item.line_total_cents,
            )
            for item in order.items
        ],
    )


def _with_details(stmt):
    # populate_existing: the webhook re-reads rows it just updated in bulk
    return stmt.options(
        selectinload(Order.event),
        selectinload(Order.items).selectinload(OrderItem.product),
    ).execution_options(populate_existing=True)


async def fetch_order(db: AsyncSession, order_id: uuid.UUID) -> Order | None:
    result = await db.execute(_with_details(select(Order).where(Order.id == order_id)))
    return result.scalars().first()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_order_for_token(db: AsyncSession, order_id: uuid.UUID, token: str) -> Order:
    """Look up an order by id and its public token. Raises NotFound on any mismatch."""
    result = await db.execute(
        _with_details(select(Order).where(Order.id == order_id, Order.public_token == token))
    )
    order = result.scalars().first()
    if order is None:
        raise NotFound("Order not found")
    if order.event is None:
        raise NotFound("Event not found for order")
    return order


async def get_receipt(db: AsyncSession, order_id: uuid.UUID, token: str) -> OrderSummary:
    return build_summary(await get_order_for_token(db, order_id, token))


async def get_summary_for_session(db: AsyncSession, session_id: str) -> OrderSummary:
    result = await db.execute(_with_details(select(Order).where(Order.stripe_session_id == session_id)))
    order = result.scalars().first()
    if order is None or order.event is None:
        raise NotFound("Order not found yet. Please refresh in a moment.")
    return build_summary(order)


def compute_totals(orders: list[Order]) -> OrderTotals:
    totals = OrderTotals()
    for order in orders:
        totals.count_total += 1
        totals.revenue_total_cents += order.total_cents or 0
        if order.paid:
            totals.count_paid += 1
            totals.revenue_paid_cents += order.total_cents or 0
        else:
            totals.count_unpaid += 1
    return totals


async def list_event_orders(db: AsyncSession, event_id: uuid.UUID) -> EventOrdersResponse:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")

    result = await db.execute(
        select(Order).where(Order.event_id == event_id).order_by(Order.created_at.desc())
    )
    orders = list(result.scalars().all())
    return EventOrdersResponse(
        event=EventResponse.model_validate(event),
        totals=compute_totals(orders),
        orders=[AdminOrderResponse.model_validate(o) for o in orders],
    )
