import logging
import uuid

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.config import settings
from storefront.exceptions import Conflict, NotFound, ValidationFailed
from storefront.models.event import Event, EventProduct
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.schemas.event import (
    ActiveEventResponse,
    EventCreate,
    EventResponse,
    EventStats,
    EventUpdate,
    EventWithStatsResponse,
    MenuEntry,
)
from storefront.schemas.product import MenuItemResponse
from storefront.utils.timeutils import parse_deadline

logger = logging.getLogger(__name__)


def _deadline(value: str):
    try:
        return parse_deadline(value, settings.pickup_timezone)
    except ValueError:
        raise ValidationFailed("Invalid deadline value")


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------


async def activate_event(db: AsyncSession, event_id: uuid.UUID) -> bool:
    """Make ``event_id`` the only active event.

    Two separate writes: switch every active event off, then switch the
    target on. A crash in between leaves no active event rather than two.
    Returns False when the target id matched no row (in which case nothing
    is active afterwards).
    """
    await db.execute(update(Event).where(Event.is_active.is_(True)).values(is_active=False))
    await db.commit()

    result = await db.execute(update(Event).where(Event.id == event_id).values(is_active=True))
    await db.commit()

    activated = result.rowcount > 0
    if activated:
        logger.info("Event activated", extra={"event_id": str(event_id)})
    else:
        logger.warning("Activation matched no event", extra={"event_id": str(event_id)})
    return activated


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


async def get_active_event(db: AsyncSession) -> ActiveEventResponse | None:
    result = await db.execute(
        select(Event)
        .where(Event.is_active.is_(True))
        .order_by(Event.pickup_date.asc())
        .limit(1)
        .options(selectinload(Event.event_products).selectinload(EventProduct.product))
    )
    event = result.scalars().first()
    if event is None:
        return None

    menu = [
        MenuItemResponse(
            id=ep.product.id,
            name=ep.product.name,
            description=ep.product.description,
            price_cents=ep.product.price_cents,
            sort_order=ep.sort_order,
        )
        for ep in sorted(event.event_products, key=lambda ep: ep.sort_order)
        if ep.is_active and ep.product is not None and ep.product.is_active
    ]
    return ActiveEventResponse(
        id=event.id,
        title=event.title,
        pickup_date=event.pickup_date,
        pickup_start=event.pickup_start,
        pickup_end=event.pickup_end,
        location_name=event.location_name,
        location_address=event.location_address,
        deadline=event.deadline,
        menu=menu,
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


async def list_events_with_stats(db: AsyncSession) -> list[EventWithStatsResponse]:
    events = (await db.execute(select(Event).order_by(Event.pickup_date.desc()))).scalars().all()

    paid_count = func.sum(case((Order.paid.is_(True), 1), else_=0))
    paid_revenue = func.sum(case((Order.paid.is_(True), Order.total_cents), else_=0))
    rows = await db.execute(
        select(
            Order.event_id,
            func.count(Order.id),
            paid_count,
            func.sum(Order.total_cents),
            paid_revenue,
        ).group_by(Order.event_id)
    )
    stats_by_event: dict[uuid.UUID, EventStats] = {}
    for event_id, total, paid, revenue, revenue_paid in rows.all():
        stats_by_event[event_id] = EventStats(
            orders_total=total or 0,
            orders_paid=paid or 0,
            orders_unpaid=(total or 0) - (paid or 0),
            revenue_total_cents=revenue or 0,
            revenue_paid_cents=revenue_paid or 0,
        )

    return [
        EventWithStatsResponse(
            **EventResponse.model_validate(e).model_dump(),
            stats=stats_by_event.get(e.id, EventStats()),
        )
        for e in events
    ]


async def create_event(db: AsyncSession, body: EventCreate) -> Event:
    if body.pickup_end <= body.pickup_start:
        raise ValidationFailed("Pickup end must be after pickup start")

    event = Event(
        title=body.title,
        pickup_date=body.pickup_date,
        pickup_start=body.pickup_start,
        pickup_end=body.pickup_end,
        location_name=body.location_name,
        location_address=body.location_address,
        deadline=_deadline(body.deadline),
        is_active=False,
    )
    db.add(event)
    await db.commit()
    logger.info("Event created", extra={"event_id": str(event.id)})
    return event


async def update_event(db: AsyncSession, event_id: uuid.UUID, body: EventUpdate) -> Event:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "deadline" in changes:
        changes["deadline"] = _deadline(changes["deadline"])
    for key, value in changes.items():
        setattr(event, key, value)

    if event.pickup_end <= event.pickup_start:
        await db.rollback()
        raise ValidationFailed("Pickup end must be after pickup start")

    await db.commit()
    logger.info("Event updated", extra={"event_id": str(event_id), "fields": sorted(changes)})
    return event


async def delete_event(db: AsyncSession, event_id: uuid.UUID) -> None:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")

    order_count = await db.scalar(select(func.count(Order.id)).where(Order.event_id == event_id))
    if order_count:
        raise Conflict(f"Event has {order_count} order(s) and cannot be deleted")

    await db.execute(delete(EventProduct).where(EventProduct.event_id == event_id))
    await db.execute(delete(Event).where(Event.id == event_id))
    await db.commit()
    logger.info("Event deleted", extra={"event_id": str(event_id)})


async def replace_menu(db: AsyncSession, event_id: uuid.UUID, entries: list[MenuEntry]) -> list[EventProduct]:
    """Replace the event's allow-list with ``entries``."""
    if await db.get(Event, event_id) is None:
        raise NotFound("Event not found")

    product_ids = [e.product_id for e in entries]
    if len(set(product_ids)) != len(product_ids):
        raise ValidationFailed("Duplicate product in menu")

    if product_ids:
        found = await db.execute(select(Product.id).where(Product.id.in_(product_ids)))
        missing = set(product_ids) - set(found.scalars().all())
        if missing:
            raise ValidationFailed(f"Unknown products: {sorted(str(m) for m in missing)}")

    await db.execute(delete(EventProduct).where(EventProduct.event_id == event_id))
    rows = [
        EventProduct(
            event_id=event_id,
            product_id=e.product_id,
            sort_order=e.sort_order,
            is_active=e.is_active,
        )
        for e in entries
    ]
    db.add_all(rows)
    await db.commit()
    logger.info("Event menu replaced", extra={"event_id": str(event_id), "item_count": len(rows)})
    return rows
