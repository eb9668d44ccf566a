import uuid
from datetime import date, time

import pytest
from sqlalchemy import select

from storefront.exceptions import Conflict, ValidationFailed
from storefront.models import Event, EventProduct
from storefront.schemas.event import EventCreate, EventUpdate, MenuEntry
from storefront.services import event_service
from tests.factories import make_event, make_order, make_product


async def _active_ids(db):
    result = await db.execute(
        select(Event.id).where(Event.is_active.is_(True)).execution_options(populate_existing=True)
    )
    return set(result.scalars().all())


async def test_activate_leaves_exactly_one_active(db):
    first = await make_event(db, title="A", is_active=True)
    second = await make_event(db, title="B", is_active=True)
    third = await make_event(db, title="C", is_active=False)

    assert await event_service.activate_event(db, third.id) is True
    assert await _active_ids(db) == {third.id}

    assert await event_service.activate_event(db, first.id) is True
    assert await _active_ids(db) == {first.id}
    assert second.id not in await _active_ids(db)


async def test_activate_unknown_event_leaves_none_active(db):
    await make_event(db, is_active=True)

    assert await event_service.activate_event(db, uuid.uuid4()) is False
    assert await _active_ids(db) == set()


async def test_active_event_menu_hides_inactive_entries(db):
    pho = await make_product(db, "Pho", 500)
    roll = await make_product(db, "Spring Roll", 300)
    retired = await make_product(db, "Retired", 400, is_active=False)
    hidden = await make_product(db, "Hidden", 700)
    await make_event(db, menu=[roll, pho, retired], inactive_menu=[hidden])

    active = await event_service.get_active_event(db)

    assert [m.name for m in active.menu] == ["Spring Roll", "Pho"]


async def test_no_active_event(db):
    await make_event(db, is_active=False)
    assert await event_service.get_active_event(db) is None


async def test_create_event_starts_inactive_and_parses_local_deadline(db):
    body = EventCreate(
        title="Spring Drop",
        pickup_date=date(2026, 4, 4),
        pickup_start=time(11, 0),
        pickup_end=time(13, 0),
        location_name="Corner Hall",
        location_address="123 Main St",
        deadline="2026-04-02T18:00:00",
    )
    event = await event_service.create_event(db, body)

    assert event.is_active is False
    # 18:00 Chicago (CDT, UTC-5) is 23:00 UTC
    assert event.deadline.hour == 23


async def test_create_event_rejects_inverted_window(db):
    body = EventCreate(
        title="Bad",
        pickup_date=date(2026, 4, 4),
        pickup_start=time(13, 0),
        pickup_end=time(11, 0),
        location_name="Hall",
        location_address="Addr",
        deadline="2026-04-02T18:00:00Z",
    )
    with pytest.raises(ValidationFailed):
        await event_service.create_event(db, body)


async def test_update_event_rejects_bad_deadline(db):
    event = await make_event(db)
    with pytest.raises(ValidationFailed, match="deadline"):
        await event_service.update_event(db, event.id, EventUpdate(deadline="next tuesday"))


async def test_delete_event_with_orders_conflicts(db):
    event = await make_event(db)
    await make_order(db, event)

    with pytest.raises(Conflict):
        await event_service.delete_event(db, event.id)


async def test_delete_event_removes_menu(db):
    pho = await make_product(db)
    event = await make_event(db, menu=[pho])

    await event_service.delete_event(db, event.id)

    assert (await db.execute(select(Event))).scalars().all() == []
    assert (await db.execute(select(EventProduct))).scalars().all() == []


async def test_replace_menu(db):
    pho = await make_product(db, "Pho")
    roll = await make_product(db, "Spring Roll", 300)
    event = await make_event(db, menu=[pho])

    await event_service.replace_menu(db, event.id, [MenuEntry(product_id=roll.id, sort_order=1)])

    rows = (await db.execute(select(EventProduct.product_id).where(EventProduct.event_id == event.id))).all()
    assert [r[0] for r in rows] == [roll.id]


async def test_replace_menu_rejects_duplicates(db):
    pho = await make_product(db)
    event = await make_event(db)

    with pytest.raises(ValidationFailed, match="Duplicate"):
        await event_service.replace_menu(
            db, event.id, [MenuEntry(product_id=pho.id), MenuEntry(product_id=pho.id)]
        )


async def test_event_stats(db):
    event = await make_event(db)
    await make_order(db, event, paid=True)
    await make_order(db, event, email="bob@example.com", paid=False, status="pending")

    [row] = await event_service.list_events_with_stats(db)

    assert row.stats.orders_total == 2
    assert row.stats.orders_paid == 1
    assert row.stats.orders_unpaid == 1
    assert row.stats.revenue_total_cents == 2000
    assert row.stats.revenue_paid_cents == 1000
