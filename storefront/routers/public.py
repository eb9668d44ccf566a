import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import to_http
from storefront.schemas.customer import SubscribeRequest
from storefront.schemas.event import ActiveEventResponse
from storefront.schemas.order import OrderSummary
from storefront.services import calendar_service, customer_service, event_service, order_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/events/active", response_model=ActiveEventResponse)
async def active_event(db: AsyncSession = Depends(get_db)) -> ActiveEventResponse:
    event = await event_service.get_active_event(db)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active event")
    return event


@router.post("/subscribe")
async def subscribe(body: SubscribeRequest, db: AsyncSession = Depends(get_db)) -> dict:
    try:
        await customer_service.subscribe(db, body)
    except StorefrontError as exc:
        raise to_http(exc)
    return {"ok": True}


@router.get("/orders/{order_id}", response_model=OrderSummary)
async def order_receipt(
    order_id: uuid.UUID,
    t: str = Query(min_length=1, description="Public order token"),
    db: AsyncSession = Depends(get_db),
) -> OrderSummary:
    try:
        return await order_service.get_receipt(db, order_id, t)
    except StorefrontError as exc:
        raise to_http(exc)


@router.get("/orders/{order_id}/calendar.ics")
async def order_calendar(
    order_id: uuid.UUID,
    t: str = Query(min_length=1, description="Public order token"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        order = await order_service.get_order_for_token(db, order_id, t)
    except StorefrontError as exc:
        raise to_http(exc)

    ics = calendar_service.build_pickup_ics(order, settings.brand_name, settings.pickup_timezone)
    return Response(
        content=ics,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{calendar_service.ics_filename(order)}"',
            "Cache-Control": "no-store",
        },
    )
