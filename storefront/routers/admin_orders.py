import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth import require_admin
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import to_http
from storefront.schemas.order import EventOrdersResponse
from storefront.services import order_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=EventOrdersResponse)
async def list_orders(
    event: str | None = Query(default=None, description="Event id"),
    db: AsyncSession = Depends(get_db),
) -> EventOrdersResponse:
    if not event:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing event query param")
    try:
        event_id = uuid.UUID(event)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid event id")
    try:
        return await order_service.list_event_orders(db, event_id)
    except StorefrontError as exc:
        raise to_http(exc)
