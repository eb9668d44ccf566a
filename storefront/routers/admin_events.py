import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth import require_admin
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import to_http
from storefront.schemas.event import (
    EventCreate,
    EventResponse,
    EventUpdate,
    EventWithStatsResponse,
    MenuReplace,
)
from storefront.services import event_service

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[EventWithStatsResponse])
async def list_events(response: Response, db: AsyncSession = Depends(get_db)):
    response.headers["Cache-Control"] = "no-store"
    return await event_service.list_events_with_stats(db)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(body: EventCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await event_service.create_event(db, body)
    except StorefrontError as exc:
        raise to_http(exc)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(event_id: uuid.UUID, body: EventUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await event_service.update_event(db, event_id, body)
    except StorefrontError as exc:
        raise to_http(exc)


@router.delete("/{event_id}")
async def delete_event(event_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict:
    try:
        await event_service.delete_event(db, event_id)
    except StorefrontError as exc:
        raise to_http(exc)
    return {"ok": True}


@router.post("/{event_id}/activate")
async def activate_event(event_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict:
    activated = await event_service.activate_event(db, event_id)
    return {"ok": True, "activated": activated}


@router.put("/{event_id}/menu")
async def replace_menu(event_id: uuid.UUID, body: MenuReplace, db: AsyncSession = Depends(get_db)) -> dict:
    try:
        rows = await event_service.replace_menu(db, event_id, body.items)
    except StorefrontError as exc:
        raise to_http(exc)
    return {"ok": True, "item_count": len(rows)}
