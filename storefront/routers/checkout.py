import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.clients.payments import PaymentGateway, get_payment_gateway
from storefront.config import settings
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import request_id, to_http
from storefront.schemas.order import CheckoutRequest, CheckoutResponse, OrderSummary
from storefront.services import checkout_service, order_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _origin(request: Request) -> str:
    return (request.headers.get("origin") or settings.public_base_url).rstrip("/")


@router.post("", response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutResponse:
    rid = request_id(request)
    logger.info(
        "Received checkout request",
        extra={"request_id": rid, "event_id": str(body.event_id), "item_count": len(body.items)},
    )
    try:
        url = await checkout_service.create_checkout(db, body, gateway, _origin(request), rid)
    except StorefrontError as exc:
        raise to_http(exc)
    return CheckoutResponse(url=url)


@router.get("/success", response_model=OrderSummary)
async def checkout_success(
    session_id: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
) -> OrderSummary:
    try:
        return await order_service.get_summary_for_session(db, session_id)
    except StorefrontError as exc:
        raise to_http(exc)
