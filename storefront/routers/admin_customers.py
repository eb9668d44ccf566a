from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth import require_admin
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import to_http
from storefront.schemas.customer import (
    CustomerDetailResponse,
    CustomerListResponse,
    CustomerProfileUpdate,
    UnifiedCustomerResponse,
)
from storefront.services import customer_service

router = APIRouter(dependencies=[Depends(require_admin)])


def _flag(value: str | None) -> bool:
    return value == "1"


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    search: str = "",
    ordered: str | None = Query(default=None, description='"1" to keep only customers with orders'),
    subscribed: str | None = Query(default=None, description='"1" to keep only subscribers'),
    vip: str | None = Query(default=None, description='"1" to keep only VIPs'),
    db: AsyncSession = Depends(get_db),
) -> CustomerListResponse:
    customers = await customer_service.list_customers(
        db,
        search=search,
        ordered=_flag(ordered),
        subscribed=_flag(subscribed),
        vip=_flag(vip),
    )
    return CustomerListResponse(
        customers=[UnifiedCustomerResponse.model_validate(c) for c in customers]
    )


@router.get("/{email}", response_model=CustomerDetailResponse)
async def get_customer(email: str, db: AsyncSession = Depends(get_db)) -> CustomerDetailResponse:
    try:
        return await customer_service.get_customer(db, email)
    except StorefrontError as exc:
        raise to_http(exc)


@router.patch("/{email}")
async def update_customer(
    email: str, body: CustomerProfileUpdate, db: AsyncSession = Depends(get_db)
) -> dict:
    try:
        await customer_service.upsert_profile(db, email, body)
    except StorefrontError as exc:
        raise to_http(exc)
    return {"ok": True}
