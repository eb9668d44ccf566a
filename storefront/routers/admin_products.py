import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth import require_admin
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import to_http
from storefront.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from storefront.services import product_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=list[ProductResponse])
async def list_products(db: AsyncSession = Depends(get_db)):
    return await product_service.list_products(db)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(body: ProductCreate, db: AsyncSession = Depends(get_db)):
    return await product_service.create_product(db, body)


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: uuid.UUID, body: ProductUpdate, db: AsyncSession = Depends(get_db)):
    try:
        return await product_service.update_product(db, product_id, body)
    except StorefrontError as exc:
        raise to_http(exc)
