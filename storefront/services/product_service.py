import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import NotFound
from storefront.models.product import Product
from storefront.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


async def list_products(db: AsyncSession) -> list[Product]:
    result = await db.execute(select(Product).order_by(Product.name.asc()))
    return list(result.scalars().all())


async def create_product(db: AsyncSession, body: ProductCreate) -> Product:
    product = Product(**body.model_dump())
    db.add(product)
    await db.commit()
    logger.info("Product created", extra={"product_id": str(product.id)})
    return product


async def update_product(db: AsyncSession, product_id: uuid.UUID, body: ProductUpdate) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is None and key != "description":
            continue
        setattr(product, key, value)
    await db.commit()
    return product
