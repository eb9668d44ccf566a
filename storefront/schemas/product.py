import uuid

from pydantic import BaseModel, Field


class ProductResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    price_cents: int
    is_active: bool

    model_config = {"from_attributes": True}


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    price_cents: int = Field(gt=0)
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    price_cents: int | None = Field(default=None, gt=0)
    is_active: bool | None = None


class MenuItemResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    price_cents: int
    sort_order: int
