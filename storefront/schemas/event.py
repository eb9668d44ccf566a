import uuid
from datetime import date, datetime, time

from pydantic import BaseModel, Field

from storefront.schemas.product import MenuItemResponse


class EventResponse(BaseModel):
    id: uuid.UUID
    title: str
    pickup_date: date
    pickup_start: time
    pickup_end: time
    location_name: str
    location_address: str
    deadline: datetime
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class EventStats(BaseModel):
    orders_total: int = 0
    orders_paid: int = 0
    orders_unpaid: int = 0
    revenue_total_cents: int = 0
    revenue_paid_cents: int = 0


class EventWithStatsResponse(EventResponse):
    stats: EventStats


class ActiveEventResponse(BaseModel):
    id: uuid.UUID
    title: str
    pickup_date: date
    pickup_start: time
    pickup_end: time
    location_name: str
    location_address: str
    deadline: datetime
    menu: list[MenuItemResponse]


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    pickup_date: date
    pickup_start: time
    pickup_end: time
    location_name: str
    location_address: str
    # ISO-8601; values without an offset are read in the pickup time zone
    deadline: str


class EventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    pickup_date: date | None = None
    pickup_start: time | None = None
    pickup_end: time | None = None
    location_name: str | None = None
    location_address: str | None = None
    deadline: str | None = None


class MenuEntry(BaseModel):
    product_id: uuid.UUID
    sort_order: int = 0
    is_active: bool = True


class MenuReplace(BaseModel):
    items: list[MenuEntry]
