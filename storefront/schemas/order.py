import uuid
from datetime import date, datetime, time

from pydantic import BaseModel, EmailStr, Field

from storefront.schemas.event import EventResponse


class CartItem(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(gt=0)


class CheckoutCustomer(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str | None = None
    sms_opt_in: bool = False


class CheckoutRequest(BaseModel):
    event_id: uuid.UUID
    customer: CheckoutCustomer
    items: list[CartItem] = Field(min_length=1)


class CheckoutResponse(BaseModel):
    url: str


class PickupDetails(BaseModel):
    title: str
    pickup_date: date
    pickup_start: time
    pickup_end: time
    location_name: str
    location_address: str


class OrderLine(BaseModel):
    product_name: str
    qty: int
    unit_price_cents: int
    line_total_cents: int


class OrderSummary(BaseModel):
    id: uuid.UUID
    status: str
    paid: bool
    total_cents: int
    customer_name: str
    email: str
    phone: str | None
    created_at: datetime
    public_token: str
    event: PickupDetails
    items: list[OrderLine]


class AdminOrderResponse(BaseModel):
    id: uuid.UUID
    status: str
    paid: bool
    total_cents: int
    customer_name: str
    email: str
    phone: str | None
    sms_opt_in: bool
    created_at: datetime
    public_token: str
    stripe_session_id: str | None
    stripe_payment_intent_id: str | None

    model_config = {"from_attributes": True}


class OrderTotals(BaseModel):
    count_total: int = 0
    count_paid: int = 0
    count_unpaid: int = 0
    revenue_total_cents: int = 0
    revenue_paid_cents: int = 0


class EventOrdersResponse(BaseModel):
    event: EventResponse
    totals: OrderTotals
    orders: list[AdminOrderResponse]

