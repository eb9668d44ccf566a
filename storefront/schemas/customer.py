from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class UnifiedCustomerResponse(BaseModel):
    email: str
    name: str | None
    phone: str | None
    sms_opt_in: bool | None
    first_seen: datetime | None
    last_seen: datetime | None
    ordered: bool
    subscribed: bool
    vip: bool
    last_order_status: str | None
    last_order_paid: bool | None

    model_config = {"from_attributes": True}


class CustomerListResponse(BaseModel):
    customers: list[UnifiedCustomerResponse]


class CustomerDetailResponse(UnifiedCustomerResponse):
    notes: str | None
    order_count: int
    paid_order_count: int
    source: str


class CustomerProfileUpdate(BaseModel):
    """Full replacement of the editable profile fields; every key is required."""

    name: str | None
    phone: str | None
    sms_opt_in: bool
    vip: bool
    notes: str | None


class SubscribeRequest(BaseModel):
    email: EmailStr
    name: str | None = Field(default=None, max_length=200)
    phone: str | None = None
    sms_opt_in: bool = False
