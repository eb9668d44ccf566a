import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import ValidationFailed
from storefront.models.customer import CustomerProfile, Subscriber
from storefront.models.order import Order
from storefront.schemas.customer import (
    CustomerDetailResponse,
    CustomerProfileUpdate,
    SubscribeRequest,
    UnifiedCustomerResponse,
)
from storefront.services.customer_directory import (
    OrderRecord,
    ProfileRecord,
    SubscriberRecord,
    UnifiedCustomer,
    filter_customers,
    normalize_email,
    unify_customers,
)
from storefront.utils.phone import normalize_us_phone, resolve_phone
from storefront.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Loading sources
# ---------------------------------------------------------------------------


def _profile_record(p: CustomerProfile) -> ProfileRecord:
    return ProfileRecord(
        email=p.email,
        name=p.name,
        phone=p.phone,
        sms_opt_in=p.sms_opt_in,
        vip=p.vip,
        updated_at=p.updated_at,
    )


def _subscriber_record(s: Subscriber) -> SubscriberRecord:
    return SubscriberRecord(email=s.email, name=s.name, phone=s.phone, created_at=s.created_at)


def _order_record(o: Order) -> OrderRecord:
    return OrderRecord(
        email=o.email,
        customer_name=o.customer_name,
        phone=o.phone,
        sms_opt_in=o.sms_opt_in,
        paid=o.paid,
        status=o.status,
        created_at=o.created_at,
    )


async def _load_sources(db: AsyncSession, email: str | None = None):
    profiles_q = select(CustomerProfile)
    subs_q = select(Subscriber)
    orders_q = select(Order)
    # Every writer stores normalize_email() output, so equality is enough
    if email is not None:
        profiles_q = profiles_q.where(CustomerProfile.email == email)
        subs_q = subs_q.where(Subscriber.email == email)
        orders_q = orders_q.where(Order.email == email)

    profiles = (await db.execute(profiles_q)).scalars().all()
    subscribers = (await db.execute(subs_q)).scalars().all()
    orders = (await db.execute(orders_q)).scalars().all()
    return profiles, subscribers, orders


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def list_customers(
    db: AsyncSession,
    *,
    search: str = "",
    ordered: bool = False,
    subscribed: bool = False,
    vip: bool = False,
) -> list[UnifiedCustomer]:
    profiles, subscribers, orders = await _load_sources(db)
    customers = unify_customers(
        [_profile_record(p) for p in profiles],
        [_subscriber_record(s) for s in subscribers],
        [_order_record(o) for o in orders],
    )
    return filter_customers(
        customers, search=search, ordered=ordered, subscribed=subscribed, vip=vip
    )


def _source_label(has_orders: bool, has_subscriber: bool, has_profile: bool) -> str:
    if has_orders and has_subscriber:
        return "both"
    if has_orders:
        return "orders"
    if has_subscriber:
        return "subscribers"
    if has_profile:
        return "profile"
    return "unknown"


async def get_customer(db: AsyncSession, raw_email: str) -> CustomerDetailResponse:
    email = normalize_email(raw_email)
    if not email:
        raise ValidationFailed("Missing email")

    profiles, subscribers, orders = await _load_sources(db, email)
    unified = unify_customers(
        [_profile_record(p) for p in profiles],
        [_subscriber_record(s) for s in subscribers],
        [_order_record(o) for o in orders],
    )
    customer = unified[0] if unified else UnifiedCustomer(email=email)

    return CustomerDetailResponse(
        **UnifiedCustomerResponse.model_validate(customer).model_dump(),
        notes=profiles[0].notes if profiles else None,
        order_count=len(orders),
        paid_order_count=sum(1 for o in orders if o.paid),
        source=_source_label(bool(orders), bool(subscribers), bool(profiles)),
    )


async def upsert_profile(db: AsyncSession, raw_email: str, body: CustomerProfileUpdate) -> CustomerProfile:
    email = normalize_email(raw_email)
    if not email:
        raise ValidationFailed("Missing email")

    phone = body.phone.strip() if body.phone else None
    if phone:
        phone = normalize_us_phone(phone)
        if phone is None:
            raise ValidationFailed("Phone number must be a valid US number (10 digits).")

    profile = await db.get(CustomerProfile, email)
    if profile is None:
        profile = CustomerProfile(email=email)
        db.add(profile)

    profile.name = body.name
    profile.phone = phone
    profile.sms_opt_in = body.sms_opt_in
    profile.vip = body.vip
    profile.notes = body.notes
    profile.updated_at = utcnow()
    await db.commit()

    logger.info("Customer profile saved", extra={"email": email, "vip": body.vip})
    return profile


async def subscribe(db: AsyncSession, body: SubscribeRequest) -> Subscriber:
    """Add or refresh a mailing-list entry, keyed by email."""
    email = normalize_email(str(body.email))
    phone = resolve_phone(body.phone, body.sms_opt_in)
    name = (body.name or "").strip() or None

    subscriber = await db.get(Subscriber, email)
    if subscriber is None:
        subscriber = Subscriber(email=email)
        db.add(subscriber)

    subscriber.name = name
    subscriber.phone = phone
    subscriber.sms_opt_in = body.sms_opt_in
    await db.commit()

    logger.info("Subscriber saved", extra={"email": email, "sms_opt_in": body.sms_opt_in})
    return subscriber
