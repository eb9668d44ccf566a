"""
Customer directory: merges profiles, mailing-list subscribers and orders into
one record per email.

Everything here is pure; callers load the three row sets however they like
and pass them in. Field precedence:

  name, phone   profile, then subscriber, then latest order
  sms_opt_in    profile (an explicit False counts), then latest order, else None
  vip           profile only
  ordered       any order row; subscribed: any subscriber row
  first_seen    earliest order / subscriber created_at
  last_seen     latest of latest order, subscriber created_at, profile updated_at
  last_order_*  from the order with the greatest created_at
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from storefront.utils.phone import digits_only
from storefront.utils.timeutils import as_utc


@dataclass
class ProfileRecord:
    email: str
    name: str | None = None
    phone: str | None = None
    sms_opt_in: bool | None = None
    vip: bool = False
    updated_at: datetime | None = None


@dataclass
class SubscriberRecord:
    email: str
    name: str | None = None
    phone: str | None = None
    created_at: datetime | None = None


@dataclass
class OrderRecord:
    email: str
    customer_name: str | None = None
    phone: str | None = None
    sms_opt_in: bool | None = None
    paid: bool = False
    status: str | None = None
    created_at: datetime | None = None


@dataclass
class UnifiedCustomer:
    email: str
    name: str | None = None
    phone: str | None = None
    sms_opt_in: bool | None = None
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    ordered: bool = False
    subscribed: bool = False
    vip: bool = False
    last_order_status: str | None = None
    last_order_paid: bool | None = None


@dataclass
class _Sources:
    profile: ProfileRecord | None = None
    subscribers: list[SubscriberRecord] = field(default_factory=list)
    orders: list[OrderRecord] = field(default_factory=list)


def normalize_email(value: str | None) -> str:
    return (value or "").strip().casefold()


def _present(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


def _first_present(*values: str | None) -> str | None:
    for value in values:
        if _present(value) is not None:
            return value
    return None


def _ts(value: datetime | None) -> datetime | None:
    return as_utc(value)


def _newer(a: datetime | None, b: datetime | None) -> bool:
    if a is None:
        return False
    if b is None:
        return True
    return _ts(a) > _ts(b)


def _latest(records, attr: str):
    dated = [r for r in records if getattr(r, attr) is not None]
    if not dated:
        return records[0] if records else None
    return max(dated, key=lambda r: _ts(getattr(r, attr)))


def _merge(email: str, src: _Sources) -> UnifiedCustomer:
    profile = src.profile
    latest_order = _latest(src.orders, "created_at")
    latest_sub = _latest(src.subscribers, "created_at")

    name = _first_present(
        profile.name if profile else None,
        latest_sub.name if latest_sub else None,
        latest_order.customer_name if latest_order else None,
    )
    phone = _first_present(
        profile.phone if profile else None,
        latest_sub.phone if latest_sub else None,
        latest_order.phone if latest_order else None,
    )

    if profile is not None and profile.sms_opt_in is not None:
        sms_opt_in = profile.sms_opt_in
    elif latest_order is not None:
        sms_opt_in = latest_order.sms_opt_in is True
    else:
        sms_opt_in = None

    first_candidates = [_ts(o.created_at) for o in src.orders] + [
        _ts(s.created_at) for s in src.subscribers
    ]
    first_candidates = [t for t in first_candidates if t is not None]

    last_candidates = [
        _ts(latest_order.created_at) if latest_order else None,
        _ts(latest_sub.created_at) if latest_sub else None,
        _ts(profile.updated_at) if profile else None,
    ]
    last_candidates = [t for t in last_candidates if t is not None]

    return UnifiedCustomer(
        email=email,
        name=name,
        phone=phone,
        sms_opt_in=sms_opt_in,
        first_seen=min(first_candidates) if first_candidates else None,
        last_seen=max(last_candidates) if last_candidates else None,
        ordered=bool(src.orders),
        subscribed=bool(src.subscribers),
        vip=profile is not None and profile.vip is True,
        last_order_status=latest_order.status if latest_order else None,
        last_order_paid=latest_order.paid if latest_order else None,
    )


def unify_customers(
    profiles: Iterable[ProfileRecord],
    subscribers: Iterable[SubscriberRecord],
    orders: Iterable[OrderRecord],
) -> list[UnifiedCustomer]:
    """One UnifiedCustomer per normalised email, most recently seen first."""
    sources: dict[str, _Sources] = {}

    for p in profiles:
        email = normalize_email(p.email)
        if not email:
            continue
        src = sources.setdefault(email, _Sources())
        # Two profiles can collide after case-folding; the newer edit wins
        if src.profile is None or _newer(p.updated_at, src.profile.updated_at):
            src.profile = p

    for s in subscribers:
        email = normalize_email(s.email)
        if email:
            sources.setdefault(email, _Sources()).subscribers.append(s)

    for o in orders:
        email = normalize_email(o.email)
        if email:
            sources.setdefault(email, _Sources()).orders.append(o)

    customers = [_merge(email, src) for email, src in sources.items()]
    return sort_by_last_seen(customers)


def sort_by_last_seen(customers: list[UnifiedCustomer]) -> list[UnifiedCustomer]:
    # Never-seen records sink to the bottom
    return sorted(
        customers,
        key=lambda c: (c.last_seen is not None, c.last_seen.timestamp() if c.last_seen else 0.0),
        reverse=True,
    )


def matches_search(customer: UnifiedCustomer, search: str) -> bool:
    term = search.strip().casefold()
    if not term:
        return True
    if term in (customer.name or "").casefold():
        return True
    if term in customer.email.casefold():
        return True
    # Digit matching only for phone-like input ("(312) 555", "312-555")
    term_digits = digits_only(term)
    if term_digits and not any(ch.isalpha() or ch == "@" for ch in term):
        if term_digits in digits_only(customer.phone):
            return True
    return term in (customer.phone or "").casefold()


def filter_customers(
    customers: Iterable[UnifiedCustomer],
    *,
    search: str = "",
    ordered: bool = False,
    subscribed: bool = False,
    vip: bool = False,
) -> list[UnifiedCustomer]:
    """Apply the admin list filters. A False flag means "don't filter"."""
    result = []
    for c in customers:
        if ordered and not c.ordered:
            continue
        if subscribed and not c.subscribed:
            continue
        if vip and not c.vip:
            continue
        if search and not matches_search(c, search):
            continue
        result.append(c)
    return result
