"""iCalendar (RFC 5545) export of an order's pickup window."""

import re
from datetime import date, datetime, time

from storefront.models.order import Order
from storefront.utils.timeutils import utcnow


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", value.lower()) or "storefront"


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def local_stamp(day: date, at: time) -> str:
    return f"{day:%Y%m%d}T{at:%H%M%S}"


def build_pickup_ics(order: Order, brand_name: str, tz_name: str, now: datetime | None = None) -> str:
    event = order.event
    dtstamp = (now or utcnow()).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{brand_name}//Order Pickup//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{order.id}@{_slug(brand_name)}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART;TZID={tz_name}:{local_stamp(event.pickup_date, event.pickup_start)}",
        f"DTEND;TZID={tz_name}:{local_stamp(event.pickup_date, event.pickup_end)}",
        f"SUMMARY:{escape_text(f'Pickup - {event.title}')}",
        f"DESCRIPTION:{escape_text(f'Order {order.id} pickup for {brand_name}.')}",
        f"LOCATION:{escape_text(f'{event.location_name} - {event.location_address}')}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"


def ics_filename(order: Order) -> str:
    return f"pickup-{order.id}.ics"
