from jinja2 import Environment, PackageLoader, select_autoescape

from storefront.models.event import Event
from storefront.schemas.order import OrderSummary
from storefront.utils.timeutils import time_label

DAY_BEFORE = "day-before"
DAY_OF = "day-of"


def format_dollars(cents: int) -> str:
    return f"${cents / 100:.2f}"


_env = Environment(
    loader=PackageLoader("storefront", "templates"),
    autoescape=select_autoescape(["html"]),
)
_env.filters["dollars"] = format_dollars
_env.filters["clock"] = time_label


def receipt_url(base_url: str, order: OrderSummary) -> str:
    return f"{base_url.rstrip('/')}/order/{order.id}?t={order.public_token}"


def confirmation_subject(brand_name: str) -> str:
    return f"Your {brand_name} order is confirmed"


def render_confirmation_email(order: OrderSummary, base_url: str, brand_name: str) -> str:
    template = _env.get_template("order_confirmation.html")
    return template.render(
        order=order,
        receipt_url=receipt_url(base_url, order),
        brand_name=brand_name,
    )


def pickup_reminder_text(event: Event, kind: str) -> str:
    window = f"{time_label(event.pickup_start)}-{time_label(event.pickup_end)}"
    day = event.pickup_date.isoformat()
    if kind == DAY_OF:
        return (
            f"Today is pickup day! {event.title} pickup is today ({day}) {window} "
            f"at {event.location_name}. {event.location_address}"
        )
    return (
        f"Reminder: pickup is tomorrow. {event.title} pickup is {day} {window} "
        f"at {event.location_name}. {event.location_address}"
    )
