from prometheus_client import Counter

CHECKOUTS = Counter(
    "storefront_checkouts_total",
    "Checkout attempts by outcome",
    ["outcome"],  # session_created | rejected | failed
)

WEBHOOK_EVENTS = Counter(
    "storefront_webhook_events_total",
    "Stripe webhook events by outcome",
    ["outcome"],  # confirmed | ignored | missing_order | update_failed | invalid_signature
)

NOTIFICATIONS = Counter(
    "storefront_notifications_total",
    "Outbound notifications by channel and outcome",
    ["channel", "outcome"],  # email|sms, sent|skipped|failed
)

REMINDERS = Counter(
    "storefront_pickup_reminders_total",
    "Pickup reminder sends by kind and outcome",
    ["kind", "outcome"],  # day-before|day-of, sent|failed|stamp_failed
)
