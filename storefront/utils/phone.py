import re

from storefront.exceptions import ValidationFailed

_NON_DIGITS = re.compile(r"\D")


def digits_only(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def normalize_us_phone(value: str) -> str | None:
    """Return the E.164 form of a US number, or None if it is not one.

    Accepts exactly 10 digits, or 11 digits with a leading 1, ignoring any
    punctuation or spaces.
    """
    digits = digits_only(value)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return None


def resolve_phone(phone: str | None, sms_opt_in: bool) -> str | None:
    """Normalise a customer-supplied phone, enforcing the SMS opt-in rule.

    An invalid phone is rejected even without opt-in so that stored numbers
    are always dialable.
    """
    raw = (phone or "").strip()
    normalized = normalize_us_phone(raw) if raw else None

    if sms_opt_in and not normalized:
        raise ValidationFailed("Please enter a valid US phone number to receive SMS reminders.")
    if raw and not normalized:
        raise ValidationFailed("Phone number must be a valid US number (10 digits).")
    return normalized
