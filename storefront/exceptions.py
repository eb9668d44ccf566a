class StorefrontError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(StorefrontError):
    """Input was well-formed but not acceptable. Nothing was written."""

    status_code = 400


class NotFound(StorefrontError):
    status_code = 404


class Conflict(StorefrontError):
    status_code = 409


class CheckoutFailed(StorefrontError):
    """A dependency failed mid-checkout. The message is safe to show customers."""

    status_code = 500


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------


class PaymentGatewayError(Exception):
    """The payment processor could not be reached or rejected the request."""


class WebhookVerificationError(Exception):
    """A webhook payload failed signature verification."""


class NotificationError(Exception):
    """An email or SMS could not be delivered."""
