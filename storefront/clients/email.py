import logging

import httpx

from storefront.config import settings
from storefront.exceptions import NotificationError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailSender:
    """Transactional email through the Resend REST API."""

    def __init__(self, api_key: str, from_email: str, timeout: float = 10.0):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self.api_key or not self.from_email:
            raise NotificationError("Email sender is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_email,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                    },
                )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Email request failed: {exc}") from exc

        if resp.is_error:
            raise NotificationError(f"Email rejected ({resp.status_code}): {resp.text}")

        logger.debug("Email accepted", extra={"to": to, "status_code": resp.status_code})


def get_email_sender() -> EmailSender:
    return EmailSender(
        api_key=settings.resend_api_key,
        from_email=settings.email_from,
        timeout=settings.http_timeout,
    )
