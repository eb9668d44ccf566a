import logging

import httpx

from storefront.config import settings
from storefront.exceptions import NotificationError

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class SmsSender:
    """Outbound SMS through Twilio's Messages endpoint. Never retries."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str, timeout: float = 10.0):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, to: str, body: str) -> None:
        if not self.configured:
            raise NotificationError("SMS sender is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                    auth=(self.account_sid, self.auth_token),
                    data={"From": self.from_number, "To": to, "Body": body},
                )
        except httpx.HTTPError as exc:
            raise NotificationError(f"SMS request failed: {exc}") from exc

        if resp.is_error:
            raise NotificationError(f"SMS rejected ({resp.status_code}): {resp.text}")


def get_sms_sender() -> SmsSender:
    return SmsSender(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number,
        timeout=settings.http_timeout,
    )
