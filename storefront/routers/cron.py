import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.clients.sms import SmsSender, get_sms_sender
from storefront.config import settings
from storefront.database import get_db
from storefront.exceptions import StorefrontError
from storefront.routers.errors import to_http
from storefront.services import reminder_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _matches_secret(candidate: str | None) -> bool:
    return bool(settings.cron_secret and candidate) and hmac.compare_digest(
        candidate, settings.cron_secret
    )


def is_cron_authorized(request: Request) -> bool:
    if settings.cron_trusted_header and request.headers.get(settings.cron_trusted_header) == "1":
        return True

    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer ") and _matches_secret(auth[len("Bearer "):]):
        return True

    return _matches_secret(request.query_params.get("secret"))


def require_cron(request: Request) -> None:
    if not is_cron_authorized(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/pickup-reminders/{kind}", dependencies=[Depends(require_cron)])
async def pickup_reminders(
    kind: str,
    db: AsyncSession = Depends(get_db),
    sms_sender: SmsSender = Depends(get_sms_sender),
) -> dict:
    try:
        run = await reminder_service.run_pickup_reminders(db, kind, sms_sender)
    except StorefrontError as exc:
        raise to_http(exc)

    return {
        "ok": True,
        "kind": run.kind,
        "sent": run.sent,
        "failed": run.failed,
        "target_pickup_date": run.target_pickup_date.isoformat() if run.target_pickup_date else None,
        "note": run.note,
    }
