"""
Expiry check trigger — called by an external scheduler (cron).
GET/POST /cron/check-expiries with "Authorization: Bearer <CRON_SECRET>".
Always answers with the run summary; 500 only when the vehicle set could not be read.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import get_session_factory
from app.schemas.scan import ScanSummaryOut
from app.services.contact_resolver import SqlContactResolver
from app.services.email_dispatcher import EmailDispatcher
from app.services.expiry_scan_service import ExpiryScanOrchestrator
from app.services.notification_ledger import SqlNotificationLedger
from app.services.vehicle_store import SqlVehicleStore
from app.services.whatsapp_dispatcher import WhatsAppDispatcher
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def verify_cron_secret(authorization: Optional[str]) -> Optional[JSONResponse]:
    """Returns an error response unless the bearer token matches CRON_SECRET."""
    if not settings.CRON_SECRET:
        logger.critical("CRON_SECRET is not set — refusing to run the expiry check")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            content={"error": "Expiry check trigger is not configured"})
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not secrets.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Unauthorized attempt to access /cron/check-expiries")
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Unauthorized"})
    return None


def get_scan_orchestrator(session_factory=Depends(get_session_factory)) -> ExpiryScanOrchestrator:
    return ExpiryScanOrchestrator(
        vehicle_store=SqlVehicleStore(session_factory),
        contact_resolver=SqlContactResolver(session_factory),
        ledger=SqlNotificationLedger(session_factory),
        email_dispatcher=EmailDispatcher.from_settings(),
        whatsapp_dispatcher=WhatsAppDispatcher.from_settings(),
        notify_window_days=settings.NOTIFY_WINDOW_DAYS,
        resend_cooldown_days=settings.RESEND_COOLDOWN_DAYS,
        notify_expired=settings.NOTIFY_EXPIRED_DOCUMENTS,
        concurrency=settings.SCAN_CONCURRENCY,
        call_timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        time_budget_seconds=settings.SCAN_TIME_BUDGET_SECONDS,
    )


@router.api_route("/cron/check-expiries", methods=["GET", "POST"],
                  response_model=ScanSummaryOut, summary="Run the expiry notification scan")
async def check_expiries(authorization: Optional[str] = Header(None),
                         orchestrator: ExpiryScanOrchestrator = Depends(get_scan_orchestrator)):
    rejected = verify_cron_secret(authorization)
    if rejected is not None:
        return rejected

    summary = await orchestrator.run()
    body = ScanSummaryOut.model_validate(summary).model_dump(by_alias=True, exclude_none=True)
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR if summary.failed else status.HTTP_200_OK
    return JSONResponse(status_code=status_code, content=body)
