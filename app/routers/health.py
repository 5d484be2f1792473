# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + notification channel configuration.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.config import settings
from datetime import datetime, timezone

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Which notification channels are configured (never the secrets themselves)
    """
    result = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": "ok",
        "database": "unknown",
        "channels": {
            "email": "configured" if settings.email_configured else "disabled",
            "whatsapp": "configured" if settings.whatsapp_configured else "disabled",
        },
        "trigger": "configured" if settings.CRON_SECRET else "missing CRON_SECRET",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if not settings.CRON_SECRET:
        result["status"] = "degraded"

    return result
