"""Summary email endpoint — sends one user a table of all their vehicles."""

from fastapi import APIRouter, Depends, HTTPException

from app.database import get_session_factory
from app.schemas.report import SummaryEmailOut
from app.services.contact_resolver import SqlContactResolver
from app.services.email_dispatcher import EmailDispatcher
from app.services.summary_report_service import send_summary_email
from app.services.vehicle_store import SqlVehicleStore
from app.utils.errors import (
    BulkFetchError,
    ConfigurationError,
    ContactNotFoundError,
    DispatchError,
    MissingEmailError,
)
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def get_email_dispatcher() -> EmailDispatcher:
    return EmailDispatcher.from_settings()


@router.post("/users/{user_id}/summary-email", summary="Email a user their vehicle summary")
async def post_summary_email(user_id: str, session_factory=Depends(get_session_factory),
                             email_dispatcher: EmailDispatcher = Depends(get_email_dispatcher)):
    try:
        result = await send_summary_email(
            user_id, SqlVehicleStore(session_factory), SqlContactResolver(session_factory), email_dispatcher,
        )
    except ConfigurationError as e:
        logger.error(str(e))
        raise HTTPException(status_code=503, detail=str(e))
    except ContactNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MissingEmailError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (DispatchError, BulkFetchError) as e:
        logger.error(f"Summary email for user {user_id} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return SummaryEmailOut(
        success=True,
        message=result.message,
        vehicles_reported=result.vehicles_reported,
        message_id=result.message_id,
    ).model_dump(by_alias=True)
