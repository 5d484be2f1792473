"""
Notification ledger — "document X of vehicle V was last notified at T".

Stored on the vehicle row (last_tax_notification_sent /
last_insurance_notification_sent). Writes never move a timestamp backwards,
so repeating a write with the same or an older time is harmless.
"""

import asyncio
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.database import SessionLocal
from app.models.vehicle import Vehicle
from app.services.outcome import Outcome
from app.services.vehicle_store import DocumentType
from app.utils.errors import LedgerWriteError
from app.utils.logger import get_logger
from app.utils.timestamps import ensure_utc, to_utc_datetime, utcnow

logger = get_logger(__name__)

LEDGER_COLUMNS = {
    DocumentType.TAX: "last_tax_notification_sent",
    DocumentType.INSURANCE: "last_insurance_notification_sent",
}


class SqlNotificationLedger:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    async def record_sent(self, vehicle_id: str, document_type: DocumentType, at: datetime) -> Outcome:
        return await asyncio.to_thread(
            self._record_sent, vehicle_id, DocumentType(document_type), ensure_utc(at)
        )

    def _record_sent(self, vehicle_id: str, document_type: DocumentType, at: datetime) -> Outcome:
        column = LEDGER_COLUMNS[document_type]
        db = self.session_factory()
        try:
            vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
            if vehicle is None:
                return Outcome.not_found(f"Vehicle {vehicle_id} no longer exists")

            current = to_utc_datetime(getattr(vehicle, column), vehicle_id, column)
            if current is None or at > current:
                setattr(vehicle, column, at)
            vehicle.updated_at = utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            error = LedgerWriteError(f"Could not record {column} for vehicle {vehicle_id}: {e}")
            logger.error(str(error))
            return Outcome.transient(str(error))
        finally:
            db.close()

        logger.debug(f"Ledger: vehicle {vehicle_id} {column} = {at.isoformat()}")
        return Outcome.success()

    def last_sent(self, vehicle_id: str, document_type: DocumentType) -> Optional[datetime]:
        column = LEDGER_COLUMNS[DocumentType(document_type)]
        db = self.session_factory()
        try:
            vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
            if vehicle is None:
                return None
            return to_utc_datetime(getattr(vehicle, column), vehicle_id, column)
        finally:
            db.close()
