"""
Bulk read of every tracked vehicle, across all owners.

Rows are converted once, here, into VehicleRecord: expiry values become
`date`, ledger timestamps become aware UTC `datetime`. A row that cannot be
converted is reported as rejected instead of being patched with defaults.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.database import SessionLocal
from app.models.vehicle import Vehicle
from app.utils.errors import BulkFetchError, MalformedRecordError
from app.utils.logger import get_logger
from app.utils.timestamps import to_date, to_utc_datetime

logger = get_logger(__name__)


class DocumentType(str, Enum):
    TAX = "tax"
    INSURANCE = "insurance"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class VehicleRecord:
    id: str
    user_id: str
    model: str
    registration_number: str
    tax_expiry_date: date
    insurance_expiry_date: date
    insurance_company: Optional[str] = None
    member_id: Optional[str] = None
    member_name: Optional[str] = None
    last_tax_notification_sent: Optional[datetime] = None
    last_insurance_notification_sent: Optional[datetime] = None

    def expiry_for(self, document_type: DocumentType) -> date:
        if document_type is DocumentType.TAX:
            return self.tax_expiry_date
        return self.insurance_expiry_date

    def last_sent_for(self, document_type: DocumentType) -> Optional[datetime]:
        if document_type is DocumentType.TAX:
            return self.last_tax_notification_sent
        return self.last_insurance_notification_sent

    @classmethod
    def _build(cls, record_id, get) -> "VehicleRecord":
        def required_text(name, key):
            value = get(key)
            if not isinstance(value, str) or not value.strip():
                raise MalformedRecordError(record_id, name, "is missing or not a string")
            return value

        def optional_text(key):
            value = get(key)
            return value if isinstance(value, str) and value else None

        return cls(
            id=str(record_id),
            user_id=required_text("user_id", "user_id"),
            model=required_text("model", "model"),
            registration_number=required_text("registration_number", "registration_number"),
            tax_expiry_date=to_date(get("tax_expiry_date"), record_id, "tax_expiry_date"),
            insurance_expiry_date=to_date(get("insurance_expiry_date"), record_id, "insurance_expiry_date"),
            insurance_company=optional_text("insurance_company"),
            member_id=optional_text("member_id"),
            member_name=optional_text("member_name"),
            last_tax_notification_sent=to_utc_datetime(
                get("last_tax_notification_sent"), record_id, "last_tax_notification_sent"),
            last_insurance_notification_sent=to_utc_datetime(
                get("last_insurance_notification_sent"), record_id, "last_insurance_notification_sent"),
        )

    @classmethod
    def from_row(cls, row: Vehicle) -> "VehicleRecord":
        return cls._build(row.id, lambda key: getattr(row, key))

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "VehicleRecord":
        """Build from a document-store export (camelCase keys)."""
        keys = {
            "user_id": "userId",
            "model": "model",
            "registration_number": "registrationNumber",
            "tax_expiry_date": "taxExpiryDate",
            "insurance_expiry_date": "insuranceExpiryDate",
            "insurance_company": "insuranceCompany",
            "member_id": "memberId",
            "member_name": "memberName",
            "last_tax_notification_sent": "lastTaxNotificationSent",
            "last_insurance_notification_sent": "lastInsuranceNotificationSent",
        }
        return cls._build(doc_id, lambda key: data.get(keys[key]))


@dataclass
class VehicleBatch:
    records: list = field(default_factory=list)
    rejected: list = field(default_factory=list)   # (vehicle_id, reason)


def _to_batch(rows) -> VehicleBatch:
    batch = VehicleBatch()
    for row in rows:
        try:
            batch.records.append(VehicleRecord.from_row(row))
        except MalformedRecordError as e:
            logger.error(f"Malformed vehicle row skipped: {e}")
            batch.rejected.append((row.id, str(e)))
    return batch


class SqlVehicleStore:
    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    async def list_vehicles(self) -> VehicleBatch:
        return await asyncio.to_thread(self._fetch, None)

    async def list_for_user(self, user_id: str) -> VehicleBatch:
        return await asyncio.to_thread(self._fetch, user_id)

    def _fetch(self, user_id: Optional[str]) -> VehicleBatch:
        scope = "all owners" if user_id is None else f"user {user_id}"
        db = self.session_factory()
        try:
            query = db.query(Vehicle)
            if user_id is not None:
                query = query.filter(Vehicle.user_id == user_id)
            rows = query.order_by(Vehicle.created_at, Vehicle.id).all()
            return _to_batch(rows)
        except SQLAlchemyError as e:
            logger.error(f"Vehicle fetch for {scope} failed: {e}", exc_info=True)
            raise BulkFetchError(f"Could not read vehicles for {scope}: {e}") from e
        finally:
            db.close()
