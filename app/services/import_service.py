"""
Loads document-store exports into the database.

  vehicles      {doc_id: {userId, model, registrationNumber, taxExpiryDate, ...}}
  auth accounts {"users": [{localId, email, displayName, phoneNumber}]}
  user settings {uid: {phoneNumber}}

Vehicle documents go through VehicleRecord.from_document, so malformed ones are
rejected with the reason instead of being imported with guessed values.
Existing rows with the same id are updated in place.
"""

from sqlalchemy.orm import Session

from app.models.user import UserAccount, UserSettings
from app.models.vehicle import Vehicle
from app.services.vehicle_store import VehicleRecord
from app.utils.errors import MalformedRecordError
from app.utils.logger import get_logger
from app.utils.timestamps import to_utc_datetime, utcnow

logger = get_logger(__name__)


def import_vehicle_documents(db: Session, documents: dict):
    """Returns (imported_count, [(doc_id, reason), ...])."""
    imported, rejected = 0, []
    for doc_id, data in documents.items():
        data = data or {}
        try:
            record = VehicleRecord.from_document(doc_id, data)
            created_at = to_utc_datetime(data.get("createdAt"), doc_id, "createdAt") or utcnow()
        except MalformedRecordError as e:
            logger.warning(f"Rejected vehicle document: {e}")
            rejected.append((doc_id, str(e)))
            continue

        vehicle = db.get(Vehicle, record.id) or Vehicle(id=record.id, created_at=created_at)
        vehicle.user_id = record.user_id
        vehicle.model = record.model
        vehicle.registration_number = record.registration_number
        vehicle.tax_expiry_date = record.tax_expiry_date
        vehicle.insurance_expiry_date = record.insurance_expiry_date
        vehicle.insurance_company = record.insurance_company
        vehicle.member_id = record.member_id
        vehicle.member_name = record.member_name
        vehicle.last_tax_notification_sent = record.last_tax_notification_sent
        vehicle.last_insurance_notification_sent = record.last_insurance_notification_sent
        vehicle.updated_at = utcnow()
        db.add(vehicle)
        imported += 1

    db.commit()
    logger.info(f"Imported {imported} vehicles, rejected {len(rejected)}")
    return imported, rejected


def import_auth_accounts(db: Session, export: dict) -> int:
    count = 0
    for user in export.get("users", []):
        uid = user.get("localId") or user.get("uid")
        if not uid:
            logger.warning(f"Skipping auth account without uid: {user}")
            continue
        account = db.get(UserAccount, uid) or UserAccount(uid=uid)
        account.email = user.get("email")
        account.display_name = user.get("displayName")
        account.phone_number = user.get("phoneNumber")
        db.add(account)
        count += 1
    db.commit()
    return count


def import_user_settings(db: Session, documents: dict) -> int:
    count = 0
    for uid, data in documents.items():
        phone = (data or {}).get("phoneNumber")
        settings_row = db.get(UserSettings, uid) or UserSettings(user_id=uid)
        settings_row.phone_number = "".join(phone.split()) if phone else None
        settings_row.updated_at = utcnow()
        db.add(settings_row)
        count += 1
    db.commit()
    return count
