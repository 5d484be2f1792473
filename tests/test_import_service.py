"""Unit tests for importing document-store exports."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date
from app.models.user import UserAccount, UserSettings
from app.models.vehicle import Vehicle
from app.services.import_service import import_auth_accounts, import_user_settings, import_vehicle_documents


class TestImportVehicles:
    def test_imports_valid_and_rejects_malformed(self, db):
        documents = {
            "veh-1": {
                "userId": "user-1", "model": "Corolla", "registrationNumber": "KA01AB1234",
                "taxExpiryDate": {"_seconds": 1792800000, "_nanoseconds": 0},
                "insuranceExpiryDate": "2027-03-01T00:00:00Z",
                "lastTaxNotificationSent": {"seconds": 1792540800, "nanoseconds": 0},
            },
            "veh-2": {"userId": "user-1", "model": "Swift", "registrationNumber": "R2",
                      "taxExpiryDate": "soon", "insuranceExpiryDate": "2027-03-01"},
        }

        imported, rejected = import_vehicle_documents(db, documents)

        assert imported == 1
        assert [doc_id for doc_id, _ in rejected] == ["veh-2"]
        vehicle = db.get(Vehicle, "veh-1")
        assert vehicle.tax_expiry_date == date(2026, 10, 24)
        assert vehicle.last_tax_notification_sent is not None
        assert db.get(Vehicle, "veh-2") is None

    def test_reimport_updates_in_place(self, db):
        doc = {"userId": "user-1", "model": "Corolla", "registrationNumber": "OLD",
               "taxExpiryDate": "2026-10-24", "insuranceExpiryDate": "2027-03-01"}
        import_vehicle_documents(db, {"veh-1": doc})
        import_vehicle_documents(db, {"veh-1": dict(doc, registrationNumber="NEW")})

        assert db.query(Vehicle).count() == 1
        assert db.get(Vehicle, "veh-1").registration_number == "NEW"


class TestImportUsers:
    def test_accounts_and_settings(self, db):
        import_auth_accounts(db, {"users": [
            {"localId": "user-1", "email": "jane@example.com", "displayName": "Jane"},
            {"email": "orphan@example.com"},
        ]})
        import_user_settings(db, {"user-1": {"phoneNumber": "+91 98765 43210"}})

        assert db.query(UserAccount).count() == 1
        assert db.get(UserSettings, "user-1").phone_number == "+919876543210"
