# app/schemas/scan.py
from pydantic import BaseModel, Field
from typing import Optional


class ScanSummaryOut(BaseModel):
    message: str
    vehicles_checked: int = Field(serialization_alias="vehiclesChecked")
    email_notifications_sent: int = Field(serialization_alias="emailNotificationsSent")
    whatsapp_notifications_sent: int = Field(serialization_alias="whatsappNotificationsSent")
    errors_encountered: int = Field(serialization_alias="errorsEncountered")
    skipped_no_contact: int = Field(0, serialization_alias="skippedNoContact")
    ledger_write_failures: int = Field(0, serialization_alias="ledgerWriteFailures")
    malformed_records: int = Field(0, serialization_alias="malformedRecords")
    truncated: bool = False
    details: list[str] = []
    error: Optional[str] = None

    class Config:
        from_attributes = True
