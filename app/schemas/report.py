# app/schemas/report.py
from pydantic import BaseModel, Field
from typing import Optional


class SummaryEmailOut(BaseModel):
    success: bool
    message: str
    vehicles_reported: int = Field(0, serialization_alias="vehiclesReported")
    message_id: Optional[str] = Field(None, serialization_alias="messageId")

    class Config:
        from_attributes = True
