"""
Tracked vehicles table.
Each row belongs to one user and carries two independently-expiring documents
(road tax and insurance), plus the notification ledger for each of them.
The expiry scan only ever writes the last_*_notification_sent columns and updated_at.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Date, DateTime
from app.database import Base


def _new_id():
    return uuid.uuid4().hex


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(128), nullable=False, index=True)
    model = Column(String(200), nullable=False)
    registration_number = Column(String(50), nullable=False)
    tax_expiry_date = Column(Date, nullable=False)
    insurance_expiry_date = Column(Date, nullable=False)
    insurance_company = Column(String(200))
    member_id = Column(String(64))
    member_name = Column(String(200))
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    # Notification ledger — null until the first successful send
    last_tax_notification_sent = Column(DateTime(timezone=True))
    last_insurance_notification_sent = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<Vehicle {self.id} reg={self.registration_number} user={self.user_id}>"
