"""
Notification recipients.

UserAccount mirrors the authentication provider's user record (email, name).
UserSettings holds what the user entered in the app itself — currently the
WhatsApp phone number. The two are read together by the contact resolver.
"""

from sqlalchemy import Column, String, DateTime
from app.database import Base


class UserAccount(Base):
    __tablename__ = "user_accounts"

    uid = Column(String(128), primary_key=True)
    email = Column(String(320))
    display_name = Column(String(200))
    phone_number = Column(String(32))   # Phone registered with the auth provider, if any
    created_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<UserAccount {self.uid} email={self.email}>"


class UserSettings(Base):
    __tablename__ = "user_settings"

    user_id = Column(String(128), primary_key=True)
    phone_number = Column(String(32))   # WhatsApp number, stored without spaces
    updated_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<UserSettings {self.user_id} phone={self.phone_number}>"
