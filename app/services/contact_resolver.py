"""
Resolves a vehicle owner's contact details.

Email and display name come from the auth account mirror (user_accounts);
the WhatsApp number comes from the user's own settings (user_settings),
falling back to a phone number registered on the account.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.database import SessionLocal
from app.models.user import UserAccount, UserSettings
from app.services.outcome import Outcome
from app.utils.errors import ContactNotFoundError
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UserProfile:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    phone_number: Optional[str] = None

    @property
    def has_channel(self) -> bool:
        return bool(self.email or self.phone_number)

    def label(self, fallback: str = "there") -> str:
        """Name used to greet the recipient."""
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@")[0]
        return fallback


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class SqlContactResolver:
    """
    Queries run in a worker thread on a session of their own, so a slow
    database can be cut off by the caller's timeout.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    async def resolve(self, user_id: str) -> Outcome:
        """Outcome.value is a UserProfile when found."""
        return await asyncio.to_thread(self._resolve, user_id)

    def _resolve(self, user_id: str) -> Outcome:
        db = self.session_factory()
        try:
            account = db.query(UserAccount).filter(UserAccount.uid == user_id).first()
            user_settings = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Contact lookup failed for user {user_id}: {e}")
            return Outcome.transient(f"Contact lookup failed for user {user_id}: {e}")
        finally:
            db.close()

        if account is None and user_settings is None:
            logger.warning(f"No profile found for user {user_id}")
            return Outcome.not_found(str(ContactNotFoundError(user_id)))

        phone = _clean(user_settings.phone_number) if user_settings else None
        if phone is None and account is not None:
            phone = _clean(account.phone_number)

        return Outcome.success(UserProfile(
            uid=user_id,
            email=_clean(account.email) if account else None,
            display_name=_clean(account.display_name) if account else None,
            phone_number=phone,
        ))
