"""
Error taxonomy for the expiry notifier.

Only BulkFetchError and configuration failures detected before a scan starts
may end a run. Everything else is caught at the orchestrator boundary and turned
into a diagnostic line plus a counter.
"""


class DeadlineMindError(Exception):
    """Base class for every error raised by this service."""


class ConfigurationError(DeadlineMindError):
    """A required secret or provider setting is absent."""

    def __init__(self, component: str, missing: list):
        self.component = component
        self.missing = list(missing)
        super().__init__(f"{component} is not configured. Missing: {', '.join(self.missing)}")


class ContactNotFoundError(DeadlineMindError):
    """No recipient profile exists for a user id."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No profile found for user {user_id}")


class MissingEmailError(DeadlineMindError):
    """The user exists but has no email address."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} has no email address")


class DispatchError(DeadlineMindError):
    """A provider rejected a message, or the call timed out."""

    def __init__(self, channel: str, message: str, status_code=None):
        self.channel = channel
        self.status_code = status_code
        super().__init__(f"{channel} dispatch failed: {message}")


class LedgerWriteError(DeadlineMindError):
    """A notification was sent but its timestamp could not be stored."""


class BulkFetchError(DeadlineMindError):
    """The vehicle set could not be read; the scan cannot proceed."""


class MalformedRecordError(DeadlineMindError):
    """A stored record does not match the expected shape."""

    def __init__(self, record_id, field: str, detail: str):
        self.record_id = record_id
        self.field = field
        super().__init__(f"Record {record_id}: field '{field}' {detail}")
