"""
On-demand summary email: every vehicle of one user with its overall status.
Unlike the expiry scan this ignores the notification window and never touches the ledger.
"""

from dataclasses import dataclass

from app.services.email_dispatcher import EmailDispatcher
from app.services.report_renderer import SimplifiedVehicleView, format_expiry, render_report
from app.services.status_classifier import overall_status
from app.services.vehicle_store import VehicleRecord
from app.services.outcome import OutcomeKind
from app.utils.errors import ConfigurationError, ContactNotFoundError, DispatchError, MissingEmailError
from app.utils.logger import get_logger
from app.utils.timestamps import utcnow

logger = get_logger(__name__)

SUMMARY_SUBJECT = "Your Vehicle Deadline Summary"


@dataclass
class SummaryEmailResult:
    message: str
    vehicles_reported: int
    message_id: str = None


def build_vehicle_views(vehicles: list, now) -> list:
    return [
        SimplifiedVehicleView(
            model=v.model,
            registration_number=v.registration_number,
            tax_expiry_date_formatted=format_expiry(v.tax_expiry_date),
            insurance_expiry_date_formatted=format_expiry(v.insurance_expiry_date),
            overall_status=overall_status(v.tax_expiry_date, v.insurance_expiry_date, now).value,
        )
        for v in vehicles
    ]


async def send_summary_email(user_id: str, vehicle_store, contact_resolver,
                             email_dispatcher: EmailDispatcher, clock=utcnow) -> SummaryEmailResult:
    """
    Raises ConfigurationError, ContactNotFoundError, MissingEmailError,
    BulkFetchError or DispatchError; the router maps each to a status code.
    """
    missing = email_dispatcher.missing_config()
    if missing:
        raise ConfigurationError("Email service", missing)

    contact = await contact_resolver.resolve(user_id)
    if contact.kind is OutcomeKind.NOT_FOUND:
        raise ContactNotFoundError(user_id)
    if not contact.ok:
        raise DispatchError("email", f"could not resolve contact: {contact.error}")
    profile = contact.value
    if not profile.email:
        raise MissingEmailError(user_id)

    batch = await vehicle_store.list_for_user(user_id)
    vehicles: list[VehicleRecord] = batch.records
    views = build_vehicle_views(vehicles, clock())
    html = render_report(profile.label(), views)

    outcome = await email_dispatcher.send(profile.email, html, SUMMARY_SUBJECT, to_name=profile.display_name)
    if not outcome.ok:
        raise DispatchError("email", outcome.error or "unknown error")

    logger.info(f"Summary email sent to user {user_id} with {len(views)} vehicles")
    if not views:
        return SummaryEmailResult("Summary email sent. You have no vehicles to report.", 0, outcome.value)
    return SummaryEmailResult("Summary email sent successfully!", len(views), outcome.value)
