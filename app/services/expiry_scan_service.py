"""
Expiry scan — the scheduled notification job.

For every tracked vehicle and each of its two documents (tax, insurance):
  1. decide eligibility (notification window + resend cooldown)
  2. resolve the owner's contact once per vehicle (cached per user for the run)
  3. send email and WhatsApp independently, on whichever channels are configured
  4. record the ledger timestamp once if at least one channel delivered

One vehicle's failure never stops the scan: every problem becomes a line in the
diagnostic trail plus a counter. Only the bulk vehicle fetch can fail the run.
Vehicles are processed concurrently up to `concurrency`; the trail is merged
back in fetch order so the output is stable.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from app.services.eligibility import (
    DEFAULT_NOTIFY_WINDOW_DAYS,
    DEFAULT_RESEND_COOLDOWN_DAYS,
    EligibilityReason,
    evaluate,
)
from app.services.outcome import Outcome, OutcomeKind
from app.services.report_renderer import SimplifiedVehicleView, format_expiry, render_report
from app.services.status_classifier import classify
from app.services.vehicle_store import DocumentType, VehicleRecord
from app.utils.errors import BulkFetchError
from app.utils.logger import get_logger
from app.utils.timestamps import utcnow

logger = get_logger(__name__)


@dataclass
class RunSummary:
    message: str = ""
    vehicles_checked: int = 0
    email_notifications_sent: int = 0
    whatsapp_notifications_sent: int = 0
    errors_encountered: int = 0
    skipped_no_contact: int = 0
    ledger_write_failures: int = 0
    malformed_records: int = 0
    truncated: bool = False
    details: list = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def absorb(self, other: "RunSummary"):
        self.vehicles_checked += other.vehicles_checked
        self.email_notifications_sent += other.email_notifications_sent
        self.whatsapp_notifications_sent += other.whatsapp_notifications_sent
        self.errors_encountered += other.errors_encountered
        self.skipped_no_contact += other.skipped_no_contact
        self.ledger_write_failures += other.ledger_write_failures
        self.details.extend(other.details)


class ExpiryScanOrchestrator:
    def __init__(
        self,
        vehicle_store,
        contact_resolver,
        ledger,
        email_dispatcher=None,
        whatsapp_dispatcher=None,
        renderer: Callable = render_report,
        clock: Callable = utcnow,
        notify_window_days: int = DEFAULT_NOTIFY_WINDOW_DAYS,
        resend_cooldown_days: int = DEFAULT_RESEND_COOLDOWN_DAYS,
        notify_expired: bool = False,
        concurrency: int = 4,
        call_timeout_seconds: float = 15.0,
        time_budget_seconds: float = 0,
    ):
        self.vehicle_store = vehicle_store
        self.contact_resolver = contact_resolver
        self.ledger = ledger
        self.email_dispatcher = email_dispatcher
        self.whatsapp_dispatcher = whatsapp_dispatcher
        self.renderer = renderer
        self.clock = clock
        self.notify_window_days = notify_window_days
        self.resend_cooldown_days = resend_cooldown_days
        self.notify_expired = notify_expired
        self.concurrency = max(1, concurrency)
        self.call_timeout_seconds = call_timeout_seconds
        self.time_budget_seconds = time_budget_seconds
        self._stop_requested = False

    def request_stop(self):
        """Finish the vehicles already in progress, then return a partial summary."""
        self._stop_requested = True

    # ── Run ──────────────────────────────────────────────────────────────────

    async def run(self) -> RunSummary:
        summary = RunSummary()
        started = time.monotonic()
        logger.info(f"Expiry check started at {self.clock().isoformat()}")

        email_enabled = self._channel_enabled(self.email_dispatcher, "Email", summary)
        whatsapp_enabled = self._channel_enabled(self.whatsapp_dispatcher, "WhatsApp", summary)

        try:
            batch = await self._call(self.vehicle_store.list_vehicles())
        except (BulkFetchError, asyncio.TimeoutError) as e:
            reason = str(e) or f"vehicle fetch timed out after {self.call_timeout_seconds}s"
            logger.error(f"Expiry check aborted — could not fetch vehicles: {reason}")
            summary.errors_encountered += 1
            summary.details.append(f"CRITICAL ERROR during processing: {reason}")
            summary.error = "Failed to process expiry checks."
            summary.message = "Expiry check failed with critical error."
            return summary

        summary.details.append(f"Found {len(batch.records)} vehicles to check.")
        for vehicle_id, reason in batch.rejected:
            summary.malformed_records += 1
            summary.errors_encountered += 1
            summary.details.append(f"Vehicle {vehicle_id}: skipped, malformed record ({reason}).")

        contacts = {}
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(vehicle: VehicleRecord):
            async with semaphore:
                if self._should_stop(started):
                    return None
                return await self._process_vehicle_safely(vehicle, contacts, email_enabled, whatsapp_enabled)

        results = await asyncio.gather(*(guarded(v) for v in batch.records))

        not_started = 0
        for result in results:
            if result is None:
                not_started += 1
            else:
                summary.absorb(result)

        if not_started:
            summary.truncated = True
            summary.details.append(f"Scan stopped early; {not_started} vehicles left for the next run.")
            summary.message = "Expiry check stopped early."
        else:
            summary.message = "Expiry check complete."

        logger.info(
            f"Expiry check finished. Checked: {summary.vehicles_checked} | "
            f"Email: {summary.email_notifications_sent} | WhatsApp: {summary.whatsapp_notifications_sent} | "
            f"Errors: {summary.errors_encountered} | No contact: {summary.skipped_no_contact}"
        )
        return summary

    def _channel_enabled(self, dispatcher, name: str, summary: RunSummary) -> bool:
        if dispatcher is None:
            summary.details.append(f"{name} channel unavailable: no dispatcher configured.")
            return False
        missing = dispatcher.missing_config()
        if missing:
            logger.error(f"{name} channel disabled for this run. Missing: {', '.join(missing)}")
            summary.details.append(f"{name} channel unavailable: missing {', '.join(missing)}.")
            return False
        return True

    def _should_stop(self, started: float) -> bool:
        if self._stop_requested:
            return True
        if self.time_budget_seconds and time.monotonic() - started >= self.time_budget_seconds:
            if not self._stop_requested:
                logger.warning(f"Scan time budget of {self.time_budget_seconds}s exhausted — stopping")
            self._stop_requested = True
            return True
        return False

    async def _call(self, awaitable):
        if self.call_timeout_seconds and self.call_timeout_seconds > 0:
            return await asyncio.wait_for(awaitable, timeout=self.call_timeout_seconds)
        return await awaitable

    # ── Per vehicle ──────────────────────────────────────────────────────────

    async def _process_vehicle_safely(self, vehicle, contacts, email_enabled, whatsapp_enabled) -> RunSummary:
        # Sends already made for this vehicle stay counted when a later step fails
        tally = RunSummary(vehicles_checked=1)
        try:
            await self._process_vehicle(vehicle, contacts, email_enabled, whatsapp_enabled, tally)
        except Exception as e:
            logger.error(f"Unexpected error processing vehicle {vehicle.id}: {e}", exc_info=True)
            tally.errors_encountered += 1
            tally.details.append(f"Vehicle {vehicle.id}: unexpected error ({type(e).__name__}: {e}).")
        return tally

    async def _process_vehicle(self, vehicle: VehicleRecord, contacts, email_enabled, whatsapp_enabled,
                               tally: RunSummary):
        now = self.clock()
        contact = None

        for document_type in DocumentType:
            label = document_type.label
            last_sent = vehicle.last_sent_for(document_type)
            decision = evaluate(
                vehicle.expiry_for(document_type), last_sent, now,
                self.notify_window_days, self.resend_cooldown_days, self.notify_expired,
            )

            if not decision.eligible:
                if decision.reason is EligibilityReason.IN_COOLDOWN:
                    tally.details.append(
                        f"Vehicle {vehicle.id}: {label} expiring soon, but notification already "
                        f"sent recently ({last_sent.isoformat()})."
                    )
                elif decision.reason is EligibilityReason.ALREADY_EXPIRED:
                    tally.details.append(
                        f"Vehicle {vehicle.id}: {label} expired {-decision.days_left} days ago; "
                        f"expired documents are not notified."
                    )
                else:
                    tally.details.append(
                        f"Vehicle {vehicle.id}: {label} not yet in notification window "
                        f"({decision.days_left} days left)."
                    )
                continue

            tally.details.append(
                f"Vehicle {vehicle.id} (User: {vehicle.user_id}): {label} expires in {decision.days_left} days. "
                f"Last notification: {last_sent.isoformat() if last_sent else 'Never'}."
            )
            if contact is None:
                contact = await self._resolve_contact(vehicle.user_id, contacts)
            await self._notify(vehicle, document_type, now, contact, tally, email_enabled, whatsapp_enabled)

    async def _resolve_contact(self, user_id: str, contacts: dict) -> Outcome:
        # One lookup per user per run, shared by concurrently processed vehicles
        if user_id not in contacts:
            contacts[user_id] = asyncio.ensure_future(self._lookup_contact(user_id))
        return await contacts[user_id]

    async def _lookup_contact(self, user_id: str) -> Outcome:
        try:
            return await self._call(self.contact_resolver.resolve(user_id))
        except asyncio.TimeoutError:
            return Outcome.transient(f"contact lookup timed out after {self.call_timeout_seconds}s")

    async def _notify(self, vehicle, document_type, now, contact: Outcome, tally, email_enabled, whatsapp_enabled):
        label = document_type.label

        if contact.kind is OutcomeKind.NOT_FOUND:
            tally.skipped_no_contact += 1
            tally.details.append(
                f"{label} expiring for vehicle {vehicle.id} (user {vehicle.user_id}), but no user profile was found."
            )
            return
        if not contact.ok:
            tally.errors_encountered += 1
            tally.details.append(
                f"Could not resolve contact for vehicle {vehicle.id} (user {vehicle.user_id}): {contact.error}"
            )
            return

        profile = contact.value
        if not profile.has_channel:
            tally.skipped_no_contact += 1
            tally.details.append(
                f"{label} expiring for vehicle {vehicle.id} (user {vehicle.user_id}), "
                f"but the user has neither an email address nor a phone number."
            )
            return

        attempted = False
        delivered = False
        if profile.email and email_enabled:
            attempted = True
            delivered |= await self._send_email(vehicle, document_type, now, profile, tally)
        if profile.phone_number and whatsapp_enabled:
            attempted = True
            delivered |= await self._send_whatsapp(vehicle, document_type, profile, tally)

        if not attempted:
            tally.details.append(
                f"{label} notification for vehicle {vehicle.id} not sent: "
                f"no configured channel can reach user {vehicle.user_id}."
            )
            return
        if delivered:
            await self._record_sent(vehicle, document_type, tally)

    async def _send_email(self, vehicle, document_type, now, profile, tally) -> bool:
        label = document_type.label
        view = SimplifiedVehicleView(
            model=vehicle.model,
            registration_number=vehicle.registration_number,
            tax_expiry_date_formatted=format_expiry(vehicle.tax_expiry_date),
            insurance_expiry_date_formatted=format_expiry(vehicle.insurance_expiry_date),
            overall_status=classify(vehicle.expiry_for(document_type), now).value,
        )
        html = self.renderer(profile.label(), [view], f"Urgent: {label} Expiry for {vehicle.model}")
        subject = f"Vehicle {label} Expiry Reminder: {vehicle.model}"

        try:
            outcome = await self._call(
                self.email_dispatcher.send(profile.email, html, subject, to_name=profile.display_name)
            )
        except asyncio.TimeoutError:
            outcome = Outcome.transient(f"email dispatch timed out after {self.call_timeout_seconds}s")
        except Exception as e:
            logger.error(f"Email dispatch for vehicle {vehicle.id} raised: {e}", exc_info=True)
            outcome = Outcome.transient(f"{type(e).__name__}: {e}")

        if outcome.ok:
            tally.email_notifications_sent += 1
            tally.details.append(
                f"{label} notification sent for vehicle {vehicle.id} to user {vehicle.user_id} ({profile.email})."
            )
            return True

        tally.errors_encountered += 1
        tally.details.append(f"Failed to send {document_type.value} email for vehicle {vehicle.id}: {outcome.error}")
        return False

    async def _send_whatsapp(self, vehicle, document_type, profile, tally) -> bool:
        label = document_type.label
        try:
            outcome = await self._call(self.whatsapp_dispatcher.send(
                phone_number=profile.phone_number,
                recipient_label=profile.label(fallback="Customer"),
                vehicle_label=f"{vehicle.model} ({vehicle.registration_number})",
                document_type=label,
                expiry_date_formatted=format_expiry(vehicle.expiry_for(document_type)),
            ))
        except asyncio.TimeoutError:
            outcome = Outcome.transient(f"WhatsApp dispatch timed out after {self.call_timeout_seconds}s")
        except Exception as e:
            logger.error(f"WhatsApp dispatch for vehicle {vehicle.id} raised: {e}", exc_info=True)
            outcome = Outcome.transient(f"{type(e).__name__}: {e}")

        if outcome.ok:
            tally.whatsapp_notifications_sent += 1
            tally.details.append(
                f"{label} WhatsApp reminder sent for vehicle {vehicle.id} to user {vehicle.user_id}."
            )
            return True

        tally.errors_encountered += 1
        tally.details.append(
            f"Failed to send {document_type.value} WhatsApp reminder for vehicle {vehicle.id}: {outcome.error}"
        )
        return False

    async def _record_sent(self, vehicle, document_type, tally):
        try:
            outcome = await self._call(self.ledger.record_sent(vehicle.id, document_type, self.clock()))
        except asyncio.TimeoutError:
            outcome = Outcome.transient(f"ledger write timed out after {self.call_timeout_seconds}s")
        except Exception as e:
            outcome = Outcome.transient(f"{type(e).__name__}: {e}")

        if outcome.ok:
            return
        # The user was notified; only the cooldown bookkeeping is missing
        tally.ledger_write_failures += 1
        tally.errors_encountered += 1
        logger.error(
            f"LEDGER INCONSISTENCY: {document_type.value} notification for vehicle {vehicle.id} was delivered "
            f"but its timestamp was not stored ({outcome.error}). It may be sent again on the next run."
        )
        tally.details.append(
            f"{document_type.label} notification for vehicle {vehicle.id} was sent, "
            f"but recording it failed: {outcome.error}"
        )
