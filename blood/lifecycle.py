"""
Donation status transitions and the side effects that go with them.

    PENDING   -> APPROVED | SCHEDULED | CANCELLED
    APPROVED  -> SCHEDULED | COMPLETED | CANCELLED
    SCHEDULED -> APPROVED | COMPLETED | CANCELLED

PENDING -> COMPLETED happens only when an organization accepts a
peer-to-peer donation together with its request.
"""
import logging
import math
from datetime import datetime, time, timedelta

from django.db import DatabaseError, transaction
from django.utils import timezone

from accounts.models import UserProfile

from . import conf
from .exceptions import (
    InvalidStateError,
    InvalidTransitionError,
    WindowClosedError,
    WindowNotYetOpenError,
)
from .inventory import record_donation
from .models import DONATION_TYPES

logger = logging.getLogger(__name__)

STATUSES = {"PENDING", "APPROVED", "SCHEDULED", "COMPLETED", "CANCELLED"}
BOOKED = {"APPROVED", "SCHEDULED"}
TERMINAL = {"COMPLETED", "CANCELLED"}

TRANSITIONS = {
    "PENDING": {"APPROVED", "SCHEDULED", "CANCELLED"},
    "APPROVED": {"SCHEDULED", "COMPLETED", "CANCELLED"},
    "SCHEDULED": {"APPROVED", "COMPLETED", "CANCELLED"},
    "COMPLETED": set(),
    "CANCELLED": set(),
}


def combine_local(day, at=None):
    tz = timezone.get_current_timezone()
    return timezone.make_aware(datetime.combine(day, at or time(0, 0)), tz)


def check_transition(donation, new_status):
    if new_status not in STATUSES:
        raise InvalidTransitionError(
            f"Invalid status. Must be one of: {', '.join(sorted(STATUSES))}"
        )
    if new_status not in TRANSITIONS[donation.status]:
        raise InvalidTransitionError(
            f"Cannot change donation from {donation.status} to {new_status}."
        )


def appointment_instant(donation):
    if donation.event_date:
        return donation.event_date
    if donation.scheduled_date:
        return combine_local(donation.scheduled_date, donation.scheduled_time)
    return None


def completion_window(appointment):
    opens = appointment - timedelta(hours=conf.completion_opens_hours_before())
    last_day = timezone.localtime(appointment).date() + timedelta(days=conf.completion_closes_days_after())
    closes = combine_local(last_day, time.max)
    return opens, closes


def check_completion_window(donation, now):
    if donation.status not in BOOKED:
        raise InvalidStateError(
            f"Cannot mark donation as completed. Current status: {donation.status}. "
            "Donation must be approved or scheduled first."
        )

    appointment = appointment_instant(donation)
    if appointment is None:
        raise InvalidStateError("Cannot mark as completed. Donation does not have a scheduled date.")

    opens, closes = completion_window(appointment)
    if now < opens:
        hours_until = math.ceil((opens - now).total_seconds() / 3600)
        raise WindowNotYetOpenError(hours_until)
    if now > closes:
        days_past = math.floor((now - closes).total_seconds() / 86400)
        raise WindowClosedError(days_past)


def _check_capture(donation_type, units):
    if donation_type and donation_type not in dict(DONATION_TYPES):
        raise InvalidTransitionError(f"Unknown donation type: {donation_type}")
    if units is not None and (not isinstance(units, int) or isinstance(units, bool) or units < 1):
        raise InvalidTransitionError("Units must be a positive whole number.")


def approve(donation, new_status, organization=None, scheduled_date=None, scheduled_time=None,
            donation_type="", units=None):
    """
    PENDING -> APPROVED/SCHEDULED. Standalone donations fall back to the
    donor's preferred slot, and every approval derives event_date.
    """
    _check_capture(donation_type, units)

    donation.scheduled_date = scheduled_date or donation.scheduled_date
    donation.scheduled_time = scheduled_time or donation.scheduled_time

    if donation.is_standalone:
        if not donation.scheduled_date and donation.preferred_date:
            donation.scheduled_date = donation.preferred_date
        if not donation.scheduled_time and donation.preferred_time:
            donation.scheduled_time = donation.preferred_time

    if donation.scheduled_date and (donation.is_standalone or scheduled_date):
        donation.event_date = combine_local(donation.scheduled_date, donation.scheduled_time)

    if organization is not None:
        donation.organization = organization
        if not donation.selected_organization:
            donation.selected_organization = organization.name
    if donation_type:
        donation.donation_type = donation_type
    if units is not None:
        donation.units = units

    donation.status = new_status
    donation.save(update_fields=[
        "status", "scheduled_date", "scheduled_time", "event_date",
        "organization", "selected_organization", "donation_type", "units", "updated_at",
    ])
    logger.info("Donation %s %s (appointment %s)", donation.id, new_status, donation.event_date)
    return donation


def cancel(donation):
    donation.status = "CANCELLED"
    donation.save(update_fields=["status", "updated_at"])
    logger.info("Donation %s cancelled", donation.id)
    return donation


def start_cooldown(donation, at):
    if not donation.donor_id:
        return
    UserProfile.objects.update_or_create(user_id=donation.donor_id, defaults={"last_donation_at": at})


def _mark_completed(donation, now, organization=None):
    donation.status = "COMPLETED"
    donation.event_date = now
    donation.completed_on = timezone.localdate(now)
    fields = ["status", "event_date", "completed_on", "updated_at"]
    if organization is not None:
        donation.organization = organization
        donation.selected_organization = organization.name
        fields += ["organization", "selected_organization"]
    donation.save(update_fields=fields)
    start_cooldown(donation, now)


def complete(donation, organization, now):
    """
    Organization-confirmed completion. The ledger write runs in its own
    savepoint; a failure there is logged and the completion still stands.
    Returns the inventory lot, or None when stock could not be recorded.
    """
    check_completion_window(donation, now)
    _mark_completed(donation, now)
    logger.info("Donation %s completed at %s", donation.id, now)

    if organization is None:
        logger.warning("Donation %s completed without a resolvable organization; inventory not updated", donation.id)
        return None

    try:
        with transaction.atomic():
            return record_donation(donation, organization, as_of=now)
    except (DatabaseError, ValueError):
        logger.exception("Error adding donation %s to inventory of %s", donation.id, organization.name)
        return None


def complete_peer_to_peer(donation, organization, now):
    """
    PENDING -> COMPLETED for a donation matched directly to a request.
    The unit goes straight to the recipient, so no inventory is touched.
    """
    if donation.status != "PENDING":
        raise InvalidTransitionError(f"Donation is already {donation.status}")
    _mark_completed(donation, now, organization=organization)
    logger.info("Peer-to-peer donation %s completed on %s", donation.id, donation.completed_on)
    return donation
