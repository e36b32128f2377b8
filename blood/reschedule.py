import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from hospitals.permissions import resolve_donation_organization

from . import conf
from .exceptions import DuplicatePendingError, InvalidStateError, InvalidTransitionError, TooLateError
from .lifecycle import BOOKED, appointment_instant, combine_local
from .models import RescheduleRequest

logger = logging.getLogger(__name__)

ACTIONS = ("approve", "reject")


def hours_until_appointment(donation, now):
    appointment = appointment_instant(donation)
    if appointment is None:
        return None
    return (appointment - now).total_seconds() / 3600


def open_request(donation, user, new_date, new_time=None, reason="", now=None):
    """
    Donor asks to move a confirmed appointment. Allowed only for
    APPROVED/SCHEDULED donations, more than the cutoff ahead of the
    appointment, and while no other request is pending.
    """
    if donation.status not in BOOKED:
        raise InvalidStateError(f"Cannot reschedule donation with status: {donation.status}")

    now = now or timezone.now()
    cutoff = conf.reschedule_cutoff_hours()
    hours_until = hours_until_appointment(donation, now)
    if hours_until is not None and hours_until <= cutoff:
        raise TooLateError(hours_until=hours_until, cutoff_hours=cutoff)

    if RescheduleRequest.objects.filter(donation=donation, status="PENDING").exists():
        raise DuplicatePendingError()

    appointment = appointment_instant(donation)
    if appointment is not None:
        held = timezone.localtime(appointment)
        old_date, old_time = held.date(), held.time()
    else:
        old_date, old_time = None, donation.scheduled_time or donation.preferred_time

    try:
        with transaction.atomic():
            req = RescheduleRequest.objects.create(
                donation=donation,
                requested_by=user,
                organization=resolve_donation_organization(donation),
                old_date=old_date,
                old_time=old_time,
                new_date=new_date,
                new_time=new_time,
                reason=reason or "",
                status="PENDING",
            )
    except IntegrityError:
        raise DuplicatePendingError()

    logger.info("Reschedule %s opened for donation %s: %s -> %s", req.id, donation.id, old_date, new_date)
    return req


def approve(req, now=None):
    donation = req.donation
    if donation.status not in BOOKED:
        raise InvalidTransitionError(f"Donation is already {donation.status}")

    donation.scheduled_date = req.new_date
    donation.scheduled_time = req.new_time
    donation.event_date = combine_local(req.new_date, req.new_time)
    donation.save(update_fields=["scheduled_date", "scheduled_time", "event_date", "updated_at"])

    req.status = "APPROVED"
    req.resolved_at = now or timezone.now()
    req.save(update_fields=["status", "resolved_at", "updated_at"])
    logger.info("Reschedule %s approved; donation %s now at %s", req.id, donation.id, donation.event_date)
    return req


def reject(req, rejection_reason="", now=None):
    req.status = "REJECTED"
    req.rejection_reason = rejection_reason or ""
    req.resolved_at = now or timezone.now()
    req.save(update_fields=["status", "rejection_reason", "resolved_at", "updated_at"])
    logger.info("Reschedule %s rejected", req.id)
    return req


def resolve(req, action, rejection_reason="", now=None):
    if action not in ACTIONS:
        raise ValueError('Invalid action. Must be "approve" or "reject"')
    if req.status != "PENDING":
        raise InvalidTransitionError(f"Reschedule request is already {req.status}")
    if action == "approve":
        return approve(req, now=now)
    return reject(req, rejection_reason, now=now)
