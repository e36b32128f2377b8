"""
Entry points for everything that changes donation, request or inventory
state. Each call is one transaction: rows are locked, the actor is
checked, the clock is read once, then the transition and its side
effects run together.

Expected failures raise BloodServiceError subclasses; callers render
`exc.message`.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from communication.services import broadcast_inapp, notify_user
from hospitals.permissions import (
    can_act_on_donation,
    donor_owns_donation,
    is_organization,
    is_staff_user,
    organization_owns_donation,
    resolve_donation_organization,
)

from . import fulfillment, inventory, lifecycle, reschedule
from .clock import get_clock
from .eligibility import donor_eligibility as _donor_eligibility
from .eligibility import ensure_eligible
from .exceptions import ForbiddenError, InvalidTransitionError, NotFoundError
from .matching import find_potential_donors
from .models import BloodRequest, Donation, RescheduleRequest

logger = logging.getLogger(__name__)

DONATION_FIELDS = (
    "full_name", "email", "phone", "blood_group", "notes",
    "preferred_date", "preferred_time", "campaign", "selected_organization",
)

REQUEST_FIELDS = (
    "patient_name", "contact_phone", "contact_email", "blood_group",
    "donation_type", "units_required", "urgency", "required_by",
    "hospital_name", "hospital_address", "city",
)

def _lock(model, pk, label):
    obj = model.objects.select_for_update().filter(pk=pk).first()
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def _notify_organization(org, title, body="", category="DONATION"):
    """In-app notice to the organization's active members once committed."""
    if org is None:
        return
    user_ids = list(org.active_members().values_list("user_id", flat=True))
    if not user_ids:
        return
    User = get_user_model()
    transaction.on_commit(
        lambda: broadcast_inapp(User.objects.filter(id__in=user_ids), title=title, body=body, category=category)
    )


def _acting_organization(actor, donation):
    """Organization on whose behalf the actor works for this donation."""
    if is_organization(actor):
        return actor
    if is_staff_user(actor):
        return resolve_donation_organization(donation)
    return None


# -------------------- DONATIONS --------------------

@transaction.atomic
def create_donation(donor, fields, clock=None):
    """
    Donor submission. Logged-in donors inside their cooldown are refused;
    anonymous submissions (donor=None) carry contact details only.
    """
    now = get_clock(clock).now()
    ensure_eligible(donor, now)

    data = {k: fields[k] for k in DONATION_FIELDS if fields.get(k) not in (None, "")}

    if donor is not None:
        profile = getattr(donor, "profile", None)
        data.setdefault("blood_group", getattr(profile, "blood_group", "") or "")
        data.setdefault("full_name", donor.get_full_name() or donor.username)
        data.setdefault("email", donor.email or "")
        data.setdefault("phone", getattr(donor, "phone_number", "") or "")

    donation = Donation(donor=donor, status="PENDING", **data)

    campaign = donation.campaign
    if campaign is not None:
        donation.organization = campaign.organization
        if not donation.selected_organization:
            donation.selected_organization = campaign.organization.name
        if not donation.preferred_date:
            donation.event_date = campaign.starts_at()

    donation.save()
    logger.info("Donation %s created (donor=%s, campaign=%s)", donation.id, donation.donor_id, donation.campaign_id)

    _notify_organization(
        resolve_donation_organization(donation),
        title="New donation request",
        body=f"{donation.full_name or 'A donor'} ({donation.blood_group}) wants to donate.",
    )
    return donation


@transaction.atomic
def set_donation_status(actor, donation_id, new_status, schedule_overrides=None, clock=None):
    """
    Approve, schedule or cancel a donation. Completion is delegated to
    mark_donation_completed so its time window always applies.
    """
    new_status = (new_status or "").strip().upper()
    if new_status == "COMPLETED":
        return mark_donation_completed(actor, donation_id, clock=clock)

    donation = _lock(Donation, donation_id, "Donation")
    if not can_act_on_donation(actor, donation):
        raise ForbiddenError("You do not have access to this donation")

    lifecycle.check_transition(donation, new_status)

    if new_status == "CANCELLED":
        lifecycle.cancel(donation)
        if not donor_owns_donation(actor, donation):
            notify_user(
                donation.donor_id,
                title="Donation cancelled",
                body="Your donation appointment was cancelled by the organization.",
                category="DONATION",
                level="WARNING",
            )
        return donation

    organization = _acting_organization(actor, donation)
    if organization is None and not is_staff_user(actor):
        raise ForbiddenError("Only the organization can approve or schedule a donation")

    overrides = schedule_overrides or {}
    lifecycle.approve(
        donation,
        new_status,
        organization=organization,
        scheduled_date=overrides.get("scheduled_date"),
        scheduled_time=overrides.get("scheduled_time"),
        donation_type=overrides.get("donation_type", ""),
        units=overrides.get("units"),
    )
    notify_user(
        donation.donor_id,
        title=f"Donation {new_status.lower()}",
        body=f"Your appointment is set for {timezone.localtime(donation.event_date):%Y-%m-%d %H:%M}." if donation.event_date else "",
        category="DONATION",
        level="SUCCESS",
    )
    return donation


@transaction.atomic
def mark_donation_completed(organization, donation_id, clock=None):
    """
    Confirm the donor showed up. Allowed from one hour before the
    appointment until the end of the second day after it.
    """
    donation = _lock(Donation, donation_id, "Donation")
    if is_organization(organization):
        if not organization_owns_donation(organization, donation):
            raise ForbiddenError("You do not have access to this donation")
    elif is_staff_user(organization):
        organization = resolve_donation_organization(donation)
    else:
        raise ForbiddenError("Only organizations can mark donations as completed")

    now = get_clock(clock).now()
    lifecycle.complete(donation, organization, now)

    notify_user(
        donation.donor_id,
        title="Thank you for donating",
        body="Your donation has been recorded. You can donate again after the cooldown period.",
        category="DONATION",
        level="SUCCESS",
    )
    return donation


@transaction.atomic
def record_donation_in_inventory(donation, organization, clock=None):
    if donation.status != "COMPLETED":
        raise InvalidTransitionError("Only completed donations can be added to inventory")
    return inventory.record_donation(donation, organization, as_of=get_clock(clock).now())


def deduct_inventory(organization, blood_group, donation_type, units, as_of=None, clock=None):
    return inventory.deduct(
        organization,
        blood_group,
        donation_type,
        units,
        as_of=as_of or get_clock(clock).now(),
    )


# -------------------- RESCHEDULING --------------------

@transaction.atomic
def request_reschedule(donor, donation_id, new_date, new_time=None, reason="", clock=None):
    donation = _lock(Donation, donation_id, "Donation")
    if not donor_owns_donation(donor, donation):
        raise ForbiddenError("You can only reschedule your own donations")

    req = reschedule.open_request(
        donation,
        donor,
        new_date,
        new_time=new_time,
        reason=reason,
        now=get_clock(clock).now(),
    )
    _notify_organization(
        req.organization,
        title="Reschedule requested",
        body=f"Donation #{donation.id}: {req.old_date} -> {req.new_date}",
        category="RESCHEDULE",
    )
    return req


@transaction.atomic
def resolve_reschedule(organization, reschedule_id, action, rejection_reason="", clock=None):
    req = _lock(RescheduleRequest, reschedule_id, "Reschedule request")
    donation = _lock(Donation, req.donation_id, "Donation")
    req.donation = donation

    if is_organization(organization):
        owns = req.organization_id == organization.id or organization_owns_donation(organization, donation)
        if not owns:
            raise ForbiddenError("Access denied")
    elif not is_staff_user(organization):
        raise ForbiddenError("Only organizations can resolve reschedule requests")

    reschedule.resolve(req, action, rejection_reason=rejection_reason, now=get_clock(clock).now())

    if req.status == "APPROVED":
        notify_user(
            donation.donor_id,
            title="Reschedule approved",
            body=f"Your appointment has been moved to {req.new_date}.",
            category="RESCHEDULE",
            level="SUCCESS",
        )
    else:
        notify_user(
            donation.donor_id,
            title="Reschedule rejected",
            body=req.rejection_reason or "Your reschedule request was not accepted.",
            category="RESCHEDULE",
            level="WARNING",
        )
    return req


# -------------------- REQUESTS --------------------

@transaction.atomic
def create_request(requester, fields, clock=None):
    """Returns (request, potential donor count)."""
    now = get_clock(clock).now()
    data = {k: fields[k] for k in REQUEST_FIELDS if fields.get(k) not in (None, "")}
    req = BloodRequest(created_by=requester, status="PENDING", **data)
    if req.units_required < 1:
        raise ValueError("units_required must be a positive integer")
    req.save()

    donors = find_potential_donors(req, now)
    logger.info("Request %s created; %s potential donor(s) in %s", req.id, len(donors), req.city)
    return req, len(donors)


@transaction.atomic
def express_interest(donor, request_id, clock=None):
    if donor is None or is_organization(donor):
        raise ForbiddenError("Only donors can express interest in a request")
    req = _lock(BloodRequest, request_id, "Request")
    donation = fulfillment.express_interest(req, donor, get_clock(clock).now())
    notify_user(
        req.created_by_id,
        title="A donor is interested",
        body=f"{donation.full_name} ({donation.blood_group}) offered to donate for {req.patient_name}.",
        category="BLOOD",
    )
    return donation


@transaction.atomic
def cancel_request(actor, request_id, clock=None):
    req = _lock(BloodRequest, request_id, "Request")
    if is_organization(actor):
        raise ForbiddenError("Organizations cannot cancel requests")
    if not is_staff_user(actor) and (not req.created_by_id or req.created_by_id != getattr(actor, "pk", None)):
        raise ForbiddenError("You can only cancel your own requests")
    if req.status not in fulfillment.OPEN_STATUSES:
        raise InvalidTransitionError(f"Request is already {req.status}")

    req.status = "CANCELLED"
    req.save(update_fields=["status", "updated_at"])

    open_donations = list(req.interested_donations.select_for_update().filter(status__in=["PENDING", "APPROVED", "SCHEDULED"]))
    for donation in open_donations:
        lifecycle.cancel(donation)
        notify_user(
            donation.donor_id,
            title="Request cancelled",
            body="The blood request you offered to donate for has been cancelled.",
            category="BLOOD",
        )
    logger.info("Request %s cancelled (%s linked donation(s) cancelled)", req.id, len(open_donations))
    return req


@transaction.atomic
def fulfill_request(organization, request_id, clock=None):
    if not is_organization(organization):
        raise ForbiddenError("Only organizations can fulfill requests and deduct from inventory")
    req = _lock(BloodRequest, request_id, "Request")
    fulfillment.fulfill_from_inventory(req, organization, get_clock(clock).now())
    notify_user(
        req.created_by_id,
        title="Request fulfilled",
        body=f"{organization.name} has fulfilled your request for {req.units_required} unit(s) of {req.blood_group}.",
        category="BLOOD",
        level="SUCCESS",
    )
    return req


@transaction.atomic
def accept_request_and_donation(organization, request_id, donation_id, clock=None):
    if not is_organization(organization):
        raise ForbiddenError("Only organizations can accept donations")
    req = _lock(BloodRequest, request_id, "Request")
    donation = _lock(Donation, donation_id, "Donation")

    fulfillment.accept_peer_donation(req, donation, organization, get_clock(clock).now())

    notify_user(
        donation.donor_id,
        title="Donation accepted",
        body=f"{organization.name} confirmed your donation for {req.patient_name}. Thank you!",
        category="DONATION",
        level="SUCCESS",
    )
    notify_user(
        req.created_by_id,
        title="Request fulfilled",
        body=f"A donor has been matched and confirmed by {organization.name}.",
        category="BLOOD",
        level="SUCCESS",
    )
    return req, donation


# -------------------- INVENTORY / ELIGIBILITY --------------------

def inventory_summary(organization, clock=None):
    return inventory.summarize(organization, as_of=get_clock(clock).now())


@transaction.atomic
def expire_inventory(organization=None, clock=None):
    return inventory.expire_lots(as_of=get_clock(clock).now(), organization=organization)


def donor_eligibility(user, clock=None):
    return _donor_eligibility(user, clock=clock)
