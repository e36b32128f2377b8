"""
Two ways a request gets satisfied:
  - inventory path: an organization ships units from its own lots;
  - peer-to-peer path: a donor who expressed interest gives directly,
    accepted by an organization in the request's city.
"""
import logging

from . import lifecycle
from .eligibility import ensure_eligible
from .exceptions import (
    AlreadyInterestedError,
    BloodGroupMismatchError,
    ForbiddenError,
    InvalidTransitionError,
    MismatchError,
)
from .inventory import deduct
from .matching import blood_group_allowed, same_city
from .models import Donation

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("PENDING", "MATCHED")


def _ensure_pending(req):
    if req.status != "PENDING":
        raise InvalidTransitionError(f"Request is already {req.status}")


def fulfill_from_inventory(req, organization, now):
    _ensure_pending(req)

    consumed = deduct(
        organization,
        req.blood_group,
        req.donation_type,
        req.units_required,
        as_of=now,
    )

    req.status = "FULFILLED"
    req.fulfilled_by = organization
    req.fulfilled_at = now
    req.save(update_fields=["status", "fulfilled_by", "fulfilled_at", "updated_at"])
    logger.info("Request %s fulfilled by %s from %s lot(s)", req.id, organization.name, len(consumed))
    return consumed


def express_interest(req, user, now):
    """Create a PENDING donation tied to the request for this donor."""
    if req.status not in OPEN_STATUSES:
        raise InvalidTransitionError(f"Request is already {req.status}")

    already = Donation.objects.filter(
        request=req,
        donor=user,
        status__in=["PENDING", "APPROVED", "SCHEDULED"],
    ).exists()
    if already:
        raise AlreadyInterestedError()

    ensure_eligible(user, now)

    profile = getattr(user, "profile", None)
    donor_group = getattr(profile, "blood_group", "")
    if not blood_group_allowed(req.blood_group, donor_group):
        raise BloodGroupMismatchError(required=req.blood_group, actual=donor_group)

    donation = Donation.objects.create(
        donor=user,
        full_name=user.get_full_name() or user.username,
        email=user.email or "",
        phone=getattr(user, "phone_number", "") or "",
        blood_group=donor_group,
        request=req,
        status="PENDING",
        selected_organization="",
    )
    logger.info("Donor %s expressed interest in request %s (donation %s)", user.pk, req.id, donation.id)
    return donation


def accept_peer_donation(req, donation, organization, now):
    if donation.request_id != req.id:
        raise MismatchError()
    if not same_city(req.city, organization.city):
        raise ForbiddenError("Request is not in your organization's city")

    _ensure_pending(req)
    if donation.status != "PENDING":
        raise InvalidTransitionError(f"Donation is already {donation.status}")

    req.status = "FULFILLED"
    req.fulfilled_by = organization
    req.fulfilled_at = now
    req.save(update_fields=["status", "fulfilled_by", "fulfilled_at", "updated_at"])

    lifecycle.complete_peer_to_peer(donation, organization, now)
    logger.info("Request %s fulfilled peer-to-peer by donation %s", req.id, donation.id)
    return req, donation
