from .models import Organization


def is_organization(actor) -> bool:
    return isinstance(actor, Organization)


def is_staff_user(actor) -> bool:
    return bool(getattr(actor, "is_staff", False)) and not is_organization(actor)


def organization_owns_donation(org, donation) -> bool:
    """
    An organization may act on a donation when:
      - the donation was assigned to it (explicit FK, set at approval), or
      - the donor picked it by name (selected_organization), or
      - the donation belongs to one of its campaigns.
    """
    if org is None:
        return False
    if donation.organization_id and donation.organization_id == org.id:
        return True
    if donation.selected_organization and donation.selected_organization == org.name:
        return True
    if donation.campaign_id and donation.campaign.organization_id == org.id:
        return True
    return False


def donor_owns_donation(user, donation) -> bool:
    if user is None or not getattr(user, "pk", None):
        return False
    return donation.donor_id is not None and donation.donor_id == user.pk


def can_act_on_donation(actor, donation) -> bool:
    if is_organization(actor):
        return organization_owns_donation(actor, donation)
    if is_staff_user(actor):
        return True
    return donor_owns_donation(actor, donation)


def resolve_donation_organization(donation):
    """
    Organization that holds stock / approves reschedules for this donation.
    Explicit FK first, then the campaign owner, then the donor's pick by name.
    """
    if donation.organization_id:
        return donation.organization
    if donation.campaign_id:
        return donation.campaign.organization
    if donation.selected_organization:
        return Organization.objects.filter(name=donation.selected_organization).first()
    return None
