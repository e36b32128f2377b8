from datetime import timedelta

from django.db.models import Q

from accounts.models import CustomUser

from . import conf


def normalize_city(value: str) -> str:
    return " ".join((value or "").strip().lower().split())


def same_city(a: str, b: str) -> bool:
    a, b = normalize_city(a), normalize_city(b)
    return bool(a) and a == b


def blood_group_allowed(req_blood_group: str, donor_blood_group: str) -> bool:
    """
    Exact match only. No cross-group substitution is done here;
    this is not a medical compatibility engine.
    """
    req = (req_blood_group or "").strip().upper()
    donor = (donor_blood_group or "").strip().upper()
    return bool(req) and req == donor


def eligible_donors_queryset(as_of):
    cutoff = as_of - timedelta(days=conf.cooldown_days())
    return (
        CustomUser.objects
        .filter(is_active=True, is_donor=True)
        .filter(Q(profile__last_donation_at__isnull=True) | Q(profile__last_donation_at__lte=cutoff))
        .select_related("profile")
    )


def find_potential_donors(req, as_of, limit=None):
    """Donors outside their cooldown with the request's group in the request's city."""
    limit = limit or conf.potential_donor_limit()
    city = (req.city or "").strip()
    if not city:
        return []

    qs = (
        eligible_donors_queryset(as_of)
        .filter(profile__blood_group=req.blood_group, profile__city__iexact=city)
        .order_by("id")
    )
    return list(qs[:limit])
