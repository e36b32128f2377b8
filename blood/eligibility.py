from datetime import timedelta

from accounts.models import UserProfile

from . import conf
from .clock import get_clock
from .exceptions import CooldownActiveError


def last_donation_at(user):
    # bypasses a cached user.profile
    if user is None or not user.pk:
        return None
    return (
        UserProfile.objects
        .filter(user_id=user.pk)
        .values_list("last_donation_at", flat=True)
        .first()
    )


def days_since_last_donation(user, as_of):
    last = last_donation_at(user)
    if last is None:
        return None
    return (as_of - last).days


def is_eligible(user, as_of):
    days = days_since_last_donation(user, as_of)
    return days is None or days >= conf.cooldown_days()


def days_remaining(user, as_of):
    days = days_since_last_donation(user, as_of)
    if days is None:
        return 0
    return max(0, conf.cooldown_days() - days)


def next_eligible_datetime(user):
    last = last_donation_at(user)
    if last is None:
        return None
    return last + timedelta(days=conf.cooldown_days())


def ensure_eligible(user, as_of):
    if user is None or is_eligible(user, as_of):
        return
    raise CooldownActiveError(days_remaining(user, as_of), conf.cooldown_days())


def donor_eligibility(user, clock=None):
    """Summary a donor dashboard can show before a submission is attempted."""
    now = get_clock(clock).now()
    return {
        "eligible": is_eligible(user, now),
        "days_since": days_since_last_donation(user, now),
        "days_remaining": days_remaining(user, now),
        "next_eligible_at": next_eligible_datetime(user),
    }
