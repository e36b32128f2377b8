"""
Engine tunables. Read from Django settings at call time so tests can
use override_settings; defaults match the blood-bank rules.
"""
from django.conf import settings

SHELF_LIFE_DAYS = {
    "WHOLE_BLOOD": 42,
    "RED_BLOOD_CELLS": 42,
    "DOUBLE_RED_CELLS": 42,
    "PLATELETS": 5,
    "PLASMA": 365,
    "CRYO": 365,
    "WHITE_CELLS": 1,
    "GRANULOCYTES": 1,
}


def cooldown_days() -> int:
    return int(getattr(settings, "BLOOD_DONATION_COOLDOWN_DAYS", 56))


def completion_opens_hours_before() -> int:
    return int(getattr(settings, "BLOOD_COMPLETION_OPENS_HOURS_BEFORE", 1))


def completion_closes_days_after() -> int:
    return int(getattr(settings, "BLOOD_COMPLETION_CLOSES_DAYS_AFTER", 2))


def reschedule_cutoff_hours() -> int:
    return int(getattr(settings, "BLOOD_RESCHEDULE_CUTOFF_HOURS", 24))


def default_donation_type() -> str:
    return getattr(settings, "BLOOD_DEFAULT_DONATION_TYPE", "WHOLE_BLOOD")


def default_units() -> int:
    return int(getattr(settings, "BLOOD_DEFAULT_UNITS", 1))


def potential_donor_limit() -> int:
    return int(getattr(settings, "BLOOD_POTENTIAL_DONOR_LIMIT", 10))


def shelf_life_days(donation_type: str) -> int:
    table = {**SHELF_LIFE_DAYS, **getattr(settings, "BLOOD_SHELF_LIFE_DAYS", {})}
    try:
        return int(table[donation_type])
    except KeyError:
        raise ValueError(f"Unknown donation type: {donation_type}")
