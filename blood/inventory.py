"""
Inventory ledger: lot creation on completed donations, FIFO deduction
for request fulfillment, and expiry classification for reporting.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from . import conf
from .exceptions import InsufficientInventoryError
from .models import Donation, InventoryLot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotConsumption:
    lot_id: int
    units_taken: int
    units_left: int

    @property
    def depleted(self):
        return self.units_left == 0


def _as_local_date(value):
    if value is None:
        return timezone.localdate()
    if isinstance(value, datetime):
        return timezone.localdate(value) if timezone.is_aware(value) else value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def expiration_for(donation_type, as_of=None):
    return _as_local_date(as_of) + timedelta(days=conf.shelf_life_days(donation_type))


def _previous_stocking(donation):
    """(already stocked, lot it went into) for this donation."""
    row = (
        Donation.objects
        .select_for_update()
        .filter(pk=donation.pk)
        .values_list("stocked_on", "inventory_lot_id")
        .first()
    )
    if row and (row[0] or row[1]):
        lot = InventoryLot.objects.select_for_update().filter(pk=row[1]).first() if row[1] else None
        return True, lot
    lot = InventoryLot.objects.select_for_update().filter(donation=donation).first()
    return lot is not None, lot


def _mark_stocked(donation, lot, stocked_on):
    Donation.objects.filter(pk=donation.pk).update(inventory_lot=lot, stocked_on=stocked_on)
    donation.inventory_lot = lot
    donation.stocked_on = stocked_on


def record_donation(donation, organization, as_of=None):
    """
    Put a completed donation's units on the organization's shelf.

    Each donation is counted once. Reprocessing reactivates the lot its
    units went into (its own or a shared one) instead of adding them
    again; if that lot has since been used up nothing is added. Otherwise
    units join the active lot with the same group, type and expiry, or
    start a new one.
    """
    stocked, existing = _previous_stocking(donation)
    if stocked:
        if existing is None:
            logger.info("Donation %s already stocked; its lot has been used up", donation.id)
            return None
        if existing.status != "ACTIVE":
            existing.status = "ACTIVE"
            existing.save(update_fields=["status", "updated_at"])
        logger.info("Inventory lot %s reactivated for donation %s", existing.id, donation.id)
        return existing

    donation_type = donation.donation_type or conf.default_donation_type()
    units = donation.units or conf.default_units()
    stocked_on = _as_local_date(as_of)
    expiration_date = expiration_for(donation_type, stocked_on)

    lot = (
        InventoryLot.objects
        .select_for_update()
        .filter(
            organization=organization,
            blood_group=donation.blood_group,
            donation_type=donation_type,
            expiration_date=expiration_date,
            status="ACTIVE",
        )
        .order_by("id")
        .first()
    )
    if lot:
        InventoryLot.objects.filter(pk=lot.pk).update(units=F("units") + units, updated_at=timezone.now())
        lot.refresh_from_db()
        _mark_stocked(donation, lot, stocked_on)
        logger.info("Inventory lot %s +%s units (donation %s)", lot.id, units, donation.id)
        return lot

    lot = InventoryLot.objects.create(
        organization=organization,
        donation=donation,
        blood_group=donation.blood_group,
        donation_type=donation_type,
        units=units,
        expiration_date=expiration_date,
        status="ACTIVE",
    )
    _mark_stocked(donation, lot, stocked_on)
    logger.info("Inventory lot %s created: %s x %s %s exp %s", lot.id, units, lot.blood_group, donation_type, expiration_date)
    return lot


def usable_lots(organization, blood_group, donation_type, as_of=None):
    return (
        InventoryLot.objects
        .filter(
            organization=organization,
            blood_group=blood_group,
            donation_type=donation_type,
            status="ACTIVE",
            expiration_date__gte=_as_local_date(as_of),
        )
        .order_by("expiration_date", "id")
    )


def available_units(organization, blood_group, donation_type, as_of=None):
    qs = usable_lots(organization, blood_group, donation_type, as_of)
    return qs.aggregate(total=Sum("units"))["total"] or 0


@transaction.atomic
def deduct(organization, blood_group, donation_type, units_needed, as_of=None):
    """
    Take units_needed from the soonest-expiring usable lots (FIFO).
    All-or-nothing: a shortfall raises before any lot is touched.
    """
    if units_needed < 1:
        raise ValueError("units_needed must be a positive integer")

    lots = list(usable_lots(organization, blood_group, donation_type, as_of).select_for_update())
    total = sum(lot.units for lot in lots)
    if total < units_needed:
        raise InsufficientInventoryError(available=total, required=units_needed)

    remaining = units_needed
    consumed = []
    for lot in lots:
        if remaining <= 0:
            break

        if lot.units <= remaining:
            remaining -= lot.units
            consumed.append(LotConsumption(lot_id=lot.id, units_taken=lot.units, units_left=0))
            lot.delete()
        else:
            lot.units -= remaining
            lot.save(update_fields=["units", "updated_at"])
            consumed.append(LotConsumption(lot_id=lot.id, units_taken=remaining, units_left=lot.units))
            remaining = 0

    logger.info(
        "Deducted %s x %s %s from %s across %s lot(s)",
        units_needed, blood_group, donation_type, organization.name, len(consumed),
    )
    return consumed


def expire_lots(as_of=None, organization=None):
    """Flip ACTIVE lots whose expiration date is already behind us to EXPIRED."""
    today = _as_local_date(as_of)
    qs = InventoryLot.objects.filter(status="ACTIVE", expiration_date__lt=today)
    if organization is not None:
        qs = qs.filter(organization=organization)
    count = qs.update(status="EXPIRED", updated_at=timezone.now())
    if count:
        logger.info("Marked %s inventory lot(s) expired as of %s", count, today)
    return count


def summarize(organization, as_of=None):
    today = _as_local_date(as_of)
    lots = list(InventoryLot.objects.filter(organization=organization).order_by("blood_group", "donation_type", "expiration_date"))

    active = [lot for lot in lots if lot.status == "ACTIVE" and not lot.is_expired(today)]
    expired = [lot for lot in lots if lot.is_expired(today)]

    return {
        "lots": lots,
        "total_units": sum(lot.units for lot in active),
        "expired_units": sum(lot.units for lot in expired),
        "unique_blood_groups": len({lot.blood_group for lot in active}),
        "unique_donation_types": len({lot.donation_type for lot in active}),
        "active_count": len(active),
        "expired_count": len(expired),
    }
