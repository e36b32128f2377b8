from datetime import date, timedelta

from django.test import TestCase, override_settings

from blood import inventory, services
from blood.clock import FixedClock
from blood.exceptions import InsufficientInventoryError, InvalidTransitionError
from blood.models import Donation, InventoryLot

from .helpers import local, make_donor, make_org


class InventoryTestCase(TestCase):
    def setUp(self):
        self.org = make_org()
        self.today = date(2026, 5, 1)
        self.now = local(2026, 5, 1, 12, 0)

    def _lot(self, units, days, blood_group="O+", donation_type="WHOLE_BLOOD", **kwargs):
        return InventoryLot.objects.create(
            organization=self.org,
            blood_group=blood_group,
            donation_type=donation_type,
            units=units,
            expiration_date=self.today + timedelta(days=days),
            **kwargs,
        )


class DeductTests(InventoryTestCase):
    def test_fifo_consumes_earliest_expiry_first(self):
        a = self._lot(2, 5)
        b = self._lot(3, 10)

        consumed = inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 4, as_of=self.now)

        self.assertFalse(InventoryLot.objects.filter(pk=a.pk).exists())
        b.refresh_from_db()
        self.assertEqual(b.units, 1)
        self.assertEqual([c.lot_id for c in consumed], [a.id, b.id])
        self.assertEqual(sum(c.units_taken for c in consumed), 4)
        self.assertTrue(consumed[0].depleted)
        self.assertFalse(consumed[1].depleted)

    def test_order_follows_expiry_not_creation(self):
        later = self._lot(3, 10)
        sooner = self._lot(2, 5)

        inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 2, as_of=self.now)

        self.assertFalse(InventoryLot.objects.filter(pk=sooner.pk).exists())
        later.refresh_from_db()
        self.assertEqual(later.units, 3)

    def test_shortfall_leaves_lots_untouched(self):
        a = self._lot(2, 5)
        b = self._lot(1, 10)

        with self.assertRaises(InsufficientInventoryError) as ctx:
            inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 5, as_of=self.now)

        self.assertEqual(ctx.exception.available, 3)
        self.assertEqual(ctx.exception.required, 5)
        a.refresh_from_db()
        b.refresh_from_db()
        self.assertEqual((a.units, b.units), (2, 1))

    def test_only_active_unexpired_lots_count(self):
        self._lot(5, -1)
        self._lot(5, 3, status="EXPIRED")
        self._lot(5, 3, status="DISCARDED")
        today_lot = self._lot(2, 0)

        self.assertEqual(inventory.available_units(self.org, "O+", "WHOLE_BLOOD", as_of=self.now), 2)

        inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 2, as_of=self.now)
        self.assertFalse(InventoryLot.objects.filter(pk=today_lot.pk).exists())
        self.assertEqual(InventoryLot.objects.count(), 3)

    def test_other_groups_types_and_organizations_untouched(self):
        self._lot(5, 5, blood_group="A+")
        self._lot(5, 5, donation_type="PLASMA")
        InventoryLot.objects.create(
            organization=make_org(name="Teaching Hospital"),
            blood_group="O+",
            donation_type="WHOLE_BLOOD",
            units=5,
            expiration_date=self.today + timedelta(days=5),
        )

        with self.assertRaises(InsufficientInventoryError) as ctx:
            inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 1, as_of=self.now)
        self.assertEqual(ctx.exception.available, 0)

    def test_non_positive_amount_rejected(self):
        self._lot(2, 5)
        with self.assertRaises(ValueError):
            inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 0, as_of=self.now)

    def test_service_entry_point_uses_clock(self):
        self._lot(2, 0)
        consumed = services.deduct_inventory(self.org, "O+", "WHOLE_BLOOD", 1, clock=FixedClock(self.now))
        self.assertEqual(consumed[0].units_left, 1)

        with self.assertRaises(InsufficientInventoryError):
            services.deduct_inventory(self.org, "O+", "WHOLE_BLOOD", 1, clock=FixedClock(self.now + timedelta(days=1)))


class RecordDonationTests(InventoryTestCase):
    def _completed(self, username="donor", **kwargs):
        return Donation.objects.create(
            donor=make_donor(username=username),
            blood_group="O+",
            status="COMPLETED",
            organization=self.org,
            **kwargs,
        )

    def test_new_lot_uses_shelf_life(self):
        lot = inventory.record_donation(self._completed(), self.org, as_of=self.now)
        self.assertEqual(lot.units, 1)
        self.assertEqual(lot.donation_type, "WHOLE_BLOOD")
        self.assertEqual(lot.expiration_date, date(2026, 6, 12))

    def test_same_day_donations_share_a_lot(self):
        first = inventory.record_donation(self._completed("d1"), self.org, as_of=self.now)
        second = inventory.record_donation(self._completed("d2"), self.org, as_of=self.now)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.units, 2)
        self.assertEqual(InventoryLot.objects.count(), 1)

    def test_reprocessing_a_donation_reactivates_its_lot(self):
        donation = self._completed()
        lot = inventory.record_donation(donation, self.org, as_of=self.now)
        lot.status = "EXPIRED"
        lot.save(update_fields=["status"])

        again = inventory.record_donation(donation, self.org, as_of=self.now)

        self.assertEqual(again.pk, lot.pk)
        self.assertEqual(again.status, "ACTIVE")
        self.assertEqual(again.units, 1)

    def test_reprocessing_a_merged_donation_adds_nothing(self):
        first = self._completed("d1")
        second = self._completed("d2")
        inventory.record_donation(first, self.org, as_of=self.now)
        shared = inventory.record_donation(second, self.org, as_of=self.now)

        again = services.record_donation_in_inventory(second, self.org, clock=FixedClock(self.now))

        self.assertEqual(again.pk, shared.pk)
        self.assertEqual(again.units, 2)
        self.assertEqual(InventoryLot.objects.count(), 1)
        second.refresh_from_db()
        self.assertEqual(second.inventory_lot_id, shared.pk)
        self.assertEqual(second.stocked_on, self.today)

    def test_reprocessing_after_the_lot_was_used_up_adds_nothing(self):
        donation = self._completed()
        inventory.record_donation(donation, self.org, as_of=self.now)
        inventory.deduct(self.org, "O+", "WHOLE_BLOOD", 1, as_of=self.now)

        self.assertIsNone(inventory.record_donation(donation, self.org, as_of=self.now))
        self.assertFalse(InventoryLot.objects.exists())

    def test_service_requires_completed_donation(self):
        pending = Donation.objects.create(donor=make_donor(username="p"), blood_group="O+", status="PENDING")
        with self.assertRaises(InvalidTransitionError):
            services.record_donation_in_inventory(pending, self.org, clock=FixedClock(self.now))

    def test_shelf_life_table(self):
        self.assertEqual(inventory.expiration_for("PLATELETS", self.now), self.today + timedelta(days=5))
        self.assertEqual(inventory.expiration_for("PLASMA", self.now), self.today + timedelta(days=365))
        self.assertEqual(inventory.expiration_for("CRYO", self.now), self.today + timedelta(days=365))
        self.assertEqual(inventory.expiration_for("GRANULOCYTES", self.now), self.today + timedelta(days=1))
        self.assertEqual(inventory.expiration_for("DOUBLE_RED_CELLS", self.now), self.today + timedelta(days=42))
        with self.assertRaises(ValueError):
            inventory.expiration_for("BONE_MARROW", self.now)

    @override_settings(BLOOD_SHELF_LIFE_DAYS={"PLATELETS": 7})
    def test_shelf_life_override(self):
        self.assertEqual(inventory.expiration_for("PLATELETS", self.now), self.today + timedelta(days=7))
        self.assertEqual(inventory.expiration_for("WHOLE_BLOOD", self.now), self.today + timedelta(days=42))

    def test_expiry_uses_local_calendar_date(self):
        # 00:30 in Kathmandu is still the previous day in UTC
        just_after_midnight = local(2026, 5, 2, 0, 30)
        self.assertEqual(inventory.expiration_for("WHOLE_BLOOD", just_after_midnight), date(2026, 6, 13))


class SummaryTests(InventoryTestCase):
    def test_summary_classifies_expiry(self):
        self._lot(4, 10)
        self._lot(1, 5, blood_group="A+")
        self._lot(3, 0)
        self._lot(2, -2)

        summary = services.inventory_summary(self.org, clock=FixedClock(self.now))

        self.assertEqual(summary["total_units"], 5)
        self.assertEqual(summary["expired_units"], 5)
        self.assertEqual(summary["active_count"], 2)
        self.assertEqual(summary["expired_count"], 2)
        self.assertEqual(summary["unique_blood_groups"], 2)
        self.assertEqual(summary["unique_donation_types"], 1)
        self.assertEqual(len(summary["lots"]), 4)

    def test_sweep_flips_only_past_dates(self):
        today_lot = self._lot(3, 0)
        old = self._lot(2, -2)
        fresh = self._lot(1, 4)

        count = services.expire_inventory(clock=FixedClock(self.now))

        self.assertEqual(count, 1)
        statuses = dict(InventoryLot.objects.values_list("pk", "status"))
        self.assertEqual(statuses[old.pk], "EXPIRED")
        self.assertEqual(statuses[today_lot.pk], "ACTIVE")
        self.assertEqual(statuses[fresh.pk], "ACTIVE")

    def test_sweep_scoped_to_organization(self):
        self._lot(2, -2)
        other = make_org(name="Teaching Hospital")
        InventoryLot.objects.create(
            organization=other,
            blood_group="O+",
            donation_type="WHOLE_BLOOD",
            units=1,
            expiration_date=self.today - timedelta(days=3),
        )

        self.assertEqual(services.expire_inventory(organization=other, clock=FixedClock(self.now)), 1)
        self.assertEqual(InventoryLot.objects.filter(organization=self.org, status="ACTIVE").count(), 1)
