from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from blood.models import InventoryLot
from communication.models import Notification, NotificationPreference

from .helpers import make_donor, make_org


class ExpireInventoryLotsCommandTests(TestCase):
    def test_marks_past_date_lots_expired(self):
        org = make_org()
        today = timezone.localdate()
        old = InventoryLot.objects.create(
            organization=org, blood_group="B+", donation_type="PLATELETS", units=2,
            expiration_date=today - timedelta(days=3),
        )
        current = InventoryLot.objects.create(
            organization=org, blood_group="B+", donation_type="PLATELETS", units=2,
            expiration_date=today + timedelta(days=2),
        )

        out = StringIO()
        call_command("expire_inventory_lots", stdout=out)

        old.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(old.status, "EXPIRED")
        self.assertEqual(current.status, "ACTIVE")
        self.assertIn("Inventory lots expired: 1", out.getvalue())


class EligibilityReminderCommandTests(TestCase):
    def test_reminds_donors_whose_cooldown_ends_today(self):
        now = timezone.now()
        ready = make_donor(username="ready", last_donation_at=now - timedelta(days=56))
        make_donor(username="resting", last_donation_at=now - timedelta(days=30))
        make_donor(username="new")

        out = StringIO()
        call_command("send_donor_eligibility_reminders", stdout=out)

        self.assertEqual(Notification.objects.count(), 1)
        note = Notification.objects.get()
        self.assertEqual(note.user, ready)
        self.assertEqual(note.category, "ELIGIBILITY")
        self.assertIn("Eligibility reminders sent: 1", out.getvalue())

        # second run inside the repeat window sends nothing new
        call_command("send_donor_eligibility_reminders", stdout=StringIO())
        self.assertEqual(Notification.objects.count(), 1)

    def test_days_before_option(self):
        make_donor(username="soon", last_donation_at=timezone.now() - timedelta(days=53))
        call_command("send_donor_eligibility_reminders", "--days-before", "3", stdout=StringIO())
        self.assertEqual(Notification.objects.count(), 1)

    def test_muted_donors_are_skipped(self):
        donor = make_donor(username="quiet", last_donation_at=timezone.now() - timedelta(days=56))
        NotificationPreference.objects.create(user=donor, mute_eligibility=True)
        call_command("send_donor_eligibility_reminders", stdout=StringIO())
        self.assertFalse(Notification.objects.exists())
