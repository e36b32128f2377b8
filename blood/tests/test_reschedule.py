from datetime import date, time, timedelta

from django.test import TestCase

from blood import services
from blood.clock import FixedClock
from blood.exceptions import (
    DuplicatePendingError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    TooLateError,
)
from blood.models import RescheduleRequest
from communication.models import Notification, NotificationPreference
from hospitals.models import BloodCampaign

from .helpers import local, make_donor, make_org


class RescheduleTests(TestCase):
    def setUp(self):
        self.org = make_org()
        self.donor = make_donor()
        booking_clock = FixedClock(local(2026, 6, 1, 9, 0))
        self.donation = services.create_donation(
            self.donor,
            {"selected_organization": self.org.name, "preferred_date": date(2026, 6, 10), "preferred_time": time(10, 0)},
            clock=booking_clock,
        )
        services.set_donation_status(self.org, self.donation.id, "APPROVED", clock=booking_clock)
        self.clock = FixedClock(local(2026, 6, 5, 9, 0))

    def _ask(self, new_date=date(2026, 6, 15), new_time=time(11, 0), clock=None, donor=None):
        return services.request_reschedule(
            donor or self.donor,
            self.donation.id,
            new_date,
            new_time,
            "Travelling that week",
            clock=clock or self.clock,
        )

    def test_request_snapshots_current_slot(self):
        req = self._ask()

        self.assertEqual(req.status, "PENDING")
        self.assertEqual(req.old_date, date(2026, 6, 10))
        self.assertEqual(req.old_time, time(10, 0))
        self.assertEqual(req.new_date, date(2026, 6, 15))
        self.assertEqual(req.organization, self.org)
        self.assertEqual(req.requested_by, self.donor)

    def test_campaign_request_snapshots_campaign_slot(self):
        campaign = BloodCampaign.objects.create(
            organization=self.org,
            title="Monsoon drive",
            date=date(2026, 6, 20),
            start_time=time(11, 0),
            venue_name="City Hall",
            city="Kathmandu",
        )
        walkin = make_donor(username="walkin")
        booking_clock = FixedClock(local(2026, 6, 1, 9, 0))
        donation = services.create_donation(walkin, {"campaign": campaign, "preferred_time": time(9, 0)}, clock=booking_clock)
        services.set_donation_status(self.org, donation.id, "SCHEDULED", clock=booking_clock)

        req = services.request_reschedule(walkin, donation.id, date(2026, 6, 27), clock=self.clock)

        self.assertEqual(req.old_date, date(2026, 6, 20))
        self.assertEqual(req.old_time, time(11, 0))

    def test_second_pending_request_rejected(self):
        self._ask()
        with self.assertRaises(DuplicatePendingError):
            self._ask(new_date=date(2026, 6, 20))
        self.assertEqual(RescheduleRequest.objects.filter(donation=self.donation).count(), 1)

    def test_new_request_allowed_after_rejection(self):
        first = self._ask()
        services.resolve_reschedule(self.org, first.id, "reject", "No slots", clock=self.clock)

        second = self._ask(new_date=date(2026, 6, 20))
        self.assertEqual(second.status, "PENDING")

    def test_exactly_24_hours_before_is_too_late(self):
        with self.assertRaises(TooLateError):
            self._ask(clock=FixedClock(local(2026, 6, 9, 10, 0)))

    def test_just_over_24_hours_is_allowed(self):
        req = self._ask(clock=FixedClock(local(2026, 6, 9, 9, 59)))
        self.assertEqual(req.status, "PENDING")

    def test_pending_donation_cannot_be_rescheduled(self):
        pending = services.create_donation(
            self.donor,
            {"selected_organization": self.org.name, "preferred_date": date(2026, 7, 1)},
            clock=self.clock,
        )
        with self.assertRaises(InvalidStateError):
            services.request_reschedule(self.donor, pending.id, date(2026, 7, 3), None, "", clock=self.clock)

    def test_only_owner_can_ask(self):
        with self.assertRaises(ForbiddenError):
            self._ask(donor=make_donor(username="stranger"))

    def test_approval_moves_appointment(self):
        req = self._ask()
        resolved_at = self.clock.advance(timedelta(hours=2))
        with self.captureOnCommitCallbacks(execute=True):
            services.resolve_reschedule(self.org, req.id, "approve", clock=self.clock)

        req.refresh_from_db()
        self.donation.refresh_from_db()
        self.assertEqual(req.status, "APPROVED")
        self.assertEqual(req.resolved_at, resolved_at)
        self.assertEqual(self.donation.scheduled_date, date(2026, 6, 15))
        self.assertEqual(self.donation.scheduled_time, time(11, 0))
        self.assertEqual(self.donation.event_date, local(2026, 6, 15, 11, 0))
        self.assertTrue(Notification.objects.filter(user=self.donor, title="Reschedule approved").exists())

        # completion window follows the new slot
        done = services.mark_donation_completed(self.org, self.donation.id, clock=FixedClock(local(2026, 6, 15, 10, 0)))
        self.assertEqual(done.status, "COMPLETED")

    def test_rejection_keeps_appointment(self):
        req = self._ask()
        with self.captureOnCommitCallbacks(execute=True):
            services.resolve_reschedule(self.org, req.id, "reject", "Fully booked", clock=self.clock)

        req.refresh_from_db()
        self.donation.refresh_from_db()
        self.assertEqual(req.status, "REJECTED")
        self.assertEqual(req.rejection_reason, "Fully booked")
        self.assertEqual(self.donation.event_date, local(2026, 6, 10, 10, 0))

        note = Notification.objects.get(user=self.donor, category="RESCHEDULE")
        self.assertEqual(note.body, "Fully booked")

    def test_muted_category_gets_no_notification(self):
        NotificationPreference.objects.create(user=self.donor, mute_reschedule=True)
        req = self._ask()
        with self.captureOnCommitCallbacks(execute=True):
            services.resolve_reschedule(self.org, req.id, "approve", clock=self.clock)
        self.assertFalse(Notification.objects.filter(user=self.donor, category="RESCHEDULE").exists())

    def test_other_organization_cannot_resolve(self):
        req = self._ask()
        with self.assertRaises(ForbiddenError):
            services.resolve_reschedule(make_org(name="Patan Hospital"), req.id, "approve", clock=self.clock)

    def test_resolving_twice_fails(self):
        req = self._ask()
        services.resolve_reschedule(self.org, req.id, "approve", clock=self.clock)
        with self.assertRaises(InvalidTransitionError):
            services.resolve_reschedule(self.org, req.id, "reject", clock=self.clock)

    def test_unknown_action(self):
        req = self._ask()
        with self.assertRaises(ValueError):
            services.resolve_reschedule(self.org, req.id, "postpone", clock=self.clock)

    def test_cannot_approve_after_donation_cancelled(self):
        req = self._ask()
        services.set_donation_status(self.donor, self.donation.id, "CANCELLED", clock=self.clock)
        with self.assertRaises(InvalidTransitionError):
            services.resolve_reschedule(self.org, req.id, "approve", clock=self.clock)
