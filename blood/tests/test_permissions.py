from datetime import date, time

from django.contrib import admin
from django.test import TestCase

from accounts.models import CustomUser
from blood import services
from blood.clock import FixedClock
from blood.models import Donation
from communication.models import Notification
from hospitals.admin import OrganizationAdmin
from hospitals.models import BloodCampaign, Organization, OrganizationMembership
from hospitals.permissions import can_act_on_donation, resolve_donation_organization

from .helpers import local, make_donor, make_org


class DonationOwnershipTests(TestCase):
    def setUp(self):
        self.org = make_org()
        self.other = make_org(name="Patan Hospital", city="Lalitpur")
        self.donor = make_donor()

    def test_name_pick_resolves_organization(self):
        donation = Donation.objects.create(donor=self.donor, blood_group="O+", selected_organization=self.org.name)
        self.assertEqual(resolve_donation_organization(donation), self.org)
        self.assertTrue(can_act_on_donation(self.org, donation))
        self.assertFalse(can_act_on_donation(self.other, donation))

    def test_foreign_key_wins_over_name(self):
        donation = Donation.objects.create(
            donor=self.donor, blood_group="O+",
            selected_organization=self.other.name, organization=self.org,
        )
        self.assertEqual(resolve_donation_organization(donation), self.org)

    def test_campaign_owner_resolves(self):
        campaign = BloodCampaign.objects.create(
            organization=self.other, title="Drive", date=date(2026, 8, 1),
            start_time=time(9, 0), venue_name="Durbar Square",
        )
        donation = Donation.objects.create(donor=self.donor, blood_group="O+", campaign=campaign)
        self.assertEqual(resolve_donation_organization(donation), self.other)
        self.assertTrue(can_act_on_donation(self.other, donation))

    def test_unassigned_donation_has_no_organization(self):
        donation = Donation.objects.create(donor=self.donor, blood_group="O+")
        self.assertIsNone(resolve_donation_organization(donation))

    def test_donor_and_staff_access(self):
        donation = Donation.objects.create(donor=self.donor, blood_group="O+")
        staff = CustomUser.objects.create_user(username="admin", password="x", is_staff=True)
        stranger = make_donor(username="stranger")

        self.assertTrue(can_act_on_donation(self.donor, donation))
        self.assertTrue(can_act_on_donation(staff, donation))
        self.assertFalse(can_act_on_donation(stranger, donation))


class OrganizationStatusActionTests(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name="Teaching Hospital", city="Kathmandu")
        self.staffer = make_donor(username="nurse")
        OrganizationMembership.objects.create(organization=self.org, user=self.staffer, role="ADMIN")
        self.org_admin = OrganizationAdmin(Organization, admin.site)
        self.clock = FixedClock(local(2026, 6, 1, 9, 0))

    def _submit(self, username):
        with self.captureOnCommitCallbacks(execute=True):
            services.create_donation(make_donor(username=username), {"selected_organization": self.org.name}, clock=self.clock)

    def test_approval_activates_members_for_donation_notices(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.org_admin._apply_status(self.org, "APPROVED")

        self.assertTrue(self.org.memberships.get().is_active)
        self.staffer.refresh_from_db()
        self.assertTrue(self.staffer.is_hospital_admin)
        self.assertTrue(Notification.objects.filter(user=self.staffer, title="Organization approved").exists())

        self._submit("walkin")
        self.assertTrue(Notification.objects.filter(user=self.staffer, title="New donation request").exists())

    def test_suspended_members_get_no_donation_notices(self):
        self.org_admin._apply_status(self.org, "APPROVED")
        self.org_admin._apply_status(self.org, "SUSPENDED")

        self.assertFalse(self.org.memberships.get().is_active)
        self._submit("walkin")
        self.assertFalse(Notification.objects.filter(user=self.staffer, title="New donation request").exists())
