from datetime import datetime, time

from django.conf import settings
from django.db import models
from django.utils import timezone


class Organization(models.Model):
    TYPE = [
        ("HOSPITAL", "Hospital"),
        ("NGO", "NGO"),
        ("RED_CROSS", "Red Cross"),
        ("BLOOD_BANK", "Blood Bank"),
        ("GOV", "Government"),
        ("OTHER", "Other"),
    ]
    STATUS = [
        ("PENDING", "Pending"),
        ("APPROVED", "Approved"),
        ("REJECTED", "Rejected"),
        ("SUSPENDED", "Suspended"),
    ]

    name = models.CharField(max_length=200, unique=True)
    org_type = models.CharField(max_length=20, choices=TYPE, default="HOSPITAL")

    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)

    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)

    status = models.CharField(max_length=12, choices=STATUS, default="PENDING")

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.get_org_type_display()})"

    def active_members(self):
        return self.memberships.filter(is_active=True).select_related("user")


class OrganizationMembership(models.Model):
    ROLE = [
        ("ADMIN", "Admin"),
        ("VERIFIER", "Verifier"),
        ("STAFF", "Staff"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="org_memberships")

    role = models.CharField(max_length=10, choices=ROLE, default="STAFF")
    is_active = models.BooleanField(default=False)  # becomes true when org is approved

    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("organization", "user")

    def __str__(self):
        return f"{self.user.username} -> {self.organization.name} ({self.role})"


class BloodCampaign(models.Model):
    """
    An organization-run donation event. Donations linked to a campaign
    take their appointment slot from it.
    """
    STATUS = [
        ("UPCOMING", "Upcoming"),
        ("ONGOING", "Ongoing"),
        ("COMPLETED", "Completed"),
        ("CANCELLED", "Cancelled"),
    ]

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="campaigns",
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)

    venue_name = models.CharField(max_length=200)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)

    target_units = models.PositiveIntegerField(default=0)

    status = models.CharField(max_length=10, choices=STATUS, default="UPCOMING")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "start_time"]

    def __str__(self):
        return f"{self.title} ({self.organization.name})"

    def starts_at(self):
        tz = timezone.get_current_timezone()
        return timezone.make_aware(datetime.combine(self.date, self.start_time or time(0, 0)), tz)
