from django.conf import settings
from django.db import models
from django.db.models import Q

from accounts.models import BLOOD_GROUPS

DONATION_TYPES = [
    ("WHOLE_BLOOD", "Whole Blood"),
    ("PLASMA", "Plasma"),
    ("RED_BLOOD_CELLS", "Red Blood Cells"),
    ("PLATELETS", "Platelets"),
    ("DOUBLE_RED_CELLS", "Double Red Cells"),
    ("CRYO", "Cryo"),
    ("WHITE_CELLS", "White Cells"),
    ("GRANULOCYTES", "Granulocytes"),
]


class BloodRequest(models.Model):
    """
    A need for blood. Satisfied either from an organization's inventory
    or directly by a donor who expressed interest (peer-to-peer).
    """
    URGENCY = [
        ("EMERGENCY", "Emergency"),
        ("URGENT", "Urgent"),
        ("NORMAL", "Normal"),
    ]
    STATUS = [
        ("PENDING", "Pending"),
        ("MATCHED", "Matched"),
        ("FULFILLED", "Fulfilled"),
        ("CANCELLED", "Cancelled"),
    ]

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="blood_requests",
    )

    patient_name = models.CharField(max_length=100)
    contact_phone = models.CharField(max_length=20, blank=True)
    contact_email = models.EmailField(blank=True)

    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    donation_type = models.CharField(max_length=20, choices=DONATION_TYPES, default="WHOLE_BLOOD")
    units_required = models.PositiveIntegerField(default=1)
    urgency = models.CharField(max_length=10, choices=URGENCY, default="NORMAL")
    required_by = models.DateField(null=True, blank=True)

    hospital_name = models.CharField(max_length=150)
    hospital_address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)

    status = models.CharField(max_length=10, choices=STATUS, default="PENDING", db_index=True)

    fulfilled_by = models.ForeignKey(
        "hospitals.Organization",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="fulfilled_requests",
    )
    fulfilled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(units_required__gte=1), name="blood_request_units_positive"),
        ]

    def __str__(self):
        return f"Need {self.units_required}x {self.blood_group} ({self.get_donation_type_display()}) at {self.city}"


class Donation(models.Model):
    """
    One donor's commitment to give blood: standalone, tied to a campaign,
    or tied to a request (peer-to-peer).
    """
    STATUS = [
        ("PENDING", "Pending"),
        ("APPROVED", "Approved"),
        ("SCHEDULED", "Scheduled"),
        ("COMPLETED", "Completed"),
        ("CANCELLED", "Cancelled"),
    ]

    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donations",
    )

    full_name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    notes = models.TextField(blank=True)

    status = models.CharField(max_length=10, choices=STATUS, default="PENDING", db_index=True)

    # donor's ask
    preferred_date = models.DateField(null=True, blank=True)
    preferred_time = models.TimeField(null=True, blank=True)

    # organization-confirmed appointment
    scheduled_date = models.DateField(null=True, blank=True)
    scheduled_time = models.TimeField(null=True, blank=True)

    # appointment instant; overwritten with the actual completion instant
    event_date = models.DateTimeField(null=True, blank=True)
    # calendar day of completion in the organization's local frame
    completed_on = models.DateField(null=True, blank=True)

    campaign = models.ForeignKey(
        "hospitals.BloodCampaign",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donations",
    )
    request = models.ForeignKey(
        BloodRequest,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="interested_donations",
    )

    selected_organization = models.CharField(max_length=200, blank=True)
    organization = models.ForeignKey(
        "hospitals.Organization",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="donations",
    )

    # captured at approval; inventory falls back to configured defaults
    donation_type = models.CharField(max_length=20, choices=DONATION_TYPES, blank=True)
    units = models.PositiveIntegerField(null=True, blank=True)

    # set once its units are on a shelf, whether in its own lot or merged
    inventory_lot = models.ForeignKey(
        "InventoryLot",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="contributing_donations",
    )
    stocked_on = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["donor", "status"], name="donation_donor_status"),
            models.Index(fields=["request", "status"], name="donation_request_status"),
        ]

    def __str__(self):
        who = self.donor.username if self.donor_id else (self.full_name or "anonymous")
        return f"Donation#{self.id} {who} ({self.blood_group}, {self.status})"

    @property
    def is_standalone(self):
        return not self.request_id and not self.campaign_id

    @property
    def is_peer_to_peer(self):
        return bool(self.request_id)


class InventoryLot(models.Model):
    """
    A batch of units sharing organization, blood group, product type
    and expiration date. Lots consumed to zero are deleted.
    """
    STATUS = [
        ("ACTIVE", "Active"),
        ("EXPIRED", "Expired"),
        ("USED", "Used"),
        ("DISCARDED", "Discarded"),
    ]

    organization = models.ForeignKey(
        "hospitals.Organization",
        on_delete=models.CASCADE,
        related_name="inventory_lots",
    )
    donation = models.ForeignKey(
        Donation,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="inventory_lots",
    )

    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS)
    donation_type = models.CharField(max_length=20, choices=DONATION_TYPES, default="WHOLE_BLOOD")
    units = models.PositiveIntegerField()
    expiration_date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS, default="ACTIVE")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["expiration_date", "id"]
        indexes = [
            models.Index(
                fields=["organization", "blood_group", "donation_type", "status", "expiration_date"],
                name="inventory_fifo_lookup",
            ),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(units__gte=1), name="inventory_lot_units_positive"),
        ]

    def __str__(self):
        return f"{self.organization.name}: {self.units}x {self.blood_group} {self.get_donation_type_display()} (exp {self.expiration_date})"

    def is_expired(self, today):
        return self.status == "EXPIRED" or self.expiration_date <= today


class RescheduleRequest(models.Model):
    STATUS = [
        ("PENDING", "Pending"),
        ("APPROVED", "Approved"),
        ("REJECTED", "Rejected"),
    ]

    donation = models.ForeignKey(Donation, on_delete=models.CASCADE, related_name="reschedule_requests")
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reschedule_requests",
    )
    organization = models.ForeignKey(
        "hospitals.Organization",
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name="reschedule_requests",
    )

    old_date = models.DateField(null=True, blank=True)
    old_time = models.TimeField(null=True, blank=True)
    new_date = models.DateField()
    new_time = models.TimeField(null=True, blank=True)
    reason = models.TextField(blank=True)

    status = models.CharField(max_length=10, choices=STATUS, default="PENDING")
    rejection_reason = models.TextField(blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["donation"],
                condition=Q(status="PENDING"),
                name="one_pending_reschedule_per_donation",
            ),
        ]

    def __str__(self):
        return f"Reschedule#{self.id} donation={self.donation_id} -> {self.new_date} ({self.status})"
