from django.db import models
from django.contrib.auth.models import AbstractUser
from django.conf import settings

BLOOD_GROUPS = (
    ('A+', 'A+'), ('A-', 'A-'),
    ('B+', 'B+'), ('B-', 'B-'),
    ('AB+', 'AB+'), ('AB-', 'AB-'),
    ('O+', 'O+'), ('O-', 'O-'),
)


class CustomUser(AbstractUser):
    """
    Core User model.
    Users can be donors, recipients, or organization staff.
    """
    is_donor = models.BooleanField(default=False)
    is_recipient = models.BooleanField(default=False)
    is_hospital_admin = models.BooleanField(default=False)

    phone_number = models.CharField(max_length=15, blank=True)

    def __str__(self):
        return self.username


class UserProfile(models.Model):
    """
    Donor details the donation engine reads (blood group, city)
    and the one it writes (last_donation_at).
    """
    BLOOD_GROUPS = BLOOD_GROUPS

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')

    blood_group = models.CharField(max_length=5, choices=BLOOD_GROUPS, blank=True)
    city = models.CharField(max_length=100, blank=True)

    # Set only when a donation is completed; starts the cooldown clock.
    last_donation_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Profile of {self.user.username}"
