from datetime import datetime

from django.utils import timezone

from accounts.models import CustomUser
from hospitals.models import Organization


def local(*args):
    """Aware datetime in the project time zone."""
    return timezone.make_aware(datetime(*args), timezone.get_current_timezone())


def make_donor(username="donor", blood_group="O+", city="Kathmandu", last_donation_at=None):
    user = CustomUser.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass12345",
        is_donor=True,
    )
    profile = user.profile
    profile.blood_group = blood_group
    profile.city = city
    profile.last_donation_at = last_donation_at
    profile.save()
    return user


def make_org(name="Bir Hospital", city="Kathmandu"):
    return Organization.objects.create(name=name, city=city, status="APPROVED")
