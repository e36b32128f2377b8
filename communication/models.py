from django.conf import settings
from django.db import models
from django.utils import timezone


class Notification(models.Model):
    LEVELS = [("INFO", "Info"), ("SUCCESS", "Success"), ("WARNING", "Warning"), ("DANGER", "Danger")]

    CATEGORIES = [
        ("SYSTEM", "System"),
        ("BLOOD", "Blood"),
        ("DONATION", "Donation"),
        ("RESCHEDULE", "Reschedule"),
        ("ELIGIBILITY", "Eligibility"),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    category = models.CharField(max_length=20, choices=CATEGORIES, default="SYSTEM", db_index=True)

    title = models.CharField(max_length=120)
    body = models.TextField(blank=True)
    url = models.CharField(max_length=255, blank=True)
    level = models.CharField(max_length=10, choices=LEVELS, default="INFO")

    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "created_at"], name="notif_user_created"),
            models.Index(fields=["user", "read_at"], name="notif_user_read"),
            models.Index(fields=["user", "category", "created_at"], name="notif_user_category"),
        ]

    def __str__(self):
        return f"{self.title} -> {self.user_id}"

    def mark_read(self):
        if not self.read_at:
            self.read_at = timezone.now()
            self.save(update_fields=["read_at"])


class NotificationPreference(models.Model):
    """Per-user muted categories."""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notif_pref")

    mute_system = models.BooleanField(default=False)
    mute_blood = models.BooleanField(default=False)
    mute_donation = models.BooleanField(default=False)
    mute_reschedule = models.BooleanField(default=False)
    mute_eligibility = models.BooleanField(default=False)

    updated_at = models.DateTimeField(auto_now=True)

    def is_muted(self, category: str) -> bool:
        c = (category or "SYSTEM").upper()
        return {
            "SYSTEM": self.mute_system,
            "BLOOD": self.mute_blood,
            "DONATION": self.mute_donation,
            "RESCHEDULE": self.mute_reschedule,
            "ELIGIBILITY": self.mute_eligibility,
        }.get(c, False)

    def __str__(self):
        return f"NotifPref({self.user.username})"
