from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.models import CustomUser
from blood import conf
from communication.models import Notification, NotificationPreference


class Command(BaseCommand):
    help = "Send donor eligibility reminders when the post-donation cooldown ends. In-app only."

    def add_arguments(self, parser):
        parser.add_argument("--days-before", type=int, default=None, help="Remind this many days ahead (default from settings).")

    def handle(self, *args, **options):
        now = timezone.localtime(timezone.now())
        today = now.date()

        days_before = options["days_before"]
        if days_before is None:
            days_before = int(getattr(settings, "BLOOD_ELIGIBILITY_REMIND_DAYS_BEFORE", 0))  # 0 = same day
        repeat_days = int(getattr(settings, "BLOOD_ELIGIBILITY_REMIND_REPEAT_DAYS", 7))
        recent_cutoff = now - timedelta(days=repeat_days)

        target_date = today + timedelta(days=days_before)
        cooldown = conf.cooldown_days()

        donors = (
            CustomUser.objects
            .filter(is_active=True, is_donor=True, profile__last_donation_at__isnull=False)
            .select_related("profile")
        )

        donors = list(donors)
        prefs = {p.user_id: p for p in NotificationPreference.objects.filter(user_id__in=[d.id for d in donors])}

        sent = 0

        for d in donors:
            eligible_date = timezone.localtime(d.profile.last_donation_at).date() + timedelta(days=cooldown)
            if eligible_date != target_date:
                continue

            pref = prefs.get(d.id)
            if pref and pref.is_muted("ELIGIBILITY"):
                continue

            title = "You can donate blood again"
            body = f"You are eligible to donate again from {eligible_date}."

            # anti-spam
            if Notification.objects.filter(
                user_id=d.id,
                category="ELIGIBILITY",
                title=title,
                created_at__gte=recent_cutoff,
            ).exists():
                continue

            Notification.objects.create(
                user_id=d.id,
                category="ELIGIBILITY",
                title=title,
                body=body,
                level="SUCCESS",
            )
            sent += 1

        self.stdout.write(self.style.SUCCESS(f"Eligibility reminders sent: {sent}"))
