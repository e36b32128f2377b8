import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("category", models.CharField(choices=[("SYSTEM", "System"), ("BLOOD", "Blood"), ("DONATION", "Donation"), ("RESCHEDULE", "Reschedule"), ("ELIGIBILITY", "Eligibility")], db_index=True, default="SYSTEM", max_length=20)),
                ("title", models.CharField(max_length=120)),
                ("body", models.TextField(blank=True)),
                ("url", models.CharField(blank=True, max_length=255)),
                ("level", models.CharField(choices=[("INFO", "Info"), ("SUCCESS", "Success"), ("WARNING", "Warning"), ("DANGER", "Danger")], default="INFO", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="notif_user_created"),
                    models.Index(fields=["user", "read_at"], name="notif_user_read"),
                    models.Index(fields=["user", "category", "created_at"], name="notif_user_category"),
                ],
            },
        ),
        migrations.CreateModel(
            name="NotificationPreference",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("mute_system", models.BooleanField(default=False)),
                ("mute_blood", models.BooleanField(default=False)),
                ("mute_donation", models.BooleanField(default=False)),
                ("mute_reschedule", models.BooleanField(default=False)),
                ("mute_eligibility", models.BooleanField(default=False)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="notif_pref", to=settings.AUTH_USER_MODEL)),
            ],
        ),
    ]
