import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

BLOOD_GROUPS = [
    ("A+", "A+"), ("A-", "A-"),
    ("B+", "B+"), ("B-", "B-"),
    ("AB+", "AB+"), ("AB-", "AB-"),
    ("O+", "O+"), ("O-", "O-"),
]

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


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("hospitals", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="BloodRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("patient_name", models.CharField(max_length=100)),
                ("contact_phone", models.CharField(blank=True, max_length=20)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("blood_group", models.CharField(choices=BLOOD_GROUPS, max_length=5)),
                ("donation_type", models.CharField(choices=DONATION_TYPES, default="WHOLE_BLOOD", max_length=20)),
                ("units_required", models.PositiveIntegerField(default=1)),
                ("urgency", models.CharField(choices=[("EMERGENCY", "Emergency"), ("URGENT", "Urgent"), ("NORMAL", "Normal")], default="NORMAL", max_length=10)),
                ("required_by", models.DateField(blank=True, null=True)),
                ("hospital_name", models.CharField(max_length=150)),
                ("hospital_address", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(max_length=100)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("MATCHED", "Matched"), ("FULFILLED", "Fulfilled"), ("CANCELLED", "Cancelled")], db_index=True, default="PENDING", max_length=10)),
                ("fulfilled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="blood_requests", to=settings.AUTH_USER_MODEL)),
                ("fulfilled_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="fulfilled_requests", to="hospitals.organization")),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("units_required__gte", 1)), name="blood_request_units_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Donation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(blank=True, max_length=150)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=20)),
                ("blood_group", models.CharField(choices=BLOOD_GROUPS, max_length=5)),
                ("notes", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("SCHEDULED", "Scheduled"), ("COMPLETED", "Completed"), ("CANCELLED", "Cancelled")], db_index=True, default="PENDING", max_length=10)),
                ("preferred_date", models.DateField(blank=True, null=True)),
                ("preferred_time", models.TimeField(blank=True, null=True)),
                ("scheduled_date", models.DateField(blank=True, null=True)),
                ("scheduled_time", models.TimeField(blank=True, null=True)),
                ("event_date", models.DateTimeField(blank=True, null=True)),
                ("completed_on", models.DateField(blank=True, null=True)),
                ("selected_organization", models.CharField(blank=True, max_length=200)),
                ("donation_type", models.CharField(blank=True, choices=DONATION_TYPES, max_length=20)),
                ("units", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("campaign", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations", to="hospitals.bloodcampaign")),
                ("donor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations", to=settings.AUTH_USER_MODEL)),
                ("organization", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="donations", to="hospitals.organization")),
                ("request", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="interested_donations", to="blood.bloodrequest")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["donor", "status"], name="donation_donor_status"),
                    models.Index(fields=["request", "status"], name="donation_request_status"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryLot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("blood_group", models.CharField(choices=BLOOD_GROUPS, max_length=5)),
                ("donation_type", models.CharField(choices=DONATION_TYPES, default="WHOLE_BLOOD", max_length=20)),
                ("units", models.PositiveIntegerField()),
                ("expiration_date", models.DateField()),
                ("status", models.CharField(choices=[("ACTIVE", "Active"), ("EXPIRED", "Expired"), ("USED", "Used"), ("DISCARDED", "Discarded")], default="ACTIVE", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("donation", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="inventory_lots", to="blood.donation")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="inventory_lots", to="hospitals.organization")),
            ],
            options={
                "ordering": ["expiration_date", "id"],
                "indexes": [
                    models.Index(fields=["organization", "blood_group", "donation_type", "status", "expiration_date"], name="inventory_fifo_lookup"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("units__gte", 1)), name="inventory_lot_units_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RescheduleRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("old_date", models.DateField(blank=True, null=True)),
                ("old_time", models.TimeField(blank=True, null=True)),
                ("new_date", models.DateField()),
                ("new_time", models.TimeField(blank=True, null=True)),
                ("reason", models.TextField(blank=True)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("APPROVED", "Approved"), ("REJECTED", "Rejected")], default="PENDING", max_length=10)),
                ("rejection_reason", models.TextField(blank=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("donation", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reschedule_requests", to="blood.donation")),
                ("organization", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reschedule_requests", to="hospitals.organization")),
                ("requested_by", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reschedule_requests", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("status", "PENDING")), fields=("donation",), name="one_pending_reschedule_per_donation"),
                ],
            },
        ),
    ]
