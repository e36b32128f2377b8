import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("blood", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="donation",
            name="inventory_lot",
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="contributing_donations", to="blood.inventorylot"),
        ),
        migrations.AddField(
            model_name="donation",
            name="stocked_on",
            field=models.DateField(blank=True, null=True),
        ),
    ]
