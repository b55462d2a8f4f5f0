from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("resources", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("status", models.CharField(choices=[("pending", "Awaiting approval"), ("confirmed", "Confirmed"), ("waitlisted", "Waitlisted"), ("cancelled", "Cancelled")], default="pending", max_length=16)),
                ("notes", models.TextField(blank=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolution_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(editable=False)),
                ("updated_at", models.DateTimeField()),
                ("resource", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="resources.resource")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to=settings.AUTH_USER_MODEL)),
                ("resolved_by", models.ForeignKey(blank=True, help_text="Empty when the system resolved the booking.", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="resolved_bookings", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["resource", "status", "start_time"], name="bookings_bo_resourc_5d2c1e_idx"),
                    models.Index(fields=["resource", "status", "created_at"], name="bookings_bo_resourc_9a4f0b_idx"),
                    models.Index(fields=["user", "status"], name="bookings_bo_user_id_2e8b7d_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("end_time__gt", models.F("start_time"))), name="booking_valid_interval"),
                ],
            },
        ),
    ]
