import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        ("invoicing", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Dispatch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("courier_name", models.CharField(max_length=50)),
                ("awb_number", models.CharField(max_length=64, unique=True)),
                ("dispatch_date", models.DateField()),
                (
                    "status",
                    models.CharField(
                        choices=[("Ready", "Ready"), ("InTransit", "In transit"), ("Delivered", "Delivered")],
                        db_index=True,
                        default="Ready",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_dispatches",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "invoice",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dispatch",
                        to="invoicing.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "verbose_name_plural": "dispatches",
            },
        ),
        migrations.CreateModel(
            name="Feedback",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("rating_quality", models.PositiveSmallIntegerField()),
                ("rating_packaging", models.PositiveSmallIntegerField()),
                ("rating_delivery", models.PositiveSmallIntegerField()),
                ("client_remarks", models.CharField(blank=True, default="", max_length=500)),
                ("issue_tags", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="feedback",
                        to="core.client",
                    ),
                ),
                (
                    "dispatch",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="feedback",
                        to="dispatches.dispatch",
                    ),
                ),
                (
                    "finished_good",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="feedback",
                        to="core.finishedgood",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("rating_quality__gte", 1), ("rating_quality__lte", 5)),
                        name="feedback_rating_quality_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("rating_packaging__gte", 1), ("rating_packaging__lte", 5)),
                        name="feedback_rating_packaging_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("rating_delivery__gte", 1), ("rating_delivery__lte", 5)),
                        name="feedback_rating_delivery_range",
                    ),
                ],
            },
        ),
    ]
