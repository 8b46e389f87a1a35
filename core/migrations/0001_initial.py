from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Client",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                (
                    "gst_number",
                    models.CharField(
                        blank=True,
                        help_text="Buyer GSTIN; the first two characters are the state code.",
                        max_length=15,
                        null=True,
                    ),
                ),
                ("email", models.EmailField(blank=True, max_length=255, null=True)),
                ("phone", models.CharField(blank=True, max_length=50)),
                ("address", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="CompanyProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, unique=True)),
                ("address", models.TextField(blank=True)),
                ("gstin", models.CharField(blank=True, max_length=15)),
                ("phone", models.CharField(blank=True, max_length=50)),
                ("bank_name", models.CharField(blank=True, max_length=255)),
                ("bank_branch", models.CharField(blank=True, max_length=255)),
                ("bank_account_no", models.CharField(blank=True, max_length=64)),
                ("bank_ifsc_code", models.CharField(blank=True, max_length=32)),
                ("bank_upi_id", models.CharField(blank=True, max_length=128)),
                ("is_default", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-is_default", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ProductionBatch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("batch_code", models.CharField(max_length=64, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="FinishedGood",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(max_length=255)),
                (
                    "available_quantity",
                    models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=14),
                ),
                ("unit", models.CharField(blank=True, default="", max_length=32)),
                (
                    "price_per_unit",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("hsn_code", models.CharField(blank=True, default="", max_length=16)),
                (
                    "quality_status",
                    models.CharField(
                        choices=[("Pending", "Pending"), ("Approved", "Approved"), ("Rejected", "Rejected")],
                        default="Pending",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="finished_goods",
                        to="core.productionbatch",
                    ),
                ),
            ],
            options={
                "ordering": ["product_name", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("available_quantity__gte", 0)),
                        name="finished_good_available_quantity_non_negative",
                    )
                ],
            },
        ),
    ]
