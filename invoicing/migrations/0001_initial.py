from decimal import Decimal

import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=32, unique=True)),
                ("invoice_date", models.DateField()),
                ("due_date", models.DateField()),
                (
                    "items",
                    models.JSONField(
                        blank=True,
                        default=list,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "tax_details",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("Pending", "Pending"), ("Partial", "Partial"), ("Paid", "Paid")],
                        db_index=True,
                        default="Pending",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "company_snapshot",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Issuing company name, address, GSTIN, phone and bank details at issue time.",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="core.client",
                    ),
                ),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_invoices",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["client", "invoice_date"], name="invoice_client_date_idx"),
                    models.Index(fields=["invoice_date"], name="invoice_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceNumberSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("prefix", models.CharField(max_length=16)),
                ("year", models.PositiveIntegerField()),
                ("month", models.PositiveSmallIntegerField()),
                ("last_value", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("prefix", "year", "month"),
                        name="uniq_invoice_sequence_per_prefix_month",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField(default=0)),
                ("quantity", models.DecimalField(decimal_places=4, max_digits=14)),
                ("hsn_code", models.CharField(max_length=16)),
                ("price_per_unit", models.DecimalField(decimal_places=2, max_digits=12)),
                ("gst_rate", models.DecimalField(decimal_places=2, default=Decimal("18.00"), max_digits=5)),
                ("batch_code", models.CharField(blank=True, default="", max_length=64)),
                ("product_name", models.CharField(blank=True, default="", max_length=255)),
                ("line_total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("cgst", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("sgst", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("igst", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "finished_good",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoice_lines",
                        to="core.finishedgood",
                    ),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="invoicing.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("invoice", "position"),
                        name="uniq_invoice_line_position",
                    )
                ],
            },
        ),
    ]
