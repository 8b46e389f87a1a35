from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Invoice(models.Model):
    class PaymentStatus(models.TextChoices):
        PENDING = "Pending", "Pending"
        PARTIAL = "Partial", "Partial"
        PAID = "Paid", "Paid"

    invoice_number = models.CharField(max_length=32, unique=True)
    client = models.ForeignKey(
        "core.Client",
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_invoices",
    )
    invoice_date = models.DateField()
    due_date = models.DateField()
    # Derived from `lines` on every write; kept for fast redisplay only.
    items = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    notes = models.TextField(blank=True, default="")
    company_snapshot = models.JSONField(
        default=dict,
        blank=True,
        help_text="Issuing company name, address, GSTIN, phone and bank details at issue time.",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["client", "invoice_date"], name="invoice_client_date_idx"),
            models.Index(fields=["invoice_date"], name="invoice_date_idx"),
        ]

    def __str__(self):
        return self.invoice_number

    def has_dispatch(self) -> bool:
        if not self.pk:
            return False
        return Invoice.objects.filter(pk=self.pk, dispatch__isnull=False).exists()

    def refresh_items_snapshot(self, lines=None) -> list[dict]:
        lines = list(lines) if lines is not None else list(self.lines.order_by("position", "id"))
        self.items = [line.snapshot() for line in lines]
        return self.items


class InvoiceLine(models.Model):
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    finished_good = models.ForeignKey(
        "core.FinishedGood",
        on_delete=models.PROTECT,
        related_name="invoice_lines",
    )
    position = models.PositiveIntegerField(default=0)
    quantity = models.DecimalField(max_digits=14, decimal_places=4)
    hsn_code = models.CharField(max_length=16)
    price_per_unit = models.DecimalField(max_digits=12, decimal_places=2)
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("18.00"))
    batch_code = models.CharField(max_length=64, blank=True, default="")
    product_name = models.CharField(max_length=255, blank=True, default="")
    line_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    cgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    sgst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    igst = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["invoice", "position"],
                name="uniq_invoice_line_position",
            )
        ]

    def __str__(self):
        return f"{self.invoice_id} #{self.position}"

    @property
    def total_tax(self) -> Decimal:
        return (self.cgst or Decimal("0.00")) + (self.sgst or Decimal("0.00")) + (self.igst or Decimal("0.00"))

    def snapshot(self) -> dict:
        return {
            "finished_good_id": self.finished_good_id,
            "product_name": self.product_name,
            "quantity": str(self.quantity),
            "price_per_unit": f"{self.price_per_unit:.2f}",
            "hsn_code": self.hsn_code,
            "gst_rate": f"{self.gst_rate:.2f}",
            "item_total": f"{self.line_total:.2f}",
            "cgst": f"{self.cgst:.2f}",
            "sgst": f"{self.sgst:.2f}",
            "igst": f"{self.igst:.2f}",
            "batch_code": self.batch_code,
        }


class InvoiceNumberSequence(models.Model):
    """
    Monotonic counter per (prefix, year, month). Rows are read with
    select_for_update() so two issuances can never mint the same suffix.
    """

    prefix = models.CharField(max_length=16)
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField()
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["prefix", "year", "month"],
                name="uniq_invoice_sequence_per_prefix_month",
            )
        ]

    def __str__(self):
        return f"{self.prefix}{self.year:04d}{self.month:02d} @ {self.last_value}"
