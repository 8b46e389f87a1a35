from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from taxes.gstin import is_valid_gstin, normalize_gstin


class Client(models.Model):
    name = models.CharField(max_length=255)
    gst_number = models.CharField(
        max_length=15,
        blank=True,
        null=True,
        help_text="Buyer GSTIN; the first two characters are the state code.",
    )
    email = models.EmailField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.gst_number:
            self.gst_number = normalize_gstin(self.gst_number)
            if not is_valid_gstin(self.gst_number):
                raise ValidationError({"gst_number": "Enter a valid 15-character GSTIN."})


class CompanyProfile(models.Model):
    """
    Issuing company details. Invoices copy these into `company_snapshot` at
    issue time, so later edits here never change historical invoices.
    """

    name = models.CharField(max_length=255, unique=True)
    address = models.TextField(blank=True)
    gstin = models.CharField(max_length=15, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    bank_name = models.CharField(max_length=255, blank=True)
    bank_branch = models.CharField(max_length=255, blank=True)
    bank_account_no = models.CharField(max_length=64, blank=True)
    bank_ifsc_code = models.CharField(max_length=32, blank=True)
    bank_upi_id = models.CharField(max_length=128, blank=True)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-is_default", "-created_at"]

    def __str__(self):
        return self.name

    def snapshot(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "gstin": self.gstin,
            "phone": self.phone,
            "bank_name": self.bank_name,
            "bank_branch": self.bank_branch,
            "bank_account_no": self.bank_account_no,
            "bank_ifsc_code": self.bank_ifsc_code,
            "bank_upi_id": self.bank_upi_id,
        }


class ProductionBatch(models.Model):
    batch_code = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.batch_code


class FinishedGood(models.Model):
    class QualityStatus(models.TextChoices):
        PENDING = "Pending", "Pending"
        APPROVED = "Approved", "Approved"
        REJECTED = "Rejected", "Rejected"

    batch = models.ForeignKey(
        ProductionBatch,
        on_delete=models.PROTECT,
        related_name="finished_goods",
    )
    product_name = models.CharField(max_length=255)
    # Only the reservation ledger (inventory.services.reservations) writes this.
    available_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
    )
    unit = models.CharField(max_length=32, blank=True, default="")
    price_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    hsn_code = models.CharField(max_length=16, blank=True, default="")
    quality_status = models.CharField(
        max_length=16,
        choices=QualityStatus.choices,
        default=QualityStatus.PENDING,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product_name", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_quantity__gte=0),
                name="finished_good_available_quantity_non_negative",
            )
        ]

    def __str__(self):
        return self.product_name
