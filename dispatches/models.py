from django.conf import settings
from django.db import models


class Dispatch(models.Model):
    class Status(models.TextChoices):
        READY = "Ready", "Ready"
        IN_TRANSIT = "InTransit", "In transit"
        DELIVERED = "Delivered", "Delivered"

    # PROTECT: an invoice cannot be removed while a dispatch references it.
    invoice = models.OneToOneField(
        "invoicing.Invoice",
        on_delete=models.PROTECT,
        related_name="dispatch",
    )
    courier_name = models.CharField(max_length=50)
    awb_number = models.CharField(max_length=64, unique=True)
    dispatch_date = models.DateField()
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.READY,
        db_index=True,
    )
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_dispatches",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "dispatches"

    def __str__(self):
        return f"{self.awb_number} ({self.status})"

    def has_feedback(self) -> bool:
        if not self.pk:
            return False
        return Feedback.objects.filter(dispatch_id=self.pk).exists()


class Feedback(models.Model):
    class IssueTag(models.TextChoices):
        PRODUCT_QUALITY = "Product Quality", "Product Quality"
        PACKAGING_DAMAGE = "Packaging Damage", "Packaging Damage"
        DELIVERY_DELAY = "Delivery Delay", "Delivery Delay"
        INCORRECT_PRODUCT = "Incorrect Product", "Incorrect Product"
        QUANTITY_MISMATCH = "Quantity Mismatch", "Quantity Mismatch"
        OTHER = "Other", "Other"

    dispatch = models.OneToOneField(
        Dispatch,
        on_delete=models.CASCADE,
        related_name="feedback",
    )
    client = models.ForeignKey(
        "core.Client",
        on_delete=models.PROTECT,
        related_name="feedback",
    )
    finished_good = models.ForeignKey(
        "core.FinishedGood",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="feedback",
    )
    rating_quality = models.PositiveSmallIntegerField()
    rating_packaging = models.PositiveSmallIntegerField()
    rating_delivery = models.PositiveSmallIntegerField()
    client_remarks = models.CharField(max_length=500, blank=True, default="")
    issue_tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rating_quality__gte=1, rating_quality__lte=5),
                name="feedback_rating_quality_range",
            ),
            models.CheckConstraint(
                condition=models.Q(rating_packaging__gte=1, rating_packaging__lte=5),
                name="feedback_rating_packaging_range",
            ),
            models.CheckConstraint(
                condition=models.Q(rating_delivery__gte=1, rating_delivery__lte=5),
                name="feedback_rating_delivery_range",
            ),
        ]

    def __str__(self):
        return f"Feedback for dispatch {self.dispatch_id}"
