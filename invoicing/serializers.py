from __future__ import annotations

from rest_framework import serializers

from invoicing.models import Invoice, InvoiceLine
from taxes.services import GST_SLABS


class InvoiceLineSerializer(serializers.ModelSerializer):
    total_tax = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = InvoiceLine
        fields = [
            "id",
            "position",
            "finished_good",
            "product_name",
            "batch_code",
            "quantity",
            "hsn_code",
            "price_per_unit",
            "gst_rate",
            "line_total",
            "cgst",
            "sgst",
            "igst",
            "total_tax",
        ]


class InvoiceSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source="client.name", read_only=True)
    client_gst_number = serializers.CharField(source="client.gst_number", read_only=True, allow_null=True)
    creator_username = serializers.CharField(source="creator.username", read_only=True, default=None)
    lines = InvoiceLineSerializer(many=True, read_only=True)
    has_dispatch = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "client",
            "client_name",
            "client_gst_number",
            "creator",
            "creator_username",
            "invoice_date",
            "due_date",
            "items",
            "lines",
            "subtotal",
            "tax_details",
            "total_amount",
            "payment_status",
            "notes",
            "company_snapshot",
            "has_dispatch",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_has_dispatch(self, obj) -> bool:
        return obj.has_dispatch()


class InvoiceLineInputSerializer(serializers.Serializer):
    finished_good_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=4)
    price_per_unit = serializers.DecimalField(max_digits=12, decimal_places=2)
    hsn_code = serializers.CharField(max_length=16)
    gst_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)

    def validate_gst_rate(self, value):
        if value is not None and value not in GST_SLABS:
            allowed = ", ".join(str(slab) for slab in GST_SLABS)
            raise serializers.ValidationError(f"Invalid GST rate. Allowed slabs: {allowed}")
        return value


class CompanySnapshotSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    gstin = serializers.CharField(max_length=15, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    bank_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    bank_branch = serializers.CharField(max_length=255, required=False, allow_blank=True)
    bank_account_no = serializers.CharField(max_length=64, required=False, allow_blank=True)
    bank_ifsc_code = serializers.CharField(max_length=32, required=False, allow_blank=True)
    bank_upi_id = serializers.CharField(max_length=128, required=False, allow_blank=True)


class InvoiceWriteSerializer(serializers.Serializer):
    client_id = serializers.IntegerField(min_value=1)
    invoice_date = serializers.DateField()
    due_date = serializers.DateField(required=False, allow_null=True)
    items = InvoiceLineInputSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    company_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    company_snapshot = CompanySnapshotSerializer(required=False, allow_null=True)


class PaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Invoice.PaymentStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
