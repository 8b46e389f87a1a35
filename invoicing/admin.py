from django.contrib import admin

from invoicing.models import Invoice, InvoiceLine, InvoiceNumberSequence


class InvoiceLineInline(admin.TabularInline):
    model = InvoiceLine
    extra = 0
    can_delete = False
    readonly_fields = (
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
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "client", "invoice_date", "total_amount", "payment_status")
    list_filter = ("payment_status", "invoice_date")
    search_fields = ("invoice_number", "client__name")
    readonly_fields = (
        "invoice_number",
        "items",
        "subtotal",
        "tax_details",
        "total_amount",
        "company_snapshot",
        "created_at",
        "updated_at",
    )
    inlines = [InvoiceLineInline]


@admin.register(InvoiceNumberSequence)
class InvoiceNumberSequenceAdmin(admin.ModelAdmin):
    list_display = ("prefix", "year", "month", "last_value", "updated_at")
    readonly_fields = ("last_value", "updated_at")
