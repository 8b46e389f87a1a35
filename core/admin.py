from django.contrib import admin

from .models import Client, CompanyProfile, FinishedGood, ProductionBatch


admin.site.site_header = "Invoice Ledger – Admin"
admin.site.site_title = "Invoice Ledger Admin"


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "gst_number", "email", "phone", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "gst_number", "email")


@admin.register(CompanyProfile)
class CompanyProfileAdmin(admin.ModelAdmin):
    list_display = ("name", "gstin", "is_default", "created_at")
    list_filter = ("is_default",)
    search_fields = ("name", "gstin")


@admin.register(ProductionBatch)
class ProductionBatchAdmin(admin.ModelAdmin):
    list_display = ("batch_code", "created_at")
    search_fields = ("batch_code",)


@admin.register(FinishedGood)
class FinishedGoodAdmin(admin.ModelAdmin):
    list_display = ("product_name", "batch", "available_quantity", "unit", "price_per_unit", "hsn_code", "quality_status")
    list_filter = ("quality_status",)
    search_fields = ("product_name", "hsn_code", "batch__batch_code")

    def get_readonly_fields(self, request, obj=None):
        # Stock moves only through invoice reservations once the row exists.
        if obj is not None:
            return ("available_quantity", "created_at", "updated_at")
        return ("created_at", "updated_at")
