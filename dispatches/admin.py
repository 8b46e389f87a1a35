from django.contrib import admin

from dispatches.models import Dispatch, Feedback


@admin.register(Dispatch)
class DispatchAdmin(admin.ModelAdmin):
    list_display = ("awb_number", "invoice", "courier_name", "dispatch_date", "status")
    list_filter = ("status", "courier_name")
    search_fields = ("awb_number", "invoice__invoice_number")
    # Status only moves forward through the API.
    readonly_fields = ("status", "created_at", "updated_at")


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ("dispatch", "client", "rating_quality", "rating_packaging", "rating_delivery", "created_at")
    readonly_fields = ("created_at",)
