from django.urls import path

from invoicing.api import (
    InvoiceDetailView,
    InvoiceListCreateView,
    InvoicePaymentStatusView,
    InvoicePrintView,
    InvoiceStatsView,
)


urlpatterns = [
    path("", InvoiceListCreateView.as_view(), name="invoice-list"),
    path("stats/overview/", InvoiceStatsView.as_view(), name="invoice-stats"),
    path("<int:invoice_id>/", InvoiceDetailView.as_view(), name="invoice-detail"),
    path("<int:invoice_id>/payment-status/", InvoicePaymentStatusView.as_view(), name="invoice-payment-status"),
    path("<int:invoice_id>/print/", InvoicePrintView.as_view(), name="invoice-print"),
]
