from __future__ import annotations

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import DomainError
from core.utils import domain_error_response, query_params_subset
from invoicing.serializers import InvoiceSerializer, InvoiceWriteSerializer, PaymentStatusSerializer
from invoicing.services.lifecycle import (
    LineInput,
    create_invoice,
    delete_invoice,
    edit_invoice,
    get_invoice,
    list_invoices,
    set_payment_status,
)
from invoicing.services.reporting import build_print_data, invoice_statistics


def _write_kwargs(data) -> dict:
    snapshot = data.get("company_snapshot")
    return {
        "client_id": data["client_id"],
        "invoice_date": data["invoice_date"],
        "due_date": data.get("due_date"),
        "lines": [LineInput.from_mapping(item) for item in data["items"]],
        "notes": data.get("notes"),
        "company_id": data.get("company_id"),
        "company_snapshot": dict(snapshot) if snapshot else None,
    }


class InvoiceListCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        params = query_params_subset(request, "client_id", "payment_status", "start_date", "end_date", "page", "limit")
        try:
            invoices, pagination = list_invoices(**params)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"invoices": InvoiceSerializer(invoices, many=True).data, "pagination": pagination})

    def post(self, request):
        serializer = InvoiceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            invoice = create_invoice(creator=request.user, **_write_kwargs(serializer.validated_data))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {"message": "Invoice created successfully", "invoice": InvoiceSerializer(get_invoice(invoice.pk)).data},
            status=status.HTTP_201_CREATED,
        )


class InvoiceDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, invoice_id: int):
        try:
            invoice = get_invoice(invoice_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"invoice": InvoiceSerializer(invoice).data})

    def put(self, request, invoice_id: int):
        serializer = InvoiceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            edit_invoice(invoice_id, **_write_kwargs(serializer.validated_data))
            invoice = get_invoice(invoice_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"message": "Invoice updated successfully", "invoice": InvoiceSerializer(invoice).data})

    def delete(self, request, invoice_id: int):
        try:
            delete_invoice(invoice_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"message": "Invoice deleted successfully"})


class InvoicePaymentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, invoice_id: int):
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            invoice = set_payment_status(invoice_id, data["payment_status"], notes=data.get("notes"))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(
            {
                "message": "Payment status updated successfully",
                "invoice": InvoiceSerializer(get_invoice(invoice.pk)).data,
            }
        )


class InvoicePrintView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, invoice_id: int):
        try:
            invoice = get_invoice(invoice_id)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"print_data": build_print_data(invoice)})


class InvoiceStatsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        try:
            stats = invoice_statistics(**query_params_subset(request, "start_date", "end_date"))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response({"stats": stats})
