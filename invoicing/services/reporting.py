from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Avg, Count, Q, Sum

from invoicing.models import Invoice
from invoicing.services.lifecycle import filter_invoices
from taxes.gstin import state_code_from_gstin, state_name
from taxes.services import MONEY_QUANT, round2
from taxes.sourcing import is_intrastate, resolve_seller_state_code


_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
_TEENS = [
    "Ten",
    "Eleven",
    "Twelve",
    "Thirteen",
    "Fourteen",
    "Fifteen",
    "Sixteen",
    "Seventeen",
    "Eighteen",
    "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _below_thousand(n: int) -> str:
    if n == 0:
        return ""
    if n < 10:
        return _ONES[n]
    if n < 20:
        return _TEENS[n - 10]
    if n < 100:
        return _TENS[n // 10] + (f" {_ONES[n % 10]}" if n % 10 else "")
    rest = _below_thousand(n % 100)
    return f"{_ONES[n // 100]} Hundred" + (f" {rest}" if rest else "")


def _indian_words(n: int) -> str:
    """Spell a whole number using crore / lakh / thousand grouping."""
    if n == 0:
        return ""
    parts = []
    crore, n = divmod(n, 10_000_000)
    lakh, n = divmod(n, 100_000)
    thousand, remainder = divmod(n, 1000)
    if crore:
        parts.append(f"{_indian_words(crore)} Crore")
    if lakh:
        parts.append(f"{_below_thousand(lakh)} Lakh")
    if thousand:
        parts.append(f"{_below_thousand(thousand)} Thousand")
    if remainder:
        parts.append(_below_thousand(remainder))
    return " ".join(parts)


def amount_in_words(amount) -> str:
    """
    >>> amount_in_words(Decimal("118000.50"))
    'One Lakh Eighteen Thousand Rupees and Fifty Paise Only'
    """
    value = round2(amount)
    if value == 0:
        return "Zero Rupees Only"
    rupees = int(value)
    paise = int(((value - rupees) * 100).to_integral_value(rounding=ROUND_HALF_UP))
    words = f"{_indian_words(rupees) or 'Zero'} Rupees"
    if paise:
        words += f" and {_below_thousand(paise)} Paise"
    return f"{words} Only"


def format_indian_currency(amount) -> str:
    """Rupee amount with Indian digit grouping, e.g. ₹1,18,000.00."""
    value = round2(amount)
    sign = "-" if value < 0 else ""
    whole, fraction = f"{abs(value):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}₹{whole}.{fraction}"


def invoice_statistics(*, start_date=None, end_date=None) -> dict:
    qs = filter_invoices(Invoice.objects.all(), start_date=start_date, end_date=end_date)
    totals = qs.aggregate(
        total_invoices=Count("id"),
        pending_invoices=Count("id", filter=Q(payment_status=Invoice.PaymentStatus.PENDING)),
        paid_invoices=Count("id", filter=Q(payment_status=Invoice.PaymentStatus.PAID)),
        total_revenue=Sum("total_amount", filter=Q(payment_status=Invoice.PaymentStatus.PAID)),
        average_invoice_value=Avg("total_amount"),
    )
    distribution = {status: 0 for status in Invoice.PaymentStatus.values}
    for row in qs.order_by().values("payment_status").annotate(count=Count("id")):
        distribution[row["payment_status"]] = row["count"]

    return {
        "total_invoices": totals["total_invoices"],
        "pending_invoices": totals["pending_invoices"],
        "paid_invoices": totals["paid_invoices"],
        "total_revenue": round2(totals["total_revenue"] or 0),
        "average_invoice_value": round2(totals["average_invoice_value"] or 0),
        "payment_status_distribution": distribution,
    }


def build_print_data(invoice: Invoice) -> dict:
    """Everything a print or PDF layout needs, already formatted."""
    client = invoice.client
    seller_code = resolve_seller_state_code(invoice.company_snapshot)
    buyer_code = state_code_from_gstin(client.gst_number)
    tax = invoice.tax_details or {}
    lines = [line.snapshot() for line in invoice.lines.all()]
    return {
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.invoice_date,
        "due_date": invoice.due_date,
        "payment_status": invoice.payment_status,
        "company": dict(invoice.company_snapshot or {}),
        "seller_state_code": seller_code,
        "client": {
            "name": client.name,
            "address": client.address,
            "gst_number": client.gst_number or "",
            "state_code": buyer_code,
            "state_name": state_name(buyer_code) if buyer_code else "",
        },
        "is_intrastate": tax.get("is_intrastate", is_intrastate(client.gst_number, seller_code)),
        "items": lines,
        "subtotal": f"{invoice.subtotal:.2f}",
        "tax_details": tax,
        "total_amount": f"{Decimal(invoice.total_amount).quantize(MONEY_QUANT):.2f}",
        "total_amount_display": format_indian_currency(invoice.total_amount),
        "amount_in_words": amount_in_words(invoice.total_amount),
        "notes": invoice.notes,
    }
