from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Mapping

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils.dateparse import parse_date

from core.exceptions import (
    DeleteBlockedError,
    DuplicateError,
    EditBlockedError,
    NotFoundError,
    ValidationError,
)
from core.models import Client, CompanyProfile, ProductionBatch
from inventory.services.reservations import (
    QTY_QUANT,
    StockRequest,
    release_stock,
    replace_stock,
    reserve_stock,
)
from invoicing.models import Invoice, InvoiceLine
from invoicing.services.numbering import next_invoice_number
from taxes.services import GSTEngine, LineTax, MONEY_QUANT, normalize_gst_rate
from taxes.sourcing import is_intrastate, resolve_seller_state_code


logger = logging.getLogger(__name__)

COMPANY_SNAPSHOT_FIELDS = (
    "name",
    "address",
    "gstin",
    "phone",
    "bank_name",
    "bank_branch",
    "bank_account_no",
    "bank_ifsc_code",
    "bank_upi_id",
)


# Column bounds: quantity and price are 10 integer digits, totals 12.
QUANTITY_LIMIT = Decimal("10000000000")
PRICE_LIMIT = Decimal("10000000000")
TOTAL_LIMIT = Decimal("1000000000000")


@dataclass(frozen=True)
class LineInput:
    finished_good_id: int
    quantity: Decimal
    price_per_unit: Decimal
    hsn_code: str
    gst_rate: Decimal | None = None

    @classmethod
    def from_mapping(cls, data: Mapping) -> "LineInput":
        return cls(
            finished_good_id=data.get("finished_good_id"),
            quantity=data.get("quantity"),
            price_per_unit=data.get("price_per_unit"),
            hsn_code=data.get("hsn_code"),
            gst_rate=data.get("gst_rate"),
        )


@dataclass(frozen=True)
class _ValidLine:
    finished_good_id: int
    quantity: Decimal
    price_per_unit: Decimal
    hsn_code: str
    gst_rate: Decimal

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.price_per_unit


def _positive_decimal(value, *, field: str, position: int, quant: Decimal, limit: Decimal) -> Decimal:
    if value is None or value == "":
        raise ValidationError(f"Line {position}: {field} is required.", position=position, field=field)
    try:
        number = Decimal(str(value))
        if number.is_finite() and abs(number) < limit:
            number = number.quantize(quant)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Line {position}: {field} must be a number.", position=position, field=field) from exc
    if not number.is_finite() or number >= limit:
        raise ValidationError(f"Line {position}: {field} must be below {limit}.", position=position, field=field)
    if number <= 0:
        raise ValidationError(f"Line {position}: {field} must be > 0.", position=position, field=field)
    return number


def validate_lines(lines: Iterable[LineInput | Mapping]) -> list[_ValidLine]:
    """
    Check every line of a draft invoice and normalise its numbers.

    Each line needs a product reference, quantity and unit price above zero,
    an HSN code and a slab rate (18 when omitted).
    """
    lines = list(lines or [])
    if not lines:
        raise ValidationError("Invoice must have at least one line item.")

    valid: list[_ValidLine] = []
    for position, raw in enumerate(lines, start=1):
        line = raw if isinstance(raw, LineInput) else LineInput.from_mapping(raw)
        if not line.finished_good_id:
            raise ValidationError(
                f"Line {position}: finished_good_id is required.",
                position=position,
                field="finished_good_id",
            )
        try:
            finished_good_id = int(line.finished_good_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                f"Line {position}: finished_good_id must be an integer.",
                position=position,
                field="finished_good_id",
            ) from exc
        hsn_code = (line.hsn_code or "").strip()
        if not hsn_code:
            raise ValidationError(f"Line {position}: hsn_code is required.", position=position, field="hsn_code")
        valid.append(
            _ValidLine(
                finished_good_id=finished_good_id,
                quantity=_positive_decimal(
                    line.quantity, field="quantity", position=position, quant=QTY_QUANT, limit=QUANTITY_LIMIT
                ),
                price_per_unit=_positive_decimal(
                    line.price_per_unit, field="price_per_unit", position=position, quant=MONEY_QUANT, limit=PRICE_LIMIT
                ),
                hsn_code=hsn_code,
                gst_rate=normalize_gst_rate(line.gst_rate),
            )
        )
    return valid


def _coerce_date(value, *, field: str, required: bool = True) -> dt.date | None:
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required.", field=field)
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD).", field=field)
    return parsed


def _resolve_dates(invoice_date, due_date) -> tuple[dt.date, dt.date]:
    invoice_date = _coerce_date(invoice_date, field="invoice_date")
    due_date = _coerce_date(due_date, field="due_date", required=False)
    if due_date is None:
        due_date = invoice_date + dt.timedelta(days=getattr(settings, "INVOICE_DEFAULT_DUE_DAYS", 30))
    if due_date < invoice_date:
        raise ValidationError("due_date cannot be before invoice_date.", field="due_date")
    return invoice_date, due_date


def _get_client(client_id) -> Client:
    if not client_id:
        raise ValidationError("client_id is required.", field="client_id")
    client = Client.objects.filter(pk=client_id).first()
    if client is None:
        raise NotFoundError("Client not found", client_id=client_id)
    return client


def resolve_company_snapshot(*, company_snapshot: Mapping | None = None, company_id=None) -> dict:
    """
    Issuing-company details to freeze onto an invoice.

    An explicit snapshot wins, then the referenced CompanyProfile, then the
    default profile. With none of those the snapshot is empty.
    """
    if company_snapshot:
        return {key: str(company_snapshot.get(key) or "") for key in COMPANY_SNAPSHOT_FIELDS}
    if company_id:
        company = CompanyProfile.objects.filter(pk=company_id).first()
        if company is None:
            raise NotFoundError("Company not found", company_id=company_id)
        return company.snapshot()
    company = CompanyProfile.objects.filter(is_default=True).order_by("-created_at").first()
    return company.snapshot() if company else {}


def _lock_invoice(invoice_id) -> Invoice:
    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFoundError("Invoice not found", invoice_id=invoice_id)
    return invoice


def _requests_for(lines) -> list[StockRequest]:
    return [StockRequest(finished_good_id=line.finished_good_id, quantity=line.quantity) for line in lines]


def _price_lines(valid_lines: list[_ValidLine], *, intrastate: bool) -> list[LineTax]:
    return [GSTEngine.calculate_for_line(line.amount, line.gst_rate, is_intrastate=intrastate) for line in valid_lines]


def _batch_codes(goods) -> dict[int, str]:
    batch_ids = {fg.batch_id for fg in goods.values()}
    codes = dict(ProductionBatch.objects.filter(id__in=batch_ids).values_list("id", "batch_code"))
    return {fg_id: codes.get(fg.batch_id, "") for fg_id, fg in goods.items()}


def _write_lines(invoice: Invoice, valid_lines, line_taxes, goods) -> list[InvoiceLine]:
    batch_codes = _batch_codes(goods)
    rows = [
        InvoiceLine(
            invoice=invoice,
            finished_good_id=line.finished_good_id,
            position=position,
            quantity=line.quantity,
            hsn_code=line.hsn_code,
            price_per_unit=line.price_per_unit,
            gst_rate=tax.gst_rate,
            batch_code=batch_codes.get(line.finished_good_id, ""),
            product_name=goods[line.finished_good_id].product_name,
            line_total=tax.taxable_amount,
            cgst=tax.cgst,
            sgst=tax.sgst,
            igst=tax.igst,
        )
        for position, (line, tax) in enumerate(zip(valid_lines, line_taxes), start=1)
    ]
    return InvoiceLine.objects.bulk_create(rows)


def _insert_invoice(*, company_name: str, invoice_date: dt.date, **fields) -> Invoice:
    attempts = max(1, int(getattr(settings, "INVOICE_NUMBER_MAX_RETRIES", 3)))
    for attempt in range(1, attempts + 1):
        number = next_invoice_number(company_name=company_name, on_date=invoice_date)
        try:
            with transaction.atomic():
                return Invoice.objects.create(invoice_number=number, invoice_date=invoice_date, **fields)
        except IntegrityError:
            logger.warning("Invoice number %s already taken (attempt %s/%s)", number, attempt, attempts)
    raise DuplicateError("Could not allocate a unique invoice number.", field="invoice_number")


def _check_total(summary) -> None:
    if summary.total_amount >= TOTAL_LIMIT:
        raise ValidationError(
            f"Invoice total {summary.total_amount} exceeds the maximum of {TOTAL_LIMIT}.",
            field="items",
        )


def _apply_totals(invoice: Invoice, summary, lines: list[InvoiceLine]) -> None:
    invoice.subtotal = summary.subtotal
    invoice.total_amount = summary.total_amount
    invoice.tax_details = summary.as_tax_details()
    invoice.refresh_items_snapshot(lines)


@transaction.atomic
def create_invoice(
    *,
    client_id,
    invoice_date,
    lines,
    due_date=None,
    notes: str | None = None,
    company_snapshot: Mapping | None = None,
    company_id=None,
    creator=None,
) -> Invoice:
    """
    Issue a new invoice: price every line, reserve stock and mint a number.

    Everything happens in one transaction. Any failure (validation, missing
    product, insufficient stock) leaves stock and invoices untouched.
    """
    client = _get_client(client_id)
    invoice_date, due_date = _resolve_dates(invoice_date, due_date)
    valid_lines = validate_lines(lines)
    snapshot = resolve_company_snapshot(company_snapshot=company_snapshot, company_id=company_id)
    intrastate = is_intrastate(client.gst_number, resolve_seller_state_code(snapshot))

    line_taxes = _price_lines(valid_lines, intrastate=intrastate)
    summary = GSTEngine.summarize(line_taxes, is_intrastate=intrastate)
    _check_total(summary)
    goods = reserve_stock(_requests_for(valid_lines))

    invoice = _insert_invoice(
        company_name=snapshot.get("name", ""),
        invoice_date=invoice_date,
        client=client,
        creator=creator,
        due_date=due_date,
        notes=notes or "",
        company_snapshot=snapshot,
        payment_status=Invoice.PaymentStatus.PENDING,
        subtotal=summary.subtotal,
        total_amount=summary.total_amount,
        tax_details=summary.as_tax_details(),
    )
    rows = _write_lines(invoice, valid_lines, line_taxes, goods)
    invoice.refresh_items_snapshot(rows)
    invoice.save(update_fields=["items", "updated_at"])

    logger.info(
        "Issued invoice %s for client %s: total=%s intrastate=%s",
        invoice.invoice_number,
        client.pk,
        invoice.total_amount,
        intrastate,
    )
    return invoice


@transaction.atomic
def edit_invoice(
    invoice_id,
    *,
    client_id,
    invoice_date,
    lines,
    due_date=None,
    notes: str | None = None,
    company_snapshot: Mapping | None = None,
    company_id=None,
) -> Invoice:
    """
    Replace an undispatched invoice's client, dates and lines.

    The previous reservation is released in full before the new one is taken,
    so an edit may reuse the stock its own lines were holding. The invoice
    number never changes.
    """
    invoice = _lock_invoice(invoice_id)
    if invoice.has_dispatch():
        raise EditBlockedError("Cannot edit invoice that has been dispatched", invoice_id=invoice.pk)

    client = _get_client(client_id)
    invoice_date, due_date = _resolve_dates(invoice_date, due_date)
    valid_lines = validate_lines(lines)
    if company_snapshot or company_id:
        invoice.company_snapshot = resolve_company_snapshot(company_snapshot=company_snapshot, company_id=company_id)
    intrastate = is_intrastate(client.gst_number, resolve_seller_state_code(invoice.company_snapshot))

    line_taxes = _price_lines(valid_lines, intrastate=intrastate)
    summary = GSTEngine.summarize(line_taxes, is_intrastate=intrastate)
    _check_total(summary)
    old_lines = list(invoice.lines.all())
    goods = replace_stock(_requests_for(old_lines), _requests_for(valid_lines))

    invoice.lines.all().delete()
    rows = _write_lines(invoice, valid_lines, line_taxes, goods)

    invoice.client = client
    invoice.invoice_date = invoice_date
    invoice.due_date = due_date
    if notes is not None:
        invoice.notes = notes
    _apply_totals(invoice, summary, rows)
    invoice.save()

    logger.info(
        "Edited invoice %s: %s line(s) replaced by %s, total=%s",
        invoice.invoice_number,
        len(old_lines),
        len(rows),
        invoice.total_amount,
    )
    return invoice


@transaction.atomic
def set_payment_status(invoice_id, status: str, notes: str | None = None) -> Invoice:
    if not status:
        raise ValidationError("Payment status is required", field="payment_status")
    if status not in Invoice.PaymentStatus.values:
        raise ValidationError("Invalid payment status", field="payment_status", allowed=list(Invoice.PaymentStatus.values))

    invoice = _lock_invoice(invoice_id)
    invoice.payment_status = status
    update_fields = ["payment_status", "updated_at"]
    if notes is not None:
        invoice.notes = notes
        update_fields.append("notes")
    invoice.save(update_fields=update_fields)
    logger.info("Invoice %s payment status set to %s", invoice.invoice_number, status)
    return invoice


@transaction.atomic
def delete_invoice(invoice_id) -> None:
    invoice = _lock_invoice(invoice_id)
    if invoice.has_dispatch():
        raise DeleteBlockedError(
            "Cannot delete invoice that has dispatch",
            invoice_id=invoice.pk,
            hint="Please delete the associated dispatch first",
        )
    lines = list(invoice.lines.all())
    if lines:
        release_stock(_requests_for(lines))
    number = invoice.invoice_number
    invoice.delete()
    logger.info("Deleted invoice %s and released %s line reservation(s)", number, len(lines))


def _invoice_queryset():
    return Invoice.objects.select_related("client", "creator").prefetch_related("lines")


def get_invoice(invoice_id) -> Invoice:
    invoice = _invoice_queryset().filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFoundError("Invoice not found", invoice_id=invoice_id)
    return invoice


def filter_invoices(qs, *, client_id=None, payment_status=None, start_date=None, end_date=None):
    if client_id not in (None, ""):
        try:
            client_id = int(client_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError("client_id must be an integer.", field="client_id") from exc
        qs = qs.filter(client_id=client_id)
    if payment_status:
        if payment_status not in Invoice.PaymentStatus.values:
            raise ValidationError("Invalid payment status", field="payment_status")
        qs = qs.filter(payment_status=payment_status)
    start = _coerce_date(start_date, field="start_date", required=False)
    end = _coerce_date(end_date, field="end_date", required=False)
    if start:
        qs = qs.filter(invoice_date__gte=start)
    if end:
        qs = qs.filter(invoice_date__lte=end)
    return qs


def parse_pagination(page=None, limit=None) -> tuple[int, int]:
    try:
        page = int(page or 1)
        limit = int(limit or 10)
    except (TypeError, ValueError) as exc:
        raise ValidationError("page and limit must be integers.") from exc
    max_limit = int(getattr(settings, "INVOICE_PAGE_SIZE_MAX", 100))
    return max(page, 1), min(max(limit, 1), max_limit)


def list_invoices(
    *,
    client_id=None,
    payment_status=None,
    start_date=None,
    end_date=None,
    page=1,
    limit=10,
) -> tuple[list[Invoice], dict]:
    page, limit = parse_pagination(page, limit)
    qs = filter_invoices(
        _invoice_queryset(),
        client_id=client_id,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
    ).order_by("-created_at", "-id")
    total_count = qs.count()
    offset = (page - 1) * limit
    invoices = list(qs[offset : offset + limit])
    pagination = {
        "page": page,
        "limit": limit,
        "total_count": total_count,
        "total_pages": math.ceil(total_count / limit) if total_count else 0,
    }
    return invoices, pagination
