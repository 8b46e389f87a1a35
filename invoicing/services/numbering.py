from __future__ import annotations

import datetime as dt
import logging
import re

from django.conf import settings
from django.db import IntegrityError, transaction

from invoicing.models import Invoice, InvoiceNumberSequence


logger = logging.getLogger(__name__)

DEFAULT_PREFIX_BUCKETS = (("ayurved", "AYU"), ("piyush", "PIY"))
DEFAULT_PREFIX = "INV"
SUFFIX_WIDTH = 3


def prefix_for_company(company_name: str | None) -> str:
    """
    Pick the numbering bucket by case-insensitive substring match on the
    issuing company's name. First configured match wins.
    """
    name = (company_name or "").lower()
    buckets = getattr(settings, "INVOICE_NUMBER_PREFIXES", DEFAULT_PREFIX_BUCKETS)
    for needle, prefix in buckets:
        if needle.lower() in name:
            return prefix
    return getattr(settings, "INVOICE_NUMBER_DEFAULT_PREFIX", DEFAULT_PREFIX)


def number_stem(prefix: str, on_date: dt.date) -> str:
    return f"{prefix}{on_date.year:04d}{on_date.month:02d}"


def format_invoice_number(stem: str, value: int) -> str:
    return f"{stem}{value:0{SUFFIX_WIDTH}d}"


def _highest_issued_suffix(stem: str) -> int:
    """Largest numeric suffix already used under `stem`, or 0."""
    pattern = re.compile(rf"^{re.escape(stem)}(\d+)$")
    highest = 0
    numbers = Invoice.objects.filter(invoice_number__startswith=stem).values_list("invoice_number", flat=True)
    for number in numbers:
        match = pattern.match(number)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def _lock_sequence(prefix: str, year: int, month: int) -> InvoiceNumberSequence:
    qs = InvoiceNumberSequence.objects.select_for_update()
    try:
        return qs.get(prefix=prefix, year=year, month=month)
    except InvoiceNumberSequence.DoesNotExist:
        pass
    try:
        with transaction.atomic():
            return InvoiceNumberSequence.objects.create(prefix=prefix, year=year, month=month, last_value=0)
    except IntegrityError:
        # Another transaction created the row first; wait on its lock.
        return qs.get(prefix=prefix, year=year, month=month)


def next_invoice_number(*, company_name: str | None = None, on_date: dt.date) -> str:
    """
    Mint `<prefix><YYYY><MM><NNN>` for the invoice date.

    The per-month counter row is locked for the rest of the caller's
    transaction. The counter never goes below the highest suffix already
    issued under the stem, so numbers created before the counter existed are
    never handed out again.
    """
    prefix = prefix_for_company(company_name)
    stem = number_stem(prefix, on_date)
    with transaction.atomic():
        sequence = _lock_sequence(prefix, on_date.year, on_date.month)
        value = max(sequence.last_value, _highest_issued_suffix(stem)) + 1
        sequence.last_value = value
        sequence.save(update_fields=["last_value", "updated_at"])
    number = format_invoice_number(stem, value)
    logger.debug("Minted invoice number %s", number)
    return number
