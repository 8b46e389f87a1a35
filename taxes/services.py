from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from core.exceptions import ValidationError


MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")

GST_SLABS = (Decimal("0"), Decimal("5"), Decimal("12"), Decimal("18"), Decimal("28"))
DEFAULT_GST_RATE = Decimal("18")


def round2(value) -> Decimal:
    """Half-up rounding to paise; amounts here are never negative."""
    return Decimal(str(value or ZERO)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def normalize_gst_rate(rate) -> Decimal:
    """
    Coerce a slab rate to Decimal, defaulting to 18 when omitted.
    Anything outside the 0/5/12/18/28 slab set is rejected.
    """
    if rate is None or rate == "":
        return DEFAULT_GST_RATE.quantize(MONEY_QUANT)
    try:
        value = Decimal(str(rate))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid GST rate: {rate}") from exc
    if value not in GST_SLABS:
        allowed = ", ".join(str(slab) for slab in GST_SLABS)
        raise ValidationError(f"Invalid GST rate: {rate}. Allowed slabs: {allowed}")
    return value.quantize(MONEY_QUANT)


@dataclass(frozen=True)
class LineTax:
    taxable_amount: Decimal
    gst_rate: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst


@dataclass(frozen=True)
class InvoiceTaxSummary:
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total_tax: Decimal
    gst_rate: Decimal
    is_intrastate: bool

    @property
    def total_amount(self) -> Decimal:
        return round2(self.subtotal + self.total_tax)

    def as_tax_details(self) -> dict:
        # gst_rate is the highest slab on the invoice, for display only;
        # per-line breakdowns live on the lines.
        return {
            "cgst": f"{self.cgst:.2f}",
            "sgst": f"{self.sgst:.2f}",
            "igst": f"{self.igst:.2f}",
            "total_tax": f"{self.total_tax:.2f}",
            "gst_rate": f"{self.gst_rate:.2f}",
            "is_intrastate": self.is_intrastate,
        }


class GSTEngine:
    @staticmethod
    def calculate_for_line(amount, gst_rate, *, is_intrastate: bool) -> LineTax:
        """
        Split GST for one line.

        - slab 0: no tax
        - intrastate: CGST and SGST each get half the rate, rounded separately
        - interstate: IGST at the full rate
        """
        taxable = round2(amount)
        rate = normalize_gst_rate(gst_rate)
        if taxable < 0:
            raise ValidationError("Line amount cannot be negative.")

        if rate == 0:
            return LineTax(taxable_amount=taxable, gst_rate=rate, cgst=ZERO, sgst=ZERO, igst=ZERO)

        if is_intrastate:
            half = round2(taxable * rate / Decimal("200"))
            return LineTax(taxable_amount=taxable, gst_rate=rate, cgst=half, sgst=half, igst=ZERO)

        igst = round2(taxable * rate / Decimal("100"))
        return LineTax(taxable_amount=taxable, gst_rate=rate, cgst=ZERO, sgst=ZERO, igst=igst)

    @staticmethod
    def summarize(line_taxes: Iterable[LineTax], *, is_intrastate: bool) -> InvoiceTaxSummary:
        """
        Aggregate already-rounded line taxes. Lines are never re-rounded as a
        whole, so each line stays independently auditable.
        """
        subtotal = ZERO
        cgst = ZERO
        sgst = ZERO
        igst = ZERO
        display_rate: Optional[Decimal] = None
        for line in line_taxes:
            subtotal += line.taxable_amount
            cgst += line.cgst
            sgst += line.sgst
            igst += line.igst
            if display_rate is None or line.gst_rate > display_rate:
                display_rate = line.gst_rate

        subtotal = round2(subtotal)
        total_tax = round2(cgst + sgst + igst)
        return InvoiceTaxSummary(
            subtotal=subtotal,
            cgst=round2(cgst),
            sgst=round2(sgst),
            igst=round2(igst),
            total_tax=total_tax,
            gst_rate=display_rate if display_rate is not None else ZERO,
            is_intrastate=is_intrastate,
        )
