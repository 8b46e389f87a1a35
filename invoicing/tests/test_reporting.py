import datetime as dt
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from core.testing import KARNATAKA_GSTIN, make_client, make_company, make_finished_good
from invoicing.services.lifecycle import LineInput, create_invoice, set_payment_status
from invoicing.services.reporting import (
    amount_in_words,
    build_print_data,
    format_indian_currency,
    invoice_statistics,
)


class AmountInWordsTests(SimpleTestCase):
    def test_indian_grouping(self):
        self.assertEqual(amount_in_words(Decimal("1180.00")), "One Thousand One Hundred Eighty Rupees Only")
        self.assertEqual(
            amount_in_words(Decimal("118000.50")),
            "One Lakh Eighteen Thousand Rupees and Fifty Paise Only",
        )
        self.assertEqual(
            amount_in_words(Decimal("12345678.09")),
            "One Crore Twenty Three Lakh Forty Five Thousand Six Hundred Seventy Eight Rupees and Nine Paise Only",
        )

    def test_small_amounts(self):
        self.assertEqual(amount_in_words(0), "Zero Rupees Only")
        self.assertEqual(amount_in_words(Decimal("0.75")), "Zero Rupees and Seventy Five Paise Only")
        self.assertEqual(amount_in_words(Decimal("15")), "Fifteen Rupees Only")

    def test_currency_format(self):
        self.assertEqual(format_indian_currency(Decimal("118000")), "₹1,18,000.00")
        self.assertEqual(format_indian_currency(Decimal("12345678.9")), "₹1,23,45,678.90")
        self.assertEqual(format_indian_currency(Decimal("999")), "₹999.00")


class InvoiceReportingTests(TestCase):
    def setUp(self):
        self.buyer = make_client("Mysuru Naturals", gst_number=KARNATAKA_GSTIN, address="Mysuru")
        self.product = make_finished_good(available_quantity="100")
        self.company = make_company(is_default=True)

    def _invoice(self, qty, invoice_date=dt.date(2024, 10, 15)):
        return create_invoice(
            client_id=self.buyer.id,
            invoice_date=invoice_date,
            lines=[
                LineInput(
                    finished_good_id=self.product.id,
                    quantity=Decimal(qty),
                    price_per_unit=Decimal("100.00"),
                    hsn_code="3004",
                    gst_rate=Decimal("12"),
                )
            ],
        )

    def test_statistics(self):
        paid = self._invoice("10")
        self._invoice("5")
        self._invoice("1", invoice_date=dt.date(2024, 12, 1))
        set_payment_status(paid.id, "Paid")

        stats = invoice_statistics(start_date="2024-10-01", end_date="2024-10-31")
        self.assertEqual(stats["total_invoices"], 2)
        self.assertEqual(stats["pending_invoices"], 1)
        self.assertEqual(stats["paid_invoices"], 1)
        self.assertEqual(stats["total_revenue"], Decimal("1120.00"))
        self.assertEqual(stats["average_invoice_value"], Decimal("840.00"))
        self.assertEqual(stats["payment_status_distribution"], {"Pending": 1, "Partial": 0, "Paid": 1})

    def test_statistics_empty(self):
        stats = invoice_statistics()
        self.assertEqual(stats["total_invoices"], 0)
        self.assertEqual(stats["total_revenue"], Decimal("0.00"))

    def test_print_data(self):
        invoice = self._invoice("10")
        data = build_print_data(invoice)
        self.assertEqual(data["invoice_number"], invoice.invoice_number)
        self.assertEqual(data["client"]["state_name"], "Karnataka")
        self.assertEqual(data["company"]["name"], self.company.name)
        self.assertFalse(data["is_intrastate"])
        self.assertEqual(data["items"][0]["igst"], "120.00")
        self.assertEqual(data["total_amount"], "1120.00")
        self.assertEqual(data["total_amount_display"], "₹1,120.00")
        self.assertEqual(data["amount_in_words"], "One Thousand One Hundred Twenty Rupees Only")
