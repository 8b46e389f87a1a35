from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from core.exceptions import ValidationError
from .gstin import is_valid_gstin, normalize_gstin, state_code_from_gstin, state_name
from .services import GST_SLABS, GSTEngine, normalize_gst_rate, round2
from .sourcing import is_intrastate, resolve_seller_state_code


class JurisdictionTests(SimpleTestCase):
    def test_same_state_is_intrastate(self):
        self.assertTrue(is_intrastate("27AAPFU0939F1ZV", "27"))

    def test_other_state_is_interstate(self):
        self.assertFalse(is_intrastate("29AAGCB7383J1Z4", "27"))

    def test_missing_or_short_buyer_id_is_interstate(self):
        self.assertFalse(is_intrastate("", "27"))
        self.assertFalse(is_intrastate(None, "27"))
        self.assertFalse(is_intrastate("2", "27"))

    def test_seller_may_be_a_full_gstin(self):
        self.assertTrue(is_intrastate("29AAGCB7383J1Z4", "29ABCDE1234F1Z5"))

    @override_settings(SELLER_STATE_CODE="29")
    def test_default_seller_comes_from_settings(self):
        self.assertTrue(is_intrastate("29AAGCB7383J1Z4"))
        self.assertFalse(is_intrastate("27AAPFU0939F1ZV"))

    def test_seller_state_prefers_company_gstin(self):
        self.assertEqual(resolve_seller_state_code({"gstin": "29AAGCB7383J1Z4"}), "29")
        with self.settings(SELLER_STATE_CODE="27"):
            self.assertEqual(resolve_seller_state_code({}), "27")
            self.assertEqual(resolve_seller_state_code(None), "27")


class GSTINTests(SimpleTestCase):
    def test_format_validation(self):
        self.assertTrue(is_valid_gstin("27AAPFU0939F1ZV"))
        self.assertTrue(is_valid_gstin(" 27aapfu0939f1zv "))
        self.assertFalse(is_valid_gstin("27AAPFU0939F1Z"))
        self.assertFalse(is_valid_gstin(""))

    def test_state_helpers(self):
        self.assertEqual(normalize_gstin(" 29aagcb7383j1z4"), "29AAGCB7383J1Z4")
        self.assertEqual(state_code_from_gstin("29AAGCB7383J1Z4"), "29")
        self.assertEqual(state_code_from_gstin("2"), "")
        self.assertEqual(state_name("27"), "Maharashtra")
        self.assertEqual(state_name("99"), "Unknown")


class GSTEngineTests(SimpleTestCase):
    def test_intrastate_splits_rate_in_half(self):
        tax = GSTEngine.calculate_for_line(Decimal("1000"), 18, is_intrastate=True)
        self.assertEqual(tax.cgst, Decimal("90.00"))
        self.assertEqual(tax.sgst, Decimal("90.00"))
        self.assertEqual(tax.igst, Decimal("0.00"))
        self.assertEqual(tax.total_tax, Decimal("180.00"))

    def test_interstate_charges_igst(self):
        tax = GSTEngine.calculate_for_line(Decimal("1000"), 18, is_intrastate=False)
        self.assertEqual(tax.igst, Decimal("180.00"))
        self.assertEqual(tax.cgst + tax.sgst, Decimal("0.00"))

    def test_zero_slab_has_no_tax(self):
        for intrastate in (True, False):
            tax = GSTEngine.calculate_for_line(Decimal("999.99"), 0, is_intrastate=intrastate)
            self.assertEqual(tax.total_tax, Decimal("0.00"))

    def test_halves_round_half_up_separately(self):
        # 5% of 10.10 = 0.505 -> each half 0.2525 -> 0.25
        tax = GSTEngine.calculate_for_line(Decimal("10.10"), 5, is_intrastate=True)
        self.assertEqual(tax.cgst, Decimal("0.25"))
        self.assertEqual(tax.sgst, Decimal("0.25"))
        tax = GSTEngine.calculate_for_line(Decimal("10.10"), 5, is_intrastate=False)
        self.assertEqual(tax.igst, Decimal("0.51"))

    def test_split_parity_across_slabs(self):
        amounts = [Decimal("1"), Decimal("10.10"), Decimal("333.33"), Decimal("1000"), Decimal("12345.67")]
        for rate in GST_SLABS:
            for amount in amounts:
                intra = GSTEngine.calculate_for_line(amount, rate, is_intrastate=True)
                inter = GSTEngine.calculate_for_line(amount, rate, is_intrastate=False)
                self.assertEqual(intra.igst, Decimal("0.00"))
                self.assertEqual(inter.cgst + inter.sgst, Decimal("0.00"))
                self.assertLessEqual(abs(intra.total_tax - inter.total_tax), Decimal("0.01"), (rate, amount))

    def test_rejects_rate_outside_slabs(self):
        with self.assertRaises(ValidationError):
            GSTEngine.calculate_for_line(Decimal("100"), 7, is_intrastate=True)
        with self.assertRaises(ValidationError):
            normalize_gst_rate("abc")

    def test_rate_defaults_to_18(self):
        self.assertEqual(normalize_gst_rate(None), Decimal("18"))
        self.assertEqual(normalize_gst_rate(""), Decimal("18"))
        self.assertEqual(normalize_gst_rate("12"), Decimal("12.00"))

    def test_summary_sums_rounded_lines_and_reports_max_rate(self):
        lines = [
            GSTEngine.calculate_for_line(Decimal("10.10"), 5, is_intrastate=True),
            GSTEngine.calculate_for_line(Decimal("1000"), 18, is_intrastate=True),
        ]
        summary = GSTEngine.summarize(lines, is_intrastate=True)
        self.assertEqual(summary.subtotal, Decimal("1010.10"))
        self.assertEqual(summary.cgst, Decimal("90.25"))
        self.assertEqual(summary.sgst, Decimal("90.25"))
        self.assertEqual(summary.total_tax, Decimal("180.50"))
        self.assertEqual(summary.total_amount, Decimal("1190.60"))
        self.assertEqual(summary.gst_rate, Decimal("18.00"))
        details = summary.as_tax_details()
        self.assertEqual(details["total_tax"], "180.50")
        self.assertTrue(details["is_intrastate"])

    def test_round2_is_half_up(self):
        self.assertEqual(round2(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(round2(Decimal("2.675")), Decimal("2.68"))
