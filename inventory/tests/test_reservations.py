from decimal import Decimal

from django.db import transaction
from django.test import TestCase

from core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from core.testing import make_finished_good
from inventory.services.reservations import StockRequest, release_stock, replace_stock, reserve_stock


class ReservationTests(TestCase):
    def setUp(self):
        self.oil = make_finished_good("Brahmi Oil", available_quantity="5")
        self.churna = make_finished_good("Triphala Churna", available_quantity="20")

    def _qty(self, fg):
        fg.refresh_from_db()
        return fg.available_quantity

    def test_reserve_decrements_each_product(self):
        reserve_stock(
            [
                StockRequest(self.oil.id, Decimal("2")),
                StockRequest(self.churna.id, Decimal("7.5")),
            ]
        )
        self.assertEqual(self._qty(self.oil), Decimal("3.0000"))
        self.assertEqual(self._qty(self.churna), Decimal("12.5000"))

    def test_exact_quantity_then_nothing_left(self):
        reserve_stock([StockRequest(self.oil.id, Decimal("5"))])
        self.assertEqual(self._qty(self.oil), Decimal("0.0000"))

        with self.assertRaises(InsufficientStockError) as ctx:
            reserve_stock([StockRequest(self.oil.id, Decimal("1"))])
        self.assertEqual(ctx.exception.available, Decimal("0.0000"))
        self.assertEqual(ctx.exception.requested, Decimal("1"))
        self.assertIn("Brahmi Oil", str(ctx.exception))
        self.assertEqual(self._qty(self.oil), Decimal("0.0000"))

    def test_failed_line_leaves_every_product_untouched(self):
        with self.assertRaises(InsufficientStockError):
            reserve_stock(
                [
                    StockRequest(self.churna.id, Decimal("4")),
                    StockRequest(self.oil.id, Decimal("6")),
                ]
            )
        self.assertEqual(self._qty(self.churna), Decimal("20.0000"))
        self.assertEqual(self._qty(self.oil), Decimal("5.0000"))

    def test_lines_for_same_product_are_checked_together(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            reserve_stock(
                [
                    StockRequest(self.oil.id, Decimal("3")),
                    StockRequest(self.oil.id, Decimal("3")),
                ]
            )
        self.assertEqual(ctx.exception.requested, Decimal("6"))
        self.assertEqual(self._qty(self.oil), Decimal("5.0000"))

    def test_unknown_product_and_bad_quantity(self):
        with self.assertRaises(NotFoundError):
            reserve_stock([StockRequest(999999, Decimal("1"))])
        with self.assertRaises(ValidationError):
            reserve_stock([StockRequest(self.oil.id, Decimal("0"))])
        with self.assertRaises(ValidationError):
            release_stock([StockRequest(self.oil.id, Decimal("-1"))])

    def test_release_restores_quantity(self):
        reserve_stock([StockRequest(self.oil.id, Decimal("4"))])
        release_stock([StockRequest(self.oil.id, Decimal("4"))])
        self.assertEqual(self._qty(self.oil), Decimal("5.0000"))

    def test_replace_can_reuse_its_own_reservation(self):
        reserve_stock([StockRequest(self.oil.id, Decimal("5"))])
        replace_stock(
            [StockRequest(self.oil.id, Decimal("5"))],
            [StockRequest(self.oil.id, Decimal("4")), StockRequest(self.churna.id, Decimal("1"))],
        )
        self.assertEqual(self._qty(self.oil), Decimal("1.0000"))
        self.assertEqual(self._qty(self.churna), Decimal("19.0000"))

    def test_failed_replace_keeps_old_reservation(self):
        reserve_stock([StockRequest(self.oil.id, Decimal("2"))])
        with self.assertRaises(InsufficientStockError):
            replace_stock(
                [StockRequest(self.oil.id, Decimal("2"))],
                [StockRequest(self.churna.id, Decimal("21"))],
            )
        self.assertEqual(self._qty(self.oil), Decimal("3.0000"))
        self.assertEqual(self._qty(self.churna), Decimal("20.0000"))

    def test_outer_rollback_undoes_reservation(self):
        with self.assertRaises(RuntimeError):
            with transaction.atomic():
                reserve_stock([StockRequest(self.oil.id, Decimal("5"))])
                raise RuntimeError("persisting the invoice failed")
        self.assertEqual(self._qty(self.oil), Decimal("5.0000"))
