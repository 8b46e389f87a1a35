import datetime as dt
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from core.exceptions import (
    DuplicateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from core.testing import make_client, make_finished_good, make_user
from dispatches.models import Dispatch, Feedback
from dispatches.services import (
    create_dispatch,
    delete_dispatch,
    list_dispatches,
    submit_feedback,
    update_dispatch_details,
    update_dispatch_status,
)
from invoicing.services.lifecycle import LineInput, create_invoice


class DispatchTestCase(TestCase):
    def setUp(self):
        self.user = make_user("dispatcher")
        self.buyer = make_client()
        self.product = make_finished_good(available_quantity="100")
        self.today = timezone.localdate()

    def _invoice(self):
        return create_invoice(
            client_id=self.buyer.id,
            invoice_date=dt.date(2024, 10, 15),
            lines=[
                LineInput(
                    finished_good_id=self.product.id,
                    quantity=Decimal("1"),
                    price_per_unit=Decimal("100"),
                    hsn_code="3004",
                )
            ],
        )

    def _dispatch(self, invoice=None, awb_number="AWB1001", **kwargs):
        invoice = invoice or self._invoice()
        kwargs.setdefault("courier_name", "BlueDart")
        kwargs.setdefault("dispatch_date", self.today)
        return create_dispatch(invoice_id=invoice.id, awb_number=awb_number, creator=self.user, **kwargs)


class CreateDispatchTests(DispatchTestCase):
    def test_new_dispatch_starts_ready(self):
        dispatch = self._dispatch()
        self.assertEqual(dispatch.status, Dispatch.Status.READY)
        self.assertEqual(dispatch.creator, self.user)
        self.assertTrue(dispatch.invoice.has_dispatch())

    def test_one_dispatch_per_invoice(self):
        invoice = self._invoice()
        self._dispatch(invoice)
        with self.assertRaises(DuplicateError) as ctx:
            self._dispatch(invoice, awb_number="AWB2002")
        self.assertEqual(ctx.exception.field, "dispatch")

    def test_awb_number_is_unique(self):
        self._dispatch()
        with self.assertRaises(DuplicateError) as ctx:
            self._dispatch(awb_number="AWB1001")
        self.assertEqual(ctx.exception.field, "awb_number")

    def test_field_validation(self):
        invoice = self._invoice()
        cases = [
            {"courier_name": "X"},
            {"courier_name": "C" * 51},
            {"awb_number": "AWB-1001"},
            {"awb_number": ""},
            {"dispatch_date": self.today + dt.timedelta(days=1)},
            {"dispatch_date": "not-a-date"},
        ]
        for case in cases:
            with self.subTest(case=case):
                with self.assertRaises(ValidationError):
                    self._dispatch(invoice, **case)
        self.assertFalse(Dispatch.objects.exists())

    def test_boundaries_are_accepted(self):
        dispatch = self._dispatch(courier_name="DH", dispatch_date=self.today.isoformat())
        self.assertEqual(dispatch.dispatch_date, self.today)
        self._dispatch(awb_number="X" * 10, courier_name="C" * 50)

    def test_non_string_values_are_coerced(self):
        dispatch = self._dispatch(awb_number=40012345)
        self.assertEqual(dispatch.awb_number, "40012345")
        with self.assertRaises(ValidationError):
            self._dispatch(awb_number="AWB3003", courier_name=None)
        with self.assertRaises(ValidationError):
            update_dispatch_details(dispatch.id, courier_name=7)

    def test_missing_invoice(self):
        with self.assertRaises(NotFoundError):
            create_dispatch(invoice_id=999999, courier_name="BlueDart", awb_number="AWB1", dispatch_date=self.today)


class DispatchStatusTests(DispatchTestCase):
    def test_forward_progression_and_feedback_prompt(self):
        dispatch = self._dispatch()
        result = update_dispatch_status(dispatch.id, "InTransit")
        self.assertTrue(result.changed)
        self.assertFalse(result.prompt_feedback)

        result = update_dispatch_status(dispatch.id, "Delivered")
        self.assertTrue(result.changed)
        self.assertTrue(result.prompt_feedback)
        self.assertEqual(Dispatch.objects.get(pk=dispatch.pk).status, "Delivered")

    def test_skipping_a_step_is_allowed(self):
        dispatch = self._dispatch()
        result = update_dispatch_status(dispatch.id, "Delivered")
        self.assertEqual(result.dispatch.status, "Delivered")

    def test_backwards_is_rejected(self):
        dispatch = self._dispatch()
        update_dispatch_status(dispatch.id, "Delivered")
        for status in ("InTransit", "Ready"):
            with self.subTest(status=status):
                with self.assertRaises(InvalidTransitionError):
                    update_dispatch_status(dispatch.id, status)
        self.assertEqual(Dispatch.objects.get(pk=dispatch.pk).status, "Delivered")

    def test_same_status_is_a_no_op(self):
        dispatch = self._dispatch()
        update_dispatch_status(dispatch.id, "InTransit")
        before = Dispatch.objects.get(pk=dispatch.pk).updated_at
        result = update_dispatch_status(dispatch.id, "InTransit")
        self.assertFalse(result.changed)
        self.assertEqual(Dispatch.objects.get(pk=dispatch.pk).updated_at, before)

    def test_unknown_status(self):
        dispatch = self._dispatch()
        with self.assertRaises(ValidationError):
            update_dispatch_status(dispatch.id, "Lost")
        with self.assertRaises(NotFoundError):
            update_dispatch_status(999999, "Delivered")

    def test_no_prompt_once_feedback_exists(self):
        dispatch = self._dispatch()
        update_dispatch_status(dispatch.id, "Delivered")
        submit_feedback(dispatch.id, client_id=self.buyer.id, rating_quality=5, rating_packaging=4, rating_delivery=5)
        result = update_dispatch_status(dispatch.id, "Delivered")
        self.assertFalse(result.prompt_feedback)


class DispatchDetailsTests(DispatchTestCase):
    def test_update_details(self):
        dispatch = self._dispatch()
        updated = update_dispatch_details(dispatch.id, courier_name="Delhivery", awb_number="DLV777")
        self.assertEqual(updated.courier_name, "Delhivery")
        self.assertEqual(Dispatch.objects.get(pk=dispatch.pk).awb_number, "DLV777")

    def test_awb_uniqueness_excludes_itself(self):
        first = self._dispatch()
        update_dispatch_details(first.id, awb_number="AWB1001")
        self._dispatch(awb_number="AWB2002")
        with self.assertRaises(DuplicateError):
            update_dispatch_details(first.id, awb_number="AWB2002")

    def test_delete_in_any_status_cascades_feedback(self):
        dispatch = self._dispatch()
        update_dispatch_status(dispatch.id, "Delivered")
        submit_feedback(dispatch.id, client_id=self.buyer.id, rating_quality=4, rating_packaging=4, rating_delivery=4)
        invoice = dispatch.invoice
        delete_dispatch(dispatch.id)
        self.assertFalse(Dispatch.objects.exists())
        self.assertFalse(Feedback.objects.exists())
        self.assertFalse(invoice.has_dispatch())
        with self.assertRaises(NotFoundError):
            delete_dispatch(dispatch.id)


class DispatchListTests(DispatchTestCase):
    def test_filters_and_stats(self):
        ready = self._dispatch(awb_number="AWB1", courier_name="BlueDart")
        moving = self._dispatch(awb_number="AWB2", courier_name="DTDC")
        done = self._dispatch(awb_number="ZZ3", courier_name="DTDC")
        update_dispatch_status(moving.id, "InTransit")
        update_dispatch_status(done.id, "Delivered")

        dispatches, pagination, stats = list_dispatches()
        self.assertEqual(pagination["total_count"], 3)
        self.assertEqual(
            stats,
            {"total": 3, "ready": 1, "in_transit": 1, "delivered": 1, "pending_feedback": 1},
        )

        dispatches, _, _ = list_dispatches(status="Ready")
        self.assertEqual([d.id for d in dispatches], [ready.id])
        dispatches, _, _ = list_dispatches(courier_name="dtdc")
        self.assertEqual({d.id for d in dispatches}, {moving.id, done.id})
        dispatches, _, _ = list_dispatches(search="zz")
        self.assertEqual([d.id for d in dispatches], [done.id])
        dispatches, _, _ = list_dispatches(search=done.invoice.invoice_number)
        self.assertEqual([d.id for d in dispatches], [done.id])

        with self.assertRaises(ValidationError):
            list_dispatches(status="Lost")


class FeedbackTests(DispatchTestCase):
    def test_feedback_only_after_delivery(self):
        dispatch = self._dispatch()
        with self.assertRaises(ValidationError):
            submit_feedback(dispatch.id, client_id=self.buyer.id, rating_quality=5, rating_packaging=5, rating_delivery=5)

        update_dispatch_status(dispatch.id, "Delivered")
        feedback = submit_feedback(
            dispatch.id,
            client_id=self.buyer.id,
            finished_good_id=self.product.id,
            rating_quality=5,
            rating_packaging=5,
            rating_delivery=5,
            client_remarks="Well packed",
        )
        self.assertEqual(feedback.finished_good, self.product)
        with self.assertRaises(DuplicateError):
            submit_feedback(dispatch.id, client_id=self.buyer.id, rating_quality=5, rating_packaging=5, rating_delivery=5)

    def test_rating_rules(self):
        dispatch = self._dispatch()
        update_dispatch_status(dispatch.id, "Delivered")
        bad = [
            {"rating_quality": 0, "rating_packaging": 5, "rating_delivery": 5},
            {"rating_quality": 6, "rating_packaging": 5, "rating_delivery": 5},
            {"rating_quality": 2, "rating_packaging": 5, "rating_delivery": 5},
            {"rating_quality": 2, "rating_packaging": 5, "rating_delivery": 5, "issue_tags": ["Late"]},
            {"rating_quality": 5, "rating_packaging": 5, "rating_delivery": 5, "client_remarks": "x" * 501},
        ]
        for case in bad:
            with self.subTest(case=case):
                with self.assertRaises(ValidationError):
                    submit_feedback(dispatch.id, client_id=self.buyer.id, **case)

        feedback = submit_feedback(
            dispatch.id,
            client_id=self.buyer.id,
            rating_quality=2,
            rating_packaging=5,
            rating_delivery=5,
            issue_tags=["Product Quality"],
        )
        self.assertEqual(feedback.issue_tags, ["Product Quality"])
