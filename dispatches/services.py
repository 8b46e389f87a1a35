from __future__ import annotations

import datetime as dt
import logging
import math
import re
from dataclasses import dataclass

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone
from django.utils.dateparse import parse_date

from core.exceptions import (
    DuplicateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from core.models import Client, FinishedGood
from dispatches.models import Dispatch, Feedback
from invoicing.models import Invoice


logger = logging.getLogger(__name__)

STATUS_ORDER = (
    Dispatch.Status.READY,
    Dispatch.Status.IN_TRANSIT,
    Dispatch.Status.DELIVERED,
)
AWB_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
COURIER_MIN_LENGTH = 2
COURIER_MAX_LENGTH = 50
REMARKS_MAX_LENGTH = 500
LOW_RATING_THRESHOLD = 3


@dataclass(frozen=True)
class StatusUpdate:
    dispatch: Dispatch
    changed: bool
    prompt_feedback: bool


def status_index(status: str) -> int:
    try:
        return STATUS_ORDER.index(status)
    except ValueError:
        allowed = ", ".join(STATUS_ORDER)
        raise ValidationError(f"Status must be one of: {allowed}", field="status") from None


def _clean_courier_name(value) -> str:
    name = str(value if value is not None else "").strip()
    if not (COURIER_MIN_LENGTH <= len(name) <= COURIER_MAX_LENGTH):
        raise ValidationError(
            f"Courier name must be between {COURIER_MIN_LENGTH} and {COURIER_MAX_LENGTH} characters",
            field="courier_name",
        )
    return name


def _clean_awb_number(value) -> str:
    awb = str(value if value is not None else "").strip()
    if not AWB_PATTERN.match(awb):
        raise ValidationError("AWB number must be alphanumeric", field="awb_number")
    return awb


def _clean_dispatch_date(value) -> dt.date:
    if isinstance(value, dt.datetime):
        value = value.date()
    elif not isinstance(value, dt.date):
        try:
            value = parse_date(str(value or ""))
        except ValueError:
            value = None
        if value is None:
            raise ValidationError("dispatch_date must be a date (YYYY-MM-DD).", field="dispatch_date")
    if value > timezone.localdate():
        raise ValidationError("Dispatch date cannot be in the future", field="dispatch_date")
    return value


def _ensure_awb_free(awb_number: str, *, exclude_id=None) -> None:
    qs = Dispatch.objects.filter(awb_number=awb_number)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise DuplicateError("This AWB number is already in use", field="awb_number")


def _lock_dispatch(dispatch_id) -> Dispatch:
    dispatch = Dispatch.objects.select_for_update().filter(pk=dispatch_id).first()
    if dispatch is None:
        raise NotFoundError("Dispatch not found", dispatch_id=dispatch_id)
    return dispatch


def _save_unique(dispatch: Dispatch, **save_kwargs) -> None:
    """Save, turning a lost uniqueness race into the same error the pre-check raises."""
    try:
        with transaction.atomic():
            dispatch.save(**save_kwargs)
    except IntegrityError as exc:
        if Dispatch.objects.filter(invoice_id=dispatch.invoice_id).exclude(pk=dispatch.pk).exists():
            raise DuplicateError(
                "A dispatch has already been created for this invoice", field="dispatch"
            ) from exc
        raise DuplicateError("This AWB number is already in use", field="awb_number") from exc


@transaction.atomic
def create_dispatch(*, invoice_id, courier_name, awb_number, dispatch_date, creator=None) -> Dispatch:
    """
    Ship an invoice. From here on the invoice can be neither edited nor deleted.

    The invoice row is locked first, so a concurrent edit or delete of the
    same invoice either finishes before the dispatch exists or sees it.
    """
    courier_name = _clean_courier_name(courier_name)
    awb_number = _clean_awb_number(awb_number)
    dispatch_date = _clean_dispatch_date(dispatch_date)

    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise NotFoundError("Invoice not found", invoice_id=invoice_id)
    if Dispatch.objects.filter(invoice=invoice).exists():
        raise DuplicateError("A dispatch has already been created for this invoice", field="dispatch")
    _ensure_awb_free(awb_number)

    dispatch = Dispatch(
        invoice=invoice,
        courier_name=courier_name,
        awb_number=awb_number,
        dispatch_date=dispatch_date,
        status=Dispatch.Status.READY,
        creator=creator,
    )
    _save_unique(dispatch, force_insert=True)
    logger.info("Dispatch %s created for invoice %s via %s", awb_number, invoice.invoice_number, courier_name)
    return dispatch


@transaction.atomic
def update_dispatch_status(dispatch_id, status: str) -> StatusUpdate:
    """
    Move a dispatch along Ready -> InTransit -> Delivered.

    Moving backwards is rejected. Re-sending the current status is accepted
    and writes nothing. Reaching Delivered without feedback on file sets
    `prompt_feedback`.
    """
    target = status_index(status)
    dispatch = _lock_dispatch(dispatch_id)
    current = status_index(dispatch.status)
    if target < current:
        raise InvalidTransitionError(
            "Status can only progress forward (Ready → InTransit → Delivered)",
            current_status=dispatch.status,
            requested_status=status,
        )

    changed = target > current
    if changed:
        previous = dispatch.status
        dispatch.status = status
        dispatch.save(update_fields=["status", "updated_at"])
        logger.info("Dispatch %s moved %s -> %s", dispatch.awb_number, previous, status)

    prompt_feedback = dispatch.status == Dispatch.Status.DELIVERED and not dispatch.has_feedback()
    return StatusUpdate(dispatch=dispatch, changed=changed, prompt_feedback=prompt_feedback)


@transaction.atomic
def update_dispatch_details(dispatch_id, *, courier_name=None, awb_number=None, dispatch_date=None) -> Dispatch:
    dispatch = _lock_dispatch(dispatch_id)
    update_fields = []
    if courier_name is not None:
        dispatch.courier_name = _clean_courier_name(courier_name)
        update_fields.append("courier_name")
    if awb_number is not None:
        awb_number = _clean_awb_number(awb_number)
        if awb_number != dispatch.awb_number:
            _ensure_awb_free(awb_number, exclude_id=dispatch.pk)
        dispatch.awb_number = awb_number
        update_fields.append("awb_number")
    if dispatch_date is not None:
        dispatch.dispatch_date = _clean_dispatch_date(dispatch_date)
        update_fields.append("dispatch_date")

    if update_fields:
        _save_unique(dispatch, update_fields=update_fields + ["updated_at"])
    return dispatch


@transaction.atomic
def delete_dispatch(dispatch_id) -> None:
    """Remove a dispatch in any status. Its invoice becomes editable again."""
    dispatch = _lock_dispatch(dispatch_id)
    awb_number = dispatch.awb_number
    invoice_id = dispatch.invoice_id
    dispatch.delete()
    logger.info("Dispatch %s deleted; invoice %s is editable again", awb_number, invoice_id)


def _dispatch_queryset():
    return Dispatch.objects.select_related("invoice", "invoice__client", "creator", "feedback")


def get_dispatch(dispatch_id) -> Dispatch:
    dispatch = _dispatch_queryset().filter(pk=dispatch_id).first()
    if dispatch is None:
        raise NotFoundError("Dispatch not found", dispatch_id=dispatch_id)
    return dispatch


def _optional_date(value, field: str):
    if value in (None, ""):
        return None
    if isinstance(value, dt.date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD).", field=field)
    return parsed


def dispatch_stats() -> dict:
    delivered = Q(status=Dispatch.Status.DELIVERED)
    return Dispatch.objects.aggregate(
        total=Count("id"),
        ready=Count("id", filter=Q(status=Dispatch.Status.READY)),
        in_transit=Count("id", filter=Q(status=Dispatch.Status.IN_TRANSIT)),
        delivered=Count("id", filter=delivered),
        pending_feedback=Count("id", filter=delivered & Q(feedback__isnull=True)),
    )


def list_dispatches(
    *,
    status=None,
    courier_name=None,
    start_date=None,
    end_date=None,
    search=None,
    page=1,
    limit=10,
) -> tuple[list[Dispatch], dict, dict]:
    try:
        page = max(int(page or 1), 1)
        limit = int(limit or 10)
    except (TypeError, ValueError) as exc:
        raise ValidationError("page and limit must be integers.") from exc
    limit = min(max(limit, 1), int(getattr(settings, "INVOICE_PAGE_SIZE_MAX", 100)))

    qs = _dispatch_queryset()
    if status:
        status_index(status)
        qs = qs.filter(status=status)
    if courier_name:
        qs = qs.filter(courier_name__icontains=courier_name)
    start = _optional_date(start_date, "start_date")
    end = _optional_date(end_date, "end_date")
    if start:
        qs = qs.filter(dispatch_date__gte=start)
    if end:
        qs = qs.filter(dispatch_date__lte=end)
    if search:
        qs = qs.filter(Q(awb_number__icontains=search) | Q(invoice__invoice_number__icontains=search))

    qs = qs.order_by("-created_at", "-id")
    total = qs.count()
    offset = (page - 1) * limit
    dispatches = list(qs[offset : offset + limit])
    pagination = {
        "page": page,
        "limit": limit,
        "total_count": total,
        "total_pages": math.ceil(total / limit) if total else 0,
    }
    return dispatches, pagination, dispatch_stats()


def _clean_rating(value, field: str) -> int:
    try:
        rating = int(value)
    except (TypeError, ValueError):
        rating = 0
    if str(rating) != str(value).strip() or not 1 <= rating <= 5:
        raise ValidationError("All ratings must be integers between 1 and 5", field=field)
    return rating


@transaction.atomic
def submit_feedback(
    dispatch_id,
    *,
    client_id,
    rating_quality,
    rating_packaging,
    rating_delivery,
    finished_good_id=None,
    client_remarks: str = "",
    issue_tags=None,
) -> Feedback:
    """
    Record the customer's feedback on a delivered dispatch. One per dispatch;
    any rating below 3 needs at least one issue tag.
    """
    ratings = {
        "rating_quality": _clean_rating(rating_quality, "rating_quality"),
        "rating_packaging": _clean_rating(rating_packaging, "rating_packaging"),
        "rating_delivery": _clean_rating(rating_delivery, "rating_delivery"),
    }
    issue_tags = list(issue_tags or [])
    if min(ratings.values()) < LOW_RATING_THRESHOLD and not issue_tags:
        raise ValidationError(
            "At least one issue tag is required when any rating is below 3",
            field="issue_tags",
        )
    invalid = [tag for tag in issue_tags if tag not in Feedback.IssueTag.values]
    if invalid:
        raise ValidationError(
            f"Invalid issue tags: {', '.join(invalid)}. Valid options: {', '.join(Feedback.IssueTag.values)}",
            field="issue_tags",
        )
    client_remarks = client_remarks or ""
    if len(client_remarks) > REMARKS_MAX_LENGTH:
        raise ValidationError(
            f"Client remarks must not exceed {REMARKS_MAX_LENGTH} characters",
            field="client_remarks",
        )

    dispatch = _lock_dispatch(dispatch_id)
    if dispatch.status != Dispatch.Status.DELIVERED:
        raise ValidationError("Feedback can only be submitted for delivered dispatches", field="dispatch")
    if dispatch.has_feedback():
        raise DuplicateError("Feedback has already been submitted for this dispatch", field="feedback")

    client = Client.objects.filter(pk=client_id).first()
    if client is None:
        raise NotFoundError("Client not found", client_id=client_id)
    finished_good = None
    if finished_good_id:
        finished_good = FinishedGood.objects.filter(pk=finished_good_id).first()
        if finished_good is None:
            raise NotFoundError(f"Finished goods not found: {finished_good_id}", finished_good_id=finished_good_id)

    feedback = Feedback.objects.create(
        dispatch=dispatch,
        client=client,
        finished_good=finished_good,
        client_remarks=client_remarks,
        issue_tags=issue_tags,
        **ratings,
    )
    logger.info("Feedback recorded for dispatch %s", dispatch.awb_number)
    return feedback
