from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from django.db import transaction
from django.utils import timezone

from core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from core.models import FinishedGood


logger = logging.getLogger(__name__)

QTY_QUANT = Decimal("0.0000")


def _dec(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.0000")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class StockRequest:
    finished_good_id: int
    quantity: Decimal


def _aggregate(requests: Iterable[StockRequest]) -> dict[int, Decimal]:
    totals: dict[int, Decimal] = {}
    for req in requests:
        quantity = _dec(req.quantity)
        if quantity <= 0:
            raise ValidationError("quantity must be > 0.")
        totals[req.finished_good_id] = totals.get(req.finished_good_id, Decimal("0.0000")) + quantity
    return totals


def lock_finished_goods(finished_good_ids: Iterable[int]) -> dict[int, FinishedGood]:
    """
    Lock the given finished goods for the rest of the surrounding transaction.

    Rows are locked in primary-key order so concurrent reservations touching
    overlapping products cannot deadlock.
    """
    ids = sorted(set(finished_good_ids))
    if not ids:
        return {}
    rows = FinishedGood.objects.select_for_update().filter(id__in=ids).order_by("id")
    goods = {fg.id: fg for fg in rows}
    missing = [fg_id for fg_id in ids if fg_id not in goods]
    if missing:
        raise NotFoundError(f"Finished goods not found: {missing[0]}", finished_good_id=missing[0])
    return goods


def _save_quantity(fg: FinishedGood) -> None:
    fg.updated_at = timezone.now()
    fg.save(update_fields=["available_quantity", "updated_at"])


def reserve_stock(
    requests: Iterable[StockRequest],
    *,
    locked: dict[int, FinishedGood] | None = None,
) -> dict[int, FinishedGood]:
    """
    Decrement availability for every request, or for none of them.

    Every product is checked against its locked quantity before the first
    decrement is written. Callers persisting invoice rows must do so inside the
    same outer `transaction.atomic()` so a later failure undoes the decrement.
    """
    totals = _aggregate(requests)
    with transaction.atomic():
        goods = locked if locked is not None else lock_finished_goods(totals)
        for fg_id, quantity in totals.items():
            fg = goods.get(fg_id)
            if fg is None:
                raise NotFoundError(f"Finished goods not found: {fg_id}", finished_good_id=fg_id)
            available = _dec(fg.available_quantity)
            if available < quantity:
                logger.info(
                    "Reservation rejected for finished good %s: available=%s requested=%s",
                    fg_id,
                    available,
                    quantity,
                )
                raise InsufficientStockError(
                    product_name=fg.product_name,
                    available=available,
                    requested=quantity,
                    finished_good_id=fg_id,
                )

        for fg_id, quantity in totals.items():
            fg = goods[fg_id]
            fg.available_quantity = (_dec(fg.available_quantity) - quantity).quantize(QTY_QUANT)
            _save_quantity(fg)
    return goods


def release_stock(
    requests: Iterable[StockRequest],
    *,
    locked: dict[int, FinishedGood] | None = None,
) -> dict[int, FinishedGood]:
    """Return reserved quantities to the pool (invoice edit or delete)."""
    totals = _aggregate(requests)
    with transaction.atomic():
        goods = locked if locked is not None else lock_finished_goods(totals)
        for fg_id, quantity in totals.items():
            fg = goods.get(fg_id)
            if fg is None:
                raise NotFoundError(f"Finished goods not found: {fg_id}", finished_good_id=fg_id)
            fg.available_quantity = (_dec(fg.available_quantity) + quantity).quantize(QTY_QUANT)
            _save_quantity(fg)
    return goods


def replace_stock(
    old_requests: Iterable[StockRequest],
    new_requests: Iterable[StockRequest],
) -> dict[int, FinishedGood]:
    """
    Release the old reservation in full, then reserve the new one.

    Both steps share one savepoint: if the new reservation fails, the release
    is rolled back with it and stock is exactly as it was before.
    """
    old_requests = list(old_requests)
    new_requests = list(new_requests)
    ids = {req.finished_good_id for req in old_requests} | {req.finished_good_id for req in new_requests}
    with transaction.atomic():
        goods = lock_finished_goods(ids)
        release_stock(old_requests, locked=goods)
        reserve_stock(new_requests, locked=goods)
    return goods
