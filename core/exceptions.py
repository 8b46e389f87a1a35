from __future__ import annotations

from decimal import Decimal


class DomainError(Exception):
    """
    Base class for expected, user-facing ledger failures.

    Raised inside `transaction.atomic()` blocks so the surrounding unit of work
    rolls back; API views translate it to a response using `status_code`.
    """

    status_code = 400
    code = "domain_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_payload(self) -> dict:
        payload = {"detail": self.message, "code": self.code}
        for key, value in self.details.items():
            payload[key] = str(value) if isinstance(value, Decimal) else value
        return payload


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"


class InsufficientStockError(DomainError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, *, product_name: str, available: Decimal, requested: Decimal, finished_good_id=None):
        super().__init__(
            f"Insufficient quantity for {product_name}. Available: {available}, Requested: {requested}",
            product_name=product_name,
            available=available,
            requested=requested,
            finished_good_id=finished_good_id,
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class DuplicateError(DomainError):
    status_code = 409
    code = "duplicate"

    def __init__(self, message: str, *, field: str):
        super().__init__(message, field=field)
        self.field = field


class EditBlockedError(DomainError):
    status_code = 409
    code = "edit_blocked"


class DeleteBlockedError(DomainError):
    status_code = 409
    code = "delete_blocked"


class InvalidTransitionError(DomainError):
    status_code = 400
    code = "invalid_transition"
