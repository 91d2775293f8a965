"""
Domain Errors

Every rejection the allocation engine can produce. Each error carries a
machine-readable kind, a caseworker-facing message and the numbers needed
to act on it; the API layer turns them into structured responses.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


def format_pkr(amount: Decimal) -> str:
    """Render an amount as 'PKR 2000' (whole) or 'PKR 2000.50'."""
    value = Decimal(amount)
    if value == value.to_integral_value():
        return f"PKR {int(value)}"
    return f"PKR {value.quantize(Decimal('0.01'))}"


class AllocationError(Exception):
    """Base class for all allocation engine rejections."""

    kind = "allocation_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": False,
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AllocationError):
    """Missing field, negative amount or unknown category-specific value."""

    kind = "validation_error"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else {})
        self.field = field


class BudgetExceededError(AllocationError):
    """Candidate contribution does not fit under the family's support cap."""

    kind = "budget_exceeded"
    status_code = 409

    def __init__(self, cap: Decimal, already_used: Decimal, candidate: Decimal):
        self.cap = Decimal(cap)
        self.already_used = Decimal(already_used)
        self.candidate = Decimal(candidate)
        self.available = max(self.cap - self.already_used, Decimal("0"))
        self.excess = self.candidate + self.already_used - self.cap

        message = (
            f"Total PE contribution ({format_pkr(self.candidate)}) exceeds available "
            f"social support ({format_pkr(self.available)}): exceeds by {format_pkr(self.excess)}"
        )
        super().__init__(
            message,
            {
                "cap": float(self.cap),
                "already_used": float(self.already_used),
                "candidate": float(self.candidate),
                "available": float(self.available),
                "excess": float(self.excess),
            },
        )


class NotFoundError(AllocationError):
    """Family baseline or record does not exist."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, identifier: Any):
        super().__init__(f"{entity} not found: {identifier}", {"entity": entity, "id": str(identifier)})
        self.entity = entity
        self.identifier = identifier


class StaleRecordError(AllocationError):
    """Record was changed by someone else since it was read."""

    kind = "stale_record"
    status_code = 409

    def __init__(self, category: str, record_id: int, expected_version: Optional[int] = None,
                 actual_version: Optional[int] = None):
        super().__init__(
            f"{category} record {record_id} was modified by another user; reload it and try again",
            {
                "category": category,
                "record_id": record_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )


class TransientStoreError(AllocationError):
    """
    I/O failure talking to the store.

    Reads are safe to retry. When ``write_outcome_unknown`` is set the write
    may or may not have landed: re-fetch the allocation snapshot before
    submitting again.
    """

    kind = "transient_store_error"
    status_code = 503

    def __init__(self, message: str, *, write_outcome_unknown: bool = False):
        super().__init__(
            message,
            {
                "retryable_read": True,
                "write_outcome_unknown": write_outcome_unknown,
            },
        )
        self.write_outcome_unknown = write_outcome_unknown
