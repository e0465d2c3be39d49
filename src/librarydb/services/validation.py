"""Argument checks shared by the inventory ledger and the circulation engine."""

from ..database.repository import InvalidRequestError


def require_id(value: int, what: str) -> int:
    """Reject identifiers that cannot name a row (non-integers, zero, negatives)."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidRequestError(f"{what} id must be a positive integer, got {value!r}")
    return value


def require_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidRequestError(f"Quantity must be a positive integer, got {quantity!r}")
    return quantity


def require_capacity(total: int) -> int:
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise InvalidRequestError(f"Total copies must be a non-negative integer, got {total!r}")
    return total
