"""
Movement validator.

Decides whether creating, updating or deleting a stock movement keeps the
product's running balance non-negative at every date. Never raises: the
caller gets a ValidationResult and turns a rejection into NegativeStockError.
"""
import enum
from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional

from deepstaq.services.ledger import balance_as_of, first_negative_balance, signed_quantity

NEGATIVE_STOCK_MESSAGE = 'Operation would result in negative stock'
NEGATIVE_STOCK_ON_DELETE_MESSAGE = 'Deletion would result in negative stock'


class MutationMode(enum.Enum):
    """Kind of ledger mutation being validated."""
    CREATE = 'CREATE'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'


class ProposedMovement(NamedTuple):
    """Movement values as they would be persisted (id is None on create)."""
    movement_date: date
    type: object
    quantity: Decimal
    id: Optional[int] = None
    created_at: Optional[object] = None


class ValidationResult(NamedTuple):
    accepted: bool
    reason: Optional[str] = None
    failing_date: Optional[date] = None
    balance: Optional[Decimal] = None


ACCEPTED = ValidationResult(accepted=True)


def _reject(reason, failing_date, balance):
    return ValidationResult(accepted=False, reason=reason, failing_date=failing_date, balance=balance)


def validate_mutation(product, existing_movements: Iterable, proposed, mode: MutationMode) -> ValidationResult:
    """
    Validate a ledger mutation against the product's movement history.

    Args:
        product: object with `opening_stock`
        existing_movements: persisted movements of the product; the movement
            being updated/deleted may be included, it is excluded by id
        proposed: the new values (CREATE/UPDATE) or the movement being
            removed (DELETE)
        mode: MutationMode

    Returns:
        ValidationResult

    The balance at the mutation's own date is checked first. Then the whole
    resulting timeline is replayed from the earliest affected date, so a
    change that starves a later OUT movement is rejected as well.
    """
    opening = product.opening_stock
    existing = list(existing_movements)

    if mode is MutationMode.CREATE:
        others = existing
        since = proposed.movement_date
    else:
        others = [m for m in existing if m.id != proposed.id]
        original = next((m for m in existing if m.id == proposed.id), None)
        since = proposed.movement_date
        if original is not None and original.movement_date < since:
            since = original.movement_date

    base = balance_as_of(opening, others, proposed.movement_date)

    if mode is MutationMode.DELETE:
        if base < 0:
            return _reject(NEGATIVE_STOCK_ON_DELETE_MESSAGE, proposed.movement_date, base)
        violation = first_negative_balance(opening, others, since=since)
        if violation is not None:
            return _reject(NEGATIVE_STOCK_ON_DELETE_MESSAGE, violation[0], violation[1])
        return ACCEPTED

    new_balance = base + signed_quantity(proposed.type, proposed.quantity)
    if new_balance < 0:
        return _reject(NEGATIVE_STOCK_MESSAGE, proposed.movement_date, new_balance)

    violation = first_negative_balance(opening, others + [proposed], since=since)
    if violation is not None:
        return _reject(NEGATIVE_STOCK_MESSAGE, violation[0], violation[1])
    return ACCEPTED


def validate_opening_stock(new_opening_stock, movements: Iterable) -> ValidationResult:
    """Check that replacing a product's opening stock keeps every historical balance non-negative."""
    violation = first_negative_balance(new_opening_stock, list(movements))
    if violation is not None:
        return _reject(NEGATIVE_STOCK_MESSAGE, violation[0], violation[1])
    return ACCEPTED
