"""
Stock ledger arithmetic.

Pure functions over a product's opening stock and its movement history.
Movements are any objects exposing `id`, `movement_date`, `type`, `quantity`
and (optionally) `created_at`; ORM rows and `ProposedMovement` both qualify.

Balances are date-granular: a balance "as of" a date includes every movement
dated on or before it, so same-day movements are never ordered against each
other for validation purposes.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from deepstaq.models import StockMovementType

ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    """Convert a numeric value (Decimal, int, float, str, None) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _type_value(movement_type) -> str:
    return movement_type.value if isinstance(movement_type, StockMovementType) else str(movement_type)


def signed_quantity(movement_type, quantity) -> Decimal:
    """Quantity with the sign implied by the movement type (IN positive, OUT negative)."""
    qty = to_decimal(quantity)
    return qty if _type_value(movement_type) == StockMovementType.IN.value else -qty


def _sort_key(movement):
    created_at = getattr(movement, 'created_at', None) or datetime.min
    if created_at.tzinfo is not None:
        created_at = created_at.replace(tzinfo=None)
    movement_id = getattr(movement, 'id', None)
    return (movement.movement_date, created_at, movement_id if movement_id is not None else float('inf'))


def sort_movements(movements: Iterable) -> List:
    """Return movements in ledger order: (movement_date, created_at, id) ascending."""
    return sorted(movements, key=_sort_key)


def balance_as_of(opening_stock, movements: Iterable, target_date=None, exclude_id=None) -> Decimal:
    """
    Running balance of a product as of `target_date` (inclusive).

    Args:
        opening_stock: balance before any recorded movement
        movements: movement history (sorted defensively)
        target_date: date to stop at; None means current stock (no bound)
        exclude_id: id of a movement to leave out (the one being edited/deleted)

    Returns:
        Decimal balance
    """
    balance = to_decimal(opening_stock)
    for movement in sort_movements(movements):
        if target_date is not None and movement.movement_date > target_date:
            break
        if exclude_id is not None and movement.id == exclude_id:
            continue
        balance += signed_quantity(movement.type, movement.quantity)
    return balance


def daily_closing_balances(opening_stock, movements: Iterable) -> List[Tuple]:
    """
    End-of-day balance for every distinct movement date, in date order.

    Returns:
        List of (date, Decimal balance) tuples
    """
    balances = []
    balance = to_decimal(opening_stock)
    for movement in sort_movements(movements):
        balance += signed_quantity(movement.type, movement.quantity)
        if balances and balances[-1][0] == movement.movement_date:
            balances[-1] = (movement.movement_date, balance)
        else:
            balances.append((movement.movement_date, balance))
    return balances


def first_negative_balance(opening_stock, movements: Iterable, since=None) -> Optional[Tuple]:
    """
    First (date, balance) at which the end-of-day balance drops below zero.

    A negative opening stock counts as a violation dated None. Dates before
    `since` are skipped (they are unaffected by a mutation dated `since`).
    """
    opening = to_decimal(opening_stock)
    if opening < 0 and since is None:
        return (None, opening)
    for day, balance in daily_closing_balances(opening, movements):
        if since is not None and day < since:
            continue
        if balance < 0:
            return (day, balance)
    return None


def period_totals(movements: Iterable, start=None, end=None) -> Tuple[Decimal, Decimal]:
    """Sum IN and OUT quantities separately for movements dated within [start, end]."""
    total_in = ZERO
    total_out = ZERO
    for movement in movements:
        if start is not None and movement.movement_date < start:
            continue
        if end is not None and movement.movement_date > end:
            continue
        if _type_value(movement.type) == StockMovementType.IN.value:
            total_in += to_decimal(movement.quantity)
        else:
            total_out += to_decimal(movement.quantity)
    return total_in, total_out
