"""Parsing helpers for JSON payloads and query strings."""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from deepstaq.exceptions import InvalidPayloadError


def parse_decimal(value, field: str, required: bool = True, allow_negative: bool = False) -> Optional[Decimal]:
    """
    Parse a JSON number (or numeric string) to Decimal.

    Rules:
    - Booleans are not numbers
    - NaN and infinities are rejected
    - Negatives only when allow_negative

    Raises:
        InvalidPayloadError: if the value is missing (and required) or invalid.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidPayloadError(f'{field} is required')
        return None

    if isinstance(value, bool):
        raise InvalidPayloadError(f'{field} must be a number')

    try:
        decimal_value = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidPayloadError(f'{field} must be a number')

    if not decimal_value.is_finite():
        raise InvalidPayloadError(f'{field} must be a number')

    if decimal_value < 0 and not allow_negative:
        raise InvalidPayloadError(f'{field} cannot be negative')

    return decimal_value


def parse_positive_decimal(value, field: str) -> Decimal:
    """Parse a strictly positive Decimal (movement quantities)."""
    decimal_value = parse_decimal(value, field)
    if decimal_value <= 0:
        raise InvalidPayloadError(f'{field} must be greater than 0')
    return decimal_value


def parse_date(value, field: str, required: bool = True) -> Optional[date]:
    """
    Parse an ISO date ('2024-05-01') or ISO datetime ('2024-05-01T10:00:00Z').

    Only the calendar date is kept; the ledger is date-granular.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidPayloadError(f'{field} is required')
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    cleaned = str(value).strip()
    try:
        return date.fromisoformat(cleaned[:10])
    except ValueError:
        raise InvalidPayloadError(f'{field} must be an ISO date (YYYY-MM-DD)')


def parse_id(value, field: str, required: bool = True) -> Optional[int]:
    """Parse an integer identifier from JSON or a query string."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidPayloadError(f'{field} is required')
        return None

    if isinstance(value, bool):
        raise InvalidPayloadError(f'{field} is invalid')

    try:
        parsed = int(str(value).strip())
    except (ValueError, TypeError):
        raise InvalidPayloadError(f'{field} is invalid')

    if parsed <= 0:
        raise InvalidPayloadError(f'{field} is invalid')
    return parsed


def parse_name(value, field: str = 'Name') -> str:
    """Required, non-blank string, stripped."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayloadError(f'{field} is required')
    return value.strip()


def optional_text(value) -> Optional[str]:
    """Optional free text; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
