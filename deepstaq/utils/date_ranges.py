"""Date range helpers for dashboard and analytics filters."""
from datetime import date, timedelta
from calendar import monthrange
from typing import Optional, Tuple

from deepstaq.exceptions import InvalidPayloadError
from deepstaq.utils.parsing import parse_date


def week_start(day: date) -> date:
    """Sunday on or before `day` (weeks start on Sunday)."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def get_month_date_range(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a month."""
    start = date(year, month, 1)
    end = date(year, month, monthrange(year, month)[1])
    return start, end


def get_year_date_range(year: int) -> Tuple[date, date]:
    """Jan 1 and Dec 31 of a year."""
    return date(year, 1, 1), date(year, 12, 31)


def _custom_range(from_value, to_value, message: str) -> Tuple[date, date]:
    if not from_value or not to_value:
        raise InvalidPayloadError(message)
    start = parse_date(from_value, 'from')
    end = parse_date(to_value, 'to')
    if start > end:
        raise InvalidPayloadError('from must be on or before to')
    return start, end


def resolve_calendar_range(range_name: Optional[str], from_value=None, to_value=None,
                           today: Optional[date] = None) -> Tuple[date, date]:
    """
    Resolve a dashboard range to the current calendar period.

    Args:
        range_name: 'daily', 'weekly', 'monthly' (default), 'yearly' or 'custom'
        from_value / to_value: ISO dates, required for 'custom'
        today: reference day (defaults to date.today())

    Returns:
        Tuple of (start_date, end_date), both inclusive
    """
    today = today or date.today()

    if range_name == 'daily':
        return today, today
    if range_name == 'weekly':
        start = week_start(today)
        return start, start + timedelta(days=6)
    if range_name == 'yearly':
        return get_year_date_range(today.year)
    if range_name == 'custom':
        return _custom_range(from_value, to_value, 'from/to required for custom range')
    return get_month_date_range(today.year, today.month)


def resolve_trailing_range(range_name: Optional[str], from_value=None, to_value=None,
                           today: Optional[date] = None) -> Tuple[date, date]:
    """
    Resolve an analytics range to a trailing window ending today.

    daily is today only; weekly, monthly (default) and yearly go back 7, 30
    and 365 days.
    """
    today = today or date.today()
    trailing_days = {'weekly': 7, 'monthly': 30, 'yearly': 365}

    if range_name == 'daily':
        return today, today
    if range_name == 'custom':
        return _custom_range(from_value, to_value, 'from and to dates are required for custom range')
    return today - timedelta(days=trailing_days.get(range_name, 30)), today
