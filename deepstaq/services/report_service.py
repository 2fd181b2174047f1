"""
Reporting service - stock aggregation (tenant-scoped).

Every figure is recomputed from the full movement history on each call; no
running totals are persisted. Work is O(movements) per report.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from deepstaq.exceptions import InvalidPayloadError, NotFoundError
from deepstaq.models import Product, StockMovement, StockMovementType
from deepstaq.services.ledger import ZERO, balance_as_of, period_totals, to_decimal
from deepstaq.utils.date_ranges import week_start

logger = logging.getLogger(__name__)

REPORT_TYPES = ('daily', 'weekly', 'monthly', 'yearly')


def _num(value: Decimal) -> float:
    """JSON-friendly number."""
    return float(value)


def load_products(session: Session, tenant_id: str, godown_id: Optional[int] = None) -> List[Product]:
    """Products of a tenant, optionally restricted to one godown, ordered by name."""
    query = session.query(Product).options(
        joinedload(Product.unit_type),
        joinedload(Product.company)
    ).filter(Product.user_id == tenant_id)  # CRITICAL: tenant filter FIRST

    if godown_id is not None:
        query = query.filter(Product.godown_id == godown_id)

    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def load_movements_by_product(session: Session, tenant_id: str, product_ids: List[int],
                              up_to: Optional[date] = None) -> Dict[int, List[StockMovement]]:
    """
    Movement history grouped by product, each list in ledger order.

    Args:
        product_ids: products to load (empty list loads nothing)
        up_to: ignore movements dated after this day
    """
    grouped = {product_id: [] for product_id in product_ids}
    if not product_ids:
        return grouped

    query = session.query(StockMovement).filter(
        StockMovement.user_id == tenant_id,  # CRITICAL
        StockMovement.product_id.in_(product_ids)
    )
    if up_to is not None:
        query = query.filter(StockMovement.movement_date <= up_to)

    rows = query.order_by(
        StockMovement.movement_date.asc(),
        StockMovement.created_at.asc(),
        StockMovement.id.asc()
    ).all()

    for movement in rows:
        grouped[movement.product_id].append(movement)
    return grouped


def opening_stock_at(opening_stock, movements, start: date) -> Decimal:
    """Balance at the start of `start` (movements strictly before it)."""
    return balance_as_of(opening_stock, movements, start - timedelta(days=1))


def product_period_summary(product: Product, movements, start: date, end: date) -> dict:
    """Opening at start, IN/OUT within [start, end] and closing at end for one product."""
    opening = opening_stock_at(product.opening_stock, movements, start)
    stock_in, stock_out = period_totals(movements, start, end)
    closing = balance_as_of(product.opening_stock, movements, end)
    has_activity = any(start <= m.movement_date <= end for m in movements)
    return {
        'product_id': product.id,
        'product_name': product.name,
        'godown_id': product.godown_id,
        'opening_stock': opening,
        'stock_in': stock_in,
        'stock_out': stock_out,
        'closing_stock': closing,
        'has_activity': has_activity,
    }


def current_stock(product: Product, movements) -> Decimal:
    """Balance after every recorded movement, whatever its date."""
    return balance_as_of(product.opening_stock, movements)


def bucket_key(day: date, report_type: str) -> str:
    """Group-by key of a movement date: day, week (starting Sunday), month or year."""
    if report_type == 'weekly':
        return week_start(day).isoformat()
    if report_type == 'monthly':
        return day.strftime('%Y-%m')
    if report_type == 'yearly':
        return str(day.year)
    return day.isoformat()


def build_series(movements, start: Optional[date] = None, end: Optional[date] = None,
                 report_type: str = 'daily') -> List[dict]:
    """
    IN/OUT totals grouped by bucket, sorted by key.

    Only buckets with movements appear; zero-activity periods are not filled in.
    """
    buckets = {}
    for movement in movements:
        if start is not None and movement.movement_date < start:
            continue
        if end is not None and movement.movement_date > end:
            continue
        key = bucket_key(movement.movement_date, report_type)
        bucket = buckets.setdefault(key, {'key': key, 'in': ZERO, 'out': ZERO})
        if movement.type == StockMovementType.IN:
            bucket['in'] += to_decimal(movement.quantity)
        else:
            bucket['out'] += to_decimal(movement.quantity)
    return [buckets[key] for key in sorted(buckets)]


def _serialize_summary(row: dict) -> dict:
    return {
        'product_id': row['product_id'],
        'product_name': row['product_name'],
        'godown_id': row['godown_id'],
        'opening_stock': _num(row['opening_stock']),
        'stock_in': _num(row['stock_in']),
        'stock_out': _num(row['stock_out']),
        'closing_stock': _num(row['closing_stock']),
    }


def _check_range(start: date, end: date) -> None:
    if start is None or end is None:
        raise InvalidPayloadError('from/to required')
    if start > end:
        raise InvalidPayloadError('from must be on or before to')


def get_summary_report(session: Session, tenant_id: str, report_type: str, start: date, end: date,
                       godown_id: Optional[int] = None) -> dict:
    """
    Aggregated stock summary for a date range, bucketed by period.

    Args:
        report_type: 'daily', 'weekly', 'monthly' or 'yearly'
        start / end: inclusive date range

    Returns:
        dict with keys type, from, to, totals, rows (per bucket: key, opening,
        in, out, closing) and products (only products with activity in range)

    Raises:
        InvalidPayloadError: bad range or type
        NotFoundError: no products in scope
    """
    _check_range(start, end)
    if report_type not in REPORT_TYPES:
        raise InvalidPayloadError(f'type must be one of {", ".join(REPORT_TYPES)}')

    products = load_products(session, tenant_id, godown_id)
    if not products:
        raise NotFoundError('No products found')

    movements_by_product = load_movements_by_product(session, tenant_id, [p.id for p in products], up_to=end)

    summaries = [
        product_period_summary(product, movements_by_product[product.id], start, end)
        for product in products
    ]

    opening_total = sum((s['opening_stock'] for s in summaries), ZERO)
    all_movements = [m for product in products for m in movements_by_product[product.id]]

    rows = []
    running = opening_total
    for bucket in build_series(all_movements, start, end, report_type):
        closing = running + bucket['in'] - bucket['out']
        rows.append({
            'key': bucket['key'],
            'opening': _num(running),
            'in': _num(bucket['in']),
            'out': _num(bucket['out']),
            'closing': _num(closing),
        })
        running = closing

    total_in = sum((s['stock_in'] for s in summaries), ZERO)
    total_out = sum((s['stock_out'] for s in summaries), ZERO)

    logger.debug(f"[REPORTS] Summary {report_type} {start}..{end}: {len(products)} products, {len(rows)} buckets")

    return {
        'type': report_type,
        'from': start.isoformat(),
        'to': end.isoformat(),
        'totals': {
            'opening': _num(opening_total),
            'in': _num(total_in),
            'out': _num(total_out),
            'closing': _num(opening_total + total_in - total_out),
        },
        'rows': rows,
        'products': [_serialize_summary(s) for s in summaries if s['has_activity']],
    }


def get_closing_stock_report(session: Session, tenant_id: str, start: date, end: date,
                             godown_id: Optional[int] = None) -> dict:
    """
    Opening/closing stock per product for a date range.

    Products without movements inside the range are left out.
    """
    _check_range(start, end)

    products = load_products(session, tenant_id, godown_id)
    movements_by_product = load_movements_by_product(session, tenant_id, [p.id for p in products], up_to=end)

    rows = []
    for product in products:
        summary = product_period_summary(product, movements_by_product[product.id], start, end)
        if summary['has_activity']:
            rows.append(_serialize_summary(summary))

    return {
        'type': 'closing-stock',
        'from': start.isoformat(),
        'to': end.isoformat(),
        'rows': rows,
    }


def get_current_stock_levels(session: Session, tenant_id: str, godown_id: Optional[int] = None):
    """
    Current stock of every product in scope.

    Returns:
        List of (Product, Decimal current_stock) tuples
    """
    products = load_products(session, tenant_id, godown_id)
    movements_by_product = load_movements_by_product(session, tenant_id, [p.id for p in products])
    return [(product, current_stock(product, movements_by_product[product.id])) for product in products]


def get_current_stock_report(session: Session, tenant_id: str, godown_id: Optional[int] = None) -> dict:
    """Current stock of every product in scope, including products never moved."""
    rows = [
        {
            'product_id': product.id,
            'product_name': product.name,
            'godown_id': product.godown_id,
            'unit_type': product.unit_type.name if product.unit_type else None,
            'current_stock': _num(stock),
        }
        for product, stock in get_current_stock_levels(session, tenant_id, godown_id)
    ]
    return {
        'type': 'current-stock',
        'rows': rows,
    }


def get_stock_analytics(session: Session, tenant_id: str, godown_id: int, start: date, end: date) -> dict:
    """
    Godown-level stock analytics for a date range.

    Returns:
        dict with total_opening_stock (at start), total_current_stock (at end),
        total_stock_in, total_stock_out and the per-day series
    """
    _check_range(start, end)

    products = load_products(session, tenant_id, godown_id)
    movements_by_product = load_movements_by_product(session, tenant_id, [p.id for p in products], up_to=end)

    total_opening = ZERO
    total_closing = ZERO
    total_in = ZERO
    total_out = ZERO
    for product in products:
        summary = product_period_summary(product, movements_by_product[product.id], start, end)
        total_opening += summary['opening_stock']
        total_closing += summary['closing_stock']
        total_in += summary['stock_in']
        total_out += summary['stock_out']

    all_movements = [m for product in products for m in movements_by_product[product.id]]
    series = [
        {'date': bucket['key'], 'in': _num(bucket['in']), 'out': _num(bucket['out'])}
        for bucket in build_series(all_movements, start, end)
    ]

    return {
        'godown_id': godown_id,
        'from': start.isoformat(),
        'to': end.isoformat(),
        'total_opening_stock': _num(total_opening),
        'total_current_stock': _num(total_closing),
        'total_stock_in': _num(total_in),
        'total_stock_out': _num(total_out),
        'series': series,
    }
