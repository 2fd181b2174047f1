"""
Dashboard service for multi-tenant stock overview.
Provides aggregated KPIs, the alert list and the IN/OUT series for a date range.
"""
import logging
from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from deepstaq.models import Godown, Product, StockMovement, StockMovementType
from deepstaq.services.alert_service import AlertType, get_product_alerts
from deepstaq.services.ledger import ZERO, to_decimal
from deepstaq.services.report_service import build_series

logger = logging.getLogger(__name__)


def get_dashboard_data(session, tenant_id: str, start: date, end: date) -> dict:
    """
    Get all dashboard data for a tenant for a specific date range.

    Args:
        session: SQLAlchemy session
        tenant_id: Current tenant (identity uid)
        start: Start date (inclusive)
        end: End date (inclusive)

    Returns:
        dict with keys:
            - kpis: godowns, products, stockIn, stockOut, stockValue, alerts
            - alerts: list of product alerts sorted EMPTY, LOW, OK
            - series: list of {date, in, out} per day with movements
    """
    # 1. Counts
    godowns_count = session.query(func.count(Godown.id)).filter(
        Godown.user_id == tenant_id
    ).scalar() or 0

    products_count = session.query(func.count(Product.id)).filter(
        Product.user_id == tenant_id
    ).scalar() or 0

    # 2. Movements in range, valued at the product's cost price
    movements = session.query(StockMovement).filter(
        StockMovement.user_id == tenant_id,
        StockMovement.movement_date >= start,
        StockMovement.movement_date <= end
    ).all()

    cost_by_product = {
        row.id: to_decimal(row.cost_price)
        for row in session.query(Product.id, Product.cost_price).filter(
            Product.user_id == tenant_id,
            Product.cost_price.isnot(None)
        ).all()
    }

    total_in = ZERO
    total_out = ZERO
    stock_value = ZERO
    for movement in movements:
        quantity = to_decimal(movement.quantity)
        cost = cost_by_product.get(movement.product_id, ZERO)
        if movement.type == StockMovementType.IN:
            total_in += quantity
            stock_value += quantity * cost
        else:
            total_out += quantity
            stock_value -= quantity * cost

    series = [
        {'date': bucket['key'], 'in': float(bucket['in']), 'out': float(bucket['out'])}
        for bucket in build_series(movements, start, end)
    ]

    # 3. Alerts (a failure here degrades to an empty list)
    try:
        alerts = get_product_alerts(session, tenant_id)
    except SQLAlchemyError as e:
        logger.error(f"[DASHBOARD] Failed to evaluate stock alerts: {e}", exc_info=True)
        session.rollback()
        alerts = []

    alerts_count = sum(1 for a in alerts if a['alert_type'] != AlertType.OK.value)

    return {
        'kpis': {
            'godowns': godowns_count,
            'products': products_count,
            'stockIn': float(total_in),
            'stockOut': float(total_out),
            'stockValue': float(stock_value),
            'alerts': alerts_count,
        },
        'alerts': alerts,
        'series': series,
    }
