"""
Stock alert service (tenant-scoped).

Classifies each product's current stock as EMPTY, LOW or OK against the
thresholds of its unit type (override) or of its godown (global setting).
Nothing is persisted besides the threshold configuration itself.
"""
import enum
import logging
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from deepstaq.exceptions import InvalidPayloadError, NotFoundError
from deepstaq.models import AlertSetting, Godown, UnitAlertSetting, UnitType
from deepstaq.services.ledger import to_decimal
from deepstaq.utils.parsing import parse_decimal, parse_id

logger = logging.getLogger(__name__)

DEFAULT_EMPTY_THRESHOLD = Decimal('0')
DEFAULT_LOW_THRESHOLD = Decimal('3')


class AlertType(enum.Enum):
    """Stock alert level, most urgent first."""
    EMPTY = 'EMPTY'
    LOW = 'LOW'
    OK = 'OK'


ALERT_RANK = {AlertType.EMPTY: 0, AlertType.LOW: 1, AlertType.OK: 2}


class Thresholds(NamedTuple):
    empty_threshold: Decimal
    low_threshold: Decimal


def get_default_thresholds() -> Thresholds:
    """Application-wide defaults (config DEFAULT_EMPTY_THRESHOLD / DEFAULT_LOW_THRESHOLD)."""
    try:
        from flask import current_app
        return Thresholds(
            to_decimal(current_app.config.get('DEFAULT_EMPTY_THRESHOLD', DEFAULT_EMPTY_THRESHOLD)),
            to_decimal(current_app.config.get('DEFAULT_LOW_THRESHOLD', DEFAULT_LOW_THRESHOLD)),
        )
    except RuntimeError:
        # Outside an application context
        return Thresholds(DEFAULT_EMPTY_THRESHOLD, DEFAULT_LOW_THRESHOLD)


def classify_stock(current_stock, thresholds: Thresholds) -> AlertType:
    """
    EMPTY if stock <= empty threshold, LOW if stock <= low threshold, else OK.
    """
    stock = to_decimal(current_stock)
    if stock <= thresholds.empty_threshold:
        return AlertType.EMPTY
    if stock <= thresholds.low_threshold:
        return AlertType.LOW
    return AlertType.OK


def resolve_thresholds(unit_type_id, global_thresholds: Optional[Thresholds],
                       unit_overrides: Dict[int, Thresholds], defaults: Optional[Thresholds] = None) -> Thresholds:
    """Unit-type override if present, else the godown setting, else the defaults."""
    if unit_type_id in unit_overrides:
        return unit_overrides[unit_type_id]
    if global_thresholds is not None:
        return global_thresholds
    return defaults or get_default_thresholds()


def _get_godown(session: Session, godown_id: int, tenant_id: str) -> Godown:
    godown = session.query(Godown).filter(
        Godown.id == godown_id,
        Godown.user_id == tenant_id
    ).first()
    if not godown:
        raise NotFoundError('Godown not found')
    return godown


def load_threshold_config(session: Session, tenant_id: str, godown_ids: Optional[List[int]] = None):
    """
    Saved thresholds of a tenant.

    Returns:
        Tuple (global_by_godown, overrides_by_godown):
        - global_by_godown: {godown_id: Thresholds}
        - overrides_by_godown: {godown_id: {unit_type_id: Thresholds}}
    """
    global_query = session.query(AlertSetting).filter(AlertSetting.user_id == tenant_id)
    unit_query = session.query(UnitAlertSetting).filter(UnitAlertSetting.user_id == tenant_id)
    if godown_ids is not None:
        global_query = global_query.filter(AlertSetting.godown_id.in_(godown_ids))
        unit_query = unit_query.filter(UnitAlertSetting.godown_id.in_(godown_ids))

    global_by_godown = {
        s.godown_id: Thresholds(to_decimal(s.empty_threshold), to_decimal(s.low_threshold))
        for s in global_query.all()
    }
    overrides_by_godown = {}
    for s in unit_query.all():
        overrides_by_godown.setdefault(s.godown_id, {})[s.unit_type_id] = Thresholds(
            to_decimal(s.empty_threshold), to_decimal(s.low_threshold)
        )
    return global_by_godown, overrides_by_godown


def evaluate_alerts(stock_levels, global_by_godown: Dict[int, Thresholds],
                    overrides_by_godown: Dict[int, Dict[int, Thresholds]]) -> List[dict]:
    """
    Classify every product's current stock.

    Args:
        stock_levels: iterable of (Product, Decimal current_stock)

    Returns:
        List of dicts sorted EMPTY, LOW, OK (then by product name)
    """
    defaults = get_default_thresholds()
    alerts = []
    for product, stock in stock_levels:
        thresholds = resolve_thresholds(
            product.unit_type_id,
            global_by_godown.get(product.godown_id),
            overrides_by_godown.get(product.godown_id, {}),
            defaults
        )
        alert_type = classify_stock(stock, thresholds)
        alerts.append({
            'product_id': product.id,
            'godown_id': product.godown_id,
            'name': product.name,
            'current_stock': float(stock),
            'alert_type': alert_type.value,
            'empty_threshold': float(thresholds.empty_threshold),
            'low_threshold': float(thresholds.low_threshold),
            '_rank': ALERT_RANK[alert_type],
        })

    alerts.sort(key=lambda a: (a['_rank'], a['name']))
    for alert in alerts:
        del alert['_rank']
    return alerts


def get_product_alerts(session: Session, tenant_id: str, godown_id: Optional[int] = None) -> List[dict]:
    """Current alert list for a tenant (optionally one godown)."""
    from deepstaq.services.report_service import get_current_stock_levels

    stock_levels = get_current_stock_levels(session, tenant_id, godown_id)
    godown_ids = [godown_id] if godown_id is not None else None
    global_by_godown, overrides_by_godown = load_threshold_config(session, tenant_id, godown_ids)
    return evaluate_alerts(stock_levels, global_by_godown, overrides_by_godown)


def get_alert_settings(session: Session, tenant_id: str, godown_id: int) -> dict:
    """
    Threshold configuration of a godown, with defaults filled in.

    Returns:
        dict with godown_id, global_settings {empty_threshold, low_threshold}
        and unit_types [{id, name, has_open_pieces, empty_threshold,
        low_threshold, has_override}]
    """
    _get_godown(session, godown_id, tenant_id)

    global_by_godown, overrides_by_godown = load_threshold_config(session, tenant_id, [godown_id])
    global_thresholds = global_by_godown.get(godown_id) or get_default_thresholds()
    overrides = overrides_by_godown.get(godown_id, {})

    unit_types = session.query(UnitType).filter(
        UnitType.user_id == tenant_id,
        UnitType.godown_id == godown_id
    ).order_by(UnitType.name.asc()).all()

    # Units without an override show the global defaults
    defaults = get_default_thresholds()
    unit_rows = []
    for unit_type in unit_types:
        thresholds = overrides.get(unit_type.id, defaults)
        unit_rows.append({
            'id': unit_type.id,
            'name': unit_type.name,
            'has_open_pieces': bool(unit_type.has_open_pieces),
            'empty_threshold': float(thresholds.empty_threshold),
            'low_threshold': float(thresholds.low_threshold),
            'has_override': unit_type.id in overrides,
        })

    return {
        'godown_id': godown_id,
        'global_settings': {
            'empty_threshold': float(global_thresholds.empty_threshold),
            'low_threshold': float(global_thresholds.low_threshold),
        },
        'unit_types': unit_rows,
    }


def _pick(data: dict, *keys):
    """First present key (snake_case API fields, camelCase accepted from older clients)."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _parse_thresholds(data: dict, label: str) -> Thresholds:
    empty_value = _pick(data, 'empty_threshold', 'emptyThreshold')
    low_value = _pick(data, 'low_threshold', 'lowThreshold')
    defaults = get_default_thresholds()

    empty = parse_decimal(empty_value, f'{label} empty_threshold', required=False)
    low = parse_decimal(low_value, f'{label} low_threshold', required=False)
    empty = defaults.empty_threshold if empty is None else empty
    low = defaults.low_threshold if low is None else low

    if empty > low:
        raise InvalidPayloadError(f'{label} empty_threshold cannot be greater than low_threshold')
    return Thresholds(empty, low)


def save_alert_settings(session: Session, tenant_id: str, godown_id: int, data: dict) -> None:
    """
    Upsert the global thresholds of a godown and any unit-type overrides.

    Args:
        data: {empty_threshold, low_threshold, unit_types: [{unit_type_id, empty_threshold, low_threshold}]}

    Raises:
        NotFoundError: godown or unit type not owned by the caller
        InvalidPayloadError: malformed thresholds
    """
    try:
        _get_godown(session, godown_id, tenant_id)
        global_thresholds = _parse_thresholds(data, 'global')

        unit_entries = _pick(data, 'unit_types', 'unitTypes') or []
        if not isinstance(unit_entries, list):
            raise InvalidPayloadError('unit_types must be a list')

        parsed_units = []
        for entry in unit_entries:
            if not isinstance(entry, dict):
                raise InvalidPayloadError('unit_types entries must be objects')
            unit_type_id = parse_id(_pick(entry, 'unit_type_id', 'id'), 'unit_type_id')
            parsed_units.append((unit_type_id, _parse_thresholds(entry, f'unit type {unit_type_id}')))

        if parsed_units:
            owned_ids = {
                row.id for row in session.query(UnitType.id).filter(
                    UnitType.user_id == tenant_id,
                    UnitType.godown_id == godown_id,
                    UnitType.id.in_([unit_id for unit_id, _ in parsed_units])
                ).all()
            }
            for unit_type_id, _ in parsed_units:
                if unit_type_id not in owned_ids:
                    raise NotFoundError(f'Unit type {unit_type_id} not found')

        setting = session.query(AlertSetting).filter(
            AlertSetting.godown_id == godown_id,
            AlertSetting.user_id == tenant_id
        ).first()
        if setting is None:
            setting = AlertSetting(godown_id=godown_id, user_id=tenant_id)
            session.add(setting)
        setting.empty_threshold = global_thresholds.empty_threshold
        setting.low_threshold = global_thresholds.low_threshold

        for unit_type_id, thresholds in parsed_units:
            unit_setting = session.query(UnitAlertSetting).filter(
                UnitAlertSetting.godown_id == godown_id,
                UnitAlertSetting.user_id == tenant_id,
                UnitAlertSetting.unit_type_id == unit_type_id
            ).first()
            if unit_setting is None:
                unit_setting = UnitAlertSetting(godown_id=godown_id, user_id=tenant_id, unit_type_id=unit_type_id)
                session.add(unit_setting)
            unit_setting.empty_threshold = thresholds.empty_threshold
            unit_setting.low_threshold = thresholds.low_threshold

        session.commit()
        logger.info(f"[ALERTS] Saved alert settings for godown {godown_id} ({len(parsed_units)} unit overrides)")
    except Exception:
        session.rollback()
        raise
