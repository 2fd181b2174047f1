"""Dashboard blueprint - KPIs, stock alerts and alert thresholds (tenant-scoped)."""
from flask import Blueprint, current_app, g, jsonify, request

from deepstaq.database import get_session
from deepstaq.exceptions import InvalidPayloadError
from deepstaq.middleware import require_user
from deepstaq.services.alert_service import get_alert_settings, save_alert_settings
from deepstaq.services.dashboard_service import get_dashboard_data
from deepstaq.utils.date_ranges import resolve_calendar_range
from deepstaq.utils.parsing import parse_id

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api')


@dashboard_bp.route('/dashboard', methods=['GET'])
@require_user
def index():
    """Dashboard data: ?range=daily|weekly|monthly|yearly|custom[&from&to]."""
    start, end = resolve_calendar_range(
        request.args.get('range') or 'monthly',
        request.args.get('from'),
        request.args.get('to')
    )
    data = get_dashboard_data(get_session(), g.tenant_id, start, end)
    return jsonify(data)


@dashboard_bp.route('/alert-settings', methods=['GET'])
@require_user
def read_alert_settings():
    """Thresholds of a godown: ?godownId=..."""
    godown_id = request.args.get('godownId')
    if not godown_id:
        raise InvalidPayloadError('godownId is required')
    data = get_alert_settings(get_session(), g.tenant_id, parse_id(godown_id, 'godownId'))
    return jsonify(data)


@dashboard_bp.route('/alert-settings', methods=['POST'])
@require_user
def write_alert_settings():
    """Save thresholds: {godown_id, empty_threshold, low_threshold, unit_types: [...]}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidPayloadError('Invalid payload')

    godown_id = data.get('godown_id', data.get('godownId'))
    if godown_id in (None, ''):
        raise InvalidPayloadError('godownId is required')

    godown_id = parse_id(godown_id, 'godownId')
    db_session = get_session()
    save_alert_settings(db_session, g.tenant_id, godown_id, data)
    current_app.logger.info(f"[ALERTS] user={g.user.uid} updated alert settings of godown {godown_id}")
    return jsonify({'success': True, 'settings': get_alert_settings(db_session, g.tenant_id, godown_id)})
