"""Reports blueprint - stock summaries and analytics (tenant-scoped)."""
from flask import Blueprint, g, jsonify, request

from deepstaq.database import get_session
from deepstaq.exceptions import InvalidPayloadError
from deepstaq.middleware import require_user
from deepstaq.services import report_service
from deepstaq.utils.date_ranges import resolve_trailing_range
from deepstaq.utils.parsing import parse_date, parse_id

reports_bp = Blueprint('reports', __name__, url_prefix='/api')


def _date_range():
    """Required ?from=&to= pair."""
    from_value = request.args.get('from')
    to_value = request.args.get('to')
    if not from_value or not to_value:
        raise InvalidPayloadError('from/to required')
    return parse_date(from_value, 'from'), parse_date(to_value, 'to')


def _godown_filter():
    return parse_id(request.args.get('godownId'), 'godownId', required=False)


@reports_bp.route('/reports', methods=['GET'])
@require_user
def summary_report():
    """Bucketed summary: ?type=daily|weekly|monthly|yearly&from&to[&godownId]."""
    report_type = (request.args.get('type') or 'daily').lower()
    start, end = _date_range()
    data = report_service.get_summary_report(
        get_session(), g.tenant_id, report_type, start, end, godown_id=_godown_filter()
    )
    return jsonify(data)


@reports_bp.route('/reports/closing-stock', methods=['GET'])
@require_user
def closing_stock_report():
    """Opening/closing per product with activity in range: ?from&to[&godownId]."""
    start, end = _date_range()
    data = report_service.get_closing_stock_report(
        get_session(), g.tenant_id, start, end, godown_id=_godown_filter()
    )
    return jsonify(data)


@reports_bp.route('/reports/current-stock', methods=['GET'])
@require_user
def current_stock_report():
    """Current stock of every product: [?godownId]."""
    data = report_service.get_current_stock_report(get_session(), g.tenant_id, godown_id=_godown_filter())
    return jsonify(data)


@reports_bp.route('/stock-analytics', methods=['GET'])
@require_user
def stock_analytics():
    """Godown analytics over a trailing window: ?godownId&range=daily|weekly|monthly|yearly|custom[&from&to]."""
    godown_id = request.args.get('godownId')
    if not godown_id:
        raise InvalidPayloadError('godownId is required')

    start, end = resolve_trailing_range(
        request.args.get('range') or 'monthly',
        request.args.get('from'),
        request.args.get('to')
    )
    data = report_service.get_stock_analytics(
        get_session(), g.tenant_id, parse_id(godown_id, 'godownId'), start, end
    )
    return jsonify(data)
