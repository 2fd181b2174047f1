"""
Admin blueprint.

Read-only tenant overview behind HTTP Basic credentials (ADMIN_EMAIL /
ADMIN_PASSWORD). Tenants are identity uids seen in the data.
"""
from flask import Blueprint, current_app, jsonify
from sqlalchemy import func

from deepstaq.database import get_session
from deepstaq.decorators.admin_security import admin_required
from deepstaq.models import Godown, Product, StockMovement

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _counts_by_user(session, model):
    rows = session.query(model.user_id, func.count(model.id)).group_by(model.user_id).all()
    return {user_id: count for user_id, count in rows}


@admin_bp.route('/tenants', methods=['GET'])
@admin_required
def list_tenants():
    """Every tenant with its godown, product and movement counts."""
    db_session = get_session()

    godowns = _counts_by_user(db_session, Godown)
    products = _counts_by_user(db_session, Product)
    movements = _counts_by_user(db_session, StockMovement)

    tenants = [
        {
            'user_id': user_id,
            'godowns': godowns.get(user_id, 0),
            'products': products.get(user_id, 0),
            'movements': movements.get(user_id, 0),
        }
        for user_id in sorted(set(godowns) | set(products) | set(movements))
    ]

    current_app.logger.info(f"[ADMIN] Listed {len(tenants)} tenants")
    return jsonify({'tenants': tenants, 'total': len(tenants)})
