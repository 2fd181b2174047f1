"""Movements blueprint - stock movement ledger API (tenant-scoped)."""
from flask import Blueprint, current_app, g, jsonify, request

from deepstaq.blueprints.metrics import record_ledger_mutation
from deepstaq.database import get_session
from deepstaq.exceptions import (
    ConcurrentUpdateError, InvalidPayloadError, NegativeStockError, NotFoundError
)
from deepstaq.middleware import require_user
from deepstaq.services import movement_service
from deepstaq.utils.parsing import parse_id

movements_bp = Blueprint('movements', __name__, url_prefix='/api/movements')

_OUTCOMES = (
    (NegativeStockError, 'rejected'),
    (ConcurrentUpdateError, 'conflict'),
    (NotFoundError, 'not_found'),
    (InvalidPayloadError, 'invalid'),
)


def _run_mutation(operation, action):
    """Run a ledger mutation and count its outcome."""
    try:
        result = action()
    except Exception as e:
        outcome = next((label for exc_type, label in _OUTCOMES if isinstance(e, exc_type)), 'error')
        record_ledger_mutation(operation, outcome)
        raise
    record_ledger_mutation(operation, 'accepted')
    return result


@movements_bp.route('', methods=['GET'])
@require_user
def list_movements():
    """List a product's movements in ledger order (?productId=...)."""
    product_id = request.args.get('productId') or request.args.get('product_id')
    if not product_id:
        raise InvalidPayloadError('productId is required')

    db_session = get_session()
    movements = movement_service.list_movements(parse_id(product_id, 'productId'), db_session, g.tenant_id)
    return jsonify([m.to_dict() for m in movements])


@movements_bp.route('', methods=['POST'])
@require_user
def create_movement():
    """Record a movement: {product_id, movement_date, type, quantity, note?}."""
    data = movement_service.parse_movement_payload(request.get_json(silent=True))
    db_session = get_session()

    movement = _run_mutation('create', lambda: movement_service.create_movement(
        data['product_id'],
        data['movement_date'],
        data['type'],
        data['quantity'],
        db_session,
        g.tenant_id,
        note=data['note']
    ))
    current_app.logger.info(f"[LEDGER] user={g.user.uid} created movement {movement.id}")
    return jsonify(movement.to_dict()), 201


@movements_bp.route('/<int:movement_id>', methods=['PATCH', 'PUT'])
@require_user
def update_movement(movement_id):
    """Edit a movement: {movement_date, type, quantity, note?}."""
    data = movement_service.parse_movement_payload(request.get_json(silent=True), require_product=False)
    db_session = get_session()

    movement = _run_mutation('update', lambda: movement_service.update_movement(
        movement_id,
        data['movement_date'],
        data['type'],
        data['quantity'],
        db_session,
        g.tenant_id,
        note=data['note']
    ))
    return jsonify(movement.to_dict()), 200


@movements_bp.route('/<int:movement_id>', methods=['DELETE'])
@require_user
def delete_movement(movement_id):
    """Delete a movement; 204 on success."""
    db_session = get_session()
    _run_mutation('delete', lambda: movement_service.delete_movement(movement_id, db_session, g.tenant_id))
    return '', 204
