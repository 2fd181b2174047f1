"""
Movement ledger service - Multi-Tenant.

Every mutation follows the same sequence:
    1. Lock the product row (tenant-scoped) and remember its ledger_version
    2. Load the product's movement history
    3. Run the movement validator
    4. Bump ledger_version with a conditional UPDATE (optimistic check)
    5. Persist the single change and commit

A rejection leaves the session rolled back, nothing is written.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from deepstaq.database import is_missing_table_error
from deepstaq.exceptions import (
    NotFoundError, NegativeStockError, ConcurrentUpdateError, InvalidPayloadError, DatastoreError
)
from deepstaq.models import Product, StockMovement, StockMovementType
from deepstaq.services.movement_validator import MutationMode, ProposedMovement, validate_mutation
from deepstaq.utils.parsing import parse_date, parse_id, parse_positive_decimal, optional_text

logger = logging.getLogger(__name__)


def parse_movement_type(value) -> StockMovementType:
    """Parse 'IN' / 'OUT' (case-insensitive)."""
    if not isinstance(value, str) or value.strip().upper() not in StockMovementType.__members__:
        raise InvalidPayloadError('type must be IN or OUT')
    return StockMovementType[value.strip().upper()]


def parse_movement_payload(data: Optional[dict], require_product: bool = True) -> dict:
    """
    Validate a create/update movement body.

    Returns:
        dict with product_id (when required), movement_date, type, quantity, note

    Raises:
        InvalidPayloadError: missing field, non-positive quantity, malformed date/type
    """
    if not isinstance(data, dict):
        raise InvalidPayloadError('Invalid payload')

    parsed = {
        'movement_date': parse_date(data.get('movement_date'), 'movement_date'),
        'type': parse_movement_type(data.get('type')),
        'quantity': parse_positive_decimal(data.get('quantity'), 'quantity'),
        'note': optional_text(data.get('note')),
    }
    if require_product:
        parsed['product_id'] = parse_id(data.get('product_id'), 'product_id')
    return parsed


def _ordered_movements_query(session: Session, tenant_id: str, product_id: int):
    return session.query(StockMovement).filter(
        StockMovement.user_id == tenant_id,  # CRITICAL: tenant filter FIRST
        StockMovement.product_id == product_id
    ).order_by(
        StockMovement.movement_date.asc(),
        StockMovement.created_at.asc(),
        StockMovement.id.asc()
    )


def _lock_product(session: Session, product_id: int, tenant_id: str) -> Product:
    """Fetch the product with a row lock; another tenant's product is simply not found."""
    product = session.query(Product).filter(
        Product.id == product_id,
        Product.user_id == tenant_id
    ).with_for_update().first()

    if not product:
        raise NotFoundError('Product not found')
    return product


def _bump_ledger_version(session: Session, product: Product, expected_version: int) -> None:
    """Conditional version bump; zero matched rows means a concurrent writer won the race."""
    updated = session.query(Product).filter(
        Product.id == product.id,
        Product.ledger_version == expected_version
    ).update({Product.ledger_version: expected_version + 1}, synchronize_session=False)

    if updated != 1:
        logger.warning(f"[LEDGER] Concurrent update detected on product {product.id} (expected version {expected_version})")
        raise ConcurrentUpdateError()
    set_committed_value(product, 'ledger_version', expected_version + 1)


def _ensure_accepted(result, product_id: int, operation: str) -> None:
    if not result.accepted:
        logger.info(
            f"[LEDGER] Rejected {operation} on product {product_id}: {result.reason} "
            f"(date={result.failing_date}, balance={result.balance})"
        )
        raise NegativeStockError(result.reason, failing_date=result.failing_date, balance=result.balance)


def list_movements(product_id: int, session: Session, tenant_id: str) -> List[StockMovement]:
    """
    List all movements of a product in ledger order (tenant-scoped).

    Returns an empty list when the schema has not been applied yet.
    """
    try:
        return _ordered_movements_query(session, tenant_id, product_id).all()
    except (OperationalError, ProgrammingError) as e:
        if is_missing_table_error(e):
            logger.warning(f"[LEDGER] stock_movement table missing, returning empty list: {e}")
            session.rollback()
            return []
        logger.error(f"[LEDGER] Failed to list movements of product {product_id}: {e}", exc_info=True)
        session.rollback()
        raise DatastoreError()


def create_movement(product_id: int, movement_date, movement_type: StockMovementType, quantity,
                    session: Session, tenant_id: str, note: Optional[str] = None) -> StockMovement:
    """
    Record a new movement for a product (tenant-scoped).

    Raises:
        NotFoundError: product absent or owned by another tenant
        NegativeStockError: the movement would make some historical balance negative
        ConcurrentUpdateError: the ledger changed between validation and write
    """
    try:
        product = _lock_product(session, product_id, tenant_id)
        expected_version = product.ledger_version
        existing = _ordered_movements_query(session, tenant_id, product.id).all()

        proposed = ProposedMovement(movement_date=movement_date, type=movement_type, quantity=quantity)
        result = validate_mutation(product, existing, proposed, MutationMode.CREATE)
        _ensure_accepted(result, product.id, 'create')

        _bump_ledger_version(session, product, expected_version)

        movement = StockMovement(
            user_id=tenant_id,  # CRITICAL
            product_id=product.id,
            movement_date=movement_date,
            type=movement_type,
            quantity=quantity,
            note=note,
            created_by=tenant_id,
            created_at=datetime.utcnow()
        )
        session.add(movement)
        session.commit()

        logger.info(f"[LEDGER] Created movement {movement.id}: product={product.id} {movement_type.value} {quantity} on {movement_date}")
        return movement
    except Exception:
        session.rollback()
        raise


def _get_movement(session: Session, movement_id: int, tenant_id: str) -> StockMovement:
    movement = session.query(StockMovement).filter(
        StockMovement.id == movement_id,
        StockMovement.user_id == tenant_id
    ).first()

    if not movement:
        raise NotFoundError('Movement not found')
    return movement


def update_movement(movement_id: int, movement_date, movement_type: StockMovementType, quantity,
                    session: Session, tenant_id: str, note: Optional[str] = None) -> StockMovement:
    """
    Edit a movement's date, type, quantity and note (tenant-scoped).

    The old version of the movement is left out of the base balance entirely,
    so moving it to another date and changing its quantity is one check.
    """
    try:
        movement = _get_movement(session, movement_id, tenant_id)
        product = _lock_product(session, movement.product_id, tenant_id)
        expected_version = product.ledger_version
        existing = _ordered_movements_query(session, tenant_id, product.id).all()

        proposed = ProposedMovement(
            movement_date=movement_date,
            type=movement_type,
            quantity=quantity,
            id=movement.id,
            created_at=movement.created_at
        )
        result = validate_mutation(product, existing, proposed, MutationMode.UPDATE)
        _ensure_accepted(result, product.id, 'update')

        _bump_ledger_version(session, product, expected_version)

        movement.movement_date = movement_date
        movement.type = movement_type
        movement.quantity = quantity
        movement.note = note
        movement.updated_at = datetime.utcnow()
        session.commit()

        logger.info(f"[LEDGER] Updated movement {movement.id}: product={product.id} {movement_type.value} {quantity} on {movement_date}")
        return movement
    except Exception:
        session.rollback()
        raise


def delete_movement(movement_id: int, session: Session, tenant_id: str) -> None:
    """
    Delete a movement unless removing it leaves any later balance negative.
    """
    try:
        movement = _get_movement(session, movement_id, tenant_id)
        product = _lock_product(session, movement.product_id, tenant_id)
        expected_version = product.ledger_version
        existing = _ordered_movements_query(session, tenant_id, product.id).all()

        result = validate_mutation(product, existing, movement, MutationMode.DELETE)
        _ensure_accepted(result, product.id, 'delete')

        _bump_ledger_version(session, product, expected_version)

        session.delete(movement)
        session.commit()

        logger.info(f"[LEDGER] Deleted movement {movement_id} of product {product.id}")
    except Exception:
        session.rollback()
        raise
