"""
Catalog service - godowns, unit types, companies and products (tenant-scoped).

Every lookup filters by the caller's user_id first; an id owned by another
tenant behaves exactly like a missing one.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session, joinedload

from deepstaq.database import is_missing_table_error
from deepstaq.exceptions import (
    DatastoreError, InvalidPayloadError, NegativeStockError, NotFoundError
)
from deepstaq.models import (
    AlertSetting, Company, Godown, Product, StockMovement, UnitAlertSetting, UnitType
)
from deepstaq.services.movement_validator import validate_opening_stock
from deepstaq.utils.parsing import optional_text, parse_decimal, parse_id, parse_name

logger = logging.getLogger(__name__)


def _require_payload(data) -> dict:
    if not isinstance(data, dict):
        raise InvalidPayloadError('Invalid payload')
    return data


def _commit(session: Session, action):
    """Run a mutation and commit, rolling back on any failure."""
    try:
        result = action()
        session.commit()
        return result
    except Exception:
        session.rollback()
        raise


# --- Godowns ---------------------------------------------------------------

def get_godown(session: Session, godown_id: int, tenant_id: str) -> Godown:
    godown = session.query(Godown).filter(
        Godown.user_id == tenant_id,  # CRITICAL: tenant filter FIRST
        Godown.id == godown_id
    ).first()
    if not godown:
        raise NotFoundError('Godown not found')
    return godown


def list_godowns(session: Session, tenant_id: str) -> List[Godown]:
    """Godowns of a tenant, newest first. Empty list when the schema is not applied."""
    try:
        return session.query(Godown).filter(
            Godown.user_id == tenant_id
        ).order_by(Godown.created_at.desc(), Godown.id.desc()).all()
    except (OperationalError, ProgrammingError) as e:
        if is_missing_table_error(e):
            logger.warning(f"[CATALOG] godown table missing, returning empty list: {e}")
            session.rollback()
            return []
        logger.error(f"[CATALOG] Failed to list godowns: {e}", exc_info=True)
        session.rollback()
        raise DatastoreError()


def create_godown(session: Session, tenant_id: str, data: dict) -> Godown:
    data = _require_payload(data)

    def action():
        godown = Godown(
            user_id=tenant_id,
            name=parse_name(data.get('name')),
            description=optional_text(data.get('description'))
        )
        session.add(godown)
        session.flush()
        return godown

    godown = _commit(session, action)
    logger.info(f"[CATALOG] Created godown {godown.id} '{godown.name}'")
    return godown


def update_godown(session: Session, tenant_id: str, godown_id: int, data: dict) -> Godown:
    data = _require_payload(data)

    def action():
        godown = get_godown(session, godown_id, tenant_id)
        if 'name' in data:
            godown.name = parse_name(data.get('name'))
        if 'description' in data:
            godown.description = optional_text(data.get('description'))
        return godown

    return _commit(session, action)


def delete_godown(session: Session, tenant_id: str, godown_id: int) -> None:
    """Delete a godown with everything stored in it (unit types, companies, products, movements, alert settings)."""
    def action():
        godown = get_godown(session, godown_id, tenant_id)
        session.query(UnitAlertSetting).filter(
            UnitAlertSetting.user_id == tenant_id,
            UnitAlertSetting.godown_id == godown.id
        ).delete(synchronize_session=False)
        session.query(AlertSetting).filter(
            AlertSetting.user_id == tenant_id,
            AlertSetting.godown_id == godown.id
        ).delete(synchronize_session=False)
        session.delete(godown)

    _commit(session, action)
    logger.info(f"[CATALOG] Deleted godown {godown_id}")


# --- Unit types ------------------------------------------------------------

def get_unit_type(session: Session, unit_type_id: int, tenant_id: str) -> UnitType:
    unit_type = session.query(UnitType).filter(
        UnitType.user_id == tenant_id,
        UnitType.id == unit_type_id
    ).first()
    if not unit_type:
        raise NotFoundError('Unit type not found')
    return unit_type


def list_unit_types(session: Session, tenant_id: str, godown_id: int) -> List[UnitType]:
    return session.query(UnitType).filter(
        UnitType.user_id == tenant_id,
        UnitType.godown_id == godown_id
    ).order_by(UnitType.name.asc()).all()


def create_unit_type(session: Session, tenant_id: str, data: dict) -> UnitType:
    data = _require_payload(data)

    def action():
        godown = get_godown(session, parse_id(data.get('godown_id'), 'godown_id'), tenant_id)
        unit_type = UnitType(
            user_id=tenant_id,
            godown_id=godown.id,
            name=parse_name(data.get('name')),
            has_open_pieces=bool(data.get('has_open_pieces', False))
        )
        session.add(unit_type)
        session.flush()
        return unit_type

    return _commit(session, action)


def update_unit_type(session: Session, tenant_id: str, unit_type_id: int, data: dict) -> UnitType:
    data = _require_payload(data)

    def action():
        unit_type = get_unit_type(session, unit_type_id, tenant_id)
        if 'name' in data:
            unit_type.name = parse_name(data.get('name'))
        if 'has_open_pieces' in data:
            unit_type.has_open_pieces = bool(data.get('has_open_pieces'))
        return unit_type

    return _commit(session, action)


def delete_unit_type(session: Session, tenant_id: str, unit_type_id: int) -> None:
    """Delete a unit type and its alert overrides; refused while products use it."""
    def action():
        unit_type = get_unit_type(session, unit_type_id, tenant_id)
        in_use = session.query(Product.id).filter(
            Product.user_id == tenant_id,
            Product.unit_type_id == unit_type.id
        ).first()
        if in_use:
            raise InvalidPayloadError('Unit type is used by existing products')
        session.query(UnitAlertSetting).filter(
            UnitAlertSetting.user_id == tenant_id,
            UnitAlertSetting.unit_type_id == unit_type.id
        ).delete(synchronize_session=False)
        session.delete(unit_type)

    _commit(session, action)


# --- Companies -------------------------------------------------------------

def get_company(session: Session, company_id: int, tenant_id: str) -> Company:
    company = session.query(Company).filter(
        Company.user_id == tenant_id,
        Company.id == company_id
    ).first()
    if not company:
        raise NotFoundError('Company not found')
    return company


def list_companies(session: Session, tenant_id: str, godown_id: Optional[int] = None) -> List[Company]:
    query = session.query(Company).filter(Company.user_id == tenant_id)
    if godown_id is not None:
        query = query.filter(Company.godown_id == godown_id)
    return query.order_by(Company.name.asc()).all()


def create_company(session: Session, tenant_id: str, data: dict) -> Company:
    data = _require_payload(data)

    def action():
        godown = get_godown(session, parse_id(data.get('godown_id'), 'godown_id'), tenant_id)
        company = Company(user_id=tenant_id, godown_id=godown.id, name=parse_name(data.get('name')))
        session.add(company)
        session.flush()
        return company

    return _commit(session, action)


def update_company(session: Session, tenant_id: str, company_id: int, data: dict) -> Company:
    data = _require_payload(data)

    def action():
        company = get_company(session, company_id, tenant_id)
        if 'name' in data:
            company.name = parse_name(data.get('name'))
        return company

    return _commit(session, action)


def delete_company(session: Session, tenant_id: str, company_id: int) -> None:
    def action():
        company = get_company(session, company_id, tenant_id)
        in_use = session.query(Product.id).filter(
            Product.user_id == tenant_id,
            Product.company_id == company.id
        ).first()
        if in_use:
            raise InvalidPayloadError('Company is used by existing products')
        session.delete(company)

    _commit(session, action)


# --- Products --------------------------------------------------------------

def get_product(session: Session, product_id: int, tenant_id: str) -> Product:
    product = session.query(Product).options(
        joinedload(Product.company),
        joinedload(Product.unit_type)
    ).filter(
        Product.user_id == tenant_id,
        Product.id == product_id
    ).first()
    if not product:
        raise NotFoundError('Product not found')
    return product


def list_products(session: Session, tenant_id: str, godown_id: Optional[int] = None) -> List[Product]:
    query = session.query(Product).options(
        joinedload(Product.company),
        joinedload(Product.unit_type)
    ).filter(Product.user_id == tenant_id)
    if godown_id is not None:
        query = query.filter(Product.godown_id == godown_id)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def _resolve_references(session: Session, tenant_id: str, godown_id: int, company_id: int, unit_type_id: int):
    """Check that the godown, company and unit type are the caller's and belong together."""
    godown = get_godown(session, godown_id, tenant_id)
    company = get_company(session, company_id, tenant_id)
    unit_type = get_unit_type(session, unit_type_id, tenant_id)
    if company.godown_id != godown.id or unit_type.godown_id != godown.id:
        raise InvalidPayloadError('Company and unit type must belong to the same godown')
    return godown, company, unit_type


def _apply_prices(product: Product, data: dict) -> None:
    if 'sku' in data:
        product.sku = optional_text(data.get('sku'))
    if 'min_stock_threshold' in data:
        product.min_stock_threshold = parse_decimal(
            data.get('min_stock_threshold'), 'min_stock_threshold', required=False
        ) or 0
    if 'cost_price' in data:
        product.cost_price = parse_decimal(data.get('cost_price'), 'cost_price', required=False)
    if 'selling_price' in data:
        product.selling_price = parse_decimal(data.get('selling_price'), 'selling_price', required=False)


def create_product(session: Session, tenant_id: str, data: dict) -> Product:
    """
    Create a product.

    Required: godown_id, company_id, unit_type_id, name.
    Optional: sku, opening_stock (>= 0, default 0), min_stock_threshold,
    cost_price, selling_price.
    """
    data = _require_payload(data)

    def action():
        godown, company, unit_type = _resolve_references(
            session, tenant_id,
            parse_id(data.get('godown_id'), 'godown_id'),
            parse_id(data.get('company_id'), 'company_id'),
            parse_id(data.get('unit_type_id'), 'unit_type_id')
        )
        opening_stock = parse_decimal(data.get('opening_stock'), 'opening_stock', required=False)
        product = Product(
            user_id=tenant_id,
            godown_id=godown.id,
            company_id=company.id,
            unit_type_id=unit_type.id,
            name=parse_name(data.get('name')),
            opening_stock=opening_stock if opening_stock is not None else 0,
            ledger_version=0
        )
        _apply_prices(product, data)
        session.add(product)
        session.flush()
        return product

    product = _commit(session, action)
    logger.info(f"[CATALOG] Created product {product.id} '{product.name}' in godown {product.godown_id}")
    return product


def update_product(session: Session, tenant_id: str, product_id: int, data: dict) -> Product:
    """
    Update a product.

    A new opening_stock is replayed against the whole movement history and
    rejected with NegativeStockError if any historical balance would go
    negative. The product row is locked and its ledger_version bumped, as
    for a movement mutation.
    """
    data = _require_payload(data)

    def action():
        product = session.query(Product).filter(
            Product.user_id == tenant_id,
            Product.id == product_id
        ).with_for_update().first()
        if not product:
            raise NotFoundError('Product not found')

        if 'name' in data:
            product.name = parse_name(data.get('name'))

        if 'company_id' in data or 'unit_type_id' in data:
            _, company, unit_type = _resolve_references(
                session, tenant_id, product.godown_id,
                parse_id(data.get('company_id', product.company_id), 'company_id'),
                parse_id(data.get('unit_type_id', product.unit_type_id), 'unit_type_id')
            )
            product.company_id = company.id
            product.unit_type_id = unit_type.id

        if 'opening_stock' in data:
            new_opening = parse_decimal(data.get('opening_stock'), 'opening_stock')
            movements = session.query(StockMovement).filter(
                StockMovement.user_id == tenant_id,
                StockMovement.product_id == product.id
            ).all()
            result = validate_opening_stock(new_opening, movements)
            if not result.accepted:
                logger.info(
                    f"[LEDGER] Rejected opening stock {new_opening} on product {product.id} "
                    f"(date={result.failing_date}, balance={result.balance})"
                )
                raise NegativeStockError(result.reason, failing_date=result.failing_date, balance=result.balance)
            product.opening_stock = new_opening
            product.ledger_version = (product.ledger_version or 0) + 1

        _apply_prices(product, data)
        session.flush()
        return product

    _commit(session, action)
    return get_product(session, product_id, tenant_id)


def delete_product(session: Session, tenant_id: str, product_id: int) -> None:
    """Delete a product together with its movement history."""
    def action():
        product = get_product(session, product_id, tenant_id)
        session.delete(product)

    _commit(session, action)
    logger.info(f"[CATALOG] Deleted product {product_id}")
