import base64
from datetime import date
from decimal import Decimal

import jwt
import pytest

from deepstaq import create_app
from deepstaq.database import create_tables, drop_tables, get_session
from deepstaq.models import Company, Godown, Product, StockMovement, StockMovementType, UnitType

TENANT_1 = 'tenant-1'
TENANT_2 = 'tenant-2'


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestConfig')
    create_tables()
    yield app
    get_session().remove()
    drop_tables()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


def make_token(app, uid, email=None, **claims):
    """Sign an identity token the way the identity provider would."""
    payload = {'uid': uid, 'email': email or f'{uid}@example.com'}
    payload.update(claims)
    return jwt.encode(payload, app.config['AUTH_JWT_SECRET'], algorithm='HS256')


@pytest.fixture(scope='function')
def auth_headers(app):
    """Bearer headers for tenant 1."""
    return {'Authorization': f'Bearer {make_token(app, TENANT_1)}'}


@pytest.fixture(scope='function')
def auth_headers2(app):
    """Bearer headers for tenant 2."""
    return {'Authorization': f'Bearer {make_token(app, TENANT_2)}'}


@pytest.fixture(scope='function')
def admin_headers(app):
    """Basic credentials of the configured admin."""
    raw = f"{app.config['ADMIN_EMAIL']}:{app.config['ADMIN_PASSWORD']}".encode('utf-8')
    return {'Authorization': f"Basic {base64.b64encode(raw).decode('ascii')}"}


def create_catalog(session, user_id, name='Main Godown', opening_stock=0, cost_price=None):
    """Create a godown with one unit type, one company and one product."""
    godown = Godown(user_id=user_id, name=name)
    session.add(godown)
    session.flush()

    unit_type = UnitType(user_id=user_id, godown_id=godown.id, name='Box', has_open_pieces=False)
    company = Company(user_id=user_id, godown_id=godown.id, name='Acme')
    session.add_all([unit_type, company])
    session.flush()

    product = Product(
        user_id=user_id,
        godown_id=godown.id,
        company_id=company.id,
        unit_type_id=unit_type.id,
        name=f'Product {name}',
        sku=f'SKU-{user_id}',
        opening_stock=Decimal(str(opening_stock)),
        cost_price=Decimal(str(cost_price)) if cost_price is not None else None,
        ledger_version=0
    )
    session.add(product)
    session.commit()
    return godown, unit_type, company, product


def add_movement(session, product, movement_date, movement_type, quantity):
    """Insert a movement directly, bypassing validation."""
    if isinstance(movement_date, str):
        movement_date = date.fromisoformat(movement_date)
    movement = StockMovement(
        user_id=product.user_id,
        product_id=product.id,
        movement_date=movement_date,
        type=StockMovementType[movement_type],
        quantity=Decimal(str(quantity)),
        created_by=product.user_id
    )
    session.add(movement)
    session.commit()
    return movement


@pytest.fixture(scope='function')
def catalog_tenant1(session):
    """Godown, unit type, company and product (opening stock 0) for tenant 1."""
    return create_catalog(session, TENANT_1, name='T1 Godown')


@pytest.fixture(scope='function')
def catalog_tenant2(session):
    """Godown, unit type, company and product (opening stock 0) for tenant 2."""
    return create_catalog(session, TENANT_2, name='T2 Godown')


@pytest.fixture(scope='function')
def godown(catalog_tenant1):
    return catalog_tenant1[0]


@pytest.fixture(scope='function')
def unit_type(catalog_tenant1):
    return catalog_tenant1[1]


@pytest.fixture(scope='function')
def company(catalog_tenant1):
    return catalog_tenant1[2]


@pytest.fixture(scope='function')
def product(catalog_tenant1):
    return catalog_tenant1[3]


@pytest.fixture(scope='function')
def product_tenant2(catalog_tenant2):
    return catalog_tenant2[3]


@pytest.fixture(scope='function')
def movement_factory(session):
    """add_movement bound to the test session."""
    def factory(product, movement_date, movement_type, quantity):
        return add_movement(session, product, movement_date, movement_type, quantity)
    return factory


@pytest.fixture(scope='function')
def catalog_factory(session):
    """create_catalog bound to the test session."""
    def factory(user_id, **kwargs):
        return create_catalog(session, user_id, **kwargs)
    return factory


@pytest.fixture(scope='function')
def token_factory(app):
    """Bearer headers for any uid."""
    def factory(uid, **claims):
        return {'Authorization': f'Bearer {make_token(app, uid, **claims)}'}
    return factory
