"""Catalog blueprint - godowns, unit types, companies and products (tenant-scoped)."""
from flask import Blueprint, g, jsonify, request

from deepstaq.database import get_session
from deepstaq.exceptions import InvalidPayloadError
from deepstaq.middleware import require_user
from deepstaq.services import catalog_service
from deepstaq.utils.parsing import parse_id

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


def _body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidPayloadError('Invalid payload')
    return data


def _godown_filter(required=False):
    return parse_id(request.args.get('godownId'), 'godownId', required=required)


# --- Godowns ---

@catalog_bp.route('/godowns', methods=['GET'])
@require_user
def list_godowns():
    godowns = catalog_service.list_godowns(get_session(), g.tenant_id)
    return jsonify([godown.to_dict() for godown in godowns])


@catalog_bp.route('/godowns', methods=['POST'])
@require_user
def create_godown():
    godown = catalog_service.create_godown(get_session(), g.tenant_id, _body())
    return jsonify(godown.to_dict()), 201


@catalog_bp.route('/godowns/<int:godown_id>', methods=['GET'])
@require_user
def get_godown(godown_id):
    return jsonify(catalog_service.get_godown(get_session(), godown_id, g.tenant_id).to_dict())


@catalog_bp.route('/godowns/<int:godown_id>', methods=['PATCH', 'PUT'])
@require_user
def update_godown(godown_id):
    godown = catalog_service.update_godown(get_session(), g.tenant_id, godown_id, _body())
    return jsonify(godown.to_dict())


@catalog_bp.route('/godowns/<int:godown_id>', methods=['DELETE'])
@require_user
def delete_godown(godown_id):
    catalog_service.delete_godown(get_session(), g.tenant_id, godown_id)
    return '', 204


# --- Unit types ---

@catalog_bp.route('/unit-types', methods=['GET'])
@require_user
def list_unit_types():
    """Unit types of a godown (?godownId required)."""
    if not request.args.get('godownId'):
        raise InvalidPayloadError('godownId is required')
    unit_types = catalog_service.list_unit_types(get_session(), g.tenant_id, _godown_filter(required=True))
    return jsonify([unit_type.to_dict() for unit_type in unit_types])


@catalog_bp.route('/unit-types', methods=['POST'])
@require_user
def create_unit_type():
    unit_type = catalog_service.create_unit_type(get_session(), g.tenant_id, _body())
    return jsonify(unit_type.to_dict()), 201


@catalog_bp.route('/unit-types/<int:unit_type_id>', methods=['PATCH', 'PUT'])
@require_user
def update_unit_type(unit_type_id):
    unit_type = catalog_service.update_unit_type(get_session(), g.tenant_id, unit_type_id, _body())
    return jsonify(unit_type.to_dict())


@catalog_bp.route('/unit-types/<int:unit_type_id>', methods=['DELETE'])
@require_user
def delete_unit_type(unit_type_id):
    catalog_service.delete_unit_type(get_session(), g.tenant_id, unit_type_id)
    return '', 204


# --- Companies ---

@catalog_bp.route('/companies', methods=['GET'])
@require_user
def list_companies():
    companies = catalog_service.list_companies(get_session(), g.tenant_id, _godown_filter())
    return jsonify([company.to_dict() for company in companies])


@catalog_bp.route('/companies', methods=['POST'])
@require_user
def create_company():
    company = catalog_service.create_company(get_session(), g.tenant_id, _body())
    return jsonify(company.to_dict()), 201


@catalog_bp.route('/companies/<int:company_id>', methods=['PATCH', 'PUT'])
@require_user
def update_company(company_id):
    company = catalog_service.update_company(get_session(), g.tenant_id, company_id, _body())
    return jsonify(company.to_dict())


@catalog_bp.route('/companies/<int:company_id>', methods=['DELETE'])
@require_user
def delete_company(company_id):
    catalog_service.delete_company(get_session(), g.tenant_id, company_id)
    return '', 204


# --- Products ---

@catalog_bp.route('/products', methods=['GET'])
@require_user
def list_products():
    products = catalog_service.list_products(get_session(), g.tenant_id, _godown_filter())
    return jsonify([product.to_dict() for product in products])


@catalog_bp.route('/products', methods=['POST'])
@require_user
def create_product():
    db_session = get_session()
    product = catalog_service.create_product(db_session, g.tenant_id, _body())
    product = catalog_service.get_product(db_session, product.id, g.tenant_id)
    return jsonify(product.to_dict()), 201


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
@require_user
def get_product(product_id):
    return jsonify(catalog_service.get_product(get_session(), product_id, g.tenant_id).to_dict())


@catalog_bp.route('/products/<int:product_id>', methods=['PATCH', 'PUT'])
@require_user
def update_product(product_id):
    product = catalog_service.update_product(get_session(), g.tenant_id, product_id, _body())
    return jsonify(product.to_dict())


@catalog_bp.route('/products/<int:product_id>', methods=['DELETE'])
@require_user
def delete_product(product_id):
    catalog_service.delete_product(get_session(), g.tenant_id, product_id)
    return '', 204
