"""
Integration tests for godown, unit type, company and product management.
"""
from deepstaq.models import AlertSetting, Godown, Product, StockMovement, UnitType


def create_godown_tree(client, headers):
    godown = client.post('/api/godowns', json={'name': 'North', 'description': 'Dock 3'}, headers=headers)
    assert godown.status_code == 201
    godown_id = godown.get_json()['id']

    unit_type = client.post('/api/unit-types', json={'godown_id': godown_id, 'name': 'Bag'}, headers=headers)
    company = client.post('/api/companies', json={'godown_id': godown_id, 'name': 'Acme'}, headers=headers)
    assert unit_type.status_code == 201
    assert company.status_code == 201
    return godown_id, unit_type.get_json()['id'], company.get_json()['id']


class TestGodowns:

    def test_create_and_list(self, client, auth_headers):
        create_godown_tree(client, auth_headers)

        response = client.get('/api/godowns', headers=auth_headers)

        assert response.status_code == 200
        assert [(g['name'], g['description']) for g in response.get_json()] == [('North', 'Dock 3')]

    def test_name_is_required(self, client, auth_headers):
        response = client.post('/api/godowns', json={'name': '  '}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Name is required'

    def test_update(self, client, auth_headers, godown):
        response = client.patch(f'/api/godowns/{godown.id}', json={'name': 'Renamed'}, headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['name'] == 'Renamed'

    def test_delete_removes_contents(self, client, auth_headers, godown, product, movement_factory, session):
        movement_factory(product, '2024-01-01', 'IN', 5)
        client.post('/api/alert-settings', json={
            'godown_id': godown.id, 'empty_threshold': 1, 'low_threshold': 4
        }, headers=auth_headers)

        response = client.delete(f'/api/godowns/{godown.id}', headers=auth_headers)

        assert response.status_code == 204
        assert session.query(Godown).count() == 0
        assert session.query(Product).count() == 0
        assert session.query(StockMovement).count() == 0
        assert session.query(UnitType).count() == 0
        assert session.query(AlertSetting).count() == 0


class TestUnitTypesAndCompanies:

    def test_unit_types_require_godown_filter(self, client, auth_headers):
        response = client.get('/api/unit-types', headers=auth_headers)
        assert response.status_code == 400

    def test_unit_types_listed_per_godown(self, client, auth_headers):
        godown_id, unit_type_id, _ = create_godown_tree(client, auth_headers)

        response = client.get(f'/api/unit-types?godownId={godown_id}', headers=auth_headers)

        assert [u['id'] for u in response.get_json()] == [unit_type_id]

    def test_cannot_delete_unit_type_in_use(self, client, auth_headers, unit_type):
        response = client.delete(f'/api/unit-types/{unit_type.id}', headers=auth_headers)
        assert response.status_code == 400

    def test_cannot_delete_company_in_use(self, client, auth_headers, company):
        response = client.delete(f'/api/companies/{company.id}', headers=auth_headers)
        assert response.status_code == 400

    def test_unit_type_in_other_tenants_godown_is_not_found(self, client, auth_headers, catalog_tenant2):
        response = client.post('/api/unit-types', json={
            'godown_id': catalog_tenant2[0].id, 'name': 'Crate'
        }, headers=auth_headers)
        assert response.status_code == 404


class TestProducts:

    def test_create_product(self, client, auth_headers):
        godown_id, unit_type_id, company_id = create_godown_tree(client, auth_headers)

        response = client.post('/api/products', json={
            'godown_id': godown_id,
            'company_id': company_id,
            'unit_type_id': unit_type_id,
            'name': 'Rice 25kg',
            'sku': 'RICE-25',
            'opening_stock': 12,
            'cost_price': '18.50',
        }, headers=auth_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert data['opening_stock'] == 12.0
        assert data['cost_price'] == 18.5
        assert data['companies'] == {'name': 'Acme'}
        assert data['unit_types'] == {'name': 'Bag'}

    def test_negative_opening_stock_is_invalid(self, client, auth_headers, godown, unit_type, company):
        response = client.post('/api/products', json={
            'godown_id': godown.id, 'company_id': company.id, 'unit_type_id': unit_type.id,
            'name': 'Bad', 'opening_stock': -1,
        }, headers=auth_headers)
        assert response.status_code == 400

    def test_references_must_belong_to_caller(self, client, auth_headers, godown, unit_type, catalog_tenant2):
        response = client.post('/api/products', json={
            'godown_id': godown.id,
            'company_id': catalog_tenant2[2].id,
            'unit_type_id': unit_type.id,
            'name': 'Borrowed company',
        }, headers=auth_headers)
        assert response.status_code == 404

    def test_lowering_opening_stock_below_history_is_rejected(self, client, auth_headers, catalog_factory,
                                                               movement_factory, session):
        _, _, _, product = catalog_factory('tenant-1', opening_stock=5)
        movement_factory(product, '2024-01-01', 'OUT', 4)

        rejected = client.patch(f'/api/products/{product.id}', json={'opening_stock': 3}, headers=auth_headers)
        accepted = client.patch(f'/api/products/{product.id}', json={'opening_stock': 4}, headers=auth_headers)

        assert rejected.status_code == 400
        assert rejected.get_json()['message'] == 'Operation would result in negative stock'
        assert accepted.status_code == 200
        assert accepted.get_json()['opening_stock'] == 4.0
        assert session.get(Product, product.id).ledger_version == 1

    def test_filter_by_godown(self, client, auth_headers, catalog_factory):
        first, _, _, product = catalog_factory('tenant-1', name='A')
        catalog_factory('tenant-1', name='B')

        response = client.get(f'/api/products?godownId={first.id}', headers=auth_headers)

        assert [p['id'] for p in response.get_json()] == [product.id]

    def test_delete_product_removes_movements(self, client, auth_headers, product, movement_factory, session):
        movement_factory(product, '2024-01-01', 'IN', 5)

        response = client.delete(f'/api/products/{product.id}', headers=auth_headers)

        assert response.status_code == 204
        assert session.query(StockMovement).count() == 0
