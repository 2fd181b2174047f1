"""
Integration tests for the stock movement ledger API.
"""
from decimal import Decimal

from sqlalchemy import text

from deepstaq.models import Product, StockMovement


def post_movement(client, headers, product_id, movement_date, movement_type, quantity, **extra):
    body = {
        'product_id': product_id,
        'movement_date': movement_date,
        'type': movement_type,
        'quantity': quantity,
    }
    body.update(extra)
    return client.post('/api/movements', json=body, headers=headers)


def current_stock(client, headers):
    response = client.get('/api/reports/current-stock', headers=headers)
    assert response.status_code == 200
    return {row['product_id']: row['current_stock'] for row in response.get_json()['rows']}


class TestCreateMovement:

    def test_out_beyond_opening_stock_is_rejected(self, client, auth_headers, catalog_factory, session):
        """Opening 10, OUT 15 -> 400 negative stock, nothing persisted."""
        _, _, _, product = catalog_factory('tenant-1', opening_stock=10)

        response = post_movement(client, auth_headers, product.id, '2024-01-01', 'OUT', 15)

        assert response.status_code == 400
        data = response.get_json()
        assert data['message'] == 'Operation would result in negative stock'
        assert data['date'] == '2024-01-01'
        assert data['balance'] == -5.0
        assert session.query(StockMovement).count() == 0

    def test_same_day_in_then_out(self, client, auth_headers, catalog_factory):
        """Opening 10, IN 20 then OUT 15 on the same day -> current stock 15."""
        _, _, _, product = catalog_factory('tenant-1', opening_stock=10)

        first = post_movement(client, auth_headers, product.id, '2024-01-01', 'IN', 20)
        second = post_movement(client, auth_headers, product.id, '2024-01-01', 'OUT', 15, note='dispatch')

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.get_json()['note'] == 'dispatch'
        assert current_stock(client, auth_headers)[product.id] == 15.0

    def test_backdated_out_that_starves_later_out_is_rejected(self, client, auth_headers, product, movement_factory):
        movement_factory(product, '2024-01-01', 'IN', 5)
        movement_factory(product, '2024-01-10', 'OUT', 5)

        response = post_movement(client, auth_headers, product.id, '2024-01-05', 'OUT', 1)

        assert response.status_code == 400
        assert response.get_json()['date'] == '2024-01-10'

    def test_zero_quantity_is_invalid(self, client, auth_headers, product):
        response = post_movement(client, auth_headers, product.id, '2024-01-01', 'IN', 0)
        assert response.status_code == 400
        assert response.get_json()['status'] == 'error'

    def test_missing_fields_are_invalid(self, client, auth_headers, product):
        response = client.post('/api/movements', json={'product_id': product.id}, headers=auth_headers)
        assert response.status_code == 400

    def test_non_json_body_is_invalid(self, client, auth_headers):
        response = client.post('/api/movements', data='nope', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid payload'

    def test_unknown_product_is_not_found(self, client, auth_headers):
        response = post_movement(client, auth_headers, 999, '2024-01-01', 'IN', 1)
        assert response.status_code == 404

    def test_bumps_ledger_version(self, client, auth_headers, product, session):
        post_movement(client, auth_headers, product.id, '2024-01-01', 'IN', 1)
        post_movement(client, auth_headers, product.id, '2024-01-02', 'IN', 1)
        assert session.get(Product, product.id).ledger_version == 2


class TestListMovements:

    def test_requires_product_id(self, client, auth_headers):
        response = client.get('/api/movements', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['message'] == 'productId is required'

    def test_ledger_order(self, client, auth_headers, product, movement_factory):
        movement_factory(product, '2024-01-03', 'OUT', 1)
        movement_factory(product, '2024-01-01', 'IN', 5)
        movement_factory(product, '2024-01-01', 'IN', 2)

        response = client.get(f'/api/movements?productId={product.id}', headers=auth_headers)

        assert response.status_code == 200
        rows = response.get_json()
        assert [(r['movement_date'], r['quantity']) for r in rows] == [
            ('2024-01-01', 5.0), ('2024-01-01', 2.0), ('2024-01-03', 1.0)
        ]


class TestUpdateMovement:

    def test_update_quantity_and_date(self, client, auth_headers, product, movement_factory):
        movement = movement_factory(product, '2024-01-01', 'IN', 5)

        response = client.patch(f'/api/movements/{movement.id}', json={
            'movement_date': '2024-01-02', 'type': 'IN', 'quantity': 8
        }, headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['movement_date'] == '2024-01-02'
        assert data['quantity'] == 8.0
        assert data['updated_at'] is not None

    def test_update_that_breaks_history_is_rejected(self, client, auth_headers, product, movement_factory, session):
        movement = movement_factory(product, '2024-01-01', 'IN', 5)
        movement_factory(product, '2024-01-02', 'OUT', 3)

        response = client.patch(f'/api/movements/{movement.id}', json={
            'movement_date': '2024-01-03', 'type': 'IN', 'quantity': 5
        }, headers=auth_headers)

        assert response.status_code == 400
        stored = session.get(StockMovement, movement.id)
        assert stored.movement_date.isoformat() == '2024-01-01'

    def test_unknown_movement_is_not_found(self, client, auth_headers):
        response = client.patch('/api/movements/999', json={
            'movement_date': '2024-01-01', 'type': 'IN', 'quantity': 1
        }, headers=auth_headers)
        assert response.status_code == 404


class TestDeleteMovement:

    def test_delete_backing_in_is_rejected(self, client, auth_headers, product, movement_factory, session):
        """IN 5 on D1, OUT 3 on D3: deleting the IN would leave -3 on D3."""
        backing = movement_factory(product, '2024-01-01', 'IN', 5)
        movement_factory(product, '2024-01-03', 'OUT', 3)

        response = client.delete(f'/api/movements/{backing.id}', headers=auth_headers)

        assert response.status_code == 400
        data = response.get_json()
        assert data['message'] == 'Deletion would result in negative stock'
        assert data['date'] == '2024-01-03'
        assert session.query(StockMovement).count() == 2

    def test_delete_out(self, client, auth_headers, product, movement_factory, session):
        movement_factory(product, '2024-01-01', 'IN', 5)
        out = movement_factory(product, '2024-01-03', 'OUT', 3)

        response = client.delete(f'/api/movements/{out.id}', headers=auth_headers)

        assert response.status_code == 204
        assert session.query(StockMovement).count() == 1
        assert current_stock(client, auth_headers)[product.id] == 5.0


class TestConcurrentWrites:

    def test_sequential_outs_accept_first_reject_second(self, client, auth_headers, catalog_factory):
        _, _, _, product = catalog_factory('tenant-1', opening_stock=10)

        first = post_movement(client, auth_headers, product.id, '2024-01-01', 'OUT', 6)
        second = post_movement(client, auth_headers, product.id, '2024-01-01', 'OUT', 6)

        assert first.status_code == 201
        assert second.status_code == 400
        assert current_stock(client, auth_headers)[product.id] == 4.0

    def test_ledger_changed_after_validation_is_a_conflict(self, client, auth_headers, catalog_factory,
                                                            session, monkeypatch):
        """A writer that commits between validation and write makes the second one fail with 409."""
        from deepstaq.database import get_session
        from deepstaq.services import movement_service

        _, _, _, product = catalog_factory('tenant-1', opening_stock=10)
        original_validate = movement_service.validate_mutation

        def validate_then_race(*args, **kwargs):
            result = original_validate(*args, **kwargs)
            get_session().execute(
                text('UPDATE product SET ledger_version = ledger_version + 1 WHERE id = :id'),
                {'id': product.id}
            )
            return result

        monkeypatch.setattr(movement_service, 'validate_mutation', validate_then_race)

        response = post_movement(client, auth_headers, product.id, '2024-01-01', 'OUT', 6)

        assert response.status_code == 409
        assert session.query(StockMovement).count() == 0
        assert session.get(Product, product.id).opening_stock == Decimal('10')


def test_requests_without_token_are_unauthorized(client, product):
    response = client.get(f'/api/movements?productId={product.id}')
    assert response.status_code == 401
    assert response.get_json()['message'] == 'Unauthorized'


def test_invalid_token_is_unauthorized(client, product):
    response = client.get(
        f'/api/movements?productId={product.id}',
        headers={'Authorization': 'Bearer not-a-jwt'}
    )
    assert response.status_code == 401
