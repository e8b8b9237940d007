"""
Integration tests for the JSON HTTP surface.
"""

from app.models import Order, OrderStatus, Product


def line(product_id, quantity, price, name=None):
    return {'productRef': product_id, 'quantity': quantity, 'unitPrice': price, 'name': name or product_id}


class TestAuthentication:
    """Staff endpoints need a signed-in, active staff user."""

    def test_orders_require_login(self, client, burger):
        response = client.post('/orders', json={'cart': {'items': [line('P1', 1, '15.00')]}})

        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'

    def test_unknown_session_user_is_anonymous(self, client):
        with client.session_transaction() as sess:
            sess['user_id'] = 'ghost'

        assert client.get('/orders/pending').status_code == 401

    def test_health_is_public(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['database'] == 'connected'

    def test_csrf_token(self, client):
        assert client.get('/csrf-token').get_json()['csrf_token']


class TestOrdersApi:
    """Hold, checkout, finalize and discard over HTTP."""

    def test_checkout(self, authenticated_client, session, burger):
        response = authenticated_client.post('/orders/checkout', json={
            'cart': {'items': [line('P1', 2, '15.00', 'Burger')], 'tax': '0'},
            'payments': [{'method': 'CASH', 'amount': '30.00'}],
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['status'] == 'COMPLETED'
        assert data['total'] == '30.00'
        assert data['items'][0]['cost_price'] == '12.00'
        assert session.get(Product, 'P1').stock == 8

    def test_hold_list_finalize(self, authenticated_client, session, burger):
        held = authenticated_client.post('/orders', json={'cart': {'items': [line('P1', 1, '15.00')]}}).get_json()
        assert held['status'] == 'PENDING'

        pending = authenticated_client.get('/orders/pending').get_json()['orders']
        assert [o['id'] for o in pending] == [held['id']]

        response = authenticated_client.post(f"/orders/{held['id']}/finalize", json={
            'payments': [{'method': 'CARD', 'amount': '15.00'}]
        })
        assert response.status_code == 200
        assert response.get_json()['status'] == 'COMPLETED'

        again = authenticated_client.post(f"/orders/{held['id']}/finalize", json={
            'payments': [{'method': 'CARD', 'amount': '15.00'}]
        })
        assert again.status_code == 409
        assert again.get_json()['order_number'] == held['order_number']

        detail = authenticated_client.get(f"/orders/{held['id']}").get_json()
        assert detail['amount_paid'] == '15.00'
        assert len(detail['payments']) == 1

    def test_insufficient_stock_response(self, authenticated_client, session, fries):
        response = authenticated_client.post('/orders/checkout', json={
            'cart': {'items': [line('P2', 5, '4.00', 'Fries')]},
            'payments': [{'method': 'CASH', 'amount': '20.00'}],
        })

        assert response.status_code == 409
        shortage = response.get_json()['shortages'][0]
        assert shortage == {'product_id': 'P2', 'name': 'Fries', 'required': '5', 'available': '3'}
        assert session.query(Order).count() == 0

    def test_invalid_cart(self, authenticated_client, burger):
        response = authenticated_client.post('/orders/checkout', json={'cart': {'items': []}, 'payments': []})

        assert response.status_code == 400

    def test_unknown_order(self, authenticated_client):
        assert authenticated_client.get('/orders/nope').status_code == 404

    def test_discard(self, authenticated_client, session, burger):
        held = authenticated_client.post('/orders', json={'cart': {'items': [line('P1', 1, '15.00')]}}).get_json()

        response = authenticated_client.delete(f"/orders/{held['id']}")

        assert response.status_code == 200
        assert session.get(Order, held['id']) is None


class TestMenuApi:
    """Public digital menu."""

    def test_menu_grouped_by_category(self, client, burger, fries, soup):
        categories = client.get('/menu').get_json()['categories']

        assert [c['category'] for c in categories] == ['Mains', 'Other', 'Sides']
        mains = categories[0]['products'][0]
        assert mains == {'id': 'P1', 'name': 'Burger', 'price': '15.00', 'available': True}
        assert 'cost_price' not in mains

    def test_visitor_order_without_login(self, client, session, burger):
        response = client.post('/menu/orders', json={
            'cart': {'items': [line('P1', 1, '15.00', 'Burger')], 'tableNumber': '4'}
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['order_number'].startswith('VIS-')
        assert data['status'] == 'PENDING'
        order = session.get(Order, data['id'])
        assert order.status == OrderStatus.PENDING
        assert order.user_id is None

    def test_visitor_order_needs_cart_key(self, client, session, burger):
        response = client.post('/menu/orders', json={'items': [line('P1', 1, '15.00', 'Burger')]})

        assert response.status_code == 400
        assert session.query(Order).count() == 0

    def test_visitor_cannot_order_hidden_product(self, client, session, burger):
        session.get(Product, 'P1').show_on_menu = False
        session.commit()

        response = client.post('/menu/orders', json={'cart': {'items': [line('P1', 1, '0.01')]}})

        assert response.status_code == 400
        assert response.get_json()['product_ids'] == ['P1']


class TestInventoryApi:
    """Stock adjustments and alerts."""

    def test_cashier_cannot_adjust(self, authenticated_client, burger):
        response = authenticated_client.post('/inventory/P1/stock', json={'quantity': 5, 'mode': 'ADD'})

        assert response.status_code == 403

    def test_manager_adjusts(self, manager_client, session, burger):
        response = manager_client.post('/inventory/P1/stock', json={'quantity': 20, 'mode': 'SET'})

        assert response.status_code == 200
        assert response.get_json()['stock'] == 20
        movements = manager_client.get('/inventory/P1/movements').get_json()['movements']
        assert [(m['quantity'], m['type']) for m in movements] == [(10, 'ADJUSTMENT')]

    def test_invalid_quantity(self, manager_client, burger):
        response = manager_client.post('/inventory/P1/stock', json={'quantity': 'lots', 'mode': 'ADD'})

        assert response.status_code == 400

    def test_alerts(self, authenticated_client, burger, fries):
        products = authenticated_client.get('/inventory/alerts').get_json()['products']

        assert [p['id'] for p in products] == ['P2', 'P1']

    def test_reconcile(self, manager_client, burger):
        manager_client.post('/inventory/P1/stock', json={'quantity': 3, 'mode': 'ADD'})

        data = manager_client.get('/inventory/P1/reconcile').get_json()

        assert data['initial_stock'] == 10
        assert data['stock'] == 13
        assert data['ledger_balance'] == 3
        assert data['consistent'] is True

    def test_reconcile_unknown_product(self, authenticated_client):
        assert authenticated_client.get('/inventory/nope/reconcile').status_code == 404


class TestProductsApi:
    """Catalog and menu settings."""

    def test_cashier_cannot_change_menu(self, authenticated_client, burger):
        response = authenticated_client.post('/products/P1/menu-visibility', json={'show_on_menu': False})

        assert response.status_code == 403

    def test_create_product(self, manager_client, session):
        response = manager_client.post('/products', json={
            'name': 'Lemonade', 'price': '3.50', 'cost_price': '0.80', 'stock': 24
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['stock'] == 24
        assert data['initial_stock'] == 24
        assert data['show_on_menu'] is False
        assert manager_client.get(f"/inventory/{data['id']}/reconcile").get_json()['consistent'] is True

    def test_create_product_requires_name(self, manager_client):
        assert manager_client.post('/products', json={'price': '3.50'}).status_code == 400

    def test_hide_and_show_on_menu(self, manager_client, burger):
        response = manager_client.post('/products/P1/menu-visibility', json={'show_on_menu': False})

        assert response.status_code == 200
        assert response.get_json()['show_on_menu'] is False
        assert manager_client.get('/menu').get_json()['categories'] == []

        manager_client.post('/products/P1/menu-visibility', json={'show_on_menu': True})
        assert len(manager_client.get('/menu').get_json()['categories']) == 1

    def test_visibility_must_be_boolean(self, manager_client, burger):
        response = manager_client.post('/products/P1/menu-visibility', json={'show_on_menu': 'yes'})

        assert response.status_code == 400

    def test_update_menu_details(self, manager_client, burger, fries):
        response = manager_client.patch('/products/P2/menu', json={'menu_category': 'Mains', 'menu_order': 0})

        assert response.status_code == 200
        categories = manager_client.get('/menu').get_json()['categories']
        assert [(c['category'], [p['id'] for p in c['products']]) for c in categories] == [('Mains', ['P2', 'P1'])]

    def test_update_menu_details_unknown_product(self, manager_client):
        assert manager_client.patch('/products/nope/menu', json={'menu_order': 1}).status_code == 404


class TestReportsApi:
    """Profit report and dashboard."""

    def test_cashier_forbidden(self, authenticated_client):
        assert authenticated_client.get('/reports/profit').status_code == 403

    def test_profit(self, manager_client, burger, fries):
        manager_client.post('/orders/checkout', json={
            'cart': {'items': [line('P1', 2, '15.00', 'Burger'), line('P2', 1, '4.00', 'Fries')]},
            'payments': [{'method': 'CASH', 'amount': '34.00'}],
        })

        data = manager_client.get('/reports/profit').get_json()

        assert data['order_count'] == 1
        assert data['revenue'] == '34.00'
        assert data['cost'] == '25.50'
        assert data['profit'] == '8.50'
        assert [p['product_id'] for p in data['by_product']] == ['P1', 'P2']

    def test_bad_date(self, manager_client):
        assert manager_client.get('/reports/profit?start=yesterday').status_code == 400

    def test_dashboard_open_to_staff(self, authenticated_client, burger):
        authenticated_client.post('/orders/checkout', json={
            'cart': {'items': [line('P1', 1, '15.00', 'Burger')]},
            'payments': [{'method': 'CASH', 'amount': '15.00'}],
        })

        data = authenticated_client.get('/reports/dashboard').get_json()

        assert data['revenue'] == '15.00'
        assert data['profit'] == '3.00'
        assert data['sales_count'] == 1
        assert data['low_stock_count'] == 1
        assert data['trends'] == {'revenue_pct': '0.00', 'sales_pct': '0.00'}


class TestMetrics:
    def test_exposes_order_counters(self, client):
        body = client.get('/metrics').get_data(as_text=True)

        assert 'pos_orders_committed' in body
        assert 'pos_order_commit_failures' in body
