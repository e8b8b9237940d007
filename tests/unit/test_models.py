"""
Unit tests for SQLAlchemy models.
"""

import pytest
import uuid
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from app.models import StaffUser, Product, Order, OrderItem, OrderStatus, Payment, normalize_payment_method


class TestStaffUserModel:
    """Tests for StaffUser model."""

    def test_email_unique(self, session, cashier):
        existing = session.get(StaffUser, cashier.user_id)
        session.add(StaffUser(email=existing.email, role='CASHIER'))

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestProductModel:
    """Tests for Product model."""

    def test_defaults(self, session):
        product = Product(name='Water', price=Decimal('2.00'))
        session.add(product)
        session.commit()

        assert product.id is not None
        assert product.stock == 0
        assert product.track_inventory is True
        assert product.cost_price == Decimal('0.00')
        assert product.is_low_stock is True
        assert product.initial_stock == 0

    def test_initial_stock_follows_opening_stock(self, session, burger):
        product = session.get(Product, burger)
        product.stock = 4
        session.commit()

        assert product.initial_stock == 10
        assert product.to_dict()['initial_stock'] == 10


class TestOrderModel:
    """Tests for Order model helpers."""

    def _order(self, session):
        order = Order(
            order_number=f'ORD-TEST-{str(uuid.uuid4())[:8]}',
            status=OrderStatus.COMPLETED,
            subtotal=Decimal('19.00'),
            tax=Decimal('0.00'),
            total=Decimal('19.00')
        )
        order.items.append(OrderItem(product_id='P1', name='Burger', price=Decimal('15.00'),
                                     cost_price=Decimal('12.00'), quantity=1, subtotal=Decimal('15.00')))
        order.items.append(OrderItem(product_id='P2', name='Fries', price=Decimal('4.00'),
                                     cost_price=Decimal('1.50'), quantity=1, subtotal=Decimal('4.00')))
        order.payments.append(Payment(method='CASH', amount=Decimal('10.00')))
        order.payments.append(Payment(method='CARD', amount=Decimal('9.00')))
        session.add(order)
        session.commit()
        return order

    def test_profit_from_snapshots(self, session):
        order = self._order(session)
        assert order.profit == Decimal('5.50')

    def test_amount_paid(self, session):
        assert self._order(session).amount_paid == Decimal('19.00')

    def test_to_dict(self, session):
        data = self._order(session).to_dict()

        assert data['status'] == 'COMPLETED'
        assert data['total'] == '19.00'
        assert [i['product_id'] for i in data['items']] == ['P1', 'P2']
        assert [p['method'] for p in data['payments']] == ['CASH', 'CARD']
        assert data['created_at'] is not None

    def test_quantity_must_be_positive(self, session):
        order = Order(order_number='ORD-BAD', subtotal=0, tax=0, total=0)
        order.items.append(OrderItem(product_id='P1', name='x', price=1, cost_price=0, quantity=0, subtotal=0))
        session.add(order)

        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()


class TestPaymentMethod:
    """Tests for payment method normalization."""

    @pytest.mark.parametrize('raw,expected', [
        ('cash', 'CASH'),
        (' Card ', 'CARD'),
        ('TRANSFER', 'TRANSFER'),
        ('bitcoin', None),
        (None, None),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_payment_method(raw) == expected
