"""
Unit tests for the cost price snapshot resolver.
"""

from decimal import Decimal

from app.services.cost_snapshot_service import resolve_cost_prices


class TestResolveCostPrices:
    """Tests for resolve_cost_prices."""

    def test_known_products(self, session, burger, fries):
        costs = resolve_cost_prices(session, [burger, fries])

        assert costs == {'P1': Decimal('12.00'), 'P2': Decimal('1.50')}

    def test_unknown_product_maps_to_zero(self, session, burger):
        costs = resolve_cost_prices(session, ['P1', 'GONE'])

        assert costs['P1'] == Decimal('12.00')
        assert costs['GONE'] == Decimal('0.00')

    def test_duplicates_collapse_to_one_query(self, session, burger, mocker):
        db = session()
        spy = mocker.spy(db, 'query')

        costs = resolve_cost_prices(db, ['P1', 'P1', 'P1'])

        assert list(costs) == ['P1']
        assert spy.call_count == 1

    def test_empty_input(self, session, mocker):
        db = session()
        spy = mocker.spy(db, 'query')

        assert resolve_cost_prices(db, []) == {}
        spy.assert_not_called()

    def test_repeatable_without_product_edits(self, session, burger, fries):
        first = resolve_cost_prices(session, ['P2', 'P1'])
        second = resolve_cost_prices(session, ['P2', 'P1'])

        assert first == second
