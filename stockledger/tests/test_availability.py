"""
Tests for ledger.check_availability().
"""

import pytest

from stockledger import ledger, StockItem, StockLedgerError
from stockledger.models import Reservation


pytestmark = pytest.mark.django_db


class TestCheckAvailability:

    def test_available_after_restock(self, p1):
        result, = ledger.check_availability([('P1', '10', 3)])

        assert result.is_available
        assert result.quantity == 5
        assert result.reserved_quantity == 0
        assert result.available_quantity == 5
        assert result.requested == 3

    def test_missing_record_is_not_stocked(self, db):
        """Unknown product/size is a business state, not an error."""
        result, = ledger.check_availability([('NOPE', '42', 1)])

        assert not result.is_available
        assert result.available_quantity == 0
        assert result.quantity == 0

    def test_known_product_unknown_size(self, p1):
        result, = ledger.check_availability([('P1', '11', 1)])

        assert not result.is_available
        assert result.available_quantity == 0

    def test_reserved_units_are_not_available(self, p1, session):
        ledger.reserve_stock([('P1', '10', 3)], session)

        result, = ledger.check_availability([('P1', '10', 3)])

        assert not result.is_available
        assert result.reserved_quantity == 3
        assert result.available_quantity == 2

    def test_exact_quantity_is_available(self, p1):
        result, = ledger.check_availability([('P1', '10', 5)])
        assert result.is_available

    def test_results_keep_input_order(self, stock):
        stock('P1', '10', 5)
        stock('P2', '9', 1)

        results = ledger.check_availability([
            ('P2', '9', 2),
            ('P1', '10', 1),
            ('P3', '8', 1),
        ])

        assert [(r.product_id, r.is_available) for r in results] == [
            ('P2', False),
            ('P1', True),
            ('P3', False),
        ]

    def test_single_batch_query(self, stock, django_assert_num_queries):
        """All products are fetched with one read."""
        stock('P1', '10', 5)
        stock('P1', '11', 5)
        stock('P2', '9', 5)

        with django_assert_num_queries(1):
            ledger.check_availability([
                ('P1', '10', 1), ('P1', '11', 1), ('P2', '9', 1),
            ])

    def test_accepts_stock_items(self, p1):
        result, = ledger.check_availability([StockItem('P1', '10', 2)])
        assert result.is_available

    def test_check_has_no_side_effects(self, p1):
        ledger.check_availability([('P1', '10', 5)])

        p1.refresh_from_db()
        assert p1.reserved_quantity == 0
        assert not Reservation.objects.exists()

    def test_invalid_quantity(self, p1):
        with pytest.raises(StockLedgerError) as exc:
            ledger.check_availability([('P1', '10', 0)])

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_empty_items(self, db):
        assert ledger.check_availability([]) == []

    def test_is_available_shortcut(self, p1):
        assert ledger.is_available('P1', '10', 5)
        assert not ledger.is_available('P1', '10', 6)
