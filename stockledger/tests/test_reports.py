"""
Tests for read-only reports.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured

from stockledger import ledger, Requester, StockLedgerError
from stockledger.adapters import get_product_catalog, reset_product_catalog
from stockledger.adapters.noop import NoopProductCatalog
from stockledger.models import MoveType
from stockledger.protocols import ProductCatalog


pytestmark = pytest.mark.django_db


class TestUserReservations:

    def test_lists_active_holds_newest_first(self, stock, customer):
        stock('P1', '10', 5)
        stock('P2', '9', 5)
        first = ledger.reserve_stock([('P1', '10', 1)], customer)
        second = ledger.reserve_stock([('P2', '9', 2)], customer)

        reservations = ledger.get_user_reservations(customer)

        assert [r.id for r in reservations] == second.reservation_ids + first.reservation_ids
        assert reservations[0].user_id == '42'
        assert reservations[0].session_id is None

    def test_excludes_other_requesters(self, p1, customer, session):
        ledger.reserve_stock([('P1', '10', 1)], session)

        assert ledger.get_user_reservations(customer) == []
        assert len(ledger.get_user_reservations(session)) == 1

    def test_excludes_expired_and_terminal(self, p1, customer, expire):
        expired = ledger.reserve_stock([('P1', '10', 1)], customer)
        expire(*expired.reservation_ids)
        committed = ledger.reserve_stock([('P1', '10', 1)], customer)
        ledger.commit_reserved_stock(committed.reservation_ids, 'O1')
        released = ledger.reserve_stock([('P1', '10', 1)], customer)
        ledger.release_reservations(released.reservation_ids)
        live = ledger.reserve_stock([('P1', '10', 1)], customer)

        reservations = ledger.get_user_reservations(customer)

        assert [r.id for r in reservations] == live.reservation_ids

    def test_requester_required(self, db):
        with pytest.raises(StockLedgerError) as exc:
            ledger.get_user_reservations('42')

        assert exc.value.code == 'INVALID_REQUESTER'


class TestLowStock:

    def test_threshold_is_inclusive(self, stock):
        stock('P1', '10', 5)
        stock('P1', '11', 6)
        stock('P2', '9', 2)

        items = ledger.get_low_stock_items(threshold=5)

        assert [(i.product_id, i.size, i.available_quantity) for i in items] == [
            ('P2', '9', 2),
            ('P1', '10', 5),
        ]

    def test_default_threshold_from_settings(self, stock, settings):
        stock('P1', '10', 5)
        stock('P2', '9', 6)
        settings.STOCKLEDGER = {'LOW_STOCK_THRESHOLD': 6}

        assert len(ledger.get_low_stock_items()) == 2

    def test_reservations_lower_availability(self, stock, session):
        stock('P1', '10', 8)
        ledger.reserve_stock([('P1', '10', 4)], session)

        item, = ledger.get_low_stock_items(threshold=5)

        assert item.quantity == 8
        assert item.reserved_quantity == 4
        assert item.available_quantity == 4

    def test_sold_out_rows_included(self, p1, session):
        reserved = ledger.reserve_stock([('P1', '10', 5)], session)
        ledger.commit_reserved_stock(reserved.reservation_ids, 'O1')

        item, = ledger.get_low_stock_items(threshold=0)

        assert item.quantity == 0

    def test_unknown_product_name_with_noop_catalog(self, p1):
        item, = ledger.get_low_stock_items(threshold=5)
        assert item.product_name == 'Unknown Product'

    def test_names_from_configured_catalog(self, stock, settings):
        settings.STOCKLEDGER = {
            'PRODUCT_CATALOG': 'stockledger.tests.catalog.FakeProductCatalog',
        }
        stock('P1', '10', 1)
        stock('P7', '10', 1)

        names = {i.product_id: i.product_name for i in ledger.get_low_stock_items(threshold=5)}

        assert names == {'P1': 'Air Runner', 'P7': 'Unknown Product'}

    def test_no_rows(self, db):
        assert ledger.get_low_stock_items(threshold=5) == []


class TestProductCatalogLoader:

    def test_default_is_noop(self, settings):
        settings.STOCKLEDGER = {}
        catalog = get_product_catalog()

        assert isinstance(catalog, NoopProductCatalog)
        assert isinstance(catalog, ProductCatalog)

    def test_cached(self, settings):
        assert get_product_catalog() is get_product_catalog()

    def test_empty_path(self, settings):
        settings.STOCKLEDGER = {'PRODUCT_CATALOG': ''}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()

    def test_bad_import(self, settings):
        settings.STOCKLEDGER = {'PRODUCT_CATALOG': 'nowhere.Catalog'}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()

    def test_not_a_catalog(self, settings):
        settings.STOCKLEDGER = {'PRODUCT_CATALOG': 'stockledger.tests.catalog.NotACatalog'}

        with pytest.raises(ImproperlyConfigured):
            get_product_catalog()
        reset_product_catalog()


class TestStockLevelsAndHistory:

    def test_stock_levels(self, stock, session):
        stock('P1', '10', 5)
        stock('P1', '11', 2)
        ledger.reserve_stock([('P1', '10', 1)], session)

        levels = ledger.get_stock_levels('P1')

        assert [(lv.size, lv.quantity, lv.reserved_quantity, lv.available_quantity) for lv in levels] == [
            ('10', 5, 1, 4),
            ('11', 2, 0, 2),
        ]
        assert [lv.size for lv in ledger.get_stock_levels('P1', size='11')] == ['11']

    def test_history_newest_first(self, p1, session):
        reserved = ledger.reserve_stock([('P1', '10', 2)], session)
        ledger.release_reservations(reserved.reservation_ids)

        moves = ledger.get_inventory_history('P1', size='10')

        assert [m.move_type for m in moves] == [MoveType.RELEASE, MoveType.RESERVE, MoveType.RESTOCK]

    def test_history_limit(self, p1):
        for _ in range(3):
            ledger.restock('P1', '10', 1)

        assert len(ledger.get_inventory_history('P1', limit=2)) == 2
        assert len(ledger.get_inventory_history('P1')) == 4
