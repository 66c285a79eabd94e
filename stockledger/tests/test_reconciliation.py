"""
Tests for ledger reconciliation.
"""

import logging

import pytest
from django.core.management import call_command

from stockledger import ledger, Requester
from stockledger.models import InventoryMove, MoveType, StockRecord
from stockledger.services.reconciliation import expected_counters, ledger_totals


pytestmark = pytest.mark.django_db


def reserve_release_delta(record):
    """-(sum of reserve and release deltas), net of committed units."""
    totals = ledger_totals(record)
    return -(totals[MoveType.RESERVE] + totals[MoveType.RELEASE] - totals[MoveType.COMMIT])


class TestLedgerMatchesCounters:

    def test_after_mixed_lifecycle(self, p1, expire):
        a = ledger.reserve_stock([('P1', '10', 2)], Requester.session('A'))
        b = ledger.reserve_stock([('P1', '10', 1)], Requester.session('B'))
        c = ledger.reserve_stock([('P1', '10', 1)], Requester.user('C'))
        ledger.commit_reserved_stock(a.reservation_ids, 'O1')
        ledger.release_reservations(b.reservation_ids)
        expire(*c.reservation_ids)
        ledger.restock('P1', '10', 4)
        ledger.adjust_stock('P1', '10', -1, reason='Damaged')

        p1.refresh_from_db()
        assert (p1.quantity, p1.reserved_quantity) == (6, 1)
        assert reserve_release_delta(p1) == p1.reserved_quantity
        assert expected_counters(ledger_totals(p1)) == (6, 1)

        report, = ledger.reconcile()
        assert report.is_consistent
        assert report.active_reserved == 1

        ledger.sweep()
        p1.refresh_from_db()
        assert reserve_release_delta(p1) == p1.reserved_quantity == 0

    def test_worked_example_reconciles(self, p1):
        s1 = ledger.reserve_stock([('P1', '10', 3)], Requester.session('S1'))
        ledger.commit_reserved_stock(s1.reservation_ids, 'O1')
        ledger.reserve_stock([('P1', '10', 2)], Requester.session('S3'))

        p1.refresh_from_db()
        assert reserve_release_delta(p1) == p1.reserved_quantity == 2


class TestReconcile:

    def test_detects_drift(self, p1, session, caplog):
        ledger.reserve_stock([('P1', '10', 2)], session)
        StockRecord.objects.filter(pk=p1.pk).update(quantity=9, reserved_quantity=0)

        with caplog.at_level(logging.ERROR, logger='stockledger'):
            report, = ledger.reconcile(product_id='P1', size='10')

        assert not report.is_consistent
        assert (report.quantity, report.expected_quantity) == (9, 5)
        assert (report.reserved_quantity, report.expected_reserved) == (0, 2)
        assert report.active_reserved == 2
        assert any(r.getMessage() == 'stock.reconciliation.drift' for r in caplog.records)
        # Without fix nothing changes
        p1.refresh_from_db()
        assert p1.quantity == 9

    def test_fix_rewrites_from_ledger(self, p1, session):
        ledger.reserve_stock([('P1', '10', 2)], session)
        StockRecord.objects.filter(pk=p1.pk).update(quantity=9, reserved_quantity=0)

        report, = ledger.reconcile(fix=True)

        assert report.fixed
        assert report.is_consistent
        p1.refresh_from_db()
        assert (p1.quantity, p1.reserved_quantity) == (5, 2)

    def test_fix_is_noop_when_consistent(self, p1):
        report, = ledger.reconcile(fix=True)

        assert report.is_consistent
        assert not report.fixed

    def test_filters(self, stock):
        stock('P1', '10', 1)
        stock('P1', '11', 1)
        stock('P2', '9', 1)

        assert len(ledger.reconcile()) == 3
        assert len(ledger.reconcile(product_id='P1')) == 2
        assert len(ledger.reconcile(product_id='P1', size='11')) == 1

    def test_moves_are_not_touched(self, p1):
        StockRecord.objects.filter(pk=p1.pk).update(quantity=9)
        count = InventoryMove.objects.count()

        ledger.reconcile(fix=True)

        assert InventoryMove.objects.count() == count


class TestReconcileCommand:

    def test_reports_drift(self, p1, capsys):
        StockRecord.objects.filter(pk=p1.pk).update(quantity=9)

        call_command('reconcile_stock')

        out = capsys.readouterr().out
        assert 'drift: P1 [10]' in out
        assert '1 record(s) checked, 1 with drift' in out

    def test_fix(self, p1, capsys):
        StockRecord.objects.filter(pk=p1.pk).update(quantity=9)

        call_command('reconcile_stock', '--fix')

        assert 'fixed: P1 [10]' in capsys.readouterr().out
        p1.refresh_from_db()
        assert p1.quantity == 5
