"""
Stock reconciliation — compare cached counters with the move ledger.

For every record:
    quantity          == sum(restock) + sum(adjustment) + sum(commit)
    reserved_quantity == -(sum(reserve) + sum(release) - sum(commit))
    reserved_quantity == sum(quantity of ACTIVE reservations)

Commit moves carry -q and consume q reserved units, hence the
correction term in the reserved formula.
"""

import logging

from django.db import transaction
from django.db.models import Sum

from stockledger.exceptions import storage_guard
from stockledger.models.enums import MoveType, ReservationStatus
from stockledger.models.stock import StockRecord
from stockledger.results import ReconciliationReport

logger = logging.getLogger('stockledger')


def ledger_totals(record: StockRecord) -> dict[str, int]:
    """Sum of deltas per move type for one record."""
    totals = {move_type: 0 for move_type in MoveType.values}
    rows = record.moves.values('move_type').annotate(total=Sum('quantity_delta'))
    for row in rows:
        totals[row['move_type']] = row['total'] or 0
    return totals


def expected_counters(totals: dict[str, int]) -> tuple[int, int]:
    """(quantity, reserved_quantity) implied by the ledger."""
    quantity = (
        totals[MoveType.RESTOCK]
        + totals[MoveType.ADJUSTMENT]
        + totals[MoveType.COMMIT]
    )
    reserved = -(
        totals[MoveType.RESERVE]
        + totals[MoveType.RELEASE]
        - totals[MoveType.COMMIT]
    )
    return quantity, reserved


def _check(record: StockRecord) -> ReconciliationReport:
    expected_quantity, expected_reserved = expected_counters(ledger_totals(record))
    active_reserved = record.reservations.filter(
        status=ReservationStatus.ACTIVE
    ).aggregate(t=Sum('quantity'))['t'] or 0
    return ReconciliationReport(
        product_id=record.product_id,
        size=record.size,
        quantity=record.quantity,
        expected_quantity=expected_quantity,
        reserved_quantity=record.reserved_quantity,
        expected_reserved=expected_reserved,
        active_reserved=active_reserved,
    )


class StockReconciliation:
    """Audit and correction of cached stock counters."""

    @classmethod
    def reconcile(cls, product_id=None, size=None, fix: bool = False) -> list[ReconciliationReport]:
        """
        Check records against their ledger.

        Args:
            product_id: Limit to one product (None = all)
            size: Limit to one size (requires product_id)
            fix: Rewrite drifted counters from the ledger

        Returns:
            One ReconciliationReport per checked record
        """
        with storage_guard('reconcile'):
            qs = StockRecord.objects.all()
            if product_id is not None:
                qs = qs.filter(product_id=str(product_id))
                if size is not None:
                    qs = qs.filter(size=str(size))

            reports = []
            for pk in qs.values_list('pk', flat=True):
                if fix:
                    reports.append(cls._fix(pk))
                    continue
                report = _check(StockRecord.objects.get(pk=pk))
                if not report.is_consistent:
                    _log_drift(report)
                reports.append(report)
            return reports

    @classmethod
    def _fix(cls, pk) -> ReconciliationReport:
        with transaction.atomic():
            record = StockRecord.objects.select_for_update().get(pk=pk)
            report = _check(record)
            if report.is_consistent:
                return report

            _log_drift(report)
            q, r = report.expected_quantity, report.expected_reserved
            if not 0 <= r <= q:
                logger.error(
                    "stock.reconciliation.unfixable",
                    extra={
                        "stock_id": pk,
                        "expected_quantity": q,
                        "expected_reserved": r,
                    },
                )
                return report

            StockRecord.objects.filter(pk=pk).update(quantity=q, reserved_quantity=r)
            logger.warning(
                "stock.reconciliation.fixed",
                extra={
                    "stock_id": pk,
                    "quantity": f"{report.quantity} -> {q}",
                    "reserved": f"{report.reserved_quantity} -> {r}",
                },
            )
            return ReconciliationReport(
                product_id=report.product_id,
                size=report.size,
                quantity=q,
                expected_quantity=q,
                reserved_quantity=r,
                expected_reserved=r,
                active_reserved=report.active_reserved,
                fixed=True,
            )


def _log_drift(report: ReconciliationReport) -> None:
    logger.error(
        "stock.reconciliation.drift",
        extra={
            "product_id": report.product_id,
            "size": report.size,
            "quantity": report.quantity,
            "expected_quantity": report.expected_quantity,
            "reserved": report.reserved_quantity,
            "expected_reserved": report.expected_reserved,
            "active_reserved": report.active_reserved,
        },
    )
