"""
Stock Ledger Service — The single public interface for stock operations.

Usage:
    from stockledger import ledger, Requester

    ledger.restock('P1', '10', 5)
    ledger.check_availability([('P1', '10', 3)])
    result = ledger.reserve_stock([('P1', '10', 3)], Requester.session('S1'))
    ledger.commit_reserved_stock(result.reservation_ids, order_id='O1')
"""

from stockledger.results import SweepResult
from stockledger.services import (
    ExpirationSweeper,
    StockAvailability,
    StockMovements,
    StockReconciliation,
    StockReports,
    StockReservations,
    SweepTracker,
)


class StockLedger(
    StockAvailability,
    StockReservations,
    StockMovements,
    StockReports,
    StockReconciliation,
):
    """
    Single interface for all stock ledger operations.

    Checkout flow:
        check_availability -> reserve_stock -> commit_reserved_stock
        (or release_reservations on abandonment/failure)

    IMPORTANT: All state-changing methods use atomic conditional updates.
    See each method's docstring.
    """

    @classmethod
    def sweep(cls, tracker: SweepTracker | None = None) -> SweepResult:
        """Release expired reservations. Scheduling is up to the caller."""
        return ExpirationSweeper(tracker=tracker).sweep()
