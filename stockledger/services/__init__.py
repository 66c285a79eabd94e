"""
Stock services — modular organization of stock ledger operations.

Re-exports all public classes:
    from stockledger.services import StockAvailability, StockReservations, ...
"""

from stockledger.services.availability import StockAvailability
from stockledger.services.movements import StockMovements
from stockledger.services.reconciliation import StockReconciliation
from stockledger.services.reports import StockReports
from stockledger.services.reservations import StockReservations
from stockledger.services.sweeper import ExpirationSweeper, SweepTracker

__all__ = [
    'StockAvailability',
    'StockReservations',
    'StockMovements',
    'StockReports',
    'StockReconciliation',
    'ExpirationSweeper',
    'SweepTracker',
]
