"""
Django Stockledger — Stock reservations and inventory ledger.

Holds inventory during checkout, turns holds into sales, releases
abandoned holds and keeps an append-only record of every change.

Usage:
    from stockledger import ledger, Requester

    ledger.restock('P1', '10', 5)
    result = ledger.reserve_stock([('P1', '10', 3)], Requester.session('S1'))
    ledger.commit_reserved_stock(result.reservation_ids, order_id='O1')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from stockledger.service import StockLedger
        return StockLedger
    elif name == 'StockLedgerError':
        from stockledger.exceptions import StockLedgerError
        return StockLedgerError
    elif name == 'Requester':
        from stockledger.results import Requester
        return Requester
    elif name == 'StockItem':
        from stockledger.results import StockItem
        return StockItem
    elif name == 'StockRecord':
        from stockledger.models.stock import StockRecord
        return StockRecord
    elif name == 'Reservation':
        from stockledger.models.reservation import Reservation
        return Reservation
    elif name == 'InventoryMove':
        from stockledger.models.move import InventoryMove
        return InventoryMove
    elif name == 'MoveType':
        from stockledger.models.enums import MoveType
        return MoveType
    elif name == 'ReservationStatus':
        from stockledger.models.enums import ReservationStatus
        return ReservationStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'StockLedgerError',
    'Requester',
    'StockItem',
    'StockRecord',
    'Reservation',
    'InventoryMove',
    'MoveType',
    'ReservationStatus',
]

__version__ = '0.1.0'
