"""
Stockledger Models.

- StockRecord: Quantity and reserved quantity per product/size
- Reservation: Time-bounded holds
- InventoryMove: Immutable ledger of changes
"""

from stockledger.models.enums import MoveType, ReferenceType, ReservationStatus
from stockledger.models.move import InventoryMove
from stockledger.models.reservation import Reservation
from stockledger.models.stock import StockRecord

__all__ = [
    'MoveType',
    'ReferenceType',
    'ReservationStatus',
    'StockRecord',
    'Reservation',
    'InventoryMove',
]
