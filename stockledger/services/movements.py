"""
Stock movements — quantity changes outside the reservation lifecycle
(restock, manual adjustment).

All methods use transaction.atomic() and conditional updates.
"""

import logging

from django.db import IntegrityError, transaction

from stockledger.exceptions import StockLedgerError, storage_guard
from stockledger.models.enums import MoveType, ReferenceType
from stockledger.models.move import InventoryMove
from stockledger.models.stock import StockRecord
from stockledger.results import StockLevel

logger = logging.getLogger('stockledger')


def _get_or_create_record(product_id: str, size: str) -> StockRecord:
    """Create the record lazily; tolerate a concurrent first restock."""
    try:
        with transaction.atomic():
            record, _ = StockRecord.objects.get_or_create(product_id=product_id, size=size)
    except IntegrityError:
        record = StockRecord.objects.get(product_id=product_id, size=size)
    return record


class StockMovements:
    """Restock and adjustment methods."""

    @classmethod
    def restock(cls, product_id, size, quantity: int,
                reason: str = 'Inventory restock', requester=None,
                reference_id: str = '') -> StockLevel:
        """
        Stock entry.

        Creates the record on first restock, increments quantity and
        writes a ``restock`` move.

        Raises:
            StockLedgerError('INVALID_QUANTITY'): If quantity <= 0
        """
        if quantity <= 0:
            raise StockLedgerError('INVALID_QUANTITY', requested=quantity)
        if not reason:
            raise StockLedgerError('REASON_REQUIRED')

        product_id, size = str(product_id), str(size)
        with storage_guard('restock'), transaction.atomic():
            record = _get_or_create_record(product_id, size)
            StockRecord.objects.try_adjust(record.pk, quantity)
            InventoryMove.objects.record(
                record,
                MoveType.RESTOCK,
                quantity,
                reason=reason,
                reference_id=reference_id,
                reference_type=ReferenceType.RESTOCK,
                requester=requester,
            )
            record.refresh_from_db()

        logger.info(
            "stock.restock",
            extra={
                "product_id": product_id,
                "size": size,
                "qty": quantity,
                "reason": reason,
                "new_quantity": record.quantity,
            },
        )
        return _level(record)

    @classmethod
    def adjust_stock(cls, product_id, size, adjustment: int,
                     reason: str, requester=None) -> StockLevel | None:
        """
        Manual inventory adjustment by a signed number of units.

        Never lets quantity drop below reserved_quantity: units held by
        active reservations cannot be adjusted away.

        Returns:
            New StockLevel, or None if adjustment is 0

        Raises:
            StockLedgerError('REASON_REQUIRED'): If reason is empty
            StockLedgerError('INSUFFICIENT_STOCK'): If the removal exceeds
                the available quantity (or the record does not exist)
        """
        if not reason:
            raise StockLedgerError('REASON_REQUIRED')
        if adjustment == 0:
            return None

        product_id, size = str(product_id), str(size)
        with storage_guard('adjust_stock'), transaction.atomic():
            if adjustment > 0:
                record = _get_or_create_record(product_id, size)
            else:
                record = StockRecord.objects.filter(product_id=product_id, size=size).first()
                if record is None:
                    raise StockLedgerError(
                        'INSUFFICIENT_STOCK',
                        product_id=product_id,
                        size=size,
                        available=0,
                        requested=-adjustment,
                    )

            if not StockRecord.objects.try_adjust(record.pk, adjustment):
                record.refresh_from_db()
                raise StockLedgerError(
                    'INSUFFICIENT_STOCK',
                    product_id=product_id,
                    size=size,
                    available=record.available_quantity,
                    requested=-adjustment,
                )

            InventoryMove.objects.record(
                record,
                MoveType.ADJUSTMENT,
                adjustment,
                reason=f"Adjustment: {reason}",
                reference_type=ReferenceType.MANUAL,
                requester=requester,
            )
            record.refresh_from_db()

        logger.info(
            "stock.adjust",
            extra={
                "product_id": product_id,
                "size": size,
                "delta": adjustment,
                "reason": reason,
                "new_quantity": record.quantity,
            },
        )
        return _level(record)

    @classmethod
    def note_external_stock_change(cls, product_id, size, reported_quantity: int,
                                   source: str = 'webhook') -> int | None:
        """
        Record that an outside system reported a stock figure.

        Only logs the difference for monitoring; ledger state is never
        changed from here.

        Returns:
            reported - ledger quantity, or None if the product/size is unknown
        """
        with storage_guard('note_external_stock_change'):
            record = StockRecord.objects.filter(
                product_id=str(product_id), size=str(size)
            ).first()
        drift = None if record is None else reported_quantity - record.quantity
        logger.log(
            logging.INFO if drift == 0 else logging.WARNING,
            "stock.external_change.ignored",
            extra={
                "product_id": str(product_id),
                "size": str(size),
                "reported": reported_quantity,
                "ledger": None if record is None else record.quantity,
                "drift": drift,
                "source": source,
            },
        )
        return drift


def _level(record: StockRecord) -> StockLevel:
    return StockLevel(
        product_id=record.product_id,
        size=record.size,
        quantity=record.quantity,
        reserved_quantity=record.reserved_quantity,
        available_quantity=record.available_quantity,
    )
