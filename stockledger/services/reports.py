"""
Stock reports — read-only projections over stock rows and the ledger.

Snapshots only: each reflects operations already completed at read time.
"""

from stockledger.adapters.catalog import get_product_catalog
from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockLedgerError, storage_guard
from stockledger.models.move import InventoryMove
from stockledger.models.reservation import Reservation
from stockledger.models.stock import StockRecord
from stockledger.results import LowStockItem, ReservationInfo, Requester, StockLevel

UNKNOWN_PRODUCT = 'Unknown Product'


class StockReports:
    """Read-only report methods."""

    @classmethod
    def get_user_reservations(cls, requester: Requester) -> list[ReservationInfo]:
        """Active, non-expired reservations of ``requester``, newest first."""
        if not isinstance(requester, Requester):
            raise StockLedgerError('INVALID_REQUESTER', requester=requester)

        with storage_guard('get_user_reservations'):
            qs = (
                Reservation.objects.active()
                .for_requester(requester)
                .order_by('-created_at')
            )
            return [ReservationInfo.from_model(r) for r in qs]

    @classmethod
    def get_low_stock_items(cls, threshold: int | None = None) -> list[LowStockItem]:
        """
        Records whose available quantity is at or below ``threshold``.

        Ordered by available quantity, lowest first. Product names come
        from the configured ProductCatalog.
        """
        if threshold is None:
            threshold = stockledger_settings.LOW_STOCK_THRESHOLD

        with storage_guard('get_low_stock_items'):
            records = list(
                StockRecord.objects.with_available()
                .filter(available__lte=threshold)
                .order_by('available', 'product_id', 'size')
            )

        products = get_product_catalog().get_products(
            sorted({r.product_id for r in records})
        ) if records else {}

        items = []
        for record in records:
            display = products.get(record.product_id)
            items.append(LowStockItem(
                product_id=record.product_id,
                product_name=display.name if display else UNKNOWN_PRODUCT,
                size=record.size,
                quantity=record.quantity,
                reserved_quantity=record.reserved_quantity,
                available_quantity=record.available,
            ))
        return items

    @classmethod
    def get_stock_levels(cls, product_id, size=None) -> list[StockLevel]:
        """Current levels of a product, all sizes or one."""
        with storage_guard('get_stock_levels'):
            qs = StockRecord.objects.filter(product_id=str(product_id))
            if size is not None:
                qs = qs.filter(size=str(size))
            return [
                StockLevel(
                    product_id=r.product_id,
                    size=r.size,
                    quantity=r.quantity,
                    reserved_quantity=r.reserved_quantity,
                    available_quantity=r.available_quantity,
                )
                for r in qs
            ]

    @classmethod
    def get_inventory_history(cls, product_id, size=None, limit: int | None = None):
        """Ledger entries of a product, newest first."""
        if limit is None:
            limit = stockledger_settings.HISTORY_LIMIT

        with storage_guard('get_inventory_history'):
            qs = InventoryMove.objects.filter(product_id=str(product_id))
            if size is not None:
                qs = qs.filter(size=str(size))
            return list(qs.order_by('-created_at', '-id')[:limit])
