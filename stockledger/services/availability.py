"""
Stock availability — read-only batch checks.

No locking, no side effects; safe to call concurrently with anything.
"""

from collections import defaultdict

from stockledger.exceptions import storage_guard
from stockledger.models.stock import StockRecord
from stockledger.results import AvailabilityResult, coerce_items


def load_records(items) -> dict[tuple[str, str], StockRecord]:
    """Fetch every record touched by ``items`` in one query."""
    product_ids = {item.product_id for item in items}
    if not product_ids:
        return {}
    with storage_guard('load_records'):
        records = StockRecord.objects.for_products(product_ids)
        return {(r.product_id, r.size): r for r in records}


def requested_totals(items) -> dict[tuple[str, str], int]:
    """Sum requested quantities per (product_id, size)."""
    totals = defaultdict(int)
    for item in items:
        totals[item.key] += item.quantity
    return dict(totals)


class StockAvailability:
    """Read-only availability methods."""

    @classmethod
    def check_availability(cls, items) -> list[AvailabilityResult]:
        """
        Can these (product_id, size, quantity) lines be satisfied right now?

        A line with no stock record is reported as unavailable with zero
        stock: absence means "not stocked", not an error.

        Args:
            items: StockItem instances or (product_id, size, quantity) tuples

        Returns:
            One AvailabilityResult per input line, in input order
        """
        items = coerce_items(items)
        records = load_records(items)

        results = []
        for item in items:
            record = records.get(item.key)
            if record is None:
                results.append(AvailabilityResult(
                    product_id=item.product_id,
                    size=item.size,
                    requested=item.quantity,
                    quantity=0,
                    reserved_quantity=0,
                    available_quantity=0,
                    is_available=False,
                ))
                continue

            available = record.available_quantity
            results.append(AvailabilityResult(
                product_id=item.product_id,
                size=item.size,
                requested=item.quantity,
                quantity=record.quantity,
                reserved_quantity=record.reserved_quantity,
                available_quantity=available,
                is_available=available >= item.quantity,
            ))
        return results

    @classmethod
    def is_available(cls, product_id, size, quantity: int = 1) -> bool:
        """Single-line shortcut for check_availability."""
        return cls.check_availability([(product_id, size, quantity)])[0].is_available
