"""
StockRecord model — sellable quantity per product and size.
"""

from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StockRecordQuerySet(models.QuerySet):
    """QuerySet with availability helpers."""

    def with_available(self):
        """Annotate available = quantity - reserved_quantity."""
        return self.annotate(
            available=F('quantity') - F('reserved_quantity')
        )

    def for_products(self, product_ids):
        return self.filter(product_id__in=set(product_ids))


class StockRecordManager(models.Manager.from_queryset(StockRecordQuerySet)):
    """
    Atomic conditional updates on stock rows.

    Every try_* method is a single UPDATE guarded by the predicate it
    depends on, so concurrent callers are linearised by the database row
    lock and never act on a stale read. Each returns True when the row was
    changed. force_release is the locked exception for drifted rows.
    """

    def try_reserve(self, pk, quantity: int) -> bool:
        """reserved += quantity, only if quantity - reserved >= quantity."""
        return bool(
            self.filter(
                pk=pk,
                quantity__gte=F('reserved_quantity') + quantity,
            ).update(
                reserved_quantity=F('reserved_quantity') + quantity,
                updated_at=timezone.now(),
            )
        )

    def try_release(self, pk, quantity: int) -> bool:
        """reserved -= quantity, only if reserved >= quantity."""
        return bool(
            self.filter(
                pk=pk,
                reserved_quantity__gte=quantity,
            ).update(
                reserved_quantity=F('reserved_quantity') - quantity,
                updated_at=timezone.now(),
            )
        )

    def force_release(self, pk, quantity: int) -> int:
        """
        reserved -= quantity, floored at 0. Only for drifted rows.

        Locks the row; must run inside transaction.atomic(). Returns the
        number of units actually released.
        """
        reserved = self.select_for_update().values_list(
            'reserved_quantity', flat=True
        ).get(pk=pk)
        released = min(reserved, quantity)
        self.filter(pk=pk).update(
            reserved_quantity=F('reserved_quantity') - released,
            updated_at=timezone.now(),
        )
        return released

    def try_commit(self, pk, quantity: int) -> bool:
        """quantity -= n and reserved -= n, only if both stay >= 0."""
        return bool(
            self.filter(
                pk=pk,
                reserved_quantity__gte=quantity,
                quantity__gte=quantity,
            ).update(
                quantity=F('quantity') - quantity,
                reserved_quantity=F('reserved_quantity') - quantity,
                updated_at=timezone.now(),
            )
        )

    def try_adjust(self, pk, delta: int) -> bool:
        """quantity += delta, only if the result still covers reserved."""
        return bool(
            self.filter(
                pk=pk,
                quantity__gte=F('reserved_quantity') - delta,
            ).update(
                quantity=F('quantity') + delta,
                updated_at=timezone.now(),
            )
        )


class StockRecord(models.Model):
    """
    Stock of one product in one size.

    quantity: units owned and sellable in total
    reserved_quantity: units currently held by active reservations
    available_quantity: derived, never stored

    Rows are created lazily on first restock and never deleted.
    Counters only change through StockRecordManager conditional updates.
    """

    product_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('Product'),
    )
    size = models.CharField(
        max_length=32,
        verbose_name=_('Size'),
    )
    quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Quantity'),
    )
    reserved_quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reserved'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockRecordManager()

    class Meta:
        verbose_name = _('Stock record')
        verbose_name_plural = _('Stock records')
        ordering = ['product_id', 'size']
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'size'],
                name='unique_stock_product_size',
            ),
            models.CheckConstraint(
                condition=Q(reserved_quantity__lte=F('quantity')),
                name='stock_reserved_lte_quantity',
            ),
        ]

    @property
    def available_quantity(self) -> int:
        return self.quantity - self.reserved_quantity

    def __str__(self) -> str:
        return (
            f"{self.product_id} [{self.size}]: "
            f"{self.quantity} ({self.reserved_quantity} reserved)"
        )
