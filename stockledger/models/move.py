"""
InventoryMove model — Immutable ledger of quantity changes.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import MoveType, ReferenceType


class InventoryMoveManager(models.Manager):

    def record(self, stock, move_type, delta, reason, reference_id='',
               reference_type='', requester=''):
        """Append one entry for ``stock``. Call after the change it documents."""
        return self.create(
            stock=stock,
            product_id=stock.product_id,
            size=stock.size,
            move_type=move_type,
            quantity_delta=delta,
            reference_id=str(reference_id or ''),
            reference_type=reference_type or '',
            reason=reason,
            requester=str(requester or ''),
        )


class InventoryMove(models.Model):
    """
    Immutable record of a quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new moves with inverse delta
    - Written in the same transaction as, and after, the stock update it describes

    Sign conventions: reserve -q, release +q, commit -q, restock +q,
    adjustment +/-q.
    """

    stock = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.PROTECT,
        related_name='moves',
        verbose_name=_('Stock'),
    )
    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    size = models.CharField(max_length=32, verbose_name=_('Size'))

    move_type = models.CharField(
        max_length=20,
        choices=MoveType.choices,
        verbose_name=_('Type'),
    )
    quantity_delta = models.IntegerField(
        verbose_name=_('Delta'),
        help_text=_('Signed change in units'),
    )

    reference_id = models.CharField(max_length=128, blank=True, default='')
    reference_type = models.CharField(
        max_length=20,
        choices=ReferenceType.choices,
        blank=True,
        default='',
    )
    reason = models.CharField(max_length=255, verbose_name=_('Reason'))
    requester = models.CharField(max_length=140, blank=True, default='')

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    objects = InventoryMoveManager()

    class Meta:
        verbose_name = _('Inventory move')
        verbose_name_plural = _('Inventory moves')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['stock', 'created_at'], name='stockledger_move_stock_idx'),
            models.Index(fields=['product_id', 'size'], name='stockledger_move_product_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Inventory moves are immutable. "
                "To correct one, record a new move with the inverse delta."
            )
        if not self.reason:
            raise ValueError("Reason is required")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(
            "Inventory moves are immutable. "
            "To reverse one, record a new move with the inverse delta."
        )

    def __str__(self) -> str:
        signal = '+' if self.quantity_delta > 0 else ''
        return f"{self.move_type} {signal}{self.quantity_delta} | {self.reason}"
