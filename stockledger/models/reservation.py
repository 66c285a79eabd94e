"""
Reservation model — time-bounded hold on stock.
"""

import uuid

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import ReservationStatus


class ReservationQuerySet(models.QuerySet):

    def active(self):
        """ACTIVE and not past its deadline."""
        return self.filter(
            status=ReservationStatus.ACTIVE,
            expires_at__gt=timezone.now(),
        )

    def expired(self):
        """ACTIVE but past its deadline (not yet swept)."""
        return self.filter(
            status=ReservationStatus.ACTIVE,
            expires_at__lt=timezone.now(),
        )

    def for_requester(self, requester):
        if requester.user_id:
            return self.filter(user_id=requester.user_id)
        return self.filter(session_id=requester.session_id)

    def claim(self, pk, status, unexpired_only=False, **fields) -> bool:
        """
        Move one ACTIVE reservation to a terminal status.

        Returns False if another caller already did it (or, with
        ``unexpired_only``, if its deadline has passed). Claiming is what
        makes commit and release safe to race against each other.
        """
        now = timezone.now()
        qs = self.filter(pk=pk, status=ReservationStatus.ACTIVE)
        if unexpired_only:
            qs = qs.filter(expires_at__gt=now)
        return bool(qs.update(status=status, resolved_at=now, **fields))


class Reservation(models.Model):
    """
    Hold of ``quantity`` units of one stock record for a requester.

    LIFECYCLE:

        ┌────────┐  commit   ┌───────────┐
        │ ACTIVE │ ────────► │ COMMITTED │
        └────────┘           └───────────┘
            │
            │ release / sweep
            ▼
        ┌──────────┐
        │ RELEASED │
        └──────────┘

    An ACTIVE reservation past expires_at still occupies reserved_quantity
    until released, but can never be committed.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    stock = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Stock'),
    )
    product_id = models.CharField(max_length=64, verbose_name=_('Product'))
    size = models.CharField(max_length=32, verbose_name=_('Size'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantity'))

    # Requester: exactly one of session_id / user_id
    session_id = models.CharField(max_length=128, blank=True, default='', db_index=True)
    user_id = models.CharField(max_length=128, blank=True, default='', db_index=True)
    order_id = models.CharField(max_length=128, blank=True, default='')

    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    reason = models.CharField(max_length=255, blank=True, default='')

    expires_at = models.DateTimeField(db_index=True, verbose_name=_('Expires at'))
    created_at = models.DateTimeField(default=timezone.now)
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Resolved at'),
        help_text=_('When the reservation was committed or released'),
    )

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        constraints = [
            models.CheckConstraint(
                condition=(
                    (Q(session_id='') & ~Q(user_id=''))
                    | (~Q(session_id='') & Q(user_id=''))
                ),
                name='reservation_single_requester',
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='reservation_quantity_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='stockledger_res_status_exp_idx'),
        ]

    @property
    def requester(self) -> str:
        if self.user_id:
            return f"user:{self.user_id}"
        return f"session:{self.session_id}"

    @property
    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE and not self.is_expired

    def __str__(self) -> str:
        return f"{self.quantity}x {self.product_id} [{self.size}] ({self.status})"
