"""
Stockledger Admin — read-only views for production debugging.

- StockRecord: quantity, reserved, available
- Reservation: read-only with "release" action
- InventoryMove: read-only audit trail

Stock only changes through the ledger service, never through admin forms.
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stockledger.exceptions import StockLedgerError
from stockledger.models import InventoryMove, Reservation, ReservationStatus, StockRecord

logger = logging.getLogger(__name__)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Base admin without add/change/delete."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# STOCK RECORD ADMIN
# =========================================================================

@admin.register(StockRecord)
class StockRecordAdmin(ReadOnlyAdmin):
    """StockRecord admin — read-only."""

    list_display = ['product_id', 'size', 'quantity', 'reserved_quantity',
                    'available_display', 'updated_at']
    search_fields = ['product_id']
    readonly_fields = ['product_id', 'size', 'quantity', 'reserved_quantity',
                       'created_at', 'updated_at']
    ordering = ['product_id', 'size']

    @admin.display(description=_('Available'))
    def available_display(self, obj):
        return obj.available_quantity


# =========================================================================
# RESERVATION ADMIN (read-only with release action)
# =========================================================================

@admin.register(Reservation)
class ReservationAdmin(ReadOnlyAdmin):
    """Reservation admin — read-only with release action."""

    list_display = ['id', 'product_id', 'size', 'quantity', 'requester_display',
                    'status', 'expires_at', 'order_id']
    list_filter = ['status']
    search_fields = ['product_id', 'session_id', 'user_id', 'order_id']
    readonly_fields = ['stock', 'product_id', 'size', 'quantity', 'session_id',
                       'user_id', 'order_id', 'status', 'reason', 'expires_at',
                       'created_at', 'resolved_at']
    date_hierarchy = 'created_at'
    actions = ['release_reservations']

    @admin.display(description=_('Requester'))
    def requester_display(self, obj):
        return obj.requester

    @admin.action(description=_('Release selected reservations'))
    def release_reservations(self, request, queryset):
        from stockledger import ledger

        ids = list(
            queryset.filter(status=ReservationStatus.ACTIVE).values_list('pk', flat=True)
        )
        try:
            result = ledger.release_reservations(ids, reason='Released via admin')
        except StockLedgerError as exc:
            logger.warning("release_reservations: admin release failed: %s", exc)
            self.message_user(request, str(exc), level='error')
            return

        self.message_user(
            request,
            _('{count} reservation(s) released.').format(count=result.released_count),
        )


# =========================================================================
# INVENTORY MOVE ADMIN (read-only audit trail)
# =========================================================================

@admin.register(InventoryMove)
class InventoryMoveAdmin(ReadOnlyAdmin):
    """InventoryMove admin — read-only. Immutable audit trail."""

    list_display = ['created_at', 'product_id', 'size', 'move_type',
                    'quantity_delta', 'reason', 'reference_id', 'requester']
    list_filter = ['move_type', 'reference_type']
    search_fields = ['product_id', 'reference_id', 'requester']
    readonly_fields = ['stock', 'product_id', 'size', 'move_type', 'quantity_delta',
                       'reference_id', 'reference_type', 'reason', 'requester',
                       'created_at']
    date_hierarchy = 'created_at'
