"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ReservationStatus(models.TextChoices):
    """Reservation lifecycle status. COMMITTED and RELEASED are terminal."""
    ACTIVE = 'active', _('Active')
    COMMITTED = 'committed', _('Committed')  # Converted into a sale
    RELEASED = 'released', _('Released')     # Cancelled, abandoned or expired


class MoveType(models.TextChoices):
    """
    Kind of ledger entry.

    RESERVE/RELEASE move units in and out of reserved_quantity.
    COMMIT, RESTOCK and ADJUSTMENT change quantity.
    """
    RESERVE = 'reserve', _('Reserve')
    COMMIT = 'commit', _('Commit')
    RELEASE = 'release', _('Release')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    RESTOCK = 'restock', _('Restock')


class ReferenceType(models.TextChoices):
    """What a move's reference_id points to."""
    RESERVATION = 'reservation', _('Reservation')
    ORDER = 'order', _('Order')
    MANUAL = 'manual', _('Manual')
    RESTOCK = 'restock', _('Restock')
