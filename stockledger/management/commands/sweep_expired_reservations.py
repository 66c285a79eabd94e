"""
Management command to release expired reservations.

Usage:
    python manage.py sweep_expired_reservations
    python manage.py sweep_expired_reservations --dry-run
"""

from django.core.management.base import BaseCommand

from stockledger import ledger
from stockledger.models import Reservation


class Command(BaseCommand):
    """Release expired reservations command."""

    help = 'Releases reservations past their deadline'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many would be released without releasing them'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            expired = Reservation.objects.expired().count()
            self.stdout.write(f'{expired} reservation(s) would be released')
        else:
            result = ledger.sweep()
            self.stdout.write(
                self.style.SUCCESS(f'{result.released_count} reservation(s) released')
            )
