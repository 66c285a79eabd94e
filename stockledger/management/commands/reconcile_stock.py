"""
Management command to check stock counters against the ledger.

Usage:
    python manage.py reconcile_stock
    python manage.py reconcile_stock --product P1 --size 10
    python manage.py reconcile_stock --fix
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger import ledger


class Command(BaseCommand):
    """Reconcile stock records with their inventory moves."""

    help = 'Compares stock counters with the inventory ledger'

    def add_arguments(self, parser):
        parser.add_argument('--product', help='Only this product id')
        parser.add_argument('--size', help='Only this size (requires --product)')
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Rewrite drifted counters from the ledger'
        )

    def handle(self, *args, **options):
        if options['size'] and not options['product']:
            raise CommandError('--size requires --product')

        reports = ledger.reconcile(
            product_id=options['product'],
            size=options['size'],
            fix=options['fix'],
        )
        drifted = [r for r in reports if not r.is_consistent or r.fixed]

        for report in drifted:
            label = 'fixed' if report.fixed else 'drift'
            self.stdout.write(self.style.WARNING(
                f'{label}: {report.product_id} [{report.size}] '
                f'quantity {report.quantity} (ledger {report.expected_quantity}), '
                f'reserved {report.reserved_quantity} (ledger {report.expected_reserved}, '
                f'active {report.active_reserved})'
            ))

        self.stdout.write(self.style.SUCCESS(
            f'{len(reports)} record(s) checked, {len(drifted)} with drift'
        ))
