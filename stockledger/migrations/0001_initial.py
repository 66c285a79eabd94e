"""
Initial migration for Stockledger models.
"""

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Stockledger models: StockRecord, Reservation, InventoryMove."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='Product')),
                ('size', models.CharField(max_length=32, verbose_name='Size')),
                ('quantity', models.PositiveIntegerField(default=0, verbose_name='Quantity')),
                ('reserved_quantity', models.PositiveIntegerField(default=0, verbose_name='Reserved')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stock record',
                'verbose_name_plural': 'Stock records',
                'ordering': ['product_id', 'size'],
                'constraints': [
                    models.UniqueConstraint(fields=('product_id', 'size'), name='unique_stock_product_size'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity__lte', models.F('quantity'))), name='stock_reserved_lte_quantity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_id', models.CharField(max_length=64, verbose_name='Product')),
                ('size', models.CharField(max_length=32, verbose_name='Size')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('session_id', models.CharField(blank=True, db_index=True, default='', max_length=128)),
                ('user_id', models.CharField(blank=True, db_index=True, default='', max_length=128)),
                ('order_id', models.CharField(blank=True, default='', max_length=128)),
                ('status', models.CharField(choices=[('active', 'Active'), ('committed', 'Committed'), ('released', 'Released')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('reason', models.CharField(blank=True, default='', max_length=255)),
                ('expires_at', models.DateTimeField(db_index=True, verbose_name='Expires at')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('resolved_at', models.DateTimeField(blank=True, help_text='When the reservation was committed or released', null=True, verbose_name='Resolved at')),
                ('stock', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='stockledger.stockrecord', verbose_name='Stock')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='stockledger_res_status_exp_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('session_id', ''), models.Q(('user_id', ''), _negated=True)), models.Q(models.Q(('session_id', ''), _negated=True), ('user_id', '')), _connector='OR'), name='reservation_single_requester'),
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='reservation_quantity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InventoryMove',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64, verbose_name='Product')),
                ('size', models.CharField(max_length=32, verbose_name='Size')),
                ('move_type', models.CharField(choices=[('reserve', 'Reserve'), ('commit', 'Commit'), ('release', 'Release'), ('adjustment', 'Adjustment'), ('restock', 'Restock')], max_length=20, verbose_name='Type')),
                ('quantity_delta', models.IntegerField(help_text='Signed change in units', verbose_name='Delta')),
                ('reference_id', models.CharField(blank=True, default='', max_length=128)),
                ('reference_type', models.CharField(blank=True, choices=[('reservation', 'Reservation'), ('order', 'Order'), ('manual', 'Manual'), ('restock', 'Restock')], default='', max_length=20)),
                ('reason', models.CharField(max_length=255, verbose_name='Reason')),
                ('requester', models.CharField(blank=True, default='', max_length=140)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('stock', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='stockledger.stockrecord', verbose_name='Stock')),
            ],
            options={
                'verbose_name': 'Inventory move',
                'verbose_name_plural': 'Inventory moves',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['stock', 'created_at'], name='stockledger_move_stock_idx'),
                    models.Index(fields=['product_id', 'size'], name='stockledger_move_product_idx'),
                ],
            },
        ),
    ]
