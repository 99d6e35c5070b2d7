# Initial schema for the seller balance ledger, payouts and payment events

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('marketplace', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='OrderPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('payment', 'Payment'), ('refund', 'Refund')], default='payment', max_length=10)),
                ('reference', models.CharField(max_length=255, unique=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('platform_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('currency', models.CharField(max_length=3)),
                ('allocations', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='payments', to='marketplace.order')),
            ],
            options={
                'db_table': 'payment_order_payments',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='SellerPayout',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('currency', models.CharField(max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed'), ('canceled', 'Canceled')], default='pending', max_length=20)),
                ('transfer_reference', models.CharField(blank=True, help_text='Bank or processor transfer ID', max_length=255)),
                ('failure_reason', models.TextField(blank=True)),
                ('requested_at', models.DateTimeField(auto_now_add=True)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='requested_payouts', to=settings.AUTH_USER_MODEL)),
                ('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payouts', to='marketplace.store')),
            ],
            options={
                'db_table': 'payment_seller_payouts',
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['store', '-requested_at'], name='pay_payout_store_idx'),
                    models.Index(fields=['status', '-requested_at'], name='pay_payout_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SellerBalance',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('available_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('pending_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('currency', models.CharField(max_length=3)),
                ('last_payout_at', models.DateTimeField(blank=True, null=True)),
                ('last_payout_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('store', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='seller_balance', to='marketplace.store')),
            ],
            options={
                'db_table': 'payment_seller_balances',
            },
        ),
        migrations.CreateModel(
            name='SellerBalanceTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(choices=[('order_payment', 'Order Payment'), ('platform_fee', 'Platform Fee'), ('stripe_fee', 'Payment Processing Fee'), ('shipping_label', 'Shipping Label'), ('refund', 'Refund'), ('dispute', 'Dispute'), ('payout', 'Payout'), ('adjustment', 'Adjustment')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('currency', models.CharField(max_length=3)),
                ('balance_before', models.DecimalField(decimal_places=2, max_digits=14)),
                ('balance_after', models.DecimalField(decimal_places=2, max_digits=14)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('available', 'Available'), ('paid', 'Paid')], max_length=20)),
                ('available_at', models.DateTimeField(blank=True, null=True)),
                ('released_at', models.DateTimeField(blank=True, null=True)),
                ('reference_type', models.CharField(blank=True, max_length=50)),
                ('reference_id', models.CharField(blank=True, max_length=255)),
                ('description', models.TextField(blank=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('order', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='balance_transactions', to='marketplace.order')),
                ('payout', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='balance_transactions', to='payment_system.sellerpayout')),
                ('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='balance_transactions', to='marketplace.store')),
            ],
            options={
                'db_table': 'payment_seller_balance_transactions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['store', '-created_at'], name='pay_balance_tx_store_idx'),
                    models.Index(fields=['status', 'available_at'], name='pay_balance_tx_release_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='pay_balance_tx_reference_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SellerPayoutSettings',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('hold_period_days', models.PositiveIntegerField(blank=True, help_text='Days an order payment stays pending. Empty uses the platform default.', null=True)),
                ('minimum_amount', models.DecimalField(blank=True, decimal_places=2, help_text='Minimum payout amount. Empty uses the platform default.', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('store', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='payout_settings', to='marketplace.store')),
            ],
            options={
                'db_table': 'payment_seller_payout_settings',
            },
        ),
    ]
