"""
Initial migration for Weekend Orders module.
"""

import datetime
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ProductionSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('production_date', models.DateField(unique=True, verbose_name='Production Date')),
                ('day_of_week', models.CharField(choices=[('saturday', 'Saturday'), ('sunday', 'Sunday')], max_length=10, verbose_name='Day of Week')),
                ('max_burritos', models.PositiveIntegerField(default=100, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(500)], verbose_name='Max Burritos')),
                ('burritos_ordered', models.PositiveIntegerField(default=0, verbose_name='Burritos Ordered')),
                ('order_cutoff_time', models.TimeField(default=datetime.time(22, 0), verbose_name='Order Cutoff Time')),
                ('pickup_start_time', models.TimeField(default=datetime.time(11, 0), verbose_name='Pickup Start')),
                ('pickup_end_time', models.TimeField(default=datetime.time(16, 0), verbose_name='Pickup End')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('special_notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Production Schedule',
                'verbose_name_plural': 'Production Schedules',
                'db_table': 'weekend_orders_production_schedule',
                'ordering': ['production_date'],
                'indexes': [
                    models.Index(fields=['production_date', 'is_active'], name='wo_schedule_date_active_idx'),
                    models.Index(fields=['is_active'], name='wo_schedule_active_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('max_burritos__gte', 1), ('max_burritos__lte', 500)), name='production_schedule_max_burritos_range'),
                    models.CheckConstraint(condition=models.Q(('burritos_ordered__lte', models.F('max_burritos'))), name='production_schedule_ordered_within_max'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=20, unique=True, verbose_name='Order Number')),
                ('customer_name', models.CharField(max_length=100, verbose_name='Customer Name')),
                ('customer_phone', models.CharField(max_length=20, verbose_name='Customer Phone')),
                ('customer_email', models.EmailField(blank=True, max_length=100, null=True, verbose_name='Customer Email')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('in_preparation', 'In Preparation'), ('ready', 'Ready for Pickup'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='Status')),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('tax_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('pickup_time', models.DateTimeField(blank=True, null=True, verbose_name='Pickup Time')),
                ('confirmed_at', models.DateTimeField(blank=True, null=True, verbose_name='Confirmed At')),
                ('prepared_at', models.DateTimeField(blank=True, null=True, verbose_name='Preparation Started')),
                ('ready_at', models.DateTimeField(blank=True, null=True, verbose_name='Ready At')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed At')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled At')),
                ('special_instructions', models.TextField(blank=True, default='')),
                ('admin_notes', models.TextField(blank=True, default='')),
                ('kitchen_printed', models.BooleanField(default=False)),
                ('kitchen_printed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('production_schedule', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='weekend_orders.productionschedule', verbose_name='Production Schedule')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='burrito_orders', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'db_table': 'weekend_orders_order',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['production_schedule', 'status'], name='wo_order_schedule_status_idx'),
                    models.Index(fields=['customer_phone', 'created_at'], name='wo_order_phone_created_idx'),
                    models.Index(fields=['status', 'created_at'], name='wo_order_status_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Burrito',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('ingredient_selections', models.JSONField(blank=True, default=dict)),
                ('total_calories', models.DecimalField(blank=True, decimal_places=1, max_digits=6, null=True)),
                ('total_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('special_instructions', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='burritos', to='weekend_orders.order', verbose_name='Order')),
            ],
            options={
                'verbose_name': 'Burrito',
                'verbose_name_plural': 'Burritos',
                'db_table': 'weekend_orders_burrito',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['order', 'created_at'], name='wo_burrito_order_created_idx'),
                ],
            },
        ),
    ]
