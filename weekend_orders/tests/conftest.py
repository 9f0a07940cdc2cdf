"""
Pytest fixtures for Weekend Orders module tests.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from django.contrib.auth import get_user_model

from weekend_orders import signals
from weekend_orders.clock import FixedClock
from weekend_orders.models import (
    Burrito,
    Order,
    ProductionDay,
    ProductionSchedule,
)

# Week used throughout: Monday 2025-01-13 .. Sunday 2025-01-19
MONDAY = date(2025, 1, 13)
TUESDAY = date(2025, 1, 14)
SATURDAY = date(2025, 1, 18)
SUNDAY = date(2025, 1, 19)


@pytest.fixture
def clock():
    """Clock frozen on Monday morning before the weekend."""
    return FixedClock(datetime(2025, 1, 13, 10, 0))


@pytest.fixture
def user(db):
    """Create a test user."""
    return get_user_model().objects.create_user(
        username='jdoe',
        password='secret',
        first_name='John',
        last_name='Doe',
        email='john@example.com',
    )


@pytest.fixture
def schedule(db):
    """Saturday production day with the default capacity."""
    return ProductionSchedule.objects.create(
        production_date=SATURDAY,
        day_of_week=ProductionDay.SATURDAY,
        max_burritos=100,
    )


@pytest.fixture
def small_schedule(db):
    """Sunday production day with 10 slots, half taken."""
    return ProductionSchedule.objects.create(
        production_date=SUNDAY,
        day_of_week=ProductionDay.SUNDAY,
        max_burritos=10,
        burritos_ordered=5,
    )


@pytest.fixture
def guest_data(schedule):
    return {
        'customer_name': 'Jane Guest',
        'customer_phone': '(555) 987-6543',
        'customer_email': 'jane@example.com',
        'production_schedule_id': schedule.pk,
    }


@pytest.fixture
def add_burritos():
    """Add ``count`` burrito lines at $12.00 each to an order."""
    def _add(order, count, cost=Decimal('12.00')):
        for _ in range(count):
            Burrito.objects.create(
                order=order,
                ingredient_selections={'proteins': ['carnitas'], 'salsas': ['verde']},
                total_cost=cost,
            )
        return order
    return _add


@pytest.fixture
def pending_order(guest_data, clock, add_burritos):
    """Guest order with three burritos, not yet confirmed."""
    order = Order.create_guest_order(guest_data, clock=clock)
    return add_burritos(order, 3)


@pytest.fixture
def confirmed_order(pending_order, clock):
    pending_order.transition_to('confirmed', clock=clock)
    return pending_order


@pytest.fixture
def captured_signals():
    """Record every weekend_orders signal sent during the test."""
    captured = []
    receivers = []
    for name in (
        'order_created', 'order_status_changed', 'order_confirmed',
        'order_cancelled', 'capacity_exhausted', 'schedules_generated',
    ):
        signal = getattr(signals, name)

        def receiver(sender, _name=name, **kwargs):
            captured.append((_name, kwargs))

        signal.connect(receiver, weak=False)
        receivers.append((signal, receiver))

    yield captured

    for signal, receiver in receivers:
        signal.disconnect(receiver)
