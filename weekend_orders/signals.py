"""
Weekend Orders Signals

Lets notification, kitchen and reporting code follow the order lifecycle.
"""

import logging
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Signals this module emits
order_created = Signal()  # Provides: order
order_status_changed = Signal()  # Provides: order, previous_status, status
order_confirmed = Signal()  # Provides: order
order_cancelled = Signal()  # Provides: order, reason
capacity_exhausted = Signal()  # Provides: schedule, order, requested
schedules_generated = Signal()  # Provides: schedules
