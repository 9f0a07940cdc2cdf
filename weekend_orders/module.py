"""
Weekend Orders Module Configuration

Weekend-only burrito production: per-day capacity and order lifecycle.
"""
from datetime import time

from django.utils.translation import gettext_lazy as _

MODULE_ID = "weekend_orders"
MODULE_NAME = _("Weekend Orders")
MODULE_ICON = "calendar-outline"
MODULE_VERSION = "1.0.0"
MODULE_CATEGORY = "pos"

MODULE_INDUSTRIES = ["restaurant", "fast_food", "catering"]

# Defaults; override per project with settings.WEEKEND_ORDERS
SETTINGS = {
    "default_max_burritos": 100,
    "default_cutoff_time": time(22, 0),
    "default_pickup_start_time": time(11, 0),
    "default_pickup_end_time": time(16, 0),
    "schedule_weeks_ahead": 4,
    "order_number_prefix": "HLB",
    "order_number_attempts": 5,
    "confirmed_ready_minutes": 45,
    "preparation_ready_minutes": 20,
    "pickup_location": "Havasu Lake Burritos - 123 Lake Drive, Lake Havasu City, AZ",
    "pickup_phone": "+1 (928) 555-0123",
    "pickup_hours": "Saturday & Sunday: 11:00 AM - 4:00 PM",
}
