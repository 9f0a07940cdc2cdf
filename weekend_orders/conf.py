"""Settings lookup: project overrides in settings.WEEKEND_ORDERS, then module defaults."""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .module import SETTINGS


def get_setting(name):
    if name not in SETTINGS:
        raise ImproperlyConfigured(f"Unknown weekend_orders setting: {name}")
    overrides = getattr(settings, 'WEEKEND_ORDERS', None) or {}
    return overrides.get(name, SETTINGS[name])
