from django.apps import AppConfig


class WeekendOrdersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'weekend_orders'
    verbose_name = 'Weekend Orders & Production'

    def ready(self):
        from . import signals  # noqa
