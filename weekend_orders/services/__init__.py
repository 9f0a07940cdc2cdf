from .order_service import OrderService
from .schedule_service import ScheduleService

__all__ = ['OrderService', 'ScheduleService']
