"""
Schedule Service

Creates production days and answers availability questions.
"""

import logging
from typing import List, Optional, Dict, Any

from django.db import transaction

from ..clock import get_clock
from ..conf import get_setting
from ..models import ProductionSchedule
from ..utils import as_date
from .. import signals

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service for managing production schedules."""

    @staticmethod
    @transaction.atomic
    def create_upcoming_schedules(
        weeks: int = None,
        clock=None,
        max_burritos: int = None,
        cutoff_time=None
    ) -> List[ProductionSchedule]:
        """
        Persist schedules for the next ``weeks`` weekends.

        Dates that already have a schedule are left alone, so running this
        repeatedly only fills gaps.

        Returns:
            The newly created schedules
        """
        if weeks is None:
            weeks = get_setting('schedule_weeks_ahead')

        candidates = ProductionSchedule.generate_weekly_schedules(
            weeks, clock=clock, max_burritos=max_burritos, order_cutoff_time=cutoff_time,
        )
        existing = set(
            ProductionSchedule.objects.filter(
                production_date__in=[schedule.production_date for schedule in candidates]
            ).values_list('production_date', flat=True)
        )

        created = []
        for schedule in candidates:
            if schedule.production_date in existing:
                continue
            schedule.save()
            created.append(schedule)

        logger.info(
            "Generated %s production schedules (%s already existed)",
            len(created), len(candidates) - len(created),
        )
        if created:
            signals.schedules_generated.send(sender=ProductionSchedule, schedules=created)
        return created

    @staticmethod
    def get_available_schedules(clock=None) -> List[ProductionSchedule]:
        """Upcoming days that can take a new order right now."""
        clock = get_clock(clock)
        return [
            schedule
            for schedule in ProductionSchedule.objects.accepting_orders(clock)
            if schedule.can_accept_new_orders(clock)
        ]

    @staticmethod
    def get_schedule_for_date(day) -> Optional[ProductionSchedule]:
        return ProductionSchedule.objects.for_date(as_date(day)).first()

    @staticmethod
    def audit_capacity(schedule: ProductionSchedule) -> Dict[str, Any]:
        """
        Compare the reserved counter with the burritos on capacity-holding orders.

        The counter is maintained eagerly by order transitions; a non-zero
        drift means something changed orders or the counter outside them.
        """
        schedule.refresh_from_db(fields=['burritos_ordered'])
        from_orders = schedule.reserved_burritos_from_orders()
        drift = schedule.burritos_ordered - from_orders
        if drift:
            logger.warning(
                "Capacity drift on %s: counter %s, orders %s",
                schedule.production_date, schedule.burritos_ordered, from_orders,
            )
        return {
            'production_date': schedule.production_date.isoformat(),
            'burritos_ordered': schedule.burritos_ordered,
            'reserved_by_orders': from_orders,
            'drift': drift,
            'is_consistent': drift == 0,
        }
