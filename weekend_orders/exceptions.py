"""
Weekend Orders exceptions.

Input problems are reported with django.core.exceptions.ValidationError;
the classes here cover lifecycle and capacity conditions.
"""


class InvalidStatusTransition(Exception):
    """The requested status is not reachable from the current one."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


class CapacityExhausted(Exception):
    """A schedule refused to reserve capacity for an order."""

    def __init__(self, schedule, requested, available):
        self.schedule = schedule
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough capacity on {schedule.production_date}: "
            f"requested {requested}, available {available}"
        )


class OrderingClosed(Exception):
    """A schedule is not accepting new orders."""

    def __init__(self, schedule, reason):
        self.schedule = schedule
        self.reason = reason
        super().__init__(reason)
