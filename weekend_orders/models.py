"""
Weekend Orders Models

Weekend-only burrito production and customer orders.
Features:
- Production schedules: one per Saturday/Sunday with a capacity ledger
- Atomic capacity reservation and release
- Ordering cutoff per production day
- Order lifecycle state machine with capacity side effects
- Guest and authenticated ordering
- Financial tracking (subtotal, tax, total)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import IntegrityError, models, transaction
from django.db.models import Case, F, Q, Value, When
from django.db.models.lookups import LessThanOrEqual
from django.utils import timezone
from django.utils.dateparse import parse_time
from django.utils.translation import gettext_lazy as _

from .clock import get_clock
from .conf import get_setting
from .exceptions import CapacityExhausted, InvalidStatusTransition
from .utils import (
    SATURDAY_WEEKDAY,
    SUNDAY_WEEKDAY,
    as_date,
    format_currency,
    from_cents,
    generate_order_suffix,
    is_valid_phone_number,
    is_weekend,
    next_weekday,
    normalize_phone_number,
    to_cents,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Choices
# =============================================================================

class ProductionDay(models.TextChoices):
    SATURDAY = 'saturday', _('Saturday')
    SUNDAY = 'sunday', _('Sunday')

    @property
    def weekday(self):
        return SATURDAY_WEEKDAY if self == ProductionDay.SATURDAY else SUNDAY_WEEKDAY

    def matches_date(self, day):
        return as_date(day).weekday() == self.weekday

    def next_occurrence(self, start):
        return next_weekday(start, self.weekday)

    @classmethod
    def for_date(cls, day):
        """Production day for a date, or None on weekdays."""
        weekday = as_date(day).weekday()
        for member in cls:
            if member.weekday == weekday:
                return member
        return None


class OrderStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    CONFIRMED = 'confirmed', _('Confirmed')
    IN_PREPARATION = 'in_preparation', _('In Preparation')
    READY = 'ready', _('Ready for Pickup')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')

    def can_transition_to(self, target):
        return OrderStatus(target) in ORDER_STATUS_TRANSITIONS[self]

    @property
    def is_terminal(self):
        return not ORDER_STATUS_TRANSITIONS[self]


ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_PREPARATION, OrderStatus.CANCELLED}),
    OrderStatus.IN_PREPARATION: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Statuses whose burritos count against the schedule's burritos_ordered
CAPACITY_HOLDING_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
})

STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.CONFIRMED: 'confirmed_at',
    OrderStatus.IN_PREPARATION: 'prepared_at',
    OrderStatus.READY: 'ready_at',
    OrderStatus.COMPLETED: 'completed_at',
    OrderStatus.CANCELLED: 'cancelled_at',
}


def _as_time(value):
    if isinstance(value, str):
        return parse_time(value)
    return value


# =============================================================================
# Production Schedules
# =============================================================================

class ProductionScheduleQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def for_date(self, day):
        return self.filter(production_date=as_date(day))

    def upcoming(self, clock=None):
        return self.filter(production_date__gte=get_clock(clock).today())

    def accepting_orders(self, clock=None):
        return self.active().upcoming(clock).filter(burritos_ordered__lt=F('max_burritos'))


class ProductionSchedule(models.Model):
    """
    One weekend production day and its capacity ledger.

    ``burritos_ordered`` is the number of burrito slots held by confirmed
    orders. It only moves through reserve_capacity / release_capacity,
    which update the row in a single statement so concurrent orders
    cannot oversell the day.
    """

    DEFAULT_MAX_CAPACITY = 100
    MAX_CAPACITY_LIMIT = 500
    DEFAULT_CUTOFF_TIME = time(22, 0)

    NEAR_CAPACITY_PERCENTAGE = 70.0
    CUTOFF_REASON = _('Orders have closed for this production day (past cutoff time)')

    production_date = models.DateField(unique=True, verbose_name=_('Production Date'))
    day_of_week = models.CharField(
        max_length=10, choices=ProductionDay.choices,
        verbose_name=_('Day of Week'),
    )

    # Capacity
    max_burritos = models.PositiveIntegerField(
        default=DEFAULT_MAX_CAPACITY,
        validators=[MinValueValidator(1), MaxValueValidator(MAX_CAPACITY_LIMIT)],
        verbose_name=_('Max Burritos'),
    )
    burritos_ordered = models.PositiveIntegerField(default=0, verbose_name=_('Burritos Ordered'))

    # Timing
    order_cutoff_time = models.TimeField(default=DEFAULT_CUTOFF_TIME, verbose_name=_('Order Cutoff Time'))
    pickup_start_time = models.TimeField(default=time(11, 0), verbose_name=_('Pickup Start'))
    pickup_end_time = models.TimeField(default=time(16, 0), verbose_name=_('Pickup End'))

    is_active = models.BooleanField(default=True, verbose_name=_('Active'))
    special_notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductionScheduleQuerySet.as_manager()

    class Meta:
        db_table = 'weekend_orders_production_schedule'
        verbose_name = _('Production Schedule')
        verbose_name_plural = _('Production Schedules')
        ordering = ['production_date']
        indexes = [
            models.Index(fields=['production_date', 'is_active'], name='wo_schedule_date_active_idx'),
            models.Index(fields=['is_active'], name='wo_schedule_active_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_burritos__gte=1) & Q(max_burritos__lte=500),
                name='production_schedule_max_burritos_range',
            ),
            models.CheckConstraint(
                condition=Q(burritos_ordered__lte=F('max_burritos')),
                name='production_schedule_ordered_within_max',
            ),
        ]

    def __str__(self):
        return f"{self.get_day_of_week_display()} {self.production_date}"

    # ---- Validation ----

    @staticmethod
    def is_valid_production_date(day):
        """Burritos are only made on weekends."""
        return day is not None and is_weekend(day)

    def clean(self):
        self.production_date = as_date(self.production_date)
        self.order_cutoff_time = _as_time(self.order_cutoff_time)
        self.pickup_start_time = _as_time(self.pickup_start_time)
        self.pickup_end_time = _as_time(self.pickup_end_time)

        if not self.is_valid_production_date(self.production_date):
            raise ValidationError(
                {'production_date': _('Production can only be scheduled for weekends')},
                code='not_weekend',
            )

        if self.day_of_week not in ProductionDay.values or \
                not ProductionDay(self.day_of_week).matches_date(self.production_date):
            raise ValidationError(
                {'day_of_week': _('Production day %(day)s does not match date %(weekday)s') % {
                    'day': self.day_of_week,
                    'weekday': self.production_date.strftime('%A'),
                }},
                code='day_mismatch',
            )

        if self.max_burritos is None or not 1 <= self.max_burritos <= self.MAX_CAPACITY_LIMIT:
            raise ValidationError(
                {'max_burritos': _('Max burritos must be between 1 and 500')},
                code='capacity_range',
            )

        if self.burritos_ordered is None or not 0 <= self.burritos_ordered <= self.max_burritos:
            raise ValidationError(
                {'burritos_ordered': _('Ordered burritos cannot exceed max capacity')},
                code='over_capacity',
            )

    def save(self, *args, **kwargs):
        """
        Validate and write the schedule.

        ``burritos_ordered`` is only written on insert. Updates lock the
        row, validate against the stored counter and leave it untouched,
        so an edit made from a stale copy cannot undo reservations.
        """
        if self._state.adding:
            self.clean()
            super().save(*args, **kwargs)
            return

        with transaction.atomic():
            self.burritos_ordered = ProductionSchedule.objects.select_for_update().values_list(
                'burritos_ordered', flat=True,
            ).get(pk=self.pk)
            self.clean()

            update_fields = kwargs.pop('update_fields', None)
            if update_fields is None:
                update_fields = [
                    field.name for field in self._meta.concrete_fields if not field.primary_key
                ]
            kwargs['update_fields'] = [name for name in update_fields if name != 'burritos_ordered']
            super().save(*args, **kwargs)

    # ---- Capacity ----

    def get_available_capacity(self):
        return max(0, self.max_burritos - self.burritos_ordered)

    def can_accept_order(self, quantity):
        """Pure capacity check; ignores cutoff and active status."""
        return self.get_available_capacity() >= quantity

    def reserve_capacity(self, quantity):
        """
        Reserve ``quantity`` burrito slots.

        The check and the increment run as one conditional UPDATE, so two
        concurrent reservations on the same day serialize on the row and
        the second only succeeds if capacity is still there. Returns False
        without changing anything when there is not enough room. Does not
        look at cutoff or active status; callers check
        can_accept_new_orders() first.
        """
        if quantity < 0:
            raise ValueError('Quantity must not be negative')
        if self.pk is None:
            raise ValueError('Cannot reserve capacity on an unsaved production schedule')

        reserved = ProductionSchedule.objects.filter(
            LessThanOrEqual(F('burritos_ordered') + quantity, F('max_burritos')),
            pk=self.pk,
        ).update(
            burritos_ordered=F('burritos_ordered') + quantity,
            updated_at=timezone.now(),
        )
        self.refresh_from_db(fields=['burritos_ordered', 'max_burritos', 'updated_at'])

        if not reserved:
            logger.warning(
                "Refused reservation of %s on %s (%s of %s taken)",
                quantity, self.production_date, self.burritos_ordered, self.max_burritos,
            )
            return False

        logger.info(
            "Reserved %s on %s (%s of %s taken)",
            quantity, self.production_date, self.burritos_ordered, self.max_burritos,
        )
        return True

    def release_capacity(self, quantity):
        """Give back ``quantity`` slots; the counter never drops below zero."""
        if quantity < 0:
            raise ValueError('Quantity must not be negative')
        if self.pk is None:
            raise ValueError('Cannot release capacity on an unsaved production schedule')

        ProductionSchedule.objects.filter(pk=self.pk).update(
            # Subtraction only runs when the result stays positive
            burritos_ordered=Case(
                When(burritos_ordered__gt=quantity, then=F('burritos_ordered') - quantity),
                default=Value(0),
                output_field=models.PositiveIntegerField(),
            ),
            updated_at=timezone.now(),
        )
        self.refresh_from_db(fields=['burritos_ordered', 'updated_at'])
        logger.info(
            "Released %s on %s (%s of %s taken)",
            quantity, self.production_date, self.burritos_ordered, self.max_burritos,
        )

    def reserved_burritos_from_orders(self):
        """Burrito lines on orders that currently hold capacity on this day."""
        return Burrito.objects.filter(
            order__production_schedule=self,
            order__status__in=CAPACITY_HOLDING_STATUSES,
        ).count()

    # ---- Cutoff ----

    def cutoff_datetime(self):
        naive = datetime.combine(as_date(self.production_date), _as_time(self.order_cutoff_time))
        return timezone.make_aware(naive)

    def is_within_ordering_window(self, clock=None):
        return get_clock(clock).now() < self.cutoff_datetime()

    def get_time_until_cutoff(self, clock=None):
        return max(timedelta(0), self.cutoff_datetime() - get_clock(clock).now())

    def can_accept_new_orders(self, clock=None):
        return (
            self.is_active
            and self.is_within_ordering_window(clock)
            and self.get_available_capacity() > 0
        )

    def get_closed_reason(self, clock=None):
        """Why new orders are refused, or None when the day is open."""
        if not self.is_active:
            return _('This production day is not accepting orders')
        if not self.is_within_ordering_window(clock):
            return self.CUTOFF_REASON
        if self.get_available_capacity() <= 0:
            return _('Sold out for this day')
        return None

    def get_cutoff_status(self, clock=None):
        accepting = self.is_within_ordering_window(clock)
        return {
            'accepting_orders': accepting,
            'cutoff_time': _as_time(self.order_cutoff_time).strftime('%H:%M:%S'),
            'time_until_cutoff': self.get_time_until_cutoff(clock) if accepting else None,
            'reason': None if accepting else self.CUTOFF_REASON,
        }

    # ---- Statistics ----

    def get_production_stats(self):
        percentage = (self.burritos_ordered / self.max_burritos) * 100 if self.max_burritos else 100.0
        return {
            'total_capacity': self.max_burritos,
            'reserved_capacity': self.burritos_ordered,
            'remaining_capacity': self.get_available_capacity(),
            'capacity_percentage': round(percentage, 1),
            'is_near_capacity': percentage >= self.NEAR_CAPACITY_PERCENTAGE,
            'is_sold_out': self.burritos_ordered >= self.max_burritos,
        }

    def get_mobile_capacity_display(self):
        stats = self.get_production_stats()
        remaining = stats['remaining_capacity']

        if stats['is_sold_out']:
            return {
                'status': 'sold_out',
                'message': _('Sold out for this day'),
                'urgency_level': 'critical',
                'remaining_count': 0,
            }

        percentage = stats['capacity_percentage']
        if percentage >= 95:
            urgency = 'critical'
        elif percentage >= 80:
            urgency = 'high'
        elif percentage >= 50:
            urgency = 'medium'
        else:
            urgency = 'low'

        if remaining <= 5:
            message = f"Only {remaining} left!"
        elif remaining <= 20:
            message = f"Only {remaining} burritos available"
        else:
            message = f"{remaining} burritos available"

        return {
            'status': 'available',
            'message': message,
            'urgency_level': urgency,
            'remaining_count': remaining,
        }

    # ---- Generation ----

    @classmethod
    def build_for_date(cls, production_date, **fields):
        """Unsaved schedule for a date with the configured defaults."""
        production_date = as_date(production_date)
        values = {
            'max_burritos': get_setting('default_max_burritos'),
            'order_cutoff_time': get_setting('default_cutoff_time'),
            'pickup_start_time': get_setting('default_pickup_start_time'),
            'pickup_end_time': get_setting('default_pickup_end_time'),
        }
        values.update({key: value for key, value in fields.items() if value is not None})
        return cls(
            production_date=production_date,
            day_of_week=ProductionDay.for_date(production_date),
            **values,
        )

    @classmethod
    def generate_weekend_schedules(cls, clock=None, **fields):
        """Unsaved schedules for the coming Saturday and Sunday."""
        saturday = next_weekday(get_clock(clock).today(), SATURDAY_WEEKDAY)
        return [
            cls.build_for_date(saturday, **fields),
            cls.build_for_date(saturday + timedelta(days=1), **fields),
        ]

    @classmethod
    def generate_weekly_schedules(cls, weeks, clock=None, **fields):
        """Unsaved schedules for the next ``weeks`` weekends."""
        today = get_clock(clock).today()
        schedules = []
        for week in range(weeks):
            saturday = next_weekday(today + timedelta(weeks=week), SATURDAY_WEEKDAY)
            schedules.append(cls.build_for_date(saturday, **fields))
            schedules.append(cls.build_for_date(saturday + timedelta(days=1), **fields))
        return schedules


# =============================================================================
# Orders
# =============================================================================

@dataclass(frozen=True)
class AuthenticatedOwner:
    user: object


@dataclass(frozen=True)
class GuestOwner:
    name: str
    phone: str
    email: Optional[str] = None


STATUS_DISPLAY = {
    OrderStatus.PENDING: {
        'label': 'Pending',
        'description': 'Order has been submitted and is awaiting confirmation',
        'color': 'yellow',
        'icon': 'clock',
    },
    OrderStatus.CONFIRMED: {
        'label': 'Confirmed',
        'description': 'Order has been confirmed and scheduled for preparation',
        'color': 'blue',
        'icon': 'check-circle',
    },
    OrderStatus.IN_PREPARATION: {
        'label': 'In Preparation',
        'description': 'Your burritos are being prepared',
        'color': 'orange',
        'icon': 'cooking',
    },
    OrderStatus.READY: {
        'label': 'Ready for Pickup',
        'description': 'Your order is ready for pickup',
        'color': 'green',
        'icon': 'check',
    },
    OrderStatus.COMPLETED: {
        'label': 'Completed',
        'description': 'Order has been picked up',
        'color': 'gray',
        'icon': 'check-double',
    },
    OrderStatus.CANCELLED: {
        'label': 'Cancelled',
        'description': 'Order has been cancelled',
        'color': 'red',
        'icon': 'x-circle',
    },
}

HISTORY_LABELS = [
    (OrderStatus.CONFIRMED, 'Order Confirmed'),
    (OrderStatus.IN_PREPARATION, 'In Preparation'),
    (OrderStatus.READY, 'Ready for Pickup'),
    (OrderStatus.COMPLETED, 'Order Completed'),
    (OrderStatus.CANCELLED, 'Order Cancelled'),
]


class OrderQuerySet(models.QuerySet):

    def for_user(self, user):
        return self.filter(user=user)

    def guest(self):
        return self.filter(user__isnull=True)

    def with_status(self, status):
        return self.filter(status=status)

    def for_production_date(self, day):
        return self.filter(production_schedule__production_date=as_date(day))

    def holding_capacity(self):
        return self.filter(status__in=CAPACITY_HOLDING_STATUSES)


class Order(models.Model):
    """Customer order for one production day."""

    TAX_RATE = Decimal('0.0875')

    # Identification
    order_number = models.CharField(max_length=20, unique=True, verbose_name=_('Order Number'))

    # Links
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='burrito_orders',
        verbose_name=_('User'),
    )
    production_schedule = models.ForeignKey(
        ProductionSchedule,
        on_delete=models.PROTECT,
        related_name='orders',
        verbose_name=_('Production Schedule'),
    )

    # Contact
    customer_name = models.CharField(max_length=100, verbose_name=_('Customer Name'))
    customer_phone = models.CharField(max_length=20, verbose_name=_('Customer Phone'))
    customer_email = models.EmailField(max_length=100, null=True, blank=True, verbose_name=_('Customer Email'))

    status = models.CharField(
        max_length=20, choices=OrderStatus.choices,
        default=OrderStatus.PENDING, verbose_name=_('Status'),
    )

    # Financial
    subtotal = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))

    # Timing
    pickup_time = models.DateTimeField(null=True, blank=True, verbose_name=_('Pickup Time'))
    confirmed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Confirmed At'))
    prepared_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Preparation Started'))
    ready_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Ready At'))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Completed At'))
    cancelled_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cancelled At'))

    # Kitchen & admin
    special_instructions = models.TextField(blank=True, default='')
    admin_notes = models.TextField(blank=True, default='')
    kitchen_printed = models.BooleanField(default=False)
    kitchen_printed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        db_table = 'weekend_orders_order'
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['production_schedule', 'status'], name='wo_order_schedule_status_idx'),
            models.Index(fields=['customer_phone', 'created_at'], name='wo_order_phone_created_idx'),
            models.Index(fields=['status', 'created_at'], name='wo_order_status_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.order_number}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            stored = Order.objects.filter(pk=self.pk).values_list(
                'production_schedule_id', flat=True,
            ).first()
            if stored is not None and stored != self.production_schedule_id:
                raise ValidationError(
                    {'production_schedule': _('The production day of an order cannot be changed')},
                    code='schedule_immutable',
                )
        super().save(*args, **kwargs)

    # ---- Ownership ----

    @property
    def owner(self):
        if self.user_id is not None:
            return AuthenticatedOwner(user=self.user)
        return GuestOwner(
            name=self.customer_name,
            phone=self.customer_phone,
            email=self.customer_email,
        )

    def is_guest_order(self):
        return self.user_id is None

    def is_authenticated_order(self):
        return self.user_id is not None

    @property
    def customer_display_name(self):
        if self.user_id is not None:
            name = self.user.get_full_name() if hasattr(self.user, 'get_full_name') else ''
            return name or self.user.get_username()
        return self.customer_name

    @property
    def burrito_count(self):
        return self.burritos.count()

    # ---- Creation ----

    @classmethod
    def create_order(cls, data, clock=None):
        """Create a pending order for an authenticated user."""
        if data.get('user') is None:
            raise ValidationError({'user': _('An authenticated order requires a user')}, code='user_required')
        return cls._create_from_data(data, user=data['user'], clock=clock)

    @classmethod
    def create_guest_order(cls, data, clock=None):
        """Create a pending order without a user account."""
        return cls._create_from_data(data, user=None, clock=clock)

    @classmethod
    def _create_from_data(cls, data, user, clock=None):
        schedule = cls.validate_order_data(data)
        order = cls(
            user=user,
            production_schedule=schedule,
            customer_name=str(data['customer_name']).strip(),
            customer_phone=normalize_phone_number(data['customer_phone']),
            customer_email=data.get('customer_email') or None,
            special_instructions=data.get('special_instructions') or '',
            pickup_time=data.get('pickup_time'),
        )
        order.save_with_order_number(clock)
        logger.info("Created order %s for %s", order.order_number, schedule.production_date)
        return order

    @staticmethod
    def validate_order_data(data):
        """Check customer and schedule fields; returns the production schedule."""
        if not str(data.get('customer_name') or '').strip():
            raise ValidationError({'customer_name': _('Customer name is required')}, code='required')

        phone = str(data.get('customer_phone') or '')
        if not phone.strip():
            raise ValidationError({'customer_phone': _('Customer phone is required')}, code='required')
        if not is_valid_phone_number(phone):
            raise ValidationError({'customer_phone': _('Invalid phone number format')}, code='invalid_phone')

        schedule = data.get('production_schedule')
        if schedule is None:
            schedule_id = data.get('production_schedule_id')
            if schedule_id is None:
                raise ValidationError(
                    {'production_schedule': _('Production schedule is required')}, code='required',
                )
            schedule = ProductionSchedule.objects.filter(pk=schedule_id).first()

        if schedule is None or schedule.pk is None or \
                not ProductionSchedule.is_valid_production_date(schedule.production_date):
            raise ValidationError(
                {'production_schedule': _('Orders can only be placed for weekend production')},
                code='not_weekend',
            )
        return schedule

    # ---- Number generation ----

    @classmethod
    def generate_order_number(cls, clock=None):
        today = timezone.localtime(get_clock(clock).now())
        prefix = get_setting('order_number_prefix')
        return f"{prefix}-{today.strftime('%Y%m%d')}-{generate_order_suffix()}"

    def save_with_order_number(self, clock=None):
        """
        Assign a fresh order number and insert.

        Suffixes are random, so a clash with an existing number is retried
        a bounded number of times; the unique constraint stays the final
        guard.
        """
        attempts = get_setting('order_number_attempts')
        for attempt in range(1, attempts + 1):
            self.order_number = self.generate_order_number(clock)
            if Order.objects.filter(order_number=self.order_number).exists():
                logger.info("Order number %s taken, retrying (%s/%s)", self.order_number, attempt, attempts)
                continue
            try:
                with transaction.atomic():
                    self.save()
                return self
            except IntegrityError:
                if not Order.objects.filter(order_number=self.order_number).exists():
                    raise
                self.pk = None
                logger.info("Order number %s taken, retrying (%s/%s)", self.order_number, attempt, attempts)
        raise IntegrityError(f"Could not generate a unique order number after {attempts} attempts")

    # ---- Status ----

    def can_transition_to(self, status):
        return OrderStatus(self.status).can_transition_to(status)

    def transition_to(self, status, clock=None):
        """
        Move to ``status`` and apply its side effects.

        Confirming reserves one slot per burrito on the production day and
        raises CapacityExhausted if the day is full. Cancelling a
        confirmed or in-preparation order releases those slots. Capacity
        change, status, timestamp and save commit together; on failure
        nothing is written and this instance keeps its previous state.
        """
        status = OrderStatus(status)
        previous = OrderStatus(self.status)
        if not previous.can_transition_to(status):
            raise InvalidStatusTransition(previous, status)

        timestamp_field = STATUS_TIMESTAMP_FIELDS[status]
        previous_timestamp = getattr(self, timestamp_field)

        try:
            with transaction.atomic():
                if status == OrderStatus.CONFIRMED:
                    self._reserve_production_capacity()
                elif status == OrderStatus.CANCELLED and previous != OrderStatus.PENDING:
                    self._release_production_capacity()

                self.status = status
                if previous_timestamp is None:
                    setattr(self, timestamp_field, get_clock(clock).now())
                self.save()
        except Exception:
            self.status = previous
            setattr(self, timestamp_field, previous_timestamp)
            self.production_schedule.refresh_from_db(fields=['burritos_ordered', 'updated_at'])
            raise

        logger.info("Order %s: %s -> %s", self.order_number, previous, status)
        return self

    def _reserve_production_capacity(self):
        count = self.burrito_count
        if count == 0:
            return
        schedule = self.production_schedule
        if not schedule.reserve_capacity(count):
            raise CapacityExhausted(schedule, count, schedule.get_available_capacity())

    def _release_production_capacity(self):
        count = self.burrito_count
        if count == 0:
            return
        self.production_schedule.release_capacity(count)

    def get_status_display_info(self):
        status = OrderStatus(self.status)
        return {'status': status.value, **STATUS_DISPLAY[status]}

    def get_status_history(self):
        history = [{
            'status': OrderStatus.PENDING,
            'timestamp': self.created_at,
            'label': 'Order Submitted',
        }]
        for status, label in HISTORY_LABELS:
            timestamp = getattr(self, STATUS_TIMESTAMP_FIELDS[status])
            if timestamp is not None:
                history.append({'status': status, 'timestamp': timestamp, 'label': label})
        return history

    def get_estimated_ready_time(self):
        status = OrderStatus(self.status)
        if status == OrderStatus.CONFIRMED and self.confirmed_at:
            return self.confirmed_at + timedelta(minutes=get_setting('confirmed_ready_minutes'))
        if status == OrderStatus.IN_PREPARATION and self.prepared_at:
            return self.prepared_at + timedelta(minutes=get_setting('preparation_ready_minutes'))
        if status in (OrderStatus.READY, OrderStatus.COMPLETED):
            return self.ready_at
        return None

    def mark_kitchen_printed(self, clock=None):
        self.kitchen_printed = True
        self.kitchen_printed_at = get_clock(clock).now()
        self.save(update_fields=['kitchen_printed', 'kitchen_printed_at', 'updated_at'])
        return self

    # ---- Financial ----

    def calculate_totals(self):
        """Tax at 8.75% of the current subtotal, rounded half-up to the cent."""
        subtotal_cents = to_cents(self.subtotal)
        tax_cents = int((Decimal(subtotal_cents) * self.TAX_RATE).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
        self.subtotal = from_cents(subtotal_cents)
        self.tax_amount = from_cents(tax_cents)
        self.total_amount = from_cents(subtotal_cents + tax_cents)
        return self.total_amount

    @property
    def formatted_subtotal(self):
        return format_currency(self.subtotal)

    @property
    def formatted_tax(self):
        return format_currency(self.tax_amount)

    @property
    def formatted_total(self):
        return format_currency(self.total_amount)

    # ---- Mobile ----

    def get_mobile_summary(self):
        return {
            'order_number': self.order_number,
            'status_display': self.get_status_display_info(),
            'total': self.formatted_total,
            'estimated_ready_time': self.get_estimated_ready_time(),
            'burrito_count': self.burrito_count,
            'can_cancel': self.can_transition_to(OrderStatus.CANCELLED),
        }

    def get_pickup_instructions(self):
        return {
            'ready_for_pickup': self.status == OrderStatus.READY,
            'location': get_setting('pickup_location'),
            'phone': get_setting('pickup_phone'),
            'hours': get_setting('pickup_hours'),
            'order_number': self.order_number,
            'special_instructions': self.special_instructions,
        }


# =============================================================================
# Burritos
# =============================================================================

class Burrito(models.Model):
    """One burrito line on an order; each line takes one production slot."""

    LOCKED_MESSAGE = _('Burritos can only be added or removed while the order is pending')

    order = models.ForeignKey(
        Order, on_delete=models.CASCADE,
        related_name='burritos', verbose_name=_('Order'),
    )
    ingredient_selections = models.JSONField(default=dict, blank=True)
    total_calories = models.DecimalField(max_digits=6, decimal_places=1, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    special_instructions = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'weekend_orders_burrito'
        verbose_name = _('Burrito')
        verbose_name_plural = _('Burritos')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['order', 'created_at'], name='wo_burrito_order_created_idx'),
        ]

    def __str__(self):
        return f"Burrito #{self.pk} ({self.order.order_number})"

    def _stored_order_status(self):
        return Order.objects.filter(pk=self.order_id).values_list('status', flat=True).first()

    def save(self, *args, **kwargs):
        """
        Lines are added only to pending orders and never move between orders.

        Confirmed orders hold one production slot per line, so the line
        count is fixed from confirmation on.
        """
        if self._state.adding:
            if self._stored_order_status() != OrderStatus.PENDING:
                raise ValidationError({'order': self.LOCKED_MESSAGE}, code='order_locked')
        else:
            stored_order_id = Burrito.objects.filter(pk=self.pk).values_list('order_id', flat=True).first()
            if stored_order_id is not None and stored_order_id != self.order_id:
                raise ValidationError({'order': _('A burrito cannot be moved to another order')}, code='order_immutable')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self._stored_order_status() != OrderStatus.PENDING:
            raise ValidationError({'order': self.LOCKED_MESSAGE}, code='order_locked')
        return super().delete(*args, **kwargs)

    @property
    def formatted_cost(self):
        return format_currency(self.total_cost)
