"""
Order Service

Handles business logic for order operations.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Dict, Any

from django.db import transaction

from ..exceptions import CapacityExhausted, OrderingClosed
from ..models import Order, OrderStatus, ProductionSchedule, Burrito
from .. import signals

logger = logging.getLogger(__name__)


class OrderService:
    """Service for placing orders and moving them through their lifecycle."""

    @staticmethod
    @transaction.atomic
    def create_order(data: Dict[str, Any], burritos: List[Dict] = None, clock=None) -> Order:
        """
        Place an order for an authenticated user.

        Args:
            data: customer_name, customer_phone, customer_email, user,
                production_schedule or production_schedule_id,
                special_instructions, pickup_time
            burritos: List of burrito dicts with ingredient_selections,
                total_cost, total_calories, special_instructions
            clock: Time source for the cutoff check and order number

        Returns:
            Created Order instance (pending, nothing reserved yet)
        """
        return OrderService._place(Order.create_order, data, burritos, clock)

    @staticmethod
    @transaction.atomic
    def create_guest_order(data: Dict[str, Any], burritos: List[Dict] = None, clock=None) -> Order:
        """Place an order without a user account."""
        return OrderService._place(Order.create_guest_order, data, burritos, clock)

    @staticmethod
    def _place(factory, data, burritos, clock):
        schedule = Order.validate_order_data(data)
        if not schedule.can_accept_new_orders(clock):
            reason = schedule.get_closed_reason(clock)
            logger.warning("Refused order for %s: %s", schedule.production_date, reason)
            raise OrderingClosed(schedule, reason)

        order = factory({**data, 'production_schedule': schedule}, clock=clock)

        for burrito_data in burritos or []:
            OrderService.add_burrito(order, **burrito_data)

        OrderService.recalculate_totals(order)
        signals.order_created.send(sender=Order, order=order)
        return order

    @staticmethod
    def add_burrito(
        order: Order,
        ingredient_selections: Dict = None,
        total_cost: Decimal = None,
        total_calories: Decimal = None,
        special_instructions: str = ''
    ) -> Burrito:
        """Add a burrito line to a pending order."""
        if order.status != OrderStatus.PENDING:
            raise ValueError(f"Cannot add burritos to a {order.status} order")
        return Burrito.objects.create(
            order=order,
            ingredient_selections=ingredient_selections or {},
            total_cost=total_cost,
            total_calories=total_calories,
            special_instructions=special_instructions,
        )

    @staticmethod
    def recalculate_totals(order: Order) -> Order:
        """Subtotal from burrito costs, then tax and total."""
        costs = order.burritos.values_list('total_cost', flat=True)
        order.subtotal = sum((cost for cost in costs if cost is not None), Decimal('0.00'))
        order.calculate_totals()
        order.save(update_fields=['subtotal', 'tax_amount', 'total_amount', 'updated_at'])
        return order

    @staticmethod
    def transition(order_id: int, status: str, clock=None) -> Order:
        """
        Move an order to a new status.

        Raises InvalidStatusTransition for an edge that does not exist and
        CapacityExhausted when confirming against a full production day.
        """
        order = Order.objects.select_related('production_schedule').get(pk=order_id)
        previous = order.status
        try:
            order.transition_to(status, clock=clock)
        except CapacityExhausted as exc:
            signals.capacity_exhausted.send(
                sender=Order, schedule=exc.schedule, order=order, requested=exc.requested,
            )
            raise

        signals.order_status_changed.send(
            sender=Order, order=order, previous_status=previous, status=order.status,
        )
        if order.status == OrderStatus.CONFIRMED:
            signals.order_confirmed.send(sender=Order, order=order)
        return order

    @staticmethod
    def confirm_order(order_id: int, clock=None) -> Order:
        """Confirm an order, reserving its burritos on the production day."""
        return OrderService.transition(order_id, OrderStatus.CONFIRMED, clock)

    @staticmethod
    def start_preparation(order_id: int, clock=None) -> Order:
        return OrderService.transition(order_id, OrderStatus.IN_PREPARATION, clock)

    @staticmethod
    def mark_ready(order_id: int, clock=None) -> Order:
        return OrderService.transition(order_id, OrderStatus.READY, clock)

    @staticmethod
    def complete_order(order_id: int, clock=None) -> Order:
        return OrderService.transition(order_id, OrderStatus.COMPLETED, clock)

    @staticmethod
    @transaction.atomic
    def cancel_order(order_id: int, reason: str = '', clock=None) -> Order:
        """Cancel an order; reserved capacity goes back to the production day."""
        order = OrderService.transition(order_id, OrderStatus.CANCELLED, clock)
        if reason:
            order.admin_notes = f"{order.admin_notes}\nCancelled: {reason}".strip()
            order.save(update_fields=['admin_notes', 'updated_at'])
        signals.order_cancelled.send(sender=Order, order=order, reason=reason)
        return order

    @staticmethod
    def get_order_by_number(order_number: str) -> Optional[Order]:
        """Customer-facing lookup; order numbers are matched case-insensitively."""
        return Order.objects.select_related('production_schedule').filter(
            order_number__iexact=(order_number or '').strip()
        ).first()

    @staticmethod
    def get_orders_for_schedule(schedule: ProductionSchedule, status: str = None) -> List[Order]:
        orders = Order.objects.filter(production_schedule=schedule).prefetch_related('burritos')
        if status:
            orders = orders.with_status(status)
        return list(orders.order_by('created_at'))

    @staticmethod
    def get_order_stats(schedule: ProductionSchedule) -> Dict[str, Any]:
        """Order counts per status for one production day."""
        orders = Order.objects.filter(production_schedule=schedule)
        counts = {status.value: 0 for status in OrderStatus}
        for status in orders.values_list('status', flat=True):
            counts[status] += 1

        return {
            'production_date': schedule.production_date.isoformat(),
            'total_orders': sum(counts.values()),
            'by_status': counts,
            'burritos_reserved': schedule.burritos_ordered,
        }
