"""Delivery urgency tiers."""

import math
from datetime import datetime, timedelta

from fulfillment.models.order import Order, OrderPriority, OrderStatus

# Priority is cosmetic once the food has left the kitchen
PRIORITY_EXEMPT_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.LATE_EQUIPMENT,
    }
)

ONE_DAY = timedelta(days=1)


class PriorityCalculator:
    """Maps time-to-delivery onto an urgency tier."""

    @classmethod
    def days_until(cls, delivery_at: datetime, now: datetime) -> int:
        """Whole days until delivery, floored (negative when overdue)."""
        return math.floor((delivery_at - now) / ONE_DAY)

    @classmethod
    def priority(cls, delivery_at: datetime, now: datetime) -> OrderPriority:
        """Compute the tier for a delivery moment."""
        days = cls.days_until(delivery_at, now)
        if days <= 0:
            return OrderPriority.URGENT
        if days == 1:
            return OrderPriority.HIGH
        if days <= 4:
            return OrderPriority.MEDIUM
        return OrderPriority.LOW

    @classmethod
    def is_exempt(cls, order: Order) -> bool:
        return order.status in PRIORITY_EXEMPT_STATUSES

    @classmethod
    def refresh(cls, order: Order, now: datetime) -> bool:
        """
        Recompute the order's priority in place.

        Returns True if the stored tier changed. Exempt orders are left alone.
        """
        if cls.is_exempt(order):
            return False

        priority = cls.priority(order.delivery_at, now)
        if priority == order.priority:
            return False

        order.priority = priority
        return True
