"""Order status state machine."""

from datetime import datetime

from fulfillment.errors import InvalidTransition
from fulfillment.models.order import Order, OrderStatus, TERMINAL_STATUSES
from fulfillment.utils.logging import WorkflowLogger
from fulfillment.workflow.equipment import EquipmentLifecycle

COOKING_SKIPPED_NOTE = "Cooking not required, skipped to packaging"


class StatusTransitions:
    """Canonical forward sequence of an order."""

    SEQUENCE: tuple[OrderStatus, ...] = (
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.INITIATED,
        OrderStatus.PREP_INGREDIENTS,
        OrderStatus.ASSEMBLY,
        OrderStatus.COOKING,
        OrderStatus.PACKAGING,
        OrderStatus.DELIVERY,
        OrderStatus.DELIVERED,
        OrderStatus.COMPLETED,
    )

    @classmethod
    def following(cls, status: OrderStatus) -> OrderStatus:
        """Next status in the canonical sequence."""
        if status in TERMINAL_STATUSES:
            raise InvalidTransition(
                f"Order is {status.value}; no further transitions",
                current=status.value,
            )
        index = cls.SEQUENCE.index(status)
        return cls.SEQUENCE[index + 1]

    @classmethod
    def can_cancel(cls, status: OrderStatus) -> bool:
        return status not in TERMINAL_STATUSES


class StatusEngine:
    """
    Drives an order through its fulfillment stages.

    The machine is strictly linear with two guarded exceptions: the cooking
    stage is skipped for menus that need no cooking, and the equipment
    lifecycle may force an order into late_equipment from any stage.
    """

    def __init__(self, equipment: EquipmentLifecycle | None = None):
        self.equipment = equipment or EquipmentLifecycle()
        self.logger = WorkflowLogger("status_engine")

    def next_status(self, order: Order) -> tuple[OrderStatus, str | None]:
        """
        Resolve where advance() would take the order.

        Returns:
            The target status and the history note to record with it
        """
        try:
            target = StatusTransitions.following(order.status)
        except InvalidTransition as exc:
            exc.order_id = order.id
            raise

        if target == OrderStatus.COOKING and not order.cooking_required:
            return OrderStatus.PACKAGING, COOKING_SKIPPED_NOTE
        return target, None

    def advance(
        self,
        order: Order,
        actor: str | None,
        now: datetime,
        notes: str | None = None,
    ) -> Order:
        """Move the order one stage forward."""
        previous = order.status
        target, skip_note = self.next_status(order)

        entry_notes = skip_note if notes is None else (
            f"{skip_note}. {notes}" if skip_note else notes
        )
        if target == OrderStatus.DELIVERED:
            self.equipment.on_delivered(order, now)
        order.record_status(target, now, actor=actor, notes=entry_notes)

        self.logger.log_transition(
            str(order.id),
            previous.value,
            target.value,
            actor=actor,
            cooking_skipped=skip_note is not None,
        )
        return order

    def cancel(
        self,
        order: Order,
        actor: str | None,
        reason: str | None,
        now: datetime,
    ) -> Order:
        """Cancel a non-terminal order."""
        if not StatusTransitions.can_cancel(order.status):
            raise InvalidTransition(
                f"Order is {order.status.value}; it cannot be cancelled",
                order_id=order.id,
                current=order.status.value,
            )

        previous = order.status
        order.record_status(OrderStatus.CANCELLED, now, actor=actor, notes=reason)

        self.logger.log_transition(
            str(order.id),
            previous.value,
            OrderStatus.CANCELLED.value,
            actor=actor,
            reason=reason,
        )
        return order
