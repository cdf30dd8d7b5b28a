"""Equipment loan lifecycle.

Large orders leave the kitchen with serving equipment (chafing dishes, trays)
that the customer must return within a fixed window. The overdue check is
level-triggered: each call compares the wall clock against the stored due
date, so a delayed sweep still reaches the right state.

    pending -> delivered -> returned
                   |
                   v
                  late -> returned
                   |
                   v
                charged   (forces the order into late_equipment,
                           except a cancelled order, which stays cancelled)
"""

from datetime import datetime, timedelta
from decimal import Decimal

from fulfillment.config import Settings
from fulfillment.errors import AlreadyCharged, InvalidTransition, NotApplicable
from fulfillment.models.order import EquipmentStatus, Order, OrderStatus
from fulfillment.utils.logging import WorkflowLogger

EQUIPMENT_THRESHOLD = 20
RETURN_WINDOW = timedelta(hours=48)
LATE_GRACE = timedelta(hours=0)
PENALTY_AMOUNT = Decimal("600.00")

RETURNABLE_STATUSES = frozenset({EquipmentStatus.DELIVERED, EquipmentStatus.LATE})

# Order statuses a penalty charge leaves untouched
FINAL_ON_CHARGE = frozenset({OrderStatus.CANCELLED, OrderStatus.LATE_EQUIPMENT})


class EquipmentLifecycle:
    """State machine for the equipment sub-record of an order."""

    def __init__(
        self,
        threshold: int = EQUIPMENT_THRESHOLD,
        return_window: timedelta = RETURN_WINDOW,
        late_grace: timedelta = LATE_GRACE,
        penalty: Decimal = PENALTY_AMOUNT,
    ):
        self.threshold = threshold
        self.return_window = return_window
        self.late_grace = late_grace
        self.penalty = penalty
        self.logger = WorkflowLogger("equipment")

    @classmethod
    def from_settings(cls, settings: Settings) -> "EquipmentLifecycle":
        return cls(
            threshold=settings.equipment_threshold,
            return_window=timedelta(hours=settings.equipment_return_window_hours),
            late_grace=timedelta(hours=settings.equipment_late_grace_hours),
            penalty=settings.equipment_penalty,
        )

    def requires_equipment(self, headcount: int) -> bool:
        return headcount >= self.threshold

    def initial_status(self, headcount: int) -> EquipmentStatus:
        """Equipment status for a freshly created order."""
        if self.requires_equipment(headcount):
            return EquipmentStatus.PENDING
        return EquipmentStatus.NOT_APPLICABLE

    def charge_deadline(self, order: Order) -> datetime | None:
        """Moment after which a late loan is charged."""
        if order.equipment.due_at is None:
            return None
        return order.equipment.due_at + self.late_grace

    def on_delivered(self, order: Order, now: datetime) -> bool:
        """
        Start the loan when the order reaches the customer.

        Returns False when the order carries no equipment.
        """
        loan = order.equipment
        if loan.status == EquipmentStatus.NOT_APPLICABLE:
            return False
        if loan.status != EquipmentStatus.PENDING:
            raise InvalidTransition(
                f"Equipment already {loan.status.value}",
                order_id=order.id,
                current=loan.status.value,
            )

        loan.status = EquipmentStatus.DELIVERED
        loan.delivered_at = now
        loan.due_at = now + self.return_window

        self.logger.log_equipment(
            str(order.id),
            EquipmentStatus.PENDING.value,
            loan.status.value,
            due_at=loan.due_at.isoformat(),
        )
        return True

    def on_returned(self, order: Order, actor: str | None, now: datetime) -> None:
        """Record the equipment coming back and clear any pending penalty."""
        loan = order.equipment
        if loan.status == EquipmentStatus.NOT_APPLICABLE:
            raise NotApplicable("Order has no equipment loan", order_id=order.id)
        if loan.status == EquipmentStatus.CHARGED:
            raise AlreadyCharged(
                f"Equipment penalty of {loan.penalty} already charged",
                order_id=order.id,
            )
        if loan.status not in RETURNABLE_STATUSES:
            raise InvalidTransition(
                f"Equipment cannot be returned while {loan.status.value}",
                order_id=order.id,
                current=loan.status.value,
            )

        previous = loan.status
        loan.status = EquipmentStatus.RETURNED
        loan.returned_at = now
        loan.penalty = Decimal("0.00")
        order.updated_at = now

        self.logger.log_equipment(
            str(order.id), previous.value, loan.status.value, actor=actor
        )

    def check_overdue(self, order: Order, now: datetime) -> bool:
        """
        Advance an overdue loan by one step.

        delivered past its due date becomes late; late past the charge
        deadline becomes charged and forces the order into late_equipment.
        Returns True if anything changed.
        """
        loan = order.equipment

        if loan.status == EquipmentStatus.DELIVERED:
            if loan.due_at is not None and now > loan.due_at:
                loan.status = EquipmentStatus.LATE
                order.updated_at = now
                self.logger.log_equipment(
                    str(order.id),
                    EquipmentStatus.DELIVERED.value,
                    loan.status.value,
                    due_at=loan.due_at.isoformat(),
                )
                return True
            return False

        if loan.status == EquipmentStatus.LATE:
            deadline = self.charge_deadline(order)
            if deadline is not None and now > deadline:
                self._charge(order, now)
                return True

        return False

    def _charge(self, order: Order, now: datetime) -> None:
        loan = order.equipment
        loan.status = EquipmentStatus.CHARGED
        loan.penalty = self.penalty

        self.logger.log_equipment(
            str(order.id),
            EquipmentStatus.LATE.value,
            loan.status.value,
            penalty=str(loan.penalty),
        )

        note = f"Equipment not returned, penalty {loan.penalty} charged"

        # The only place the loan drives the order's own status. Cancelled
        # stays final: the penalty is recorded as a note instead.
        if order.status in FINAL_ON_CHARGE:
            order.notes.append(note)
            order.updated_at = now
            self.logger.logger.warning(
                "penalty_charged_on_final_order",
                order_id=str(order.id),
                status=order.status.value,
                penalty=str(loan.penalty),
            )
            return

        previous = order.status
        order.record_status(OrderStatus.LATE_EQUIPMENT, now, notes=note)
        self.logger.logger.warning(
            "order_forced_late_equipment",
            order_id=str(order.id),
            from_status=previous.value,
            penalty=str(loan.penalty),
        )
