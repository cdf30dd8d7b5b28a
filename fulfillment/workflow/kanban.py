"""Kanban board projection of live orders."""

from collections.abc import Iterable

from pydantic import BaseModel, Field, computed_field

from fulfillment.models.order import Order, OrderPriority, OrderStatus, TERMINAL_STATUSES
from fulfillment.workflow.status import StatusTransitions

KANBAN_STATUSES: tuple[OrderStatus, ...] = tuple(
    status for status in StatusTransitions.SEQUENCE if status not in TERMINAL_STATUSES
)

PRODUCTION_STATUSES = frozenset(
    {
        OrderStatus.INITIATED,
        OrderStatus.PREP_INGREDIENTS,
        OrderStatus.ASSEMBLY,
        OrderStatus.COOKING,
    }
)


class KanbanColumn(BaseModel):
    """Orders sharing one status."""

    status: OrderStatus
    title: str
    orders: list[Order] = Field(default_factory=list)

    @computed_field
    @property
    def count(self) -> int:
        return len(self.orders)


class KanbanSummary(BaseModel):
    """Headline counters shown above the board."""

    total: int = 0
    to_initiate: int = 0
    in_production: int = 0
    urgent: int = 0
    mine: int = 0
    equipment_outstanding: int = 0


class KanbanBoard(BaseModel):
    columns: list[KanbanColumn]
    summary: KanbanSummary

    def column(self, status: OrderStatus) -> KanbanColumn:
        for column in self.columns:
            if column.status == status:
                return column
        raise KeyError(status)

    @property
    def counts(self) -> dict[OrderStatus, int]:
        return {column.status: column.count for column in self.columns}


def sort_key(order: Order) -> tuple[int, object]:
    """Most urgent first, then earliest delivery."""
    return order.priority.rank, order.delivery_at


class KanbanProjector:
    """Builds the board from current order state; never mutates orders."""

    def __init__(self, statuses: Iterable[OrderStatus] = KANBAN_STATUSES):
        self.statuses = tuple(statuses)

    def project(
        self,
        orders: Iterable[Order],
        assigned_to: str | None = None,
    ) -> KanbanBoard:
        """
        Group orders into sorted columns.

        Args:
            orders: Orders to place on the board; terminal ones are ignored
            assigned_to: Optional staff id to keep only that person's orders

        Returns:
            KanbanBoard with one column per workflow status
        """
        live = [order for order in orders if order.status in self.statuses]
        summary = self.summarize(live, assigned_to)

        if assigned_to is not None:
            live = [order for order in live if order.assigned_to == assigned_to]

        grouped: dict[OrderStatus, list[Order]] = {status: [] for status in self.statuses}
        for order in live:
            grouped[order.status].append(order)

        columns = [
            KanbanColumn(
                status=status,
                title=status.label,
                orders=sorted(grouped[status], key=sort_key),
            )
            for status in self.statuses
        ]
        return KanbanBoard(columns=columns, summary=summary)

    def summarize(self, orders: list[Order], assigned_to: str | None = None) -> KanbanSummary:
        """Aggregate counters over the whole board."""
        return KanbanSummary(
            total=len(orders),
            to_initiate=sum(1 for o in orders if o.status == OrderStatus.CONFIRMED),
            in_production=sum(1 for o in orders if o.status in PRODUCTION_STATUSES),
            urgent=sum(1 for o in orders if o.priority == OrderPriority.URGENT),
            mine=sum(
                1 for o in orders if assigned_to is not None and o.assigned_to == assigned_to
            ),
            equipment_outstanding=sum(
                1 for o in orders if o.equipment.status.is_outstanding
            ),
        )
