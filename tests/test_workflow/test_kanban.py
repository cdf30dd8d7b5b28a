"""Tests for the kanban board projection."""

from datetime import timedelta

from conftest import START
from fulfillment.models.order import EquipmentStatus, OrderPriority, OrderStatus
from fulfillment.workflow.kanban import KANBAN_STATUSES, KanbanProjector


def test_columns_cover_workflow(make_order) -> None:
    board = KanbanProjector().project([])

    assert [column.status for column in board.columns] == list(KANBAN_STATUSES)
    assert OrderStatus.COMPLETED not in board.counts
    assert board.summary.total == 0


def test_priority_before_date(make_order) -> None:
    later_urgent = make_order(
        status=OrderStatus.CONFIRMED,
        priority=OrderPriority.URGENT,
        delivery_at=START + timedelta(days=10),
    )
    earlier_high = make_order(
        status=OrderStatus.CONFIRMED,
        priority=OrderPriority.HIGH,
        delivery_at=START + timedelta(hours=30),
    )

    board = KanbanProjector().project([earlier_high, later_urgent])

    ids = [order.id for order in board.column(OrderStatus.CONFIRMED).orders]
    assert ids == [later_urgent.id, earlier_high.id]


def test_same_priority_sorted_by_delivery(make_order) -> None:
    second = make_order(priority=OrderPriority.MEDIUM, delivery_at=START + timedelta(days=4))
    first = make_order(priority=OrderPriority.MEDIUM, delivery_at=START + timedelta(days=2))

    board = KanbanProjector().project([second, first])

    assert [o.id for o in board.column(OrderStatus.PENDING).orders] == [first.id, second.id]


def test_terminal_orders_excluded(make_order) -> None:
    orders = [
        make_order(status=OrderStatus.PENDING),
        make_order(status=OrderStatus.COMPLETED),
        make_order(status=OrderStatus.CANCELLED),
        make_order(status=OrderStatus.LATE_EQUIPMENT),
    ]

    board = KanbanProjector().project(orders)

    assert board.summary.total == 1
    assert sum(board.counts.values()) == 1


def test_summary_counters(make_order) -> None:
    delivered = make_order(headcount=25, status=OrderStatus.DELIVERED)
    delivered.equipment.status = EquipmentStatus.DELIVERED
    orders = [
        make_order(status=OrderStatus.CONFIRMED, priority=OrderPriority.URGENT),
        make_order(status=OrderStatus.CONFIRMED),
        make_order(status=OrderStatus.INITIATED, assigned_to="employee-001"),
        make_order(status=OrderStatus.COOKING, assigned_to="employee-002"),
        make_order(status=OrderStatus.PACKAGING),
        delivered,
    ]

    board = KanbanProjector().project(orders, assigned_to="employee-001")

    summary = board.summary
    assert summary.total == 6
    assert summary.to_initiate == 2
    assert summary.in_production == 2
    assert summary.urgent == 1
    assert summary.mine == 1
    assert summary.equipment_outstanding == 1


def test_assigned_filter_keeps_global_summary(make_order) -> None:
    mine = make_order(status=OrderStatus.INITIATED, assigned_to="employee-001")
    theirs = make_order(status=OrderStatus.INITIATED, assigned_to="employee-002")

    board = KanbanProjector().project([mine, theirs], assigned_to="employee-001")

    assert [o.id for o in board.column(OrderStatus.INITIATED).orders] == [mine.id]
    assert board.column(OrderStatus.INITIATED).count == 1
    assert board.summary.total == 2


def test_projection_does_not_mutate(make_order) -> None:
    order = make_order(status=OrderStatus.ASSEMBLY)
    before = order.model_dump()

    KanbanProjector().project([order])

    assert order.model_dump() == before


def test_board_serializes_counts(make_order) -> None:
    board = KanbanProjector().project([make_order()])

    data = board.model_dump(mode="json")

    assert data["columns"][0]["status"] == "pending"
    assert data["columns"][0]["count"] == 1
    assert data["columns"][0]["title"] == "Awaiting validation"
