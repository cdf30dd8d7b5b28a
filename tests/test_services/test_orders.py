"""Tests for the order service."""

import asyncio
import re
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from fulfillment.errors import (
    GeocodingError,
    InvalidTransition,
    MenuNotFound,
    NotApplicable,
    OrderNotFound,
    ValidationError,
)
from fulfillment.models.order import EquipmentStatus, OrderPriority, OrderStatus
from fulfillment.services.orders import CREATION_NOTE, OrderService
from fulfillment.state.repository import InMemoryOrderRepository


async def place(service: OrderService, delivery_slot, **overrides):
    delivery_date, delivery_time = delivery_slot
    params = {
        "customer_id": "client-001",
        "menu_id": "menu-1",
        "headcount": 12,
        "delivery_address": "42 Quai des Chartrons",
        "delivery_city": "Bordeaux",
        "delivery_date": delivery_date,
        "delivery_time": delivery_time,
    }
    params.update(overrides)
    return await service.create_order(**params)


@pytest.mark.asyncio
async def test_create_local_order(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)

    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("540")
    assert order.discount == Decimal("0")
    assert order.delivery_fee == Decimal("5.00")
    assert order.total == Decimal("545.00")
    assert order.is_local is True
    assert order.priority == OrderPriority.MEDIUM
    assert order.equipment.status == EquipmentStatus.NOT_APPLICABLE
    assert order.cooking_required is True
    assert len(order.status_history) == 1
    assert order.status_history[0].notes == CREATION_NOTE


@pytest.mark.asyncio
async def test_create_applies_bulk_discount(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot, headcount=15)

    assert order.discount == Decimal("67.50")
    assert order.total == Decimal("612.50")


@pytest.mark.asyncio
async def test_create_remote_order(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot, delivery_city="Mérignac")

    assert order.is_local is False
    assert order.distance_km == Decimal("10.0")
    assert order.total == Decimal("550.90")


@pytest.mark.asyncio
async def test_create_large_order_needs_equipment(
    order_service: OrderService, delivery_slot
) -> None:
    order = await place(order_service, delivery_slot, headcount=25)

    assert order.equipment.status == EquipmentStatus.PENDING


@pytest.mark.asyncio
async def test_create_uses_menu_cooking_flag(order_service: OrderService, delivery_slot) -> None:
    aperitif = await place(order_service, delivery_slot, menu_id="menu-4", headcount=15)
    overridden = await place(order_service, delivery_slot, cooking_required=False)

    assert aperitif.cooking_required is False
    assert overridden.cooking_required is False


@pytest.mark.asyncio
async def test_create_is_persisted(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)

    stored = await order_service.get_order(order.id)

    assert stored.model_dump(mode="json") == order.model_dump(mode="json")


@pytest.mark.asyncio
async def test_create_below_minimum(order_service: OrderService, delivery_slot) -> None:
    with pytest.raises(ValidationError, match="at least 10"):
        await place(order_service, delivery_slot, headcount=5)


@pytest.mark.asyncio
async def test_create_requires_delivery_slot(order_service: OrderService, delivery_slot) -> None:
    with pytest.raises(ValidationError):
        await place(order_service, delivery_slot, delivery_date=None)
    with pytest.raises(ValidationError):
        await place(order_service, delivery_slot, delivery_time=None)


@pytest.mark.asyncio
async def test_create_unknown_menu(order_service: OrderService, delivery_slot) -> None:
    with pytest.raises(MenuNotFound):
        await place(order_service, delivery_slot, menu_id="menu-404")


@pytest.mark.asyncio
async def test_stock_decremented_and_exhausted(
    order_service: OrderService, menu_repository, delivery_slot
) -> None:
    for _ in range(5):
        await place(order_service, delivery_slot)

    menu = await menu_repository.get("menu-1")
    assert menu.stock == 0

    with pytest.raises(ValidationError, match="out of stock"):
        await place(order_service, delivery_slot)


@pytest.mark.asyncio
async def test_untracked_stock_is_unlimited(
    order_service: OrderService, menu_repository, delivery_slot
) -> None:
    await place(order_service, delivery_slot, menu_id="menu-4", headcount=15)

    menu = await menu_repository.get("menu-4")
    assert menu.stock is None


@pytest.mark.asyncio
async def test_geocoding_failure_falls_back(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot, delivery_city="Lyon")

    assert order.pricing_fallback is True
    assert order.is_local is False
    assert order.delivery_fee == Decimal("5.00")
    assert order.total == Decimal("545.00")
    assert "reprice" in order.notes[0]


@pytest.mark.asyncio
async def test_reprice_after_fallback(
    order_service: OrderService, geocoder, delivery_slot
) -> None:
    order = await place(order_service, delivery_slot, delivery_city="Lyon")
    geocoder.distances["lyon"] = 550.0

    repriced = await order_service.reprice(order.id, "employee-001")

    assert repriced.pricing_fallback is False
    assert repriced.delivery_fee == Decimal("329.50")
    assert repriced.total == Decimal("869.50")
    assert "545.00 -> 869.50" in repriced.notes[-1]


@pytest.mark.asyncio
async def test_reprice_still_failing(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot, delivery_city="Lyon")

    with pytest.raises(GeocodingError):
        await order_service.reprice(order.id, "employee-001")

    stored = await order_service.get_order(order.id)
    assert stored.pricing_fallback is True


@pytest.mark.asyncio
async def test_get_unknown_order(order_service: OrderService) -> None:
    with pytest.raises(OrderNotFound):
        await order_service.get_order(uuid4())


@pytest.mark.asyncio
async def test_advance_persists(order_service: OrderService, clock, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)
    clock.advance(minutes=10)

    advanced = await order_service.advance(order.id, "employee-001", notes="Checked")

    stored = await order_service.get_order(order.id)
    assert advanced.status == OrderStatus.CONFIRMED
    assert stored.status == OrderStatus.CONFIRMED
    assert stored.assigned_to == "employee-001"
    assert stored.status_history[-1].timestamp == clock.now
    assert stored.status_history[-1].notes == "Checked"


@pytest.mark.asyncio
async def test_concurrent_advances_serialize(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)

    await asyncio.gather(
        order_service.advance(order.id, "employee-001"),
        order_service.advance(order.id, "employee-002"),
    )

    stored = await order_service.get_order(order.id)
    assert stored.status == OrderStatus.INITIATED
    assert [entry.status for entry in stored.status_history] == [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.INITIATED,
    ]


@pytest.mark.asyncio
async def test_cancel_restores_stock(
    order_service: OrderService, menu_repository, delivery_slot
) -> None:
    order = await place(order_service, delivery_slot)
    assert (await menu_repository.get("menu-1")).stock == 4

    cancelled = await order_service.cancel(order.id, "employee-001", "Customer request")

    assert cancelled.status == OrderStatus.CANCELLED
    assert (await menu_repository.get("menu-1")).stock == 5


@pytest.mark.asyncio
async def test_cancel_twice(order_service: OrderService, menu_repository, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)
    await order_service.cancel(order.id, "employee-001", "Duplicate")

    with pytest.raises(InvalidTransition):
        await order_service.cancel(order.id, "employee-001", "Again")
    assert (await menu_repository.get("menu-1")).stock == 5


@pytest.mark.asyncio
async def test_reschedule_updates_priority(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)
    assert order.priority == OrderPriority.MEDIUM

    rescheduled = await order_service.reschedule(
        order.id, date(2026, 3, 2), time(20, 0), "employee-001"
    )

    assert rescheduled.priority == OrderPriority.URGENT
    assert rescheduled.delivery_at.isoformat() == "2026-03-02T20:00:00+01:00"
    assert "rescheduled" in rescheduled.notes[-1]


@pytest.mark.asyncio
async def test_reschedule_terminal_order(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)
    await order_service.cancel(order.id, "employee-001", None)

    with pytest.raises(InvalidTransition):
        await order_service.reschedule(order.id, date(2026, 3, 9), time(12, 0), "employee-001")


@pytest.mark.asyncio
async def test_equipment_return_flow(order_service: OrderService, clock, delivery_slot) -> None:
    order = await place(order_service, delivery_slot, headcount=25)
    for _ in range(8):
        clock.advance(minutes=30)
        order = await order_service.advance(order.id, "employee-001")
    assert order.status == OrderStatus.DELIVERED
    assert order.equipment.status == EquipmentStatus.DELIVERED

    clock.advance(hours=24)
    returned = await order_service.return_equipment(order.id, "employee-001")

    assert returned.equipment.status == EquipmentStatus.RETURNED
    assert returned.equipment.returned_at == clock.now


@pytest.mark.asyncio
async def test_return_without_equipment(order_service: OrderService, delivery_slot) -> None:
    order = await place(order_service, delivery_slot)

    with pytest.raises(NotApplicable):
        await order_service.return_equipment(order.id, "employee-001")


@pytest.mark.asyncio
async def test_kanban_lists_live_orders(order_service: OrderService, delivery_slot) -> None:
    kept = await place(order_service, delivery_slot)
    dropped = await place(order_service, delivery_slot)
    await order_service.advance(kept.id, "employee-001")
    await order_service.cancel(dropped.id, "employee-001", None)

    board = await order_service.kanban(assigned_to="employee-001")

    assert board.summary.total == 1
    assert board.summary.to_initiate == 1
    assert board.summary.mine == 1
    assert [o.id for o in board.column(OrderStatus.CONFIRMED).orders] == [kept.id]


class UnsavableRepository(InMemoryOrderRepository):
    async def save(self, order) -> None:
        raise ConnectionError("storage unavailable")


@pytest.mark.asyncio
async def test_failed_save_restores_stock(
    menu_repository, geocoder, settings, clock, delivery_slot
) -> None:
    service = OrderService(
        UnsavableRepository(), menu_repository, geocoder, settings=settings, clock=clock
    )

    with pytest.raises(ConnectionError):
        await place(service, delivery_slot)

    assert (await menu_repository.get("menu-1")).stock == 5


@pytest.mark.asyncio
async def test_order_number_format(order_service: OrderService, delivery_slot) -> None:
    first = await place(order_service, delivery_slot)
    second = await place(order_service, delivery_slot)

    assert re.fullmatch(r"ORD-20260302-[A-Z0-9]{6}", first.order_number)
    assert (await order_service.get_order(first.id)).order_number == first.order_number
    assert first.order_number != second.order_number


async def place_history(service: OrderService, clock, delivery_slot):
    """Five orders an hour apart: client-001 owns three, client-002 two."""
    orders = []
    for customer in ["client-001", "client-002", "client-001", "client-002", "client-001"]:
        orders.append(
            await place(service, delivery_slot, customer_id=customer, menu_id="menu-4", headcount=15)
        )
        clock.advance(hours=1)
    return orders


@pytest.mark.asyncio
async def test_list_orders_newest_first(order_service: OrderService, clock, delivery_slot) -> None:
    orders = await place_history(order_service, clock, delivery_slot)

    page = await order_service.list_orders()

    assert [o.id for o in page.orders] == [o.id for o in reversed(orders)]
    assert (page.total, page.page, page.limit, page.total_pages) == (5, 1, 10, 1)


@pytest.mark.asyncio
async def test_list_orders_paging(order_service: OrderService, clock, delivery_slot) -> None:
    orders = await place_history(order_service, clock, delivery_slot)

    page = await order_service.list_orders(page=2, limit=2)

    assert [o.id for o in page.orders] == [orders[2].id, orders[1].id]
    assert page.total == 5
    assert page.total_pages == 3

    beyond = await order_service.list_orders(page=4, limit=2)
    assert beyond.orders == []
    assert beyond.total == 5


@pytest.mark.asyncio
async def test_list_orders_filters(order_service: OrderService, clock, delivery_slot) -> None:
    orders = await place_history(order_service, clock, delivery_slot)
    await order_service.cancel(orders[0].id, "employee-001", "Duplicate")
    await order_service.advance(orders[1].id, "employee-001")

    mine = await order_service.list_orders(customer_id="client-001")
    assert [o.id for o in mine.orders] == [orders[4].id, orders[2].id, orders[0].id]

    cancelled = await order_service.list_orders(status=OrderStatus.CANCELLED)
    assert [o.id for o in cancelled.orders] == [orders[0].id]

    pending = await order_service.list_orders(status=OrderStatus.PENDING, customer_id="client-002")
    assert [o.id for o in pending.orders] == [orders[3].id]

    empty = await order_service.list_orders(customer_id="client-999")
    assert (empty.total, empty.total_pages) == (0, 0)


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 101)])
async def test_list_orders_rejects_bad_paging(order_service: OrderService, page, limit) -> None:
    with pytest.raises(ValidationError):
        await order_service.list_orders(page=page, limit=limit)
