"""Pytest configuration and fixtures."""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable

import pytest

from fulfillment.config import Settings
from fulfillment.models.menu import Menu
from fulfillment.models.order import EquipmentLoan, Order, OrderStatus
from fulfillment.services.geocoding import StaticGeocoder
from fulfillment.services.orders import OrderService
from fulfillment.services.sweep import Sweeper
from fulfillment.state.repository import InMemoryMenuRepository, InMemoryOrderRepository
from fulfillment.workflow.equipment import EquipmentLifecycle
from fulfillment.workflow.status import StatusEngine

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only, never read from a local .env."""
    return Settings(_env_file=None, storage_backend="memory", log_format="text")


# Sample data fixtures


@pytest.fixture
def gourmand_menu() -> Menu:
    return Menu(
        id="menu-1",
        title="Menu Gourmand",
        price_per_person=Decimal("45"),
        min_persons=10,
        cooking_required=True,
        stock=5,
    )


@pytest.fixture
def aperitif_menu() -> Menu:
    return Menu(
        id="menu-4",
        title="Menu Apéritif",
        price_per_person=Decimal("25"),
        min_persons=15,
        cooking_required=False,
    )


@pytest.fixture
def geocoder() -> StaticGeocoder:
    return StaticGeocoder(local_city="Bordeaux", distances={"Mérignac": 10.0})


@pytest.fixture
def order_repository() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def menu_repository(gourmand_menu: Menu, aperitif_menu: Menu) -> InMemoryMenuRepository:
    return InMemoryMenuRepository([gourmand_menu, aperitif_menu])


@pytest.fixture
def order_service(
    order_repository: InMemoryOrderRepository,
    menu_repository: InMemoryMenuRepository,
    geocoder: StaticGeocoder,
    settings: Settings,
    clock: FrozenClock,
) -> OrderService:
    return OrderService(
        order_repository,
        menu_repository,
        geocoder,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def sweeper(
    order_repository: InMemoryOrderRepository,
    order_service: OrderService,
    settings: Settings,
    clock: FrozenClock,
) -> Sweeper:
    return Sweeper(
        order_repository,
        equipment=order_service.equipment,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def equipment() -> EquipmentLifecycle:
    return EquipmentLifecycle()


@pytest.fixture
def status_engine(equipment: EquipmentLifecycle) -> StatusEngine:
    return StatusEngine(equipment)


@pytest.fixture
def make_order(equipment: EquipmentLifecycle) -> Callable[..., Order]:
    """Build an order directly, bypassing the service."""

    def factory(
        headcount: int = 12,
        status: OrderStatus = OrderStatus.PENDING,
        cooking_required: bool = True,
        delivery_at: datetime = START + timedelta(days=3),
        **overrides,
    ) -> Order:
        order = Order(
            customer_id="client-001",
            menu_id="menu-1",
            headcount=headcount,
            delivery_address="42 Quai des Chartrons",
            delivery_city="Bordeaux",
            delivery_date=delivery_at.date(),
            delivery_time=delivery_at.time(),
            delivery_at=delivery_at,
            cooking_required=cooking_required,
            equipment=EquipmentLoan(status=equipment.initial_status(headcount)),
            **overrides,
        )
        order.record_status(OrderStatus.PENDING, START, notes="Order placed by customer")
        if status != OrderStatus.PENDING:
            order.status = status
        return order

    return factory


@pytest.fixture
def delivery_slot() -> tuple[date, time]:
    """A Paris delivery slot three days after START."""
    return date(2026, 3, 5), time(19, 0)
