"""Seed menus and a few sample orders into Redis."""

import asyncio
from datetime import time, timedelta
from zoneinfo import ZoneInfo

from fulfillment.config import get_settings
from fulfillment.models.menu import SAMPLE_MENUS
from fulfillment.services.geocoding import build_geocoder
from fulfillment.services.orders import OrderService
from fulfillment.state.manager import StateManager
from fulfillment.state.repository import RedisMenuRepository, RedisOrderRepository
from fulfillment.utils.clock import utcnow

SAMPLE_ORDERS = [
    # customer, menu, headcount, address, city, postal code, days ahead, hour
    ("client-001", "menu-1", 25, "42 Quai des Chartrons", "Bordeaux", "33000", 2, 19),
    ("client-002", "menu-4", 15, "8 Place de la Bourse", "Bordeaux", "33000", 0, 12),
    ("client-003", "menu-2", 12, "5 Avenue Jean Jaurès", "Mérignac", "33700", 1, 13),
    ("client-004", "menu-3", 30, "78 Route de Toulouse", "Pessac", "33600", 6, 20),
]

STAFF = ["employee-001", "employee-002"]


async def seed_menus(state_manager: StateManager) -> None:
    """Seed the menu catalog used by order creation."""
    print("Seeding menus...")

    menus = RedisMenuRepository(state_manager)
    for menu in SAMPLE_MENUS:
        await menus.save(menu)
        stock = "untracked" if menu.stock is None else menu.stock
        print(f"  ✓ Added {menu.title} ({menu.price_per_person}€/person, stock: {stock})")

    print("✓ Menus seeded successfully\n")


async def seed_orders(state_manager: StateManager) -> None:
    """Seed sample orders at different workflow stages."""
    print("Seeding sample orders...")

    settings = get_settings()
    service = OrderService(
        RedisOrderRepository(state_manager),
        RedisMenuRepository(state_manager),
        build_geocoder(settings),
        settings=settings,
    )

    today = utcnow().astimezone(ZoneInfo(settings.timezone)).date()
    for i, (customer, menu_id, people, address, city, postal, days, hour) in enumerate(
        SAMPLE_ORDERS
    ):
        order = await service.create_order(
            customer_id=customer,
            menu_id=menu_id,
            headcount=people,
            delivery_address=address,
            delivery_city=city,
            delivery_postal_code=postal,
            delivery_date=today + timedelta(days=days),
            delivery_time=time(hour, 0),
        )
        # Spread the orders across the board
        for _ in range(i * 2):
            order = await service.advance(order.id, STAFF[i % len(STAFF)])

        print(
            f"  ✓ Order {order.order_number} ({order.menu_title}, {people} persons, "
            f"{order.total}€, {order.status.value}, {order.priority.value})"
        )

    print("✓ Sample orders seeded successfully\n")


async def main() -> None:
    """Run all seed functions."""
    print("\n" + "=" * 50)
    print("  Seeding Catering Fulfillment Data")
    print("=" * 50 + "\n")

    state_manager = StateManager()
    await state_manager.connect()
    try:
        await seed_menus(state_manager)
        await seed_orders(state_manager)
    finally:
        await state_manager.disconnect()

    print("=" * 50)
    print("  ✓ All data seeded successfully!")
    print("=" * 50 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
