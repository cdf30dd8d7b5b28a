"""State management modules."""

from fulfillment.state.manager import StateManager
from fulfillment.state.repository import (
    InMemoryMenuRepository,
    InMemoryOrderRepository,
    MenuRepository,
    OrderRepository,
    RedisMenuRepository,
    RedisOrderRepository,
)

__all__ = [
    "StateManager",
    "OrderRepository",
    "MenuRepository",
    "InMemoryOrderRepository",
    "InMemoryMenuRepository",
    "RedisOrderRepository",
    "RedisMenuRepository",
]
