"""Data models for the fulfillment core."""

from fulfillment.models.menu import SAMPLE_MENUS, Menu
from fulfillment.models.order import (
    EquipmentLoan,
    EquipmentStatus,
    Order,
    OrderPriority,
    OrderPage,
    OrderStatus,
    PriceBreakdown,
    StatusHistoryEntry,
    TERMINAL_STATUSES,
    generate_order_number,
)

__all__ = [
    # Menu
    "Menu",
    "SAMPLE_MENUS",
    # Order
    "Order",
    "OrderPage",
    "generate_order_number",
    "OrderStatus",
    "OrderPriority",
    "StatusHistoryEntry",
    "TERMINAL_STATUSES",
    "PriceBreakdown",
    # Equipment
    "EquipmentLoan",
    "EquipmentStatus",
]
