"""Domain errors raised by the fulfillment core.

Every error is scoped to a single order (or menu) and is recoverable by the
caller; none of them should take the process down.
"""

from uuid import UUID


class FulfillmentError(Exception):
    """Base class for fulfillment errors."""

    def __init__(self, message: str, order_id: UUID | None = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id


class NotFound(FulfillmentError):
    """A referenced record does not exist."""


class OrderNotFound(NotFound):
    """No order with the given id."""

    def __init__(self, order_id: UUID):
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class MenuNotFound(NotFound):
    """No menu with the given id."""

    def __init__(self, menu_id: str):
        super().__init__(f"Menu {menu_id} not found")
        self.menu_id = menu_id


class InvalidTransition(FulfillmentError):
    """The requested transition is not allowed from the current state."""

    def __init__(self, message: str, order_id: UUID | None = None, current: str | None = None):
        super().__init__(message, order_id=order_id)
        self.current = current


class ValidationError(FulfillmentError):
    """Order inputs are rejected; the order is not created or changed."""


class EquipmentError(FulfillmentError):
    """Base class for equipment-return errors."""


class NotApplicable(EquipmentError):
    """The order never carried an equipment loan."""


class AlreadyCharged(EquipmentError):
    """The equipment penalty was already charged; a return no longer applies."""


class GeocodingError(FulfillmentError):
    """The geocoding collaborator could not resolve an address."""


class OrderBusy(FulfillmentError):
    """Another operation holds the order's lock; the caller may retry."""


class MenuBusy(FulfillmentError):
    """Another operation holds the menu's stock lock; the caller may retry."""

    def __init__(self, menu_id: str, message: str | None = None):
        super().__init__(message or f"Menu {menu_id} stock is being updated, retry shortly")
        self.menu_id = menu_id
