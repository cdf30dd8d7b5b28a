"""Order-related data models."""

import secrets
import string
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from fulfillment.utils.clock import utcnow

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(at: datetime | None = None) -> str:
    """Human readable reference, e.g. ORD-20260302-7KQ2ZD."""
    at = at or utcnow()
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(6))
    return f"ORD-{at:%Y%m%d}-{suffix}"


class OrderStatus(str, Enum):
    """Order status progression."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    INITIATED = "initiated"
    PREP_INGREDIENTS = "prep_ingredients"
    ASSEMBLY = "assembly"
    COOKING = "cooking"
    PACKAGING = "packaging"
    DELIVERY = "delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    LATE_EQUIPMENT = "late_equipment"

    @property
    def label(self) -> str:
        """Human readable label used in the status history."""
        return STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


STATUS_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Awaiting validation",
    OrderStatus.CONFIRMED: "Order confirmed",
    OrderStatus.INITIATED: "Initiated",
    OrderStatus.PREP_INGREDIENTS: "Preparing ingredients",
    OrderStatus.ASSEMBLY: "Assembly",
    OrderStatus.COOKING: "Cooking",
    OrderStatus.PACKAGING: "Packaging",
    OrderStatus.DELIVERY: "Out for delivery",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
    OrderStatus.LATE_EQUIPMENT: "Equipment not returned",
}

TERMINAL_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.LATE_EQUIPMENT}
)


class OrderPriority(str, Enum):
    """Urgency tier derived from the delivery date."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key, most urgent first."""
        return PRIORITY_RANK[self]


PRIORITY_RANK: dict[OrderPriority, int] = {
    OrderPriority.URGENT: 0,
    OrderPriority.HIGH: 1,
    OrderPriority.MEDIUM: 2,
    OrderPriority.LOW: 3,
}


class EquipmentStatus(str, Enum):
    """Loaned serving equipment states."""

    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"
    DELIVERED = "delivered"
    RETURNED = "returned"
    LATE = "late"
    CHARGED = "charged"

    @property
    def is_outstanding(self) -> bool:
        """Equipment is at the customer's and not yet settled."""
        return self in (EquipmentStatus.DELIVERED, EquipmentStatus.LATE)


class StatusHistoryEntry(BaseModel):
    """One recorded transition."""

    status: OrderStatus
    label: str
    timestamp: datetime
    actor: str | None = None
    notes: str | None = None


class EquipmentLoan(BaseModel):
    """Equipment lent with the order."""

    status: EquipmentStatus = EquipmentStatus.NOT_APPLICABLE
    delivered_at: datetime | None = None
    due_at: datetime | None = None
    returned_at: datetime | None = None
    penalty: Decimal = Field(default=Decimal("0.00"), ge=0)


class PriceBreakdown(BaseModel):
    """Result of a pricing calculation."""

    subtotal: Decimal
    discount: Decimal
    delivery_fee: Decimal
    total: Decimal
    distance_km: Decimal = Decimal("0")
    is_local: bool = True


class Order(BaseModel):
    """Catering order aggregate."""

    id: UUID = Field(default_factory=uuid4)
    order_number: str = Field(default_factory=generate_order_number)
    customer_id: str
    menu_id: str
    menu_title: str | None = None

    # Fulfillment inputs
    headcount: int = Field(ge=1)
    delivery_address: str
    delivery_city: str
    delivery_postal_code: str | None = None
    delivery_date: date
    delivery_time: time
    delivery_at: datetime
    special_requests: str | None = None
    dietary_restrictions: str | None = None
    allergies: str | None = None

    # Pricing
    price_per_person: Decimal = Field(default=Decimal("0.00"), ge=0)
    min_persons: int = Field(default=1, ge=1)
    subtotal: Decimal = Field(default=Decimal("0.00"), ge=0)
    discount: Decimal = Field(default=Decimal("0.00"), ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    total: Decimal = Field(default=Decimal("0.00"), ge=0)
    distance_km: Decimal = Field(default=Decimal("0"), ge=0)
    is_local: bool = True
    pricing_fallback: bool = False

    # Workflow
    status: OrderStatus = OrderStatus.PENDING
    priority: OrderPriority = OrderPriority.LOW
    assigned_to: str | None = None
    cooking_required: bool = True
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)
    equipment: EquipmentLoan = Field(default_factory=EquipmentLoan)

    # Metadata
    notes: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_live(self) -> bool:
        """Still of interest to the sweep."""
        return not self.is_terminal or self.equipment.status.is_outstanding

    def apply_pricing(self, breakdown: PriceBreakdown) -> None:
        """Write all pricing fields from one calculation."""
        self.subtotal = breakdown.subtotal
        self.discount = breakdown.discount
        self.delivery_fee = breakdown.delivery_fee
        self.total = breakdown.total
        self.distance_km = breakdown.distance_km
        self.is_local = breakdown.is_local

    def record_status(
        self,
        status: OrderStatus,
        at: datetime,
        actor: str | None = None,
        notes: str | None = None,
    ) -> StatusHistoryEntry:
        """Set the status and append its history entry in one step."""
        if self.status_history and at <= self.status_history[-1].timestamp:
            at = self.status_history[-1].timestamp + timedelta(microseconds=1)

        entry = StatusHistoryEntry(
            status=status,
            label=status.label,
            timestamp=at,
            actor=actor,
            notes=notes,
        )
        self.status = status
        self.status_history.append(entry)
        if status != OrderStatus.PENDING and self.assigned_to is None and actor:
            self.assigned_to = actor
        self.updated_at = at
        return entry


class OrderPage(BaseModel):
    """One page of an order listing, newest first."""

    orders: list[Order]
    total: int
    page: int
    limit: int
    total_pages: int
