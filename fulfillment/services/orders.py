"""Order service: the entry point used by the API and scripts."""

import math
from collections.abc import Awaitable, Callable
from datetime import date, datetime, time
from uuid import UUID

from fulfillment.config import Settings, get_settings
from fulfillment.errors import (
    GeocodingError,
    InvalidTransition,
    MenuNotFound,
    OrderNotFound,
    ValidationError,
)
from fulfillment.models.order import (
    EquipmentLoan,
    Order,
    OrderPage,
    OrderStatus,
    PriceBreakdown,
    generate_order_number,
)
from fulfillment.services.geocoding import Geocoder, GeocodeResult
from fulfillment.state.repository import MenuRepository, OrderRepository
from fulfillment.utils.clock import combine_local, utcnow
from fulfillment.utils.logging import get_logger
from fulfillment.workflow.equipment import EquipmentLifecycle
from fulfillment.workflow.kanban import KanbanBoard, KanbanProjector
from fulfillment.workflow.pricing import PricingEngine
from fulfillment.workflow.priority import PriorityCalculator
from fulfillment.workflow.status import StatusEngine

logger = get_logger(__name__)

CREATION_NOTE = "Order placed by customer"
PRICING_FALLBACK_NOTE = (
    "Delivery distance unavailable ({reason}); flat local fee applied, "
    "reprice once the address resolves"
)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

Mutation = Callable[[Order, datetime], Awaitable[None] | None]


class OrderService:
    """
    Orchestrates the workflow engines around the persistence collaborators.

    Every mutating call loads the order, changes it and saves it while holding
    the repository lock for that order id.
    """

    def __init__(
        self,
        orders: OrderRepository,
        menus: MenuRepository,
        geocoder: Geocoder,
        settings: Settings | None = None,
        pricing: PricingEngine | None = None,
        equipment: EquipmentLifecycle | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = orders
        self.menus = menus
        self.geocoder = geocoder
        self.settings = settings or get_settings()
        self.pricing = pricing or PricingEngine.from_settings(self.settings)
        self.equipment = equipment or EquipmentLifecycle.from_settings(self.settings)
        self.status_engine = StatusEngine(self.equipment)
        self.projector = KanbanProjector()
        self.clock = clock

    async def create_order(
        self,
        customer_id: str,
        menu_id: str,
        headcount: int,
        delivery_address: str,
        delivery_city: str,
        delivery_date: date | None,
        delivery_time: time | None,
        delivery_postal_code: str | None = None,
        cooking_required: bool | None = None,
        special_requests: str | None = None,
        dietary_restrictions: str | None = None,
        allergies: str | None = None,
    ) -> Order:
        """
        Create a pending order.

        Pricing is computed once here from the menu and the geocoded
        address. If geocoding fails the order is still created with the flat
        local fee and a note asking for a reprice.

        Raises:
            MenuNotFound: Unknown menu
            ValidationError: Headcount below the menu minimum, missing
                delivery date or time, or menu out of stock
        """
        menu = await self.menus.get(menu_id)
        if menu is None:
            raise MenuNotFound(menu_id)

        if delivery_date is None or delivery_time is None:
            raise ValidationError("Delivery date and time are required")
        if headcount < menu.min_persons:
            raise ValidationError(
                f"Menu {menu.title} requires at least {menu.min_persons} persons, "
                f"got {headcount}"
            )
        if not menu.is_available:
            raise ValidationError(f"Menu {menu.title} is out of stock")

        now = self.clock()
        notes: list[str] = []
        pricing_fallback = False
        try:
            location = await self.geocoder.locate(
                delivery_address, delivery_city, delivery_postal_code
            )
        except GeocodingError as exc:
            logger.warning(
                "pricing_fallback",
                menu_id=menu_id,
                city=delivery_city,
                error=exc.message,
            )
            location = GeocodeResult(is_local=False, distance_km=0.0)
            pricing_fallback = True
            notes.append(PRICING_FALLBACK_NOTE.format(reason=exc.message))

        breakdown = self._price(
            menu.price_per_person, headcount, menu.min_persons, location
        )
        delivery_at = combine_local(delivery_date, delivery_time, self.settings.timezone)

        order = Order(
            order_number=generate_order_number(now),
            customer_id=customer_id,
            menu_id=menu.id,
            menu_title=menu.title,
            headcount=headcount,
            delivery_address=delivery_address,
            delivery_city=delivery_city,
            delivery_postal_code=delivery_postal_code,
            delivery_date=delivery_date,
            delivery_time=delivery_time,
            delivery_at=delivery_at,
            special_requests=special_requests,
            dietary_restrictions=dietary_restrictions,
            allergies=allergies,
            price_per_person=menu.price_per_person,
            min_persons=menu.min_persons,
            pricing_fallback=pricing_fallback,
            priority=PriorityCalculator.priority(delivery_at, now),
            cooking_required=(
                menu.cooking_required if cooking_required is None else cooking_required
            ),
            equipment=EquipmentLoan(status=self.equipment.initial_status(headcount)),
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order.apply_pricing(breakdown)
        order.record_status(OrderStatus.PENDING, now, notes=CREATION_NOTE)

        await self.menus.adjust_stock(menu.id, -1)
        try:
            async with self.orders.lock(order.id):
                await self.orders.save(order)
        except Exception:
            # The order does not exist; hand its unit of stock back
            await self.menus.adjust_stock(menu.id, 1)
            logger.warning("order_save_failed_stock_restored", menu_id=menu.id)
            raise

        logger.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=customer_id,
            menu_id=menu.id,
            headcount=headcount,
            total=str(order.total),
            priority=order.priority.value,
            equipment=order.equipment.status.value,
        )
        return order

    async def get_order(self, order_id: UUID) -> Order:
        order = await self.orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        customer_id: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> OrderPage:
        """
        List orders newest first, terminal ones included.

        Args:
            status: Keep only orders currently in this status
            customer_id: Keep only this customer's orders
            page: 1-based page number
            limit: Page size, at most MAX_PAGE_SIZE

        Returns:
            OrderPage with the requested slice and paging totals
        """
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        orders = [
            order
            for order in await self.orders.list_all()
            if (status is None or order.status == status)
            and (customer_id is None or order.customer_id == customer_id)
        ]
        orders.sort(key=lambda o: (o.created_at, o.order_number), reverse=True)

        start = (page - 1) * limit
        return OrderPage(
            orders=orders[start : start + limit],
            total=len(orders),
            page=page,
            limit=limit,
            total_pages=math.ceil(len(orders) / limit),
        )

    async def advance(
        self,
        order_id: UUID,
        actor_id: str | None,
        notes: str | None = None,
    ) -> Order:
        """Move an order to its next stage."""

        def step(order: Order, now: datetime) -> None:
            self.status_engine.advance(order, actor_id, now, notes=notes)

        return await self._mutate(order_id, step)

    async def cancel(self, order_id: UUID, actor_id: str | None, reason: str | None) -> Order:
        """Cancel an order and give its unit of menu stock back."""

        def step(order: Order, now: datetime) -> None:
            self.status_engine.cancel(order, actor_id, reason, now)

        order = await self._mutate(order_id, step)

        try:
            await self.menus.adjust_stock(order.menu_id, 1)
        except MenuNotFound:
            logger.warning(
                "stock_restore_skipped",
                order_id=str(order_id),
                menu_id=order.menu_id,
            )
        return order

    async def return_equipment(self, order_id: UUID, actor_id: str | None) -> Order:
        """Record the loaned equipment coming back."""

        def step(order: Order, now: datetime) -> None:
            self.equipment.on_returned(order, actor_id, now)

        return await self._mutate(order_id, step)

    async def reschedule(
        self,
        order_id: UUID,
        delivery_date: date,
        delivery_time: time,
        actor_id: str | None,
    ) -> Order:
        """Move the delivery slot and re-derive the priority immediately."""

        def step(order: Order, now: datetime) -> None:
            self._require_open(order, "rescheduled")
            order.delivery_date = delivery_date
            order.delivery_time = delivery_time
            order.delivery_at = combine_local(
                delivery_date, delivery_time, self.settings.timezone
            )
            PriorityCalculator.refresh(order, now)
            order.notes.append(
                f"Delivery rescheduled to {order.delivery_at.isoformat()} by {actor_id or 'system'}"
            )
            order.updated_at = now

        return await self._mutate(order_id, step)

    async def reprice(self, order_id: UUID, actor_id: str | None) -> Order:
        """
        Geocode the address again and recompute the pricing fields.

        This is the correction path for orders created with the flat-fee
        fallback; a geocoding failure here is reported to the caller.
        """
        order = await self.get_order(order_id)
        self._require_open(order, "repriced")
        location = await self.geocoder.locate(
            order.delivery_address, order.delivery_city, order.delivery_postal_code
        )

        async def step(order: Order, now: datetime) -> None:
            self._require_open(order, "repriced")
            previous_total = order.total
            order.apply_pricing(
                self._price(order.price_per_person, order.headcount, order.min_persons, location)
            )
            order.pricing_fallback = False
            order.notes.append(
                f"Repriced by {actor_id or 'system'}: {previous_total} -> {order.total}"
            )
            order.updated_at = now
            logger.info(
                "order_repriced",
                order_id=str(order.id),
                previous_total=str(previous_total),
                total=str(order.total),
            )

        return await self._mutate(order_id, step)

    async def kanban(self, assigned_to: str | None = None) -> KanbanBoard:
        """Board of live orders, optionally restricted to one staff member."""
        orders = await self.orders.list_live()
        return self.projector.project(orders, assigned_to=assigned_to)

    def _price(self, price_per_person, headcount, min_persons, location: GeocodeResult) -> PriceBreakdown:
        return self.pricing.price(
            price_per_person=price_per_person,
            headcount=headcount,
            min_persons=min_persons,
            distance_km=location.distance_km,
            is_local=location.is_local,
        )

    @staticmethod
    def _require_open(order: Order, action: str) -> None:
        if order.is_terminal:
            raise InvalidTransition(
                f"Order is {order.status.value}; it cannot be {action}",
                order_id=order.id,
                current=order.status.value,
            )

    async def _mutate(self, order_id: UUID, mutation: Mutation) -> Order:
        async with self.orders.lock(order_id):
            order = await self.orders.get(order_id)
            if order is None:
                raise OrderNotFound(order_id)

            result = mutation(order, self.clock())
            if result is not None:
                await result

            await self.orders.save(order)
            return order
