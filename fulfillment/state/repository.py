"""Order and menu repositories.

Every mutation of an order goes through ``OrderRepository.lock(order_id)``;
request handlers and the background sweep share that single serialization
point. An order is stored as one JSON document, so its status and status
history are always written together.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from uuid import UUID

from redis.exceptions import LockError

from fulfillment.config import Settings, get_settings
from fulfillment.errors import FulfillmentError, MenuBusy, MenuNotFound, OrderBusy, ValidationError
from fulfillment.models.menu import Menu
from fulfillment.models.order import Order
from fulfillment.state.manager import StateManager
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

LIVE_ORDERS_KEY = "orders:live"
ALL_ORDERS_KEY = "orders:all"


def order_key(order_id: UUID) -> str:
    return f"order:{order_id}"


def menu_key(menu_id: str) -> str:
    return f"menu:{menu_id}"


class OrderRepository(ABC):
    """Persistence collaborator for orders."""

    @abstractmethod
    async def get(self, order_id: UUID) -> Order | None:
        """Load an order by id."""

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Persist the full order state."""

    @abstractmethod
    async def list_live(self) -> list[Order]:
        """Orders still in progress or with equipment outstanding."""

    @abstractmethod
    async def list_all(self) -> list[Order]:
        """Every order ever saved, terminal ones included."""

    @abstractmethod
    def lock(self, order_id: UUID) -> AbstractAsyncContextManager[None]:
        """Exclusive access to one order."""


class MenuRepository(ABC):
    """Read access to menus plus their stock counter."""

    @abstractmethod
    async def get(self, menu_id: str) -> Menu | None:
        """Load a menu by id."""

    @abstractmethod
    async def save(self, menu: Menu) -> None:
        """Persist a menu."""

    @abstractmethod
    async def adjust_stock(self, menu_id: str, delta: int) -> Menu:
        """Add delta to the stock counter; untracked stock is left as is."""


def _apply_stock_delta(menu: Menu, delta: int) -> Menu:
    if menu.stock is None:
        return menu
    stock = menu.stock + delta
    if stock < 0:
        raise ValidationError(f"Menu {menu.id} is out of stock")
    return menu.model_copy(update={"stock": stock})


class InMemoryOrderRepository(OrderRepository):
    """Process-local repository, used in development and tests."""

    def __init__(self) -> None:
        # Documents are kept serialized so callers never share instances
        self._documents: dict[UUID, str] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}
        # Tasks holding or waiting for each lock
        self._lock_users: dict[UUID, int] = {}

    async def get(self, order_id: UUID) -> Order | None:
        document = self._documents.get(order_id)
        if document is None:
            return None
        return Order.model_validate_json(document)

    async def save(self, order: Order) -> None:
        self._documents[order.id] = order.model_dump_json()

    async def list_live(self) -> list[Order]:
        return [order for order in await self.list_all() if order.is_live]

    async def list_all(self) -> list[Order]:
        return [Order.model_validate_json(doc) for doc in self._documents.values()]

    @property
    def lock_count(self) -> int:
        """Number of per-order locks currently kept."""
        return len(self._locks)

    @asynccontextmanager
    async def lock(self, order_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(order_id, asyncio.Lock())
        self._lock_users[order_id] = self._lock_users.get(order_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[order_id] -= 1
            if self._lock_users[order_id] == 0:
                del self._lock_users[order_id]
                if not await self._is_live(order_id):
                    del self._locks[order_id]

    async def _is_live(self, order_id: UUID) -> bool:
        order = await self.get(order_id)
        return order is not None and order.is_live


class InMemoryMenuRepository(MenuRepository):
    def __init__(self, menus: list[Menu] | None = None) -> None:
        self._menus: dict[str, Menu] = {menu.id: menu for menu in menus or []}
        self._lock = asyncio.Lock()

    async def get(self, menu_id: str) -> Menu | None:
        return self._menus.get(menu_id)

    async def save(self, menu: Menu) -> None:
        self._menus[menu.id] = menu

    async def adjust_stock(self, menu_id: str, delta: int) -> Menu:
        async with self._lock:
            menu = self._menus.get(menu_id)
            if menu is None:
                raise MenuNotFound(menu_id)
            menu = _apply_stock_delta(menu, delta)
            self._menus[menu_id] = menu
            return menu


@asynccontextmanager
async def _redis_lock(
    state: StateManager,
    name: str,
    settings: Settings,
    busy: Callable[[str], FulfillmentError],
) -> AsyncIterator[None]:
    """Hold a Redis lock, raising the domain busy error when it is not acquired."""
    lock = state.lock(
        name,
        timeout=settings.order_lock_timeout,
        blocking_timeout=settings.order_lock_wait,
    )
    try:
        acquired = await lock.acquire()
    except LockError as exc:
        raise busy(str(exc)) from exc
    if not acquired:
        raise busy("Lock not acquired in time, retry shortly")
    try:
        yield
    finally:
        try:
            await lock.release()
        except LockError:
            # Expired while held; the write above already happened
            logger.warning("lock_expired", lock=name)


class RedisOrderRepository(OrderRepository):
    """Orders stored as JSON documents in Redis with live and full indexes."""

    def __init__(self, state: StateManager):
        self.state = state
        self.settings = get_settings()

    async def get(self, order_id: UUID) -> Order | None:
        data = await self.state.get(order_key(order_id))
        if not data:
            return None
        return Order.model_validate(data)

    async def save(self, order: Order) -> None:
        if order.is_live:
            add_to, remove_from = [ALL_ORDERS_KEY, LIVE_ORDERS_KEY], []
        else:
            add_to, remove_from = [ALL_ORDERS_KEY], [LIVE_ORDERS_KEY]

        await self.state.save_indexed(
            order_key(order.id),
            order.model_dump(mode="json"),
            member=str(order.id),
            add_to=add_to,
            remove_from=remove_from,
        )
        logger.debug("order_saved", order_id=str(order.id), status=order.status.value)

    async def list_live(self) -> list[Order]:
        return await self._load_index(LIVE_ORDERS_KEY)

    async def list_all(self) -> list[Order]:
        return await self._load_index(ALL_ORDERS_KEY)

    async def _load_index(self, index: str) -> list[Order]:
        members = sorted(await self.state.members(index))
        documents = await self.state.get_many([order_key(UUID(m)) for m in members])
        return [Order.model_validate(doc) for doc in documents if doc]

    def lock(self, order_id: UUID) -> AbstractAsyncContextManager[None]:
        return _redis_lock(
            self.state,
            f"lock:{order_key(order_id)}",
            self.settings,
            lambda reason: OrderBusy(
                f"Order is being updated, retry shortly ({reason})", order_id=order_id
            ),
        )


class RedisMenuRepository(MenuRepository):
    def __init__(self, state: StateManager):
        self.state = state
        self.settings = get_settings()

    async def get(self, menu_id: str) -> Menu | None:
        data = await self.state.get(menu_key(menu_id))
        if not data:
            return None
        return Menu.model_validate(data)

    async def save(self, menu: Menu) -> None:
        await self.state.set(menu_key(menu.id), menu.model_dump(mode="json"))

    async def adjust_stock(self, menu_id: str, delta: int) -> Menu:
        async with _redis_lock(
            self.state,
            f"lock:{menu_key(menu_id)}",
            self.settings,
            lambda reason: MenuBusy(menu_id, f"Menu {menu_id} stock is busy ({reason})"),
        ):
            menu = await self.get(menu_id)
            if menu is None:
                raise MenuNotFound(menu_id)
            menu = _apply_stock_delta(menu, delta)
            await self.save(menu)
            return menu
