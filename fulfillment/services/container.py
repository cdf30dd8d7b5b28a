"""Wiring of repositories, collaborators and services for the running app."""

from dataclasses import dataclass

from fulfillment.config import Settings, get_settings
from fulfillment.models.menu import SAMPLE_MENUS
from fulfillment.services.geocoding import Geocoder, NominatimGeocoder, build_geocoder
from fulfillment.services.orders import OrderService
from fulfillment.services.sweep import Sweeper
from fulfillment.state.manager import StateManager, get_state_manager
from fulfillment.state.repository import (
    InMemoryMenuRepository,
    InMemoryOrderRepository,
    RedisMenuRepository,
    RedisOrderRepository,
)
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Services sharing one set of repositories."""

    order_service: OrderService
    sweeper: Sweeper
    geocoder: Geocoder
    state_manager: StateManager | None = None

    async def close(self) -> None:
        if isinstance(self.geocoder, NominatimGeocoder):
            await self.geocoder.aclose()
        if self.state_manager is not None:
            await self.state_manager.disconnect()


async def build_container(settings: Settings | None = None) -> ServiceContainer:
    """Create services for the configured storage backend."""
    settings = settings or get_settings()
    geocoder = build_geocoder(settings)

    if settings.storage_backend == "redis":
        state_manager = await get_state_manager()
        orders = RedisOrderRepository(state_manager)
        menus = RedisMenuRepository(state_manager)
    else:
        state_manager = None
        orders = InMemoryOrderRepository()
        menus = InMemoryMenuRepository(list(SAMPLE_MENUS))

    order_service = OrderService(orders, menus, geocoder, settings=settings)
    sweeper = Sweeper(
        orders,
        equipment=order_service.equipment,
        settings=settings,
        publisher=state_manager,
    )

    logger.info(
        "services_initialized",
        storage_backend=settings.storage_backend,
        geocoder=settings.geocoder,
    )
    return ServiceContainer(
        order_service=order_service,
        sweeper=sweeper,
        geocoder=geocoder,
        state_manager=state_manager,
    )


# Global container instance
_container: ServiceContainer | None = None


async def get_container() -> ServiceContainer:
    """Get the global service container."""
    global _container
    if _container is None:
        _container = await build_container()
    return _container


async def close_container() -> None:
    global _container
    if _container is not None:
        await _container.close()
        _container = None
