"""API routes for the fulfillment service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, time
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import AwareDatetime, BaseModel, Field

from fulfillment import errors
from fulfillment.models.order import Order, OrderPage, OrderStatus
from fulfillment.services.container import ServiceContainer, get_container
from fulfillment.services.orders import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, OrderService
from fulfillment.services.sweep import Sweeper
from fulfillment.utils.logging import get_logger
from fulfillment.workflow.kanban import KanbanBoard

logger = get_logger(__name__)

router = APIRouter()


# Request/Response Models


class CreateOrderRequest(BaseModel):
    """Request to place a catering order."""

    customer_id: str
    menu_id: str
    headcount: int = Field(ge=1)
    delivery_address: str
    delivery_city: str
    delivery_postal_code: str | None = None
    delivery_date: date | None = None
    delivery_time: time | None = None
    cooking_required: bool | None = None
    special_requests: str | None = None
    dietary_restrictions: str | None = None
    allergies: str | None = None


class ActorRequest(BaseModel):
    """Staff action carrying the acting identity."""

    actor_id: str | None = None
    notes: str | None = None


class CancelRequest(BaseModel):
    actor_id: str | None = None
    reason: str | None = None


class RescheduleRequest(BaseModel):
    actor_id: str | None = None
    delivery_date: date
    delivery_time: time


class SweepRequest(BaseModel):
    now: AwareDatetime | None = None


class SweepResponse(BaseModel):
    changed: list[Order]
    count: int


# Dependencies


async def get_services() -> ServiceContainer:
    """Get the service container."""
    return await get_container()


async def get_order_service(
    services: ServiceContainer = Depends(get_services),
) -> OrderService:
    return services.order_service


async def get_sweeper(services: ServiceContainer = Depends(get_services)) -> Sweeper:
    return services.sweeper


@asynccontextmanager
async def domain_errors() -> AsyncIterator[None]:
    """Translate domain errors into HTTP responses."""
    try:
        yield
    except errors.NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except errors.ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=e.message
        ) from e
    except (errors.InvalidTransition, errors.EquipmentError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except (errors.OrderBusy, errors.MenuBusy) as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message
        ) from e
    except errors.GeocodingError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e


# Order endpoints


@router.post("/orders", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> Order:
    """
    Place a new order.

    The order starts pending with its pricing and priority computed.
    """
    async with domain_errors():
        return await service.create_order(**request.model_dump())


@router.get("/orders", response_model=OrderPage)
async def list_orders(
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    customer_id: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: OrderService = Depends(get_order_service),
) -> OrderPage:
    """List orders newest first, filtered by status and/or customer."""
    async with domain_errors():
        return await service.list_orders(
            status=status_filter, customer_id=customer_id, page=page, limit=limit
        )


@router.get("/customers/{customer_id}/orders", response_model=OrderPage)
async def list_customer_orders(
    customer_id: str,
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: OrderService = Depends(get_order_service),
) -> OrderPage:
    """One customer's order history."""
    async with domain_errors():
        return await service.list_orders(
            status=status_filter, customer_id=customer_id, page=page, limit=limit
        )


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: UUID,
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Get order details."""
    async with domain_errors():
        return await service.get_order(order_id)


@router.post("/orders/{order_id}/advance", response_model=Order)
async def advance_order(
    order_id: UUID,
    request: ActorRequest = ActorRequest(),
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Move an order to its next fulfillment stage."""
    async with domain_errors():
        return await service.advance(order_id, request.actor_id, notes=request.notes)


@router.post("/orders/{order_id}/cancel", response_model=Order)
async def cancel_order(
    order_id: UUID,
    request: CancelRequest = CancelRequest(),
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Cancel an order."""
    async with domain_errors():
        return await service.cancel(order_id, request.actor_id, request.reason)


@router.post("/orders/{order_id}/equipment/return", response_model=Order)
async def return_equipment(
    order_id: UUID,
    request: ActorRequest = ActorRequest(),
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Record the return of loaned equipment."""
    async with domain_errors():
        return await service.return_equipment(order_id, request.actor_id)


@router.post("/orders/{order_id}/reschedule", response_model=Order)
async def reschedule_order(
    order_id: UUID,
    request: RescheduleRequest,
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Change the delivery slot of an order."""
    async with domain_errors():
        return await service.reschedule(
            order_id, request.delivery_date, request.delivery_time, request.actor_id
        )


@router.post("/orders/{order_id}/reprice", response_model=Order)
async def reprice_order(
    order_id: UUID,
    request: ActorRequest = ActorRequest(),
    service: OrderService = Depends(get_order_service),
) -> Order:
    """Recompute delivery pricing from a fresh geocoding lookup."""
    async with domain_errors():
        return await service.reprice(order_id, request.actor_id)


@router.get("/kanban", response_model=KanbanBoard)
async def get_kanban(
    assigned_to: str | None = None,
    service: OrderService = Depends(get_order_service),
) -> KanbanBoard:
    """Board of live orders grouped by status."""
    return await service.kanban(assigned_to=assigned_to)


# Admin endpoints


@router.post("/admin/sweep", response_model=SweepResponse)
async def run_sweep(
    request: SweepRequest = SweepRequest(),
    sweeper: Sweeper = Depends(get_sweeper),
) -> SweepResponse:
    """Run one sweep immediately."""
    changed = await sweeper.tick(request.now)

    logger.info("sweep_triggered_via_api", changed=len(changed))

    return SweepResponse(changed=changed, count=len(changed))


@router.get("/admin/status")
async def get_service_status(
    services: ServiceContainer = Depends(get_services),
) -> dict[str, Any]:
    """Storage backend and live order counts."""
    board = await services.order_service.kanban()
    return {
        "storage_backend": services.order_service.settings.storage_backend,
        "live_orders": board.summary.total,
        "equipment_outstanding": board.summary.equipment_outstanding,
        "status": "healthy",
    }
