"""Periodic sweep over live orders.

Time moves on without anybody touching an order: delivery dates get closer
and equipment due dates pass. The sweep re-evaluates both on every tick,
taking the same per-order lock as interactive transitions.
"""

import asyncio
import json
import time
from collections.abc import Callable
from datetime import datetime

from fulfillment.config import Settings, get_settings
from fulfillment.models.order import Order
from fulfillment.state.manager import StateManager
from fulfillment.state.repository import OrderRepository
from fulfillment.utils.clock import utcnow
from fulfillment.utils.logging import WorkflowLogger
from fulfillment.workflow.equipment import EquipmentLifecycle
from fulfillment.workflow.priority import PriorityCalculator

CHANGES_CHANNEL = "orders:changes"


class Sweeper:
    """Re-evaluates priority and equipment deadlines for every live order."""

    def __init__(
        self,
        orders: OrderRepository,
        equipment: EquipmentLifecycle | None = None,
        settings: Settings | None = None,
        publisher: StateManager | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = orders
        self.settings = settings or get_settings()
        self.equipment = equipment or EquipmentLifecycle.from_settings(self.settings)
        self.publisher = publisher
        self.clock = clock
        self.logger = WorkflowLogger("sweeper")

    def evaluate(self, order: Order, now: datetime) -> bool:
        """Apply time-dependent rules to one order; True if it changed."""
        priority_changed = PriorityCalculator.refresh(order, now)
        equipment_changed = self.equipment.check_overdue(order, now)
        return priority_changed or equipment_changed

    async def tick(self, now: datetime | None = None) -> list[Order]:
        """
        Run one sweep.

        Args:
            now: Evaluation time (timezone-aware), defaults to the service clock

        Returns:
            Orders whose priority or equipment status changed

        Raises:
            ValueError: now is a naive datetime
        """
        now = now or self.clock()
        if now.tzinfo is None or now.utcoffset() is None:
            raise ValueError("Sweep time must be timezone-aware")
        start = time.time()
        changed: list[Order] = []
        failed = 0

        candidates = await self.orders.list_live()
        for candidate in candidates:
            try:
                async with self.orders.lock(candidate.id):
                    # Reload under the lock; the listed copy may be stale
                    order = await self.orders.get(candidate.id)
                    if order is None or not self.evaluate(order, now):
                        continue
                    await self.orders.save(order)
                changed.append(order)
            except Exception as e:
                failed += 1
                self.logger.log_error(error=str(e), order_id=str(candidate.id))

        for order in changed:
            await self._publish(order)

        self.logger.log_sweep(
            scanned=len(candidates),
            changed=len(changed),
            failed=failed,
            duration_ms=(time.time() - start) * 1000,
        )
        return changed

    async def run(self) -> None:
        """Sweep forever at the configured interval until cancelled."""
        interval = self.settings.sweep_interval_seconds
        self.logger.logger.info("sweeper_started", interval_seconds=interval)
        try:
            while True:
                try:
                    await self.tick()
                except Exception as e:
                    # Listing failed (storage down); try again next interval
                    self.logger.log_error(error=str(e))
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            self.logger.logger.info("sweeper_stopped")
            raise

    async def _publish(self, order: Order) -> None:
        if self.publisher is None:
            return

        message = json.dumps(
            {
                "order_id": str(order.id),
                "status": order.status.value,
                "priority": order.priority.value,
                "equipment_status": order.equipment.status.value,
                "penalty": str(order.equipment.penalty),
            }
        )
        try:
            await self.publisher.publish(CHANGES_CHANNEL, message)
        except Exception as e:
            self.logger.log_error(error=f"publish failed: {e}", order_id=str(order.id))
