"""Order fulfillment workflow engines."""

from fulfillment.workflow.equipment import EquipmentLifecycle
from fulfillment.workflow.kanban import KanbanBoard, KanbanColumn, KanbanProjector
from fulfillment.workflow.pricing import PricingEngine
from fulfillment.workflow.priority import PriorityCalculator
from fulfillment.workflow.status import StatusEngine, StatusTransitions

__all__ = [
    "PricingEngine",
    "PriorityCalculator",
    "EquipmentLifecycle",
    "StatusEngine",
    "StatusTransitions",
    "KanbanProjector",
    "KanbanBoard",
    "KanbanColumn",
]
