"""Utility modules."""

from fulfillment.utils.clock import utcnow
from fulfillment.utils.logging import WorkflowLogger, get_logger, setup_logging

__all__ = ["setup_logging", "get_logger", "WorkflowLogger", "utcnow"]
