"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger.json import JsonFormatter

from fulfillment.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structured logging for the application."""
    settings = settings or get_settings()

    log_level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler.setFormatter(formatter)

    # uvicorn and httpx log through the standard library
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    # One INFO line per geocoding request otherwise
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class WorkflowLogger:
    """Logger for order workflow events."""

    def __init__(self, component: str):
        self.component = component
        self.logger = get_logger(component)

    def log_transition(
        self,
        order_id: str,
        from_status: str,
        to_status: str,
        actor: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Log an order status transition."""
        self.logger.info(
            "order_transition",
            component=self.component,
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            **kwargs,
        )

    def log_equipment(
        self,
        order_id: str,
        from_status: str,
        to_status: str,
        **kwargs: Any,
    ) -> None:
        """Log an equipment loan status change."""
        self.logger.info(
            "equipment_transition",
            component=self.component,
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            **kwargs,
        )

    def log_sweep(
        self,
        scanned: int,
        changed: int,
        failed: int,
        duration_ms: float,
    ) -> None:
        """Log the outcome of a sweep tick."""
        self.logger.info(
            "sweep_completed",
            component=self.component,
            scanned=scanned,
            changed=changed,
            failed=failed,
            duration_ms=duration_ms,
        )

    def log_error(
        self,
        error: str,
        order_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Log an error."""
        self.logger.error(
            "workflow_error",
            component=self.component,
            order_id=order_id,
            error=error,
            **kwargs,
        )
