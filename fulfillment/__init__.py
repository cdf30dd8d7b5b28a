"""Catering order fulfillment core."""

__version__ = "0.1.0"
