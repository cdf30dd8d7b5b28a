"""Application services around the workflow engines."""

from fulfillment.services.geocoding import (
    GeocodeResult,
    Geocoder,
    NominatimGeocoder,
    StaticGeocoder,
)
from fulfillment.services.orders import OrderService
from fulfillment.services.sweep import Sweeper

__all__ = [
    "OrderService",
    "Sweeper",
    "Geocoder",
    "GeocodeResult",
    "NominatimGeocoder",
    "StaticGeocoder",
]
