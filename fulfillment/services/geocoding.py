"""Geocoding collaborator: address -> (is_local, distance from the kitchen)."""

import math
from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, Field

from fulfillment.config import Settings, get_settings
from fulfillment.errors import GeocodingError
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_KM = 6371


class Location(BaseModel):
    """Geographic location."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class GeocodeResult(BaseModel):
    """Where a delivery address sits relative to the kitchen."""

    is_local: bool
    distance_km: float = Field(ge=0)


def haversine_km(a: Location, b: Location) -> float:
    """Great-circle distance between two locations in km."""
    lat1, lng1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lng2 = math.radians(b.lat), math.radians(b.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def same_city(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return a.strip().casefold() == b.strip().casefold()


class Geocoder(ABC):
    """Resolves delivery addresses."""

    @abstractmethod
    async def locate(
        self,
        address: str,
        city: str,
        postal_code: str | None = None,
    ) -> GeocodeResult:
        """Resolve an address, raising GeocodingError when it cannot."""


class NominatimGeocoder(Geocoder):
    """
    Geocoder backed by the OpenStreetMap Nominatim search API.

    Distance is the straight-line distance from the kitchen; the address is
    local when Nominatim places it inside the configured city.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.kitchen = Location(lat=self.settings.kitchen_lat, lng=self.settings.kitchen_lng)
        self.client = client or httpx.AsyncClient(
            timeout=self.settings.geocoder_timeout,
            headers={"User-Agent": self.settings.geocoder_user_agent},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def locate(
        self,
        address: str,
        city: str,
        postal_code: str | None = None,
    ) -> GeocodeResult:
        query = ", ".join(part for part in (address, postal_code, city) if part)
        params = {
            "q": query,
            "format": "jsonv2",
            "addressdetails": 1,
            "limit": 1,
        }

        try:
            response = await self.client.get(self.settings.geocoder_url, params=params)
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("geocoding_failed", query=query, error=str(exc))
            raise GeocodingError(f"Geocoding failed for '{query}': {exc}") from exc

        if not results:
            raise GeocodingError(f"Address not found: '{query}'")

        hit = results[0]
        try:
            location = Location(lat=float(hit["lat"]), lng=float(hit["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Malformed geocoding result for '{query}'") from exc

        details = hit.get("address", {})
        resolved_city = (
            details.get("city")
            or details.get("town")
            or details.get("village")
            or details.get("municipality")
        )
        distance_km = round(haversine_km(self.kitchen, location), 2)

        logger.debug(
            "address_geocoded",
            query=query,
            city=resolved_city,
            distance_km=distance_km,
        )
        return GeocodeResult(
            is_local=same_city(resolved_city, self.settings.local_city),
            distance_km=distance_km,
        )


class StaticGeocoder(Geocoder):
    """
    Table-driven geocoder for development and tests.

    The local city is always resolved; other cities must be listed in
    ``distances`` or the lookup fails like a real provider would.
    """

    def __init__(
        self,
        local_city: str | None = None,
        distances: dict[str, float] | None = None,
    ):
        self.local_city = local_city or get_settings().local_city
        self.distances = {
            city.casefold(): distance for city, distance in (distances or {}).items()
        }

    async def locate(
        self,
        address: str,
        city: str,
        postal_code: str | None = None,
    ) -> GeocodeResult:
        if same_city(city, self.local_city):
            return GeocodeResult(is_local=True, distance_km=0.0)

        distance = self.distances.get(city.strip().casefold())
        if distance is None:
            raise GeocodingError(f"Unknown city: '{city}'")
        return GeocodeResult(is_local=False, distance_km=distance)


def build_geocoder(settings: Settings) -> Geocoder:
    if settings.geocoder == "nominatim":
        return NominatimGeocoder(settings)
    return StaticGeocoder(
        local_city=settings.local_city,
        distances={
            "Mérignac": 7.5,
            "Pessac": 8.2,
            "Talence": 4.1,
            "Bègles": 4.6,
            "Saint-Émilion": 41.0,
            "Arcachon": 62.0,
        },
    )
