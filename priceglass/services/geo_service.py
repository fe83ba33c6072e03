"""
Location detection: coordinates provider + Nominatim reverse geocoding.
Every failure is reported as None ("unavailable"), never raised.
"""
import aiohttp
import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from priceglass import __version__
from priceglass.config import config
from priceglass.errors import StorageError
from priceglass.logger import logger
from priceglass.models.country import Country, CountryTable
from priceglass.models.pricing import StoredLocation
from priceglass.stores import LocationStore

# address fields holding the locality, most specific first
CITY_FIELDS = ("city", "town", "village", "suburb")


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class DetectedLocation:
    country: Country
    city: Optional[str] = None


CoordinatesProvider = Callable[[], Optional[Coordinates]]


def coordinates_from_config() -> Optional[Coordinates]:
    """Coordinates from USER_LATITUDE / USER_LONGITUDE, None when unset or invalid."""
    if not config.USER_LATITUDE or not config.USER_LONGITUDE:
        logger.info("No configured coordinates")
        return None
    try:
        return Coordinates(float(config.USER_LATITUDE), float(config.USER_LONGITUDE))
    except ValueError as e:
        logger.error(f"Invalid configured coordinates: {e}")
        return None


def get_city_from_geocode(geocode_result: Optional[Dict[str, Any]]) -> Optional[str]:
    if not geocode_result or not isinstance(geocode_result.get("address"), dict):
        return None
    address = geocode_result["address"]
    for field in CITY_FIELDS:
        if address.get(field):
            return address[field]
    return None


class GeoService:
    """
    Wrapper for Nominatim.
    """

    def __init__(self, countries: CountryTable,
                 location_store: Optional[LocationStore] = None,
                 coordinates_provider: CoordinatesProvider = coordinates_from_config):
        self.base_url = config.NOMINATIM_URL.rstrip("/")
        self.countries = countries
        self.location_store = location_store
        self.coordinates_provider = coordinates_provider
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self):
        # Nominatim's usage policy requires an identifying User-Agent
        self.session = aiohttp.ClientSession(
            headers={"User-Agent": f"priceglass/{__version__}"},
            timeout=aiohttp.ClientTimeout(total=config.REQUEST_TIMEOUT)
        )

    async def close(self):
        if self.session:
            await self.session.close()

    async def reverse_geocode(self, coordinates: Coordinates) -> Optional[Dict[str, Any]]:
        if self.session is None:
            logger.error("Geo service not initialized")
            return None

        params = {
            "format": "json",
            "lat": str(coordinates.latitude),
            "lon": str(coordinates.longitude),
            "zoom": "18",
            "addressdetails": "1",
        }
        try:
            response = await self.session.get(f"{self.base_url}/reverse", params=params)
            if response.status != 200:
                logger.error(f"Reverse geocoding failed with status {response.status}")
                return None
            data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error in reverse geocoding: {e}")
            return None

        return data if isinstance(data, dict) else None

    async def auto_detect_country(self, coordinates: Optional[Coordinates] = None) -> Optional[DetectedLocation]:
        """
        Resolve country and city for the given (or provided) coordinates and
        store them. None when any step is unavailable.
        """
        coordinates = coordinates or self.coordinates_provider()
        if coordinates is None:
            return None

        geocode_result = await self.reverse_geocode(coordinates)
        address = (geocode_result or {}).get("address")
        if not isinstance(address, dict) or not address.get("country_code"):
            return None

        country = self.countries.get(str(address["country_code"]).upper())
        if country is None:
            logger.info(f"Detected country {address['country_code']} is not supported")
            return None

        city = get_city_from_geocode(geocode_result)

        if self.location_store is not None:
            try:
                await self.location_store.set(StoredLocation(
                    country=country.name,
                    country_code=country.code,
                    city=city,
                    latitude=coordinates.latitude,
                    longitude=coordinates.longitude,
                ))
            except StorageError as e:
                logger.error(f"Failed to store detected location: {e}")

        return DetectedLocation(country=country, city=city)
