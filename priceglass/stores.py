"""
Persisted history and preference stores.
Each store owns one storage key, JSON encoded, with a default for
missing or unparseable values.
"""
import json
import time
import uuid
from typing import Any, Callable, List, Optional

from priceglass.config import config
from priceglass.errors import NormalizationError
from priceglass.events import COUNTRY_CHANGED, LOCATION_CHANGED, EventBus, event_bus
from priceglass.logger import logger
from priceglass.models.country import Country, CountryTable
from priceglass.models.pricing import HistoryItem, SearchKind, StoredLocation, StorePrice
from priceglass.normalizers.pricing import PriceNormalizer
from priceglass.storage import BaseStorage

SELECTED_COUNTRY_KEY = "selectedCountry"
USER_LOCATION_KEY = "user_location"
SEARCH_HISTORY_KEY = "searchHistory"
RECENT_SEARCHES_KEY = "recentSearches"


def now_ms() -> int:
    return int(time.time() * 1000)


class JsonStore:
    """get/set/clear of one JSON value under one key."""

    key: str = ""

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    def default(self) -> Any:
        return None

    async def _read_json(self) -> Any:
        raw = await self.storage.get_item(self.key)
        if raw is None:
            return self.default()
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Unparseable value under {self.key}, using default: {e}")
            return self.default()

    async def _write_json(self, value: Any):
        await self.storage.set_item(self.key, json.dumps(value, ensure_ascii=False))

    async def clear(self):
        await self.storage.remove_item(self.key)


class CountryStore:
    """
    Selected country code, stored as a bare string.
    get() always resolves to a country through the table's fallback.
    """

    key = SELECTED_COUNTRY_KEY

    def __init__(self, storage: BaseStorage, countries: CountryTable, bus: EventBus = event_bus):
        self.storage = storage
        self.countries = countries
        self.bus = bus

    async def get_code(self) -> Optional[str]:
        return await self.storage.get_item(self.key)

    async def get(self) -> Country:
        return self.countries.resolve(await self.get_code())

    async def set(self, country: Country):
        await self.storage.set_item(self.key, country.code)
        self.bus.publish(COUNTRY_CHANGED, country)

    async def clear(self):
        await self.storage.remove_item(self.key)


class LocationStore(JsonStore):
    key = USER_LOCATION_KEY

    def __init__(self, storage: BaseStorage, bus: EventBus = event_bus,
                 clock: Callable[[], int] = now_ms):
        super().__init__(storage)
        self.bus = bus
        self.clock = clock

    async def get(self) -> Optional[StoredLocation]:
        raw = await self._read_json()
        if not isinstance(raw, dict):
            return None
        try:
            return PriceNormalizer.location_from_dict(raw)
        except NormalizationError as e:
            logger.warning(f"Discarding stored location: {e}")
            return None

    async def set(self, location: StoredLocation) -> StoredLocation:
        """Overwrite the stored location, stamping the write time."""
        stamped = StoredLocation(
            country=location.country,
            country_code=location.country_code,
            city=location.city,
            latitude=location.latitude,
            longitude=location.longitude,
            timestamp=self.clock(),
        )
        await self._write_json(stamped.to_dict())
        self.bus.publish(LOCATION_CHANGED, stamped)
        return stamped


class HistoryStore(JsonStore):
    """Bounded newest-first list of HistoryItem."""

    key = SEARCH_HISTORY_KEY

    def __init__(self, storage: BaseStorage, limit: Optional[int] = None,
                 clock: Callable[[], int] = now_ms):
        super().__init__(storage)
        self.limit = limit or config.HISTORY_LIMIT
        self.clock = clock

    def default(self) -> Any:
        return []

    async def get(self) -> List[HistoryItem]:
        raw = await self._read_json()
        if not isinstance(raw, list):
            return []

        items = []
        for entry in raw:
            try:
                items.append(PriceNormalizer.history_item_from_dict(entry))
            except (NormalizationError, AttributeError) as e:
                logger.warning(f"Skipping history entry: {e}")
        return items

    async def set(self, items: List[HistoryItem]):
        ordered = sorted(items, key=lambda item: item.timestamp, reverse=True)[:self.limit]
        await self._write_json([item.to_dict() for item in ordered])

    async def add(self, query: str, kind: SearchKind, product_name: Optional[str] = None,
                  best_price: Optional[StorePrice] = None) -> HistoryItem:
        item = HistoryItem(
            id=uuid.uuid4().hex,
            timestamp=self.clock(),
            query=query,
            type=kind,
            product_name=product_name,
            best_price=best_price,
        )
        await self.set([item] + await self.get())
        return item

    async def delete(self, item_id: str) -> bool:
        items = await self.get()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        await self.set(remaining)
        return True


class SearchTermStore(JsonStore):
    """Plain list of recent search strings, most recent first."""

    key = RECENT_SEARCHES_KEY

    def __init__(self, storage: BaseStorage, limit: int = 10):
        super().__init__(storage)
        self.limit = limit

    def default(self) -> Any:
        return []

    async def get(self) -> List[str]:
        raw = await self._read_json()
        if not isinstance(raw, list):
            return []
        return [term for term in raw if isinstance(term, str)]

    async def set(self, terms: List[str]):
        await self._write_json(terms[:self.limit])

    async def add(self, term: str) -> List[str]:
        term = term.strip()
        terms = [t for t in await self.get() if t != term]
        terms.insert(0, term)
        await self.set(terms)
        return terms[:self.limit]
