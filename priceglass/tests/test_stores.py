"""
Persisted stores over in-memory storage.
"""
import json

import pytest

from priceglass.events import COUNTRY_CHANGED, LOCATION_CHANGED
from priceglass.models.pricing import SearchKind, StoredLocation, StorePrice
from priceglass.stores import (
    SEARCH_HISTORY_KEY,
    SELECTED_COUNTRY_KEY,
    CountryStore,
    HistoryStore,
    LocationStore,
    SearchTermStore,
)


class Ticker:
    def __init__(self, start: int = 1_760_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.mark.asyncio
async def test_history_newest_first_and_capped(storage):
    history = HistoryStore(storage, limit=50, clock=Ticker())

    for i in range(55):
        await history.add(f"product {i}", SearchKind.NAME, f"product {i}")

    items = await history.get()
    assert len(items) == 50
    assert items[0].query == "product 54"
    assert items[-1].query == "product 5"
    assert all(a.timestamp > b.timestamp for a, b in zip(items, items[1:]))


@pytest.mark.asyncio
async def test_history_set_sorts_and_truncates(storage):
    history = HistoryStore(storage, limit=2, clock=Ticker())
    a = await history.add("a", SearchKind.NAME)
    b = await history.add("b", SearchKind.NAME)
    c = await history.add("c", SearchKind.NAME)

    await history.set([a, c, b])

    assert [item.query for item in await history.get()] == ["c", "b"]


@pytest.mark.asyncio
async def test_history_keeps_best_price_and_delete(storage):
    history = HistoryStore(storage, clock=Ticker())
    best = StorePrice(store="Amazon", price="₹52,999")
    item = await history.add("iPhone 13", SearchKind.NAME, "iPhone 13", best)

    stored = json.loads(await storage.get_item(SEARCH_HISTORY_KEY))
    assert stored[0]["bestPrice"] == {"store": "Amazon", "price": "₹52,999"}
    assert stored[0]["type"] == "name"

    assert await history.delete(item.id) is True
    assert await history.delete(item.id) is False
    assert await history.get() == []


@pytest.mark.asyncio
async def test_corrupt_history_reads_as_empty(storage):
    await storage.set_item(SEARCH_HISTORY_KEY, "{not json")
    assert await HistoryStore(storage).get() == []


@pytest.mark.asyncio
async def test_history_skips_bad_entries(storage):
    await storage.set_item(SEARCH_HISTORY_KEY, json.dumps([
        {"id": "1", "timestamp": 1, "query": "ok", "type": "name"},
        {"id": "2"},
        "garbage",
    ]))

    items = await HistoryStore(storage).get()
    assert [item.id for item in items] == ["1"]


@pytest.mark.asyncio
async def test_country_defaults_to_india(storage, countries, bus):
    store = CountryStore(storage, countries, bus)

    assert (await store.get()).code == "IN"

    await storage.set_item(SELECTED_COUNTRY_KEY, "ZZ")
    assert (await store.get()).name == "India"


@pytest.mark.asyncio
async def test_country_set_persists_and_publishes(storage, countries, bus):
    store = CountryStore(storage, countries, bus)
    seen = []
    bus.subscribe(COUNTRY_CHANGED, seen.append)

    await store.set(countries.get("US"))

    assert await storage.get_item(SELECTED_COUNTRY_KEY) == "US"
    assert (await store.get()).currency.code == "USD"
    assert [c.code for c in seen] == ["US"]


@pytest.mark.asyncio
async def test_location_round_trip_and_event(storage, bus):
    store = LocationStore(storage, bus, clock=lambda: 42)
    seen = []
    bus.subscribe(LOCATION_CHANGED, seen.append)

    stamped = await store.set(StoredLocation(
        country="India", country_code="IN", city="Mumbai", latitude=19.07, longitude=72.87,
    ))

    assert stamped.timestamp == 42
    assert await store.get() == stamped
    assert seen == [stamped]


@pytest.mark.asyncio
async def test_location_missing(storage, bus):
    assert await LocationStore(storage, bus).get() is None


@pytest.mark.asyncio
async def test_recent_terms_move_to_front(storage):
    terms = SearchTermStore(storage, limit=3)
    for term in ("a", "b", "c", "a", "d"):
        await terms.add(term)

    assert await terms.get() == ["d", "a", "c"]


@pytest.mark.asyncio
async def test_history_with_infinite_timestamp_is_skipped(storage):
    await storage.set_item(SEARCH_HISTORY_KEY, json.dumps([
        {"id": "1", "timestamp": float("inf"), "query": "bad", "type": "name"},
        {"id": "2", "timestamp": 5, "query": "ok", "type": "name"},
    ]))

    items = await HistoryStore(storage).get()
    assert [item.id for item in items] == ["2"]
