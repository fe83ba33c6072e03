"""
Test normalization behavior.
Ensures AI completions and stored JSON are safely normalized.
"""
import pytest

from priceglass.errors import DataContractError, NormalizationError
from priceglass.models.pricing import CrawlFailure, CrawlSuccess, SearchKind, StorePrice
from priceglass.normalizers.pricing import (
    PriceNormalizer,
    best_deal,
    parse_price_value,
    product_hint_from_url,
    sort_by_lowest_price,
)


def test_parse_price_strings():
    assert parse_price_value("$199.99") == 199.99
    assert parse_price_value("₹1,200") == 1200.0
    assert parse_price_value("Rs. 49,990") == 49990.0
    assert parse_price_value(350) == 350.0
    assert parse_price_value("Price unavailable") is None
    assert parse_price_value(None) is None
    assert parse_price_value(True) is None


def test_sort_by_lowest_price():
    records = [
        StorePrice(store="A", price="$199.99"),
        StorePrice(store="B", price="₹1,200"),
        StorePrice(store="C", price="Price unavailable"),
        StorePrice(store="D", price="$99"),
    ]

    ordered = sort_by_lowest_price(records)

    assert [r.store for r in ordered] == ["D", "A", "B", "C"]
    assert records[0].store == "A"


def test_sort_keeps_input_order_for_unparseable():
    records = [
        StorePrice(store="Amazon", price="Price unavailable"),
        StorePrice(store="Flipkart", price="Price unavailable"),
        StorePrice(store="Meesho", price="Price unavailable"),
    ]

    assert [r.store for r in sort_by_lowest_price(records)] == ["Amazon", "Flipkart", "Meesho"]
    assert best_deal(records).store == "Amazon"


def test_best_deal_empty():
    assert best_deal([]) is None


def test_product_hint_from_url():
    assert product_hint_from_url("https://shop.example/p/apple-iphone-13.html") == "apple iphone 13"
    assert product_hint_from_url("https://shop.example/") == ""


def test_parse_completion_array_only():
    assert PriceNormalizer.parse_completion('[{"store": "Amazon"}]') == [{"store": "Amazon"}]
    assert PriceNormalizer.parse_completion('```json\n[]\n```') == []
    assert PriceNormalizer.parse_completion('{"store": "Amazon"}') is None
    assert PriceNormalizer.parse_completion("not json") is None
    assert PriceNormalizer.parse_completion(None) is None


def test_normalize_store_price_camel_and_snake():
    record = PriceNormalizer.normalize_store_price({
        "store": " Amazon ",
        "price": "₹52,999",
        "regularPrice": "₹59,900",
        "discount_percentage": "12%",
        "available": "In Stock",
        "availabilityCount": "5",
    })

    assert record.store == "Amazon"
    assert record.regular_price == 59900.0
    assert record.discount_percentage == 12.0
    assert record.available is True
    assert record.availability_count == 5


def test_missing_price_becomes_unavailable():
    record = PriceNormalizer.normalize_store_price({"store": "Meesho", "price": ""})
    assert record.price == "Price unavailable"


def test_store_required():
    with pytest.raises(NormalizationError):
        PriceNormalizer.normalize_store_price({"price": "₹10"})
    with pytest.raises(NormalizationError):
        PriceNormalizer.normalize_store_price("Amazon")


def test_normalize_records_drops_bad_rows():
    records = PriceNormalizer.normalize_records([{"store": "Amazon", "price": "₹1"}, {"price": "₹2"}, 42])
    assert [r.store for r in records] == ["Amazon"]


def test_crawl_result_envelopes():
    success = PriceNormalizer.crawl_result_from_payload({
        "success": True, "status": "completed", "completed": 1, "total": 1,
        "creditsUsed": 1, "expiresAt": "2026-10-18T00:00:00.000Z",
        "data": [{"store": "Amazon", "price": "₹1"}],
    })
    failure = PriceNormalizer.crawl_result_from_payload({"success": False, "error": "boom"})

    assert isinstance(success, CrawlSuccess) and success.credits_used == 1
    assert isinstance(failure, CrawlFailure) and failure.error == "boom"


def test_crawl_result_contract_violations():
    with pytest.raises(DataContractError):
        PriceNormalizer.crawl_result_from_payload({"data": []})
    with pytest.raises(DataContractError):
        PriceNormalizer.crawl_result_from_payload({"success": True, "data": "nope"})
    with pytest.raises(DataContractError):
        PriceNormalizer.crawl_result_from_payload({"success": True, "data": [], "completed": "many"})


def test_history_item_from_dict():
    item = PriceNormalizer.history_item_from_dict({
        "id": "abc",
        "timestamp": 1760000000000,
        "query": "8901030865278",
        "type": "barcode",
        "bestPrice": {"store": "Amazon", "price": "₹99"},
    })

    assert item.type == SearchKind.BARCODE
    assert item.best_price.store == "Amazon"
    assert item.product_name is None

    with pytest.raises(NormalizationError):
        PriceNormalizer.history_item_from_dict({"id": "x"})


def test_huge_numbers_do_not_overflow():
    record = PriceNormalizer.normalize_store_price({
        "store": "Amazon",
        "price": "₹1",
        "availability_count": "1" * 400,
        "regular_price": 10 ** 400,
    })

    assert record.availability_count is None
    assert record.regular_price is None
    assert parse_price_value("9" * 400) is None


def test_infinite_timestamp_is_normalization_error():
    with pytest.raises(NormalizationError):
        PriceNormalizer.history_item_from_dict({
            "id": "1", "timestamp": float("inf"), "query": "x", "type": "name",
        })
    with pytest.raises(NormalizationError):
        PriceNormalizer.location_from_dict({
            "country": "India", "countryCode": "IN", "timestamp": float("inf"),
        })


def test_infinite_envelope_count_is_contract_error():
    with pytest.raises(DataContractError):
        PriceNormalizer.crawl_result_from_payload({"success": True, "data": [], "completed": float("inf")})
