"""
Explicit normalization layer.
Converts AI completions, backend payloads and stored JSON into the internal model.
"""
import json
import math
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from priceglass.errors import DataContractError, NormalizationError
from priceglass.logger import logger
from priceglass.models.pricing import (
    CrawlFailure,
    CrawlResult,
    CrawlSuccess,
    HistoryItem,
    SearchKind,
    StoredLocation,
    StorePrice,
)

_NUMBER_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)
_PAGE_EXTENSION_RE = re.compile(r"\.(html?|php|aspx)$", re.IGNORECASE)


def parse_price_value(price_text: Any) -> Optional[float]:
    """
    Convert display prices like "$199.99", "₹1,200" or "Rs. 49,990" to a float.
    Returns None when no number can be found ("Price unavailable", "N/A").
    """
    if price_text is None or isinstance(price_text, bool):
        return None
    if isinstance(price_text, (int, float)):
        try:
            value = float(price_text)
        except OverflowError:
            return None
        return value if math.isfinite(value) else None

    match = _NUMBER_RE.search(str(price_text))
    if not match:
        return None
    try:
        value = float(match.group().replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def product_hint_from_url(url: str) -> str:
    """Guess a product name from the last path segment of a product URL."""
    path = urlparse(url).path.rstrip("/")
    segment = path.rsplit("/", 1)[-1] if path else ""
    segment = _PAGE_EXTENSION_RE.sub("", segment)
    return re.sub(r"[-_]+", " ", segment).strip()


def sort_by_lowest_price(records: Iterable[StorePrice]) -> List[StorePrice]:
    """Ascending by parsed price; unparseable prices sort last, ties keep input order."""
    def key(record: StorePrice) -> float:
        value = parse_price_value(record.price)
        return value if value is not None else math.inf

    return sorted(records, key=key)


def best_deal(records: Iterable[StorePrice]) -> Optional[StorePrice]:
    ordered = sort_by_lowest_price(records)
    return ordered[0] if ordered else None


class PriceNormalizer:
    """
    Normalizes raw store/price data into internal model.
    Accepts both snake_case (AI output) and camelCase field names.
    """

    @staticmethod
    def _load_completion(text: Optional[str]) -> Any:
        if not text or not text.strip():
            return None

        # models often wrap JSON in a ```json fence
        fenced = _CODE_FENCE_RE.match(text)
        candidate = fenced.group(1) if fenced else text.strip()

        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug(f"Completion is not JSON: {e}")
            return None

    @staticmethod
    def parse_completion(text: Optional[str]) -> Optional[List[Any]]:
        """
        Parse an AI completion as a JSON array.
        Anything that isn't a list (or isn't JSON) means "no usable data".
        """
        parsed = PriceNormalizer._load_completion(text)
        return parsed if isinstance(parsed, list) else None

    @staticmethod
    def parse_completion_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
        """Same as parse_completion, for completions expected to be a JSON object."""
        parsed = PriceNormalizer._load_completion(text)
        return parsed if isinstance(parsed, dict) else None

    @staticmethod
    def normalize_store_price(raw: Dict[str, Any]) -> StorePrice:
        """
        Convert a raw record to StorePrice.

        Raises:
            NormalizationError: If the record has no store name
        """
        if not isinstance(raw, dict):
            raise NormalizationError(f"Store record must be an object, got {type(raw).__name__}")

        store = str(raw.get("store") or raw.get("store_name") or "").strip()
        if not store:
            raise NormalizationError(f"Store record without store name. Data keys: {list(raw.keys())}")

        price = raw.get("price")
        if price is None or (isinstance(price, str) and not price.strip()):
            price_text = "Price unavailable"
        else:
            price_text = str(price).strip()

        offers = raw.get("offers")
        return StorePrice(
            store=store,
            price=price_text,
            regular_price=parse_price_value(PriceNormalizer._pick(raw, "regular_price", "regularPrice")),
            discount_percentage=parse_price_value(
                PriceNormalizer._pick(raw, "discount_percentage", "discountPercentage")
            ),
            vendor_rating=parse_price_value(PriceNormalizer._pick(raw, "vendor_rating", "vendorRating")),
            available=PriceNormalizer._normalize_available(raw.get("available")),
            availability_count=PriceNormalizer._normalize_count(
                PriceNormalizer._pick(raw, "availability_count", "availabilityCount")
            ),
            url=(str(raw["url"]).strip() or None) if raw.get("url") else None,
            offers=list(offers) if isinstance(offers, list) else [],
        )

    @staticmethod
    def normalize_records(items: Iterable[Any]) -> List[StorePrice]:
        """Normalize many records, dropping the ones that can't be normalized."""
        records = []
        for item in items:
            try:
                records.append(PriceNormalizer.normalize_store_price(item))
            except NormalizationError as e:
                logger.warning(f"Dropping store record: {e}")
        return records

    @staticmethod
    def crawl_result_from_payload(payload: Any) -> CrawlResult:
        """
        Parse a price-function response body.

        Raises:
            DataContractError: If the body matches neither envelope
        """
        if not isinstance(payload, dict) or "success" not in payload:
            raise DataContractError("Response is not a crawl envelope")

        if not payload["success"]:
            return CrawlFailure(error=str(payload.get("error") or "Unknown error occurred"))

        data = payload.get("data")
        if not isinstance(data, list):
            raise DataContractError("Success envelope without data array")

        records = PriceNormalizer.normalize_records(data)
        try:
            return CrawlSuccess(
                status=str(payload.get("status", "completed")),
                completed=int(payload.get("completed", len(records))),
                total=int(payload.get("total", len(records))),
                credits_used=int(payload.get("creditsUsed", 0)),
                expires_at=str(payload.get("expiresAt", "")),
                data=records,
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise DataContractError(f"Malformed success envelope: {e}") from e

    @staticmethod
    def history_item_from_dict(raw: Dict[str, Any]) -> HistoryItem:
        try:
            best = raw.get("bestPrice")
            return HistoryItem(
                id=str(raw["id"]),
                timestamp=int(raw["timestamp"]),
                query=str(raw["query"]),
                type=SearchKind(raw.get("type", SearchKind.NAME.value)),
                product_name=raw.get("productName"),
                best_price=PriceNormalizer.normalize_store_price(best) if best else None,
            )
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            raise NormalizationError(f"Invalid history item: {e}") from e

    @staticmethod
    def location_from_dict(raw: Dict[str, Any]) -> StoredLocation:
        try:
            return StoredLocation(
                country=str(raw["country"]),
                country_code=str(raw["countryCode"]),
                city=raw.get("city"),
                latitude=PriceNormalizer._normalize_float(raw.get("latitude")),
                longitude=PriceNormalizer._normalize_float(raw.get("longitude")),
                timestamp=int(raw["timestamp"]) if raw.get("timestamp") is not None else None,
            )
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            raise NormalizationError(f"Invalid stored location: {e}") from e

    @staticmethod
    def _pick(raw: Dict[str, Any], *names: str) -> Any:
        for name in names:
            if raw.get(name) is not None:
                return raw[name]
        return None

    @staticmethod
    def _normalize_float(value: Any) -> Optional[float]:
        if value is None:
            return None
        return float(value)

    @staticmethod
    def _normalize_available(value: Any) -> Optional[bool]:
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "in stock", "available", "1")
        return bool(value)

    @staticmethod
    def _normalize_count(value: Any) -> Optional[int]:
        number = parse_price_value(value)
        if number is None or not math.isfinite(number):
            return None
        return int(number)
