"""
Client for the price function.
Single point of contact with the pricing backend: classification, caching,
envelope normalization. Nothing raised past this module.
"""
import aiohttp
import asyncio
import copy
import json
from typing import Any, Dict, List, Optional

from priceglass.errors import DataContractError, ExternalServiceError, NetworkError
from priceglass.config import config
from priceglass.logger import logger
from priceglass.models.pricing import CrawlFailure, CrawlResult, SearchKind
from priceglass.normalizers.pricing import PriceNormalizer
from priceglass.utils.cache import ResponseCache

EMPTY_QUERY_ERROR = "Please enter a product URL, name, or barcode"


def classify_query(query: str) -> SearchKind:
    """
    http... is a URL, all ASCII digits is a barcode, anything else is a name.
    The query is classified as given; callers trim it first if they want to.
    """
    if query.startswith("http"):
        return SearchKind.URL
    if query.isascii() and query.isdigit():
        return SearchKind.BARCODE
    return SearchKind.NAME


class SearchService:
    """
    Wrapper for price function calls.
    Business logic never calls the backend directly.
    """

    def __init__(self, backend_url: Optional[str] = None, cache: Optional[ResponseCache] = None):
        self.backend_url = backend_url or config.BACKEND_URL
        self.cache = cache if cache is not None else ResponseCache(
            ttl_sec=config.CACHE_TTL, max_entries=config.CACHE_MAX_ENTRIES
        )
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self):
        """Initialize HTTP session."""
        self.session = aiohttp.ClientSession(
            headers={"Content-Type": "application/json"},
            timeout=aiohttp.ClientTimeout(total=config.REQUEST_TIMEOUT)
        )
        logger.info(f"Search service initialized against {self.backend_url}")

    async def close(self):
        """Close HTTP session."""
        if self.session:
            await self.session.close()

    @staticmethod
    def cache_key(action: str, query: str) -> str:
        return f"{action}:{query}"

    async def _invoke(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST one request to the price function.

        Raises:
            ExternalServiceError: On a non-2xx answer or a non-JSON body
            NetworkError: If the network call fails
        """
        if self.session is None:
            raise ExternalServiceError("Search service not initialized")

        try:
            response = await self.session.post(self.backend_url, json=payload)
            text = await response.text()
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error calling price function: {str(e)}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timeout calling price function: {str(e)}") from e

        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            body = None

        if not 200 <= response.status < 300:
            detail = body.get("error") if isinstance(body, dict) else text[:200]
            raise ExternalServiceError(f"Price function error {response.status}: {detail}")

        if not isinstance(body, dict):
            raise ExternalServiceError("Invalid JSON response from price function")
        return body

    async def _call(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke and flatten every failure into {"success": False, "error": ...}."""
        try:
            return await self._invoke(payload)
        except (NetworkError, ExternalServiceError) as e:
            logger.error(f"Price function call failed ({payload.get('action')}): {e}")
            return {"success": False, "error": str(e)}

    async def _call_cached(self, action: str, query: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        key = self.cache_key(action, query)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Cache hit for {action}: {query[:64]}")
            return copy.deepcopy(cached)

        logger.info(f"Cache miss for {action}: {query[:64]}")
        body = await self._call(payload)
        if body.get("success") and self._is_cacheable(body):
            self.cache.set(key, copy.deepcopy(body))
        return body

    @staticmethod
    def _is_cacheable(body: Dict[str, Any]) -> bool:
        # empty results are never cached so a retry reaches the backend
        data = body.get("data")
        return not isinstance(data, list) or bool(data)

    async def compare(self, query: str) -> CrawlResult:
        """Compare prices for a URL, barcode or product name."""
        if not query or not query.strip():
            return CrawlFailure(error=EMPTY_QUERY_ERROR)

        kind = classify_query(query)
        body = await self._call_cached("compare", query, {
            "query": query,
            "type": kind.value,
            "action": "compare",
        })

        try:
            return PriceNormalizer.crawl_result_from_payload(body)
        except DataContractError as e:
            logger.error(f"Unexpected compare response: {e}")
            return CrawlFailure(error=str(e))

    async def lookup_barcode(self, barcode: str) -> Dict[str, Any]:
        if not barcode or not barcode.strip():
            return {"success": False, "error": EMPTY_QUERY_ERROR}
        return await self._call_cached("lookup_barcode", barcode, {
            "query": barcode,
            "type": SearchKind.BARCODE.value,
            "action": "lookup_barcode",
        })

    async def lookup_by_name(self, name: str) -> Dict[str, Any]:
        if not name or not name.strip():
            return {"success": False, "error": EMPTY_QUERY_ERROR}
        return await self._call_cached("lookup_name", name, {
            "query": name,
            "type": SearchKind.NAME.value,
            "action": "lookup_name",
        })

    async def chat(self, message: str, context: str = "general") -> Dict[str, Any]:
        """Always live, never cached."""
        if not message or not message.strip():
            return {"success": False, "error": "Message is empty"}
        return await self._call({
            "query": message,
            "type": SearchKind.NAME.value,
            "action": "chat",
            "context": context,
        })

    async def summarize(self, text: str, focus: str = "generic") -> Dict[str, Any]:
        if not text or not text.strip():
            return {"success": False, "error": "Nothing to summarize"}
        return await self._call({
            "query": text,
            "type": SearchKind.NAME.value,
            "action": "summarize",
            "context": focus,
        })

    async def analyze_reviews(self, reviews: List[str], focus: str = "generic") -> Dict[str, Any]:
        return await self._call({
            "query": "reviews",
            "type": SearchKind.NAME.value,
            "action": "analyze",
            "context": focus,
            "reviews": list(reviews),
        })


# Global service instance
search_service = SearchService()
