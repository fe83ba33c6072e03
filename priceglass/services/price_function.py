"""
The price-estimation function behind POST /functions/scrape-prices.
Stateless: builds a prompt, asks the AI service, passes through or stubs the JSON.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

from priceglass.errors import ExternalServiceError, NetworkError, ValidationError
from priceglass.logger import logger
from priceglass.models.pricing import CrawlSuccess, SearchKind, StorePrice
from priceglass.normalizers.pricing import PriceNormalizer, product_hint_from_url
from priceglass.sentry import capture_ai_fallback, capture_backend_failure
from priceglass.services.ai_service import AIService, ai_service
from priceglass.services.upc_service import UPCService, upc_service

FALLBACK_PRICE = "Price unavailable"

# (store, search url template) used when the AI answer is unusable
FALLBACK_STORES = (
    ("Amazon", "https://www.amazon.in/s?k={query}"),
    ("Flipkart", "https://www.flipkart.com/search?q={query}"),
    ("Meesho", "https://www.meesho.com/search?q={query}"),
)

RESULT_TTL = timedelta(hours=24)
CREDITS_PER_SEARCH = 1

ACTION_COMPARE = "compare"
ACTION_LOOKUP_BARCODE = "lookup_barcode"
ACTION_LOOKUP_NAME = "lookup_name"
ACTION_CHAT = "chat"
ACTION_SUMMARIZE = "summarize"
ACTION_ANALYZE = "analyze"

_LEGACY_TYPE_ACTIONS = (ACTION_CHAT, ACTION_SUMMARIZE, ACTION_ANALYZE)
_EXPLICIT_ACTIONS = (
    ACTION_LOOKUP_BARCODE, ACTION_LOOKUP_NAME, ACTION_CHAT, ACTION_SUMMARIZE, ACTION_ANALYZE, "analyze_reviews",
)

_POSITIVE_WORDS = ("good", "great", "excellent", "love", "perfect", "fast", "value", "quality", "recommend")
_NEGATIVE_WORDS = ("bad", "poor", "broken", "slow", "return", "refund", "worst", "cheap", "issue")


def encode_query(query: str) -> str:
    """Percent-encode like a browser's encodeURIComponent."""
    return quote(query, safe="!~*'()")


def fallback_records(query: str) -> List[StorePrice]:
    encoded = encode_query(query)
    return [
        StorePrice(store=store, price=FALLBACK_PRICE, url=template.format(query=encoded))
        for store, template in FALLBACK_STORES
    ]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PriceFunction:
    """
    Request router and handlers for the price function.
    handle() never raises: every outcome is (status_code, envelope).
    """

    def __init__(self, ai: AIService = ai_service, upc: UPCService = upc_service,
                 clock: Callable[[], datetime] = _utcnow):
        self.ai = ai
        self.upc = upc
        self.clock = clock

    async def handle(self, body: Any) -> Tuple[int, Dict[str, Any]]:
        action = body.get("action") if isinstance(body, dict) else None
        try:
            if not isinstance(body, dict):
                raise ValidationError("Request body must be a JSON object")

            action, focus = self._resolve_action(body)
            logger.info(f"Processing {action} request")

            if action == ACTION_COMPARE:
                query, kind = self._validate_search(body)
                result = await self.estimate_prices(query, kind)
                return 200, result.to_dict()
            if action == ACTION_LOOKUP_NAME:
                return await self.lookup_name(self._require_query(body))
            if action == ACTION_LOOKUP_BARCODE:
                return await self.lookup_barcode(self._require_query(body))
            if action == ACTION_CHAT:
                message = await self.chat(
                    self._require_query(body), str(body.get("context") or focus or "general")
                )
                return 200, {"success": True, "message": message}
            if action == ACTION_SUMMARIZE:
                summary = await self.summarize(
                    self._require_query(body), str(body.get("context") or focus or "generic")
                )
                return 200, {"success": True, "summary": summary}
            if action == ACTION_ANALYZE:
                analysis = await self.analyze_reviews(self._require_reviews(body))
                return 200, {"success": True, "analysis": analysis}

            raise ValidationError(f"Unknown action: {action}")

        except ValidationError as e:
            logger.warning(f"Rejected request: {e}")
            return 400, {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error in price function ({action}): {e}", exc_info=True)
            capture_backend_failure(str(action or "unknown"), e)
            return 500, {"success": False, "error": str(e) or "Unknown error occurred"}

    def _resolve_action(self, body: Dict[str, Any]) -> Tuple[str, Optional[str]]:
        """Returns (action, focus hint)."""
        action = body.get("action")
        legacy = body.get("type")
        if legacy in _LEGACY_TYPE_ACTIONS and action not in _EXPLICIT_ACTIONS:
            # older clients put the action in "type" and a focus hint in "action"
            focus = str(action) if action and action != ACTION_COMPARE else None
            return legacy, focus
        if action in (None, "", "generic", ACTION_COMPARE):
            return ACTION_COMPARE, None
        if action == "analyze_reviews":
            return ACTION_ANALYZE, None
        return str(action), None

    def _require_query(self, body: Dict[str, Any]) -> str:
        query = body.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("Query is required")
        return query.strip()

    def _require_reviews(self, body: Dict[str, Any]) -> List[str]:
        reviews = body.get("reviews") or []
        if not isinstance(reviews, list) or not all(isinstance(r, str) for r in reviews):
            raise ValidationError("Reviews must be a list of strings")
        return reviews

    def _validate_search(self, body: Dict[str, Any]) -> Tuple[str, SearchKind]:
        query = self._require_query(body)
        try:
            kind = SearchKind(body.get("type"))
        except ValueError:
            raise ValidationError("Type must be one of: name, url, barcode")
        return query, kind

    # ---------- compare ----------

    def build_price_prompt(self, query: str, kind: SearchKind) -> str:
        if kind == SearchKind.URL:
            hint = product_hint_from_url(query)
            subject = f'the product at this URL: {query}'
            if hint:
                subject += f' (likely "{hint}")'
        elif kind == SearchKind.BARCODE:
            subject = f"the product with barcode {query}"
        else:
            subject = f'"{query}"'

        return (
            f"Estimate current prices for {subject} on major Indian e-commerce platforms "
            "such as Amazon, Flipkart and Meesho. Respond with only a JSON array, one object "
            'per store, using the keys "store", "price" (string with the ₹ symbol), "url", '
            '"regular_price", "discount_percentage", "vendor_rating" and "available". '
            "Do not add any text outside the JSON array."
        )

    async def estimate_prices(self, query: str, kind: SearchKind) -> CrawlSuccess:
        """
        One AI call, no retry. Unusable output becomes the three placeholder rows.

        Raises:
            NetworkError: If the AI service can't be reached
        """
        text: Optional[str] = None
        try:
            text = await self.ai.generate_text(self.build_price_prompt(query, kind))
        except ExternalServiceError as e:
            logger.warning(f"AI service gave no answer: {e}")

        records = PriceNormalizer.normalize_records(PriceNormalizer.parse_completion(text) or [])

        if not records:
            reason = "no text" if text is None else "unparseable completion"
            logger.warning(f"Using placeholder prices for '{query}': {reason}")
            capture_ai_fallback(query, reason)
            records = fallback_records(query)

        return CrawlSuccess(
            status="completed",
            completed=len(records),
            total=len(records),
            credits_used=CREDITS_PER_SEARCH,
            expires_at=_iso(self.clock() + RESULT_TTL),
            data=records,
        )

    # ---------- product lookups ----------

    async def lookup_name(self, query: str) -> Tuple[int, Dict[str, Any]]:
        prompt = (
            f"Find product details for: {query}. Return only a JSON object with the keys "
            '"name", "category", "brand" and "price_range" (likely price range in INR).'
        )
        try:
            product = PriceNormalizer.parse_completion_object(await self.ai.generate_text(prompt))
        except ExternalServiceError as e:
            logger.warning(f"Product lookup unavailable: {e}")
            product = None

        if not product:
            return 404, {"success": False, "error": "No product information found"}
        return 200, {"success": True, "product": product}

    async def lookup_barcode(self, barcode: str) -> Tuple[int, Dict[str, Any]]:
        if not barcode.isdigit():
            raise ValidationError("Barcode must contain only digits")
        try:
            data = await self.upc.lookup(barcode)
            name = data.get("title") or data.get("name") or data.get("description")
            if name:
                product = dict(data)
                product["name"] = name
                return 200, {"success": True, "product": product}
        except (ExternalServiceError, NetworkError) as e:
            logger.info(f"UPC lookup failed for {barcode}, asking AI: {e}")
        return await self.lookup_name(barcode)

    # ---------- assistant ----------

    async def chat(self, message: str, context: str = "general") -> str:
        prompt = (
            "You are a friendly shopping assistant for a price comparison app. "
            f"Conversation context: {context}. Answer briefly.\n\nUser: {message}"
        )
        try:
            reply = await self.ai.generate_text(prompt)
        except ExternalServiceError as e:
            logger.warning(f"Chat falling back to canned reply: {e}")
            reply = None
        return reply.strip() if reply and reply.strip() else self._canned_reply(message)

    @staticmethod
    def _canned_reply(message: str) -> str:
        text = message.lower()
        if any(word in text for word in ("price", "deal", "cheap")):
            return ("You can find great deals by comparing prices across multiple retailers. "
                    "Search for a specific product to see a price comparison.")
        if "iphone" in text or "apple" in text:
            return ("Apple products tend to have consistent pricing, but authorized retailers "
                    "run deals during sale events.")
        if "best" in text and "time" in text:
            return ("The best times to shop are major sale events like Black Friday, Cyber Monday, "
                    "Prime Day and festive season sales.")
        if "how" in text and "work" in text:
            return ("Enter a product name, URL, or barcode and the assistant will estimate and "
                    "compare prices across stores for you.")
        return ("I'm here to help you find the best deals. Ask about specific products, "
                "price trends, or shopping strategies!")

    async def summarize(self, text: str, focus: str = "generic") -> str:
        prompt = (
            "Summarize this product description in two sentences, focusing on key features "
            f"and benefits ({focus}):\n\n{text}"
        )
        try:
            summary = await self.ai.generate_text(prompt)
        except ExternalServiceError as e:
            logger.warning(f"Summary falling back to canned text: {e}")
            summary = None
        if summary and summary.strip():
            return summary.strip()
        return "This is a summarized version of the product description focusing on key features and benefits."

    async def analyze_reviews(self, reviews: List[str]) -> Dict[str, Any]:
        if not reviews:
            return self._fallback_review_analysis(reviews)

        joined = "\n".join(f"- {review}" for review in reviews[:50])
        prompt = (
            "Analyze the sentiment of these product reviews. Return only a JSON object with "
            '"sentiment" (positive, neutral or negative), "positivePoints" (list), '
            '"negativePoints" (list) and "rating" (0-5).\n\n' + joined
        )
        try:
            analysis = PriceNormalizer.parse_completion_object(await self.ai.generate_text(prompt))
        except ExternalServiceError as e:
            logger.warning(f"Review analysis falling back to rules: {e}")
            analysis = None
        return analysis or self._fallback_review_analysis(reviews)

    @staticmethod
    def _fallback_review_analysis(reviews: List[str]) -> Dict[str, Any]:
        """Keyword count when the AI service can't answer."""
        positive = negative = 0
        for review in reviews:
            text = review.lower()
            positive += sum(word in text for word in _POSITIVE_WORDS)
            negative += sum(word in text for word in _NEGATIVE_WORDS)

        if positive > negative:
            sentiment = "positive"
        elif negative > positive:
            sentiment = "negative"
        else:
            sentiment = "neutral"

        total = positive + negative
        rating = round(1 + 4 * positive / total, 1) if total else 3.0
        return {
            "sentiment": sentiment,
            "positivePoints": [w for w in _POSITIVE_WORDS if any(w in r.lower() for r in reviews)],
            "negativePoints": [w for w in _NEGATIVE_WORDS if any(w in r.lower() for r in reviews)],
            "rating": rating,
            "is_fallback": True,
        }


# Global function instance
price_function = PriceFunction()
