"""
Price function routing, AI pass-through and placeholder fallback.
"""
import json
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from priceglass.errors import ExternalServiceError, NetworkError
from priceglass.services.price_function import FALLBACK_PRICE, PriceFunction, encode_query

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def ai():
    service = MagicMock()
    service.generate_text = AsyncMock(return_value=None)
    return service


@pytest.fixture
def upc():
    service = MagicMock()
    service.lookup = AsyncMock(side_effect=ExternalServiceError("UPC database error 404"))
    return service


@pytest.fixture
def function(ai, upc):
    with patch("priceglass.services.price_function.capture_ai_fallback") as capture, \
         patch("priceglass.services.price_function.capture_backend_failure"):
        fn = PriceFunction(ai=ai, upc=upc, clock=lambda: NOW)
        fn.capture = capture
        yield fn


def test_encode_query_matches_browser_encoding():
    assert encode_query("iPhone 13") == "iPhone%2013"
    assert encode_query("a&b/c") == "a%26b%2Fc"


@pytest.mark.asyncio
async def test_unparseable_completion_gives_placeholder_rows(function, ai):
    ai.generate_text.return_value = "Sorry, I can't browse the web."

    status, body = await function.handle({"query": "iPhone 13", "type": "name"})

    assert status == 200
    assert body["success"] is True
    assert body["status"] == "completed"
    assert body["completed"] == body["total"] == 3
    assert body["creditsUsed"] == 1
    assert body["expiresAt"] == "2026-10-18T12:00:00.000Z"
    assert [row["store"] for row in body["data"]] == ["Amazon", "Flipkart", "Meesho"]
    assert all(row["price"] == FALLBACK_PRICE for row in body["data"])
    assert all("iPhone%2013" in row["url"] for row in body["data"])
    function.capture.assert_called_once()


@pytest.mark.asyncio
async def test_valid_completion_passes_through(function, ai):
    ai.generate_text.return_value = "```json\n" + json.dumps([
        {"store": "Amazon", "price": "₹52,999", "url": "https://www.amazon.in/dp/B09G9HD6PD",
         "discount_percentage": 12, "vendor_rating": 4.5, "available": True},
        {"store": "Flipkart", "price": "₹54,999"},
    ]) + "\n```"

    status, body = await function.handle({"query": "iPhone 13", "type": "name"})

    assert status == 200
    assert body["completed"] == 2
    assert body["data"][0] == {
        "store": "Amazon",
        "price": "₹52,999",
        "url": "https://www.amazon.in/dp/B09G9HD6PD",
        "discount_percentage": 12.0,
        "vendor_rating": 4.5,
        "available": True,
    }
    assert body["data"][1]["price"] == "₹54,999"
    function.capture.assert_not_called()


@pytest.mark.asyncio
async def test_ai_not_configured_falls_back(function, ai):
    ai.generate_text.side_effect = ExternalServiceError("AI service not configured")

    status, body = await function.handle({"query": "iPhone 13", "type": "name"})

    assert status == 200
    assert len(body["data"]) == 3


@pytest.mark.asyncio
async def test_network_error_is_500(function, ai):
    ai.generate_text.side_effect = NetworkError("Timeout calling AI API")

    status, body = await function.handle({"query": "iPhone 13", "type": "name"})

    assert status == 500
    assert body == {"success": False, "error": "Timeout calling AI API"}


@pytest.mark.asyncio
async def test_invalid_type_is_400(function, ai):
    status, body = await function.handle({"query": "iPhone 13", "type": "sku"})

    assert status == 400
    assert body["success"] is False
    ai.generate_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_query_is_400(function):
    status, body = await function.handle({"type": "name"})
    assert status == 400


@pytest.mark.asyncio
async def test_non_object_body_is_400(function):
    status, body = await function.handle(["iPhone 13"])
    assert status == 400


@pytest.mark.asyncio
async def test_unknown_action_is_400(function):
    status, body = await function.handle({"query": "x", "type": "name", "action": "teleport"})
    assert status == 400
    assert "teleport" in body["error"]


@pytest.mark.asyncio
async def test_url_prompt_includes_product_hint(function, ai):
    await function.handle({"query": "https://shop.example/apple-iphone-13.html", "type": "url"})

    prompt = ai.generate_text.await_args.args[0]
    assert "apple iphone 13" in prompt
    assert "Indian" in prompt


@pytest.mark.asyncio
async def test_chat_canned_reply_when_ai_silent(function):
    status, body = await function.handle({"query": "Any deals on laptops?", "action": "chat"})

    assert status == 200
    assert body["success"] is True
    assert "comparing prices" in body["message"]


@pytest.mark.asyncio
async def test_legacy_type_routes_to_chat(function, ai):
    ai.generate_text.return_value = "Try the festive sale."

    status, body = await function.handle({"query": "when to buy?", "type": "chat"})

    assert status == 200
    assert body["message"] == "Try the festive sale."


@pytest.mark.asyncio
async def test_summarize(function, ai):
    ai.generate_text.return_value = "  A fast phone with a great camera.  "

    status, body = await function.handle({"query": "long description", "action": "summarize"})

    assert body == {"success": True, "summary": "A fast phone with a great camera."}


@pytest.mark.asyncio
async def test_review_analysis_fallback(function):
    status, body = await function.handle({
        "query": "reviews",
        "action": "analyze_reviews",
        "reviews": ["Great value, love it", "Excellent quality"],
    })

    assert status == 200
    analysis = body["analysis"]
    assert analysis["sentiment"] == "positive"
    assert analysis["is_fallback"] is True
    assert 0 <= analysis["rating"] <= 5


@pytest.mark.asyncio
async def test_lookup_name_not_found_is_404(function):
    status, body = await function.handle({"query": "zzzz", "action": "lookup_name"})

    assert status == 404
    assert body == {"success": False, "error": "No product information found"}


@pytest.mark.asyncio
async def test_barcode_uses_upc_database_first(function, ai, upc):
    upc.lookup.side_effect = None
    upc.lookup.return_value = {"title": "Parle-G Biscuits", "brand": "Parle"}

    status, body = await function.handle({"query": "8901719104046", "action": "lookup_barcode"})

    assert status == 200
    assert body["product"]["name"] == "Parle-G Biscuits"
    ai.generate_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_barcode_falls_back_to_ai(function, ai):
    ai.generate_text.return_value = '{"name": "Parle-G", "brand": "Parle"}'

    status, body = await function.handle({"query": "8901719104046", "action": "lookup_barcode"})

    assert status == 200
    assert body["product"]["brand"] == "Parle"


@pytest.mark.asyncio
async def test_barcode_must_be_digits(function):
    status, body = await function.handle({"query": "89A1", "action": "lookup_barcode"})
    assert status == 400


@pytest.mark.asyncio
async def test_legacy_type_uses_action_as_focus(function, ai):
    ai.generate_text.return_value = "Short summary."

    status, body = await function.handle({"query": "long description", "type": "summarize", "action": "tldr"})

    assert status == 200
    assert body == {"success": True, "summary": "Short summary."}
    assert "(tldr)" in ai.generate_text.await_args.args[0]


@pytest.mark.asyncio
async def test_legacy_analyze_type_with_focus_action(function):
    status, body = await function.handle({
        "query": "reviews", "type": "analyze", "action": "battery", "reviews": ["bad battery"],
    })

    assert status == 200
    assert body["analysis"]["sentiment"] == "negative"
