"""
AIService tests with proper mocking.
"""
import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from priceglass.errors import ExternalServiceError, NetworkError
from priceglass.services.ai_service import AIService
from priceglass.services.upc_service import UPCService

COMPLETION = {"candidates": [{"content": {"parts": [{"text": "[]"}]}}]}


@pytest.fixture
def service():
    with patch("priceglass.services.ai_service.config.GEMINI_API_KEY", "test_key_123"):
        ai = AIService()
    ai.session = MagicMock()
    return ai


def make_response(status=200, body=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)
    return response


def test_not_configured_without_key():
    with patch("priceglass.services.ai_service.config.GEMINI_API_KEY", ""):
        assert AIService().is_available is False


@pytest.mark.asyncio
async def test_initialize_session():
    with patch("priceglass.services.ai_service.config.GEMINI_API_KEY", "test_key_123"):
        ai = AIService()

    with patch("aiohttp.ClientSession") as mock_session_class:
        await ai.initialize()

        mock_session_class.assert_called_once()
        headers = mock_session_class.call_args.kwargs["headers"]
        assert headers["x-goog-api-key"] == "test_key_123"


@pytest.mark.asyncio
async def test_generate_text_returns_first_candidate(service):
    service.session.post = AsyncMock(return_value=make_response(body=COMPLETION))

    assert await service.generate_text("prices for iPhone 13") == "[]"

    url = service.session.post.await_args.args[0]
    assert url.endswith(":generateContent")
    payload = service.session.post.await_args.kwargs["json"]
    assert payload == {"contents": [{"parts": [{"text": "prices for iPhone 13"}]}]}


@pytest.mark.asyncio
async def test_generate_text_without_candidates(service):
    service.session.post = AsyncMock(return_value=make_response(body={"candidates": []}))
    assert await service.generate_text("hi") is None


@pytest.mark.asyncio
async def test_api_error_raises_external_service_error(service):
    service.session.post = AsyncMock(return_value=make_response(status=429, text="quota"))

    with pytest.raises(ExternalServiceError) as exc_info:
        await service.generate_text("hi")
    assert "429" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_errors(service):
    service.session.post = AsyncMock(side_effect=aiohttp.ClientError("reset"))
    with pytest.raises(NetworkError):
        await service.generate_text("hi")

    service.session.post = AsyncMock(side_effect=asyncio.TimeoutError())
    with pytest.raises(NetworkError):
        await service.generate_text("hi")


@pytest.mark.asyncio
async def test_unconfigured_call_raises():
    with patch("priceglass.services.ai_service.config.GEMINI_API_KEY", ""):
        ai = AIService()
    with pytest.raises(ExternalServiceError):
        await ai.generate_text("hi")


@pytest.mark.asyncio
async def test_upc_lookup():
    upc = UPCService()
    upc.session = MagicMock()
    upc.session.get = AsyncMock(return_value=make_response(body={"title": "Parle-G"}))

    assert await upc.lookup("8901719104046") == {"title": "Parle-G"}
    assert upc.session.get.await_args.args[0].endswith("/product/8901719104046")

    upc.session.get = AsyncMock(return_value=make_response(status=404))
    with pytest.raises(ExternalServiceError):
        await upc.lookup("0000")
