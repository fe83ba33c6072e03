"""
Wrapper for the Gemini generateContent API.
Includes timeout, response validation, error translation.
All AI/LLM calls are isolated here.
"""
import aiohttp
import asyncio
import json
from typing import Any, Dict, Optional

from priceglass.errors import ExternalServiceError, NetworkError
from priceglass.config import config
from priceglass.logger import logger


class AIService:
    """
    Wrapper for Gemini calls.
    Business logic never calls the completion API directly.
    """

    def __init__(self):
        self.api_key = config.GEMINI_API_KEY
        self.base_url = config.GEMINI_BASE_URL.rstrip("/")
        self.model = config.GEMINI_MODEL
        self.session: Optional[aiohttp.ClientSession] = None
        self.is_available = bool(self.api_key)

    async def initialize(self):
        """Initialize HTTP session (called after startup)."""
        if not self.is_available:
            logger.warning("AI service not configured")
            return

        self.session = aiohttp.ClientSession(
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json"
            },
            timeout=aiohttp.ClientTimeout(total=config.REQUEST_TIMEOUT)
        )
        logger.info(f"AI service initialized with model: {self.model}")

    async def close(self):
        """Close HTTP session."""
        if self.session:
            await self.session.close()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_text(self, prompt: str) -> Optional[str]:
        """
        Send a single free-text prompt, no retry.

        Returns:
            The first candidate's text, or None when the response has no text

        Raises:
            ExternalServiceError: If the API is not configured or answers non-200
            NetworkError: If the network call fails
        """
        if not self.is_available or self.session is None:
            raise ExternalServiceError("AI service not configured")

        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        try:
            response = await self.session.post(self.endpoint, json=payload)

            if response.status != 200:
                error_text = await response.text()
                raise ExternalServiceError(
                    f"AI API error {response.status}: {error_text[:200]}"
                )

            result = await response.json()

        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error calling AI API: {str(e)}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timeout calling AI API: {str(e)}") from e
        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"Invalid JSON response from AI API: {str(e)}") from e

        text = self.extract_text(result)
        if text is None:
            logger.warning("AI response carried no candidate text")
        return text

    @staticmethod
    def extract_text(result: Any) -> Optional[str]:
        """Only candidates[0].content.parts[0].text is trusted."""
        try:
            text = result["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None

    def get_service_status(self) -> Dict[str, Any]:
        return {
            "available": self.is_available,
            "model": self.model,
            "session_open": self.session is not None and not self.session.closed,
        }


# Global service instance
ai_service = AIService()
