"""
Wrapper for the public UPC database.
Barcode lookups try here first and fall back to the AI service.
"""
import aiohttp
import asyncio
from typing import Any, Dict, Optional

from priceglass.errors import ExternalServiceError, NetworkError
from priceglass.config import config
from priceglass.logger import logger


class UPCService:

    def __init__(self):
        self.base_url = config.UPC_DATABASE_URL.rstrip("/")
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=config.REQUEST_TIMEOUT)
        )

    async def close(self):
        if self.session:
            await self.session.close()

    async def lookup(self, barcode: str) -> Dict[str, Any]:
        """
        Fetch product data for a barcode.

        Raises:
            ExternalServiceError: On a non-200 answer or a non-object body
            NetworkError: If the network call fails
        """
        if self.session is None:
            raise ExternalServiceError("UPC service not initialized")

        try:
            response = await self.session.get(f"{self.base_url}/product/{barcode}")
            if response.status != 200:
                raise ExternalServiceError(f"UPC database error {response.status}")
            data = await response.json()
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error calling UPC database: {str(e)}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timeout calling UPC database: {str(e)}") from e

        if not isinstance(data, dict):
            raise ExternalServiceError("Invalid response format from UPC database")

        logger.info(f"UPC database match for barcode {barcode}")
        return data


# Global service instance
upc_service = UPCService()
