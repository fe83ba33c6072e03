"""
Services package initialization.
Centralizes service imports.
"""

from priceglass.services.ai_service import ai_service
from priceglass.services.upc_service import upc_service
from priceglass.services.price_function import price_function
from priceglass.services.search_service import search_service

__all__ = [
    'ai_service',
    'upc_service',
    'price_function',
    'search_service'
]
