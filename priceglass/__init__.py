"""
Price Glass - AI-estimated price comparison with history and localization.
"""

__version__ = "1.0.0"
__author__ = "Engineering Team"

# Export main components for easy import
from priceglass.config import config
from priceglass.logger import logger
from priceglass.errors import (
    ConfigError,
    NetworkError,
    ExternalServiceError,
    DataContractError,
    NormalizationError,
    ValidationError,
    StorageError
)

__all__ = [
    'config',
    'logger',
    'ConfigError',
    'NetworkError',
    'ExternalServiceError',
    'DataContractError',
    'NormalizationError',
    'ValidationError',
    'StorageError'
]
