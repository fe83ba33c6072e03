"""
Domain exceptions for Price Glass.
Raised inside service wrappers, turned into envelopes at the boundaries.
"""


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class NetworkError(Exception):
    """Base class for network-related failures."""
    pass


class ExternalServiceError(Exception):
    """Raised when an external service (Gemini, UPC database, Nominatim, price function) fails."""
    pass


class DataContractError(Exception):
    """Raised when a payload doesn't conform to the wire contract."""
    pass


class NormalizationError(Exception):
    """Raised when raw store data cannot be normalized."""
    pass


class ValidationError(Exception):
    """Raised when a request is rejected before any network call."""
    pass


class StorageError(Exception):
    """Raised when a persisted-state backend fails."""
    pass
