"""
Canonical internal data contract for price comparisons.
Wire names (camelCase) are only produced and consumed in to_dict/from_dict.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class SearchKind(str, Enum):
    """Inferred kind of a search query."""
    URL = "url"
    BARCODE = "barcode"
    NAME = "name"


@dataclass(frozen=True)
class StorePrice:
    """One retailer's quoted price and metadata for a product."""
    store: str
    price: str

    regular_price: Optional[float] = None
    discount_percentage: Optional[float] = None
    vendor_rating: Optional[float] = None
    available: Optional[bool] = None
    availability_count: Optional[int] = None
    url: Optional[str] = None
    offers: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"store": self.store, "price": self.price}
        optional = {
            "url": self.url,
            "regular_price": self.regular_price,
            "discount_percentage": self.discount_percentage,
            "vendor_rating": self.vendor_rating,
            "available": self.available,
            "availability_count": self.availability_count,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.offers:
            data["offers"] = list(self.offers)
        return data


@dataclass(frozen=True)
class CrawlSuccess:
    """Successful price lookup."""
    status: str
    completed: int
    total: int
    credits_used: int
    expires_at: str
    data: List[StorePrice] = field(default_factory=list)

    success = True

    @property
    def is_empty(self) -> bool:
        return not self.data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "status": self.status,
            "completed": self.completed,
            "total": self.total,
            "creditsUsed": self.credits_used,
            "expiresAt": self.expires_at,
            "data": [record.to_dict() for record in self.data],
        }


@dataclass(frozen=True)
class CrawlFailure:
    """Failed price lookup."""
    error: str

    success = False

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.error}


CrawlResult = Union[CrawlSuccess, CrawlFailure]


@dataclass(frozen=True)
class HistoryItem:
    """A persisted record of a past search and its outcome."""
    id: str
    timestamp: int
    query: str
    type: SearchKind
    product_name: Optional[str] = None
    best_price: Optional[StorePrice] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "query": self.query,
            "type": self.type.value,
            "productName": self.product_name,
            "bestPrice": self.best_price.to_dict() if self.best_price else None,
        }


@dataclass(frozen=True)
class StoredLocation:
    """User location as last detected or chosen."""
    country: str
    country_code: str
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "countryCode": self.country_code,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
        }
