from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from wishlist_api.core.shipping import ReasonCode
from wishlist_api.schemas.stores import CamelModel


class SortKey(str, Enum):
    LOWEST_PRICE = "lowest_price"
    FASTEST_SHIPPING = "fastest_shipping"
    NEWEST = "newest"


class CandidateOffer(CamelModel):
    store_name: str
    domain: str
    price: float                                  # e.g. 599.99
    currency: str                                 # ISO 4217, e.g. "USD"
    url: str
    normalized_price: Optional[float] = None      # price converted to the requested currency
    normalized_currency: Optional[str] = None
    delivery_time: Optional[str] = None           # free text, e.g. "2-3 days"
    created_at: Optional[datetime] = None


class UnavailableOffer(CamelModel):
    store_name: str
    domain: str
    reason_code: ReasonCode
    reason_message: str


class AvailabilityResult(CamelModel):
    available: List[CandidateOffer] = Field(default_factory=list)
    unavailable: List[UnavailableOffer] = Field(default_factory=list)
    city_required: bool = False


class UserLocationSummary(CamelModel):
    country_code: str
    city: Optional[str] = None


class FilteredStoresResponse(CamelModel):
    stores: List[CandidateOffer]
    unavailable_stores: List[UnavailableOffer] = Field(default_factory=list)
    user_location: Optional[UserLocationSummary] = None
    city_required: bool = False
    has_location: bool
    message: Optional[str] = None


class FindAlternativesRequest(CamelModel):
    title: str = Field(..., min_length=1)
    original_url: Optional[str] = None
    country_code: Optional[str] = None
    city: Optional[str] = None
    sort_by: SortKey = SortKey.LOWEST_PRICE
    currency: Optional[str] = None


class AlternativeOffer(CandidateOffer):
    availability: str                             # "available" | "unavailable"
    reason_code: Optional[ReasonCode] = None
    reason: Optional[str] = None
