"""Search, pagination and matching models."""

from enum import Enum
from typing import Optional
from pydantic import Field, computed_field, field_validator

from src.models.base import HubModel
from src.models.property import ListingType, Property, PropertyStatus, PropertyType


MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


class SortBy(str, Enum):
    """Sortable listing attributes."""
    PRICE = "price"
    DATE = "date"
    SIZE = "size"
    POPULARITY = "popularity"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PropertySearchFilters(HubModel):
    """Conjunction of optional listing predicates plus ordering and paging."""
    property_type: Optional[PropertyType] = None
    listing_type: Optional[ListingType] = None
    price_min: Optional[float] = Field(None, ge=0)
    price_max: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0, description="Minimum bedrooms")
    bathrooms: Optional[int] = Field(None, ge=0, description="Minimum bathrooms")
    square_footage_min: Optional[float] = Field(None, ge=0)
    square_footage_max: Optional[float] = Field(None, ge=0)
    location: Optional[str] = Field(None, description="Substring of city, state or street")
    amenities: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    status: Optional[PropertyStatus] = None
    professional_id: Optional[str] = None

    sort_by: SortBy = SortBy.DATE
    sort_order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("location")
    @classmethod
    def _blank_location_is_absent(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("amenities", "features", mode="before")
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_query_params(self) -> dict:
        """Encode as REST query parameters (camelCase, lists comma-joined)."""
        params = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        for key in ("amenities", "features"):
            if params.get(key):
                params[key] = ",".join(params[key])
            else:
                params.pop(key, None)
        return params


class PropertySearchResult(HubModel):
    """One page of search results."""
    properties: list[Property] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @computed_field
    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.total else 0

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class ClientPreferences(HubModel):
    """What a client told their agent they are looking for."""
    property_types: list[PropertyType] = Field(default_factory=list)
    listing_type: Optional[ListingType] = None
    budget_min: Optional[float] = Field(None, ge=0)
    budget_max: Optional[float] = Field(None, ge=0)
    min_bedrooms: Optional[int] = Field(None, ge=0)
    min_bathrooms: Optional[int] = Field(None, ge=0)
    locations: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)


class PropertyMatch(HubModel):
    """A listing scored against a client's preferences."""
    listing: Property
    score: int = Field(..., ge=0, le=100)
    matched: list[str] = Field(default_factory=list, description="Criteria fully satisfied")
