"""Property listing models."""

from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import Field, computed_field

from src.models.base import HubModel, generate_id, generate_listing_id, utc_now


class PropertyType(str, Enum):
    """Kinds of property that can be listed."""
    APARTMENT = "apartment"
    HOUSE = "house"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    LAND = "land"
    COMMERCIAL = "commercial"
    OFFICE = "office"
    WAREHOUSE = "warehouse"
    DUPLEX = "duplex"
    STUDIO = "studio"
    VILLA = "villa"


class ListingType(str, Enum):
    """How the property is offered."""
    SALE = "sale"
    RENT = "rent"
    LEASE = "lease"
    SHORTLET = "shortlet"


class PropertyStatus(str, Enum):
    """Listing lifecycle status."""
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"
    RENTED = "rented"
    INACTIVE = "inactive"
    UNDER_REVIEW = "under_review"
    EXPIRED = "expired"


DEFAULT_AMENITIES = [
    "parking", "swimming_pool", "gym", "elevator", "balcony", "garden",
    "security", "ac", "furnished", "pet_friendly", "wifi", "laundry",
]


class PropertyAddress(HubModel):
    """Postal address of a listing."""
    street: str = Field(default="", description="Street line")
    city: str = Field(default="", description="City")
    state: str = Field(default="", description="State or region")
    country: str = Field(default="Nigeria", description="Country")
    postal_code: Optional[str] = None


class PropertyImage(HubModel):
    """Image attached to a listing."""
    id: str = Field(default_factory=generate_id)
    property_id: str
    image_url: str
    caption: Optional[str] = None
    sort_order: int = 0
    is_primary: bool = False
    uploaded_at: datetime = Field(default_factory=utc_now)


class ImageUpload(HubModel):
    """An image file waiting to be uploaded."""
    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "image/jpeg"


class Property(HubModel):
    """Real estate listing."""
    id: str = Field(default_factory=generate_id, description="Record ID (text)")
    listing_id: str = Field(default_factory=generate_listing_id, description="Public listing reference")
    professional_id: str = Field(..., description="Listing professional ID (text FK)")
    owner_id: Optional[str] = Field(None, description="Owner user ID when listed on their behalf")

    title: str
    description: str = ""
    property_type: PropertyType
    listing_type: ListingType

    price: float = Field(..., ge=0)
    currency: str = "NGN"
    negotiable: bool = False

    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    square_footage: Optional[float] = Field(None, ge=0)
    year_built: Optional[int] = None
    parking_spaces: Optional[int] = Field(None, ge=0)

    features: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    images: list[PropertyImage] = Field(default_factory=list)
    address: PropertyAddress = Field(default_factory=PropertyAddress)

    status: PropertyStatus = PropertyStatus.ACTIVE
    is_active: bool = True
    is_featured: bool = False

    view_count: int = Field(default=0, ge=0)
    inquiry_count: int = Field(default=0, ge=0)
    viewing_count: int = Field(default=0, ge=0)
    favorite_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    published_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @computed_field
    @property
    def days_on_market(self) -> int:
        """Whole days since publication (or creation when never published)."""
        listed_at = self.published_at or self.created_at
        return max(0, (utc_now() - listed_at).days)

    @computed_field
    @property
    def price_per_sqft(self) -> Optional[float]:
        if not self.square_footage:
            return None
        return round(self.price / self.square_footage, 2)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class PropertyCreate(HubModel):
    """Fields submitted by a professional to create a listing."""
    title: str = Field(..., min_length=1)
    description: str = ""
    property_type: PropertyType
    listing_type: ListingType
    price: float = Field(..., ge=0)
    currency: str = "NGN"
    negotiable: bool = False
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    square_footage: Optional[float] = Field(None, ge=0)
    year_built: Optional[int] = None
    parking_spaces: Optional[int] = Field(None, ge=0)
    features: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    address: PropertyAddress = Field(default_factory=PropertyAddress)
    owner_id: Optional[str] = None
    publish: bool = Field(default=True, description="Publish immediately as active")

    def build(self, professional_id: str) -> Property:
        """Materialize a new Property owned by professional_id."""
        now = utc_now()
        data = self.model_dump(exclude={"publish"})
        return Property(
            **data,
            professional_id=professional_id,
            status=PropertyStatus.ACTIVE if self.publish else PropertyStatus.UNDER_REVIEW,
            created_at=now,
            updated_at=now,
            published_at=now if self.publish else None,
        )


class PropertyUpdate(HubModel):
    """Partial update of a listing; unset fields are left unchanged."""
    title: Optional[str] = None
    description: Optional[str] = None
    property_type: Optional[PropertyType] = None
    listing_type: Optional[ListingType] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    negotiable: Optional[bool] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    square_footage: Optional[float] = Field(None, ge=0)
    year_built: Optional[int] = None
    parking_spaces: Optional[int] = Field(None, ge=0)
    features: Optional[list[str]] = None
    amenities: Optional[list[str]] = None
    address: Optional[PropertyAddress] = None
    is_featured: Optional[bool] = None

    def changes(self) -> dict:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


def apply_status(prop: Property, status: PropertyStatus) -> Property:
    """Return a copy of prop moved to status, keeping is_active in step."""
    now = utc_now()
    updates = {
        "status": status,
        "is_active": status == PropertyStatus.ACTIVE,
        "updated_at": now,
    }
    if status == PropertyStatus.ACTIVE and prop.published_at is None:
        updates["published_at"] = now
    return prop.model_copy(update=updates)
