"""In-memory backend used when the remote backend is unavailable."""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from src.models.base import utc_now
from src.models.inquiry import InquiryRequest, InquiryStatus, PropertyInquiry
from src.models.professional import (
    ProfessionalRegistration,
    RealEstateProfessional,
    VerificationStatus,
    apply_verification,
)
from src.models.property import (
    ImageUpload,
    ListingType,
    Property,
    PropertyAddress,
    PropertyCreate,
    PropertyImage,
    PropertyStatus,
    PropertyType,
    PropertyUpdate,
    apply_status,
)
from src.models.search import PropertySearchFilters, PropertySearchResult
from src.models.viewing import PropertyViewing, ViewingRequest, ViewingStatus
from src.services.backend import PropertyBackend
from src.services.property_query import run_query
from src.utils.errors import NotFoundError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Fields callers may not overwrite through update_professional
_PROTECTED_PROFESSIONAL_FIELDS = {"id", "user_id", "created_at", "verification_status", "is_verified", "verified_at"}


def sample_properties() -> list[Property]:
    """A handful of listings so mock mode has something to show."""
    now = utc_now()
    rows = [
        ("Luxury 3 Bedroom Apartment", PropertyType.APARTMENT, ListingType.SALE, 85_000_000,
         3, 3, 1800, ("12 Admiralty Way", "Lekki", "Lagos"), ["parking", "swimming_pool", "gym", "security"], 120, 40),
        ("Family Home with Garden", PropertyType.HOUSE, ListingType.SALE, 120_000_000,
         5, 4, 3200, ("4 Aso Drive", "Maitama", "Abuja"), ["parking", "garden", "security"], 95, 65),
        ("Serviced Studio", PropertyType.STUDIO, ListingType.RENT, 2_500_000,
         1, 1, 450, ("22 Allen Avenue", "Ikeja", "Lagos"), ["ac", "wifi", "furnished"], 60, 10),
        ("Modern Duplex", PropertyType.DUPLEX, ListingType.SALE, 150_000_000,
         4, 5, 3600, ("7 Banana Island Road", "Ikoyi", "Lagos"), ["parking", "swimming_pool", "elevator", "security"], 210, 25),
        ("Office Space", PropertyType.OFFICE, ListingType.LEASE, 18_000_000,
         None, 2, 2400, ("15 Aminu Kano Crescent", "Wuse II", "Abuja"), ["parking", "elevator", "ac"], 35, 90),
        ("Shortlet Condo", PropertyType.CONDO, ListingType.SHORTLET, 150_000,
         2, 2, 1100, ("3 Ozumba Mbadiwe Avenue", "Victoria Island", "Lagos"), ["wifi", "ac", "furnished", "gym"], 180, 5),
    ]

    properties = []
    for index, (title, ptype, ltype, price, beds, baths, sqft, (street, city, state), amenities, views, age_days) in enumerate(rows):
        listed_at = now - timedelta(days=age_days)
        properties.append(Property(
            professional_id=f"mock_professional_{index % 2 + 1}",
            title=title,
            description=f"{title} in {city}, {state}.",
            property_type=ptype,
            listing_type=ltype,
            price=price,
            bedrooms=beds,
            bathrooms=baths,
            square_footage=sqft,
            amenities=amenities,
            address=PropertyAddress(street=street, city=city, state=state),
            view_count=views,
            created_at=listed_at,
            updated_at=listed_at,
            published_at=listed_at,
        ))
    return properties


class MockPropertyStore(PropertyBackend):
    """
    Explicit in-memory repository implementing the full backend contract.

    Records live in insertion-ordered dicts owned by the instance. Inquiry,
    viewing and favorite counts are derived from stored records on every
    read; only the view counter is stored.
    """

    name = "mock"

    def __init__(self, properties: Optional[list[Property]] = None):
        self._lock = asyncio.Lock()
        self.properties: dict[str, Property] = {}
        self.professionals: dict[str, RealEstateProfessional] = {}
        self.viewings: dict[str, PropertyViewing] = {}
        self.inquiries: dict[str, PropertyInquiry] = {}
        self.favorites: dict[str, list[str]] = {}

        for prop in properties or []:
            self.properties[prop.id] = prop

    @classmethod
    def seeded(cls) -> "MockPropertyStore":
        return cls(sample_properties())

    def clear(self) -> None:
        self.properties.clear()
        self.professionals.clear()
        self.viewings.clear()
        self.inquiries.clear()
        self.favorites.clear()

    async def health_check(self) -> bool:
        return True

    # Internal helpers
    def _with_counts(self, prop: Property) -> Property:
        inquiry_count = sum(1 for i in self.inquiries.values() if i.property_id == prop.id)
        viewing_count = sum(1 for v in self.viewings.values() if v.property_id == prop.id)
        favorite_count = sum(1 for ids in self.favorites.values() if prop.id in ids)
        return prop.model_copy(update={
            "inquiry_count": inquiry_count,
            "viewing_count": viewing_count,
            "favorite_count": favorite_count,
        })

    def _live_property(self, property_id: str) -> Property:
        prop = self.properties.get(property_id)
        if prop is None or prop.is_deleted:
            raise NotFoundError("Property", property_id)
        return prop

    def _professional(self, user_id: str) -> RealEstateProfessional:
        professional = self.professionals.get(user_id)
        if professional is None:
            raise NotFoundError("Professional", user_id)
        return professional

    def _viewing(self, viewing_id: str) -> PropertyViewing:
        viewing = self.viewings.get(viewing_id)
        if viewing is None:
            raise NotFoundError("Viewing", viewing_id)
        return viewing

    def _inquiry(self, inquiry_id: str) -> PropertyInquiry:
        inquiry = self.inquiries.get(inquiry_id)
        if inquiry is None:
            raise NotFoundError("Inquiry", inquiry_id)
        return inquiry

    # Professionals
    async def register_professional(
        self, user_id: str, data: ProfessionalRegistration
    ) -> RealEstateProfessional:
        async with self._lock:
            professional = RealEstateProfessional.from_registration(user_id, data)
            self.professionals[user_id] = professional
        logger.info(
            "Professional registered in mock store",
            professional_id=professional.id,
            professional_type=professional.professional_type.value,
            profile_completeness=professional.profile_completeness,
        )
        return professional

    async def get_professional(self, user_id: str) -> RealEstateProfessional:
        return self._professional(user_id)

    async def update_professional(self, user_id: str, updates: dict) -> RealEstateProfessional:
        async with self._lock:
            current = self._professional(user_id)
            allowed = {k: v for k, v in updates.items() if k not in _PROTECTED_PROFESSIONAL_FIELDS}
            updated = RealEstateProfessional.model_validate(
                {**current.model_dump(), **allowed, "updated_at": utc_now()}
            )
            self.professionals[user_id] = updated
        return updated

    async def set_verification_status(
        self,
        user_id: str,
        status: VerificationStatus,
        rejection_reason: Optional[str] = None,
    ) -> RealEstateProfessional:
        async with self._lock:
            updated = apply_verification(self._professional(user_id), status, rejection_reason)
            self.professionals[user_id] = updated
        logger.info("Verification status changed", professional_id=updated.id, status=status.value)
        return updated

    # Properties
    async def create_property(self, professional_id: str, data: PropertyCreate) -> Property:
        async with self._lock:
            prop = data.build(professional_id)
            self.properties[prop.id] = prop
        logger.info("Property created in mock store", property_id=prop.id, listing_id=prop.listing_id)
        return prop

    async def get_property(self, property_id: str) -> Property:
        async with self._lock:
            prop = self._live_property(property_id)
            prop = prop.model_copy(update={"view_count": prop.view_count + 1})
            self.properties[property_id] = prop
        return self._with_counts(prop)

    async def search_properties(self, filters: PropertySearchFilters) -> PropertySearchResult:
        candidates = [self._with_counts(p) for p in self.properties.values() if not p.is_deleted]
        result = run_query(candidates, filters)
        logger.debug("Mock search completed", total=result.total, page=result.page)
        return result

    async def list_professional_properties(self, professional_id: str) -> list[Property]:
        return [
            self._with_counts(p)
            for p in self.properties.values()
            if not p.is_deleted and professional_id in (p.professional_id, p.owner_id)
        ]

    async def update_property(self, property_id: str, updates: PropertyUpdate) -> Property:
        async with self._lock:
            current = self._live_property(property_id)
            updated = Property.model_validate(
                {**current.model_dump(), **updates.changes(), "updated_at": utc_now()}
            )
            self.properties[property_id] = updated
        return self._with_counts(updated)

    async def update_property_status(self, property_id: str, status: PropertyStatus) -> Property:
        async with self._lock:
            updated = apply_status(self._live_property(property_id), status)
            self.properties[property_id] = updated
        return self._with_counts(updated)

    async def delete_property(self, property_id: str) -> None:
        """Soft delete; open viewings of the listing are cancelled."""
        async with self._lock:
            prop = self._live_property(property_id)
            now = utc_now()
            self.properties[property_id] = prop.model_copy(update={
                "deleted_at": now,
                "updated_at": now,
                "status": PropertyStatus.INACTIVE,
                "is_active": False,
            })
            cancelled = 0
            for viewing_id, viewing in list(self.viewings.items()):
                if viewing.property_id == property_id and viewing.is_open:
                    self.viewings[viewing_id] = viewing.transition_to(
                        ViewingStatus.CANCELLED, reason="Property withdrawn"
                    )
                    cancelled += 1
        logger.info("Property deleted", property_id=property_id, viewings_cancelled=cancelled)

    async def upload_property_images(
        self, property_id: str, images: list[ImageUpload]
    ) -> list[PropertyImage]:
        async with self._lock:
            prop = self._live_property(property_id)
            has_primary = any(image.is_primary for image in prop.images)
            start = len(prop.images)
            uploaded = [
                PropertyImage(
                    property_id=property_id,
                    image_url=f"mock://properties/{property_id}/images/{upload.filename}",
                    caption=upload.filename,
                    sort_order=start + index,
                    is_primary=not has_primary and index == 0,
                )
                for index, upload in enumerate(images)
            ]
            self.properties[property_id] = prop.model_copy(update={
                "images": [*prop.images, *uploaded],
                "updated_at": utc_now(),
            })
        return uploaded

    # Viewings
    async def schedule_viewing(self, request: ViewingRequest) -> PropertyViewing:
        async with self._lock:
            self._live_property(request.property_id)
            viewing = PropertyViewing.from_request(request)
            self.viewings[viewing.id] = viewing
        logger.info("Viewing scheduled", viewing_id=viewing.id, property_id=viewing.property_id)
        return viewing

    async def update_viewing_status(
        self, viewing_id: str, status: ViewingStatus, reason: Optional[str] = None
    ) -> PropertyViewing:
        async with self._lock:
            updated = self._viewing(viewing_id).transition_to(status, reason=reason)
            self.viewings[viewing_id] = updated
        return updated

    async def reschedule_viewing(self, viewing_id: str, scheduled_at: datetime) -> PropertyViewing:
        async with self._lock:
            updated = self._viewing(viewing_id).reschedule(scheduled_at)
            self.viewings[viewing_id] = updated
        return updated

    async def list_user_viewings(self, user_id: str) -> list[PropertyViewing]:
        return [
            v for v in self.viewings.values()
            if user_id in (v.requester_id, v.professional_id)
        ]

    # Inquiries
    async def submit_inquiry(self, request: InquiryRequest) -> PropertyInquiry:
        async with self._lock:
            self._live_property(request.property_id)
            inquiry = PropertyInquiry.from_request(request)
            self.inquiries[inquiry.id] = inquiry
        logger.info("Inquiry submitted", inquiry_id=inquiry.id, property_id=inquiry.property_id)
        return inquiry

    async def respond_to_inquiry(
        self, inquiry_id: str, responder_id: str, message: str
    ) -> PropertyInquiry:
        async with self._lock:
            updated = self._inquiry(inquiry_id).respond(responder_id, message)
            self.inquiries[inquiry_id] = updated
        return updated

    async def update_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> PropertyInquiry:
        async with self._lock:
            updated = self._inquiry(inquiry_id).transition_to(status)
            self.inquiries[inquiry_id] = updated
        return updated

    async def list_property_inquiries(self, property_id: str) -> list[PropertyInquiry]:
        return [i for i in self.inquiries.values() if i.property_id == property_id]

    # Favorites
    async def add_favorite(self, user_id: str, property_id: str) -> None:
        async with self._lock:
            self._live_property(property_id)
            favorites = self.favorites.setdefault(user_id, [])
            if property_id not in favorites:
                favorites.append(property_id)

    async def remove_favorite(self, user_id: str, property_id: str) -> None:
        async with self._lock:
            favorites = self.favorites.get(user_id, [])
            if property_id in favorites:
                favorites.remove(property_id)

    async def list_favorites(self, user_id: str) -> list[Property]:
        return [
            self._with_counts(self.properties[pid])
            for pid in self.favorites.get(user_id, [])
            if pid in self.properties and not self.properties[pid].is_deleted
        ]
