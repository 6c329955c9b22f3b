"""Backend interface shared by the REST, Supabase and mock implementations."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.models.inquiry import InquiryRequest, InquiryStatus, PropertyInquiry
from src.models.professional import (
    ProfessionalRegistration,
    ProfessionalType,
    RealEstateProfessional,
    VerificationStatus,
)
from src.models.property import (
    DEFAULT_AMENITIES,
    ImageUpload,
    ListingType,
    Property,
    PropertyCreate,
    PropertyImage,
    PropertyStatus,
    PropertyType,
    PropertyUpdate,
)
from src.models.search import PropertySearchFilters, PropertySearchResult
from src.models.viewing import PropertyViewing, ViewingRequest, ViewingStatus


class PropertyBackend(ABC):
    """
    Storage/transport contract for real estate data.

    Implementations raise BackendUnavailableError when they cannot serve a
    request at all, NotFoundError for missing records, and
    InvalidTransitionError / BackendRequestError when the request itself
    is rejected.
    """

    name: str = "backend"

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check that the backend is reachable.

        Returns:
            True if the backend can serve requests
        """
        pass

    async def aclose(self) -> None:
        """Release connections held by the backend."""
        return None

    # Professionals
    @abstractmethod
    async def register_professional(
        self, user_id: str, data: ProfessionalRegistration
    ) -> RealEstateProfessional:
        pass

    @abstractmethod
    async def get_professional(self, user_id: str) -> RealEstateProfessional:
        pass

    @abstractmethod
    async def update_professional(self, user_id: str, updates: dict) -> RealEstateProfessional:
        """
        Apply partial updates to a professional profile.

        Args:
            user_id: Owning user ID
            updates: Field name to new value (snake_case)

        Returns:
            Updated RealEstateProfessional
        """
        pass

    @abstractmethod
    async def set_verification_status(
        self,
        user_id: str,
        status: VerificationStatus,
        rejection_reason: Optional[str] = None,
    ) -> RealEstateProfessional:
        pass

    # Properties
    @abstractmethod
    async def create_property(self, professional_id: str, data: PropertyCreate) -> Property:
        pass

    @abstractmethod
    async def get_property(self, property_id: str) -> Property:
        """
        Fetch one listing and count the view.

        Args:
            property_id: Property record ID

        Returns:
            Property with its view count incremented
        """
        pass

    @abstractmethod
    async def search_properties(self, filters: PropertySearchFilters) -> PropertySearchResult:
        pass

    @abstractmethod
    async def list_professional_properties(self, professional_id: str) -> list[Property]:
        pass

    @abstractmethod
    async def update_property(self, property_id: str, updates: PropertyUpdate) -> Property:
        pass

    @abstractmethod
    async def update_property_status(self, property_id: str, status: PropertyStatus) -> Property:
        pass

    @abstractmethod
    async def delete_property(self, property_id: str) -> None:
        pass

    @abstractmethod
    async def upload_property_images(
        self, property_id: str, images: list[ImageUpload]
    ) -> list[PropertyImage]:
        pass

    # Viewings
    @abstractmethod
    async def schedule_viewing(self, request: ViewingRequest) -> PropertyViewing:
        pass

    @abstractmethod
    async def update_viewing_status(
        self, viewing_id: str, status: ViewingStatus, reason: Optional[str] = None
    ) -> PropertyViewing:
        pass

    @abstractmethod
    async def reschedule_viewing(self, viewing_id: str, scheduled_at: datetime) -> PropertyViewing:
        pass

    @abstractmethod
    async def list_user_viewings(self, user_id: str) -> list[PropertyViewing]:
        """Viewings where the user is the requester or the professional."""
        pass

    # Inquiries
    @abstractmethod
    async def submit_inquiry(self, request: InquiryRequest) -> PropertyInquiry:
        pass

    @abstractmethod
    async def respond_to_inquiry(
        self, inquiry_id: str, responder_id: str, message: str
    ) -> PropertyInquiry:
        pass

    @abstractmethod
    async def update_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> PropertyInquiry:
        pass

    @abstractmethod
    async def list_property_inquiries(self, property_id: str) -> list[PropertyInquiry]:
        pass

    # Favorites
    @abstractmethod
    async def add_favorite(self, user_id: str, property_id: str) -> None:
        pass

    @abstractmethod
    async def remove_favorite(self, user_id: str, property_id: str) -> None:
        pass

    @abstractmethod
    async def list_favorites(self, user_id: str) -> list[Property]:
        pass

    # Reference data
    async def get_property_types(self) -> list[str]:
        return [t.value for t in PropertyType]

    async def get_listing_types(self) -> list[str]:
        return [t.value for t in ListingType]

    async def get_professional_types(self) -> list[str]:
        return [t.value for t in ProfessionalType]

    async def get_amenities(self) -> list[str]:
        return list(DEFAULT_AMENITIES)
