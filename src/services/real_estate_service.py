"""Real estate service: the public entry point for listings, professionals, viewings and inquiries."""

from datetime import datetime
from typing import Optional

from src.models.inquiry import InquiryRequest, InquiryStatus, PropertyInquiry
from src.models.professional import (
    ProfessionalDashboard,
    ProfessionalRegistration,
    RealEstateProfessional,
    VerificationStatus,
)
from src.models.property import (
    ImageUpload,
    Property,
    PropertyCreate,
    PropertyImage,
    PropertyStatus,
    PropertyUpdate,
)
from src.models.search import (
    MAX_PAGE_SIZE,
    ClientPreferences,
    PropertyMatch,
    PropertySearchFilters,
    PropertySearchResult,
)
from src.models.viewing import PropertyViewing, ViewingRequest, ViewingStatus
from src.services.api_client import RealEstateApiClient
from src.services.backend import PropertyBackend
from src.services.fallback import FallbackDispatcher
from src.services.match_score import rank_matches
from src.services.mock_store import MockPropertyStore
from src.services.supabase_client import SupabasePropertyBackend
from src.utils.config import ServiceConfig
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class RealEstateService:
    """Facade over the configured backend with mock fallback."""

    def __init__(self, dispatcher: FallbackDispatcher):
        self.dispatcher = dispatcher

    @property
    def backend_available(self) -> bool:
        return self.dispatcher.backend_available

    @property
    def backend_name(self) -> str:
        return self.dispatcher.active_backend.name

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

    # Professionals
    async def register_professional(
        self, user_id: str, data: ProfessionalRegistration
    ) -> RealEstateProfessional:
        professional = await self.dispatcher.call("register_professional", user_id, data)
        logger.info(
            "Professional registered",
            user_id=mask_user_id(user_id),
            professional_type=professional.professional_type.value,
            profile_completeness=professional.profile_completeness,
        )
        return professional

    async def get_professional(self, user_id: str) -> RealEstateProfessional:
        return await self.dispatcher.call("get_professional", user_id)

    async def update_professional(self, user_id: str, updates: dict) -> RealEstateProfessional:
        return await self.dispatcher.call("update_professional", user_id, updates)

    async def verify_professional(
        self,
        user_id: str,
        status: VerificationStatus,
        rejection_reason: Optional[str] = None,
    ) -> RealEstateProfessional:
        professional = await self.dispatcher.call(
            "set_verification_status", user_id, status, rejection_reason
        )
        logger.info(
            "Professional verification updated",
            user_id=mask_user_id(user_id),
            verification_status=status.value,
        )
        return professional

    # Properties
    async def create_property(self, professional_id: str, data: PropertyCreate) -> Property:
        return await self.dispatcher.call("create_property", professional_id, data)

    async def get_property(self, property_id: str) -> Property:
        return await self.dispatcher.call("get_property", property_id)

    async def search_properties(
        self, filters: Optional[PropertySearchFilters] = None
    ) -> PropertySearchResult:
        filters = filters or PropertySearchFilters()
        result = await self.dispatcher.call("search_properties", filters)
        logger.debug(
            "Property search completed",
            total=result.total,
            page=result.page,
            backend=self.backend_name,
        )
        return result

    async def get_professional_properties(self, professional_id: str) -> list[Property]:
        return await self.dispatcher.call("list_professional_properties", professional_id)

    async def update_property(self, property_id: str, updates: PropertyUpdate) -> Property:
        return await self.dispatcher.call("update_property", property_id, updates)

    async def update_property_status(self, property_id: str, status: PropertyStatus) -> Property:
        return await self.dispatcher.call("update_property_status", property_id, status)

    async def toggle_property_status(self, property_id: str) -> Property:
        """Flip a listing between active and inactive."""
        current = await self.dispatcher.call("get_property", property_id)
        target = PropertyStatus.INACTIVE if current.status == PropertyStatus.ACTIVE else PropertyStatus.ACTIVE
        return await self.update_property_status(property_id, target)

    async def delete_property(self, property_id: str) -> None:
        await self.dispatcher.call("delete_property", property_id)

    async def upload_property_images(
        self, property_id: str, images: list[ImageUpload]
    ) -> list[PropertyImage]:
        if not images:
            return []
        return await self.dispatcher.call("upload_property_images", property_id, images)

    # Viewings
    async def schedule_viewing(self, request: ViewingRequest) -> PropertyViewing:
        return await self.dispatcher.call("schedule_viewing", request)

    async def update_viewing_status(
        self, viewing_id: str, status: ViewingStatus, reason: Optional[str] = None
    ) -> PropertyViewing:
        return await self.dispatcher.call("update_viewing_status", viewing_id, status, reason)

    async def reschedule_viewing(self, viewing_id: str, scheduled_at: datetime) -> PropertyViewing:
        return await self.dispatcher.call("reschedule_viewing", viewing_id, scheduled_at)

    async def get_user_viewings(self, user_id: str) -> list[PropertyViewing]:
        return await self.dispatcher.call("list_user_viewings", user_id)

    # Inquiries
    async def submit_inquiry(self, request: InquiryRequest) -> PropertyInquiry:
        inquiry = await self.dispatcher.call("submit_inquiry", request)
        logger.info(
            "Inquiry submitted",
            inquiry_id=inquiry.id,
            property_id=inquiry.property_id,
            inquirer_id=mask_user_id(inquiry.inquirer_id),
        )
        return inquiry

    async def respond_to_inquiry(
        self, inquiry_id: str, responder_id: str, message: str
    ) -> PropertyInquiry:
        return await self.dispatcher.call("respond_to_inquiry", inquiry_id, responder_id, message)

    async def update_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> PropertyInquiry:
        return await self.dispatcher.call("update_inquiry_status", inquiry_id, status)

    async def get_property_inquiries(self, property_id: str) -> list[PropertyInquiry]:
        return await self.dispatcher.call("list_property_inquiries", property_id)

    # Favorites
    async def add_to_favorites(self, user_id: str, property_id: str) -> None:
        await self.dispatcher.call("add_favorite", user_id, property_id)

    async def remove_from_favorites(self, user_id: str, property_id: str) -> None:
        await self.dispatcher.call("remove_favorite", user_id, property_id)

    async def get_user_favorites(self, user_id: str) -> list[Property]:
        return await self.dispatcher.call("list_favorites", user_id)

    # Reference data
    async def get_property_types(self) -> list[str]:
        return await self.dispatcher.call("get_property_types")

    async def get_listing_types(self) -> list[str]:
        return await self.dispatcher.call("get_listing_types")

    async def get_professional_types(self) -> list[str]:
        return await self.dispatcher.call("get_professional_types")

    async def get_amenities(self) -> list[str]:
        return await self.dispatcher.call("get_amenities")

    # Composed operations
    async def match_properties(
        self,
        preferences: ClientPreferences,
        filters: Optional[PropertySearchFilters] = None,
        limit: Optional[int] = 10,
        min_score: int = 0,
    ) -> list[PropertyMatch]:
        """
        Rank listings against a client's preferences.

        Args:
            preferences: What the client is looking for
            filters: Narrows the candidate pool; defaults to active listings.
                Every page of the pool is scored, not just the first.
            limit: Maximum matches returned (None for all)
            min_score: Drop matches scoring below this

        Returns:
            Matches, best first
        """
        filters = filters or PropertySearchFilters(status=PropertyStatus.ACTIVE)
        candidates: list[Property] = []
        page = 1
        while True:
            result = await self.search_properties(
                filters.model_copy(update={"page": page, "limit": MAX_PAGE_SIZE})
            )
            candidates.extend(result.properties)
            if not result.has_next or not result.properties:
                break
            page += 1
        return rank_matches(candidates, preferences, limit=limit, min_score=min_score)

    async def get_professional_dashboard(self, professional_id: str) -> ProfessionalDashboard:
        """Summarize a professional's listings and engagement."""
        listings = await self.get_professional_properties(professional_id)

        by_status: dict[str, int] = {}
        for prop in listings:
            by_status[prop.status.value] = by_status.get(prop.status.value, 0) + 1

        average_days = (
            round(sum(prop.days_on_market for prop in listings) / len(listings), 1)
            if listings else 0.0
        )
        return ProfessionalDashboard(
            professional_id=professional_id,
            total_listings=len(listings),
            listings_by_status=by_status,
            active_listings=by_status.get(PropertyStatus.ACTIVE.value, 0),
            total_views=sum(prop.view_count for prop in listings),
            total_inquiries=sum(prop.inquiry_count for prop in listings),
            total_viewings=sum(prop.viewing_count for prop in listings),
            total_favorites=sum(prop.favorite_count for prop in listings),
            average_days_on_market=average_days,
        )


def build_primary_backend(config: ServiceConfig, fallback: MockPropertyStore) -> PropertyBackend:
    if config.backend == "supabase":
        return SupabasePropertyBackend.from_credentials(config.supabase_url, config.supabase_key)
    if config.backend == "mock":
        return fallback
    return RealEstateApiClient(
        config.api_base_url,
        timeout=config.http_timeout_seconds,
        health_path=config.health_path,
    )


async def create_real_estate_service(config: Optional[ServiceConfig] = None) -> RealEstateService:
    """Build the service from config and check the primary backend."""
    config = config or ServiceConfig.from_env()
    fallback = MockPropertyStore.seeded() if config.seed_mock_data else MockPropertyStore()
    primary = build_primary_backend(config, fallback)

    dispatcher = FallbackDispatcher(
        primary,
        fallback,
        failure_threshold=config.breaker_failure_threshold,
        recovery_timeout=config.breaker_recovery_seconds,
    )
    await dispatcher.initialize()

    logger.info(
        "Real estate service ready",
        backend=config.backend,
        active_backend=dispatcher.active_backend.name,
    )
    return RealEstateService(dispatcher)
