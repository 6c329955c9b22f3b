"""Supabase backend: real estate tables accessed through supabase-py."""

from datetime import datetime
from typing import Any, Optional

from supabase import create_client, Client
from supabase.client import ClientOptions

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
    Property,
    PropertyCreate,
    PropertyImage,
    PropertyStatus,
    PropertyUpdate,
    apply_status,
)
from src.models.search import PropertySearchFilters, PropertySearchResult, SortBy, SortOrder
from src.models.viewing import PropertyViewing, ViewingRequest, ViewingStatus
from src.services.backend import PropertyBackend
from src.utils.errors import ConfigurationError, NotFoundError, SupabaseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

PROPERTIES = "properties"
PROFESSIONALS = "real_estate_professionals"
VIEWINGS = "property_viewings"
INQUIRIES = "property_inquiries"
IMAGES = "property_images"
FAVORITES = "property_favorites"

ORDER_COLUMNS = {
    SortBy.PRICE: "price",
    SortBy.DATE: "created_at",
    SortBy.SIZE: "square_footage",
    SortBy.POPULARITY: "view_count",
}

# Engagement counters are derived from the related tables, never stored
COUNTED_RELATIONS = {
    "inquiry_count": INQUIRIES,
    "viewing_count": VIEWINGS,
    "favorite_count": FAVORITES,
}
DERIVED_COLUMNS = {"images", *COUNTED_RELATIONS}
PROPERTY_COLUMNS = ", ".join(
    ["*"] + [f"{field}:{table}(count)" for field, table in COUNTED_RELATIONS.items()]
)


def _quoted(value: str) -> str:
    """Quote a value for a PostgREST logic filter so commas and parentheses stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _contains_pattern(value: str) -> str:
    """Case-insensitive substring pattern with LIKE wildcards in the input matched literally."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return _quoted(f"%{escaped}%")


def _property_from_row(row: dict) -> Property:
    """Build a Property, flattening embedded `[{"count": n}]` aggregates."""
    row = dict(row)
    for field in COUNTED_RELATIONS:
        value = row.get(field)
        if isinstance(value, list):
            row[field] = value[0].get("count", 0) if value else 0
    return Property.model_validate(row)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client(url: Optional[str], key: Optional[str]) -> Client:
    """Get or create the Supabase client singleton."""
    global _client

    if _client is None:
        if not url or not key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )
        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


async def close_supabase_client() -> None:
    """Drop the cached client; supabase-py has no explicit close."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager that hands out a client and logs failed operations."""

    def __init__(self, client: Client):
        self.client = client

    async def __aenter__(self) -> Client:
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type and issubclass(exc_type, SupabaseError):
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                type=exc_type.__name__
            )
        return False


def _execute(query: Any, action: str) -> Any:
    try:
        return query.execute()
    except Exception as e:
        raise SupabaseError(f"Failed to {action}: {e}") from e


def _first(result: Any, resource: str, resource_id: str) -> dict:
    if result.data and len(result.data) > 0:
        return result.data[0]
    raise NotFoundError(resource, resource_id)


class SupabasePropertyBackend(PropertyBackend):
    """Backend that reads and writes the real estate tables directly."""

    name = "supabase"

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def from_credentials(cls, url: Optional[str], key: Optional[str]) -> "SupabasePropertyBackend":
        return cls(get_supabase_client(url, key))

    async def health_check(self) -> bool:
        async with SupabaseClient(self._client) as client:
            try:
                _execute(client.table(PROPERTIES).select("id").limit(1), "check properties")
            except SupabaseError as e:
                logger.warning("Supabase health check failed", error=str(e))
                return False
        return True

    # Professionals
    async def register_professional(
        self, user_id: str, data: ProfessionalRegistration
    ) -> RealEstateProfessional:
        professional = RealEstateProfessional.from_registration(user_id, data)
        async with SupabaseClient(self._client) as client:
            row = professional.to_row()
            row["profile_completeness"] = professional.profile_completeness
            result = _execute(client.table(PROFESSIONALS).insert(row), "register professional")
        if not result.data:
            raise SupabaseError("Failed to register professional: no data returned")
        return RealEstateProfessional.model_validate(result.data[0])

    async def get_professional(self, user_id: str) -> RealEstateProfessional:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(PROFESSIONALS).select("*").eq("user_id", user_id),
                "get professional",
            )
        return RealEstateProfessional.model_validate(_first(result, "Professional", user_id))

    async def _save_professional(self, professional: RealEstateProfessional) -> RealEstateProfessional:
        row = professional.to_row(exclude={"id", "user_id", "created_at"}, exclude_none=False)
        row["profile_completeness"] = professional.profile_completeness
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(PROFESSIONALS).update(row).eq("user_id", professional.user_id),
                "update professional",
            )
        return RealEstateProfessional.model_validate(_first(result, "Professional", professional.user_id))

    async def update_professional(self, user_id: str, updates: dict) -> RealEstateProfessional:
        current = await self.get_professional(user_id)
        merged = RealEstateProfessional.model_validate(
            {**current.model_dump(), **updates, "id": current.id, "user_id": user_id, "updated_at": utc_now()}
        )
        return await self._save_professional(merged)

    async def set_verification_status(
        self,
        user_id: str,
        status: VerificationStatus,
        rejection_reason: Optional[str] = None,
    ) -> RealEstateProfessional:
        current = await self.get_professional(user_id)
        return await self._save_professional(apply_verification(current, status, rejection_reason))

    # Properties
    async def _property_row(self, property_id: str) -> dict:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(PROPERTIES).select(f"{PROPERTY_COLUMNS}, images:{IMAGES}(*)")
                .eq("id", property_id).is_("deleted_at", "null"),
                "get property",
            )
        return _first(result, "Property", property_id)

    async def _update_property_row(
        self, property_id: str, changes: dict, current: Optional[Property] = None
    ) -> Property:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(PROPERTIES).update(changes).eq("id", property_id),
                "update property",
            )
        updated = Property.model_validate(_first(result, "Property", property_id))
        if current is None:
            return updated
        return updated.model_copy(update={field: getattr(current, field) for field in DERIVED_COLUMNS})

    async def create_property(self, professional_id: str, data: PropertyCreate) -> Property:
        prop = data.build(professional_id)
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(PROPERTIES).insert(prop.to_row(exclude=DERIVED_COLUMNS)),
                "create property",
            )
        if not result.data:
            raise SupabaseError("Failed to create property: no data returned")
        logger.info("Property created", property_id=prop.id, listing_id=prop.listing_id)
        return Property.model_validate(result.data[0])

    async def get_property(self, property_id: str) -> Property:
        current = _property_from_row(await self._property_row(property_id))
        return await self._update_property_row(
            property_id, {"view_count": current.view_count + 1}, current
        )

    async def search_properties(self, filters: PropertySearchFilters) -> PropertySearchResult:
        async with SupabaseClient(self._client) as client:
            query = (
                client.table(PROPERTIES)
                .select(PROPERTY_COLUMNS, count="exact")
                .is_("deleted_at", "null")
            )

            if filters.property_type is not None:
                query = query.eq("property_type", filters.property_type.value)
            if filters.listing_type is not None:
                query = query.eq("listing_type", filters.listing_type.value)
            if filters.status is not None:
                query = query.eq("status", filters.status.value)
            if filters.professional_id is not None:
                query = query.eq("professional_id", filters.professional_id)
            if filters.price_min is not None:
                query = query.gte("price", filters.price_min)
            if filters.price_max is not None:
                query = query.lte("price", filters.price_max)
            if filters.bedrooms is not None:
                query = query.gte("bedrooms", filters.bedrooms)
            if filters.bathrooms is not None:
                query = query.gte("bathrooms", filters.bathrooms)
            if filters.square_footage_min is not None:
                query = query.gte("square_footage", filters.square_footage_min)
            if filters.square_footage_max is not None:
                query = query.lte("square_footage", filters.square_footage_max)
            if filters.location:
                pattern = _contains_pattern(filters.location)
                query = query.or_(
                    f"address->>city.ilike.{pattern},"
                    f"address->>state.ilike.{pattern},"
                    f"address->>street.ilike.{pattern}"
                )
            if filters.amenities:
                query = query.contains("amenities", filters.amenities)
            if filters.features:
                query = query.contains("features", filters.features)

            # Missing values sort last in both directions. ULIDs sort by creation,
            # so id breaks ties in insertion order
            query = (
                query.order(
                    ORDER_COLUMNS[filters.sort_by],
                    desc=filters.sort_order == SortOrder.DESC,
                    nullsfirst=False,
                )
                .order("id")
                .range(filters.offset, filters.offset + filters.limit - 1)
            )
            result = _execute(query, "search properties")

        properties = [_property_from_row(row) for row in result.data or []]
        total = result.count if result.count is not None else len(properties)
        return PropertySearchResult(properties=properties, total=total, page=filters.page, limit=filters.limit)

    async def list_professional_properties(self, professional_id: str) -> list[Property]:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(PROPERTIES).select(PROPERTY_COLUMNS)
                .or_(f"professional_id.eq.{_quoted(professional_id)},owner_id.eq.{_quoted(professional_id)}")
                .is_("deleted_at", "null")
                .order("created_at"),
                "list professional properties",
            )
        return [_property_from_row(row) for row in result.data or []]

    async def update_property(self, property_id: str, updates: PropertyUpdate) -> Property:
        current = _property_from_row(await self._property_row(property_id))
        changes = updates.model_dump(mode="json", exclude_unset=True)
        changes["updated_at"] = utc_now().isoformat()
        return await self._update_property_row(property_id, changes, current)

    async def update_property_status(self, property_id: str, status: PropertyStatus) -> Property:
        current = _property_from_row(await self._property_row(property_id))
        moved = apply_status(current, status)
        return await self._update_property_row(
            property_id,
            moved.to_row(exclude={"id", *DERIVED_COLUMNS}),
            current,
        )

    async def delete_property(self, property_id: str) -> None:
        await self._property_row(property_id)
        now = utc_now().isoformat()
        await self._update_property_row(
            property_id,
            {"deleted_at": now, "updated_at": now, "status": PropertyStatus.INACTIVE.value, "is_active": False},
        )
        async with SupabaseClient(self._client) as client:
            _execute(
                client.table(VIEWINGS)
                .update({
                    "status": ViewingStatus.CANCELLED.value,
                    "cancelled_at": now,
                    "updated_at": now,
                    "cancellation_reason": "Property withdrawn",
                })
                .eq("property_id", property_id)
                .in_("status", [s.value for s in (ViewingStatus.SCHEDULED, ViewingStatus.CONFIRMED, ViewingStatus.RESCHEDULED)]),
                "cancel viewings of deleted property",
            )
        logger.info("Property deleted", property_id=property_id)

    async def upload_property_images(
        self, property_id: str, images: list[ImageUpload]
    ) -> list[PropertyImage]:
        row = await self._property_row(property_id)
        existing = row.get("images") or []
        has_primary = any(image.get("is_primary") for image in existing)
        bucket = self._client.storage.from_(IMAGES)

        uploaded = []
        for index, upload in enumerate(images):
            path = f"{property_id}/{upload.filename}"
            try:
                bucket.upload(path, upload.content, {"content-type": upload.content_type})
            except Exception as e:
                raise SupabaseError(f"Failed to upload image {upload.filename}: {e}") from e
            uploaded.append(PropertyImage(
                property_id=property_id,
                image_url=bucket.get_public_url(path),
                caption=upload.filename,
                sort_order=len(existing) + index,
                is_primary=not has_primary and index == 0,
            ))

        if uploaded:
            async with SupabaseClient(self._client) as client:
                _execute(
                    client.table(IMAGES).insert([image.to_row() for image in uploaded]),
                    "record property images",
                )
        return uploaded

    # Viewings
    async def _viewing(self, viewing_id: str) -> PropertyViewing:
        async with SupabaseClient(self._client) as client:
            result = _execute(client.table(VIEWINGS).select("*").eq("id", viewing_id), "get viewing")
        return PropertyViewing.model_validate(_first(result, "Viewing", viewing_id))

    async def _save_viewing(self, viewing: PropertyViewing) -> PropertyViewing:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(VIEWINGS).update(viewing.to_row(exclude={"id"}, exclude_none=False)).eq("id", viewing.id),
                "update viewing",
            )
        return PropertyViewing.model_validate(_first(result, "Viewing", viewing.id))

    async def schedule_viewing(self, request: ViewingRequest) -> PropertyViewing:
        await self._property_row(request.property_id)
        viewing = PropertyViewing.from_request(request)
        async with SupabaseClient(self._client) as client:
            result = _execute(client.table(VIEWINGS).insert(viewing.to_row()), "schedule viewing")
        if not result.data:
            raise SupabaseError("Failed to schedule viewing: no data returned")
        return PropertyViewing.model_validate(result.data[0])

    async def update_viewing_status(
        self, viewing_id: str, status: ViewingStatus, reason: Optional[str] = None
    ) -> PropertyViewing:
        current = await self._viewing(viewing_id)
        return await self._save_viewing(current.transition_to(status, reason=reason))

    async def reschedule_viewing(self, viewing_id: str, scheduled_at: datetime) -> PropertyViewing:
        current = await self._viewing(viewing_id)
        return await self._save_viewing(current.reschedule(scheduled_at))

    async def list_user_viewings(self, user_id: str) -> list[PropertyViewing]:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(VIEWINGS).select("*")
                .or_(f"requester_id.eq.{_quoted(user_id)},professional_id.eq.{_quoted(user_id)}")
                .order("scheduled_at"),
                "list viewings",
            )
        return [PropertyViewing.model_validate(row) for row in result.data or []]

    # Inquiries
    async def _inquiry(self, inquiry_id: str) -> PropertyInquiry:
        async with SupabaseClient(self._client) as client:
            result = _execute(client.table(INQUIRIES).select("*").eq("id", inquiry_id), "get inquiry")
        return PropertyInquiry.model_validate(_first(result, "Inquiry", inquiry_id))

    async def _save_inquiry(self, inquiry: PropertyInquiry) -> PropertyInquiry:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(INQUIRIES).update(inquiry.to_row(exclude={"id"}, exclude_none=False)).eq("id", inquiry.id),
                "update inquiry",
            )
        return PropertyInquiry.model_validate(_first(result, "Inquiry", inquiry.id))

    async def submit_inquiry(self, request: InquiryRequest) -> PropertyInquiry:
        await self._property_row(request.property_id)
        inquiry = PropertyInquiry.from_request(request)
        async with SupabaseClient(self._client) as client:
            result = _execute(client.table(INQUIRIES).insert(inquiry.to_row()), "submit inquiry")
        if not result.data:
            raise SupabaseError("Failed to submit inquiry: no data returned")
        return PropertyInquiry.model_validate(result.data[0])

    async def respond_to_inquiry(
        self, inquiry_id: str, responder_id: str, message: str
    ) -> PropertyInquiry:
        current = await self._inquiry(inquiry_id)
        return await self._save_inquiry(current.respond(responder_id, message))

    async def update_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> PropertyInquiry:
        current = await self._inquiry(inquiry_id)
        return await self._save_inquiry(current.transition_to(status))

    async def list_property_inquiries(self, property_id: str) -> list[PropertyInquiry]:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(INQUIRIES).select("*").eq("property_id", property_id).order("created_at"),
                "list inquiries",
            )
        return [PropertyInquiry.model_validate(row) for row in result.data or []]

    # Favorites
    async def add_favorite(self, user_id: str, property_id: str) -> None:
        async with SupabaseClient(self._client) as client:
            _execute(
                client.table(FAVORITES).upsert(
                    {"user_id": user_id, "property_id": property_id},
                    on_conflict="user_id,property_id",
                ),
                "add favorite",
            )

    async def remove_favorite(self, user_id: str, property_id: str) -> None:
        async with SupabaseClient(self._client) as client:
            _execute(
                client.table(FAVORITES).delete().eq("user_id", user_id).eq("property_id", property_id),
                "remove favorite",
            )

    async def list_favorites(self, user_id: str) -> list[Property]:
        async with SupabaseClient(self._client) as client:
            result = _execute(
                client.table(FAVORITES).select(f"property:{PROPERTIES}({PROPERTY_COLUMNS})").eq("user_id", user_id),
                "list favorites",
            )
        return [
            _property_from_row(row["property"])
            for row in result.data or []
            if row.get("property") and not row["property"].get("deleted_at")
        ]
