"""REST backend: thin async client for the real estate HTTP API."""

from datetime import datetime
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from src.models.inquiry import InquiryRequest, InquiryStatus, PropertyInquiry
from src.models.professional import (
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
from src.models.search import PropertySearchFilters, PropertySearchResult
from src.models.viewing import PropertyViewing, ViewingRequest, ViewingStatus
from src.services.backend import PropertyBackend
from src.utils.errors import BackendRequestError, BackendUnavailableError, NotFoundError
from src.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)


def _camelize(updates: dict) -> dict:
    return {to_camel(key): to_jsonable_python(value) for key, value in updates.items()}


class RealEstateApiClient(PropertyBackend):
    """Backend that talks to the marketplace REST API over httpx."""

    name = "rest"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        health_path: str = "/health",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.health_path = health_path
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        resource: Optional[tuple[str, str]] = None,
        **kwargs: Any,
    ) -> dict:
        """Send a request and map failures onto the backend error taxonomy."""
        with log_timing(f"{method} {path}", logger=logger):
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.RequestError as e:
                raise BackendUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            name, identifier = resource or ("Resource", path)
            raise NotFoundError(name, identifier)
        if response.status_code >= 500:
            raise BackendUnavailableError(f"{method} {path} returned {response.status_code}")
        if response.status_code >= 400:
            raise BackendRequestError(
                f"{method} {path} rejected: {response.text[:200]}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as e:
            raise BackendUnavailableError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise BackendUnavailableError(f"{method} {path} returned unexpected payload")
        return payload

    @staticmethod
    def _unwrap(payload: dict, key: str, model):
        """Validate payload[key] as model (or a list of model)."""
        if key not in payload:
            raise BackendUnavailableError(f"Response missing '{key}'")
        value = payload[key]
        try:
            if isinstance(value, list):
                return [model.model_validate(item) for item in value]
            return model.model_validate(value)
        except ValidationError as e:
            raise BackendUnavailableError(f"Malformed '{key}' in response: {e}") from e

    async def health_check(self) -> bool:
        try:
            response = await self._client.get(self.health_path)
        except httpx.RequestError as e:
            logger.warning("Health check failed", base_url=self.base_url, error=str(e))
            return False
        healthy = response.is_success
        logger.info("Health check completed", base_url=self.base_url, status_code=response.status_code, healthy=healthy)
        return healthy

    # Professionals
    async def register_professional(
        self, user_id: str, data: ProfessionalRegistration
    ) -> RealEstateProfessional:
        payload = await self._request(
            "POST", "/real-estate/professionals/register",
            json={"userId": user_id, **data.to_api()},
        )
        return self._unwrap(payload, "professional", RealEstateProfessional)

    async def get_professional(self, user_id: str) -> RealEstateProfessional:
        payload = await self._request(
            "GET", f"/real-estate/professionals/{user_id}", resource=("Professional", user_id)
        )
        return self._unwrap(payload, "professional", RealEstateProfessional)

    async def update_professional(self, user_id: str, updates: dict) -> RealEstateProfessional:
        payload = await self._request(
            "PUT", f"/real-estate/professionals/{user_id}",
            json=_camelize(updates), resource=("Professional", user_id),
        )
        return self._unwrap(payload, "professional", RealEstateProfessional)

    async def set_verification_status(
        self,
        user_id: str,
        status: VerificationStatus,
        rejection_reason: Optional[str] = None,
    ) -> RealEstateProfessional:
        body = {"status": status.value}
        if rejection_reason:
            body["rejectionReason"] = rejection_reason
        payload = await self._request(
            "PUT", f"/real-estate/professionals/{user_id}/verify",
            json=body, resource=("Professional", user_id),
        )
        return self._unwrap(payload, "professional", RealEstateProfessional)

    # Properties
    async def create_property(self, professional_id: str, data: PropertyCreate) -> Property:
        payload = await self._request(
            "POST", "/real-estate/properties",
            json={"professionalId": professional_id, **data.to_api()},
        )
        return self._unwrap(payload, "property", Property)

    async def get_property(self, property_id: str) -> Property:
        payload = await self._request(
            "GET", f"/real-estate/properties/{property_id}", resource=("Property", property_id)
        )
        return self._unwrap(payload, "property", Property)

    async def search_properties(self, filters: PropertySearchFilters) -> PropertySearchResult:
        payload = await self._request("GET", "/real-estate/properties", params=filters.to_query_params())
        properties = self._unwrap(payload, "properties", Property)
        return PropertySearchResult(
            properties=properties,
            total=int(payload.get("total", len(properties))),
            page=filters.page,
            limit=filters.limit,
        )

    async def list_professional_properties(self, professional_id: str) -> list[Property]:
        payload = await self._request(
            "GET", f"/real-estate/professionals/{professional_id}/properties",
            resource=("Professional", professional_id),
        )
        return self._unwrap(payload, "properties", Property)

    async def update_property(self, property_id: str, updates: PropertyUpdate) -> Property:
        payload = await self._request(
            "PUT", f"/real-estate/properties/{property_id}",
            json=_camelize(updates.changes()), resource=("Property", property_id),
        )
        return self._unwrap(payload, "property", Property)

    async def update_property_status(self, property_id: str, status: PropertyStatus) -> Property:
        payload = await self._request(
            "PUT", f"/real-estate/properties/{property_id}/status",
            json={"status": status.value}, resource=("Property", property_id),
        )
        return self._unwrap(payload, "property", Property)

    async def delete_property(self, property_id: str) -> None:
        await self._request(
            "DELETE", f"/real-estate/properties/{property_id}", resource=("Property", property_id)
        )

    async def upload_property_images(
        self, property_id: str, images: list[ImageUpload]
    ) -> list[PropertyImage]:
        files = [("images", (image.filename, image.content, image.content_type)) for image in images]
        payload = await self._request(
            "POST", f"/real-estate/properties/{property_id}/images",
            files=files, data={"propertyId": property_id}, resource=("Property", property_id),
        )
        return self._unwrap(payload, "images", PropertyImage)

    # Viewings
    async def schedule_viewing(self, request: ViewingRequest) -> PropertyViewing:
        payload = await self._request("POST", "/real-estate/viewings", json=request.to_api())
        return self._unwrap(payload, "viewing", PropertyViewing)

    async def update_viewing_status(
        self, viewing_id: str, status: ViewingStatus, reason: Optional[str] = None
    ) -> PropertyViewing:
        body = {"status": status.value}
        if reason:
            body["reason"] = reason
        payload = await self._request(
            "PUT", f"/real-estate/viewings/{viewing_id}", json=body, resource=("Viewing", viewing_id)
        )
        return self._unwrap(payload, "viewing", PropertyViewing)

    async def reschedule_viewing(self, viewing_id: str, scheduled_at: datetime) -> PropertyViewing:
        payload = await self._request(
            "PUT", f"/real-estate/viewings/{viewing_id}/reschedule",
            json={"scheduledDate": scheduled_at.isoformat()}, resource=("Viewing", viewing_id),
        )
        return self._unwrap(payload, "viewing", PropertyViewing)

    async def list_user_viewings(self, user_id: str) -> list[PropertyViewing]:
        payload = await self._request("GET", f"/real-estate/users/{user_id}/viewings")
        return self._unwrap(payload, "viewings", PropertyViewing)

    # Inquiries
    async def submit_inquiry(self, request: InquiryRequest) -> PropertyInquiry:
        payload = await self._request("POST", "/real-estate/inquiries", json=request.to_api())
        return self._unwrap(payload, "inquiry", PropertyInquiry)

    async def respond_to_inquiry(
        self, inquiry_id: str, responder_id: str, message: str
    ) -> PropertyInquiry:
        payload = await self._request(
            "PUT", f"/real-estate/inquiries/{inquiry_id}/respond",
            json={"responderId": responder_id, "response": message},
            resource=("Inquiry", inquiry_id),
        )
        return self._unwrap(payload, "inquiry", PropertyInquiry)

    async def update_inquiry_status(self, inquiry_id: str, status: InquiryStatus) -> PropertyInquiry:
        payload = await self._request(
            "PUT", f"/real-estate/inquiries/{inquiry_id}",
            json={"status": status.value}, resource=("Inquiry", inquiry_id),
        )
        return self._unwrap(payload, "inquiry", PropertyInquiry)

    async def list_property_inquiries(self, property_id: str) -> list[PropertyInquiry]:
        payload = await self._request(
            "GET", f"/real-estate/properties/{property_id}/inquiries", resource=("Property", property_id)
        )
        return self._unwrap(payload, "inquiries", PropertyInquiry)

    # Favorites
    async def add_favorite(self, user_id: str, property_id: str) -> None:
        await self._request(
            "POST", "/real-estate/favorites", json={"userId": user_id, "propertyId": property_id}
        )

    async def remove_favorite(self, user_id: str, property_id: str) -> None:
        await self._request("DELETE", f"/real-estate/favorites/{user_id}/{property_id}")

    async def list_favorites(self, user_id: str) -> list[Property]:
        payload = await self._request("GET", f"/real-estate/users/{user_id}/favorites")
        return self._unwrap(payload, "properties", Property)

    # Reference data
    async def _types(self, path: str, key: str) -> list[str]:
        payload = await self._request("GET", path)
        values = payload.get(key)
        if not isinstance(values, list):
            raise BackendUnavailableError(f"Response missing '{key}'")
        return [str(value) for value in values]

    async def get_property_types(self) -> list[str]:
        return await self._types("/real-estate/property-types", "types")

    async def get_listing_types(self) -> list[str]:
        return await self._types("/real-estate/listing-types", "types")

    async def get_professional_types(self) -> list[str]:
        return await self._types("/real-estate/user-types", "types")

    async def get_amenities(self) -> list[str]:
        return await self._types("/real-estate/amenities", "amenities")
