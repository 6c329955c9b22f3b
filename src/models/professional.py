"""Real estate professional model - realtors, house agents and house owners."""

from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import Field, computed_field

from src.models.base import HubModel, generate_id, utc_now


class ProfessionalType(str, Enum):
    """Kinds of professional that can list property."""
    REALTOR = "realtor"
    HOUSE_AGENT = "house_agent"
    HOUSE_OWNER = "house_owner"


class VerificationStatus(str, Enum):
    """License/identity verification state."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ProfessionalRegistration(HubModel):
    """Registration form submitted by a professional."""
    professional_type: ProfessionalType
    license_number: Optional[str] = None
    agency_name: Optional[str] = None
    agency_address: Optional[str] = None
    specializations: list[str] = Field(default_factory=list)
    serving_areas: list[str] = Field(default_factory=list)
    years_experience: int = Field(default=0, ge=0)


class RealEstateProfessional(HubModel):
    """A professional account and its performance aggregates."""
    id: str = Field(default_factory=generate_id)
    user_id: str
    professional_type: ProfessionalType
    license_number: Optional[str] = None
    agency_name: Optional[str] = None
    agency_address: Optional[str] = None
    specializations: list[str] = Field(default_factory=list)
    serving_areas: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=lambda: ["English"])
    years_experience: int = Field(default=0, ge=0)

    verification_status: VerificationStatus = VerificationStatus.PENDING
    is_verified: bool = False
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    total_listings: int = Field(default=0, ge=0)
    total_sales: int = Field(default=0, ge=0)

    is_active: bool = True
    accepting_new_clients: bool = True

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def profile_completeness(self) -> int:
        """Percentage of the six profile signals that are filled in."""
        signals = [
            bool(self.professional_type),
            bool(self.license_number),
            len(self.specializations) > 0,
            self.years_experience > 0,
            bool(self.agency_name),
            bool(self.agency_address),
        ]
        return round(sum(signals) / len(signals) * 100)

    @classmethod
    def from_registration(cls, user_id: str, data: ProfessionalRegistration) -> "RealEstateProfessional":
        return cls(user_id=user_id, **data.model_dump())


def apply_verification(
    professional: RealEstateProfessional,
    status: VerificationStatus,
    rejection_reason: Optional[str] = None,
) -> RealEstateProfessional:
    """Return a copy of professional with its verification status changed."""
    now = utc_now()
    updates: dict = {"verification_status": status, "updated_at": now}

    if status == VerificationStatus.VERIFIED:
        updates.update(is_verified=True, verified_at=now, rejection_reason=None)
    elif status == VerificationStatus.REJECTED:
        updates.update(is_verified=False, rejection_reason=rejection_reason)
    else:
        updates["is_verified"] = False

    return professional.model_copy(update=updates)


class ProfessionalDashboard(HubModel):
    """Listing and engagement summary for one professional."""
    professional_id: str
    total_listings: int = 0
    listings_by_status: dict[str, int] = Field(default_factory=dict)
    active_listings: int = 0
    total_views: int = 0
    total_inquiries: int = 0
    total_viewings: int = 0
    total_favorites: int = 0
    average_days_on_market: float = 0.0
