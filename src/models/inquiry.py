"""Property inquiry model."""

from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import Field

from src.models.base import HubModel, generate_id, utc_now
from src.utils.errors import InvalidTransitionError


class InquiryStatus(str, Enum):
    """Inquiry workflow states."""
    NEW = "new"
    READ = "read"
    RESPONDED = "responded"
    CLOSED = "closed"
    FOLLOW_UP_REQUIRED = "follow_up_required"


INQUIRY_TRANSITIONS: dict[InquiryStatus, set[InquiryStatus]] = {
    InquiryStatus.NEW: {InquiryStatus.READ, InquiryStatus.RESPONDED, InquiryStatus.CLOSED},
    InquiryStatus.READ: {InquiryStatus.RESPONDED, InquiryStatus.CLOSED, InquiryStatus.FOLLOW_UP_REQUIRED},
    InquiryStatus.RESPONDED: {InquiryStatus.RESPONDED, InquiryStatus.CLOSED, InquiryStatus.FOLLOW_UP_REQUIRED},
    InquiryStatus.FOLLOW_UP_REQUIRED: {InquiryStatus.RESPONDED, InquiryStatus.CLOSED},
    InquiryStatus.CLOSED: set(),
}


class InquiryResponse(HubModel):
    """A reply posted on an inquiry."""
    id: str = Field(default_factory=generate_id)
    responder_id: str
    message: str
    created_at: datetime = Field(default_factory=utc_now)


class InquiryRequest(HubModel):
    """Question submitted about a property."""
    property_id: str
    inquirer_id: str
    professional_id: str
    subject: str = "Property inquiry"
    message: str = Field(..., min_length=1)
    inquiry_type: str = Field(
        default="general",
        description="general, viewing_request, price_inquiry, availability, financing, other"
    )
    priority: str = Field(default="medium", description="low, medium, high")
    contact_method: str = Field(default="email", description="phone, email, sms, whatsapp")


class PropertyInquiry(HubModel):
    """Inquiry thread between an inquirer and the listing professional."""
    id: str = Field(default_factory=generate_id)
    property_id: str
    inquirer_id: str
    professional_id: str
    subject: str = "Property inquiry"
    message: str
    inquiry_type: str = "general"
    priority: str = "medium"
    contact_method: str = "email"
    status: InquiryStatus = InquiryStatus.NEW
    responses: list[InquiryResponse] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    first_response_at: Optional[datetime] = None
    last_response_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, request: InquiryRequest) -> "PropertyInquiry":
        return cls(**request.model_dump())

    def transition_to(self, target: InquiryStatus) -> "PropertyInquiry":
        """Return a copy in the target status; raise if the move is not allowed."""
        if target not in INQUIRY_TRANSITIONS[self.status]:
            raise InvalidTransitionError("inquiry", self.status.value, target.value)

        now = utc_now()
        updates: dict = {"status": target, "updated_at": now}
        if target == InquiryStatus.CLOSED:
            updates["closed_at"] = now
        return self.model_copy(update=updates)

    def respond(self, responder_id: str, message: str) -> "PropertyInquiry":
        """Append a response and mark the inquiry responded."""
        moved = self.transition_to(InquiryStatus.RESPONDED)
        response = InquiryResponse(responder_id=responder_id, message=message)
        return moved.model_copy(update={
            "responses": [*self.responses, response],
            "first_response_at": self.first_response_at or response.created_at,
            "last_response_at": response.created_at,
        })
