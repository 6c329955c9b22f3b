"""Property viewing model and its status workflow."""

from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import Field

from src.models.base import HubModel, generate_id, utc_now
from src.utils.errors import InvalidTransitionError


class ViewingStatus(str, Enum):
    """Viewing workflow states."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


VIEWING_TRANSITIONS: dict[ViewingStatus, set[ViewingStatus]] = {
    ViewingStatus.SCHEDULED: {
        ViewingStatus.CONFIRMED,
        ViewingStatus.CANCELLED,
        ViewingStatus.RESCHEDULED,
        ViewingStatus.NO_SHOW,
    },
    ViewingStatus.CONFIRMED: {
        ViewingStatus.COMPLETED,
        ViewingStatus.CANCELLED,
        ViewingStatus.NO_SHOW,
        ViewingStatus.RESCHEDULED,
    },
    ViewingStatus.RESCHEDULED: {
        ViewingStatus.CONFIRMED,
        ViewingStatus.CANCELLED,
        ViewingStatus.RESCHEDULED,
    },
    ViewingStatus.COMPLETED: set(),
    ViewingStatus.CANCELLED: set(),
    ViewingStatus.NO_SHOW: set(),
}

OPEN_VIEWING_STATUSES = {ViewingStatus.SCHEDULED, ViewingStatus.CONFIRMED, ViewingStatus.RESCHEDULED}


class ViewingRequest(HubModel):
    """Request to view a property."""
    property_id: str
    requester_id: str
    professional_id: str
    scheduled_at: datetime
    duration_minutes: int = Field(default=60, gt=0, le=480)
    meeting_location: str = Field(default="property", description="property, office or virtual")
    notes: Optional[str] = None


class PropertyViewing(HubModel):
    """Scheduled visit between a requester and a professional."""
    id: str = Field(default_factory=generate_id)
    property_id: str
    requester_id: str
    professional_id: str
    scheduled_at: datetime
    duration_minutes: int = 60
    meeting_location: str = "property"
    notes: Optional[str] = None
    status: ViewingStatus = ViewingStatus.SCHEDULED
    cancellation_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, request: ViewingRequest) -> "PropertyViewing":
        return cls(**request.model_dump())

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_VIEWING_STATUSES

    def transition_to(self, target: ViewingStatus, reason: Optional[str] = None) -> "PropertyViewing":
        """Return a copy in the target status; raise if the move is not allowed."""
        if target not in VIEWING_TRANSITIONS[self.status]:
            raise InvalidTransitionError("viewing", self.status.value, target.value)

        now = utc_now()
        updates: dict = {"status": target, "updated_at": now}
        if target == ViewingStatus.CONFIRMED:
            updates["confirmed_at"] = now
        elif target == ViewingStatus.COMPLETED:
            updates["completed_at"] = now
        elif target == ViewingStatus.CANCELLED:
            updates["cancelled_at"] = now
            updates["cancellation_reason"] = reason
        return self.model_copy(update=updates)

    def reschedule(self, scheduled_at: datetime) -> "PropertyViewing":
        moved = self.transition_to(ViewingStatus.RESCHEDULED)
        return moved.model_copy(update={"scheduled_at": scheduled_at, "confirmed_at": None})
