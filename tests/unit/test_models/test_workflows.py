"""Tests for viewing and inquiry status workflows."""

import pytest
from datetime import datetime, timedelta, timezone

from src.models.inquiry import InquiryRequest, InquiryStatus, PropertyInquiry
from src.models.viewing import PropertyViewing, ViewingRequest, ViewingStatus
from src.utils.errors import InvalidTransitionError
from tests.utils.factories import create_inquiry_data, create_viewing_data


def _viewing() -> PropertyViewing:
    return PropertyViewing.from_request(ViewingRequest(**create_viewing_data("prop_1")))


def _inquiry() -> PropertyInquiry:
    return PropertyInquiry.from_request(InquiryRequest(**create_inquiry_data("prop_1")))


@pytest.mark.unit
def test_viewing_confirm_then_complete():
    """Scheduled viewings can be confirmed and then completed."""
    confirmed = _viewing().transition_to(ViewingStatus.CONFIRMED)
    completed = confirmed.transition_to(ViewingStatus.COMPLETED)

    assert confirmed.confirmed_at is not None
    assert completed.status == ViewingStatus.COMPLETED
    assert completed.completed_at is not None
    assert completed.is_open is False


@pytest.mark.unit
def test_viewing_cancel_records_reason():
    """Cancelling stores the reason and time."""
    cancelled = _viewing().transition_to(ViewingStatus.CANCELLED, reason="Client travelling")

    assert cancelled.cancellation_reason == "Client travelling"
    assert cancelled.cancelled_at is not None


@pytest.mark.unit
def test_viewing_cannot_complete_before_confirmation():
    """A scheduled viewing must be confirmed before it can complete."""
    with pytest.raises(InvalidTransitionError) as exc_info:
        _viewing().transition_to(ViewingStatus.COMPLETED)

    assert "scheduled" in str(exc_info.value)


@pytest.mark.unit
def test_terminal_viewing_cannot_move():
    """Cancelled viewings stay cancelled."""
    cancelled = _viewing().transition_to(ViewingStatus.CANCELLED)

    with pytest.raises(InvalidTransitionError):
        cancelled.transition_to(ViewingStatus.CONFIRMED)


@pytest.mark.unit
def test_reschedule_moves_date_and_clears_confirmation():
    """Rescheduling a confirmed viewing needs re-confirmation."""
    new_time = datetime.now(timezone.utc) + timedelta(days=30)
    confirmed = _viewing().transition_to(ViewingStatus.CONFIRMED)

    moved = confirmed.reschedule(new_time)

    assert moved.status == ViewingStatus.RESCHEDULED
    assert moved.scheduled_at == new_time
    assert moved.confirmed_at is None


@pytest.mark.unit
def test_inquiry_respond_appends_response():
    """Responses accumulate and stamp response times."""
    first = _inquiry().respond("pro_1", "Yes, still available")
    second = first.respond("pro_1", "Viewing slots open on Friday")

    assert second.status == InquiryStatus.RESPONDED
    assert [r.message for r in second.responses] == ["Yes, still available", "Viewing slots open on Friday"]
    assert second.first_response_at == first.first_response_at
    assert second.last_response_at >= second.first_response_at


@pytest.mark.unit
def test_closed_inquiry_is_final():
    """Closed inquiries cannot be answered."""
    closed = _inquiry().transition_to(InquiryStatus.CLOSED)

    assert closed.closed_at is not None
    with pytest.raises(InvalidTransitionError):
        closed.respond("pro_1", "Too late")


@pytest.mark.unit
def test_inquiry_message_required():
    """Empty inquiry messages are rejected."""
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        InquiryRequest(**create_inquiry_data("prop_1", message=""))
