"""Tests for property listing models."""

import pytest
from datetime import datetime, timezone
from freezegun import freeze_time
from pydantic import ValidationError

from src.models.property import (
    Property,
    PropertyCreate,
    PropertyStatus,
    PropertyUpdate,
    apply_status,
)
from tests.utils.factories import create_property_data


@pytest.mark.unit
def test_create_published_listing_is_active():
    """Publishing on create makes the listing active with a publish date."""
    with freeze_time("2024-12-09 12:00:00"):
        prop = PropertyCreate(**create_property_data()).build("pro_1")

    assert prop.status == PropertyStatus.ACTIVE
    assert prop.is_active is True
    assert prop.published_at == datetime(2024, 12, 9, 12, 0, tzinfo=timezone.utc)
    assert prop.professional_id == "pro_1"
    assert prop.listing_id.startswith("LST-")


@pytest.mark.unit
def test_create_draft_listing_is_under_review():
    """Unpublished listings wait for review."""
    prop = PropertyCreate(**create_property_data(publish=False)).build("pro_1")

    assert prop.status == PropertyStatus.UNDER_REVIEW
    assert prop.published_at is None


@pytest.mark.unit
def test_negative_price_rejected():
    """Price must not be negative."""
    with pytest.raises(ValidationError):
        PropertyCreate(**create_property_data(price=-1))


@pytest.mark.unit
def test_days_on_market_counts_from_publication():
    """Days on market are whole days since publication."""
    with freeze_time("2024-12-01 09:00:00"):
        prop = PropertyCreate(**create_property_data()).build("pro_1")

    with freeze_time("2024-12-11 08:00:00"):
        assert prop.days_on_market == 9


@pytest.mark.unit
def test_price_per_sqft():
    """Price per square foot is derived; absent without a size."""
    prop = PropertyCreate(**create_property_data(price=1_000_000, square_footage=400)).build("pro_1")
    unsized = PropertyCreate(**create_property_data(square_footage=None)).build("pro_1")

    assert prop.price_per_sqft == 2500.0
    assert unsized.price_per_sqft is None


@pytest.mark.unit
def test_api_payload_is_camel_case():
    """REST payloads use camelCase keys."""
    payload = PropertyCreate(**create_property_data()).build("pro_1").to_api()

    assert "professionalId" in payload
    assert "squareFootage" in payload
    assert "professional_id" not in payload


@pytest.mark.unit
def test_row_excludes_derived_fields():
    """Table rows never include computed values."""
    row = PropertyCreate(**create_property_data()).build("pro_1").to_row()

    assert "days_on_market" not in row
    assert "price_per_sqft" not in row
    assert row["status"] == "active"


@pytest.mark.unit
def test_camel_case_payload_is_accepted():
    """Records parse from REST responses."""
    prop = Property.model_validate({
        "professionalId": "pro_9",
        "title": "Flat",
        "propertyType": "apartment",
        "listingType": "rent",
        "price": 1200000,
        "viewCount": 4,
    })

    assert prop.professional_id == "pro_9"
    assert prop.view_count == 4


@pytest.mark.unit
def test_naive_timestamps_are_read_as_utc():
    """Offset-less timestamps from a backend still give a days-on-market figure."""
    prop = Property.model_validate({
        "professionalId": "pro_9",
        "title": "Flat",
        "propertyType": "apartment",
        "listingType": "rent",
        "price": 1200000,
        "createdAt": "2024-12-01T10:00:00",
    })

    with freeze_time("2024-12-09 12:00:00"):
        payload = prop.to_api()
        days = prop.days_on_market

    assert prop.created_at.tzinfo == timezone.utc
    assert payload["createdAt"].startswith("2024-12-01T10:00:00")
    assert days == 8


@pytest.mark.unit
def test_update_changes_only_set_fields():
    """Partial update reports only what the caller set."""
    update = PropertyUpdate(price=2_000_000, negotiable=True)

    assert update.changes() == {"price": 2_000_000, "negotiable": True}


@pytest.mark.unit
def test_apply_status_keeps_active_flag_in_step():
    """Status changes set is_active and first publication."""
    draft = PropertyCreate(**create_property_data(publish=False)).build("pro_1")

    active = apply_status(draft, PropertyStatus.ACTIVE)
    sold = apply_status(active, PropertyStatus.SOLD)

    assert active.is_active is True
    assert active.published_at is not None
    assert sold.is_active is False
    assert sold.published_at == active.published_at
