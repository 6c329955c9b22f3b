"""Test data factories using Faker."""

from faker import Faker
from typing import Optional
from datetime import datetime, timedelta, timezone

from src.models.property import (
    ListingType,
    Property,
    PropertyAddress,
    PropertyStatus,
    PropertyType,
)

fake = Faker()

NIGERIAN_CITIES = [("Lekki", "Lagos"), ("Ikeja", "Lagos"), ("Maitama", "Abuja"), ("Wuse", "Abuja"), ("GRA", "Rivers")]


def create_property_data(**overrides) -> dict:
    """Create fields for a PropertyCreate payload."""
    city, state = fake.random_element(NIGERIAN_CITIES)
    data = {
        "title": fake.sentence(nb_words=4),
        "description": fake.text(max_nb_chars=120),
        "property_type": fake.random_element([t.value for t in PropertyType]),
        "listing_type": fake.random_element([t.value for t in ListingType]),
        "price": float(fake.random_int(min=1_000_000, max=200_000_000)),
        "bedrooms": fake.random_int(min=1, max=6),
        "bathrooms": fake.random_int(min=1, max=5),
        "square_footage": float(fake.random_int(min=400, max=5000)),
        "amenities": fake.random_elements(["parking", "gym", "security", "wifi", "ac"], length=2, unique=True),
        "address": {"street": fake.street_address(), "city": city, "state": state},
    }
    data.update(overrides)
    return data


def make_property(
    professional_id: str = "pro_1",
    created_at: Optional[datetime] = None,
    **overrides,
) -> Property:
    """Create a Property with sensible random fields."""
    data = create_property_data(**overrides)
    created_at = created_at or datetime.now(timezone.utc) - timedelta(days=fake.random_int(min=1, max=60))
    address = data.pop("address")
    return Property(
        professional_id=professional_id,
        address=PropertyAddress(**address) if isinstance(address, dict) else address,
        status=data.pop("status", PropertyStatus.ACTIVE),
        created_at=created_at,
        updated_at=created_at,
        published_at=created_at,
        **data,
    )


def create_professional_data(**overrides) -> dict:
    """Create fields for a ProfessionalRegistration payload."""
    data = {
        "professional_type": fake.random_element(["realtor", "house_agent", "house_owner"]),
        "license_number": f"LIC-{fake.random_int(min=10000, max=99999)}",
        "agency_name": fake.company(),
        "agency_address": fake.address(),
        "specializations": ["residential"],
        "years_experience": fake.random_int(min=1, max=25),
    }
    data.update(overrides)
    return data


def create_viewing_data(property_id: str, professional_id: str = "pro_1", **overrides) -> dict:
    """Create fields for a ViewingRequest."""
    data = {
        "property_id": property_id,
        "requester_id": f"user_{fake.random_int(min=1000, max=9999)}",
        "professional_id": professional_id,
        "scheduled_at": datetime.now(timezone.utc) + timedelta(days=fake.random_int(min=1, max=14)),
        "notes": fake.sentence(),
    }
    data.update(overrides)
    return data


def create_inquiry_data(property_id: str, professional_id: str = "pro_1", **overrides) -> dict:
    """Create fields for an InquiryRequest."""
    data = {
        "property_id": property_id,
        "inquirer_id": f"user_{fake.random_int(min=1000, max=9999)}",
        "professional_id": professional_id,
        "subject": "Is this still available?",
        "message": fake.paragraph(),
    }
    data.update(overrides)
    return data
