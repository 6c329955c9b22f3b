"""Shared model configuration and id helpers."""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from ulid import ULID


class HubModel(BaseModel):
    """Base for records exchanged with the REST API (camelCase on the wire)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    @field_validator("*", mode="after")
    @classmethod
    def assume_utc(cls, value):
        """Naive timestamps from the backend are UTC."""
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_api(self) -> dict:
        """Serialize for the REST API."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_row(self, exclude: Optional[set[str]] = None, exclude_none: bool = True) -> dict:
        """Serialize for a Supabase table row; derived fields are not stored."""
        derived = set(type(self).model_computed_fields)
        return self.model_dump(mode="json", exclude_none=exclude_none, exclude=derived | (exclude or set()))


def utc_now() -> datetime:
    """Current time, timezone-aware."""
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Generate a text record id (ULID format)."""
    return str(ULID())


def generate_listing_id() -> str:
    """Generate a public listing reference."""
    return f"LST-{ULID()}"
