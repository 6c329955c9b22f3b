"""Filter, sort and paginate property listings in memory."""

from typing import Any, Callable, Iterable, Optional

from src.models.property import Property
from src.models.search import PropertySearchFilters, PropertySearchResult, SortBy, SortOrder


SORT_KEYS: dict[SortBy, Callable[[Property], Any]] = {
    SortBy.PRICE: lambda p: p.price,
    SortBy.DATE: lambda p: p.created_at,
    SortBy.SIZE: lambda p: p.square_footage,
    SortBy.POPULARITY: lambda p: p.view_count,
}


def _at_least(value: Optional[float], minimum: Optional[float]) -> bool:
    if minimum is None:
        return True
    return value is not None and value >= minimum


def _at_most(value: Optional[float], maximum: Optional[float]) -> bool:
    if maximum is None:
        return True
    return value is not None and value <= maximum


def location_matches(prop: Property, location: str) -> bool:
    """Case-insensitive substring match against city, state or street."""
    needle = location.lower()
    address = prop.address
    return any(
        needle in (field or "").lower()
        for field in (address.city, address.state, address.street)
    )


def matches_filters(prop: Property, filters: PropertySearchFilters) -> bool:
    """True when prop satisfies every filter that is set."""
    if prop.is_deleted:
        return False

    if filters.property_type is not None and prop.property_type != filters.property_type:
        return False
    if filters.listing_type is not None and prop.listing_type != filters.listing_type:
        return False
    if filters.status is not None and prop.status != filters.status:
        return False
    if filters.professional_id is not None and prop.professional_id != filters.professional_id:
        return False

    if not _at_least(prop.price, filters.price_min) or not _at_most(prop.price, filters.price_max):
        return False
    if not _at_least(prop.bedrooms, filters.bedrooms):
        return False
    if not _at_least(prop.bathrooms, filters.bathrooms):
        return False
    if not _at_least(prop.square_footage, filters.square_footage_min):
        return False
    if not _at_most(prop.square_footage, filters.square_footage_max):
        return False

    if filters.location and not location_matches(prop, filters.location):
        return False

    # Requested amenities/features must all be present
    if filters.amenities and not set(filters.amenities).issubset(prop.amenities):
        return False
    if filters.features and not set(filters.features).issubset(prop.features):
        return False

    return True


def filter_properties(properties: Iterable[Property], filters: PropertySearchFilters) -> list[Property]:
    return [prop for prop in properties if matches_filters(prop, filters)]


def sort_properties(
    properties: Iterable[Property],
    sort_by: SortBy = SortBy.DATE,
    sort_order: SortOrder = SortOrder.DESC,
) -> list[Property]:
    """
    Stable sort on the chosen attribute.

    Equal keys keep their input order in both directions. Listings without
    a value for the key go last regardless of direction.
    """
    key = SORT_KEYS[sort_by]
    properties = list(properties)
    present = [prop for prop in properties if key(prop) is not None]
    missing = [prop for prop in properties if key(prop) is None]
    ordered = sorted(present, key=key, reverse=sort_order == SortOrder.DESC)
    return ordered + missing


def paginate(items: list, page: int, limit: int) -> list:
    """Slice [(page-1)*limit, page*limit)."""
    start = (page - 1) * limit
    return items[start:start + limit]


def run_query(properties: Iterable[Property], filters: PropertySearchFilters) -> PropertySearchResult:
    """Filter, order and page a listing collection."""
    matched = filter_properties(properties, filters)
    ordered = sort_properties(matched, filters.sort_by, filters.sort_order)
    return PropertySearchResult(
        properties=paginate(ordered, filters.page, filters.limit),
        total=len(matched),
        page=filters.page,
        limit=filters.limit,
    )
