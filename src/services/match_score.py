"""Score how well a listing fits a client's stated preferences."""

from typing import Iterable, Optional

from src.models.property import Property
from src.models.search import ClientPreferences, PropertyMatch
from src.services.property_query import location_matches


WEIGHTS = {
    "property_type": 20,
    "listing_type": 10,
    "budget": 30,
    "bedrooms": 15,
    "bathrooms": 5,
    "location": 10,
    "amenities": 10,
}

# Price this far outside the budget earns nothing
BUDGET_TOLERANCE = 0.25


def _budget_credit(price: float, budget_min: Optional[float], budget_max: Optional[float]) -> float:
    if budget_max is not None and price > budget_max:
        if budget_max == 0:
            return 0.0
        overshoot = (price - budget_max) / budget_max
        return max(0.0, 1 - overshoot / BUDGET_TOLERANCE)
    if budget_min is not None and price < budget_min:
        if budget_min == 0:
            return 1.0
        undershoot = (budget_min - price) / budget_min
        return max(0.0, 1 - undershoot / BUDGET_TOLERANCE)
    return 1.0


def _credits(prop: Property, prefs: ClientPreferences) -> dict[str, float]:
    """Credit in [0, 1] for each criterion the client stated."""
    credits: dict[str, float] = {}

    if prefs.property_types:
        credits["property_type"] = 1.0 if prop.property_type in prefs.property_types else 0.0

    if prefs.listing_type is not None:
        credits["listing_type"] = 1.0 if prop.listing_type == prefs.listing_type else 0.0

    if prefs.budget_min is not None or prefs.budget_max is not None:
        credits["budget"] = _budget_credit(prop.price, prefs.budget_min, prefs.budget_max)

    if prefs.min_bedrooms is not None:
        bedrooms = prop.bedrooms or 0
        if bedrooms >= prefs.min_bedrooms:
            credits["bedrooms"] = 1.0
        elif bedrooms == prefs.min_bedrooms - 1:
            credits["bedrooms"] = 0.5
        else:
            credits["bedrooms"] = 0.0

    if prefs.min_bathrooms is not None:
        credits["bathrooms"] = 1.0 if (prop.bathrooms or 0) >= prefs.min_bathrooms else 0.0

    locations = [loc for loc in prefs.locations if loc and loc.strip()]
    if locations:
        credits["location"] = 1.0 if any(location_matches(prop, loc.strip()) for loc in locations) else 0.0

    if prefs.amenities:
        wanted = set(prefs.amenities)
        credits["amenities"] = len(wanted & set(prop.amenities)) / len(wanted)

    return credits


def score_property(prop: Property, prefs: ClientPreferences) -> PropertyMatch:
    """Weighted attribute overlap as an integer percentage; 0 when nothing is stated."""
    credits = _credits(prop, prefs)
    stated_weight = sum(WEIGHTS[name] for name in credits)
    if not stated_weight:
        return PropertyMatch(listing=prop, score=0, matched=[])

    earned = sum(WEIGHTS[name] * credit for name, credit in credits.items())
    matched = [name for name, credit in credits.items() if credit >= 1.0]
    return PropertyMatch(listing=prop, score=round(100 * earned / stated_weight), matched=matched)


def rank_matches(
    properties: Iterable[Property],
    prefs: ClientPreferences,
    limit: Optional[int] = None,
    min_score: int = 0,
) -> list[PropertyMatch]:
    """Score every listing and return the best first (ties keep input order)."""
    scored = [score_property(prop, prefs) for prop in properties]
    ranked = sorted(
        (match for match in scored if match.score >= min_score),
        key=lambda match: match.score,
        reverse=True,
    )
    return ranked[:limit] if limit is not None else ranked
