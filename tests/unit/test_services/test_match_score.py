"""Tests for preference match scoring."""

import pytest

from src.models.property import ListingType, PropertyType
from src.models.search import ClientPreferences
from src.services.match_score import rank_matches, score_property
from tests.utils.factories import make_property


def _lekki_flat(**overrides):
    fields = dict(
        property_type="apartment",
        listing_type="sale",
        price=50_000_000.0,
        bedrooms=3,
        bathrooms=2,
        amenities=["parking", "gym"],
        address={"street": "1 Admiralty Way", "city": "Lekki", "state": "Lagos"},
    )
    fields.update(overrides)
    return make_property(**fields)


@pytest.mark.unit
def test_perfect_match_scores_100():
    """A listing meeting every stated preference scores 100."""
    prefs = ClientPreferences(
        property_types=[PropertyType.APARTMENT],
        listing_type=ListingType.SALE,
        budget_min=40_000_000,
        budget_max=60_000_000,
        min_bedrooms=3,
        min_bathrooms=2,
        locations=["Lagos"],
        amenities=["parking", "gym"],
    )

    match = score_property(_lekki_flat(), prefs)

    assert match.score == 100
    assert set(match.matched) == {
        "property_type", "listing_type", "budget", "bedrooms", "bathrooms", "location", "amenities"
    }


@pytest.mark.unit
def test_no_preferences_scores_zero():
    """Nothing stated means nothing to match."""
    assert score_property(_lekki_flat(), ClientPreferences()).score == 0


@pytest.mark.unit
def test_wrong_type_loses_its_weight_only():
    """Type (20) missed out of type + listing (30) gives 33."""
    prefs = ClientPreferences(property_types=[PropertyType.HOUSE], listing_type=ListingType.SALE)

    assert score_property(_lekki_flat(), prefs).score == 33


@pytest.mark.unit
def test_budget_credit_decays_outside_range():
    """Price 10% over budget keeps 60% of the budget credit."""
    prefs = ClientPreferences(budget_max=50_000_000)

    assert score_property(_lekki_flat(price=55_000_000.0), prefs).score == 60
    assert score_property(_lekki_flat(price=70_000_000.0), prefs).score == 0


@pytest.mark.unit
def test_one_bedroom_short_gets_half_credit():
    """Being one bedroom short earns half the bedroom credit."""
    prefs = ClientPreferences(min_bedrooms=4)

    assert score_property(_lekki_flat(bedrooms=3), prefs).score == 50
    assert score_property(_lekki_flat(bedrooms=2), prefs).score == 0


@pytest.mark.unit
def test_partial_amenity_overlap():
    """Amenity credit is the share of wanted amenities present."""
    prefs = ClientPreferences(amenities=["parking", "pool", "gym", "security"])

    assert score_property(_lekki_flat(), prefs).score == 50


@pytest.mark.unit
def test_rank_matches_orders_best_first_and_applies_cutoffs():
    """Ranking sorts by score, keeps ties in order and respects limit/min_score."""
    prefs = ClientPreferences(min_bedrooms=3)
    two = _lekki_flat(bedrooms=2)
    three_a = _lekki_flat(bedrooms=3)
    three_b = _lekki_flat(bedrooms=4)
    one = _lekki_flat(bedrooms=1)

    ranked = rank_matches([two, three_a, one, three_b], prefs)
    assert [m.listing.id for m in ranked] == [three_a.id, three_b.id, two.id, one.id]

    assert len(rank_matches([two, three_a, one, three_b], prefs, limit=2)) == 2
    assert [m.score for m in rank_matches([two, three_a, one, three_b], prefs, min_score=50)] == [100, 100, 50]
