from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

import pytest

from venue_ranker.recommendations.config import ScoringConfig, ScoringWeights
from venue_ranker.recommendations.models import (
    DailyAvailability,
    GeoPoint,
    Item,
    Preference,
    SearchParams,
    TimeSlot,
    User,
)
from venue_ranker.recommendations.scoring import Scorer, haversine_km

SEARCH_DATE = date(2025, 6, 1)
PARAMS = SearchParams(date=SEARCH_DATE)
ORIGIN = GeoPoint(longitude=0.0, latitude=0.0)


def _slots(free: int, booked: int) -> list[TimeSlot]:
    return (
        [TimeSlot(time=f"f{i}", is_booked=False) for i in range(free)]
        + [TimeSlot(time=f"b{i}", is_booked=True) for i in range(booked)]
    )


def _item(
    item_id: str = "i1",
    category: str = "spa",
    rating: float = 4.0,
    total_bookings: int = 100,
    location: GeoPoint | None = ORIGIN,
    free: int = 2,
    booked: int = 2,
    day: date = SEARCH_DATE,
) -> Item:
    return Item(
        id=item_id,
        name=item_id,
        category=category,
        rating=rating,
        total_bookings=total_bookings,
        location=location,
        availability=[DailyAvailability(date=day, slots=_slots(free, booked))],
    )


def _user(preferences: list[Preference] | None = None, location: GeoPoint | None = ORIGIN) -> User:
    return User(id="u1", preferences=preferences or [], location=location)


scorer = Scorer()


# ── Preference ───────────────────────────────────────────────────────────


def test_preference_neutral_without_history():
    user = _user()
    for category in ("spa", "gym", "anything"):
        assert scorer.preference_score(_item(category=category), user) == 0.5


def test_preference_matches_category_weight():
    user = _user([Preference(category="spa", weight=0.8)])
    assert scorer.preference_score(_item(category="spa"), user) == 0.8
    assert scorer.preference_score(_item(category="gym"), user) == 0.3


def test_preference_duplicate_categories_use_first_entry():
    user = _user([
        Preference(category="spa", weight=0.9),
        Preference(category="spa", weight=0.1),
    ])
    assert scorer.preference_score(_item(category="spa"), user) == 0.9


def test_preference_match_is_exact():
    user = _user([Preference(category="Spa", weight=0.9)])
    assert scorer.preference_score(_item(category="spa"), user) == 0.3


# ── Popularity & rating ─────────────────────────────────────────────────


def test_popularity_scales_against_ceiling():
    assert scorer.popularity_score(_item(total_bookings=0)) == 0.0
    assert scorer.popularity_score(_item(total_bookings=250)) == 0.25


def test_popularity_saturates():
    assert scorer.popularity_score(_item(total_bookings=1000)) == 1.0
    assert scorer.popularity_score(_item(total_bookings=2000)) == 1.0


def test_rating_divides_by_five():
    assert scorer.rating_score(_item(rating=5.0)) == 1.0
    assert scorer.rating_score(_item(rating=2.5)) == 0.5
    assert scorer.rating_score(_item(rating=0.0)) == 0.0


# ── Location ────────────────────────────────────────────────────────────


def test_haversine_zero_for_same_point():
    assert haversine_km(52.52, 13.405, 52.52, 13.405) == 0.0


def test_haversine_known_distance():
    # Berlin to Paris, roughly 878 km
    distance = haversine_km(52.5200, 13.4050, 48.8566, 2.3522)
    assert 870 < distance < 885


def test_haversine_one_degree_latitude():
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)


@pytest.mark.parametrize("lat", [0.0, 45.0, -82.0, -84.857, 85.6])
def test_haversine_antipodal_points_are_half_the_circumference(lat):
    distance = haversine_km(lat, 0.0, -lat, 180.0)
    assert not math.isnan(distance)
    assert distance == pytest.approx(math.pi * 6371.0, rel=1e-6)


def test_location_same_point_scores_one():
    assert scorer.location_score(_item(location=ORIGIN), _user(location=ORIGIN)) == 1.0


def test_location_beyond_max_distance_scores_zero():
    # 0.5 degrees of latitude is about 55.6 km
    far = GeoPoint(longitude=0.0, latitude=0.5)
    assert scorer.location_score(_item(location=far), _user()) == 0.0
    very_far = GeoPoint(longitude=90.0, latitude=45.0)
    assert scorer.location_score(_item(location=very_far), _user()) == 0.0


def test_location_scales_linearly_inside_range():
    near = GeoPoint(longitude=0.0, latitude=0.1)
    expected = 1.0 - haversine_km(0.0, 0.0, 0.1, 0.0) / 50.0
    assert scorer.location_score(_item(location=near), _user()) == pytest.approx(expected)
    assert 0.0 < expected < 1.0


def test_location_uses_latitude_and_longitude_axes():
    # Same numbers, swapped axes: near the pole one degree of longitude is tiny
    user = _user(location=GeoPoint(longitude=0.0, latitude=89.0))
    east = GeoPoint(longitude=1.0, latitude=89.0)
    north = GeoPoint(longitude=0.0, latitude=88.0)
    assert scorer.location_score(_item(location=east), user) > 0.9
    assert scorer.location_score(_item(location=north), user) == 0.0


def test_location_neutral_when_coordinates_missing():
    assert scorer.location_score(_item(location=None), _user()) == 0.5
    assert scorer.location_score(_item(), _user(location=None)) == 0.5


# ── Availability ────────────────────────────────────────────────────────


def test_availability_fraction_of_free_slots():
    assert scorer.availability_score(_item(free=3, booked=1), SEARCH_DATE) == 0.75
    assert scorer.availability_score(_item(free=0, booked=4), SEARCH_DATE) == 0.0


def test_availability_zero_without_entry_for_date():
    item = _item(day=SEARCH_DATE + timedelta(days=1))
    assert scorer.availability_score(item, SEARCH_DATE) == 0.0


def test_availability_zero_for_day_without_slots():
    item = _item(free=0, booked=0)
    assert item.availability_on(SEARCH_DATE) is not None
    assert scorer.availability_score(item, SEARCH_DATE) == 0.0


def test_availability_ignores_time_of_day():
    item = Item(
        id="i1",
        category="spa",
        availability=[DailyAvailability(date="2025-06-01T22:30:00+02:00", slots=_slots(1, 1))],
    )
    late = datetime(2025, 6, 1, 23, 59, tzinfo=timezone(timedelta(hours=-5)))
    assert scorer.availability_score(item, late) == 0.5
    assert scorer.availability_score(item, datetime(2025, 6, 1, 0, 0)) == 0.5


def test_availability_first_entry_wins_for_duplicate_dates():
    item = Item(
        id="i1",
        category="spa",
        availability=[
            DailyAvailability(date=SEARCH_DATE, slots=_slots(1, 3)),
            DailyAvailability(date=SEARCH_DATE, slots=_slots(4, 0)),
        ],
    )
    assert scorer.availability_score(item, SEARCH_DATE) == 0.25


# ── Aggregation ─────────────────────────────────────────────────────────


def test_score_is_weighted_sum():
    user = _user([Preference(category="spa", weight=0.8)])
    item = _item(rating=5.0, total_bookings=500, free=3, booked=1)
    expected = 0.30 * 0.8 + 0.20 * 0.5 + 0.20 * 1.0 + 0.15 * 1.0 + 0.15 * 0.75
    assert scorer.score(item, user, PARAMS) == pytest.approx(expected)


def test_breakdown_has_all_five_components():
    breakdown = scorer.breakdown(_item(location=None), _user(location=None), PARAMS)
    assert set(breakdown) == {"preference", "popularity", "rating", "location", "availability"}


@pytest.mark.parametrize("rating", [0.0, 2.5, 5.0])
@pytest.mark.parametrize("bookings", [0, 999, 5000])
@pytest.mark.parametrize("free,booked", [(0, 0), (0, 3), (2, 2), (4, 0)])
def test_score_in_unit_interval_for_valid_inputs(rating, bookings, free, booked):
    users = [
        _user(),
        _user([Preference(category="spa", weight=1.0)]),
        _user([Preference(category="gym", weight=0.0)], location=None),
    ]
    item = _item(rating=rating, total_bookings=bookings, free=free, booked=booked)
    for user in users:
        value = scorer.score(item, user, PARAMS)
        assert -1e-9 <= value <= 1.0 + 1e-9


def test_unvalidated_rating_propagates_unclamped():
    item = Item.model_construct(
        id="bad",
        name="bad",
        category="spa",
        rating=7.0,
        total_bookings=1000,
        location=ORIGIN,
        availability=[DailyAvailability(date=SEARCH_DATE, slots=_slots(1, 0))],
    )
    user = _user([Preference(category="spa", weight=1.0)])
    assert scorer.rating_score(item) == pytest.approx(1.4)
    assert scorer.score(item, user, PARAMS) > 1.0


def test_custom_weights_change_score():
    config = ScoringConfig(weights=ScoringWeights(
        preference=0.0, popularity=0.0, rating=1.0, location=0.0, availability=0.0,
    ))
    custom = Scorer(config)
    assert custom.score(_item(rating=4.0), _user(), PARAMS) == pytest.approx(0.8)


# ── Ranking ─────────────────────────────────────────────────────────────


def test_end_to_end_preferred_nearby_item_ranks_first():
    user = _user([Preference(category="spa", weight=0.8)])
    item_a = _item("A", category="spa", rating=5.0, total_bookings=500, free=3, booked=1)
    item_b = _item(
        "B",
        category="gym",
        rating=3.0,
        total_bookings=100,
        location=GeoPoint(longitude=10.0, latitude=10.0),
        free=1,
        booked=1,
    )
    ranked = scorer.rank_scored([item_b, item_a], user, PARAMS)
    assert [s.item.id for s in ranked] == ["A", "B"]
    assert ranked[0].score > ranked[1].score


@pytest.mark.parametrize("count,limit", [(0, 10), (3, 10), (10, 10), (25, 10), (25, 1)])
def test_rank_length_is_min_of_candidates_and_limit(count, limit):
    items = [_item(f"i{n}", rating=float(n % 6)) for n in range(count)]
    ranked = scorer.rank(items, _user(), SearchParams(date=SEARCH_DATE, limit=limit))
    assert len(ranked) == min(count, limit)


def test_rank_default_limit_is_ten():
    items = [_item(f"i{n}") for n in range(20)]
    assert len(scorer.rank(items, _user(), SearchParams(date=SEARCH_DATE))) == 10


def test_rank_scores_non_increasing():
    items = [
        _item(f"i{n}", rating=float(n % 6), total_bookings=n * 37, free=n % 4, booked=2)
        for n in range(30)
    ]
    ranked = scorer.rank_scored(items, _user(), SearchParams(date=SEARCH_DATE, limit=30))
    scores = [s.score for s in ranked]
    assert scores == sorted(scores, reverse=True)


def test_rank_ties_keep_candidate_order():
    items = [_item(f"tie{n}") for n in range(5)]
    better = _item("best", rating=5.0)
    candidates = items[:2] + [better] + items[2:]
    ranked = scorer.rank(candidates, _user(), SearchParams(date=SEARCH_DATE, limit=10))
    assert [i.id for i in ranked] == ["best", "tie0", "tie1", "tie2", "tie3", "tie4"]


def test_rank_is_repeatable():
    items = [_item(f"i{n}", rating=float(n % 3)) for n in range(12)]
    first = [i.id for i in scorer.rank(items, _user(), PARAMS)]
    second = [i.id for i in scorer.rank(items, _user(), PARAMS)]
    assert first == second


def test_parallel_rank_matches_sequential():
    items = [
        _item(f"i{n}", rating=float(n % 5), total_bookings=n * 50, free=n % 3, booked=1)
        for n in range(40)
    ]
    params = SearchParams(date=SEARCH_DATE, limit=40)
    sequential = scorer.rank_scored(items, _user(), params)
    parallel = Scorer(max_workers=4).rank_scored(items, _user(), params)
    assert [s.item.id for s in parallel] == [s.item.id for s in sequential]
    assert [s.score for s in parallel] == [s.score for s in sequential]
