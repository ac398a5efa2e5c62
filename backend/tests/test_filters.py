from __future__ import annotations

from datetime import datetime

import pytest

from models import GeoPoint, OpeningPeriod, Venue, VenueCategory
from services.filters import (
    DEFAULT_EXCLUSION_KEYWORDS,
    FilterOptions,
    bucket_for,
    dedupe_by_name,
    default_meal_time,
    exclude_keywords,
    filter_venues,
    is_open_in_periods,
    is_probably_open,
    prefer_bucket,
    sort_always_open_first,
    sunday_weekday,
    within_radius,
)
from services.variants import NIGHTLIFE_BUCKETS

R = VenueCategory


def _venue(name: str, distance_m: float, category: VenueCategory = R.RESTAURANT, **kwargs) -> Venue:
    return Venue(
        id=f"v:{name}:{distance_m}",
        name=name,
        location=GeoPoint(25.0, 121.5),
        distance_m=distance_m,
        category=category,
        **kwargs,
    )


def test_within_radius_is_sound() -> None:
    venues = [_venue("a", 100), _venue("b", 2000), _venue("c", 2000.5)]
    kept = within_radius(venues, 2000)
    assert [v.name for v in kept] == ["a", "b"]
    assert all(v.distance_m <= 2000 for v in kept)


def test_dedupe_is_idempotent_and_keeps_first() -> None:
    venues = [_venue("a", 1), _venue("b", 2), _venue("a", 3)]
    once = dedupe_by_name(venues)
    assert [v.distance_m for v in once] == [1, 2]
    assert dedupe_by_name(once) == once


def test_exclude_beverage_shops() -> None:
    venues = [_venue("50嵐 手搖飲", 10), _venue("Boba Time", 20), _venue("牛肉麵", 30), _venue("x", 40, cuisine="bubble_tea")]
    kept = exclude_keywords(venues, DEFAULT_EXCLUSION_KEYWORDS)
    assert [v.name for v in kept] == ["牛肉麵"]


@pytest.mark.parametrize(
    "text,expected",
    [
        (None, True),
        ("", True),
        ("24/7", True),
        ("24小時營業", True),
        ("暫停營業", False),
        ("Closed", False),
        (" closed. ", False),
        ("Mo-Sa 11:00-21:00; Su closed", True),
        ("Mo-Fr 11:00-14:00", True),
    ],
)
def test_is_probably_open(text, expected) -> None:
    assert is_probably_open(text, 19 * 60) is expected


def test_is_open_in_periods() -> None:
    lunch = (OpeningPeriod(open_day=1, open_min=11 * 60, close_day=1, close_min=14 * 60),)
    assert is_open_in_periods(lunch, 1, 12 * 60)
    assert not is_open_in_periods(lunch, 1, 15 * 60)
    assert not is_open_in_periods(lunch, 2, 12 * 60)
    late = (OpeningPeriod(open_day=5, open_min=18 * 60, close_day=6, close_min=2 * 60),)
    assert is_open_in_periods(late, 5, 23 * 60)
    assert is_open_in_periods(late, 5, 60)
    assert is_open_in_periods((OpeningPeriod(open_day=0, open_min=0),), 0, 23 * 60)
    assert is_open_in_periods((), 3, 0)


@pytest.mark.parametrize(
    "people,expected",
    [(1, "small"), (3, "small"), (5, "medium"), (8, "medium"), (20, "large"), (0, "medium"), (-4, "medium"), (None, "medium"), (99, "medium")],
)
def test_bucket_for(people, expected) -> None:
    assert bucket_for(people, NIGHTLIFE_BUCKETS).name == expected


def test_prefer_bucket_never_empties() -> None:
    large = bucket_for(20, NIGHTLIFE_BUCKETS)
    venues = [_venue("bar", 10, R.BAR), _venue("cafe", 20, R.CAFE)]
    assert prefer_bucket(venues, large) == venues

    mixed = venues + [_venue("hall", 30, R.RESTAURANT)]
    assert [v.name for v in prefer_bucket(mixed, large)] == ["hall"]


def test_always_open_first_ordering() -> None:
    venues = [
        _venue("far-24h", 900, opening_hours_text="24小時營業"),
        _venue("near", 100, opening_hours_text="11:00-21:00"),
        _venue("tagged", 500, tags=("24小時",)),
    ]
    assert [v.name for v in sort_always_open_first(venues)] == ["tagged", "far-24h", "near"]


def test_filter_pipeline() -> None:
    venues = [
        _venue("麵店", 300),
        _venue("麵店", 400),
        _venue("咖啡", 500, R.CAFE),
        _venue("酒吧", 600, R.BAR),
        _venue("遠方", 5000),
        _venue("歇業餐廳", 100, opening_hours_text="永久停業"),
    ]
    options = FilterOptions(
        radius_m=2000,
        categories=[R.RESTAURANT, R.CAFE],
        exclusion_keywords=DEFAULT_EXCLUSION_KEYWORDS,
        target_minutes=18 * 60,
    )
    result = filter_venues(venues, options)
    assert [v.name for v in result] == ["麵店", "咖啡"]
    assert all(v.category in (R.RESTAURANT, R.CAFE) and v.distance_m <= 2000 for v in result)


def test_default_meal_time() -> None:
    assert default_meal_time(datetime(2024, 5, 1, 12, 0)) == "18:00"
    assert default_meal_time(datetime(2024, 5, 1, 17, 30)) == "18:00"
    assert default_meal_time(datetime(2024, 5, 1, 19, 10)) == "20:00"
    assert default_meal_time(datetime(2024, 5, 1, 23, 0)) == "21:00"


def test_sunday_weekday() -> None:
    assert sunday_weekday(datetime(2024, 5, 5)) == 0  # a Sunday
    assert sunday_weekday(datetime(2024, 5, 6)) == 1
