"""Data models for the restaurant roulette backend."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        # NaN compares false against both bounds and is allowed through.
        if not math.isnan(self.lat) and not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not math.isnan(self.lng) and not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")


@dataclass(frozen=True)
class SearchCenter:
    point: GeoPoint
    label: Optional[str] = None
    fixed: bool = False
    address: Optional[str] = None


class VenueCategory(str, Enum):
    RESTAURANT = "restaurant"
    FAST_FOOD = "fast_food"
    CAFE = "cafe"
    FOOD_COURT = "food_court"
    BAR = "bar"
    PUB = "pub"
    BREWERY = "brewery"
    NIGHTCLUB = "nightclub"
    CONVENIENCE_STORE = "convenience_store"

    @property
    def osm_selector(self) -> str:
        """Overpass tag filter for this category."""
        return _OSM_SELECTORS[self]

    @property
    def provider_type(self) -> str:
        """Places API type used for nearby search."""
        return _PROVIDER_TYPES[self]

    @classmethod
    def parse(cls, value: Any) -> Optional["VenueCategory"]:
        if isinstance(value, cls):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


_OSM_SELECTORS: Dict[VenueCategory, str] = {
    VenueCategory.RESTAURANT: '["amenity"="restaurant"]',
    VenueCategory.FAST_FOOD: '["amenity"="fast_food"]',
    VenueCategory.CAFE: '["amenity"="cafe"]',
    VenueCategory.FOOD_COURT: '["amenity"="food_court"]',
    VenueCategory.BAR: '["amenity"="bar"]',
    VenueCategory.PUB: '["amenity"="pub"]',
    VenueCategory.BREWERY: '["craft"="brewery"]',
    VenueCategory.NIGHTCLUB: '["amenity"="nightclub"]',
    VenueCategory.CONVENIENCE_STORE: '["shop"="convenience"]',
}

_PROVIDER_TYPES: Dict[VenueCategory, str] = {
    VenueCategory.RESTAURANT: "restaurant",
    VenueCategory.FAST_FOOD: "meal_takeaway",
    VenueCategory.CAFE: "cafe",
    VenueCategory.FOOD_COURT: "food",
    VenueCategory.BAR: "bar",
    VenueCategory.PUB: "bar",
    VenueCategory.BREWERY: "bar",
    VenueCategory.NIGHTCLUB: "night_club",
    VenueCategory.CONVENIENCE_STORE: "convenience_store",
}


@dataclass(frozen=True)
class OSMRecord:
    """Overpass element: direct lat/lon (nodes) or a `center` (ways)."""

    data: Dict[str, Any]
    kind: str = "osm"


@dataclass(frozen=True)
class CommercialRecord:
    """Places nearby-search result with nested geometry and a place_id."""

    data: Dict[str, Any]
    kind: str = "google"


RawProviderRecord = Union[OSMRecord, CommercialRecord]


@dataclass(frozen=True)
class OpeningPeriod:
    open_day: int  # 0 = Sunday, as the places API reports it
    open_min: int
    close_day: Optional[int] = None
    close_min: Optional[int] = None


@dataclass(frozen=True)
class Venue:
    id: str
    name: str
    location: GeoPoint
    distance_m: float
    category: VenueCategory = VenueCategory.RESTAURANT
    cuisine: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours_text: Optional[str] = None
    opening_periods: Tuple[OpeningPeriod, ...] = ()
    rating: Optional[float] = None
    price_level: Optional[int] = None
    source: str = "osm"
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GeocodeResult:
    point: GeoPoint
    formatted_address: str
    query: str = ""
    endpoint: str = ""


@dataclass(frozen=True)
class PeopleBucket:
    name: str
    min_people: int
    max_people: int
    preferred_types: Tuple[VenueCategory, ...] = ()

    def contains(self, people: int) -> bool:
        return self.min_people <= people <= self.max_people


@dataclass
class PeopleBucketTable:
    buckets: list[PeopleBucket] = field(default_factory=list)
    default: Optional[str] = None  # name of the fallback bucket

    def default_bucket(self) -> PeopleBucket:
        if not self.buckets:
            raise ValueError("bucket table is empty")
        for bucket in self.buckets:
            if bucket.name == self.default:
                return bucket
        return self.buckets[0]
