from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from models import GeoPoint, VenueCategory

METERS_PER_DEGREE = 111320.0

BBox = Tuple[float, float, float, float]  # south, west, north, east


@dataclass(frozen=True)
class ProviderRequest:
    """A request sent unchanged to every endpoint of one provider."""

    method: str = "GET"
    params: Dict[str, Any] = field(default_factory=dict)
    data: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)
    bbox: Optional[BBox] = None


def _validate(radius_m: float, categories: Sequence[VenueCategory]) -> None:
    if not radius_m or radius_m <= 0:
        raise ValueError(f"radius must be positive, got {radius_m}")
    if not categories:
        raise ValueError("at least one venue category is required")


def expand_bbox_from_center(center: GeoPoint, radius_m: float) -> BBox:
    """Create a rectangular bbox around center by ±radius_m in both axes.

    City-scale approximation: latitude degrees are a flat 111,320 m and the
    longitude span widens by 1/cos(lat). At the poles the longitude span is
    unbounded and the box covers every longitude.

    Returns (south, west, north, east)
    """
    dlat = radius_m / METERS_PER_DEGREE
    cos_lat = math.cos(math.radians(center.lat))
    if abs(cos_lat) < 1e-12:
        west, east = -180.0, 180.0
    else:
        dlng = radius_m / (METERS_PER_DEGREE * abs(cos_lat))
        if dlng >= 180.0:
            west, east = -180.0, 180.0
        else:
            west, east = center.lng - dlng, center.lng + dlng
    south = max(-90.0, center.lat - dlat)
    north = min(90.0, center.lat + dlat)
    return (south, west, north, east)


def build_overpass_query(
    center: GeoPoint,
    radius_m: float,
    categories: Sequence[VenueCategory],
    *,
    timeout_s: int = 25,
) -> str:
    _validate(radius_m, categories)
    south, west, north, east = expand_bbox_from_center(center, radius_m)
    bbox = f"{south:.6f},{west:.6f},{north:.6f},{east:.6f}"
    clauses = []
    for category in dict.fromkeys(categories):
        selector = VenueCategory(category).osm_selector
        clauses.append(f'  node{selector}["name"]({bbox});')
        clauses.append(f'  way{selector}["name"]({bbox});')
    body = "\n".join(clauses)
    return f"[out:json][timeout:{int(timeout_s)}];\n(\n{body}\n);\nout center;"


def overpass_request(
    center: GeoPoint,
    radius_m: float,
    categories: Sequence[VenueCategory],
    *,
    timeout_s: int = 25,
    user_agent: str = "RestaurantRoulette/1.0",
) -> ProviderRequest:
    query = build_overpass_query(center, radius_m, categories, timeout_s=timeout_s)
    return ProviderRequest(
        method="POST",
        data={"data": query},
        headers={"User-Agent": user_agent, "Accept": "application/json"},
        bbox=expand_bbox_from_center(center, radius_m),
    )


def build_nearby_request(
    center: GeoPoint,
    radius_m: float,
    categories: Sequence[VenueCategory],
    *,
    api_key: str,
    language: str = "zh-TW",
) -> ProviderRequest:
    """Nearby-search parameters for the commercial places provider.

    The provider accepts a single `type`; the first category decides it and
    the category allow-list stage narrows the rest afterwards.
    """
    _validate(radius_m, categories)
    primary = VenueCategory(categories[0])
    params = {
        "location": f"{center.lat},{center.lng}",
        "radius": int(round(radius_m)),
        "type": primary.provider_type,
        "language": language,
        "key": api_key,
    }
    return ProviderRequest(
        method="GET",
        params=params,
        headers={"Accept": "application/json"},
        bbox=expand_bbox_from_center(center, radius_m),
    )


DETAILS_FIELDS = (
    "place_id",
    "opening_hours",
    "formatted_address",
    "formatted_phone_number",
    "website",
    "rating",
    "price_level",
    "geometry",
)


def build_details_request(place_id: str, *, api_key: str, language: str = "zh-TW") -> ProviderRequest:
    """Place-details parameters; nearby search never returns weekly periods."""
    if not place_id:
        raise ValueError("place_id is required")
    params = {
        "place_id": place_id,
        "fields": ",".join(DETAILS_FIELDS),
        "language": language,
        "key": api_key,
    }
    return ProviderRequest(method="GET", params=params, headers={"Accept": "application/json"})
