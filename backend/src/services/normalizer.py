"""Map provider records onto the canonical Venue.

Records are dispatched on their OSMRecord / CommercialRecord tag, which the
fetcher attaches based on the endpoint that answered. Untagged dicts go
through `_sniff`, the shape-based fallback.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from loguru import logger

from models import CommercialRecord, GeoPoint, OSMRecord, OpeningPeriod, RawProviderRecord, Venue, VenueCategory
from utils import distance, parse_hhmm

DEFAULT_NAME_KEYS: Tuple[str, ...] = ("name:zh-TW", "name:zh", "name")
DEFAULT_PLACEHOLDER = "Unknown"


def _coerce_point(lat: Any, lng: Any) -> Optional[GeoPoint]:
    if lat is None or lng is None:
        return None
    try:
        return GeoPoint(float(lat), float(lng))
    except (TypeError, ValueError):
        return None


def _resolve_name(tags: Dict[str, Any], keys: Sequence[str], placeholder: str) -> str:
    for key in keys:
        value = tags.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return placeholder


def _osm_category(tags: Dict[str, Any]) -> VenueCategory:
    amenity = VenueCategory.parse(tags.get("amenity"))
    if amenity:
        return amenity
    if tags.get("shop") == "convenience":
        return VenueCategory.CONVENIENCE_STORE
    if tags.get("craft") == "brewery" or tags.get("microbrewery") == "yes":
        return VenueCategory.BREWERY
    return VenueCategory.RESTAURANT


def _osm_address(tags: Dict[str, Any]) -> Optional[str]:
    if tags.get("addr:full"):
        return str(tags["addr:full"])
    parts = [tags.get(k) for k in ("addr:city", "addr:district", "addr:street", "addr:housenumber")]
    joined = "".join(str(p) for p in parts if p)
    return joined or None


def _normalize_osm(
    record: Dict[str, Any],
    center: GeoPoint,
    index: int,
    name_keys: Sequence[str],
    placeholder: str,
) -> Optional[Venue]:
    point = _coerce_point(record.get("lat"), record.get("lon"))
    if point is None:
        nested = record.get("center")
        if isinstance(nested, dict):
            point = _coerce_point(nested.get("lat"), nested.get("lon"))
    if point is None:
        return None

    tags = record.get("tags")
    if not isinstance(tags, dict):
        tags = {}
    osm_id = record.get("id")
    venue_id = f"osm:{record.get('type', 'node')}:{osm_id}" if osm_id is not None else f"local:{index}"
    return Venue(
        id=venue_id,
        name=_resolve_name(tags, name_keys, placeholder),
        location=point,
        distance_m=distance(center, point),
        category=_osm_category(tags),
        cuisine=tags.get("cuisine") or None,
        address=_osm_address(tags),
        phone=tags.get("phone") or tags.get("contact:phone") or None,
        website=tags.get("website") or tags.get("contact:website") or None,
        opening_hours_text=tags.get("opening_hours") or None,
        source="osm",
    )


def _parse_periods(raw: Any) -> Tuple[OpeningPeriod, ...]:
    periods: list[OpeningPeriod] = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        opened = item.get("open")
        closed = item.get("close")
        if not isinstance(closed, dict):
            closed = {}
        if not isinstance(opened, dict) or opened.get("day") is None:
            continue
        open_min = parse_hhmm(str(opened.get("time") or "0000"))
        close_min = parse_hhmm(str(closed["time"])) if closed.get("time") else None
        periods.append(
            OpeningPeriod(
                open_day=int(opened["day"]),
                open_min=open_min or 0,
                close_day=int(closed["day"]) if closed.get("day") is not None else None,
                close_min=close_min,
            )
        )
    return tuple(periods)


def _normalize_commercial(
    record: Dict[str, Any],
    center: GeoPoint,
    index: int,
    name_keys: Sequence[str],
    placeholder: str,
) -> Optional[Venue]:
    geometry = record.get("geometry")
    location = geometry.get("location") if isinstance(geometry, dict) else None
    point = _coerce_point(location.get("lat"), location.get("lng")) if isinstance(location, dict) else None
    if point is None:
        nested = record.get("center")
        if isinstance(nested, dict):
            point = _coerce_point(nested.get("lat"), nested.get("lng", nested.get("lon")))
    if point is None:
        return None

    category = VenueCategory.RESTAURANT
    for raw_type in record.get("types") or []:
        if raw_type == "meal_takeaway":
            category = VenueCategory.FAST_FOOD
            break
        if raw_type == "night_club":
            category = VenueCategory.NIGHTCLUB
            break
        parsed = VenueCategory.parse(raw_type)
        if parsed:
            category = parsed
            break

    hours = record.get("opening_hours")
    if not isinstance(hours, dict):
        hours = {}
    weekday_text = hours.get("weekday_text")
    hours_text = "; ".join(weekday_text) if isinstance(weekday_text, list) and weekday_text else None
    rating = record.get("rating")
    price_level = record.get("price_level")
    return Venue(
        id=str(record.get("place_id") or f"local:{index}"),
        name=_resolve_name(record, name_keys, placeholder),
        location=point,
        distance_m=distance(center, point),
        category=category,
        address=record.get("vicinity") or record.get("formatted_address") or None,
        phone=record.get("formatted_phone_number") or None,
        website=record.get("website") or None,
        opening_hours_text=hours_text,
        opening_periods=_parse_periods(hours.get("periods")),
        rating=float(rating) if isinstance(rating, (int, float)) else None,
        price_level=int(price_level) if isinstance(price_level, int) else None,
        source="google",
    )


def _sniff(record: Dict[str, Any]) -> RawProviderRecord:
    """Last-resort dispatch for untagged dicts.

    `place_id` or nested `geometry` marks the commercial shape; anything else
    (direct lat/lon, a `center` sub-object, a `tags` map) is treated as OSM.
    """
    if "place_id" in record or "geometry" in record:
        return CommercialRecord(record)
    return OSMRecord(record)


def normalize_records(
    records: Iterable[Union[RawProviderRecord, Dict[str, Any]]],
    center: GeoPoint,
    *,
    placeholder: str = DEFAULT_PLACEHOLDER,
    drop_placeholder: bool = False,
    name_keys: Sequence[str] = DEFAULT_NAME_KEYS,
) -> List[Venue]:
    venues: list[Venue] = []
    dropped = 0
    for index, record in enumerate(records):
        if isinstance(record, dict):
            record = _sniff(record)
        if isinstance(record, CommercialRecord):
            commercial_keys = tuple(k for k in name_keys if k == "name") or ("name",)
            venue = _normalize_commercial(record.data, center, index, commercial_keys, placeholder)
        else:
            venue = _normalize_osm(record.data, center, index, name_keys, placeholder)

        if venue is None:
            dropped += 1
            continue
        if drop_placeholder and (not venue.name or venue.name == placeholder):
            dropped += 1
            continue
        venues.append(venue)

    if dropped:
        logger.debug("normalizer dropped {} records without coordinates or name", dropped)
    return venues
