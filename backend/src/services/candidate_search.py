from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence, Union

from loguru import logger

from config import Configuration
from errors import NoCandidatesAfterFilter, ProviderUnavailable, geolocation_error_from_code
from models import CommercialRecord, GeoPoint, RawProviderRecord, SearchCenter, Venue, VenueCategory
from services.bbox_builder import build_details_request, build_nearby_request, overpass_request
from services.fetcher import MultiEndpointFetcher, overpass_elements, place_details_result, places_results
from services.filters import FilterOptions, filter_venues, sunday_weekday
from services.fixtures import fixture_venues
from services.geocoding import GeocodingResolver
from services.normalizer import normalize_records
from services.variants import VariantConfig
from utils import parse_hhmm


def resolve_center(
    cfg: Configuration,
    variant: VariantConfig,
    *,
    address: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    geolocation_error: Optional[int] = None,
    resolver: Optional[GeocodingResolver] = None,
) -> SearchCenter:
    """Resolve the search center for a variant.

    Order: fixed venue from the variant, client coordinates, typed address.
    A geolocation error code is raised as its typed error only when nothing
    else can supply a center.
    """
    if variant.fixed_center is not None:
        return variant.fixed_center

    if lat is not None and lng is not None:
        point = GeoPoint(float(lat), float(lng))
        label = (resolver or GeocodingResolver(cfg)).reverse(point)
        return SearchCenter(point=point, label=label or f"{point.lat:.4f},{point.lng:.4f}", fixed=False)

    if address and address.strip():
        geo = (resolver or GeocodingResolver(cfg)).resolve(address)
        return SearchCenter(point=geo.point, label=address.strip(), fixed=False, address=geo.formatted_address)

    if geolocation_error is not None:
        raise geolocation_error_from_code(geolocation_error)
    raise ValueError("An address or coordinates are required for this variant.")


def enrich_place_details(
    cfg: Configuration,
    records: Sequence[RawProviderRecord],
    fetcher: MultiEndpointFetcher,
) -> List[RawProviderRecord]:
    """Merge place details (weekly periods, phone, website) into nearby results.

    A record whose lookup fails is kept as it was, so the hours filter falls
    back to the text heuristic for it.
    """
    enriched: list[RawProviderRecord] = []
    merged = failed = 0
    for record in records:
        place_id = record.data.get("place_id") if isinstance(record, CommercialRecord) else None
        if not place_id:
            enriched.append(record)
            continue
        request = build_details_request(str(place_id), api_key=cfg.google_maps_api_key or "", language=cfg.lang_default)
        try:
            result = fetcher.fetch(cfg.google_details_endpoints, request, place_details_result)
        except ProviderUnavailable as exc:
            logger.warning("details for {} unavailable: {}", place_id, exc.detail)
            failed += 1
            enriched.append(record)
            continue
        enriched.append(CommercialRecord({**record.data, **result.records[0]}))
        merged += 1
    logger.info("place details merged={} failed={}", merged, failed)
    return enriched


def search_venues(
    cfg: Configuration,
    center: Union[SearchCenter, GeoPoint],
    radius_m: float,
    categories: Sequence[VenueCategory],
    *,
    provider: str = "osm",
    drop_unnamed: bool = False,
    with_details: bool = False,
    fetcher: Optional[MultiEndpointFetcher] = None,
) -> List[Venue]:
    point = center.point if isinstance(center, SearchCenter) else center
    fetcher = fetcher or MultiEndpointFetcher(cfg)

    if provider == "google":
        cfg.require_google()
        request = build_nearby_request(
            point, radius_m, categories, api_key=cfg.google_maps_api_key or "", language=cfg.lang_default
        )
        endpoints, extract = cfg.google_places_endpoints, places_results
    elif provider == "osm":
        request = overpass_request(
            point,
            radius_m,
            categories,
            timeout_s=int(cfg.provider_timeout),
            user_agent=cfg.user_agent,
        )
        endpoints, extract = cfg.overpass_endpoints, overpass_elements
    else:
        raise ValueError(f"unknown provider {provider!r}")

    try:
        result = fetcher.fetch(endpoints, request, extract)
    except ProviderUnavailable as exc:
        if not cfg.offline_fixtures:
            raise
        logger.warning("providers unavailable ({}); serving offline fixtures", exc.detail)
        return fixture_venues(point, categories)

    records = result.records
    if provider == "google" and with_details:
        records = enrich_place_details(cfg, records, fetcher)
    venues = normalize_records(records, point, drop_placeholder=drop_unnamed)
    logger.info(
        "search provider={} endpoint={} raw={} venues={} radius_m={:.0f}",
        provider,
        result.endpoint,
        len(result.records),
        len(venues),
        radius_m,
    )
    return venues


def search_candidates(
    cfg: Configuration,
    variant: VariantConfig,
    center: SearchCenter,
    *,
    people: Optional[int] = None,
    meal_time: Optional[str] = None,
    radius_m: Optional[float] = None,
    when: Optional[datetime] = None,
    fetcher: Optional[MultiEndpointFetcher] = None,
) -> List[Venue]:
    """Search, filter and trim the candidate list for one roulette round."""
    radius = radius_m or variant.radius_m or cfg.search_radius
    people = people if people is not None else variant.default_people
    target_minutes = parse_hhmm(meal_time) if meal_time else None
    if meal_time and target_minutes is None:
        raise ValueError(f"meal time must look like HH:MM, got {meal_time!r}")

    venues = search_venues(
        cfg,
        center,
        radius,
        variant.categories,
        provider=variant.provider,
        drop_unnamed=variant.drop_unnamed,
        with_details=target_minutes is not None,
        fetcher=fetcher,
    )

    options = FilterOptions(
        radius_m=radius,
        categories=variant.categories,
        exclusion_keywords=variant.exclusion_keywords or None,
        target_minutes=target_minutes,
        weekday=sunday_weekday(when or datetime.now()) if target_minutes is not None else None,
        people=people,
        buckets=variant.people_buckets,
        always_open_first=variant.always_open_first,
    )
    filtered = filter_venues(venues, options)
    if not filtered:
        raise NoCandidatesAfterFilter(len(venues), radius_m=radius, people=people)

    if not variant.always_open_first:
        filtered = sorted(filtered, key=lambda v: v.distance_m)
    limit = max(1, variant.max_results or cfg.max_results)
    logger.info("candidates variant={} found={} kept={}", variant.name, len(venues), min(limit, len(filtered)))
    return filtered[:limit]
