"""Address -> coordinate resolution over Nominatim-compatible endpoints.

Lookup order:
  1. every endpoint, every query variant, restricted to the configured country
  2. one broader query per endpoint without the country restriction, preferring
     results whose display name carries a country marker
  3. AddressNotFound
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from loguru import logger

from config import Configuration
from errors import AddressNotFound
from models import GeoPoint, GeocodeResult
from services.bbox_builder import ProviderRequest
from services.fetcher import MultiEndpointFetcher, SoftFailure, nominatim_results

ADMIN_SUFFIX_PATTERNS: Sequence[re.Pattern[str]] = (
    re.compile(r"\s+(county|city|district|township|village)\.?$", re.I),
    re.compile(r"(?<=[一-鿿])[縣市區鄉鎮里]$"),
)


def strip_admin_suffixes(text: str) -> str:
    """Drop trailing administrative particles from each comma-separated part."""
    cleaned: list[str] = []
    for part in (p.strip() for p in text.split(",")):
        value = part
        for pattern in ADMIN_SUFFIX_PATTERNS:
            value = pattern.sub("", value)
        if value:
            cleaned.append(value)
    return ", ".join(cleaned)


def query_variants(text: str, country_name: Optional[str] = None) -> List[str]:
    raw = text.strip()
    if not raw:
        return []
    variants = [raw]
    if country_name and country_name not in raw:
        variants.append(f"{raw} {country_name}")
    variants.append(strip_admin_suffixes(raw))
    return [v for v in dict.fromkeys(variants) if v]


def _to_result(item: dict, query: str, endpoint: str) -> Optional[GeocodeResult]:
    try:
        point = GeoPoint(float(item["lat"]), float(item["lon"]))
    except (KeyError, TypeError, ValueError):
        return None
    return GeocodeResult(
        point=point,
        formatted_address=str(item.get("display_name") or query),
        query=query,
        endpoint=endpoint,
    )


class GeocodingResolver:
    def __init__(self, cfg: Configuration, fetcher: Optional[MultiEndpointFetcher] = None) -> None:
        self.cfg = cfg
        self.fetcher = fetcher or MultiEndpointFetcher(cfg)
        self.endpoints = [e.rstrip("/") for e in cfg.nominatim_endpoints]

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.cfg.user_agent, "Accept-Language": self.cfg.lang_default}

    def _search(self, endpoint: str, query: str, *, restrict: bool, limit: int = 1) -> List[dict]:
        params = {"q": query, "format": "jsonv2", "limit": limit}
        if restrict and self.cfg.country_code:
            params["countrycodes"] = self.cfg.country_code
        request = ProviderRequest(method="GET", params=params, headers=self._headers())
        try:
            payload = self.fetcher.attempt(f"{endpoint}/search", request, timeout=self.cfg.geocode_timeout)
            return nominatim_results(payload)
        except SoftFailure as exc:
            logger.warning("geocode {} via {} failed: {}", query, endpoint, exc)
            return []

    def _pick_by_country(self, results: List[dict]) -> dict:
        markers = self.cfg.country_markers
        for item in results:
            name = str(item.get("display_name") or "")
            if any(marker in name for marker in markers):
                return item
        return results[0]

    def resolve(self, address: str) -> GeocodeResult:
        variants = query_variants(address, self.cfg.country_name)
        if not variants:
            raise AddressNotFound(address)

        for endpoint in self.endpoints:
            for query in variants:
                results = self._search(endpoint, query, restrict=True)
                for item in results:
                    result = _to_result(item, query, endpoint)
                    if result:
                        logger.info("geocoded {!r} via {} ({})", address, endpoint, query)
                        return result

        raw = variants[0]
        for endpoint in self.endpoints:
            results = self._search(endpoint, raw, restrict=False, limit=5)
            if not results:
                continue
            result = _to_result(self._pick_by_country(results), raw, endpoint)
            if result:
                logger.info("geocoded {!r} via broad query on {}", address, endpoint)
                return result

        raise AddressNotFound(address)

    def reverse(self, point: GeoPoint) -> Optional[str]:
        params = {"lat": point.lat, "lon": point.lng, "format": "jsonv2"}
        request = ProviderRequest(method="GET", params=params, headers=self._headers())
        for endpoint in self.endpoints:
            try:
                payload = self.fetcher.attempt(f"{endpoint}/reverse", request, timeout=self.cfg.geocode_timeout)
            except SoftFailure as exc:
                logger.warning("reverse geocode via {} failed: {}", endpoint, exc)
                continue
            if isinstance(payload, dict) and payload.get("display_name"):
                return str(payload["display_name"])
        return None


def resolve_address(cfg: Configuration, text: str, fetcher: Optional[MultiEndpointFetcher] = None) -> GeocodeResult:
    return GeocodingResolver(cfg, fetcher).resolve(text)
