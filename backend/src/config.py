from __future__ import annotations

import os
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from utils import mask_secret


class Configuration(BaseModel):
    # Nominatim (geocoding)
    nominatim_endpoints: List[str] = Field(default_factory=lambda: ["https://nominatim.openstreetmap.org"])
    geocode_timeout: float = Field(default=15.0)
    country_code: str = Field(default="tw")
    country_name: str = Field(default="台灣")
    country_markers: List[str] = Field(default_factory=lambda: ["台灣", "臺灣", "Taiwan"])

    # Overpass (open geodata POI)
    overpass_endpoints: List[str] = Field(
        default_factory=lambda: [
            "https://overpass-api.de/api/interpreter",
            "https://z.overpass-api.de/api/interpreter",
            "https://lz4.overpass-api.de/api/interpreter",
        ]
    )

    # Google Places (commercial POI)
    google_maps_api_key: Optional[str] = Field(default=None)
    google_places_endpoints: List[str] = Field(
        default_factory=lambda: ["https://maps.googleapis.com/maps/api/place/nearbysearch/json"]
    )
    google_details_endpoints: List[str] = Field(
        default_factory=lambda: ["https://maps.googleapis.com/maps/api/place/details/json"]
    )

    # Fetching
    provider_timeout: float = Field(default=25.0)
    endpoint_delay: float = Field(default=0.5)
    user_agent: str = Field(default="RestaurantRoulette/1.0")

    # Defaults
    search_radius: float = Field(default=2000.0)
    max_results: int = Field(default=20)
    lang_default: str = Field(default="zh-TW")
    offline_fixtures: bool = Field(default=False)
    session_ttl: int = Field(default=3600)

    @field_validator(
        "nominatim_endpoints",
        "overpass_endpoints",
        "google_places_endpoints",
        "google_details_endpoints",
        "country_markers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "nominatim_endpoints": os.getenv("NOMINATIM_ENDPOINTS"),
            "geocode_timeout": os.getenv("GEOCODE_TIMEOUT"),
            "country_code": os.getenv("COUNTRY_CODE"),
            "country_name": os.getenv("COUNTRY_NAME"),
            "country_markers": os.getenv("COUNTRY_MARKERS"),
            "overpass_endpoints": os.getenv("OVERPASS_ENDPOINTS"),
            "google_maps_api_key": os.getenv("GOOGLE_MAPS_API_KEY"),
            "google_places_endpoints": os.getenv("GOOGLE_PLACES_ENDPOINTS"),
            "google_details_endpoints": os.getenv("GOOGLE_DETAILS_ENDPOINTS"),
            "provider_timeout": os.getenv("PROVIDER_TIMEOUT"),
            "endpoint_delay": os.getenv("ENDPOINT_DELAY"),
            "user_agent": os.getenv("USER_AGENT"),
            "search_radius": os.getenv("SEARCH_RADIUS"),
            "max_results": os.getenv("MAX_RESULTS"),
            "lang_default": os.getenv("LANG_DEFAULT"),
            "offline_fixtures": os.getenv("OFFLINE_FIXTURES"),
            "session_ttl": os.getenv("SESSION_TTL"),
        }

        bool_fields = {"offline_fixtures"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def require_google(self) -> None:
        if not self.google_maps_api_key:
            raise ValueError("GOOGLE_MAPS_API_KEY is required for the google provider")

    def log_summary(self) -> str:
        return (
            "nominatim=%d overpass=%d google_key=%s timeout=%s delay=%s radius=%s country=%s offline_fixtures=%s"
            % (
                len(self.nominatim_endpoints),
                len(self.overpass_endpoints),
                mask_secret(self.google_maps_api_key),
                self.provider_timeout,
                self.endpoint_delay,
                self.search_radius,
                self.country_code,
                self.offline_fixtures,
            )
        )
