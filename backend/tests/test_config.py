from __future__ import annotations

import pytest

from config import Configuration
from services.fixtures import fixture_venues
from services.variants import TAIPEI_MAIN_STATION, VARIANTS, get_variant


def test_from_env_parses_lists_and_flags(monkeypatch) -> None:
    monkeypatch.setenv("OVERPASS_ENDPOINTS", "https://one.example/api, https://two.example/api")
    monkeypatch.setenv("OFFLINE_FIXTURES", "yes")
    monkeypatch.setenv("ENDPOINT_DELAY", "0")
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "abcdefghijklmnop")

    cfg = Configuration.from_env({"max_results": 5, "country_code": None})

    assert cfg.overpass_endpoints == ["https://one.example/api", "https://two.example/api"]
    assert cfg.offline_fixtures is True
    assert cfg.endpoint_delay == 0
    assert cfg.max_results == 5
    assert cfg.country_code == "tw"
    assert "abcdefghijklmnop" not in cfg.log_summary()


def test_require_google(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    with pytest.raises(ValueError):
        Configuration.from_env().require_google()
    Configuration(google_maps_api_key="k").require_google()


def test_variant_presets() -> None:
    assert set(VARIANTS) == {"daytime", "nightlife", "beer", "office", "google"}
    nightlife = get_variant("nightlife")
    assert nightlife.fixed_center is not None
    assert nightlife.ticks == 15
    assert nightlife.always_open_first
    assert get_variant("daytime").fixed_center is None
    assert get_variant("google").provider == "google"


def test_unknown_variant_lists_known_names() -> None:
    with pytest.raises(KeyError) as info:
        get_variant("brunch")
    assert "nightlife" in info.value.args[0]


def test_fixture_ids_unique_and_distances_from_center() -> None:
    venues = fixture_venues(TAIPEI_MAIN_STATION)
    assert len({v.id for v in venues}) == len(venues)
    assert all(v.distance_m < 2000 for v in venues)
