from models import GeoPoint, SearchCenter, Venue, VenueCategory
from services.report import (
    build_shortlist_report,
    build_venue_card,
    category_label,
    cuisine_label,
    format_distance,
    maps_embed_url,
    maps_search_url,
)


def _venue(**kwargs):
    base = dict(id="osm:node:1", name="老山東牛肉麵", location=GeoPoint(25.0455, 121.514), distance_m=1234.0)
    base.update(kwargs)
    return Venue(**base)


def test_labels():
    assert category_label(VenueCategory.PUB) == "酒館"
    assert cuisine_label("noodles") == "麵食"
    assert cuisine_label("japanese;ramen") == "日式料理"
    assert cuisine_label("ethiopian") == "ethiopian"
    assert cuisine_label(None) == ""
    assert format_distance(1234) == "1.2 km"


def test_maps_urls():
    url = maps_search_url(_venue(name="A B", id="ChIJ1", source="google"))
    assert url == "https://www.google.com/maps/search/?api=1&query=A%20B&query_place_id=ChIJ1"
    assert "query_place_id" not in maps_search_url(_venue())
    assert "q=25.0455,121.514" in maps_embed_url(_venue())
    assert maps_embed_url(_venue()).endswith("output=embed")


def test_build_venue_card_basic():
    center = SearchCenter(point=GeoPoint(25.0465, 121.5155), label="Mozilla Community Space Taipei", fixed=True)
    md = build_venue_card(_venue(cuisine="noodles", phone="02-1234", opening_hours_text="11:00-02:00"), center, people=5)
    assert md.startswith("## 老山東牛肉麵")
    assert "距離 Mozilla Community Space Taipei 1.2 km" in md
    assert "適合 5 人" in md
    assert "類型：麵食" in md
    assert "電話：02-1234" in md
    assert "營業時間：11:00-02:00" in md
    assert "地址" not in md


def test_build_shortlist_report_truncates():
    venues = [_venue(id=f"v{i}", name=f"店{i}", distance_m=100.0 * i) for i in range(12)]
    md = build_shortlist_report(venues, radius_m=2000, limit=10)
    assert "候選數量：12" in md
    assert "1. **店0**" in md
    assert "店11" not in md
    assert "另外 2 間" in md
