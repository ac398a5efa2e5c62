"""Known venues around Taipei Main Station.

Only used when `offline_fixtures` is enabled and every provider endpoint has
failed; never a silent default.
"""

from __future__ import annotations

from typing import List, Sequence

from models import GeoPoint, Venue, VenueCategory
from utils import distance

R = VenueCategory

# name, lat, lng, category, cuisine, address, hours, tags
_LATE_NIGHT = [
    ("麥當勞台北車站店", 25.0479, 121.5170, R.FAST_FOOD, "burger", "台北市中正區北平西路3號1樓", "24小時營業", ("24小時", "速食")),
    ("Sukiya 牛丼台北車站店", 25.0475, 121.5168, R.FAST_FOOD, "japanese", "台北市中正區館前路8號", "24小時營業", ("24小時", "日式")),
    ("吉野家台北車站店", 25.0481, 121.5172, R.FAST_FOOD, "japanese", "台北市中正區館前路6號", "24小時營業", ("24小時", "日式")),
    ("KFC 台北車站店", 25.0476, 121.5165, R.FAST_FOOD, "american", "台北市中正區北平西路3號", "06:00-02:00", ("深夜營業", "炸雞")),
    ("7-Eleven 思源門市", 25.0468, 121.5156, R.CONVENIENCE_STORE, "convenience", "台北市中正區重慶南路一段121號", "24小時營業", ("24小時", "便利商店")),
    ("FamilyMart 台北車站門市", 25.0482, 121.5174, R.CONVENIENCE_STORE, "convenience", "台北市中正區北平西路3號", "24小時營業", ("24小時", "便利商店")),
    ("海底撈火鍋台北西門店", 25.0420, 121.5087, R.RESTAURANT, "hot_pot", "台北市萬華區中華路一段114號", "週日至週四 11:00-04:00，週五至週六 11:00-05:00", ("深夜營業", "火鍋")),
    ("老山東牛肉麵", 25.0455, 121.5140, R.RESTAURANT, "noodles", "台北市中正區金山南路一段121號", "11:00-02:00", ("深夜營業", "牛肉麵")),
    ("八方雲集台北車站店", 25.0471, 121.5163, R.FAST_FOOD, "taiwanese", "台北市中正區館前路12號", "24小時營業", ("24小時", "餃子")),
    ("一蘭拉麵台北車站店", 25.0473, 121.5167, R.RESTAURANT, "japanese", "台北市中正區館前路14號", "24小時營業", ("24小時", "拉麵")),
]

_BARS = [
    ("金色三麥台北車站店", 25.0478, 121.5171, R.BAR, "beer", "台北市中正區北平西路3號2樓", "週一至週日 11:30-01:00", ()),
    ("Brass Monkey 銅猴子酒吧", 25.0425, 121.5148, R.BAR, "cocktails", "台北市中正區臨沂街27巷1號", "週二至週日 19:00-02:00", ()),
    ("Draft Land 精釀啤酒吧", 25.0441, 121.5147, R.BAR, "beer", "台北市中正區八德路一段1號", "週一至週日 17:00-01:00", ()),
]


def _build(rows: Sequence[tuple], center: GeoPoint) -> List[Venue]:
    venues: list[Venue] = []
    for idx, (name, lat, lng, category, cuisine, address, hours, tags) in enumerate(rows):
        point = GeoPoint(lat, lng)
        venues.append(
            Venue(
                id=f"fixture:{idx}",
                name=name,
                location=point,
                distance_m=distance(center, point),
                category=category,
                cuisine=cuisine,
                address=address,
                opening_hours_text=hours,
                source="fixture",
                tags=tuple(tags),
            )
        )
    return venues


def fixture_venues(center: GeoPoint, categories: Sequence[VenueCategory] = ()) -> List[Venue]:
    """Fixture venues with distances from `center`, narrowed to `categories` when given."""
    venues = _build(_LATE_NIGHT + _BARS, center)
    wanted = set(categories)
    if wanted:
        venues = [v for v in venues if v.category in wanted]
    return venues
