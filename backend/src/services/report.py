from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import quote, urlencode

from models import SearchCenter, Venue, VenueCategory

CATEGORY_LABELS: Dict[VenueCategory, str] = {
    VenueCategory.RESTAURANT: "餐廳",
    VenueCategory.FAST_FOOD: "速食",
    VenueCategory.CAFE: "咖啡廳",
    VenueCategory.FOOD_COURT: "美食廣場",
    VenueCategory.BAR: "酒吧",
    VenueCategory.PUB: "酒館",
    VenueCategory.BREWERY: "精釀酒廠",
    VenueCategory.NIGHTCLUB: "夜店",
    VenueCategory.CONVENIENCE_STORE: "便利商店",
}

CUISINE_LABELS: Dict[str, str] = {
    "hot_pot": "火鍋",
    "taiwanese": "台式料理",
    "chinese": "中式料理",
    "japanese": "日式料理",
    "korean": "韓式料理",
    "italian": "義式料理",
    "american": "美式料理",
    "thai": "泰式料理",
    "vietnamese": "越式料理",
    "indian": "印度料理",
    "western": "西式料理",
    "seafood": "海鮮料理",
    "bbq": "燒烤",
    "noodles": "麵食",
    "pizza": "披薩",
    "burger": "速食漢堡",
    "coffee": "咖啡輕食",
    "dessert": "甜點",
    "various": "多元料理",
    "asian": "亞洲料理",
    "international": "國際料理",
    "beer": "啤酒",
    "cocktails": "調酒",
    "wine": "紅酒",
    "convenience": "便利商店",
}

PRICE_LEVELS = {0: "💰", 1: "💰", 2: "💰💰", 3: "💰💰💰", 4: "💰💰💰💰"}


def category_label(category: VenueCategory) -> str:
    return CATEGORY_LABELS.get(category, "用餐地點")


def cuisine_label(cuisine: Optional[str]) -> str:
    """Translate an OSM cuisine value; unknown values pass through, multi-values use the first."""
    if not cuisine:
        return ""
    first = cuisine.split(";")[0].strip().lower()
    return CUISINE_LABELS.get(first, cuisine)


def format_distance(distance_m: float) -> str:
    return f"{distance_m / 1000.0:.1f} km"


def price_label(price_level: Optional[int]) -> str:
    if price_level is None:
        return ""
    return PRICE_LEVELS.get(price_level, "")


def maps_search_url(venue: Venue) -> str:
    params = {"api": "1", "query": venue.name}
    if venue.source == "google" and not venue.id.startswith("local:"):
        params["query_place_id"] = venue.id
    return "https://www.google.com/maps/search/?" + urlencode(params, quote_via=quote)


def maps_embed_url(venue: Venue, zoom: int = 17, lang: str = "zh-TW") -> str:
    loc = venue.location
    return f"https://maps.google.com/maps?hl={lang}&q={loc.lat},{loc.lng}&z={zoom}&ie=UTF8&output=embed"


def summary_line(venue: Venue) -> str:
    """One-line preview text shown while the roulette spins."""
    parts = [category_label(venue.category), format_distance(venue.distance_m)]
    cuisine = cuisine_label(venue.cuisine)
    if cuisine:
        parts.append(cuisine)
    return " • ".join(parts)


def build_venue_card(
    venue: Venue,
    center: Optional[SearchCenter] = None,
    people: Optional[int] = None,
    meal_time: Optional[str] = None,
) -> str:
    origin = center.label if center and center.label else "搜尋中心"
    lines = [
        f"## {venue.name}",
        "",
        f"- 類別：{category_label(venue.category)}",
        f"- 距離 {origin} {format_distance(venue.distance_m)}",
    ]
    if people:
        lines.append(f"- 適合 {people} 人")
    if venue.cuisine:
        lines.append(f"- 類型：{cuisine_label(venue.cuisine)}")
    if venue.rating is not None or venue.price_level is not None:
        rating = f"⭐ {venue.rating:.1f}" if venue.rating is not None else ""
        lines.append(f"- 評價：{rating} {price_label(venue.price_level)}".rstrip())
    if meal_time:
        lines.append(f"- 🕒 選擇時間：{meal_time}")
    if venue.opening_hours_text:
        lines.append(f"- 營業時間：{venue.opening_hours_text}")
    if venue.address:
        lines.append(f"- 地址：{venue.address}")
    if venue.phone:
        lines.append(f"- 電話：{venue.phone}")
    if venue.website:
        lines.append(f"- 網站：{venue.website}")
    lines.append(f"- [在 Google Maps 查看]({maps_search_url(venue)})")
    return "\n".join(lines)


def build_shortlist_report(
    venues: List[Venue],
    center: Optional[SearchCenter] = None,
    radius_m: Optional[float] = None,
    limit: int = 10,
) -> str:
    header = ["## 候選地點", ""]
    if center is not None:
        header.append(f"- 搜尋中心：{center.label or f'{center.point.lat:.4f},{center.point.lng:.4f}'}")
    if radius_m:
        header.append(f"- 搜尋半徑：{format_distance(radius_m)}")
    header.append(f"- 候選數量：{len(venues)}")
    header.append("")

    lines = header
    for idx, venue in enumerate(venues[:limit], start=1):
        lines.append(f"{idx}. **{venue.name}** ({summary_line(venue)})")
    if len(venues) > limit:
        lines.append(f"... 以及另外 {len(venues) - limit} 間")
    return "\n".join(lines)
