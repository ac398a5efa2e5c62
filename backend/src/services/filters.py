from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from models import OpeningPeriod, PeopleBucket, PeopleBucketTable, Venue, VenueCategory


DEFAULT_EXCLUSION_KEYWORDS: Tuple[str, ...] = (
    "飲料",
    "手搖",
    "茶飲",
    "奶茶",
    "果汁",
    "bubble tea",
    "bubble_tea",
    "boba",
    "juice",
)


@dataclass(frozen=True)
class OpeningHoursRules:
    always_open: Tuple[str, ...] = ("24/7", "24小時", "24 小時", "24h", "24 hours", "全天")
    closed: Tuple[str, ...] = ("closed", "暫停營業", "歇業", "休息中", "永久停業")
    typical_window: Tuple[int, int] = (17 * 60, 21 * 60)


DEFAULT_HOURS_RULES = OpeningHoursRules()


@dataclass
class FilterOptions:
    radius_m: Optional[float] = None
    categories: Optional[Sequence[VenueCategory]] = None
    exclusion_keywords: Optional[Sequence[str]] = None
    target_minutes: Optional[int] = None
    weekday: Optional[int] = None  # 0 = Sunday
    hours_rules: OpeningHoursRules = field(default_factory=OpeningHoursRules)
    people: Optional[int] = None
    buckets: Optional[PeopleBucketTable] = None
    always_open_first: bool = False


def within_radius(venues: Iterable[Venue], radius_m: float) -> List[Venue]:
    return [v for v in venues if v.distance_m <= radius_m]


def in_categories(venues: Iterable[Venue], categories: Optional[Iterable[VenueCategory]]) -> List[Venue]:
    allowed = {VenueCategory(c) for c in (categories or [])}
    if not allowed:
        return list(venues)
    return [v for v in venues if v.category in allowed]


def exclude_keywords(venues: Iterable[Venue], vocabulary: Optional[Iterable[str]]) -> List[Venue]:
    terms = [t.lower() for t in (vocabulary or []) if t]
    if not terms:
        return list(venues)
    result: list[Venue] = []
    for venue in venues:
        text = f"{venue.name} {venue.cuisine or ''}".lower()
        if any(term in text for term in terms):
            continue
        result.append(venue)
    return result


def is_probably_open(
    hours_text: Optional[str],
    target_minutes: Optional[int],
    rules: OpeningHoursRules = DEFAULT_HOURS_RULES,
) -> bool:
    """Coarse opening-hours heuristic. Missing data never excludes a venue."""
    if not hours_text:
        return True
    text = hours_text.lower()
    if any(marker.lower() in text for marker in rules.always_open):
        return True
    # closed markers count only as the whole text, not inside a weekly schedule
    if text.strip().strip(".。!！ ") in {marker.lower() for marker in rules.closed}:
        return False
    start, end = rules.typical_window
    if target_minutes is not None and start <= target_minutes <= end:
        return True
    return True


def is_open_in_periods(periods: Sequence[OpeningPeriod], weekday: int, minutes: int) -> bool:
    """Check structured weekly periods (day 0 = Sunday, times in minutes)."""
    if not periods:
        return True
    for period in periods:
        if period.open_day != weekday:
            continue
        close = period.close_min if period.close_min is not None else 24 * 60
        if close < period.open_min:
            return minutes >= period.open_min or minutes <= close
        return period.open_min <= minutes <= close
    return False


def open_at(
    venues: Iterable[Venue],
    target_minutes: Optional[int],
    rules: OpeningHoursRules = DEFAULT_HOURS_RULES,
    weekday: Optional[int] = None,
) -> List[Venue]:
    result: list[Venue] = []
    for venue in venues:
        if venue.opening_periods and weekday is not None and target_minutes is not None:
            keep = is_open_in_periods(venue.opening_periods, weekday, target_minutes)
        else:
            keep = is_probably_open(venue.opening_hours_text, target_minutes, rules)
        if keep:
            result.append(venue)
    return result


def bucket_for(people: Optional[int], table: PeopleBucketTable) -> PeopleBucket:
    if people is not None:
        for bucket in table.buckets:
            if bucket.contains(people):
                return bucket
    return table.default_bucket()


def prefer_bucket(venues: Sequence[Venue], bucket: PeopleBucket) -> List[Venue]:
    preferred = set(bucket.preferred_types)
    if not preferred:
        return list(venues)
    matched = [v for v in venues if v.category in preferred]
    # A preference never empties the list on its own.
    return matched or list(venues)


def dedupe_by_name(venues: Iterable[Venue]) -> List[Venue]:
    seen: set[str] = set()
    out: list[Venue] = []
    for venue in venues:
        if venue.name in seen:
            continue
        seen.add(venue.name)
        out.append(venue)
    return out


def _signals_always_open(venue: Venue, rules: OpeningHoursRules = DEFAULT_HOURS_RULES) -> bool:
    text = " ".join([venue.opening_hours_text or "", *venue.tags]).lower()
    return any(marker.lower() in text for marker in rules.always_open)


def sort_always_open_first(venues: Iterable[Venue]) -> List[Venue]:
    return sorted(venues, key=lambda v: (not _signals_always_open(v), v.distance_m))


def filter_venues(venues: Iterable[Venue], options: FilterOptions) -> List[Venue]:
    result = list(venues)
    if options.radius_m is not None:
        result = within_radius(result, options.radius_m)
    if options.categories:
        result = in_categories(result, options.categories)
    if options.exclusion_keywords:
        result = exclude_keywords(result, options.exclusion_keywords)
    if options.target_minutes is not None:
        result = open_at(result, options.target_minutes, options.hours_rules, options.weekday)
    if options.buckets is not None and options.buckets.buckets:
        result = prefer_bucket(result, bucket_for(options.people, options.buckets))
    result = dedupe_by_name(result)
    if options.always_open_first:
        result = sort_always_open_first(result)
    return result


def default_meal_time(now: Optional[datetime] = None) -> str:
    """18:00, or the next hour (capped at 21:00) once it is past 17:00."""
    now = now or datetime.now()
    if now.hour >= 17:
        return f"{min(now.hour + 1, 21):02d}:00"
    return "18:00"


def sunday_weekday(moment: datetime) -> int:
    """Weekday numbered from Sunday = 0, as opening periods use."""
    return (moment.weekday() + 1) % 7
