from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models import GeoPoint, PeopleBucket, PeopleBucketTable, SearchCenter, VenueCategory
from services.filters import DEFAULT_EXCLUSION_KEYWORDS

R = VenueCategory

MOZILLA_COMMUNITY_SPACE = SearchCenter(
    point=GeoPoint(25.0465, 121.5155),
    label="Mozilla Community Space Taipei",
    fixed=True,
    address="台北市中正區重慶南路一段99號1105室",
)

TAIPEI_MAIN_STATION = GeoPoint(25.0478, 121.5168)

NIGHTLIFE_BUCKETS = PeopleBucketTable(
    buckets=[
        PeopleBucket("small", 1, 3, (R.BAR, R.PUB, R.CAFE, R.RESTAURANT)),
        PeopleBucket("medium", 4, 8, (R.RESTAURANT, R.BAR, R.PUB)),
        PeopleBucket("large", 9, 30, (R.RESTAURANT, R.PUB)),
    ],
    default="medium",
)

OFFICE_BUCKETS = PeopleBucketTable(
    buckets=[
        PeopleBucket("small", 1, 5, (R.CAFE, R.FAST_FOOD, R.RESTAURANT)),
        PeopleBucket("medium", 6, 15, (R.RESTAURANT, R.FOOD_COURT)),
        PeopleBucket("large", 16, 50, (R.RESTAURANT, R.FOOD_COURT)),
    ],
    default="small",
)


class VariantConfig(BaseModel):
    name: str
    label: str
    categories: List[VenueCategory]
    radius_m: float = Field(default=2000.0, gt=0)
    fixed_center: Optional[SearchCenter] = None
    people_buckets: Optional[PeopleBucketTable] = None
    default_people: Optional[int] = None
    exclusion_keywords: List[str] = Field(default_factory=list)
    drop_unnamed: bool = False
    always_open_first: bool = False
    provider: str = "osm"
    max_results: Optional[int] = None  # falls back to Configuration.max_results
    animation_ms: int = 2000
    tick_ms: int = 100

    @property
    def ticks(self) -> int:
        return self.animation_ms // self.tick_ms if self.tick_ms > 0 else 0


VARIANTS: Dict[str, VariantConfig] = {
    v.name: v
    for v in (
        VariantConfig(
            name="daytime",
            label="餐廳輪盤",
            categories=[R.RESTAURANT, R.FAST_FOOD, R.CAFE, R.FOOD_COURT],
            radius_m=2000,
            exclusion_keywords=list(DEFAULT_EXCLUSION_KEYWORDS),
        ),
        VariantConfig(
            name="nightlife",
            label="續攤輪盤",
            categories=[R.RESTAURANT, R.BAR, R.PUB, R.CAFE, R.FAST_FOOD],
            radius_m=1200,
            fixed_center=MOZILLA_COMMUNITY_SPACE,
            people_buckets=NIGHTLIFE_BUCKETS,
            default_people=5,
            exclusion_keywords=list(DEFAULT_EXCLUSION_KEYWORDS),
            drop_unnamed=True,
            always_open_first=True,
            max_results=25,
            animation_ms=1500,
        ),
        VariantConfig(
            name="beer",
            label="找間好酒吧",
            categories=[R.BAR, R.PUB, R.BREWERY],
            radius_m=1200,
            fixed_center=MOZILLA_COMMUNITY_SPACE,
            default_people=4,
            drop_unnamed=True,
            max_results=25,
            animation_ms=1500,
        ),
        VariantConfig(
            name="office",
            label="辦公室午餐輪盤",
            categories=[R.RESTAURANT, R.FAST_FOOD, R.CAFE, R.FOOD_COURT],
            radius_m=2000,
            fixed_center=MOZILLA_COMMUNITY_SPACE,
            people_buckets=OFFICE_BUCKETS,
            default_people=1,
            exclusion_keywords=list(DEFAULT_EXCLUSION_KEYWORDS),
            drop_unnamed=True,
        ),
        VariantConfig(
            name="google",
            label="餐廳輪盤 (Google)",
            categories=[R.RESTAURANT, R.FAST_FOOD, R.CAFE],
            radius_m=2000,
            exclusion_keywords=list(DEFAULT_EXCLUSION_KEYWORDS),
            provider="google",
        ),
    )
}


def get_variant(name: str) -> VariantConfig:
    try:
        return VARIANTS[name]
    except KeyError:
        raise KeyError(f"unknown variant {name!r}; known: {', '.join(sorted(VARIANTS))}") from None
