from __future__ import annotations

import argparse
import random
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from config import Configuration
from errors import RouletteError
from services.candidate_search import resolve_center, search_candidates
from services.filters import default_meal_time
from services.report import build_shortlist_report, build_venue_card, summary_line
from services.selection import SelectionEngine
from services.variants import VARIANTS, get_variant


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pick a random place to eat or drink nearby")
    parser.add_argument("--variant", default="daytime", choices=sorted(VARIANTS), help="Variant preset")
    parser.add_argument("--address", help="Address or landmark to search around")
    parser.add_argument("--lat", type=float, help="Latitude of the search center")
    parser.add_argument("--lng", type=float, help="Longitude of the search center")
    parser.add_argument("--people", type=int, help="Party size")
    parser.add_argument("--radius", type=float, help="Search radius in meters")
    parser.add_argument("--time", dest="meal_time", help="Target meal time as HH:MM (default: suggested time)")
    parser.add_argument("--any-time", action="store_true", help="Skip the opening-hours filter")
    parser.add_argument("--provider", choices=["osm", "google"], help="Override the variant's provider")
    parser.add_argument("--offline", action="store_true", help="Fall back to built-in venues if providers fail")
    parser.add_argument("--seed", type=int, help="Seed for a reproducible draw")
    parser.add_argument("--show-previews", action="store_true", help="Print every roulette preview")
    parser.add_argument("--list", action="store_true", help="Print the candidate shortlist before spinning")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    cfg = Configuration.from_env({"offline_fixtures": True if args.offline else None})
    variant = get_variant(args.variant)
    if args.provider:
        variant = variant.model_copy(update={"provider": args.provider})
    meal_time = None if args.any_time else (args.meal_time or default_meal_time())

    try:
        center = resolve_center(cfg, variant, address=args.address, lat=args.lat, lng=args.lng)
        venues = search_candidates(
            cfg,
            variant,
            center,
            people=args.people,
            meal_time=meal_time,
            radius_m=args.radius,
        )
    except RouletteError as exc:
        print(exc.message, file=sys.stderr)
        logger.debug("search failed: {}", exc.detail)
        return 1
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if args.list:
        print(build_shortlist_report(venues, center, args.radius or variant.radius_m))
        print()

    rng = random.Random(args.seed) if args.seed is not None else None
    engine = SelectionEngine.from_timing(variant.animation_ms, variant.tick_ms, rng=rng)
    tick = variant.tick_ms / 1000.0
    for venue in engine.start(venues):
        if args.show_previews:
            print(f"  {venue.name} ({summary_line(venue)})")
            time.sleep(tick)

    final = engine.final
    if final is None:
        return 1
    people = args.people if args.people is not None else variant.default_people
    print(build_venue_card(final, center, people, meal_time))
    return 0


if __name__ == "__main__":
    sys.exit(main())
