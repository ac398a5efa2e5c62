"""Utility helpers for the restaurant roulette backend."""

from __future__ import annotations

import math
from typing import Optional

from models import GeoPoint

EARTH_RADIUS_M = 6371000.0


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.lat, a.lng, b.lat, b.lng)


def parse_hhmm(value: str) -> Optional[int]:
    """'18:30' or '1830' -> minutes after midnight."""
    if not value:
        return None
    text = value.strip()
    try:
        if ":" in text:
            hour, minute = text.split(":", 1)
        elif len(text) == 4 and text.isdigit():
            hour, minute = text[:2], text[2:]
        else:
            return None
        h, m = int(hour), int(minute)
    except ValueError:
        return None
    if not (0 <= m < 60) or not (0 <= h < 24 or (h == 24 and m == 0)):
        return None
    return h * 60 + m
