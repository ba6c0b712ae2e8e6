"""Geospatial helper functions."""

from __future__ import annotations

import math
import re
from typing import Optional

from ..models.domain import Location

EARTH_RADIUS_KM = 6371.0

_OUTWARD_AREA = re.compile(r"^[A-Z]+")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def location_distance_km(a: Location, b: Location) -> Optional[float]:
    """Straight-line distance between two locations, or None without coordinates."""

    if not (a.has_coordinates and b.has_coordinates):
        return None
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def postcode_proximity(postcode1: Optional[str], postcode2: Optional[str]) -> int:
    """Rough 0-100 closeness of two UK postcodes.

    Identical postcodes score 100, a shared outward code 75, a shared postal
    area (leading letters) 40 and anything else 10. Missing postcodes score 0.
    """

    if not postcode1 or not postcode2:
        return 0
    compact1 = postcode1.replace(" ", "").upper()
    compact2 = postcode2.replace(" ", "").upper()
    if compact1 == compact2:
        return 100

    outward1 = postcode1.strip().split(" ")[0].upper()
    outward2 = postcode2.strip().split(" ")[0].upper()
    if outward1 == outward2:
        return 75

    area1 = _OUTWARD_AREA.match(outward1)
    area2 = _OUTWARD_AREA.match(outward2)
    if area1 and area2 and area1.group(0) == area2.group(0):
        return 40
    return 10
