from __future__ import annotations

import math
from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

from ..branches.model import Branch
from ..core.constants import EARTH_RADIUS_METERS


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    @property
    def is_valid(self) -> bool:
        try:
            lat = float(self.lat)
            lng = float(self.lng)
        except (TypeError, ValueError):
            return False
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


@dataclass(frozen=True)
class FenceResult:
    inside: bool
    distance_m: float
    observed: Coordinate

    @property
    def rounded_distance(self) -> int:
        """Display value only; the fence decision uses the exact distance."""
        if not math.isfinite(self.distance_m):
            return -1
        return int(round(self.distance_m))


def distance_meters(observed: Coordinate, reference: Coordinate) -> float:
    """Great-circle distance in meters (haversine, spherical Earth)."""
    lat1, lon1, lat2, lon2 = map(radians, [observed.lat, observed.lng, reference.lat, reference.lng])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = min(1.0, sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2)
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def check_fence(observed: Coordinate, branch: Branch) -> FenceResult:
    """Fails closed: invalid coordinates or radius are treated as outside."""
    reference = Coordinate(branch.lat, branch.lng)
    if not observed.is_valid or not reference.is_valid:
        return FenceResult(inside=False, distance_m=math.inf, observed=observed)

    distance = distance_meters(observed, reference)
    radius = branch.radius
    inside = isinstance(radius, (int, float)) and math.isfinite(radius) and radius >= 0 and distance <= radius
    return FenceResult(inside=inside, distance_m=distance, observed=observed)


def is_within_fence(observed: Coordinate, branch: Branch) -> bool:
    return check_fence(observed, branch).inside
