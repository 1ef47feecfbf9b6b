"""
Cadence CRM - Revenue Radar geo helpers

Pure functions, no I/O:
- miles <-> meters
- haversine distance
- seeded RNG (Park-Miller LCG) for reproducible candidate lattices
- uniform-by-area sampling inside a disk
- jittered circle polygons for map overlays
"""

import math
from typing import Callable, List, Tuple

METERS_PER_MILE = 1609.344
EARTH_RADIUS_M = 6371000

LCG_MODULUS = 2147483647
LCG_MULTIPLIER = 16807


def miles_to_meters(miles: float) -> float:
    return miles * METERS_PER_MILE


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def distance_between(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters (haversine)."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, a)))


def meters_per_degree(lat: float) -> Tuple[float, float]:
    """(meters per degree of latitude, meters per degree of longitude) at lat."""
    lat_rad = math.radians(lat)
    m_lat = 111132.92 - 559.82 * math.cos(2 * lat_rad)
    m_lng = 111412.84 * math.cos(lat_rad)
    return m_lat, m_lng


def seed_from_coords(lat: float, lng: float) -> int:
    return math.floor(lat * 1000 + lng * 100)


def seeded_random(seed: int) -> Callable[[], float]:
    """
    Park-Miller LCG. Same seed => same sequence, values in (0, 1).
    Seeds outside [1, m-1] are folded back into range (0 and negatives
    would otherwise produce a degenerate or negative stream).
    """
    state = seed % LCG_MODULUS
    if state <= 0:
        state += LCG_MODULUS - 1

    def rand() -> float:
        nonlocal state
        state = (state * LCG_MULTIPLIER) % LCG_MODULUS
        return (state - 1) / (LCG_MODULUS - 1)

    return rand


def random_point_in_radius(
    center_lng: float,
    center_lat: float,
    radius_m: float,
    rand: Callable[[], float],
) -> Tuple[float, float]:
    """Uniform by area: r = R * sqrt(u). Returns (lng, lat)."""
    r = radius_m * math.sqrt(rand())
    theta = rand() * 2 * math.pi
    m_lat, m_lng = meters_per_degree(center_lat)
    return (
        center_lng + (r * math.cos(theta)) / m_lng,
        center_lat + (r * math.sin(theta)) / m_lat,
    )


def circle_polygon(
    center_lng: float,
    center_lat: float,
    radius_m: float,
    steps: int = 48,
    jitter: float = 0.06,
) -> List[List[float]]:
    """Closed ring of [lng, lat] points, slightly jittered so overlays look organic."""
    m_lat, m_lng = meters_per_degree(center_lat)
    pr = seeded_random(abs(math.floor(center_lat * 10000 + center_lng * 10000)))

    ring = []
    for i in range(steps + 1):
        angle = (i / steps) * math.pi * 2
        j = 1 + (pr() - 0.5) * jitter
        ring.append([
            center_lng + (radius_m * j * math.cos(angle)) / m_lng,
            center_lat + (radius_m * j * math.sin(angle)) / m_lat,
        ])
    # ring must close exactly
    ring[-1] = list(ring[0])
    return ring
