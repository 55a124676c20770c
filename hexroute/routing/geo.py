"""
Spherical geometry helpers.

Points are ``(lng, lat)`` tuples in degrees, longitude normalized to
[-180, 180). Distances are metres on a spherical Earth.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]  # (lng, lat)

EARTH_RADIUS_M = 6371008.8


def normalize_lng(lng: float) -> float:
    """Wrap longitude into [-180, 180)."""
    return ((lng + 180.0) % 360.0) - 180.0


def norm360(angle: float) -> float:
    return angle % 360.0


def haversine_m(a: Point, b: Point) -> float:
    """Great circle distance between two points in metres."""
    lat1, lat2 = math.radians(a[1]), math.radians(b[1])
    dlat = lat2 - lat1
    dlng = math.radians(b[0] - a[0])
    h = (math.sin(dlat / 2) ** 2
         + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2)
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def bearing_deg(a: Point, b: Point) -> float:
    """Initial bearing from ``a`` to ``b`` in degrees [0, 360)."""
    lat1, lat2 = math.radians(a[1]), math.radians(b[1])
    dlng = math.radians(b[0] - a[0])
    y = math.sin(dlng) * math.cos(lat2)
    x = (math.cos(lat1) * math.sin(lat2)
         - math.sin(lat1) * math.cos(lat2) * math.cos(dlng))
    return norm360(math.degrees(math.atan2(y, x)))


def destination(p: Point, distance_m: float, bearing: float) -> Point:
    """Point reached travelling ``distance_m`` from ``p`` on initial ``bearing``."""
    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing)
    lat1, lng1 = math.radians(p[1]), math.radians(p[0])
    sin_lat2 = (math.sin(lat1) * math.cos(delta)
                + math.cos(lat1) * math.sin(delta) * math.cos(theta))
    lat2 = math.asin(max(-1.0, min(1.0, sin_lat2)))
    y = math.sin(theta) * math.sin(delta) * math.cos(lat1)
    x = math.cos(delta) - math.sin(lat1) * math.sin(lat2)
    lng2 = lng1 + math.atan2(y, x)
    return (normalize_lng(math.degrees(lng2)), math.degrees(lat2))


def _unit_vectors(lngs: np.ndarray, lats: np.ndarray) -> np.ndarray:
    lng_r = np.radians(lngs)
    lat_r = np.radians(lats)
    return np.stack([
        np.cos(lat_r) * np.cos(lng_r),
        np.cos(lat_r) * np.sin(lng_r),
        np.sin(lat_r),
    ], axis=-1)


def great_circle_samples(a: Point, b: Point, fractions: Sequence[float]) -> np.ndarray:
    """
    Points at the given fractions along the great circle from ``a`` to ``b``.

    Returns an ``(n, 2)`` array of ``(lng, lat)`` rows.
    """
    t = np.asarray(fractions, dtype=np.float64)
    va, vb = _unit_vectors(np.array([a[0], b[0]]), np.array([a[1], b[1]]))
    omega = math.acos(max(-1.0, min(1.0, float(np.dot(va, vb)))))
    sin_omega = math.sin(omega)

    if sin_omega < 1e-12:
        if omega < 1.0:
            # Coincident endpoints
            return np.tile(np.array([a[0], a[1]], dtype=np.float64), (len(t), 1))
        # Antipodal: the great circle is undefined, follow the initial bearing
        dist = haversine_m(a, b)
        brg = bearing_deg(a, b)
        return np.array([destination(a, f * dist, brg) for f in t], dtype=np.float64)

    wa = np.sin((1.0 - t) * omega) / sin_omega
    wb = np.sin(t * omega) / sin_omega
    v = wa[:, None] * va + wb[:, None] * vb
    lat = np.degrees(np.arctan2(v[:, 2], np.hypot(v[:, 0], v[:, 1])))
    lng = np.degrees(np.arctan2(v[:, 1], v[:, 0]))
    lng = ((lng + 180.0) % 360.0) - 180.0
    return np.stack([lng, lat], axis=-1)


def interpolate(a: Point, b: Point, t: float) -> Point:
    """Point at fraction ``t`` along the great circle from ``a`` to ``b``."""
    row = great_circle_samples(a, b, [t])[0]
    return (float(row[0]), float(row[1]))


def midpoint(a: Point, b: Point) -> Point:
    return interpolate(a, b, 0.5)


def points_close(a: Point, b: Point, eps_deg: float = 1e-9) -> bool:
    """Equality within ``eps_deg`` on both axes (longitude compared modulo 360)."""
    dlng = abs(normalize_lng(a[0] - b[0]))
    return dlng <= eps_deg and abs(a[1] - b[1]) <= eps_deg


def turn_angle(prev_bearing: float, cur_bearing: float) -> float:
    """Absolute heading change in degrees [0, 180]."""
    return abs(((cur_bearing - prev_bearing) + 180.0) % 360.0 - 180.0)


def angle_fan(center: float, step: float) -> List[float]:
    """
    Bearing offsets mirrored around ``center``.

    ``angle_fan(90, 15)`` -> [90, 75, 105, 60, 120, ...] out to +/-180.
    """
    out = []
    d = 0.0
    while d <= 180.0:
        out.append(center - d)
        if d:
            out.append(center + d)
        d += step
    return out


def path_length_m(points: Sequence[Point]) -> float:
    return sum(haversine_m(points[i], points[i + 1]) for i in range(len(points) - 1))


def densify(points: Sequence[Point], max_segment_m: float) -> List[Point]:
    """
    Subdivide segments longer than ``max_segment_m`` along their great circle.

    Straight lines drawn between far-apart vertices on a web map diverge
    from the geographic path; extra vertices keep the rendered line on it.
    """
    if len(points) < 2 or max_segment_m <= 0:
        return list(points)

    result = [points[0]]
    for i in range(1, len(points)):
        prev, cur = points[i - 1], points[i]
        seg_m = haversine_m(prev, cur)
        if seg_m > max_segment_m:
            n_sub = int(math.ceil(seg_m / max_segment_m))
            fractions = [j / n_sub for j in range(1, n_sub)]
            for row in great_circle_samples(prev, cur, fractions):
                result.append((float(row[0]), float(row[1])))
        result.append(cur)
    return result
