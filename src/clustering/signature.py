"""
Route signatures for approximate route matching.

A signature records the start and finish cells of a simplified path together
with the set of coarser cells the path passes through.
"""
import hashlib

from clients.strava.polyline import Point
from clustering.geohash import encode_geohash
from clustering.simplify import simplify_path
from models.route import RouteSignature

GEOHASH_PRECISION = 6
PATH_GEOHASH_PRECISION = 5
SIGNATURE_TOLERANCE = 0.0005


def route_key_for(start_geohash: str, end_geohash: str, path_cells: list[str]) -> str:
    """Deterministic identity hash for a signature's fields."""
    key_input = f"{start_geohash}|{end_geohash}|{','.join(path_cells)}"
    return hashlib.md5(key_input.encode()).hexdigest()


def generate_route_signature(points: list[Point]) -> RouteSignature | None:
    """
    Build a route signature from a raw GPS track.

    The track is simplified with a coarse tolerance first, so that repeated
    recordings of the same route differing only by GPS noise collapse to
    similar shapes.

    Args:
        points: Ordered, unsimplified track points

    Returns:
        RouteSignature, or None if fewer than 2 points are available
    """
    if len(points) < 2:
        return None

    simplified = simplify_path(points, SIGNATURE_TOLERANCE)
    if len(simplified) < 2:
        return None

    start, end = simplified[0], simplified[-1]
    start_geohash = encode_geohash(start.lat, start.lon, GEOHASH_PRECISION)
    end_geohash = encode_geohash(end.lat, end.lon, GEOHASH_PRECISION)

    path_cells = sorted({
        encode_geohash(point.lat, point.lon, PATH_GEOHASH_PRECISION)
        for point in simplified
    })

    return RouteSignature(
        start_geohash=start_geohash,
        end_geohash=end_geohash,
        path_cells=path_cells,
        route_key=route_key_for(start_geohash, end_geohash, path_cells)
    )
