"""
Polyline utilities for Strava route data.
Handles encoded polylines from Strava and basic distance calculations.
"""
import math
from typing import NamedTuple


class Point(NamedTuple):
    """A geographic point with latitude and longitude."""
    lat: float
    lon: float


def _decode_value(encoded: str, index: int) -> tuple[int, int]:
    """Decode one signed value starting at index, returning (value, next_index)."""
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise ValueError("Polyline ended in the middle of a value")
        code = ord(encoded[index])
        if code < 63 or code > 126:
            raise ValueError(f"Invalid polyline character {encoded[index]!r} at position {index}")
        b = code - 63
        index += 1
        result |= (b & 0x1f) << shift
        shift += 5
        if b < 0x20:
            break

    value = ~(result >> 1) if (result & 1) else (result >> 1)
    return value, index


def decode_polyline(encoded: str) -> list[Point]:
    """
    Decode a Google-encoded polyline string into a list of coordinates.

    This uses the same encoding algorithm as Google Maps and Strava.
    See: https://developers.google.com/maps/documentation/utilities/polylinealgorithm

    Args:
        encoded: Encoded polyline string

    Returns:
        List of Point objects representing the route

    Raises:
        ValueError: If the string is not a valid encoded polyline
    """
    if not encoded:
        return []

    points = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        dlat, index = _decode_value(encoded, index)
        lat += dlat
        dlon, index = _decode_value(encoded, index)
        lon += dlon

        points.append(Point(lat=lat / 1e5, lon=lon / 1e5))

    return points


def encode_polyline(points: list[Point]) -> str:
    """
    Encode a list of coordinates into a Google-encoded polyline string.

    Args:
        points: List of Point objects

    Returns:
        Encoded polyline string
    """
    if not points:
        return ""

    def encode_value(value: int) -> str:
        value = ~(value << 1) if value < 0 else (value << 1)
        chunks = []
        while value >= 0x20:
            chunks.append(chr((0x20 | (value & 0x1f)) + 63))
            value >>= 5
        chunks.append(chr(value + 63))
        return "".join(chunks)

    encoded = []
    prev_lat = 0
    prev_lon = 0

    for point in points:
        lat = int(round(point.lat * 1e5))
        lon = int(round(point.lon * 1e5))

        encoded.append(encode_value(lat - prev_lat))
        encoded.append(encode_value(lon - prev_lon))

        prev_lat = lat
        prev_lon = lon

    return "".join(encoded)


def haversine_distance(p1: Point, p2: Point) -> float:
    """
    Calculate the great circle distance between two points in meters.

    Args:
        p1: First point
        p2: Second point

    Returns:
        Distance in meters
    """
    # Earth radius in meters
    R = 6371000

    lat1, lon1 = math.radians(p1.lat), math.radians(p1.lon)
    lat2, lon2 = math.radians(p2.lat), math.radians(p2.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.asin(math.sqrt(a))

    return R * c


def path_length(points: list[Point]) -> float:
    """Total haversine length of a point sequence in meters."""
    return sum(
        haversine_distance(points[i], points[i + 1])
        for i in range(len(points) - 1)
    )
