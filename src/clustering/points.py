"""
Extraction of GPS point sequences from Strava activity data.

Activities carry their track either as an encoded polyline or as a raw
``latlng`` stream. Both are turned into an ordered list of Point objects.
"""
import logging
import math
from typing import Any

from clients.strava.polyline import Point, decode_polyline

logger = logging.getLogger(__name__)


def decode_polyline_to_points(encoded: str | None) -> list[Point]:
    """
    Decode an encoded polyline, returning an empty list for malformed input.

    Args:
        encoded: Encoded polyline string (summary or detailed resolution)

    Returns:
        List of Point objects, empty if the polyline is missing or invalid
    """
    if not encoded:
        return []

    try:
        return decode_polyline(encoded)
    except (ValueError, TypeError) as e:
        logger.warning(f"Error decoding polyline: {e}")
        return []


def _latlng_series(streams: Any) -> Any:
    """Locate the raw latlng series in the supported stream layouts."""
    # Non-keyed Strava response: [{"type": "latlng", "data": [...]}, ...]
    if isinstance(streams, list):
        for stream in streams:
            if isinstance(stream, dict) and stream.get("type") == "latlng":
                return stream.get("data")
        return None

    if not isinstance(streams, dict):
        return None

    latlng = streams.get("latlng")
    if isinstance(latlng, dict):
        latlng = latlng.get("data")
    return latlng


def _is_usable(value: Any) -> bool:
    if not value or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def extract_points_from_streams(streams: Any) -> list[Point]:
    """
    Extract GPS points from a Strava streams payload.

    Points with a missing, zero or NaN coordinate are treated as a missing
    GPS fix and skipped. Order is preserved.

    Args:
        streams: Streams payload, either keyed by type or as a list of streams

    Returns:
        List of Point objects
    """
    if not streams:
        return []

    latlng = _latlng_series(streams)
    if not isinstance(latlng, list):
        return []

    points = []
    for pair in latlng:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            continue
        lat, lon = pair
        if _is_usable(lat) and _is_usable(lon):
            points.append(Point(lat=float(lat), lon=float(lon)))

    return points
