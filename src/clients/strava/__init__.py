"""Strava data utilities."""

from clients.strava.polyline import (
    Point,
    decode_polyline,
    encode_polyline,
    haversine_distance,
    path_length
)

__all__ = [
    "Point",
    "decode_polyline",
    "encode_polyline",
    "haversine_distance",
    "path_length"
]
