"""
Route clustering primitives.

Provides the pure building blocks used to group GPS activities into routes:
- Point extraction from polylines and GPS streams
- Douglas-Peucker path simplification
- Geohash cell encoding
- Route signatures and similarity scoring
"""

from clustering.points import decode_polyline_to_points, extract_points_from_streams
from clustering.simplify import simplify_path, perpendicular_distance
from clustering.geohash import encode_geohash
from clustering.signature import generate_route_signature, route_key_for
from clustering.similarity import calculate_route_similarity

__all__ = [
    # Point extraction
    'decode_polyline_to_points',
    'extract_points_from_streams',

    # Geometry
    'simplify_path',
    'perpendicular_distance',
    'encode_geohash',

    # Signatures
    'generate_route_signature',
    'route_key_for',
    'calculate_route_similarity',
]
