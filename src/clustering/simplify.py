"""
Douglas-Peucker path simplification.

Distances are planar, treating longitude as x and latitude as y. At running
route scale this is close enough for shape matching.
"""
import math

from clients.strava.polyline import Point

DEFAULT_TOLERANCE = 0.0001


def perpendicular_distance(point: Point, line_start: Point, line_end: Point) -> float:
    """
    Distance from a point to the infinite line through two other points.

    Falls back to plain point distance when the line endpoints coincide.
    """
    dx = line_end.lon - line_start.lon
    dy = line_end.lat - line_start.lat

    if dx == 0 and dy == 0:
        return math.hypot(point.lat - line_start.lat, point.lon - line_start.lon)

    t = ((point.lon - line_start.lon) * dx + (point.lat - line_start.lat) * dy) / (dx * dx + dy * dy)
    nearest_lon = line_start.lon + t * dx
    nearest_lat = line_start.lat + t * dy

    return math.hypot(point.lat - nearest_lat, point.lon - nearest_lon)


def simplify_path(points: list[Point], tolerance: float = DEFAULT_TOLERANCE) -> list[Point]:
    """
    Reduce a point sequence to its salient shape.

    The first and last points are always kept. A point survives when it lies
    further than ``tolerance`` (degrees) from the chord of the segment it
    splits, evaluated recursively from the whole path down.

    Args:
        points: Ordered points of the path
        tolerance: Maximum allowed deviation in degrees

    Returns:
        Ordered subsequence of the input points
    """
    if len(points) <= 2:
        return points

    keep = [False] * len(points)
    keep[0] = keep[-1] = True

    # Explicit stack instead of recursion, GPS streams can hold thousands of points
    stack = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        max_dist = 0.0
        max_index = first
        for i in range(first + 1, last):
            dist = perpendicular_distance(points[i], points[first], points[last])
            if dist > max_dist:
                max_dist = dist
                max_index = i

        if max_dist > tolerance:
            keep[max_index] = True
            stack.append((first, max_index))
            stack.append((max_index, last))

    return [point for point, kept in zip(points, keep) if kept]
