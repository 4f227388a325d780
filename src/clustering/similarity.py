"""Similarity scoring between route signatures."""
from models.route import RouteSignature

PREFIX_LENGTH = 4


def calculate_route_similarity(sig1: RouteSignature, sig2: RouteSignature) -> float:
    """
    Score how alike two routes are, from 0.0 (unrelated) to 1.0 (identical).

    Routes whose start or finish fall in different coarse regions score 0
    without further work. Otherwise the score is the Jaccard index of the
    two path cell sets.

    Args:
        sig1: First route signature
        sig2: Second route signature

    Returns:
        Similarity score in [0, 1]
    """
    if sig1.start_geohash[:PREFIX_LENGTH] != sig2.start_geohash[:PREFIX_LENGTH]:
        return 0.0
    if sig1.end_geohash[:PREFIX_LENGTH] != sig2.end_geohash[:PREFIX_LENGTH]:
        return 0.0

    cells1 = set(sig1.path_cells)
    cells2 = set(sig2.path_cells)

    union = len(cells1 | cells2)
    if union == 0:
        return 1.0

    return len(cells1 & cells2) / union
