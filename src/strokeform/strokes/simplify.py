"""
Stroke refinement: Chaikin smoothing, Ramer-Douglas-Peucker simplification
and size normalization.

These run on stroke completion, before fingerprinting, according to the
caller's RefinementConfig.
"""

import numpy as np

from strokeform.models import compute_bbox
from strokeform.tracer import get_tracer, trace


@trace(label="preprocess_stroke")
def preprocess_stroke(points, refinement):
    """
    Apply the enabled refinement steps to a raw stroke.

    Order is smoothing, then simplification, then normalization.

    Args:
        points: list of [x, y] points
        refinement: RefinementConfig

    Returns:
        refined list of points, or None when refinement is disabled
    """
    if not refinement.enabled:
        return None

    tracer = get_tracer()
    refined = points
    before = len(points)

    if refinement.smooth > 0:
        refined = smooth_stroke(refined, refinement.smooth)

    if refinement.simplify > 0:
        refined = rdp_simplify(refined, refinement.simplify)

    if refinement.normalize:
        refined = normalize_stroke(refined, refinement.normalize_size)

    tracer.event(f"Refined stroke: {before} -> {len(refined)} points")
    return refined


def smooth_stroke(points, iterations=2):
    """
    Chaikin corner-cutting.

    Each iteration replaces every segment (p1, p2) with points at 25% and
    75% along it. The original first and last points are kept in place.
    """
    if not points or len(points) < 3:
        return points

    pts = np.asarray(points, dtype=float)

    for _ in range(iterations):
        p1 = pts[:-1]
        p2 = pts[1:]
        q = 0.75 * p1 + 0.25 * p2
        r = 0.25 * p1 + 0.75 * p2
        cut = np.empty((2 * len(p1), 2))
        cut[0::2] = q
        cut[1::2] = r
        pts = np.vstack([pts[:1], cut, pts[-1:]])

    smoothed = pts.tolist()
    smoothed[0] = list(points[0])
    smoothed[-1] = list(points[-1])
    return smoothed


def rdp_simplify(points, epsilon):
    """
    Ramer-Douglas-Peucker algorithm for polyline simplification.

    Recursively removes points that are within epsilon distance
    of the segment between endpoints.

    Args:
        points: list of [x, y] points
        epsilon: maximum perpendicular distance threshold

    Returns:
        simplified list of points
    """
    if len(points) <= 2:
        return points

    points_arr = np.asarray(points, dtype=float)
    start = points_arr[0]
    end = points_arr[-1]

    distances = _perpendicular_distances(points_arr[1:-1], start, end)
    max_idx = int(np.argmax(distances)) + 1
    max_dist = distances[max_idx - 1]

    if max_dist > epsilon:
        left = rdp_simplify(points[:max_idx + 1], epsilon)
        right = rdp_simplify(points[max_idx:], epsilon)
        return left[:-1] + right

    return [points[0], points[-1]]


def _perpendicular_distances(points, start, end):
    """
    Distances from each point to the segment from start to end.
    """
    line_vec = end - start
    line_len = np.linalg.norm(line_vec)

    if line_len == 0:
        return np.linalg.norm(points - start, axis=1)

    line_unit = line_vec / line_len
    projections = np.clip(np.dot(points - start, line_unit), 0, line_len)
    nearest = start + np.outer(projections, line_unit)
    return np.linalg.norm(points - nearest, axis=1)


def normalize_stroke(points, target_size=200.0):
    """
    Scale a stroke uniformly so its larger dimension equals target_size.

    Scaling is about the stroke's bounding-box center, so the stroke stays
    where it was drawn.
    """
    if not points:
        return points

    bounds = compute_bbox(points)
    max_dim = max(bounds[2] - bounds[0], bounds[3] - bounds[1])
    if max_dim == 0:
        return points

    scale = target_size / max_dim
    center = np.array([(bounds[0] + bounds[2]) / 2, (bounds[1] + bounds[3]) / 2])
    pts = np.asarray(points, dtype=float)
    return ((pts - center) * scale + center).tolist()
