"""
Convex hull and hull-corner selection.

The Graham scan here returns hull vertices counter-clockwise, starting from
the lowest (then leftmost) point.
"""

import math

from strokeform.strokes.geometry import distance


def _cross(o, a, b):
    """Z component of (a - o) x (b - o); positive for a counter-clockwise turn."""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points):
    """
    Graham scan convex hull.

    Args:
        points: list of [x, y] points

    Returns:
        hull vertices in counter-clockwise order; fewer than three input
        points are returned unchanged
    """
    if not points or len(points) < 3:
        return points

    pivot_idx = 0
    for i, p in enumerate(points):
        pivot = points[pivot_idx]
        if p[1] < pivot[1] or (p[1] == pivot[1] and p[0] < pivot[0]):
            pivot_idx = i
    pivot = points[pivot_idx]

    rest = [p for i, p in enumerate(points) if i != pivot_idx]
    rest.sort(key=lambda p: (
        math.atan2(p[1] - pivot[1], p[0] - pivot[0]),
        distance(pivot, p),
    ))

    hull = [pivot, rest[0]]
    for p in rest[1:]:
        while len(hull) > 1 and _cross(hull[-2], hull[-1], p) <= 0:
            hull.pop()
        hull.append(p)

    return hull


def _vertex_angle(prev, curr, nxt):
    """Interior angle at curr in [0, pi], independent of hull winding."""
    a1 = math.atan2(prev[1] - curr[1], prev[0] - curr[0])
    a2 = math.atan2(nxt[1] - curr[1], nxt[0] - curr[0])
    radians = a2 - a1
    if radians < 0:
        radians += 2 * math.pi
    return min(radians, 2 * math.pi - radians)


def _hull_vertex_sharpness(hull):
    n = len(hull)
    entries = []
    for i in range(n):
        angle = _vertex_angle(hull[i - 1], hull[i], hull[(i + 1) % n])
        entries.append({"index": i, "point": hull[i], "angle": angle, "sharpness": math.pi - angle})
    return entries


def find_hull_corners(points, target_count, separated=True):
    """
    Pick the target_count most prominent corners of a stroke's convex hull.

    With separated=True, corners must lie at least perimeter / (1.5 * N)
    apart along the hull; if that leaves too few, the sharpest remaining
    vertices fill the gap. Corners are returned in hull order.

    Standalone utility: the recognition and refinement pipeline picks
    corners with the curvature detector in strokes.corners instead.
    """
    if not points or len(points) < target_count:
        return points

    hull = convex_hull(points)
    if len(hull) <= target_count:
        return hull

    corners = _hull_vertex_sharpness(hull)
    corners.sort(key=lambda c: c["sharpness"], reverse=True)

    if not separated:
        selected = corners[:target_count]
    else:
        n = len(hull)
        perimeter = sum(distance(hull[i], hull[(i + 1) % n]) for i in range(n))
        min_separation = perimeter / (target_count * 1.5)

        selected = []
        for candidate in corners:
            if len(selected) >= target_count:
                break
            too_close = False
            for existing in selected:
                index_diff = abs(candidate["index"] - existing["index"])
                steps = min(index_diff, n - index_diff)
                if steps / n * perimeter < min_separation:
                    too_close = True
                    break
            if not too_close:
                selected.append(candidate)

        for candidate in corners:
            if len(selected) >= target_count:
                break
            if candidate not in selected:
                selected.append(candidate)

    selected.sort(key=lambda c: c["index"])
    return [c["point"] for c in selected]
