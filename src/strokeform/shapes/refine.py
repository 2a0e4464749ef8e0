"""
Shape refinement: turn an accepted hand-drawn stroke into idealized geometry.

Circles and lines refine to point lists. Rectangles and triangles refine to
a list of straight segments, each [start, end], built from the stroke's
detected corners with progressively simpler fallbacks.
"""

import math

from shapely.geometry import LineString, Point

from strokeform.models import compute_bbox
from strokeform.strokes.corners import count_corners
from strokeform.strokes.geometry import distance
from strokeform.tracer import get_tracer, trace


def refine_circle(points, num_points=60):
    """Closed polyline of num_points segments around the stroke's bbox circle."""
    bounds = compute_bbox(points)
    cx = (bounds[0] + bounds[2]) / 2
    cy = (bounds[1] + bounds[3]) / 2
    radius = ((bounds[2] - bounds[0]) / 2 + (bounds[3] - bounds[1]) / 2) / 2

    circle = []
    for i in range(num_points + 1):
        angle = i / num_points * 2 * math.pi
        circle.append([cx + math.cos(angle) * radius, cy + math.sin(angle) * radius])
    return circle


def refine_line(points):
    """Keep only the exact first and last point."""
    return [list(points[0]), list(points[-1])]


def _closed_loop(corners):
    return [[corners[i], corners[(i + 1) % len(corners)]] for i in range(len(corners))]


def _bbox_rectangle(points):
    b = compute_bbox(points)
    return [[b[0], b[1]], [b[2], b[1]], [b[2], b[3]], [b[0], b[3]]]


def _corner_data(points, fingerprint):
    if fingerprint is not None and fingerprint.corner_data:
        return list(fingerprint.corner_data)
    return count_corners(points)


def _sharpest_indices(corner_data, limit):
    """Indices of the `limit` sharpest corners, in stroke order."""
    ranked = sorted(corner_data, key=lambda c: c.angle)[:limit]
    return sorted(c.index for c in ranked)


def refine_rectangle(points, fingerprint=None):
    """
    Four straight segments through the stroke's corners.

    Three detected corners gain the stroke start as the fourth; fewer than
    three fall back to the bounding box.
    """
    indices = _sharpest_indices(_corner_data(points, fingerprint), 4)
    indices = [i for i in indices if i < len(points)]

    if len(indices) == 3:
        indices = sorted(set(indices) | {0})

    if len(indices) < 4:
        return _closed_loop(_bbox_rectangle(points))

    return _closed_loop([list(points[i]) for i in indices])


def farthest_point_triangle(points):
    """
    Three mutually distant points of a stroke.

    The first point, the point farthest from it, and the point farthest from
    the segment between those two.
    """
    p1 = points[0]
    p2 = max(points, key=lambda p: distance(p, p1))

    if distance(p1, p2) == 0:
        return [list(p1), list(p2), list(p1)]

    chord = LineString([p1, p2])
    p3 = max(points, key=lambda p: chord.distance(Point(p)))
    return [list(p1), list(p2), list(p3)]


def refine_triangle(points, fingerprint=None):
    """
    Three straight segments through the stroke's corners.

    Two detected corners gain the stroke start (or end, or middle point);
    one corner gains the start and the farthest point from it; none falls
    back to the farthest-point triangle.
    """
    tracer = get_tracer()
    indices = _sharpest_indices(_corner_data(points, fingerprint), 3)
    indices = [i for i in indices if i < len(points)]

    if len(indices) == 2:
        end_idx = len(points) - 1
        if 0 not in indices:
            indices.append(0)
        elif end_idx not in indices:
            indices.append(end_idx)
        else:
            indices.append(len(points) // 2)
        indices.sort()
    elif len(indices) == 1:
        corner = points[indices[0]]
        farthest = max(range(len(points)), key=lambda i: distance(points[i], corner))
        indices = sorted([0, indices[0], farthest])
    elif not indices:
        tracer.event("No corners detected for triangle, using farthest-point fallback", level="WARN")
        return _closed_loop(farthest_point_triangle(points))

    return _closed_loop([list(points[i]) for i in indices])


@trace(label="refine")
def refine(points, accepted_type, fingerprint=None, config=None):
    """
    Dispatch refinement by accepted type.

    Returns:
        point list for circle/line, segment list for rectangle/triangle,
        None for any other type or an empty stroke
    """
    if not points:
        return None

    if accepted_type == "circle":
        num_points = config.refinement.circle_points if config is not None else 60
        return refine_circle(points, num_points)
    if accepted_type == "line":
        return refine_line(points)
    if accepted_type == "rectangle":
        return refine_rectangle(points, fingerprint)
    if accepted_type == "triangle":
        return refine_triangle(points, fingerprint)
    return None


def refined_as_stroke(refined):
    """
    Flatten refined geometry back into a single point list.

    Segment lists become the polyline through their vertices, closed back to
    the first vertex.
    """
    if not refined:
        return []
    if _is_segment_list(refined):
        path = [seg[0] for seg in refined]
        path.append(refined[-1][1])
        return path
    return refined


def _is_segment_list(refined):
    first = refined[0]
    return isinstance(first[0], (list, tuple))
