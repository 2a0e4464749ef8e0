"""
Exact intersection points between idealized shapes.

Segments, circles and polygons are supported. A polygon is treated as its
closed boundary; polygon pairs decompose into per-edge segment and circle
tests. Pairs given in the reverse of a supported order are swapped.
"""

import math

from strokeform.models import CircleDef, PolygonDef, SegmentDef

EPS = 1e-4


def intersect_segments(a_start, a_end, b_start, b_end):
    """
    Intersection point of two segments, or None.

    Parallel and coincident segments give None.
    """
    x1, y1 = a_start[0], a_start[1]
    x2, y2 = a_end[0], a_end[1]
    x3, y3 = b_start[0], b_start[1]
    x4, y4 = b_end[0], b_end[1]

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < EPS:
        return None

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom

    if 0 <= t <= 1 and 0 <= u <= 1:
        return [x1 + t * (x2 - x1), y1 + t * (y2 - y1)]
    return None


def intersect_segment_circle(start, end, center, radius):
    """
    Points where a segment crosses a circle (0, 1 or 2).

    Roots closer than EPS in the segment parameter collapse to one point.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    fx = start[0] - center[0]
    fy = start[1] - center[1]

    a = dx * dx + dy * dy
    if a == 0:
        return []
    b = 2 * (fx * dx + fy * dy)
    c = fx * fx + fy * fy - radius * radius

    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        return []

    root = math.sqrt(discriminant)
    t1 = (-b - root) / (2 * a)
    t2 = (-b + root) / (2 * a)

    points = []
    if 0 <= t1 <= 1:
        points.append([start[0] + t1 * dx, start[1] + t1 * dy])
    if 0 <= t2 <= 1 and abs(t2 - t1) > EPS:
        points.append([start[0] + t2 * dx, start[1] + t2 * dy])
    return points


def intersect_circles(c1, r1, c2, r2):
    """
    Points where two circles cross.

    Nothing when they are apart, nested, concentric or coincident; one point
    when tangent, externally or internally; otherwise two points mirrored
    across the line between centers.
    """
    dx = c2[0] - c1[0]
    dy = c2[1] - c1[1]
    dist = math.hypot(dx, dy)

    if dist < EPS:
        return []

    tangent = abs(dist - (r1 + r2)) < EPS or abs(dist - abs(r1 - r2)) < EPS
    if not tangent and (dist > r1 + r2 or dist < abs(r1 - r2)):
        return []

    # foot of the chord, signed distance a from c1 along the center line
    a = (r1 * r1 - r2 * r2 + dist * dist) / (2 * dist)
    px = c1[0] + a / dist * dx
    py = c1[1] + a / dist * dy

    if tangent:
        return [[px, py]]

    h = math.sqrt(max(0.0, r1 * r1 - a * a))
    return [
        [px + h / dist * dy, py - h / dist * dx],
        [px - h / dist * dy, py + h / dist * dx],
    ]


def polygon_edges(vertices):
    """Closed boundary edges of a polygon as (start, end) pairs."""
    n = len(vertices)
    if n < 2:
        return []
    return [(vertices[i], vertices[(i + 1) % n]) for i in range(n)]


def intersect_definitions(a, b):
    """Intersection points between two shape definitions."""
    if a is None or b is None:
        return []

    if isinstance(a, SegmentDef):
        if isinstance(b, SegmentDef):
            hit = intersect_segments(a.start, a.end, b.start, b.end)
            return [hit] if hit else []
        if isinstance(b, CircleDef):
            return intersect_segment_circle(a.start, a.end, b.center, b.radius)
        if isinstance(b, PolygonDef):
            points = []
            for v1, v2 in polygon_edges(b.vertices):
                hit = intersect_segments(a.start, a.end, v1, v2)
                if hit:
                    points.append(hit)
            return points

    if isinstance(a, CircleDef):
        if isinstance(b, CircleDef):
            return intersect_circles(a.center, a.radius, b.center, b.radius)
        if isinstance(b, SegmentDef):
            return intersect_definitions(b, a)
        if isinstance(b, PolygonDef):
            points = []
            for v1, v2 in polygon_edges(b.vertices):
                points.extend(intersect_segment_circle(v1, v2, a.center, a.radius))
            return points

    if isinstance(a, PolygonDef):
        if isinstance(b, PolygonDef):
            points = []
            for a1, a2 in polygon_edges(a.vertices):
                for b1, b2 in polygon_edges(b.vertices):
                    hit = intersect_segments(a1, a2, b1, b2)
                    if hit:
                        points.append(hit)
            return points
        return intersect_definitions(b, a)

    return []


def intersect(shape_a, shape_b):
    """
    Intersection points between two Shapes.

    Freeform shapes (no definition) and missing shapes give an empty list.
    """
    if shape_a is None or shape_b is None:
        return []
    return intersect_definitions(shape_a.definition, shape_b.definition)
