"""
Basic stroke geometry: distances, straightness, closure, overshoot, and
axis-aligned bounding box predicates.

Strokes are lists of [x, y] points. Bounds are [min_x, min_y, max_x, max_y].
"""

import math

from shapely.geometry import LineString

from strokeform.models import compute_bbox


def distance(p1, p2):
    """Euclidean distance between two points."""
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def path_length(points):
    """Total length of the polyline through points."""
    if len(points) < 2:
        return 0.0
    return LineString(points).length


def straightness(points):
    """
    Ratio of the start-end chord to the path length.

    1.0 for a perfectly straight stroke, lower for curved ones, 0 when the
    path has no length.
    """
    if len(points) < 2:
        return 0.0

    total = path_length(points)
    if total == 0:
        return 0.0
    return distance(points[0], points[-1]) / total


def bbox_size(bounds):
    """Width and height of a bounding box."""
    return bounds[2] - bounds[0], bounds[3] - bounds[1]


def is_closed(points, threshold=50.0, relative=0.2):
    """
    Check whether a stroke ends near where it started.

    Closed when the start-end gap is at most threshold, or when the gap is
    below `relative` of the larger bounding dimension. Needs at least five
    points.
    """
    if len(points) < 5:
        return False

    gap = distance(points[0], points[-1])
    if gap <= threshold:
        return True

    width, height = bbox_size(compute_bbox(points))
    size = max(width, height)
    relative_gap = gap / size if size > 0 else 1.0
    return relative_gap < relative


def check_overshoot(points, threshold=50.0):
    """
    Check whether the tail of a stroke loops back past its own start.

    Looks at the final 30% of the points for any within threshold of the
    start point. Needs at least ten points.
    """
    if len(points) < 10:
        return False

    start = points[0]
    check_start = int(len(points) * 0.7)

    for point in points[check_start:]:
        if distance(point, start) < threshold:
            return True

    return False


def bounds_overlap(b1, b2):
    """True if two bounding boxes intersect (shared edges count)."""
    return not (
        b1[2] < b2[0]
        or b2[2] < b1[0]
        or b1[3] < b2[1]
        or b2[3] < b1[1]
    )


def bounds_contain(outer, inner):
    """True if outer fully contains inner, edges inclusive."""
    return (
        inner[0] >= outer[0]
        and inner[2] <= outer[2]
        and inner[1] >= outer[1]
        and inner[3] <= outer[3]
    )


def bounding_box_distance(b1, b2):
    """
    Gap between two bounding boxes.

    0 when they overlap; otherwise the horizontal and vertical gaps combined
    as a Euclidean distance.
    """
    if b2[0] > b1[2]:
        horiz = b2[0] - b1[2]
    else:
        horiz = max(0.0, b1[0] - b2[2])

    if b2[1] > b1[3]:
        vert = b2[1] - b1[3]
    else:
        vert = max(0.0, b1[1] - b2[3])

    return math.hypot(horiz, vert)
