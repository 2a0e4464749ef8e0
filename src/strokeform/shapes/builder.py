"""
Build idealized Shape definitions from recognized strokes.
"""

from strokeform.models import (
    CircleDef, Formalism, PolygonDef, SegmentDef, Shape, compute_bbox,
)


def build_line_shape(points, refined, bounds):
    stroke = refined or points
    return Shape(
        type="line",
        label="Line",
        bounds=bounds,
        definition=SegmentDef(start=list(stroke[0]), end=list(stroke[-1])),
    )


def build_circle_shape(bounds):
    """Circle centered in the bounds, radius the mean of half-width and half-height."""
    center = [(bounds[0] + bounds[2]) / 2, (bounds[1] + bounds[3]) / 2]
    radius = ((bounds[2] - bounds[0]) / 2 + (bounds[3] - bounds[1]) / 2) / 2
    return Shape(
        type="circle",
        label="Circle",
        bounds=bounds,
        definition=CircleDef(center=center, radius=radius),
    )


def polygon_vertices(refined, bounds, fingerprint=None):
    """
    Vertices for a polygon shape.

    Taken from the refined segments' endpoints (first occurrence order,
    duplicates dropped), else the fingerprint's corners, else the bounding
    box corners.
    """
    if refined and isinstance(refined[0][0], (list, tuple)):
        vertices = []
        seen = set()
        for segment in refined:
            if not segment:
                continue
            for point in (segment[0], segment[-1]):
                key = (float(point[0]), float(point[1]))
                if key not in seen:
                    seen.add(key)
                    vertices.append([key[0], key[1]])
        return vertices

    if fingerprint is not None and fingerprint.corner_data:
        return [[c.x, c.y] for c in fingerprint.corner_data]

    return [
        [bounds[0], bounds[1]],
        [bounds[2], bounds[1]],
        [bounds[2], bounds[3]],
        [bounds[0], bounds[3]],
    ]


def build_shape(points, accepted_type, refined, bounds=None, fingerprint=None):
    """
    Create the Shape for an accepted stroke.

    Args:
        points: the original stroke
        accepted_type: type the user accepted
        refined: output of refine() for that type, or None
        bounds: stroke bounds; computed from points when omitted
        fingerprint: optional Fingerprint, used for polygon corners

    Returns:
        Shape; types without canonical geometry give a freeform shape with
        no definition
    """
    if bounds is None:
        bounds = compute_bbox(points)

    if accepted_type == "line" and (refined or points):
        return build_line_shape(points, refined, bounds)

    if accepted_type == "circle":
        return build_circle_shape(bounds)

    if accepted_type in ("rectangle", "triangle"):
        return Shape(
            type=accepted_type,
            label=accepted_type.capitalize(),
            bounds=bounds,
            definition=PolygonDef(vertices=polygon_vertices(refined, bounds, fingerprint)),
        )

    return Shape(
        type=accepted_type,
        label=accepted_type,
        bounds=bounds,
        formalism=Formalism.FREEFORM,
        definition=None,
    )
