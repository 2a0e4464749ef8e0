"""
Per-stroke fingerprint extraction.
"""

from strokeform.models import Fingerprint, compute_bbox
from strokeform.strokes.corners import analyze_corner_angles, count_corners
from strokeform.strokes.geometry import distance, is_closed, straightness


def extract_fingerprint(points, config=None):
    """
    Build the Fingerprint of a stroke.

    Pure and total: empty or very short strokes give zero-valued fields
    rather than errors.

    Args:
        points: list of [x, y] points
        config: optional EngineConfig; recognition thresholds default to
            the standard values when omitted

    Returns:
        Fingerprint
    """
    if not points:
        return Fingerprint()

    rec = config.recognition if config is not None else None

    bounds = compute_bbox(points)
    width = bounds[2] - bounds[0]
    height = bounds[3] - bounds[1]

    if rec is not None:
        corners = count_corners(
            points,
            angle_threshold=rec.corner_angle_threshold,
            window=rec.corner_window,
            step=rec.corner_step,
            merge_distance=rec.corner_merge_distance,
            min_points=rec.min_corner_points,
        )
        closed = is_closed(points, rec.closure_threshold, rec.closure_relative)
    else:
        corners = count_corners(points)
        closed = is_closed(points)

    angles = [c.angle for c in corners]

    tip_point = None
    if corners:
        # min() keeps the first of equally sharp corners
        tip = min(corners, key=lambda c: c.angle)
        tip_point = [tip.x, tip.y]

    return Fingerprint(
        aspect_ratio=1.0 if height == 0 else width / height,
        straightness=straightness(points),
        is_closed=closed,
        closure_distance=distance(points[0], points[-1]),
        bounds=bounds,
        size=max(width, height),
        corners=len(corners),
        corner_angles=angles,
        corner_data=corners,
        tip_point=tip_point,
        angle_analysis=analyze_corner_angles(angles),
        point_count=len(points),
    )
