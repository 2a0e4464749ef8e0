"""
Corner detection and corner-angle analysis for hand-drawn strokes.
"""

import math

import numpy as np

from strokeform.models import AngleAnalysis, CornerPoint


def count_corners(points, angle_threshold=math.pi / 3, window=8, step=4,
                  merge_distance=20, min_points=15):
    """
    Detect sharp turns along a stroke.

    Samples every `step` points from `window` to len - window, measuring the
    turn angle between the incoming vector (p[i] - p[i-window]) and the
    outgoing vector (p[i+window] - p[i]). Samples above angle_threshold are
    corner candidates; candidates within merge_distance indices of the last
    kept corner are merged, the sharper one winning.

    Returns:
        list of CornerPoint in stroke order; empty for strokes with fewer
        than min_points points
    """
    if len(points) < min_points:
        return []

    pts = np.asarray(points, dtype=float)
    candidates = []

    for i in range(window, len(pts) - window, step):
        before = pts[i] - pts[i - window]
        after = pts[i + window] - pts[i]

        mag_before = np.hypot(before[0], before[1])
        mag_after = np.hypot(after[0], after[1])
        if mag_before == 0 or mag_after == 0:
            continue

        cos_angle = float(np.dot(before, after) / (mag_before * mag_after))
        angle = math.acos(max(-1.0, min(1.0, cos_angle)))

        if angle > angle_threshold:
            candidates.append((i, angle))

    if not candidates:
        return []

    merged = [candidates[0]]
    for index, angle in candidates[1:]:
        last_index, last_angle = merged[-1]
        if index - last_index > merge_distance:
            merged.append((index, angle))
        elif angle > last_angle:
            merged[-1] = (index, angle)

    return [
        CornerPoint(index=i, angle=a, x=float(points[i][0]), y=float(points[i][1]))
        for i, a in merged
    ]


def analyze_corner_angles(angles):
    """
    Summarize the distribution of corner angles.

    rectangle_likeness rewards angles near 90 degrees, triangle_likeness
    rewards angles away from it. No angles gives all-zero metrics.
    """
    if not angles:
        return AngleAnalysis()

    arr = np.asarray(angles, dtype=float)
    avg = float(arr.mean())
    variance = float(((arr - avg) ** 2).mean())
    std_dev = math.sqrt(variance)

    consistency = max(0.0, 1 - std_dev / (math.pi / 4))

    deviation = np.abs(arr - math.pi / 2)
    rectangle_likeness = float(np.maximum(0.0, 1 - deviation / (math.pi / 4)).mean())
    triangle_likeness = float(np.minimum(1.0, deviation / (math.pi / 6)).mean())

    return AngleAnalysis(
        avg_angle=avg,
        variance=variance,
        consistency=consistency,
        rectangle_likeness=rectangle_likeness,
        triangle_likeness=triangle_likeness,
    )
