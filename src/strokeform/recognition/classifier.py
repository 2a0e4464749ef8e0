"""
Rule-based shape classification.

Each detector checks a handful of boolean conditions on a fingerprint and,
when all hold, contributes one fixed-score candidate. Every detector runs;
a stroke can match several types, and no match is an empty list.
"""

from strokeform.models import LibraryItemKind, RecognitionResult
from strokeform.strokes.geometry import check_overshoot
from strokeform.tracer import get_tracer, trace


def _result(shape_type, score):
    return RecognitionResult(
        type=shape_type,
        label=shape_type.capitalize(),
        score=score,
        confidence=score / 100,
    )


def detect_line(fp, overshoot):
    if fp.straightness > 0.65 and not fp.is_closed and not overshoot and fp.corners <= 2:
        return _result("line", 90)
    return None


def detect_arc(fp, overshoot):
    if not fp.is_closed and not overshoot and fp.corners <= 1 and fp.straightness < 0.6:
        return _result("arc", 70)
    return None


def detect_triangle(fp, overshoot):
    if fp.is_closed and 2 <= fp.corners <= 3 and 0.3 <= fp.aspect_ratio <= 3.0:
        return _result("triangle", 85)
    return None


def detect_rectangle(fp, overshoot):
    if fp.is_closed and 3 <= fp.corners <= 4 and 0.3 < fp.aspect_ratio < 3.0:
        return _result("rectangle", 80)
    return None


def detect_circle(fp, overshoot):
    if ((fp.is_closed or overshoot)
            and fp.corners <= 1
            and fp.straightness < 0.5
            and 0.3 <= fp.aspect_ratio <= 3.0):
        return _result("circle", 80)
    return None


DETECTORS = (detect_line, detect_arc, detect_triangle, detect_rectangle, detect_circle)

BUILTIN_TYPES = ("line", "arc", "triangle", "rectangle", "circle")


@trace(label="classify")
def classify(fingerprint, points, config=None):
    """
    Rank the built-in primitive types a stroke could be.

    Strokes with fewer than two points return no candidates before any rule
    runs. This departs from the rule table, under which a lone point's zero
    straightness and open ends would otherwise make it an arc.

    Args:
        fingerprint: Fingerprint of the stroke
        points: the stroke itself, for the overshoot check
        config: optional EngineConfig

    Returns:
        list of RecognitionResult sorted by descending score; ties keep
        detector order
    """
    tracer = get_tracer()

    # a lone point has no shape to match
    if fingerprint.point_count < 2:
        tracer.event("No candidate types")
        return []

    threshold = config.recognition.overshoot_threshold if config is not None else 50.0
    overshoot = check_overshoot(points, threshold)

    results = []
    for detector in DETECTORS:
        result = detector(fingerprint, overshoot)
        if result is not None:
            results.append(result)

    results.sort(key=lambda r: r.score, reverse=True)

    tracer.detail(
        config,
        "Fingerprint",
        corners=fingerprint.corners,
        straightness=fingerprint.straightness,
        closed=fingerprint.is_closed,
        aspect=fingerprint.aspect_ratio,
    )
    if results:
        tracer.event(f"Top candidate: {results[0].type} ({results[0].score:.0f}) of {len(results)}")
    else:
        tracer.event("No candidate types")

    return results


def primitive_similarity(fp1, fp2):
    """
    Geometric similarity of two stroke fingerprints, 0..1.

    Weighted blend of straightness (0.3), aspect ratio (0.25), corner count
    (0.2), closure (0.15) and size (0.1). Straightness differing by more
    than 0.5 vetoes the match outright.
    """
    straightness_diff = abs(fp1.straightness - fp2.straightness)
    if straightness_diff > 0.5:
        return 0.0

    straightness_score = max(0.0, 1 - straightness_diff)

    aspect1 = _folded_aspect(fp1.aspect_ratio)
    aspect2 = _folded_aspect(fp2.aspect_ratio)
    aspect_score = max(0.0, 1 - abs(aspect1 - aspect2) * 2)

    corner_score = max(0.0, 1 - abs(fp1.corners - fp2.corners) / 4)

    closure_score = 1.0 if fp1.is_closed == fp2.is_closed else 0.0

    larger = max(fp1.size, fp2.size)
    size_diff = abs(fp1.size - fp2.size) / larger if larger > 0 else 0.0
    size_score = max(0.0, 1 - size_diff)

    return (
        straightness_score * 0.3
        + aspect_score * 0.25
        + corner_score * 0.2
        + closure_score * 0.15
        + size_score * 0.1
    )


def _folded_aspect(aspect_ratio):
    """Aspect ratio folded into (0, 1] so 2.0 and 0.5 compare equal."""
    if aspect_ratio <= 0:
        return 0.0
    return min(aspect_ratio, 1 / aspect_ratio)


@trace(label="classify_with_library")
def classify_with_library(fingerprint, points, library, config=None):
    """
    Built-in candidates plus matching user primitives from the library.

    A user primitive is offered when its saved fingerprint is at least
    matching.primitive_threshold similar to this stroke, scored as the
    similarity in percent.
    """
    tracer = get_tracer()
    results = classify(fingerprint, points, config)

    threshold = config.matching.primitive_threshold if config is not None else 0.8

    for key, item in library.items():
        if item.kind != LibraryItemKind.USER_PRIMITIVE or item.fingerprint is None:
            continue

        similarity = primitive_similarity(fingerprint, item.fingerprint)
        tracer.detail(config, f"User primitive '{key}' similarity {similarity:.2f}")
        if similarity >= threshold:
            results.append(RecognitionResult(
                type=key,
                label=item.label,
                score=round(similarity * 100),
                confidence=min(1.0, similarity),
                is_user_primitive=True,
            ))

    results.sort(key=lambda r: r.score, reverse=True)
    return results
