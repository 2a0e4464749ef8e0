"""
Canvas-wide composition detection.

Clusters the components on the canvas and assigns library compositions to
non-overlapping groups of components within each cluster.
"""

from strokeform.components.composition import (
    ART_PATTERN, SearchBudget, find_subset_match,
)
from strokeform.components.spatial import cluster
from strokeform.config import EngineConfig
from strokeform.models import CompositionMatch, LibraryItemKind
from strokeform.tracer import get_tracer, trace


def resolve_component_type(recognized_as, library):
    """
    Map a component's recognition label to the type used for matching.

    Synthetic art labels collapse to 'art'. Library keys resolve to the
    item's shape type; user primitives without one keep their own key.
    Anything else is already a type name.
    """
    if not recognized_as:
        return ""
    if ART_PATTERN.match(recognized_as):
        return "art"

    item = library.get(recognized_as)
    if item is None:
        return recognized_as
    if item.shape_type:
        return item.shape_type
    if item.kind == LibraryItemKind.USER_PRIMITIVE:
        return recognized_as
    return item.kind.value


def label_pending(components, library):
    """
    Give unlabeled components sequential art labels and resolve every type.

    Returns new Component copies; the inputs are left untouched.
    """
    labeled = []
    art_counter = 0

    for comp in components:
        recognized_as = comp.recognized_as
        if not recognized_as:
            recognized_as = f"art{art_counter}"
            art_counter += 1

        labeled.append(comp.model_copy(update={
            "recognized_as": recognized_as,
            "type": resolve_component_type(recognized_as, library),
        }))

    return labeled


def ordered_compositions(library):
    """Composition items, largest component count first, ties in library order."""
    compositions = [
        (key, item) for key, item in library.items()
        if item.is_composition and item.composition_fingerprint is not None
    ]
    return sorted(compositions, key=lambda kv: -kv[1].composition_fingerprint.component_count)


@trace(label="match_compositions")
def match_compositions(components, library, proximity_threshold=None, config=None):
    """
    Find library compositions among the canvas components.

    Pending components (empty recognized_as) are labeled art0, art1, ... for
    matching purposes. Components are clustered by proximity; within each
    cluster compositions are tried largest first, and components claimed by
    one match are withheld from later compositions in that cluster.

    Args:
        components: list of Component, index fields are their handles
        library: mapping of key to LibraryItem (a Library or plain dict)
        proximity_threshold: clustering and search reach; defaults to
            config.spatial.composition_proximity
        config: optional EngineConfig

    Returns:
        list of CompositionMatch, score in 0..1
    """
    tracer = get_tracer()
    config = config or EngineConfig()
    if proximity_threshold is None:
        proximity_threshold = config.spatial.composition_proximity

    if not components:
        return []

    labeled = label_pending(components, library)
    compositions = ordered_compositions(library)
    if not compositions:
        tracer.event("No compositions in library")
        return []

    clusters = cluster(labeled, proximity_threshold)
    results = []

    for cluster_index, members in enumerate(clusters):
        tracer.detail(
            config,
            f"Cluster {cluster_index}: {[c.type for c in members]}",
        )
        used = set()

        for key, item in compositions:
            available = [c for c in members if c.index not in used]
            if len(available) < item.composition_fingerprint.component_count:
                continue

            found = find_subset_match(
                available, item, config=config,
                budget=SearchBudget.from_config(config),
                proximity_threshold=proximity_threshold,
            )
            if not found:
                continue

            match = found[0]
            used.update(match.indices)
            results.append(CompositionMatch(
                library_key=key,
                label=item.label,
                score=match.details.score,
                matched_component_indices=match.indices,
                cluster_index=cluster_index,
                component_count=len(match.indices),
                details=match.details,
            ))
            tracer.event(f"Matched '{key}' on components {match.indices}")

    tracer.event(f"Found {len(results)} composition matches in {len(clusters)} clusters")
    return results
