"""
Spatial relationships and proximity clustering over canvas components.

The graph is always rebuilt from scratch over the component list it is
given; connection and containment indices are component handles.
"""

import networkx as nx

from strokeform.models import Connection, Containment, Relationship, SpatialGraph
from strokeform.shapes.intersections import intersect
from strokeform.strokes.geometry import bounding_box_distance, bounds_contain, bounds_overlap
from strokeform.tracer import get_tracer, trace


def _is_line(component):
    return component.type == "line" or component.recognized_as == "line"


def relate_pair(comp_a, comp_b, touching_threshold):
    """
    Classify one component pair.

    Returns:
        ("containment", outer, inner), ("intersecting", points or None),
        ("touching", distance), or None when unrelated
    """
    if not _is_line(comp_a) and not _is_line(comp_b):
        if bounds_contain(comp_a.bounds, comp_b.bounds):
            return ("containment", comp_a.index, comp_b.index)
        if bounds_contain(comp_b.bounds, comp_a.bounds):
            return ("containment", comp_b.index, comp_a.index)

    if bounds_overlap(comp_a.bounds, comp_b.bounds):
        points = None
        if comp_a.shape is not None and comp_b.shape is not None:
            points = intersect(comp_a.shape, comp_b.shape) or None
        return ("intersecting", points)

    dist = bounding_box_distance(comp_a.bounds, comp_b.bounds)
    if dist < touching_threshold:
        return ("touching", dist)

    return None


@trace(label="build_spatial_graph")
def build_spatial_graph(components, touching_threshold=50.0):
    """
    Derive pairwise relationships among components.

    Per unordered pair, in priority order: bounding-box containment (only
    when neither is a line), then overlap (intersecting, with exact
    intersection points when both have shapes), then proximity below
    touching_threshold (touching). Each pair yields at most one relation.
    """
    tracer = get_tracer()
    graph = SpatialGraph()

    for i, comp_a in enumerate(components):
        for comp_b in components[i + 1:]:
            relation = relate_pair(comp_a, comp_b, touching_threshold)
            if relation is None:
                continue

            kind = relation[0]
            if kind == "containment":
                graph.containment.append(Containment(outer=relation[1], inner=relation[2]))
            elif kind == "intersecting":
                graph.connections.append(Connection(
                    a=comp_a.index,
                    b=comp_b.index,
                    relationship=Relationship.INTERSECTING,
                    distance=0.0,
                    intersection_points=relation[1],
                ))
            else:
                graph.connections.append(Connection(
                    a=comp_a.index,
                    b=comp_b.index,
                    relationship=Relationship.TOUCHING,
                    distance=relation[1],
                ))

    tracer.event(
        f"Spatial graph: {len(graph.connections)} connections, "
        f"{len(graph.containment)} containments over {len(components)} components"
    )
    return graph


def proximity_graph(components, proximity_threshold):
    """networkx graph linking components whose bboxes are closer than the threshold."""
    graph = nx.Graph()
    for comp in components:
        graph.add_node(comp.index)

    for i, comp_a in enumerate(components):
        for comp_b in components[i + 1:]:
            if bounding_box_distance(comp_a.bounds, comp_b.bounds) < proximity_threshold:
                graph.add_edge(comp_a.index, comp_b.index)

    return graph


@trace(label="cluster")
def cluster(components, proximity_threshold):
    """
    Partition components into spatial clusters.

    Two components share a cluster when a chain of components, each closer
    than proximity_threshold to the next, links them. Members are listed in
    input order and clusters are ordered by their first member.

    Returns:
        list of lists of components
    """
    tracer = get_tracer()

    if not components:
        return []

    graph = proximity_graph(components, proximity_threshold)
    position = {comp.index: pos for pos, comp in enumerate(components)}
    by_index = {comp.index: comp for comp in components}

    groups = [sorted(group, key=position.get) for group in nx.connected_components(graph)]
    groups.sort(key=lambda g: position[g[0]])

    tracer.event(f"Found {len(groups)} clusters from {len(components)} components", graph=graph)
    return [[by_index[idx] for idx in group] for group in groups]
