"""
Composition fingerprints, fuzzy fingerprint matching and bounded subset
search.

A composition fingerprint is an order-invariant summary of a set of
components: their canonical type sequence plus counts of each spatial
relationship. Matching compares a candidate against a saved library
fingerprint; subset search looks for a matching group inside a larger
spatial cluster under an explicit combination budget.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from strokeform.components.spatial import build_spatial_graph, proximity_graph
from strokeform.config import EngineConfig
from strokeform.models import (
    CompositionFingerprint, MatchDetails, Relationship, RelationshipHistogram,
)
from strokeform.recognition.classifier import primitive_similarity
from strokeform.tracer import get_tracer, trace

ART_TYPE = "art"
ART_PATTERN = re.compile(r"^art\d*$")


def normalize_type(type_name):
    """Collapse synthetic art labels (art, art0, art12, ...) into 'art'."""
    if ART_PATTERN.match(type_name or ""):
        return ART_TYPE
    return type_name


def canonicalize_components(components):
    """
    Sort components into canonical order.

    By normalized type name, then bounding-box min_x, then min_y. Returns a
    new list.
    """
    return sorted(
        components,
        key=lambda c: (normalize_type(c.type), c.bounds[0], c.bounds[1]),
    )


def fingerprint_composition(components, spatial_graph, fuzzy=False):
    """
    Build the CompositionFingerprint of a set of components.

    Args:
        components: list of Component
        spatial_graph: SpatialGraph over the same components
        fuzzy: mark the fingerprint as tolerant of relationship differences

    Returns:
        CompositionFingerprint
    """
    canonical = canonicalize_components(components)
    types = [normalize_type(c.type) for c in canonical]

    histogram = RelationshipHistogram(
        touching=spatial_graph.count(Relationship.TOUCHING),
        intersecting=spatial_graph.count(Relationship.INTERSECTING),
        containment=len(spatial_graph.containment),
    )

    rel_string = "-".join(f"{count}{name}" for name, count in histogram.items() if count > 0)
    type_string = "+".join(types)
    topology_hash = f"{type_string}-{rel_string}" if rel_string else type_string

    return CompositionFingerprint(
        component_types=types,
        component_count=len(types),
        type_histogram=dict(Counter(types)),
        relationship_histogram=histogram,
        topology_hash=topology_hash,
        canonical_order=[c.index for c in canonical],
        fuzzy_relationships=fuzzy,
    )


def single_component_fingerprint(component):
    """Fingerprint of a lone component with no relationships."""
    type_name = normalize_type(component.type)
    return CompositionFingerprint(
        component_types=[type_name],
        component_count=1,
        type_histogram={type_name: 1},
        topology_hash=type_name,
        canonical_order=[component.index],
    )


def _art_similarity(candidate_components, library_components):
    """Mean primitive similarity of paired art components, or None if unpaired."""
    art1 = [c for c in canonicalize_components(candidate_components) if normalize_type(c.type) == ART_TYPE]
    art2 = [c for c in canonicalize_components(library_components) if normalize_type(c.type) == ART_TYPE]

    if not art1 or len(art1) != len(art2):
        return None

    total = sum(primitive_similarity(a.fingerprint, b.fingerprint) for a, b in zip(art1, art2))
    return total / len(art1)


def _relationship_score(candidate, library_fp, fuzzy_scores):
    """Relationship agreement in 0..1, or None for an outright fuzzy reject."""
    cand_hist = candidate.relationship_histogram
    lib_hist = library_fp.relationship_histogram

    if library_fp.fuzzy_relationships:
        if lib_hist.has_any() and not cand_hist.has_any():
            return None

        total = 0.0
        for (name, lib_count), (_, cand_count) in zip(lib_hist.items(), cand_hist.items()):
            diff = abs(cand_count - lib_count)
            total += fuzzy_scores[diff] if diff < len(fuzzy_scores) else 0.0
        return total / 3

    exact = sum(
        1 for (_, lib_count), (_, cand_count) in zip(lib_hist.items(), cand_hist.items())
        if lib_count == cand_count
    )
    return exact / 3


def match_composition_fingerprints(candidate, library_fp, threshold=0.8,
                                   candidate_components=None, library_components=None,
                                   config=None):
    """
    Score a candidate composition fingerprint against a library one.

    Rejects on differing component counts or type sequences. The type score
    is the share of components whose type counts agree; art components are
    instead compared geometrically and count as agreeing when their mean
    similarity reaches threshold. The relationship score is exact per kind,
    or graded by fuzzy_scores when the library fingerprint is fuzzy. The
    final score is their product.

    Returns:
        MatchDetails
    """
    tracer = get_tracer()

    if candidate.component_count != library_fp.component_count:
        return MatchDetails(matches=False, score=0.0)

    if candidate.type_signature != library_fp.type_signature:
        return MatchDetails(matches=False, score=0.0)

    all_types = sorted(set(candidate.type_histogram) | set(library_fp.type_histogram))
    type_matches = 0
    total_types = 0

    for type_name in all_types:
        count1 = candidate.type_histogram.get(type_name, 0)
        count2 = library_fp.type_histogram.get(type_name, 0)

        if type_name == ART_TYPE and candidate_components and library_components:
            similarity = _art_similarity(candidate_components, library_components)
            if similarity is not None:
                tracer.detail(config, f"Art geometric similarity ~{similarity:.2f}")
            if similarity is not None and similarity >= threshold:
                type_matches += count1
        elif count1 == count2:
            type_matches += count1

        total_types += max(count1, count2)

    type_score = type_matches / total_types if total_types > 0 else 1.0

    fuzzy_scores = config.matching.fuzzy_scores if config is not None else [1.0, 0.7, 0.4]
    rel_score = _relationship_score(candidate, library_fp, fuzzy_scores)
    if rel_score is None:
        tracer.detail(config, "Fuzzy relationship reject: library has relationships, candidate has none")
        return MatchDetails(matches=False, score=0.0, type_score=type_score, rel_score=0.0)

    score = type_score * rel_score
    return MatchDetails(
        matches=score >= threshold,
        score=score,
        type_score=type_score,
        rel_score=rel_score,
    )


@dataclass
class SearchBudget:
    """
    Effort limit for subset search.

    max_combinations caps the number of complete candidate subsets scored;
    max_steps caps the search nodes visited, partial subsets included;
    stop_on_first ends the search at the first match.
    """
    max_combinations: int = 1000
    max_steps: int = 20000
    stop_on_first: bool = True
    tested: int = 0
    steps: int = 0

    @classmethod
    def from_config(cls, config):
        if config is None:
            return cls()
        return cls(
            max_combinations=config.matching.max_combinations,
            max_steps=config.matching.max_search_steps,
            stop_on_first=config.matching.stop_on_first,
        )

    @property
    def exhausted(self):
        return self.tested >= self.max_combinations or self.steps >= self.max_steps


@dataclass
class SubsetMatch:
    """A group of cluster components that matched a library composition."""
    components: List = field(default_factory=list)
    details: MatchDetails = field(default_factory=MatchDetails)

    @property
    def indices(self):
        return [c.index for c in self.components]


@trace(label="find_subset_match")
def find_subset_match(cluster_components, library_item, config=None, budget=None,
                      proximity_threshold=None):
    """
    Find components within a cluster that form a library composition.

    Single-component compositions are checked component by component. For
    larger ones, components are grouped by type and a depth-first search
    extends a subset one required type at a time, only adding components
    within proximity_threshold of an already chosen member. Each complete
    subset gets its own spatial graph and fingerprint and is scored against
    the item's composition fingerprint.

    Args:
        cluster_components: candidate components
        library_item: composition LibraryItem to look for
        config: optional EngineConfig, for threshold, budget and fuzzy scores
        budget: SearchBudget; built from config when omitted
        proximity_threshold: reach used for pruning and for touching edges;
            defaults to config.spatial.composition_proximity

    Returns:
        list of SubsetMatch, at most one when budget.stop_on_first
    """
    tracer = get_tracer()
    config = config or EngineConfig()
    budget = budget or SearchBudget.from_config(config)
    if proximity_threshold is None:
        proximity_threshold = config.spatial.composition_proximity
    threshold = config.matching.threshold

    library_fp = library_item.composition_fingerprint
    library_components = library_item.components
    matches = []

    if library_fp is None or not library_fp.component_types:
        return matches

    required = list(library_fp.component_types)
    if len(cluster_components) < len(required):
        return matches

    if len(required) == 1:
        for comp in cluster_components:
            if budget.exhausted:
                break
            if normalize_type(comp.type) != required[0]:
                continue
            budget.tested += 1
            details = match_composition_fingerprints(
                single_component_fingerprint(comp), library_fp, threshold,
                [comp], library_components, config,
            )
            if details.matches:
                matches.append(SubsetMatch(components=[comp], details=details))
                if budget.stop_on_first:
                    break
        return matches

    by_type = {}
    for comp in cluster_components:
        by_type.setdefault(normalize_type(comp.type), []).append(comp)

    for type_name, count in Counter(required).items():
        have = len(by_type.get(type_name, []))
        if have < count:
            tracer.detail(config, f"Missing type '{type_name}' (need {count}, have {have})")
            return matches

    def test_subset(subset):
        budget.tested += 1
        graph = build_spatial_graph(subset, touching_threshold=proximity_threshold)
        candidate = fingerprint_composition(subset, graph)
        details = match_composition_fingerprints(
            candidate, library_fp, threshold, subset, library_components, config,
        )
        tracer.detail(
            config,
            f"Combination {budget.tested}: {candidate.topology_hash} score={details.score:.2f}",
        )
        if details.matches:
            matches.append(SubsetMatch(components=list(subset), details=details))

    reach = proximity_graph(cluster_components, proximity_threshold)

    def extend(subset, remaining):
        if budget.exhausted or (matches and budget.stop_on_first):
            return
        budget.steps += 1
        if not remaining:
            test_subset(subset)
            return

        chosen = {c.index for c in subset}
        nearby = set().union(*(reach[c.index] for c in subset)) if subset else None
        for candidate in by_type[remaining[0]]:
            if candidate.index in chosen:
                continue
            if nearby is not None and candidate.index not in nearby:
                continue
            extend(subset + [candidate], remaining[1:])
            if budget.exhausted or (matches and budget.stop_on_first):
                return

    extend([], required)
    tracer.event(
        f"Tested {budget.tested} combinations in {budget.steps} steps, "
        f"found {len(matches)} matches"
    )
    return matches
