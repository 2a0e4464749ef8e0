"""Tests for composition fingerprints, matching and subset search."""

import itertools

import pytest


def composition_item(types, touching=0, intersecting=0, containment=0, fuzzy=True, label="Test"):
    """Create a composition library item from its type sequence and relationship counts."""
    from collections import Counter

    from strokeform.models import (
        CompositionFingerprint, LibraryItem, LibraryItemKind, RelationshipHistogram,
    )

    return LibraryItem(
        kind=LibraryItemKind.COMPOSITION,
        label=label,
        composition_fingerprint=CompositionFingerprint(
            component_types=list(types),
            component_count=len(types),
            type_histogram=dict(Counter(types)),
            relationship_histogram=RelationshipHistogram(
                touching=touching, intersecting=intersecting, containment=containment,
            ),
            fuzzy_relationships=fuzzy,
        ),
        fuzzy_relationships=fuzzy,
    )


class TestCanonicalization:
    """Tests for canonical ordering and composition fingerprints."""

    def test_art_labels_normalized(self):
        """Test that numbered art labels collapse into one bucket."""
        from strokeform.components.composition import normalize_type

        assert normalize_type("art0") == "art"
        assert normalize_type("art12") == "art"
        assert normalize_type("art") == "art"
        assert normalize_type("artwork") == "artwork"
        assert normalize_type("circle") == "circle"

    def test_canonical_order_by_type_then_position(self, make_component):
        """Test the sort keys of canonicalization."""
        from strokeform.components.composition import canonicalize_components

        components = [
            make_component(0, "line", [50, 0, 60, 0]),
            make_component(1, "circle", [30, 0, 40, 10]),
            make_component(2, "line", [10, 0, 20, 0]),
            make_component(3, "art", [0, 0, 5, 5], recognized_as="art3"),
        ]

        ordered = canonicalize_components(components)

        assert [c.index for c in ordered] == [3, 1, 2, 0]

    def test_fingerprint_order_invariant(self, make_component):
        """Test that input ordering does not change the composition fingerprint."""
        from strokeform.components.composition import fingerprint_composition
        from strokeform.components.spatial import build_spatial_graph

        components = [
            make_component(0, "circle", [0, 0, 20, 20]),
            make_component(1, "line", [25, 10, 60, 10]),
            make_component(2, "rectangle", [-10, -10, 100, 100]),
            make_component(3, "line", [70, 50, 90, 50]),
        ]

        fingerprints = []
        for ordering in itertools.permutations(components):
            ordering = list(ordering)
            graph = build_spatial_graph(ordering)
            fingerprints.append(fingerprint_composition(ordering, graph).model_dump())

        assert all(fp == fingerprints[0] for fp in fingerprints)

    def test_topology_hash(self, make_component):
        """Test the hash of a line touching a triangle."""
        from strokeform.components.composition import fingerprint_composition
        from strokeform.components.spatial import build_spatial_graph

        components = [
            make_component(0, "triangle", [48, 10, 78, 40]),
            make_component(1, "line", [0, 0, 50, 0]),
        ]
        fp = fingerprint_composition(components, build_spatial_graph(components))

        assert fp.topology_hash == "line+triangle-1touching"
        assert fp.component_types == ["line", "triangle"]
        assert fp.component_count == len(fp.component_types)
        assert fp.canonical_order == [1, 0]
        assert fp.type_histogram == {"line": 1, "triangle": 1}

    def test_hash_without_relationships(self, make_component):
        """Test that unrelated components hash to their types alone."""
        from strokeform.components.composition import fingerprint_composition
        from strokeform.components.spatial import build_spatial_graph

        components = [
            make_component(0, "circle", [0, 0, 10, 10]),
            make_component(1, "circle", [500, 0, 510, 10]),
        ]
        fp = fingerprint_composition(components, build_spatial_graph(components))

        assert fp.topology_hash == "circle+circle"


class TestFingerprintMatching:
    """Tests for scoring candidate fingerprints against library ones."""

    def test_identical_fingerprints_match(self):
        """Test a perfect match."""
        from strokeform.components.composition import match_composition_fingerprints

        fp = composition_item(["line", "triangle"], touching=1).composition_fingerprint
        result = match_composition_fingerprints(fp, fp)

        assert result.matches
        assert result.score == pytest.approx(1.0)

    def test_count_mismatch_rejected(self):
        """Test that differing component counts never match."""
        from strokeform.components.composition import match_composition_fingerprints

        lib = composition_item(["line", "triangle"], touching=1).composition_fingerprint
        cand = composition_item(["line"]).composition_fingerprint

        result = match_composition_fingerprints(cand, lib)

        assert not result.matches
        assert result.score == 0.0

    def test_type_sequence_mismatch_rejected(self):
        """Test that the same count with different types never matches."""
        from strokeform.components.composition import match_composition_fingerprints

        lib = composition_item(["line", "triangle"], touching=1).composition_fingerprint
        cand = composition_item(["circle", "line"], touching=1).composition_fingerprint

        assert not match_composition_fingerprints(cand, lib).matches

    def test_fuzzy_tolerates_one_extra_relationship(self):
        """Test that an off-by-one relationship count still matches when fuzzy."""
        from strokeform.components.composition import match_composition_fingerprints

        lib = composition_item(["circle", "circle", "line"], touching=1).composition_fingerprint
        cand = composition_item(["circle", "circle", "line"], touching=2, fuzzy=False).composition_fingerprint

        result = match_composition_fingerprints(cand, lib)

        assert result.rel_score == pytest.approx(0.9)
        assert result.matches

    def test_fuzzy_large_difference_fails(self):
        """Test that a difference of three or more scores zero for that kind."""
        from strokeform.components.composition import match_composition_fingerprints

        lib = composition_item(["circle"] * 4, touching=1).composition_fingerprint
        cand = composition_item(["circle"] * 4, touching=4).composition_fingerprint

        result = match_composition_fingerprints(cand, lib)

        assert result.rel_score == pytest.approx(2 / 3)
        assert not result.matches

    def test_fuzzy_rejects_missing_relationships(self):
        """Test that a candidate with no relationships fails a related library entry."""
        from strokeform.components.composition import match_composition_fingerprints

        lib = composition_item(["line", "triangle"], touching=1).composition_fingerprint
        cand = composition_item(["line", "triangle"]).composition_fingerprint

        result = match_composition_fingerprints(cand, lib)

        assert not result.matches
        assert result.score == 0.0

    def test_strict_relationships_require_equality(self):
        """Test that a non-fuzzy entry needs exact relationship counts."""
        from strokeform.components.composition import match_composition_fingerprints

        lib = composition_item(["line", "triangle"], touching=1, fuzzy=False).composition_fingerprint
        cand = composition_item(["line", "triangle"], touching=2).composition_fingerprint

        result = match_composition_fingerprints(cand, lib)

        assert result.rel_score == pytest.approx(2 / 3)
        assert not result.matches

    def test_configured_fuzzy_scores(self, default_config):
        """Test that tolerance scores come from the matching config."""
        from strokeform.components.composition import match_composition_fingerprints

        default_config.matching.fuzzy_scores = [1.0, 0.4]
        lib = composition_item(["circle", "line"], touching=1).composition_fingerprint
        cand = composition_item(["circle", "line"], touching=2).composition_fingerprint

        result = match_composition_fingerprints(cand, lib, config=default_config)

        assert result.rel_score == pytest.approx(0.8)

    def test_art_compared_geometrically(self, triangle_stroke, line_stroke, make_component):
        """Test that art components match only when their strokes look alike."""
        from strokeform.components.composition import match_composition_fingerprints
        from strokeform.recognition.fingerprint import extract_fingerprint

        fp = composition_item(["art", "circle"], touching=1).composition_fingerprint
        saved = make_component(0, "art", [0, 0, 120, 120], recognized_as="art0").model_copy(
            update={"fingerprint": extract_fingerprint(triangle_stroke)})
        same = saved.model_copy(update={"index": 5})
        different = saved.model_copy(update={"fingerprint": extract_fingerprint(line_stroke)})

        alike = match_composition_fingerprints(fp, fp, 0.8, [same], [saved])
        unlike = match_composition_fingerprints(fp, fp, 0.8, [different], [saved])

        assert alike.matches
        assert alike.type_score == pytest.approx(1.0)
        assert not unlike.matches
        assert unlike.type_score == pytest.approx(0.5)


class TestSubsetSearch:
    """Tests for bounded subset search within a cluster."""

    def test_finds_arrow_among_extra_components(self, make_component):
        """Test that the search picks the matching pair out of a larger cluster."""
        from strokeform.components.composition import find_subset_match
        from strokeform.library import Library

        arrow = Library.with_builtins()["arrow"]
        cluster = [
            make_component(0, "circle", [-40, -40, -10, -10]),
            make_component(1, "line", [0, 0, 50, 0]),
            make_component(2, "triangle", [48, 10, 78, 40]),
        ]

        matches = find_subset_match(cluster, arrow)

        assert len(matches) == 1
        assert sorted(matches[0].indices) == [1, 2]
        assert matches[0].details.score >= 0.8

    def test_missing_type_returns_nothing(self, make_component):
        """Test that a cluster without the required types is skipped."""
        from strokeform.components.composition import SearchBudget, find_subset_match
        from strokeform.library import Library

        budget = SearchBudget()
        cluster = [
            make_component(0, "circle", [0, 0, 10, 10]),
            make_component(1, "circle", [15, 0, 25, 10]),
        ]

        assert find_subset_match(cluster, Library.with_builtins()["arrow"], budget=budget) == []
        assert budget.tested == 0

    def test_single_component_composition(self, make_component):
        """Test the per-component check for one-component compositions."""
        from strokeform.components.composition import find_subset_match

        item = composition_item(["circle"])
        cluster = [
            make_component(0, "line", [0, 0, 10, 0]),
            make_component(1, "circle", [0, 5, 10, 15]),
        ]

        matches = find_subset_match(cluster, item)

        assert [m.indices for m in matches] == [[1]]

    def test_far_members_pruned(self, make_component):
        """Test that components out of reach of the subset are never combined."""
        from strokeform.components.composition import SearchBudget, find_subset_match
        from strokeform.library import Library

        budget = SearchBudget()
        cluster = [
            make_component(0, "line", [0, 0, 50, 0]),
            make_component(1, "triangle", [300, 10, 330, 40]),
        ]

        assert find_subset_match(cluster, Library.with_builtins()["arrow"], budget=budget) == []
        assert budget.tested == 0

    def test_search_bounded_by_budget(self, make_component):
        """Test that 200 same-type components stop at the combination cap."""
        from strokeform.components.composition import SearchBudget, find_subset_match

        cluster = [
            make_component(i, "circle", [15 * (i % 20), 15 * (i // 20), 15 * (i % 20) + 10, 15 * (i // 20) + 10])
            for i in range(200)
        ]
        item = composition_item(["circle"] * 5, touching=4)
        budget = SearchBudget(max_combinations=1000, stop_on_first=False)

        find_subset_match(cluster, item, budget=budget)

        assert budget.tested <= 1000
        assert budget.exhausted

    def test_search_stops_on_first_match(self, make_component):
        """Test that the default budget ends the search at the first match."""
        from strokeform.components.composition import SearchBudget, find_subset_match

        cluster = [
            make_component(i, "circle", [15 * (i % 20), 15 * (i // 20), 15 * (i % 20) + 10, 15 * (i // 20) + 10])
            for i in range(200)
        ]
        item = composition_item(["circle"] * 2, touching=1)
        budget = SearchBudget()

        matches = find_subset_match(cluster, item, budget=budget)

        assert len(matches) == 1
        assert budget.tested == 1

    def test_partial_subsets_count_against_budget(self, make_component):
        """Test that a dense cluster whose last required member is out of reach stays bounded."""
        from strokeform.components.composition import SearchBudget, find_subset_match

        cluster = [make_component(i, "line", [i, 0, i + 10, 10]) for i in range(25)]
        cluster.append(make_component(25, "circle", [60, 0, 70, 10]))
        cluster.append(make_component(26, "triangle", [100, 0, 110, 10]))
        item = composition_item(["line"] * 4 + ["triangle"], touching=4)
        budget = SearchBudget()

        assert find_subset_match(cluster, item, budget=budget) == []
        assert budget.tested == 0
        assert budget.steps <= budget.max_steps
        assert budget.exhausted

    def test_step_cap(self, make_component):
        """Test that a small step cap ends the search before the combination cap."""
        from strokeform.components.composition import SearchBudget, find_subset_match

        cluster = [
            make_component(i, "circle", [15 * (i % 20), 15 * (i // 20), 15 * (i % 20) + 10, 15 * (i // 20) + 10])
            for i in range(200)
        ]
        item = composition_item(["circle"] * 5, touching=4)
        budget = SearchBudget(max_steps=50, stop_on_first=False)

        find_subset_match(cluster, item, budget=budget)

        assert budget.steps <= 50
        assert budget.tested < budget.max_combinations

    def test_budget_from_config(self):
        """Test that the step cap follows the matching config."""
        from strokeform.components.composition import SearchBudget
        from strokeform.config import EngineConfig

        config = EngineConfig()
        config.matching.max_search_steps = 123

        assert SearchBudget.from_config(config).max_steps == 123


class TestMatchCompositions:
    """Tests for canvas-wide composition detection."""

    def test_arrow_scenario(self, make_component):
        """Test that a line touching a triangle is recognized as the built-in arrow."""
        from strokeform.components.detection import match_compositions
        from strokeform.library import Library

        components = [
            make_component(0, "line", [0, 0, 50, 0]),
            make_component(1, "triangle", [48, 10, 78, 40]),
        ]

        matches = match_compositions(components, Library.with_builtins(), 35)

        assert len(matches) == 1
        assert matches[0].library_key == "arrow"
        assert matches[0].label == "Arrow"
        assert matches[0].score >= 0.8
        assert sorted(matches[0].matched_component_indices) == [0, 1]

    def test_no_compositions_in_library(self, make_component):
        """Test that a library without compositions yields nothing."""
        from strokeform.components.detection import match_compositions
        from strokeform.config import EngineConfig
        from strokeform.library import Library

        config = EngineConfig()
        config.library.seed_arrow = False
        components = [
            make_component(0, "line", [0, 0, 50, 0]),
            make_component(1, "triangle", [48, 10, 78, 40]),
        ]

        assert match_compositions(components, Library.with_builtins(config), config=config) == []

    def test_larger_compositions_claim_first(self, make_component):
        """Test greedy non-overlapping assignment within a cluster."""
        from strokeform.components.detection import match_compositions
        from strokeform.library import Library, builtin_items

        library = Library({**builtin_items(), "lone-line": composition_item(["line"], label="Lone line")})

        components = [
            make_component(0, "line", [0, 0, 50, 0]),
            make_component(1, "triangle", [48, 10, 78, 40]),
            make_component(2, "line", [500, 0, 550, 0]),
        ]

        matches = match_compositions(components, library, 35)
        found = {(m.library_key, tuple(sorted(m.matched_component_indices))) for m in matches}

        assert found == {("arrow", (0, 1)), ("lone-line", (2,))}

    def test_pending_strokes_labeled_as_art(self, make_component):
        """Test that unaccepted components are typed art for matching."""
        from strokeform.components.detection import label_pending

        components = [
            make_component(0, "", [0, 0, 10, 10]),
            make_component(1, "circle", [20, 0, 30, 10]),
            make_component(2, "", [40, 0, 50, 10]),
        ]

        labeled = label_pending(components, {})

        assert [c.recognized_as for c in labeled] == ["art0", "circle", "art1"]
        assert [c.type for c in labeled] == ["art", "circle", "art"]
        assert components[0].recognized_as == ""

    def test_saved_art_composition_matches(self, triangle_stroke, make_component):
        """Test matching a saved composition that includes an unrecognized stroke."""
        from strokeform.components.detection import match_compositions
        from strokeform.library import Library
        from strokeform.recognition.fingerprint import extract_fingerprint

        def canvas_components():
            blob = make_component(0, "", [0, 0, 120, 120]).model_copy(
                update={"fingerprint": extract_fingerprint(triangle_stroke)})
            circle = make_component(1, "circle", [130, 0, 170, 40])
            return [blob, circle]

        library = Library.with_builtins()
        key = library.save_composition("Sign", canvas_components())

        matches = match_compositions(canvas_components(), library, 35)

        assert key == "sign"
        assert [m.library_key for m in matches] == ["sign"]
        assert matches[0].score == pytest.approx(1.0)
