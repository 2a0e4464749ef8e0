"""
Library of built-in and user-saved shapes.

The library maps keys to LibraryItem models. Built-in primitives (circle,
triangle, rectangle) and optionally the Arrow composition are seeded at
construction and can never be deleted. User primitives and compositions are
added under a key derived from their display name; saving under an existing
key is rejected without touching the library.
"""

import re

from strokeform.components.composition import fingerprint_composition
from strokeform.components.detection import label_pending
from strokeform.components.spatial import build_spatial_graph
from strokeform.config import EngineConfig
from strokeform.models import (
    CompositionFingerprint, LibraryItem, LibraryItemKind, RecognitionResult,
    RelationshipHistogram, SemanticDescription,
)
from strokeform.recognition.fingerprint import extract_fingerprint
from strokeform.tracer import get_tracer

BUILTIN_SHAPES = ("circle", "rectangle", "triangle", "line", "arc")


class LibraryKeyExistsError(ValueError):
    """Raised when saving under a key that is already taken."""

    def __init__(self, key):
        super().__init__(f"Library already contains an item with key '{key}'")
        self.key = key


class BuiltinItemError(ValueError):
    """Raised when trying to delete a built-in library item."""

    def __init__(self, key):
        super().__init__(f"Built-in library item '{key}' cannot be deleted")
        self.key = key


def derive_key(name):
    """Library key for a display name: trimmed, lowercased, whitespace runs as '-'."""
    return re.sub(r"\s+", "-", name.strip().lower())


def fuzzy_match_score(query, target):
    """
    Score how well a typed query matches a label.

    100 for an exact match, 80 for a prefix, 60 for a substring, 40 when the
    query's characters appear in order, else 0. Case-insensitive.
    """
    query = query.lower()
    target = target.lower()

    if target == query:
        return 100
    if target.startswith(query):
        return 80
    if query in target:
        return 60

    pos = 0
    for ch in target:
        if pos < len(query) and ch == query[pos]:
            pos += 1
    if pos == len(query):
        return 40
    return 0


def builtin_items(seed_arrow=True):
    """Fresh built-in library entries keyed by name."""
    items = {
        "circle": LibraryItem(kind=LibraryItemKind.BUILTIN_PRIMITIVE, shape_type="circle", label="Circle"),
        "triangle": LibraryItem(kind=LibraryItemKind.BUILTIN_PRIMITIVE, shape_type="triangle", label="Triangle"),
        "rectangle": LibraryItem(kind=LibraryItemKind.BUILTIN_PRIMITIVE, shape_type="rectangle", label="Rectangle"),
    }

    if seed_arrow:
        items["arrow"] = LibraryItem(
            kind=LibraryItemKind.BUILTIN_COMPOSITION,
            label="Arrow",
            composition_fingerprint=CompositionFingerprint(
                component_types=["line", "triangle"],
                component_count=2,
                type_histogram={"line": 1, "triangle": 1},
                relationship_histogram=RelationshipHistogram(touching=1),
                topology_hash="line+triangle-1touching",
                canonical_order=[0, 1],
                fuzzy_relationships=True,
            ),
            semantics=SemanticDescription(
                name="Arrow",
                component_types=["line", "triangle"],
                relationships=["line touching triangle"],
            ),
            fuzzy_relationships=True,
        )

    return items


class Library:
    """
    Key to LibraryItem store.

    Behaves as a read-only mapping (get, items, keys, in, len, indexing);
    all mutation goes through the save, delete and bump_usage methods.
    """

    def __init__(self, items=None):
        self._items = dict(items or {})

    @classmethod
    def with_builtins(cls, config=None):
        """A library seeded with the built-in items."""
        seed_arrow = config.library.seed_arrow if config is not None else True
        return cls(builtin_items(seed_arrow=seed_arrow))

    derive_key = staticmethod(derive_key)

    # Mapping access

    def __getitem__(self, key):
        return self._items[key]

    def __contains__(self, key):
        return key in self._items

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def get(self, key, default=None):
        return self._items.get(key, default)

    def items(self):
        return list(self._items.items())

    def keys(self):
        return list(self._items.keys())

    def to_dict(self):
        """Copy of the underlying key to item mapping."""
        return dict(self._items)

    # Mutation

    def _claim_key(self, name):
        key = derive_key(name)
        if not key:
            raise ValueError("Library item name must not be empty")
        if key in self._items:
            get_tracer().event(f"Name already exists: '{name}'", level="WARN")
            raise LibraryKeyExistsError(key)
        return key

    def save_primitive(self, name, stroke, based_on=None, config=None):
        """
        Save a single stroke as a user primitive.

        Args:
            name: display name; the key is derived from it
            stroke: the original (unrefined) stroke points
            based_on: built-in type the stroke was accepted as, if any
            config: optional EngineConfig for fingerprinting

        Returns:
            the new key

        Raises:
            LibraryKeyExistsError: if the derived key is taken
        """
        key = self._claim_key(name)

        self._items[key] = LibraryItem(
            kind=LibraryItemKind.USER_PRIMITIVE,
            label=name.strip(),
            usage_count=1,
            strokes=[[list(p) for p in stroke]],
            fingerprint=extract_fingerprint(stroke, config),
            based_on=based_on if based_on in BUILTIN_SHAPES else None,
        )
        get_tracer().event(f"Saved primitive '{key}'")
        return key

    def save_composition(self, name, components, config=None):
        """
        Save a group of components as a composition.

        Unlabeled components are saved as art0, art1, ... The composition
        fingerprint is built over a fresh spatial graph and marked fuzzy.

        Returns:
            the new key

        Raises:
            LibraryKeyExistsError: if the derived key is taken
        """
        key = self._claim_key(name)
        config = config or EngineConfig()

        labeled = label_pending(components, self)
        graph = build_spatial_graph(labeled, touching_threshold=config.spatial.touching_threshold)
        fingerprint = fingerprint_composition(labeled, graph, fuzzy=True)

        by_index = {c.index: c for c in labeled}
        relationships = [
            f"{by_index[conn.a].recognized_as} {conn.relationship.value} {by_index[conn.b].recognized_as}"
            for conn in graph.connections
        ]

        self._items[key] = LibraryItem(
            kind=LibraryItemKind.COMPOSITION,
            label=name.strip(),
            usage_count=1,
            components=labeled,
            composition_fingerprint=fingerprint,
            spatial_graph=graph,
            semantics=SemanticDescription(
                name=name.strip(),
                component_types=fingerprint.component_types,
                relationships=relationships,
            ),
            fuzzy_relationships=True,
        )
        get_tracer().event(f"Saved composition '{key}': {fingerprint.topology_hash}")
        return key

    def delete(self, key):
        """
        Remove a user item.

        Raises:
            KeyError: if key is not in the library
            BuiltinItemError: if the item is built in
        """
        item = self._items[key]
        if item.is_builtin:
            raise BuiltinItemError(key)
        del self._items[key]

    def bump_usage(self, key):
        """Increment an item's usage count; unknown keys are ignored."""
        item = self._items.get(key)
        if item is None:
            return None
        self._items[key] = item.model_copy(update={"usage_count": item.usage_count + 1})
        return self._items[key].usage_count

    # Queries

    def search(self, query):
        """
        Items whose label fuzzily matches query, best first.

        Returns:
            list of RecognitionResult with type set to the item key
        """
        query = query.strip()
        if not query:
            return []

        results = []
        for key, item in self._items.items():
            score = fuzzy_match_score(query, item.label)
            if score > 0:
                results.append(RecognitionResult(
                    type=key,
                    label=item.label,
                    score=score,
                    confidence=score / 100,
                    is_user_primitive=item.kind == LibraryItemKind.USER_PRIMITIVE,
                ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def compositions(self):
        """(key, item) pairs for built-in and user compositions."""
        return [(k, v) for k, v in self._items.items() if v.is_composition]

    def user_primitives(self):
        return [(k, v) for k, v in self._items.items() if v.kind == LibraryItemKind.USER_PRIMITIVE]

    def list_based_on(self, builtin_type):
        """User primitives saved from a stroke accepted as builtin_type."""
        return [(k, v) for k, v in self.user_primitives() if v.based_on == builtin_type]
