"""
Canvas session orchestrator.

Owns the arena of strokes drawn so far and drives the engine on each user
action: recognition when a stroke is completed, refinement and shape
building when a suggestion is accepted, and composition detection after
every change. Component handles are positions in the stroke list.
"""

from strokeform.components.detection import label_pending, match_compositions, resolve_component_type
from strokeform.config import EngineConfig
from strokeform.library import Library
from strokeform.models import Component, LibraryItemKind, compute_bbox, generate_stroke_id
from strokeform.recognition.classifier import BUILTIN_TYPES, classify_with_library
from strokeform.recognition.fingerprint import extract_fingerprint
from strokeform.shapes.builder import build_shape
from strokeform.shapes.refine import refine
from strokeform.strokes.simplify import preprocess_stroke
from strokeform.tracer import get_tracer, trace


class Canvas:
    """
    A drawing session over a library.

    Attributes:
        strokes: original stroke points, in drawing order
        processed: refinement-settings output per stroke, or None
        context: accepted type or library key per stroke, "" while pending
        shapes: idealized Shape per accepted built-in stroke, else None
        suggestions: ranked candidates for the selected stroke
        selected: handle of the stroke awaiting a decision, or None
        composition_matches: latest composition detection result
    """

    def __init__(self, library=None, config=None):
        self.config = config or EngineConfig()
        self.library = library if library is not None else Library.with_builtins(self.config)
        self.clear()

    def clear(self):
        """Remove every stroke and reset the selection."""
        self.strokes = []
        self.stroke_ids = []
        self.processed = []
        self.fingerprints = []
        self.context = []
        self.refined = []
        self.shapes = []
        self.suggestions = []
        self.selected = None
        self.composition_matches = []

    @trace(label="add_stroke")
    def add_stroke(self, points):
        """
        Complete a stroke: refine it per the settings, recognize it and
        select it.

        Strokes with fewer than two points are ignored.

        Returns:
            list of RecognitionResult for the new stroke
        """
        tracer = get_tracer()
        stroke = [[float(p[0]), float(p[1])] for p in points]
        if len(stroke) < 2:
            tracer.event(f"Ignoring stroke with {len(stroke)} points", level="WARN")
            return []

        processed = preprocess_stroke(stroke, self.config.refinement)
        analyzed = processed or stroke
        fingerprint = extract_fingerprint(analyzed, self.config)

        self.strokes.append(stroke)
        self.stroke_ids.append(generate_stroke_id(stroke))
        self.processed.append(processed)
        self.fingerprints.append(fingerprint)
        self.context.append("")
        self.refined.append(None)
        self.shapes.append(None)

        self.selected = len(self.strokes) - 1
        self.suggestions = classify_with_library(fingerprint, analyzed, self.library, self.config)
        self.detect()
        return self.suggestions

    @trace(label="accept")
    def accept(self, index, accepted_type):
        """
        Accept a type for a stroke.

        Built-in types are refined into idealized geometry with a Shape;
        user primitives keep the original stroke and get no Shape. The
        library usage count of the accepted key is bumped.

        Returns:
            list of CompositionMatch after the change
        """
        tracer = get_tracer()
        if not 0 <= index < len(self.strokes):
            raise IndexError(f"No stroke with handle {index}")

        self.context[index] = accepted_type
        self.library.bump_usage(accepted_type)

        item = self.library.get(accepted_type)
        # corner indices in the fingerprint refer to the analyzed stroke
        stroke = self.processed[index] or self.strokes[index]

        if item is not None and item.kind == LibraryItemKind.USER_PRIMITIVE:
            self.refined[index] = None
            self.shapes[index] = None
        elif accepted_type in BUILTIN_TYPES:
            fingerprint = self.fingerprints[index]
            refined = refine(stroke, accepted_type, fingerprint, self.config)
            self.refined[index] = refined
            self.shapes[index] = build_shape(
                stroke, accepted_type, refined, compute_bbox(stroke), fingerprint,
            )
        else:
            tracer.event(f"Accepted '{accepted_type}' without geometry")

        if self.selected == index:
            self.reject()

        return self.detect()

    def reject(self):
        """Dismiss the current suggestions, leaving the stroke pending."""
        self.selected = None
        self.suggestions = []

    def components(self):
        """Component view of every stroke, handles in drawing order."""
        result = []
        for idx, stroke in enumerate(self.strokes):
            recognized_as = self.context[idx]
            result.append(Component(
                index=idx,
                stroke_id=self.stroke_ids[idx],
                stroke=stroke,
                refined_stroke=self.refined[idx],
                recognized_as=recognized_as,
                type=resolve_component_type(recognized_as, self.library),
                fingerprint=self.fingerprints[idx],
                bounds=compute_bbox(stroke),
                shape=self.shapes[idx],
            ))
        return result

    def detect(self):
        """Re-run composition detection over the whole canvas."""
        self.composition_matches = match_compositions(
            self.components(), self.library,
            self.config.spatial.composition_proximity, self.config,
        )
        return self.composition_matches

    @trace(label="save_selection_to_library")
    def save_selection_to_library(self, name):
        """
        Save the canvas to the library under name.

        A single accepted stroke is saved as a user primitive and relabeled
        with its new key. Otherwise every stroke is saved together as a
        composition, pending strokes becoming art0, art1, ...

        Returns:
            the new library key

        Raises:
            LibraryKeyExistsError: if the name's key is taken
            ValueError: if the canvas is empty
        """
        if not self.strokes:
            raise ValueError("Nothing on the canvas to save")

        accepted = [idx for idx, ctx in enumerate(self.context) if ctx]

        if len(accepted) == 1:
            idx = accepted[0]
            based_on = self.context[idx] if self.context[idx] in BUILTIN_TYPES else None
            key = self.library.save_primitive(name, self.strokes[idx], based_on, self.config)
            self.context[idx] = key
        else:
            components = self.components()
            key = self.library.save_composition(name, components, self.config)
            for comp in label_pending(components, self.library):
                self.context[comp.index] = comp.recognized_as

        self.detect()
        return key
