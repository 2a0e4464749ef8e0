"""
Pydantic data models for strokeform.

Every value that crosses a module boundary (fingerprints, shapes, components,
spatial graphs, composition fingerprints, library items) is one of these
validated models. Points are [x, y] pairs and bounds are
[min_x, min_y, max_x, max_y] lists throughout.
"""

import hashlib
import time
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


PointList = List[float]


class Relationship(str, Enum):
    """Pairwise spatial relationship between two components."""
    TOUCHING = "touching"
    INTERSECTING = "intersecting"


class LibraryItemKind(str, Enum):
    """Kinds of entries held by the library."""
    BUILTIN_PRIMITIVE = "builtin-primitive"
    USER_PRIMITIVE = "user-primitive"
    BUILTIN_COMPOSITION = "builtin-composition"
    COMPOSITION = "composition"


class Formalism(str, Enum):
    """Whether a shape carries canonical geometry."""
    GEOMETRIC = "geometric"
    FREEFORM = "freeform"


# Stroke-level descriptors

class CornerPoint(BaseModel):
    """A detected corner: stroke index, turn angle (radians) and position."""
    index: int
    angle: float
    x: float
    y: float

    model_config = ConfigDict(extra="forbid", frozen=True)


class AngleAnalysis(BaseModel):
    """Aggregate metrics over a stroke's corner angles."""
    avg_angle: float = 0.0
    variance: float = 0.0
    consistency: float = 0.0
    rectangle_likeness: float = 0.0
    triangle_likeness: float = 0.0

    model_config = ConfigDict(extra="forbid", frozen=True)


class Fingerprint(BaseModel):
    """Derived, immutable descriptor of a single stroke."""
    aspect_ratio: float = 1.0
    straightness: float = 0.0
    is_closed: bool = False
    closure_distance: float = 0.0
    bounds: PointList = Field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    size: float = 0.0
    corners: int = 0
    corner_angles: List[float] = Field(default_factory=list)
    corner_data: List[CornerPoint] = Field(default_factory=list)
    tip_point: Optional[PointList] = None
    angle_analysis: AngleAnalysis = Field(default_factory=AngleAnalysis)
    point_count: int = 0

    model_config = ConfigDict(extra="forbid", frozen=True)


class RecognitionResult(BaseModel):
    """A ranked candidate type for a stroke."""
    type: str
    label: str
    score: float = Field(..., ge=0.0, le=100.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    is_user_primitive: bool = False

    model_config = ConfigDict(extra="forbid")


# Idealized geometry

class SegmentDef(BaseModel):
    """Straight segment from start to end."""
    kind: Literal["segment"] = "segment"
    start: PointList
    end: PointList

    model_config = ConfigDict(extra="forbid")


class CircleDef(BaseModel):
    """Circle with center and radius."""
    kind: Literal["circle"] = "circle"
    center: PointList
    radius: float

    model_config = ConfigDict(extra="forbid")


class PolygonDef(BaseModel):
    """Closed polygon; the last vertex connects back to the first."""
    kind: Literal["polygon"] = "polygon"
    vertices: List[PointList] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


ShapeDefinition = Annotated[
    Union[SegmentDef, CircleDef, PolygonDef],
    Field(discriminator="kind"),
]


class Shape(BaseModel):
    """An accepted shape; definition is None for freeform shapes."""
    type: str
    label: str
    bounds: PointList = Field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    accepted: bool = True
    formalism: Formalism = Formalism.GEOMETRIC
    definition: Optional[ShapeDefinition] = None

    model_config = ConfigDict(extra="forbid")


# Canvas components and their spatial relationships

class Component(BaseModel):
    """
    A stroke placed on the canvas with its recognized type and geometry.

    index is the component's handle: its position in the component list
    passed to the computation that produced it.
    """
    index: int
    stroke_id: str = ""
    stroke: List[PointList] = Field(default_factory=list)
    refined_stroke: Optional[Union[List[PointList], List[List[PointList]]]] = None
    recognized_as: str = ""
    type: str = ""
    fingerprint: Fingerprint = Field(default_factory=Fingerprint)
    bounds: PointList = Field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    shape: Optional[Shape] = None

    model_config = ConfigDict(extra="forbid")


class Connection(BaseModel):
    """A touching or intersecting relationship between components a and b."""
    a: int
    b: int
    relationship: Relationship
    distance: float = 0.0
    intersection_points: Optional[List[PointList]] = None

    model_config = ConfigDict(extra="forbid")


class Containment(BaseModel):
    """Component outer's bounding box fully contains component inner's."""
    outer: int
    inner: int

    model_config = ConfigDict(extra="forbid")


class SpatialGraph(BaseModel):
    """Pairwise relationships over a fixed component index space."""
    connections: List[Connection] = Field(default_factory=list)
    containment: List[Containment] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def count(self, relationship):
        """Number of connections with the given relationship."""
        return sum(1 for c in self.connections if c.relationship == relationship)


# Compositions

class RelationshipHistogram(BaseModel):
    """Counts of each relationship kind in a composition."""
    touching: int = 0
    intersecting: int = 0
    containment: int = 0

    model_config = ConfigDict(extra="forbid")

    def items(self):
        """(name, count) pairs in canonical order."""
        return [
            ("touching", self.touching),
            ("intersecting", self.intersecting),
            ("containment", self.containment),
        ]

    def has_any(self):
        return any(v > 0 for _, v in self.items())


class CompositionFingerprint(BaseModel):
    """Order-invariant descriptor of a multi-component shape."""
    component_types: List[str] = Field(default_factory=list)
    component_count: int = 0
    type_histogram: Dict[str, int] = Field(default_factory=dict)
    relationship_histogram: RelationshipHistogram = Field(default_factory=RelationshipHistogram)
    topology_hash: str = ""
    canonical_order: List[int] = Field(default_factory=list)
    fuzzy_relationships: bool = False

    model_config = ConfigDict(extra="forbid")

    @property
    def type_signature(self):
        """
        The type-sequence portion of the topology hash.

        Rebuilt from component_types so hyphenated type names cannot be
        confused with the relationship suffix.
        """
        return "+".join(self.component_types)


class SemanticDescription(BaseModel):
    """Human-readable summary of a saved composition."""
    name: str
    component_types: List[str] = Field(default_factory=list)
    relationships: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class LibraryItem(BaseModel):
    """A saved primitive or composition."""
    kind: LibraryItemKind
    label: str
    shape_type: Optional[str] = None
    usage_count: int = 0
    created: float = Field(default_factory=time.time)

    # Primitive fields
    strokes: List[List[PointList]] = Field(default_factory=list)
    fingerprint: Optional[Fingerprint] = None
    based_on: Optional[str] = None

    # Composition fields
    components: List[Component] = Field(default_factory=list)
    composition_fingerprint: Optional[CompositionFingerprint] = None
    spatial_graph: Optional[SpatialGraph] = None
    semantics: Optional[SemanticDescription] = None
    fuzzy_relationships: bool = False

    model_config = ConfigDict(extra="forbid")

    @property
    def is_builtin(self):
        return self.kind in (LibraryItemKind.BUILTIN_PRIMITIVE, LibraryItemKind.BUILTIN_COMPOSITION)

    @property
    def is_composition(self):
        return self.kind in (LibraryItemKind.BUILTIN_COMPOSITION, LibraryItemKind.COMPOSITION)


class MatchDetails(BaseModel):
    """Outcome of comparing a candidate composition with a library one."""
    matches: bool = False
    score: float = 0.0
    type_score: Optional[float] = None
    rel_score: Optional[float] = None

    model_config = ConfigDict(extra="forbid")


class CompositionMatch(BaseModel):
    """A library composition found among the canvas components."""
    library_key: str
    label: str
    score: float
    matched_component_indices: List[int] = Field(default_factory=list)
    cluster_index: int = 0
    component_count: int = 0
    details: MatchDetails = Field(default_factory=MatchDetails)

    model_config = ConfigDict(extra="forbid")


class StrokeSet(BaseModel):
    """
    Strokes read from a file, with the type accepted for each.

    types may be shorter than strokes; missing and empty entries are
    pending strokes.
    """
    strokes: List[List[PointList]] = Field(default_factory=list)
    types: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def type_of(self, index):
        return self.types[index] if index < len(self.types) else ""


# ID generation

def generate_stroke_id(points, round_digits=2):
    """
    Generate a deterministic stroke ID from its coordinates.

    Rounds coordinates to avoid floating point instability.
    """
    if not points:
        return "stroke_empty"

    rounded = [[round(p[0], round_digits), round(p[1], round_digits)] for p in points]
    h = hashlib.sha256(str(rounded).encode()).hexdigest()[:12]
    return f"stroke_{h}"


def compute_bbox(points):
    """
    Compute bounding box from a list of [x, y] points.

    Returns [min_x, min_y, max_x, max_y]; an empty list gives all zeros.
    """
    if not points:
        return [0.0, 0.0, 0.0, 0.0]

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return [min(xs), min(ys), max(xs), max(ys)]
