"""
Structured wall model built from a WUP statement stream.

Coordinates are millimetres in the wall plane: x along the wall, y up.
Through-thickness values (panel offsets, drilling z) are kept as given.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..geometry.arcs import ArcSegment, LineSegment, Point
from ..geometry.bounds import Bounds


@dataclass
class Wall:
    width: float
    height: float
    thickness: Optional[float] = None
    side: Optional[float] = None


@dataclass
class Module:
    width: float
    height: float
    thickness: float
    origin_x: float
    origin_y: float
    origin_z: float = 0.0


@dataclass
class FrameRect:
    """Stud, blocking or plate, already resolved to wall coordinates."""
    kind: str  # "stud" | "blocking" | "plate"
    x: float
    y: float
    local_x: float
    local_y: float
    width: float
    height: float
    rotation: float = 0.0
    offset: Optional[float] = None
    orientation: str = "vertical"
    role: Optional[str] = None  # "top" | "bottom" for plates
    source: List[float] = field(default_factory=list)
    statement_index: Optional[int] = None


@dataclass
class PanelPoint:
    x: float
    y: float
    thickness: Optional[float] = None
    offset: Optional[float] = None
    extras: List[float] = field(default_factory=list)


@dataclass
class SheathingPanel:
    width: float
    height: float
    thickness: float
    x: float
    y: float
    local_x: float
    local_y: float
    offset: Optional[float] = None
    rotation: float = 0.0
    material_index: Optional[float] = None
    material: Optional[str] = None
    face_direction: int = 1
    layer: str = "pli"
    layer_index: int = 1
    layer_command: str = "PLI1"
    points: List[PanelPoint] = field(default_factory=list)
    source: List[float] = field(default_factory=list)
    statement_index: Optional[int] = None


@dataclass
class NailRow:
    start: Point
    end: Point
    spacing: Optional[float] = None
    gauge: Optional[float] = None
    layer: str = "pli"
    layer_index: Optional[int] = None
    layer_command: Optional[str] = None
    source: List[float] = field(default_factory=list)
    command: str = "NR"
    body: str = ""
    statement_index: Optional[int] = None
    editor_id: Optional[int] = None


@dataclass
class SourceEntry:
    """One PP/KB line that contributed to a path segment."""
    command: str
    numbers: List[float]
    statement_index: Optional[int] = None
    arc_type: Optional[str] = None  # flag token of a KB line, kept verbatim


@dataclass
class CircleSegment:
    position: Point
    radius: Optional[float]
    depth: Optional[float]
    depth_raw: Optional[float]
    orientation: Optional[float] = None
    feed: Optional[float] = None
    control_code: Optional[int] = None
    extras: List[float] = field(default_factory=list)
    source: List[float] = field(default_factory=list)
    statement_index: Optional[int] = None
    kind: str = "circle"


@dataclass
class PathSegment:
    kind: str  # "polygon" | "polyline"
    points: List[Point]
    path_segments: List[Union[LineSegment, ArcSegment]]
    depth: Optional[float] = None
    depth_raw: Optional[float] = None
    offset: Optional[float] = None
    orientation: Optional[float] = None
    z: Optional[float] = None
    control_code: Optional[int] = None
    source: List[SourceEntry] = field(default_factory=list)
    samples: List[Point] = field(default_factory=list)

    @property
    def closed(self) -> bool:
        return self.kind == "polygon"


RoutingSegment = Union[CircleSegment, PathSegment]


@dataclass
class PafRouting:
    tool: Optional[float] = None
    face: Optional[float] = None
    passes: Optional[float] = None
    segments: List[RoutingSegment] = field(default_factory=list)
    layer: Optional[str] = None
    layer_index: Optional[int] = None
    layer_command: Optional[str] = None
    source: List[float] = field(default_factory=list)
    command: str = "PAF"
    body: str = ""
    statement_index: Optional[int] = None
    statement_indices: List[int] = field(default_factory=list)
    editor_id: Optional[int] = None


@dataclass
class BoyOperation:
    x: float
    z: float
    local_x: float
    local_z: float
    diameter: Optional[float]
    depth: Optional[float]
    target: Optional[FrameRect] = None
    target_kind: Optional[str] = None
    target_role: Optional[str] = None
    source: List[float] = field(default_factory=list)
    command: str = "BOY"
    body: str = ""
    statement_index: Optional[int] = None
    editor_id: Optional[int] = None

    @property
    def direction(self) -> int:
        """-1 drills from the top face (negative depth), +1 otherwise."""
        return -1 if self.depth is not None and self.depth < 0 else 1


@dataclass
class Unhandled:
    command: str
    numbers: List[float]
    body: str
    statement_index: Optional[int] = None


# editor kinds -> model collection attribute
EDITABLE_COLLECTIONS = {
    "nail_row": "nail_rows",
    "boy": "boy_operations",
    "paf": "paf_routings",
}


@dataclass
class WupModel:
    wall: Optional[Wall] = None
    modules: List[Module] = field(default_factory=list)
    studs: List[FrameRect] = field(default_factory=list)
    blocking: List[FrameRect] = field(default_factory=list)
    plates: List[FrameRect] = field(default_factory=list)
    sheathing: List[SheathingPanel] = field(default_factory=list)
    nail_rows: List[NailRow] = field(default_factory=list)
    paf_routings: List[PafRouting] = field(default_factory=list)
    boy_operations: List[BoyOperation] = field(default_factory=list)
    bounds: Bounds = field(default_factory=Bounds)
    unhandled: List[Unhandled] = field(default_factory=list)
    statements: List[Optional[str]] = field(default_factory=list)
    source_text: Optional[str] = None
    next_editor_id: int = 1

    def frame_members(self) -> List[FrameRect]:
        return [*self.studs, *self.blocking, *self.plates]

    def find_entity(self, kind: str, editor_id: int):
        attr = EDITABLE_COLLECTIONS.get(kind)
        if attr is None:
            return None
        for item in getattr(self, attr):
            if item.editor_id == editor_id:
                return item
        return None


@dataclass
class IdAllocator:
    """Hands out editor ids; an entity keeps the first id it is given."""
    next_id: int = 1

    def assign(self, entity) -> int:
        if entity.editor_id is None:
            entity.editor_id = self.next_id
            self.next_id += 1
        return entity.editor_id


def ensure_editor_ids(model: WupModel) -> WupModel:
    """Give every editable entity lacking one an id, continuing ``model.next_editor_id``."""
    ids = IdAllocator(model.next_editor_id)
    for attr in EDITABLE_COLLECTIONS.values():
        for item in getattr(model, attr):
            ids.assign(item)
    model.next_editor_id = ids.next_id
    return model
