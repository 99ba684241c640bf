from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import LineString

from ..geometry.bounds import routing_extent_points
from ..geometry.paths import CLOSE_TOL


@dataclass
class Issue:
    kind: str
    message: str
    editor_id: Optional[int] = None
    statement_index: Optional[int] = None


def has_self_intersections(coords: Sequence[Tuple[float, float]]) -> bool:
    if len(coords) < 3:
        return False
    line = LineString(coords)
    return not line.is_simple


def closure_violations(points) -> int:
    """Consecutive point pairs (closing pair included) closer than CLOSE_TOL."""
    if len(points) < 2:
        return 0
    loop = list(points) + [points[0]]
    bad = 0
    for a, b in zip(loop, loop[1:]):
        if abs(a.x - b.x) < CLOSE_TOL and abs(a.y - b.y) < CLOSE_TOL:
            bad += 1
    return bad


def _entity_points(model):
    for rect in model.frame_members():
        yield "frame", rect.statement_index, None, [(rect.x, rect.y), (rect.x + rect.width, rect.y + rect.height)]
    for panel in model.sheathing:
        pts = [(panel.x, panel.y), (panel.x + panel.width, panel.y + panel.height)]
        pts += [(p.x, p.y) for p in panel.points]
        yield "panel", panel.statement_index, None, pts
    for row in model.nail_rows:
        yield "nail_row", row.statement_index, row.editor_id, [(row.start.x, row.start.y), (row.end.x, row.end.y)]
    for routing in model.paf_routings:
        yield "paf", routing.statement_index, routing.editor_id, list(routing_extent_points(routing))
    for op in model.boy_operations:
        yield "boy", op.statement_index, op.editor_id, [(op.x, op.z)]


def check_model(model) -> List[Issue]:
    """Geometric sanity checks over a parsed model."""
    issues: List[Issue] = []
    for routing in model.paf_routings:
        for seg in routing.segments:
            if seg.kind != "polygon":
                continue
            coords = [(p.x, p.y) for p in seg.samples or seg.points]
            if coords and coords[0] != coords[-1]:
                coords.append(coords[0])
            if has_self_intersections(coords):
                issues.append(Issue("self_intersection", "routing polygon crosses itself",
                                    routing.editor_id, routing.statement_index))
            if closure_violations(seg.points):
                issues.append(Issue("closure", "routing polygon repeats a vertex",
                                    routing.editor_id, routing.statement_index))
    b = model.bounds
    for kind, index, editor_id, pts in _entity_points(model):
        for x, y in pts:
            if not b.contains(x, y):
                issues.append(Issue("bounds", f"{kind} point ({x:g}, {y:g}) lies outside the model bounds",
                                    editor_id, index))
                break
    return issues
